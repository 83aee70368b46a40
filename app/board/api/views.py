import structlog
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from app.board.api.serializers import PageSerializer, SubmitMessageSerializer
from app.board.config import BoardSettings, get_board_settings
from app.board.domain.exceptions import StoreError, UnknownBoardError
from app.board.domain.pagination import paginate
from app.board.services.store import get_message_store
from app.board.services.submission_service import SubmissionService

logger = structlog.get_logger(__name__)


class StoreUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Não foi possível acessar o store de mensagens."
    default_code = "store_unavailable"


@extend_schema_view(
    get=extend_schema(
        summary="Listar uma página de mensagens do mural",
        parameters=[OpenApiParameter("page", int, description="Página (1-indexada)")],
        responses={200: PageSerializer},
        tags=["Messages"],
    ),
    post=extend_schema(
        summary="Enviar mensagem ao mural",
        request=SubmitMessageSerializer,
        tags=["Messages"],
    ),
)
class BoardMessagesView(APIView):
    """View de leitura pontual e envio de mensagens de um mural."""

    permission_classes = [AllowAny]

    def get_board(self, board: str) -> BoardSettings:
        try:
            return get_board_settings(board)
        except UnknownBoardError as exc:
            raise NotFound(str(exc)) from exc

    def get(self, request: Request, board: str) -> Response:
        """Retorna a página pedida; páginas fora do intervalo são ajustadas à mais próxima."""
        board_settings = self.get_board(board)

        try:
            page_number = int(request.query_params.get("page", 1))
        except ValueError:
            page_number = 1

        try:
            feed = get_message_store().fetch(board_settings.collection, board_settings.field_mapping)
        except StoreError as exc:
            raise StoreUnavailable() from exc

        page = paginate(feed, board_settings.page_size, page_number)
        return Response(PageSerializer(page).data)

    def post(self, request: Request, board: str) -> Response:
        board_settings = self.get_board(board)

        serializer = SubmitMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = SubmissionService.submit(
            store=get_message_store(),
            collection=board_settings.collection,
            fields=board_settings.field_mapping,
            text=serializer.validated_data["text"],
        )
        if not result.success:
            raise StoreUnavailable()

        return Response({"id": result.record_id}, status=status.HTTP_201_CREATED)
