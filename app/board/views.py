from django.http import Http404
from django.views.generic import TemplateView

from app.board.config import get_board_settings
from app.board.domain.exceptions import UnknownBoardError


class BoardPageView(TemplateView):
    """Página do mural: formulário, lista paginada e aviso de envio."""

    template_name = "board/board.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        try:
            context["board"] = get_board_settings(kwargs["board"])
        except UnknownBoardError as exc:
            raise Http404(str(exc)) from exc
        return context
