import asyncio
import json
from typing import Any, Dict, Optional

import structlog
from asgiref.sync import async_to_sync, sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings

from app.board.api.serializers import PageSerializer
from app.board.config import get_board_settings
from app.board.domain.exceptions import EmptyMessageError, UnknownBoardError
from app.board.services.board_view import BoardView
from app.board.services.store import get_message_store

logger = structlog.get_logger(__name__)


class BoardConsumer(AsyncWebsocketConsumer):
    """
    Consumer WebSocket para o mural de mensagens.

    Responsável por:
    - Montar um BoardView por conexão (uma assinatura por tela visível)
    - Renderizar a página atual a cada snapshot do feed
    - Receber envios de mensagem e comandos de navegação
    - Desmontar o BoardView e liberar a assinatura ao desconectar
    """

    view: Optional[BoardView] = None
    acknowledgment_task: Optional[asyncio.Task] = None

    async def connect(self) -> None:
        """
        Conecta o cliente ao mural pedido na URL.
        Mural desconhecido fecha a conexão com 4004.
        """
        self.board_slug = self.scope["url_route"]["kwargs"]["board"]
        log = logger.bind(board=self.board_slug)

        try:
            board = get_board_settings(self.board_slug)
        except UnknownBoardError:
            log.warning("ws_connection_board_not_found")
            await self.close(code=4004)
            return

        self.view = BoardView(get_message_store(), board, acknowledgment_seconds=settings.ACKNOWLEDGMENT_SECONDS)
        self.view.on_change(self._notify_feed_updated)

        await self.accept()
        await sync_to_async(self.view.mount)()
        log.info("ws_connected")

    async def disconnect(self, close_code: int) -> None:
        """
        Cancela o aviso pendente e desmonta o mural.

        Args:
            close_code: Código de fechamento da conexão
        """
        if self.acknowledgment_task is not None:
            self.acknowledgment_task.cancel()
            self.acknowledgment_task = None

        if self.view is not None:
            await sync_to_async(self.view.unmount)()
            self.view = None

        logger.info("ws_disconnected", board=getattr(self, "board_slug", None), close_code=close_code)

    def _notify_feed_updated(self) -> None:
        # chamado na thread do snapshot; a renderização acontece no loop do consumer
        async_to_sync(self.channel_layer.send)(self.channel_name, {"type": "feed.updated"})

    async def receive(self, text_data: str) -> None:
        """
        Recebe comandos do cliente: envio de mensagem e navegação entre páginas.

        Args:
            text_data: Comando JSON do cliente
        """
        log = logger.bind(board=self.board_slug)
        try:
            data = json.loads(text_data)
            message_type = data.get("type")

            if message_type == "submit_message":
                await self._handle_submit(data)
            elif message_type == "go_to_page":
                await self._handle_go_to(data)
            elif message_type == "next_page":
                self.view.next()
                await self._render()
            elif message_type == "previous_page":
                self.view.previous()
                await self._render()
            else:
                log.warning("ws_unknown_message_type", type=message_type)
                await self._send_error(f"Tipo de mensagem desconhecido: {message_type}")

        except json.JSONDecodeError:
            log.warning("ws_invalid_json")
            await self._send_error("JSON inválido")
        except Exception as e:
            log.exception("ws_receive_error")
            await self._send_error(f"Erro ao processar mensagem: {str(e)}")

    async def _handle_submit(self, data: Dict[str, Any]) -> None:
        """
        Envia a mensagem ao store. Sucesso gera `message_submitted` e liga o aviso;
        falha do store não gera nenhuma resposta.

        Args:
            data: Dados da mensagem do cliente
        """
        try:
            result = await sync_to_async(self.view.submit)(data.get("message", ""))
        except EmptyMessageError:
            await self._send_error("Mensagem vazia")
            return

        if not result.success:
            return

        await self.send(text_data=json.dumps({"type": "message_submitted", "message": {"id": result.record_id}}))
        await self._render()
        self._schedule_acknowledgment_expiry()

    async def _handle_go_to(self, data: Dict[str, Any]) -> None:
        page = data.get("page")
        if isinstance(page, bool) or not isinstance(page, int):
            await self._send_error("Página inválida")
            return

        self.view.go_to(page)
        await self._render()

    def _schedule_acknowledgment_expiry(self) -> None:
        if self.acknowledgment_task is not None:
            self.acknowledgment_task.cancel()
        self.acknowledgment_task = asyncio.create_task(self._expire_acknowledgment())

    async def _expire_acknowledgment(self) -> None:
        await asyncio.sleep(self.view.acknowledgment_seconds)
        self.acknowledgment_task = None
        try:
            await self._render()
        except Exception:
            # a conexão pode ter fechado durante a espera
            logger.exception("ws_acknowledgment_render_failed", board=self.board_slug)

    async def _render(self) -> None:
        if self.view is None:
            return

        payload = {
            "type": "page",
            **PageSerializer(self.view.page).data,
            "acknowledged": self.view.acknowledged,
            "pending_text": self.view.pending_text,
        }
        await self.send(text_data=json.dumps(payload))

    async def _send_error(self, message: str) -> None:
        await self.send(text_data=json.dumps({"type": "error", "message": message}))

    async def feed_updated(self, event: Dict[str, Any]) -> None:
        """
        Handler do snapshot novo.
        Chamado pelo listener do feed via channel layer.

        Args:
            event: Evento sem dados; o feed é lido do BoardView
        """
        await self._render()
