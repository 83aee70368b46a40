import time
from typing import Callable, Optional

import structlog

from app.board.config import BoardSettings
from app.board.domain.pagination import Page, PageState
from app.board.domain.records import Feed
from app.board.domain.store import MessageStore
from app.board.services.live_feed import LiveFeed
from app.board.services.submission_service import SubmissionResult, SubmissionService

logger = structlog.get_logger(__name__)

DEFAULT_ACKNOWLEDGMENT_SECONDS = 3.0


class BoardView:
    """
    Estado de tela de um mural: feed ao vivo, página atual, texto pendente
    do formulário e o aviso temporário de envio.

    Montado quando a tela fica visível e desmontado quando sai, sem
    deixar assinaturas abertas entre ciclos.
    """

    def __init__(
        self,
        store: MessageStore,
        board: BoardSettings,
        acknowledgment_seconds: float = DEFAULT_ACKNOWLEDGMENT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.board = board
        self.acknowledgment_seconds = acknowledgment_seconds
        self.clock = clock
        self.feed = LiveFeed(store, board.collection, board.field_mapping)
        self.pages = PageState(board.page_size, board.out_of_range, board.refresh_policy)
        self.pending_text = ""
        self._acknowledged_until: Optional[float] = None
        self._change_listeners: list[Callable[[], None]] = []
        self._seen: Optional[Feed] = None

    def on_change(self, callback: Callable[[], None]) -> None:
        self._change_listeners.append(callback)

    def mount(self) -> None:
        self.feed.on_snapshot(self._handle_snapshot)
        self.feed.activate()
        logger.info("board_mounted", board=self.board.slug)

    def unmount(self) -> None:
        self.feed.deactivate()
        self._change_listeners.clear()
        self._acknowledged_until = None
        logger.info("board_unmounted", board=self.board.slug)

    def _handle_snapshot(self, records: Feed) -> None:
        for listener in list(self._change_listeners):
            listener()

    def _sync(self) -> Feed:
        # a página é ajustada na thread de quem lê, não na thread do snapshot
        records = self.feed.records
        if records is not self._seen:
            self._seen = records
            self.pages.refresh(len(records))
        return records

    @property
    def page(self) -> Page:
        return self.pages.page_of(self._sync())

    @property
    def acknowledged(self) -> bool:
        return self._acknowledged_until is not None and self.clock() < self._acknowledged_until

    def set_text(self, text: str) -> None:
        self.pending_text = text

    def submit(self, text: Optional[str] = None) -> SubmissionResult:
        """
        Envia o texto pendente (ou `text`, quando informado).

        Em caso de sucesso limpa o texto pendente e liga o aviso por
        `acknowledgment_seconds`. Em caso de falha nada muda.

        Raises:
            EmptyMessageError: Se o texto for vazio
        """
        if text is not None:
            self.pending_text = text

        result = SubmissionService.submit(
            self.store, self.board.collection, self.board.field_mapping, self.pending_text
        )

        if result.success:
            self.pending_text = ""
            self._acknowledged_until = self.clock() + self.acknowledgment_seconds

        return result

    def go_to(self, page: int) -> bool:
        self._sync()
        return self.pages.go_to(page)

    def next(self) -> bool:
        self._sync()
        return self.pages.next()

    def previous(self) -> bool:
        self._sync()
        return self.pages.previous()
