import threading
from typing import Callable, Optional

import structlog

from app.board.domain.records import Feed
from app.board.domain.store import FieldMapping, MessageStore, SnapshotCallback, Subscription

logger = structlog.get_logger(__name__)


class LiveFeed:
    """
    Assinante do feed de mensagens de uma coleção.

    Responsável por:
    - Abrir uma assinatura ordenada (mais recente primeiro) na ativação
    - Substituir o feed inteiro a cada snapshot recebido
    - Notificar os listeners registrados com o feed novo
    - Cancelar a assinatura na desativação e ignorar snapshots tardios
    """

    def __init__(self, store: MessageStore, collection: str, fields: FieldMapping):
        self.store = store
        self.collection = collection
        self.fields = fields
        self._records: Feed = ()
        self._listeners: list[SnapshotCallback] = []
        self._subscription: Optional[Subscription] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def records(self) -> Feed:
        return self._records

    @property
    def is_active(self) -> bool:
        return self._subscription is not None

    def on_snapshot(self, callback: SnapshotCallback) -> Callable[[], None]:
        """
        Registra um listener chamado após cada substituição do feed.

        Returns:
            Função que remove o listener
        """
        with self._lock:
            self._listeners.append(callback)

        def remove() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return remove

    def activate(self) -> None:
        if self._subscription is not None:
            return

        with self._lock:
            self._generation += 1
            generation = self._generation

        def deliver(records: Feed) -> None:
            self._apply(generation, records)

        subscription = self.store.subscribe(self.collection, self.fields, deliver)

        with self._lock:
            if generation == self._generation:
                self._subscription = subscription
                subscription = None

        # desativado enquanto a assinatura era aberta
        if subscription is not None:
            subscription.unsubscribe()
            return

        logger.info("live_feed_activated", collection=self.collection, provider=self.store.get_provider_name())

    def deactivate(self) -> None:
        with self._lock:
            self._generation += 1
            subscription = self._subscription
            self._subscription = None
            self._listeners.clear()

        if subscription is not None:
            subscription.unsubscribe()
            logger.info("live_feed_deactivated", collection=self.collection)

    def _apply(self, generation: int, records: Feed) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("late_snapshot_ignored", collection=self.collection)
                return
            self._records = tuple(records)
            listeners = list(self._listeners)
            current = self._records

        for listener in listeners:
            try:
                listener(current)
            except Exception:
                logger.exception("snapshot_listener_failed", collection=self.collection)
