import itertools
import threading
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

import structlog

from app.board.domain.exceptions import StoreError
from app.board.domain.records import Feed, MessageRecord
from app.board.domain.store import FieldMapping, MessageStore, SnapshotCallback, Subscription

logger = structlog.get_logger(__name__)


class InMemorySubscription(Subscription):
    def __init__(self, store: "InMemoryMessageStore", collection: str, fields: FieldMapping, callback: SnapshotCallback):
        self.store = store
        self.collection = collection
        self.fields = fields
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        self.store._remove(self)


class InMemoryMessageStore(MessageStore):
    """
    Store de documentos em memória do processo.

    Camada de Infraestrutura: usado em desenvolvimento local e nos testes.
    Entrega snapshots completos de forma síncrona, na thread que fez a
    gravação, do mesmo jeito que o Firestore entrega na thread do watch.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._documents: dict[str, list[tuple[int, str, dict[str, Any]]]] = defaultdict(list)
        self._subscriptions: list[InMemorySubscription] = []
        self._sequence = itertools.count()
        self.fail_writes = False

    def subscribe(self, collection: str, fields: FieldMapping, callback: SnapshotCallback) -> Subscription:
        subscription = InMemorySubscription(self, collection, fields, callback)
        with self._lock:
            self._subscriptions.append(subscription)
            snapshot = self._snapshot(collection, fields)

        logger.debug("memory_store_subscribed", collection=collection)
        callback(snapshot)
        return subscription

    def fetch(self, collection: str, fields: FieldMapping) -> Feed:
        with self._lock:
            return self._snapshot(collection, fields)

    def append(self, collection: str, data: dict[str, Any], timestamp_field: str) -> str:
        if self.fail_writes:
            raise StoreError("Store em memória configurado para falhar")

        document_id = uuid.uuid4().hex
        document = dict(data)
        document[timestamp_field] = datetime.now(timezone.utc)

        with self._lock:
            self._documents[collection].append((next(self._sequence), document_id, document))
            listeners = [s for s in self._subscriptions if s.collection == collection]
            deliveries = [(s, self._snapshot(collection, s.fields)) for s in listeners]

        for subscription, snapshot in deliveries:
            if not subscription.active:
                continue
            try:
                subscription.callback(snapshot)
            except Exception:
                # o documento já foi gravado; um assinante com erro não derruba os demais
                logger.exception("snapshot_listener_failed", collection=collection)

        return document_id

    def subscription_count(self, collection: str | None = None) -> int:
        with self._lock:
            return len([s for s in self._subscriptions if collection is None or s.collection == collection])

    def get_provider_name(self) -> str:
        return "memory"

    def _remove(self, subscription: InMemorySubscription) -> None:
        with self._lock:
            subscription.active = False
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        logger.debug("memory_store_unsubscribed", collection=subscription.collection)

    def _snapshot(self, collection: str, fields: FieldMapping) -> Feed:
        # documentos sem o campo de timestamp não entram na ordenação, como no Firestore
        ordered = sorted(
            (entry for entry in self._documents[collection] if entry[2].get(fields.created_at) is not None),
            key=lambda entry: (entry[2][fields.created_at], entry[0]),
            reverse=True,
        )
        return tuple(
            MessageRecord(
                id=document_id,
                text=str(document.get(fields.text, "")),
                created_at=document[fields.created_at],
            )
            for _, document_id, document in ordered
        )
