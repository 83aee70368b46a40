from typing import Any

import structlog
from django.conf import settings
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import firestore

from app.board.domain.exceptions import StoreError
from app.board.domain.records import Feed, MessageRecord
from app.board.domain.store import FieldMapping, MessageStore, SnapshotCallback, Subscription

logger = structlog.get_logger(__name__)


class FirestoreSubscription(Subscription):
    def __init__(self, watch):
        self._watch = watch

    def unsubscribe(self) -> None:
        self._watch.unsubscribe()


class FirestoreMessageStore(MessageStore):
    """
    Implementação do store usando Google Cloud Firestore.

    Camada de Infraestrutura: responsável pelos detalhes técnicos da
    integração com o serviço gerenciado (consultas ordenadas, listeners
    de snapshot e SERVER_TIMESTAMP).
    """

    def __init__(self, client: firestore.Client | None = None):
        if client is None:
            project_id = settings.FIRESTORE_PROJECT_ID
            if not project_id:
                raise ValueError("FIRESTORE_PROJECT_ID não configurado")
            client = firestore.Client(project=project_id)

        self.client = client

    def _query(self, collection: str, fields: FieldMapping):
        return self.client.collection(collection).order_by(fields.created_at, direction=firestore.Query.DESCENDING)

    @staticmethod
    def _to_feed(documents, fields: FieldMapping) -> Feed:
        records = []
        for document in documents:
            data = document.to_dict() or {}
            records.append(
                MessageRecord(
                    id=document.id,
                    text=str(data.get(fields.text, "")),
                    created_at=data.get(fields.created_at),
                )
            )
        return tuple(records)

    def subscribe(self, collection: str, fields: FieldMapping, callback: SnapshotCallback) -> Subscription:
        log = logger.bind(provider="firestore", collection=collection)

        def on_snapshot(documents, changes, read_time) -> None:
            log.debug("firestore_snapshot_received", size=len(documents), changes=len(changes))
            callback(self._to_feed(documents, fields))

        try:
            watch = self._query(collection, fields).on_snapshot(on_snapshot)
        except (GoogleAPIError, GoogleAuthError) as exc:
            log.exception("firestore_subscribe_failed")
            raise StoreError(str(exc)) from exc

        log.info("firestore_subscribed")
        return FirestoreSubscription(watch)

    def fetch(self, collection: str, fields: FieldMapping) -> Feed:
        try:
            return self._to_feed(self._query(collection, fields).stream(), fields)
        except (GoogleAPIError, GoogleAuthError) as exc:
            logger.exception("firestore_fetch_failed", collection=collection)
            raise StoreError(str(exc)) from exc

    def append(self, collection: str, data: dict[str, Any], timestamp_field: str) -> str:
        document = {**data, timestamp_field: firestore.SERVER_TIMESTAMP}

        try:
            _, reference = self.client.collection(collection).add(document)
        except (GoogleAPIError, GoogleAuthError) as exc:
            logger.exception("firestore_append_failed", collection=collection)
            raise StoreError(str(exc)) from exc

        return reference.id

    def get_provider_name(self) -> str:
        return "firestore"
