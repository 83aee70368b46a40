from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import ServiceUnavailable
from google.auth.exceptions import RefreshError
from google.cloud import firestore

from app.board.domain.exceptions import StoreError
from app.board.domain.records import MessageRecord
from app.board.domain.store import FieldMapping
from app.board.infrastructure.firestore import FirestoreMessageStore
from app.board.infrastructure.memory import InMemoryMessageStore
from app.board.services.store import get_message_store

FIELDS = FieldMapping(text="message", created_at="timestamp")


def firestore_document(document_id: str, data: dict) -> MagicMock:
    document = MagicMock()
    document.id = document_id
    document.to_dict.return_value = data
    return document


@pytest.mark.unit
class TestInMemoryMessageStore:
    def test_snapshot_is_newest_first(self):
        store = InMemoryMessageStore()
        for text in ["um", "dois", "três"]:
            store.append("messages", {"message": text}, timestamp_field="timestamp")

        feed = store.fetch("messages", FIELDS)

        assert [record.text for record in feed] == ["três", "dois", "um"]
        assert all(record.created_at.tzinfo is not None for record in feed)

    def test_collections_are_isolated(self):
        store = InMemoryMessageStore()
        store.append("messages", {"message": "a"}, timestamp_field="timestamp")
        store.append("feedback", {"feedback": "b"}, timestamp_field="createdAt")

        assert len(store.fetch("messages", FIELDS)) == 1
        assert [r.text for r in store.fetch("feedback", FieldMapping("feedback", "createdAt"))] == ["b"]

    def test_subscribers_receive_full_snapshots(self):
        store = InMemoryMessageStore()
        snapshots = []
        store.subscribe("messages", FIELDS, snapshots.append)

        store.append("messages", {"message": "a"}, timestamp_field="timestamp")
        store.append("messages", {"message": "b"}, timestamp_field="timestamp")

        assert [len(snapshot) for snapshot in snapshots] == [0, 1, 2]
        assert snapshots[-1][0].text == "b"

    def test_unsubscribe_stops_deliveries(self):
        store = InMemoryMessageStore()
        callback = MagicMock()
        subscription = store.subscribe("messages", FIELDS, callback)

        subscription.unsubscribe()
        store.append("messages", {"message": "a"}, timestamp_field="timestamp")

        callback.assert_called_once_with(())
        assert store.subscription_count() == 0

    def test_failing_writes_raise_store_error(self):
        store = InMemoryMessageStore()
        store.fail_writes = True

        with pytest.raises(StoreError):
            store.append("messages", {"message": "a"}, timestamp_field="timestamp")

        assert store.fetch("messages", FIELDS) == ()

    def test_failing_subscriber_does_not_block_append_or_other_subscribers(self):
        store = InMemoryMessageStore()
        delivered = []
        store.subscribe("messages", FIELDS, MagicMock(side_effect=[None, RuntimeError("listener quebrado")]))
        store.subscribe("messages", FIELDS, delivered.append)

        record_id = store.append("messages", {"message": "salva"}, timestamp_field="timestamp")

        assert [record.id for record in store.fetch("messages", FIELDS)] == [record_id]
        assert [len(snapshot) for snapshot in delivered] == [0, 1]


@pytest.mark.unit
class TestFirestoreMessageStore:
    @pytest.fixture
    def client(self) -> MagicMock:
        return MagicMock(spec=firestore.Client)

    def test_subscribe_orders_by_timestamp_descending(self, client):
        store = FirestoreMessageStore(client=client)

        store.subscribe("messages", FIELDS, MagicMock())

        client.collection.assert_called_once_with("messages")
        client.collection.return_value.order_by.assert_called_once_with(
            "timestamp", direction=firestore.Query.DESCENDING
        )

    def test_snapshot_documents_become_records(self, client):
        store = FirestoreMessageStore(client=client)
        callback = MagicMock()
        store.subscribe("messages", FIELDS, callback)
        on_snapshot = client.collection.return_value.order_by.return_value.on_snapshot.call_args[0][0]
        created_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

        on_snapshot(
            [
                firestore_document("b", {"message": "pendente", "timestamp": None}),
                firestore_document("a", {"message": "olá", "timestamp": created_at}),
            ],
            [],
            created_at,
        )

        callback.assert_called_once_with(
            (
                MessageRecord(id="b", text="pendente", created_at=None),
                MessageRecord(id="a", text="olá", created_at=created_at),
            )
        )

    def test_unsubscribe_releases_watch(self, client):
        store = FirestoreMessageStore(client=client)
        watch = client.collection.return_value.order_by.return_value.on_snapshot.return_value

        store.subscribe("messages", FIELDS, MagicMock()).unsubscribe()

        watch.unsubscribe.assert_called_once()

    def test_append_uses_server_timestamp(self, client):
        reference = MagicMock()
        reference.id = "novo-id"
        client.collection.return_value.add.return_value = (None, reference)
        store = FirestoreMessageStore(client=client)

        record_id = store.append("messages", {"message": "olá"}, timestamp_field="timestamp")

        assert record_id == "novo-id"
        client.collection.return_value.add.assert_called_once_with(
            {"message": "olá", "timestamp": firestore.SERVER_TIMESTAMP}
        )

    def test_append_failure_raises_store_error(self, client):
        client.collection.return_value.add.side_effect = ServiceUnavailable("fora do ar")
        store = FirestoreMessageStore(client=client)

        with pytest.raises(StoreError):
            store.append("messages", {"message": "olá"}, timestamp_field="timestamp")

    def test_append_credentials_failure_raises_store_error(self, client):
        client.collection.return_value.add.side_effect = RefreshError("token expirado")
        store = FirestoreMessageStore(client=client)

        with pytest.raises(StoreError):
            store.append("messages", {"message": "olá"}, timestamp_field="timestamp")

    def test_fetch_streams_ordered_query(self, client):
        client.collection.return_value.order_by.return_value.stream.return_value = iter(
            [firestore_document("a", {"message": "olá", "timestamp": None})]
        )
        store = FirestoreMessageStore(client=client)

        assert store.fetch("messages", FIELDS) == (MessageRecord(id="a", text="olá"),)

    def test_requires_project_id_without_client(self, settings):
        settings.FIRESTORE_PROJECT_ID = None

        with pytest.raises(ValueError):
            FirestoreMessageStore()


@pytest.mark.unit
class TestStoreSelection:
    def test_memory_provider(self, settings):
        settings.MESSAGE_STORE_PROVIDER = "memory"
        get_message_store.cache_clear()

        assert get_message_store().get_provider_name() == "memory"

    def test_unknown_provider_falls_back_to_memory(self, settings):
        settings.MESSAGE_STORE_PROVIDER = "cassandra"
        get_message_store.cache_clear()

        assert isinstance(get_message_store(), InMemoryMessageStore)

    def test_store_is_shared_across_calls(self):
        assert get_message_store() is get_message_store()
