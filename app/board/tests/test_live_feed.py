from unittest.mock import MagicMock

import pytest

from app.board.domain.store import FieldMapping, MessageStore
from app.board.infrastructure.memory import InMemoryMessageStore
from app.board.services.live_feed import LiveFeed

FIELDS = FieldMapping(text="message", created_at="timestamp")


class CapturingStore(MessageStore):
    """Store falso que guarda os callbacks para entregar snapshots manualmente."""

    def __init__(self):
        self.callbacks = []
        self.subscriptions = []

    def subscribe(self, collection, fields, callback):
        subscription = MagicMock()
        self.callbacks.append(callback)
        self.subscriptions.append(subscription)
        return subscription

    def fetch(self, collection, fields):
        return ()

    def append(self, collection, data, timestamp_field):
        raise NotImplementedError

    def get_provider_name(self) -> str:
        return "capturing"


@pytest.mark.unit
class TestLiveFeed:
    def test_activate_delivers_initial_snapshot(self):
        store = InMemoryMessageStore()
        store.append("messages", {"message": "primeira"}, timestamp_field="timestamp")

        feed = LiveFeed(store, "messages", FIELDS)
        feed.activate()

        assert [record.text for record in feed.records] == ["primeira"]
        assert feed.is_active is True

    def test_new_record_appears_at_head_of_next_snapshot(self):
        store = InMemoryMessageStore()
        store.append("messages", {"message": "antiga"}, timestamp_field="timestamp")
        feed = LiveFeed(store, "messages", FIELDS)
        snapshots = []
        feed.on_snapshot(snapshots.append)
        feed.activate()

        store.append("messages", {"message": "nova"}, timestamp_field="timestamp")

        assert [record.text for record in feed.records] == ["nova", "antiga"]
        assert len(snapshots) == 2
        assert snapshots[-1] == feed.records

    def test_snapshot_replaces_feed_wholesale(self, make_feed):
        store = CapturingStore()
        feed = LiveFeed(store, "messages", FIELDS)
        feed.activate()
        deliver = store.callbacks[0]

        deliver(make_feed(3))
        deliver(make_feed(1))

        assert [record.id for record in feed.records] == ["m1"]

    def test_late_notification_after_deactivate_does_not_mutate(self, make_feed):
        store = CapturingStore()
        feed = LiveFeed(store, "messages", FIELDS)
        listener = MagicMock()
        feed.on_snapshot(listener)
        feed.activate()
        deliver = store.callbacks[0]
        deliver(make_feed(2))

        feed.deactivate()
        deliver(make_feed(5))

        assert [record.id for record in feed.records] == ["m2", "m1"]
        assert listener.call_count == 1
        store.subscriptions[0].unsubscribe.assert_called_once()

    def test_activate_twice_keeps_single_subscription(self):
        store = InMemoryMessageStore()
        feed = LiveFeed(store, "messages", FIELDS)

        feed.activate()
        feed.activate()

        assert store.subscription_count("messages") == 1

    def test_repeated_mount_cycles_leak_no_subscriptions(self):
        store = InMemoryMessageStore()
        feed = LiveFeed(store, "messages", FIELDS)

        for _ in range(5):
            feed.activate()
            feed.deactivate()

        assert store.subscription_count() == 0
        assert feed.is_active is False

    def test_stale_callback_from_previous_cycle_is_ignored(self, make_feed):
        store = CapturingStore()
        feed = LiveFeed(store, "messages", FIELDS)
        feed.activate()
        old_deliver = store.callbacks[0]
        feed.deactivate()
        feed.activate()
        store.callbacks[1](make_feed(1))

        old_deliver(make_feed(4))

        assert [record.id for record in feed.records] == ["m1"]

    def test_listener_can_be_removed(self):
        store = InMemoryMessageStore()
        feed = LiveFeed(store, "messages", FIELDS)
        listener = MagicMock()
        remove = feed.on_snapshot(listener)
        feed.activate()

        remove()
        store.append("messages", {"message": "oi"}, timestamp_field="timestamp")

        listener.assert_called_once_with(())
        assert feed.records[0].text == "oi"

    def test_deactivate_without_activate_is_noop(self):
        store = CapturingStore()
        feed = LiveFeed(store, "messages", FIELDS)

        feed.deactivate()

        assert store.subscriptions == []

    def test_failing_listener_does_not_starve_the_others(self, make_feed):
        store = CapturingStore()
        feed = LiveFeed(store, "messages", FIELDS)
        recorded = []
        feed.on_snapshot(MagicMock(side_effect=RuntimeError("listener quebrado")))
        feed.on_snapshot(recorded.append)
        feed.activate()

        store.callbacks[0](make_feed(2))

        assert [record.id for record in feed.records] == ["m2", "m1"]
        assert recorded == [feed.records]
