from datetime import datetime, timedelta, timezone

import pytest
from rest_framework.test import APIClient

from app.board.config import BoardSettings
from app.board.domain.records import MessageRecord
from app.board.infrastructure.memory import InMemoryMessageStore
from app.board.services.store import get_message_store


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def use_in_memory_channel_layer(settings):
    """Sobrescreve CHANNEL_LAYERS para usar InMemoryChannelLayer nos testes."""
    settings.CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels.layers.InMemoryChannelLayer",
        },
    }


@pytest.fixture(autouse=True)
def use_in_memory_store(settings):
    """Garante um InMemoryMessageStore novo por teste."""
    settings.MESSAGE_STORE_PROVIDER = "memory"
    get_message_store.cache_clear()
    yield
    get_message_store.cache_clear()


@pytest.fixture
def store() -> InMemoryMessageStore:
    """Fixture que retorna o store compartilhado pelas views e consumers."""
    return get_message_store()


@pytest.fixture
def board() -> BoardSettings:
    """Fixture com um mural de duas mensagens por página."""
    return BoardSettings(slug="test", collection="messages", page_size=2)


@pytest.fixture
def make_feed():
    """Fábrica de feeds m<n>..m1, do mais recente para o mais antigo."""

    def _make(size: int) -> tuple[MessageRecord, ...]:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        return tuple(
            MessageRecord(id=f"m{i}", text=f"Mensagem {i}", created_at=base + timedelta(minutes=i))
            for i in range(size, 0, -1)
        )

    return _make
