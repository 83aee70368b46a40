from functools import lru_cache

import structlog
from django.conf import settings

from app.board.domain.store import MessageStore
from app.board.infrastructure.firestore import FirestoreMessageStore
from app.board.infrastructure.memory import InMemoryMessageStore

logger = structlog.get_logger(__name__)

_STORES: dict[str, type[MessageStore]] = {
    "firestore": FirestoreMessageStore,
    "memory": InMemoryMessageStore,
}


@lru_cache(maxsize=1)
def get_message_store() -> MessageStore:
    """
    Retorna o store configurado em MESSAGE_STORE_PROVIDER.

    Uma única instância por processo: os consumers e as views recebem
    este objeto explicitamente, nunca um handle global do módulo.
    """
    provider = settings.MESSAGE_STORE_PROVIDER.lower()
    store_class = _STORES.get(provider)

    if not store_class:
        logger.warning("unknown_store_provider_fallback", provider=provider, available=list(_STORES.keys()))
        store_class = InMemoryMessageStore

    store = store_class()
    logger.info("message_store_ready", provider=store.get_provider_name())
    return store
