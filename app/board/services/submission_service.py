from dataclasses import dataclass
from typing import Optional

import structlog

from app.board.domain.exceptions import EmptyMessageError, StoreError
from app.board.domain.store import FieldMapping, MessageStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    success: bool
    record_id: Optional[str] = None


class SubmissionService:
    """
    Service para gravar mensagens novas no store.
    Responsável por validar o texto e isolar falhas de gravação.
    """

    @staticmethod
    def submit(store: MessageStore, collection: str, fields: FieldMapping, text: str) -> SubmissionResult:
        """
        Grava uma mensagem com timestamp atribuído pelo servidor.

        Args:
            store: Cliente do store de documentos
            collection: Coleção de destino
            fields: Mapeamento de campos do documento
            text: Conteúdo da mensagem

        Returns:
            SubmissionResult: success=False quando o store falha

        Raises:
            EmptyMessageError: Se o texto for vazio
        """
        content = (text or "").strip()
        if not content:
            raise EmptyMessageError("Mensagem vazia")

        log = logger.bind(collection=collection, provider=store.get_provider_name(), content_length=len(content))

        try:
            record_id = store.append(collection, {fields.text: content}, timestamp_field=fields.created_at)
        except StoreError:
            log.exception("message_submit_failed")
            return SubmissionResult(success=False)

        log.info("message_submitted", record_id=record_id)
        return SubmissionResult(success=True, record_id=record_id)
