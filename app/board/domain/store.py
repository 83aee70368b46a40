from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

from app.board.domain.records import Feed

SnapshotCallback = Callable[[Feed], None]


@dataclass(frozen=True)
class FieldMapping:
    """Nomes dos campos do documento no store para cada atributo do registro."""

    text: str = "message"
    created_at: str = "timestamp"


class Subscription(ABC):
    """Assinatura ativa de uma coleção. Cancelada uma única vez pelo dono."""

    @abstractmethod
    def unsubscribe(self) -> None:
        """Libera os recursos da assinatura no store."""
        pass


class MessageStore(ABC):
    """
    Interface abstrata para o store de documentos que guarda as mensagens.

    Define o contrato de leitura (snapshots completos e ordenados, nunca deltas)
    e de escrita (append com timestamp atribuído pelo servidor), permitindo
    trocar o Firestore por um store em memória nos testes.
    """

    @abstractmethod
    def subscribe(self, collection: str, fields: FieldMapping, callback: SnapshotCallback) -> Subscription:
        """
        Abre uma assinatura da coleção ordenada por `fields.created_at` desc.

        Args:
            collection: Nome da coleção
            fields: Mapeamento de campos do documento
            callback: Chamado com o snapshot completo a cada mudança

        Returns:
            Subscription que deve ser cancelada pelo dono
        """
        pass

    @abstractmethod
    def fetch(self, collection: str, fields: FieldMapping) -> Feed:
        """Leitura pontual da coleção, na mesma ordem da assinatura."""
        pass

    @abstractmethod
    def append(self, collection: str, data: dict[str, Any], timestamp_field: str) -> str:
        """
        Grava um novo documento com timestamp atribuído pelo servidor.

        Args:
            collection: Nome da coleção
            data: Campos do documento
            timestamp_field: Campo que recebe o timestamp do servidor

        Returns:
            str: Identificador atribuído pelo store

        Raises:
            StoreError: Se a gravação falhar
        """
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """Retorna identificador único do store."""
        pass
