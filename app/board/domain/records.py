from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class MessageRecord:
    """
    Mensagem armazenada no mural.

    O `created_at` é atribuído pelo servidor e pode ser None enquanto
    o timestamp ainda está pendente logo após o envio.
    """

    id: str
    text: str
    created_at: Optional[datetime] = None


Feed = tuple[MessageRecord, ...]
