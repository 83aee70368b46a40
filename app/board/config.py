from functools import lru_cache
from typing import Any

from django.conf import settings
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.board.domain.exceptions import UnknownBoardError
from app.board.domain.pagination import OutOfRangePolicy, RefreshPolicy
from app.board.domain.store import FieldMapping


class FieldMappingSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    text: str = Field(default="message", min_length=1)
    created_at: str = Field(default="timestamp", alias="createdAt", min_length=1)


class BoardSettings(BaseModel):
    """
    Configuração de um mural declarado em settings.BOARDS.

    Os dois formulários do mural diferem apenas em coleção, nomes de campos
    e paginação, então cada um é uma entrada desta configuração.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    slug: str
    title: str = "Mural de Mensagens"
    collection: str = Field(min_length=1)
    fields: FieldMappingSettings = Field(default_factory=FieldMappingSettings)
    page_size: int = Field(default=5, ge=1, alias="pageSize")
    out_of_range: OutOfRangePolicy = Field(default=OutOfRangePolicy.IGNORE, alias="outOfRange")
    refresh_policy: RefreshPolicy = Field(default=RefreshPolicy.CLAMP, alias="refreshPolicy")
    show_prev_next: bool = Field(default=False, alias="showPrevNext")

    @property
    def field_mapping(self) -> FieldMapping:
        return FieldMapping(text=self.fields.text, created_at=self.fields.created_at)


def load_boards(raw: dict[str, dict[str, Any]]) -> dict[str, BoardSettings]:
    """Valida as declarações de mural. Erros de configuração sobem como ValueError."""
    boards = {}
    for slug, values in raw.items():
        try:
            boards[slug] = BoardSettings(slug=slug, **values)
        except ValidationError as exc:
            raise ValueError(f"Configuração inválida para o mural {slug!r}: {exc}") from exc
    return boards


@lru_cache(maxsize=1)
def get_boards() -> dict[str, BoardSettings]:
    """Murais declarados em settings.BOARDS, validados uma vez por processo."""
    return load_boards(settings.BOARDS)


def reset_boards(*, setting: str, **kwargs) -> None:
    """Receiver de setting_changed: descarta os murais validados quando BOARDS muda."""
    if setting == "BOARDS":
        get_boards.cache_clear()


def get_board_settings(slug: str) -> BoardSettings:
    boards = get_boards()
    if slug not in boards:
        raise UnknownBoardError(slug)
    return boards[slug]
