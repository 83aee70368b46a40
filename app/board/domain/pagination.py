import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from app.board.domain.records import MessageRecord


class OutOfRangePolicy(str, Enum):
    """O que fazer quando a navegação pede uma página inexistente."""

    IGNORE = "ignore"
    CLAMP = "clamp"


class RefreshPolicy(str, Enum):
    """O que fazer com a página atual quando um snapshot reduz o total de páginas."""

    CLAMP = "clamp"
    KEEP = "keep"


@dataclass(frozen=True)
class Page:
    records: tuple[MessageRecord, ...]
    number: int
    total_pages: int
    page_size: int

    @property
    def has_previous(self) -> bool:
        return self.number > 1

    @property
    def has_next(self) -> bool:
        return self.number < self.total_pages

    @property
    def page_numbers(self) -> list[int]:
        return list(range(1, self.total_pages + 1))


def count_pages(length: int, page_size: int) -> int:
    if page_size < 1:
        raise ValueError("page_size deve ser maior que zero")
    return math.ceil(length / page_size)


def clamp_page(page: int, total_pages: int) -> int:
    """Traz `page` para [1, total_pages]. Com zero páginas o resultado é 1."""
    return min(max(page, 1), max(total_pages, 1))


def paginate(feed: Sequence[MessageRecord], page_size: int, page: int) -> Page:
    """
    Projeta o feed (já ordenado) em uma página de tamanho fixo.

    Args:
        feed: Registros em ordem decrescente de criação
        page_size: Quantidade de registros por página
        page: Página solicitada (1-indexada), ajustada ao intervalo válido

    Returns:
        Page: Fatia visível, número efetivo e total de páginas
    """
    total_pages = count_pages(len(feed), page_size)
    number = clamp_page(page, total_pages)
    start = (number - 1) * page_size
    return Page(
        records=tuple(feed[start : start + page_size]),
        number=number,
        total_pages=total_pages,
        page_size=page_size,
    )


class PageState:
    """
    Estado de navegação de um mural: página atual e tamanho fixo.

    O total de páginas vem de fora (`refresh`) porque o feed é substituído
    inteiro a cada snapshot.
    """

    def __init__(
        self,
        page_size: int,
        out_of_range: OutOfRangePolicy = OutOfRangePolicy.IGNORE,
        on_refresh: RefreshPolicy = RefreshPolicy.CLAMP,
    ):
        if page_size < 1:
            raise ValueError("page_size deve ser maior que zero")
        self.page_size = page_size
        self.out_of_range = out_of_range
        self.on_refresh = on_refresh
        self.current = 1
        self.total_pages = 0

    def refresh(self, feed_length: int) -> None:
        self.total_pages = count_pages(feed_length, self.page_size)
        if self.on_refresh == RefreshPolicy.CLAMP:
            self.current = clamp_page(self.current, self.total_pages)

    def go_to(self, page: int) -> bool:
        """
        Vai para `page`. Retorna True se a página atual mudou.

        Fora de [1, total_pages] a política decide: IGNORE não altera nada,
        CLAMP leva para a página válida mais próxima.
        """
        if 1 <= page <= self.total_pages:
            target = page
        elif self.out_of_range == OutOfRangePolicy.CLAMP:
            target = clamp_page(page, self.total_pages)
        else:
            return False

        changed = target != self.current
        self.current = target
        return changed

    def next(self) -> bool:
        if self.current >= self.total_pages:
            return False
        self.current += 1
        return True

    def previous(self) -> bool:
        if self.current <= 1:
            return False
        if self.is_stale():
            self.current = max(self.total_pages, 1)
        else:
            self.current -= 1
        return True

    def is_stale(self) -> bool:
        return self.current > max(self.total_pages, 1)

    def page_of(self, feed: Sequence[MessageRecord]) -> Page:
        """
        Fatia visível para a página atual.

        Com a página obsoleta (política KEEP) a fatia fica vazia até o
        usuário navegar, mas o número reportado continua o atual.
        """
        if self.is_stale():
            return Page(records=(), number=self.current, total_pages=self.total_pages, page_size=self.page_size)
        return paginate(feed, self.page_size, self.current)
