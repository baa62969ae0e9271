"""
ecomap_server.domain.pagination

Paginated list requests and responses.
"""

from __future__ import annotations

import enum
from collections.abc import Collection
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from ecomap_server.domain.errors import FilterValueInvalidError

T = TypeVar("T")

LIMIT_MIN = 1
LIMIT_MAX = 100
OFFSET_MIN = 0

FILTER_LIMIT = "limit"
FILTER_OFFSET = "offset"
FILTER_SORT = "sort"
FILTER_ORDER = "order"


class Order(enum.StrEnum):
    asc = "asc"
    desc = "desc"


@dataclass(frozen=True, slots=True)
class PageRequest:
    limit: int = LIMIT_MAX
    offset: int = 0
    order: str = Order.asc.value
    sort: str | None = None

    def validate(self, sortable: Collection[str]) -> None:
        """
        Raise FilterValueInvalidError for the first invalid filter value.
        `sortable` lists the sort fields accepted for the listed entity.
        """

        if self.sort is not None and self.sort not in sortable:
            raise FilterValueInvalidError(FILTER_SORT)
        if self.order not in {o.value for o in Order}:
            raise FilterValueInvalidError(FILTER_ORDER)
        if not LIMIT_MIN <= self.limit <= LIMIT_MAX:
            raise FilterValueInvalidError(FILTER_LIMIT)
        if self.offset < OFFSET_MIN:
            raise FilterValueInvalidError(FILTER_OFFSET)


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    total: int
    results: list[T] = field(default_factory=list)
