"""
Résultat paginé et bornage des paramètres de pagination.

Toutes les valeurs dérivées (`total_pages`, `has_next`, `has_prev`) sont calculées uniquement à
partir de `total`, `page` et `limit`:
- total_pages = ceil(total / limit)
- has_next = page * limit < total
- has_prev = page > 1
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")

DEFAULT_PAGE = 1


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def clamp_page(page: Any) -> int:
    """Page >= 1; toute valeur illisible retombe sur 1."""
    parsed = _to_int(page)
    return parsed if parsed and parsed >= 1 else DEFAULT_PAGE


def clamp_limit(limit: Any, default: int, maximum: int) -> int:
    """Limite bornée côté serveur: défaut si illisible ou < 1, plafonnée à `maximum`."""
    parsed = _to_int(limit)
    if parsed is None or parsed < 1:
        return min(default, maximum)
    return min(parsed, maximum)


@dataclass(frozen=True)
class Pagination:
    """Métadonnées de pagination."""

    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


@dataclass
class Page(Generic[T]):
    """Une page de résultats et ses métadonnées."""

    data: list[T]
    pagination: Pagination
    extra: dict[str, Any] = field(default_factory=dict)

    def map(self, fn: Callable[[T], U]) -> Page[U]:
        """Projette chaque élément (ex: entité -> DTO) en conservant la pagination."""
        return Page([fn(item) for item in self.data], self.pagination, dict(self.extra))

    def to_dict(self) -> dict[str, Any]:
        """Forme de réponse liste: `{data, pagination}`."""
        return {"data": list(self.data), "pagination": self.pagination.to_dict()}
