from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, Mapping, Optional, Sequence, TypeVar

from ..core.constants import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT
from .validators import as_int, optional_text

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    search: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "PageRequest":
        page = as_int(args.get("page")) or DEFAULT_PAGE
        limit = as_int(args.get("limit")) or DEFAULT_LIMIT
        return cls(
            page=max(page, 1),
            limit=min(max(limit, 1), MAX_LIMIT),
            search=optional_text(args.get("search")),
        )


@dataclass(frozen=True)
class Page(Generic[T]):
    items: Sequence[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def meta(self) -> dict:
        return {"page": self.page, "limit": self.limit, "total": self.total, "totalPages": self.total_pages}


def like(term: str) -> str:
    """Wrap a search term for a SQL LIKE match."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
