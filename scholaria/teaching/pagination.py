"""
Offset pagination and search helpers shared by repositories and routes.

Every list endpoint reports the same pagination shape:
`{"page", "limit", "total", "pages"}` with `pages = ceil(total / limit)`.
A page past the end yields an empty item list, never an error.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, List, Sequence, TypeVar

T = TypeVar("T")
U = TypeVar("U")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _coerce_positive(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return max(1, number)


@dataclass(frozen=True)
class PageRequest:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_query(cls, page: Any = None, limit: Any = None) -> "PageRequest":
        """Coerce raw query values into positive integers (limit capped at 100)."""
        return cls(
            page=_coerce_positive(page, DEFAULT_PAGE),
            limit=min(MAX_LIMIT, _coerce_positive(limit, DEFAULT_LIMIT)),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page(Generic[T]):
    items: List[T]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return total_pages(self.total, self.limit)

    def meta(self) -> dict:
        return {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages}

    def map(self, fn: Callable[[T], U]) -> "Page[U]":
        return Page(items=[fn(item) for item in self.items], page=self.page, limit=self.limit, total=self.total)


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


def paginate_sequence(items: Sequence[T], req: PageRequest) -> Page[T]:
    """Slice an already filtered and sorted sequence (in-memory repository)."""
    window = list(items[req.offset: req.offset + req.limit])
    return Page(items=window, page=req.page, limit=req.limit, total=len(items))


def normalize_search(term: str | None) -> str | None:
    cleaned = (term or "").strip()
    return cleaned or None


def matches_search(term: str | None, values: Iterable[str | None]) -> bool:
    """Case-insensitive substring match over any of `values`."""
    if not term:
        return True
    needle = term.casefold()
    return any(needle in (v or "").casefold() for v in values)


def search_filter(term: str | None, fields: Sequence[str]) -> dict:
    """Build a Mongo `$or` filter of case-insensitive literal substring matches."""
    if not term:
        return {}
    pattern = re.escape(term)
    return {"$or": [{name: {"$regex": pattern, "$options": "i"}} for name in fields]}


__all__ = [
    "PageRequest",
    "Page",
    "total_pages",
    "paginate_sequence",
    "normalize_search",
    "matches_search",
    "search_filter",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
]
