"""
Result Assembler: pagination and result metadata.

Pagination ownership:
  - no post-filter          -> the store paginates (offset/limit), total = store count
  - price/date post-filter  -> full candidate set is filtered, then sliced here;
                               total = post-filter count, total_results = store count
  - nearby                  -> always sliced here after distance sort
total_pages is always derived from total.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import ceil
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    def __post_init__(self):
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.limit < 1:
            raise ValueError("limit must be >= 1")

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def take(self) -> int:
        return self.limit


def total_pages(total: int, limit: int) -> int:
    return ceil(total / limit) if total > 0 else 0


def paginate(items: Sequence[T], page: PageRequest) -> List[T]:
    """Slice an already ordered, already filtered sequence."""
    return list(items[page.skip:page.skip + page.take])


def build_meta(
    total: int,
    page: PageRequest,
    total_results: Optional[int] = None,
    **extra,
) -> dict:
    meta = {
        "total": total,
        "page": page.page,
        "limit": page.limit,
        "total_pages": total_pages(total, page.limit),
    }
    if total_results is not None:
        meta["total_results"] = total_results
    meta.update({k: v for k, v in extra.items() if v is not None})
    return meta
