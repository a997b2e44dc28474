"""
One-based pagination over an arbitrary select.

Note: GenericRepository.get_page counts pages from zero, this helper counts
from one. Both contracts are used by different endpoints and are kept as they
are; callers must pick the matching convention.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


@dataclass
class PagedResult(Generic[T]):
    """A page of items plus the totals needed to render a pager."""

    items: List[T] = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 10

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


# PUBLIC_INTERFACE
async def paginate(session: AsyncSession, statement: Select, page: int, page_size: int) -> PagedResult:
    """
    Count the rows of `statement` and return page `page` (one-based).

    Raises:
        ValueError: page <= 0 or page_size <= 0
    """
    if page <= 0:
        raise ValueError("page must be greater than zero")
    if page_size <= 0:
        raise ValueError("page_size must be greater than zero")

    count_stmt = select(func.count()).select_from(statement.order_by(None).subquery())
    total = int((await session.execute(count_stmt)).scalar() or 0)

    result = await session.execute(statement.offset((page - 1) * page_size).limit(page_size))
    return PagedResult(items=list(result.scalars()), total_count=total, page=page, page_size=page_size)
