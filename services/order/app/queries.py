"""
Order Service — query engine (read side)

Lists a caller's orders with an optional status filter, an allow-listed
sort field and page/size pagination. The count and the page slice are two
independent reads that run concurrently on separate sessions, so the count
is only eventually consistent with the slice under concurrent writes.
"""

import asyncio
import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from .aggregate import Order
from .db import orders_table
from .store import order_from_row

SORTABLE_FIELDS = frozenset({"created_at", "updated_at", "total", "status"})
DEFAULT_SORT_FIELD = "created_at"
# the exact total is a string; order by its numeric copy
_SORT_COLUMNS = {"total": "total_amount"}
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


@dataclass(frozen=True)
class OrderFilter:
    status: str | None = None


@dataclass(frozen=True)
class Sort:
    field: str = DEFAULT_SORT_FIELD
    direction: str = "desc"

    @classmethod
    def parse(cls, field: str | None, direction: str | None) -> "Sort":
        """Unknown fields fall back to created_at; anything but "asc" is desc."""
        return cls(
            field=field if field in SORTABLE_FIELDS else DEFAULT_SORT_FIELD,
            direction="asc" if (direction or "").lower() == "asc" else "desc",
        )


@dataclass(frozen=True)
class Page:
    number: int = DEFAULT_PAGE
    size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def parse(cls, number: Any, size: Any) -> "Page":
        return cls(
            number=_positive_int(number, DEFAULT_PAGE),
            size=_positive_int(size, DEFAULT_PAGE_SIZE),
        )

    @property
    def offset(self) -> int:
        return (self.number - 1) * self.size


@dataclass(frozen=True)
class Pagination:
    page: int
    size: int
    total_count: int
    total_pages: int

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "limit": self.size,
            "total": self.total_count,
            "pages": self.total_pages,
        }


async def list_orders(
    async_session: sessionmaker,
    owner_id: str,
    order_filter: OrderFilter | None = None,
    sort: Sort | None = None,
    page: Page | None = None,
) -> tuple[list[Order], Pagination]:
    """
    One page of `owner_id`'s orders plus the pagination summary.

    1. Build the shared WHERE clause (owner, optional status)
    2. Run the slice and the count concurrently
    3. total_pages = ceil(total_count / size)
    """
    order_filter = order_filter or OrderFilter()
    sort = sort or Sort()
    page = page or Page()

    conditions = [orders_table.c.owner_id == owner_id]
    if order_filter.status:
        conditions.append(orders_table.c.status == order_filter.status)

    column = orders_table.c[_SORT_COLUMNS.get(sort.field, sort.field)]
    if sort.direction == "asc":
        ordering = (column.asc(), orders_table.c.id.asc())
    else:
        ordering = (column.desc(), orders_table.c.id.desc())

    rows_stmt = (
        select(orders_table)
        .where(*conditions)
        .order_by(*ordering)
        .limit(page.size)
        .offset(page.offset)
    )
    count_stmt = select(func.count()).select_from(orders_table).where(*conditions)

    async def fetch_rows() -> list[Order]:
        async with async_session() as session:
            result = await session.execute(rows_stmt)
            return [order_from_row(row) for row in result.fetchall()]

    async def fetch_count() -> int:
        async with async_session() as session:
            result = await session.execute(count_stmt)
            return int(result.scalar_one())

    orders, total_count = await asyncio.gather(fetch_rows(), fetch_count())

    return orders, Pagination(
        page=page.number,
        size=page.size,
        total_count=total_count,
        total_pages=math.ceil(total_count / page.size),
    )
