"""
Order Service — store adapter

Read and write intents against the `orders` table. The repository never
commits: the calling use case owns the transaction.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from .aggregate import Order, OrderItem, OrderStatus
from .db import orders_table
from .errors import ConcurrentModification


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def order_from_row(row: Row) -> Order:
    return Order(
        id=row.id,
        owner_id=row.owner_id,
        items=[
            OrderItem(
                name=item["name"],
                quantity=Decimal(item["quantity"]),
                unit_price=Decimal(item["unit_price"]),
            )
            for item in row.items
        ],
        total=Decimal(row.total),
        status=OrderStatus(row.status),
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
        version=row.version,
    )


class OrderRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, order_id: str) -> Order | None:
        result = await self.session.execute(
            select(orders_table).where(orders_table.c.id == order_id)
        )
        row = result.fetchone()
        if not row:
            return None
        return order_from_row(row)

    async def add(self, order: Order) -> None:
        await self.session.execute(
            insert(orders_table).values(
                id=order.id,
                owner_id=order.owner_id,
                items=[item.to_dict() for item in order.items],
                total=str(order.total),
                total_amount=order.total,
                status=order.status.value,
                version=order.version,
                created_at=order.created_at,
                updated_at=order.updated_at,
            )
        )

    async def save_status(self, order: Order, expected_version: int) -> None:
        """
        Persist a status change if nobody else changed the order first.

        Raises:
            ConcurrentModification: the stored version is no longer
                `expected_version`
        """
        result = await self.session.execute(
            update(orders_table)
            .where(
                orders_table.c.id == order.id,
                orders_table.c.version == expected_version,
            )
            .values(
                status=order.status.value,
                updated_at=order.updated_at,
                version=expected_version + 1,
            )
        )
        if result.rowcount != 1:
            raise ConcurrentModification()
        order.version = expected_version + 1
