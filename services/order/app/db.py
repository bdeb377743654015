"""
Order Service — persistent store schema and session factory

A single `orders` table. `version` backs the conditional per-order write:
every status change is `UPDATE ... WHERE id = :id AND version = :expected`,
so two concurrent updates on the same order cannot both succeed.

The total is stored as its exact decimal string, like the item amounts;
`total_amount` is a numeric copy used only for ordering.
"""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

metadata = MetaData()

orders_table = Table(
    "orders",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("owner_id", String(64), nullable=False, index=True),
    Column("items", JSON, nullable=False),
    Column("total", String, nullable=False),
    Column("total_amount", Numeric(), nullable=False),
    Column("status", String(20), nullable=False, index=True),
    Column("version", Integer, nullable=False, default=1),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


def create_session_factory(database_url: str) -> tuple[AsyncEngine, sessionmaker]:
    engine = create_async_engine(database_url, echo=False)
    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine, async_session


async def init_db(engine: AsyncEngine) -> None:
    """Create the schema if it does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
