"""
Order Service — use cases

Composes the pieces for each request, after the Token Verifier has
produced the caller's claims:

    create        validate items → persist → publish order.created
    get           load → NotFound? → authorize → return
    list          scoped to the caller → query engine
    update status load → NotFound? → authorize → transition → persist → publish
    cancel        load → NotFound? → authorize → cancel → persist → publish

Events are published only after the store write has committed. A failing
event handler never undoes the write.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from sqlalchemy.orm import sessionmaker

from . import queries
from .aggregate import Order
from .auth import Claims
from .event_bus import EventBus
from .events import ORDER_CREATED, ORDER_STATUS_UPDATED, OrderCreated, OrderStatusUpdated
from .errors import NotFound
from .policy import Action, ensure_allowed
from .store import OrderRepository

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, async_session: sessionmaker, event_bus: EventBus) -> None:
        self.async_session = async_session
        self.event_bus = event_bus

    async def create_order(
        self, claims: Claims, items: Iterable[Mapping[str, Any]]
    ) -> Order:
        order = Order.create(claims.user_id, items)

        async with self.async_session() as session:
            await OrderRepository(session).add(order)
            await session.commit()

        logger.info("Order %s created for user %s", order.id, order.owner_id)
        await self.event_bus.publish(
            ORDER_CREATED, OrderCreated.from_order(order).model_dump(mode="json")
        )
        return order

    async def get_order(self, claims: Claims, order_id: str) -> Order:
        async with self.async_session() as session:
            order = await OrderRepository(session).get(order_id)
        if order is None:
            raise NotFound()
        ensure_allowed(claims, order.owner_id, Action.READ)
        return order

    async def list_orders(
        self,
        claims: Claims,
        order_filter: queries.OrderFilter | None = None,
        sort: queries.Sort | None = None,
        page: queries.Page | None = None,
    ) -> tuple[list[Order], queries.Pagination]:
        # TODO: widen the scope for admins once an all-orders listing is needed
        return await queries.list_orders(
            self.async_session, claims.user_id, order_filter, sort, page
        )

    async def update_status(
        self, claims: Claims, order_id: str, requested_status: Any
    ) -> Order:
        return await self._transition(
            claims,
            order_id,
            Action.UPDATE_STATUS,
            lambda order: order.update_status(requested_status),
        )

    async def cancel_order(self, claims: Claims, order_id: str) -> Order:
        return await self._transition(claims, order_id, Action.CANCEL, Order.cancel)

    async def _transition(
        self,
        claims: Claims,
        order_id: str,
        action: Action,
        mutate: Callable[[Order], Order],
    ) -> Order:
        async with self.async_session() as session:
            repo = OrderRepository(session)
            order = await repo.get(order_id)
            if order is None:
                raise NotFound()
            ensure_allowed(claims, order.owner_id, action)

            previous_status = order.status
            expected_version = order.version
            mutate(order)
            await repo.save_status(order, expected_version)
            await session.commit()

        logger.info(
            "Order %s status %s -> %s by user %s",
            order.id,
            previous_status.value,
            order.status.value,
            claims.user_id,
        )
        await self.event_bus.publish(
            ORDER_STATUS_UPDATED,
            OrderStatusUpdated.from_order(order, previous_status).model_dump(mode="json"),
        )
        return order
