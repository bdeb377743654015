"""
Order Service — domain event definitions

Events describe something that already happened, so they are named in the
past tense and never change once published. Cancellation is not a separate
event: it is a status change whose new_status is "cancelled".
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from .aggregate import Order, OrderStatus

ORDER_CREATED = "order.created"
ORDER_STATUS_UPDATED = "order.status_updated"


class EventItem(BaseModel):
    name: str
    quantity: Decimal
    unit_price: Decimal


class OrderCreated(BaseModel):
    """An order was placed"""
    order_id: str
    owner_id: str
    items: list[EventItem]
    total: Decimal
    status: OrderStatus
    timestamp: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderCreated":
        return cls(
            order_id=order.id,
            owner_id=order.owner_id,
            items=[
                EventItem(name=i.name, quantity=i.quantity, unit_price=i.unit_price)
                for i in order.items
            ],
            total=order.total,
            status=order.status,
            timestamp=order.created_at,
        )


class OrderStatusUpdated(BaseModel):
    """An order moved from one status to another"""
    order_id: str
    owner_id: str
    previous_status: OrderStatus
    new_status: OrderStatus
    timestamp: datetime

    @classmethod
    def from_order(cls, order: Order, previous_status: OrderStatus) -> "OrderStatusUpdated":
        return cls(
            order_id=order.id,
            owner_id=order.owner_id,
            previous_status=previous_status,
            new_status=order.status,
            timestamp=order.updated_at,
        )
