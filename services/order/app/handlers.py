"""
Order Service — default domain event handlers

Registered once at startup. They only log today; downstream consumers
(notifications, analytics) subscribe through the broker instead.
"""

import logging

from .event_bus import Event, EventBus
from .events import ORDER_CREATED, ORDER_STATUS_UPDATED

logger = logging.getLogger(__name__)


def handle_order_created(event: Event) -> None:
    data = event.payload
    logger.info(
        "Order %s created by %s: %d item(s), total %s",
        data["order_id"],
        data["owner_id"],
        len(data["items"]),
        data["total"],
    )


def handle_order_status_updated(event: Event) -> None:
    data = event.payload
    logger.info(
        "Order %s status changed: %s -> %s",
        data["order_id"],
        data["previous_status"],
        data["new_status"],
    )


DEFAULT_HANDLERS = (
    (ORDER_CREATED, handle_order_created),
    (ORDER_STATUS_UPDATED, handle_order_status_updated),
)


def register_handlers(bus: EventBus) -> None:
    """Subscribe the default handlers; a bus shared across app starts gets them once."""
    for name, handler in DEFAULT_HANDLERS:
        if handler not in bus.subscribers(name):
            bus.subscribe(name, handler)
