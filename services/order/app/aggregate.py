"""
Order Service — Order entity and status state machine

State transitions:
    created ──▶ in_progress ──▶ completed
       │             │
       └──────┬──────┘
              ▼
          cancelled

completed and cancelled are terminal: nothing leaves them.

Money and quantities are Decimal end to end so that the total is an
exact sum of quantity × unit_price with no float drift.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import uuid4

from .errors import InvalidTransition, ValidationError


class OrderStatus(str, Enum):
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


_VALID_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.CREATED: {OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED},
    OrderStatus.IN_PROGRESS: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


def parse_status(value: Any) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError("Invalid status") from None


def _to_decimal(value: Any, field_name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        # str() first so that floats keep their shortest repr (50.5, not 50.49999...)
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field_name} must be a number") from None
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a number")
    return amount


@dataclass(frozen=True)
class OrderItem:
    name: str
    quantity: Decimal
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price

    @classmethod
    def parse(cls, data: Mapping[str, Any]) -> "OrderItem":
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Item name is required")

        quantity = _to_decimal(data.get("quantity"), "Quantity")
        if quantity <= 0:
            raise ValidationError("Quantity must be positive")

        unit_price = _to_decimal(data.get("unit_price"), "Price")
        if unit_price <= 0:
            raise ValidationError("Price must be positive")

        return cls(name=name, quantity=quantity, unit_price=unit_price)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
        }


class Order:
    """
    An order owned by the user who created it.

    Mutations change the instance in place and refresh updated_at; the
    caller persists the result and publishes the matching domain event.
    """

    def __init__(
        self,
        id: str,
        owner_id: str,
        items: list[OrderItem],
        total: Decimal,
        status: OrderStatus,
        created_at: datetime,
        updated_at: datetime,
        version: int = 1,
    ) -> None:
        self.id = id
        self.owner_id = owner_id
        self.items = items
        self.total = total
        self.status = status
        self.created_at = created_at
        self.updated_at = updated_at
        self.version = version

    @classmethod
    def create(cls, owner_id: str, items: Iterable[Mapping[str, Any]]) -> "Order":
        """
        Build a new order in the `created` status.

        Raises:
            ValidationError: no items, or an item with an empty name or a
                non-positive quantity/price
        """
        parsed = [OrderItem.parse(item) for item in items or []]
        if not parsed:
            raise ValidationError("At least one item is required")

        now = datetime.now(timezone.utc)
        return cls(
            id=str(uuid4()),
            owner_id=owner_id,
            items=parsed,
            total=sum((item.line_total for item in parsed), Decimal("0")),
            status=OrderStatus.CREATED,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition_to(self, status: OrderStatus) -> bool:
        return status in _VALID_TRANSITIONS[self.status]

    def update_status(self, requested_status: Any) -> "Order":
        """
        Move the order to `requested_status`.

        Raises:
            ValidationError: not one of the four recognized statuses
            InvalidTransition: the edge is not in the transition table
        """
        target = parse_status(requested_status)
        if not self.can_transition_to(target):
            raise InvalidTransition(
                f"Cannot change order status from {self.status.value} to {target.value}"
            )
        self.status = target
        self.updated_at = datetime.now(timezone.utc)
        return self

    def cancel(self) -> "Order":
        if self.is_terminal:
            raise InvalidTransition(
                f"Cannot cancel an order that is already {self.status.value}"
            )
        self.status = OrderStatus.CANCELLED
        self.updated_at = datetime.now(timezone.utc)
        return self

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "items": [item.to_dict() for item in self.items],
            "total": str(self.total),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
