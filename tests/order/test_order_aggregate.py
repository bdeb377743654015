"""Tests for Order creation, totals and the status state machine."""

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st
from order_service.aggregate import Order, OrderStatus
from order_service.errors import InvalidTransition, ValidationError

from tests.helpers import BRICK_AND_CEMENT, OWNER_ID


def _make_order(items=None, status=None):
    order = Order.create(OWNER_ID, items or BRICK_AND_CEMENT)
    if status is not None:
        order.status = status
    return order


class TestOrderCreation:
    def test_create_sets_owner_and_status(self):
        order = _make_order()
        assert order.owner_id == OWNER_ID
        assert order.status == OrderStatus.CREATED

    def test_create_computes_exact_total(self):
        order = _make_order()
        assert order.total == Decimal("12550")

    def test_create_generates_distinct_ids(self):
        assert _make_order().id != _make_order().id

    def test_create_sets_matching_timestamps(self):
        order = _make_order()
        assert order.created_at == order.updated_at
        assert order.created_at.tzinfo is not None

    def test_float_prices_do_not_drift(self):
        order = _make_order([{"name": "Nail", "quantity": 3, "unit_price": 0.1}])
        assert order.total == Decimal("0.3")

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError, match="At least one item"):
            Order.create(OWNER_ID, [])

    def test_missing_items_rejected(self):
        with pytest.raises(ValidationError):
            Order.create(OWNER_ID, None)

    @pytest.mark.parametrize(
        "item, message",
        [
            ({"name": "", "quantity": 1, "unit_price": 1}, "name"),
            ({"name": "   ", "quantity": 1, "unit_price": 1}, "name"),
            ({"name": "Test", "quantity": -1, "unit_price": 100}, "Quantity"),
            ({"name": "Test", "quantity": 0, "unit_price": 100}, "Quantity"),
            ({"name": "Test", "quantity": 1, "unit_price": 0}, "Price"),
            ({"name": "Test", "quantity": 1, "unit_price": -5}, "Price"),
            ({"name": "Test", "quantity": "many", "unit_price": 5}, "Quantity"),
            ({"name": "Test", "quantity": True, "unit_price": 5}, "Quantity"),
            ({"name": "Test", "quantity": 1, "unit_price": float("nan")}, "Price"),
        ],
    )
    def test_invalid_item_rejected(self, item, message):
        with pytest.raises(ValidationError, match=message):
            Order.create(OWNER_ID, [item])

    @given(
        st.lists(
            st.tuples(
                st.decimals(min_value=Decimal("0.01"), max_value=Decimal("10000"), places=2),
                st.decimals(min_value=Decimal("0.01"), max_value=Decimal("100000"), places=2),
            ),
            min_size=1,
            max_size=20,
        )
    )
    def test_total_is_exact_sum_of_lines(self, lines):
        items = [
            {"name": f"item-{i}", "quantity": quantity, "unit_price": price}
            for i, (quantity, price) in enumerate(lines)
        ]
        order = Order.create(OWNER_ID, items)
        assert order.total == sum((q * p for q, p in lines), Decimal("0"))


class TestStatusTransitions:
    @pytest.mark.parametrize(
        "current, target",
        [
            (OrderStatus.CREATED, "in_progress"),
            (OrderStatus.CREATED, "cancelled"),
            (OrderStatus.IN_PROGRESS, "completed"),
            (OrderStatus.IN_PROGRESS, "cancelled"),
        ],
    )
    def test_allowed_edges(self, current, target):
        order = _make_order(status=current)
        order.update_status(target)
        assert order.status == OrderStatus(target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (OrderStatus.CREATED, "completed"),
            (OrderStatus.CREATED, "created"),
            (OrderStatus.IN_PROGRESS, "created"),
            (OrderStatus.COMPLETED, "created"),
            (OrderStatus.COMPLETED, "in_progress"),
            (OrderStatus.CANCELLED, "in_progress"),
            (OrderStatus.CANCELLED, "completed"),
        ],
    )
    def test_illegal_edges_rejected(self, current, target):
        order = _make_order(status=current)
        with pytest.raises(InvalidTransition):
            order.update_status(target)
        assert order.status == current

    def test_unknown_status_is_a_validation_error(self):
        order = _make_order()
        with pytest.raises(ValidationError, match="Invalid status"):
            order.update_status("shipped")

    def test_update_refreshes_updated_at(self):
        order = _make_order()
        before = order.updated_at
        order.update_status("in_progress")
        assert order.updated_at >= before
        assert order.created_at == before


class TestCancellation:
    @pytest.mark.parametrize("current", [OrderStatus.CREATED, OrderStatus.IN_PROGRESS])
    def test_cancel_from_open_states(self, current):
        order = _make_order(status=current)
        order.cancel()
        assert order.status == OrderStatus.CANCELLED

    @pytest.mark.parametrize("current", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
    def test_cancel_terminal_order_rejected(self, current):
        order = _make_order(status=current)
        with pytest.raises(InvalidTransition):
            order.cancel()
        assert order.status == current

    def test_terminal_flag(self):
        assert _make_order(status=OrderStatus.COMPLETED).is_terminal
        assert not _make_order().is_terminal
