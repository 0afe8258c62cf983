"""Tests for the pure order transition rules."""

import pytest

from pharmacy_kernel.domain.order_tracker import OrderTransition, apply_supply, assert_open
from pharmacy_kernel.domain.values import OrderStatus
from pharmacy_kernel.exceptions import (
    ForbiddenOperationError,
    OrderClosedError,
    OverSupplyError,
)


class TestApplySupply:

    def test_partial_supply_activates_order(self):
        assert apply_supply(50, 20) == OrderTransition(remaining=30, status=OrderStatus.ACTIVE)

    def test_exact_supply_delivers_order(self):
        assert apply_supply(30, 30) == OrderTransition(remaining=0, status=OrderStatus.DELIVERED)

    def test_over_supply_rejected(self):
        with pytest.raises(OverSupplyError) as exc_info:
            apply_supply(30, 31, "order-1")

        assert exc_info.value.remaining == 30
        assert exc_info.value.supplied == 31
        assert exc_info.value.order_id == "order-1"
        assert exc_info.value.code == "OVER_SUPPLY"

    def test_over_supply_is_forbidden_operation(self):
        with pytest.raises(ForbiddenOperationError):
            apply_supply(0, 1)


class TestAssertOpen:

    @pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.ACTIVE])
    def test_open_statuses_pass(self, status):
        assert_open("order-1", status)

    @pytest.mark.parametrize("status", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    def test_closed_statuses_rejected(self, status):
        with pytest.raises(OrderClosedError) as exc_info:
            assert_open("order-1", status)

        assert exc_info.value.status == status.value

    def test_accepts_stored_string_status(self):
        with pytest.raises(OrderClosedError):
            assert_open("order-1", "delivered")


class TestOrderStatus:

    def test_terminal_statuses(self):
        closed = {s for s in OrderStatus if s.is_closed}
        assert closed == {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
