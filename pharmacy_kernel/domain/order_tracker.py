"""
Order tracker -- pure transition rules for supplier orders.

Responsibility:
    Decides what an order's remaining quantity and status become when a
    purchase supplies (or un-supplies) packs against it.  The rules are
    pure; services apply the outcome to the ORM row they hold locked.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - NO_OVER_SUPPLY: remaining quantity never goes below zero.
    - ORDER_CLOSURE: ``assert_open`` rejects DELIVERED and CANCELLED orders.

Failure modes:
    - OverSupplyError when supplied > remaining.
    - OrderClosedError when the order is terminal.
"""

from dataclasses import dataclass

from pharmacy_kernel.domain.values import OrderStatus
from pharmacy_kernel.exceptions import OrderClosedError, OverSupplyError


@dataclass(frozen=True)
class OrderTransition:
    """Outcome of supplying packs against an order."""

    remaining: int
    status: OrderStatus


def apply_supply(
    previous_remaining: int,
    supplied: int,
    order_id: str = "",
) -> OrderTransition:
    """
    Deduct ``supplied`` packs from an order's remaining quantity.

    Zero remaining delivers the order; anything above zero keeps it ACTIVE.

    Raises:
        OverSupplyError: If ``supplied`` exceeds ``previous_remaining``.
    """
    remaining = previous_remaining - supplied
    if remaining < 0:
        raise OverSupplyError(order_id, previous_remaining, supplied)
    if remaining == 0:
        return OrderTransition(remaining=0, status=OrderStatus.DELIVERED)
    return OrderTransition(remaining=remaining, status=OrderStatus.ACTIVE)


def assert_open(order_id: str, status: OrderStatus) -> None:
    """Raise OrderClosedError if the order no longer accepts purchases."""
    if OrderStatus(status).is_closed:
        raise OrderClosedError(order_id, OrderStatus(status).value)
