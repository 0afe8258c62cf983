"""
Kernel Invariants Contract.

These invariants are structural law for the inventory kernel.  No
configuration set or policy toggle may switch them off; configuration only
chooses between behaviors that all preserve them.

This module exists solely to declare these invariants explicitly.  The
enforcement is distributed across the Medicine ledger mutators, the order
tracker, the reconcilers, and the orchestrator's transaction scope.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel.

    Each value names one structural guarantee that the kernel provides
    unconditionally.
    """

    NON_NEGATIVE_STOCK = "non_negative_stock"
    """pack_size_quantity and issue_unit_quantity are never negative.
    Enforced by Medicine.set_pack_size_quantity / set_issue_unit_quantity."""

    ORDER_CLOSURE = "order_closure"
    """DELIVERED and CANCELLED orders accept no purchase changes.
    Enforced by order_tracker.assert_open."""

    NO_OVER_SUPPLY = "no_over_supply"
    """An order's remaining quantity never goes below zero.  Enforced by
    order_tracker.apply_supply."""

    PRICE_MONOTONICITY = "price_monotonicity"
    """A purchase never lowers a medicine's selling prices.  Enforced by
    Medicine.set_selling_price."""

    ATOMIC_RECONCILIATION = "atomic_reconciliation"
    """A reconciliation commits completely or not at all.  Enforced by the
    orchestrator's session scope and flush-only services."""

    SOFT_DELETE = "soft_delete"
    """Entities are tombstoned, never physically deleted, and tombstoned
    rows are invisible to lookups.  Enforced by SoftDeleteMixin.live()
    at every query boundary."""

    LOCK_ORDERING = "lock_ordering"
    """Row locks are taken order before medicine, and medicines in
    ascending id order.  Enforced by the reconcilers."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "pharmacy_services",
    "pharmacy_config",
)
