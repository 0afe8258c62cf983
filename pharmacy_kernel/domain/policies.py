"""
Policies -- stock-handling choices the kernel accepts from configuration.

Responsibility:
    Plain frozen dataclasses and enums that select between behaviors.  The
    outer configuration layer builds these; the kernel never reads
    configuration itself.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from dataclasses import dataclass
from enum import Enum


class RollbackFactor(str, Enum):
    """Which issue-unit factor undoes a purchase's issue units on update.

    MEDICINE_CURRENT uses the medicine's live factor, which a later purchase
    may have overwritten.  PURCHASE_RECORDED uses the factor stored on the
    purchase being edited.
    """

    MEDICINE_CURRENT = "medicine_current"
    PURCHASE_RECORDED = "purchase_recorded"


class PurchaseRemovalPolicy(str, Enum):
    """What removing a purchase does beyond tombstoning it.

    TOMBSTONE_ONLY leaves the medicine ledger and the order untouched.
    REVERSE_STOCK undoes the purchase's order deduction and stock addition;
    it is only permitted while the order is still open.
    """

    TOMBSTONE_ONLY = "tombstone_only"
    REVERSE_STOCK = "reverse_stock"


@dataclass(frozen=True)
class StockPolicy:
    """
    Stock rules applied by the purchase and sale reconcilers.

    Attributes:
        min_pack_size_stock_for_sale: A sale is refused when the medicine
            holds fewer packs than this.
        rollback_factor_source: Factor used when an edited purchase is
            rolled back.
        purchase_removal: Effect of removing a purchase.
        restore_stock_on_sale_removal: Whether removing a sale returns its
            issue units to stock.
    """

    min_pack_size_stock_for_sale: int = 2
    rollback_factor_source: RollbackFactor = RollbackFactor.MEDICINE_CURRENT
    purchase_removal: PurchaseRemovalPolicy = PurchaseRemovalPolicy.TOMBSTONE_ONLY
    restore_stock_on_sale_removal: bool = True

    def __post_init__(self) -> None:
        if self.min_pack_size_stock_for_sale < 0:
            raise ValueError(
                "min_pack_size_stock_for_sale must be >= 0, "
                f"got {self.min_pack_size_stock_for_sale}"
            )
