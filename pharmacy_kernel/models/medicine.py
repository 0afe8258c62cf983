"""
Module: pharmacy_kernel.models.medicine
Responsibility: ORM persistence for the medicine catalog entry and its
    inventory ledger: stock in packs and issue units, purchase and selling
    prices, profits, and the expiry date of the batch on hand.
Architecture position: Kernel > Models.  May import from db/base.py,
    domain/values.py and exceptions.py.  MUST NOT import from services/,
    selectors/, or outer layers.

Invariants enforced:
    NON_NEGATIVE_STOCK -- set_pack_size_quantity / set_issue_unit_quantity
        reject negative values.
    PRICE_MONOTONICITY -- set_selling_price adopts a candidate only when it
        is strictly greater than the current price.

    The ledger mutators are plain assignments with range checks.  They never
    recompute one field from another; the purchase and sale reconcilers
    compute consistent values before calling them.  In particular
    ``issue_unit_quantity == pack_size_quantity * issue_unit_per_pack_size``
    is intended but not guaranteed: sales floor the pack count.

Failure modes:
    - NegativeStockError from the quantity setters.
    - InvalidPayloadError from set_issue_unit_per_pack_size when factor <= 0.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_kernel.db.base import SoftDeleteMixin, TrackedBase
from pharmacy_kernel.domain.values import DoseForm
from pharmacy_kernel.exceptions import InvalidPayloadError, NegativeStockError

_ZERO = Decimal("0")


class Medicine(SoftDeleteMixin, TrackedBase):
    """
    A catalog medicine together with its inventory ledger.

    Contract:
        The live combination (name, dose_form, strength) is unique; the
        MedicineService checks it because tombstoned rows may repeat it.
        Inventory fields start at zero and are only changed through the
        ledger mutators below.

    Guarantees:
        - pack_size_quantity >= 0 and issue_unit_quantity >= 0 at all times.
        - Selling prices never decrease through set_selling_price.
        - issue_unit_per_pack_size is 0 until the first purchase sets it.

    Non-goals:
        - Does not hold per-batch stock; the ledger tracks one expiry date,
          overwritten by each purchase.
    """

    __tablename__ = "medicines"

    __table_args__ = (
        Index("idx_medicine_identity", "name", "dose_form", "strength"),
        Index("idx_medicine_expiry", "expiry_date"),
    )

    # Catalog
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    dose_form: Mapped[DoseForm] = mapped_column(String(30), nullable=False)

    strength: Mapped[str] = mapped_column(String(100), nullable=False)

    therapeutic_class: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Pack size label, e.g. "10 x 10 tablets"
    pack_size: Mapped[str | None] = mapped_column(String(100), nullable=True)

    level_of_use: Mapped[int | None] = mapped_column(nullable=True)

    # Stock
    pack_size_quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    issue_unit_quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    issue_unit_per_pack_size: Mapped[int] = mapped_column(nullable=False, default=0)

    # Prices
    pack_size_purchase_price: Mapped[Decimal] = mapped_column(
        nullable=False, default=_ZERO
    )

    pack_size_selling_price: Mapped[Decimal] = mapped_column(
        nullable=False, default=_ZERO
    )

    issue_unit_purchase_price: Mapped[Decimal] = mapped_column(
        nullable=False, default=_ZERO
    )

    issue_unit_selling_price: Mapped[Decimal] = mapped_column(
        nullable=False, default=_ZERO
    )

    # Profits (selling - purchase); may be negative
    profit_per_pack_size: Mapped[Decimal] = mapped_column(
        nullable=False, default=_ZERO
    )

    profit_per_issue_unit: Mapped[Decimal] = mapped_column(
        nullable=False, default=_ZERO
    )

    # Expiry of the batch on hand; None before the first purchase
    expiry_date: Mapped[date | None] = mapped_column(nullable=True)

    def is_expired(self, today: date) -> bool:
        """True iff a batch has been received and expires on or before today."""
        return self.expiry_date is not None and self.expiry_date <= today

    # ------------------------------------------------------------------
    # Ledger mutators
    # ------------------------------------------------------------------

    def set_pack_size_quantity(self, quantity: int) -> None:
        if quantity < 0:
            raise NegativeStockError(str(self.id), "pack_size_quantity", quantity)
        self.pack_size_quantity = quantity

    def set_issue_unit_quantity(self, quantity: int) -> None:
        if quantity < 0:
            raise NegativeStockError(str(self.id), "issue_unit_quantity", quantity)
        self.issue_unit_quantity = quantity

    def set_issue_unit_per_pack_size(self, factor: int) -> None:
        if factor <= 0:
            raise InvalidPayloadError(
                "issue_unit_per_pack_size", factor, "must be greater than zero"
            )
        self.issue_unit_per_pack_size = factor

    def set_purchase_price(
        self, pack_size_price: Decimal, issue_unit_price: Decimal
    ) -> None:
        self.pack_size_purchase_price = pack_size_price
        self.issue_unit_purchase_price = issue_unit_price

    def set_selling_price(
        self, pack_size_candidate: Decimal, issue_unit_candidate: Decimal
    ) -> None:
        """Adopt each candidate only if it beats the current price.

        The pack-size and issue-unit checks are independent: one may be
        adopted while the other is kept.
        """
        if pack_size_candidate > (self.pack_size_selling_price or _ZERO):
            self.pack_size_selling_price = pack_size_candidate
        if issue_unit_candidate > (self.issue_unit_selling_price or _ZERO):
            self.issue_unit_selling_price = issue_unit_candidate

    def set_expiry_date(self, expiry_date: date | None) -> None:
        self.expiry_date = expiry_date

    def set_profit_margins(
        self, per_pack_size: Decimal, per_issue_unit: Decimal
    ) -> None:
        self.profit_per_pack_size = per_pack_size
        self.profit_per_issue_unit = per_issue_unit

    def __repr__(self) -> str:
        return (
            f"<Medicine {self.name} {self.dose_form} {self.strength}: "
            f"{self.pack_size_quantity} packs / {self.issue_unit_quantity} units>"
        )
