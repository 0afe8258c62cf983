"""
Module: pharmacy_kernel.models.purchase
Responsibility: ORM persistence for a delivery of packs against a supplier
    order, including the factor, price and expiry it carried and the totals
    and margins it produced.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    order_id is immutable: a purchase never moves to another order.

Failure modes:
    - IntegrityError if order_id references a missing order.

Audit relevance:
    The stored issue_unit_per_pack_size lets a later edit roll back with the
    factor this purchase actually used (RollbackFactor.PURCHASE_RECORDED).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString


class Purchase(SoftDeleteMixin, TrackedBase):
    """A delivery of packs against one supplier order."""

    __tablename__ = "purchases"

    __table_args__ = (
        Index("idx_purchase_order", "order_id"),
        Index("idx_purchase_date", "purchase_date"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("orders.id"),
        nullable=False,
    )

    purchased_pack_size_quantity: Mapped[int] = mapped_column(nullable=False)

    price_per_pack_size: Mapped[Decimal] = mapped_column(nullable=False)

    issue_unit_per_pack_size: Mapped[int] = mapped_column(nullable=False)

    expiry_date: Mapped[date] = mapped_column(nullable=False)

    total_purchase_price: Mapped[Decimal] = mapped_column(nullable=False)

    total_issue_unit_quantity: Mapped[int] = mapped_column(nullable=False)

    profit_per_pack_size: Mapped[Decimal] = mapped_column(nullable=False)

    profit_per_issue_unit: Mapped[Decimal] = mapped_column(nullable=False)

    profit_margin_percentage_per_pack_size: Mapped[Decimal] = mapped_column(
        nullable=False
    )

    profit_margin_percentage_per_issue_unit: Mapped[Decimal] = mapped_column(
        nullable=False
    )

    purchase_date: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<Purchase {self.id}: {self.purchased_pack_size_quantity} packs "
            f"@ {self.price_per_pack_size}>"
        )
