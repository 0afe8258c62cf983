"""
Module: pharmacy_kernel.models.sale
Responsibility: ORM persistence for a customer sale of issue units.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    issue_unit_price is a snapshot of the medicine's issue-unit selling
    price when the sale was issued or last edited; later price changes do
    not touch it.  Sales are never deleted; removal marks them CANCELLED.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString
from pharmacy_kernel.domain.values import SaleStatus


class Sale(SoftDeleteMixin, TrackedBase):
    """A customer sale of one medicine."""

    __tablename__ = "sales"

    __table_args__ = (
        Index("idx_sale_status", "status"),
        Index("idx_sale_customer", "customer_id"),
        Index("idx_sale_date", "sale_date"),
    )

    medicine_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("medicines.id"),
        nullable=False,
    )

    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("parties.id"),
        nullable=False,
    )

    issue_unit_quantity: Mapped[int] = mapped_column(nullable=False)

    issue_unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    total_price: Mapped[Decimal] = mapped_column(nullable=False)

    status: Mapped[SaleStatus] = mapped_column(
        String(20),
        nullable=False,
        default=SaleStatus.ISSUED,
    )

    sale_date: Mapped[datetime] = mapped_column(nullable=False)

    @property
    def is_cancelled(self) -> bool:
        return self.status == SaleStatus.CANCELLED

    def __repr__(self) -> str:
        return f"<Sale {self.id}: {self.issue_unit_quantity} units ({self.status})>"
