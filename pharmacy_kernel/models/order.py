"""
Module: pharmacy_kernel.models.order
Responsibility: ORM persistence for supplier orders: which medicine is
    ordered from which supplier, how many packs are still outstanding, and
    where the order is in its lifecycle.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    ORDER_CLOSURE / NO_OVER_SUPPLY are applied by order_tracker before any
    value reaches this row.  order_date is written once at creation.

Failure modes:
    - IntegrityError if medicine_id or supplier_id references a missing row.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString
from pharmacy_kernel.domain.values import OrderStatus


class Order(SoftDeleteMixin, TrackedBase):
    """
    A supplier order for one medicine.

    Contract:
        order_quantity is the *remaining* quantity in packs.  Purchases
        deduct from it; rolling a purchase back adds to it.

    Guarantees:
        - order_quantity >= 0.
        - status follows PENDING -> ACTIVE -> DELIVERED, or PENDING/ACTIVE
          -> CANCELLED.
    """

    __tablename__ = "orders"

    __table_args__ = (
        Index("idx_order_status", "status"),
        Index("idx_order_medicine", "medicine_id"),
    )

    medicine_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("medicines.id"),
        nullable=False,
    )

    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("parties.id"),
        nullable=False,
    )

    order_quantity: Mapped[int] = mapped_column(nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    order_date: Mapped[datetime] = mapped_column(nullable=False)

    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def is_closed(self) -> bool:
        return OrderStatus(self.status).is_closed

    def __repr__(self) -> str:
        return f"<Order {self.id}: {self.order_quantity} remaining ({self.status})>"
