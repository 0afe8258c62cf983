"""
Module: pharmacy_kernel.models.party
Responsibility: ORM persistence for the customers the pharmacy sells to and
    the suppliers it orders from.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    Names are unique per party_type among live rows.  PartyService checks
    this, because tombstoned rows may share a name with a live one.

Failure modes:
    - DuplicatePartyError (raised by PartyService, not the ORM).
"""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_kernel.db.base import SoftDeleteMixin, TrackedBase
from pharmacy_kernel.domain.values import PartyType


class Party(SoftDeleteMixin, TrackedBase):
    """
    A customer or supplier.

    Contract:
        party_type is set at creation and never changes.  Sales reference
        CUSTOMER parties; orders reference SUPPLIER parties.
    """

    __tablename__ = "parties"

    __table_args__ = (
        Index("idx_party_type_name", "party_type", "name"),
    )

    party_type: Mapped[PartyType] = mapped_column(
        String(20),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    phone: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    address: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Party {self.name} ({self.party_type})>"
