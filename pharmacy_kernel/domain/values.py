"""
Values -- enumerations shared by the domain core and the ORM models.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Models import these enums so the
    database and the domain agree on one vocabulary; the domain never
    imports models.
"""

from enum import Enum


class OrderStatus(str, Enum):
    """Supplier order lifecycle.

    Contract: PENDING -> ACTIVE -> DELIVERED, and PENDING/ACTIVE ->
    CANCELLED.  DELIVERED and CANCELLED are terminal.
    """

    PENDING = "pending"
    ACTIVE = "active"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_closed(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class SaleStatus(str, Enum):
    """Customer sale status.  CANCELLED is terminal."""

    ISSUED = "issued"
    PENDING = "pending"
    CANCELLED = "cancelled"


class DoseForm(str, Enum):
    """Pharmaceutical presentation of a medicine."""

    TABLET = "tablet"
    CAPSULE = "capsule"
    SYRUP = "syrup"
    SUSPENSION = "suspension"
    INJECTION = "injection"
    CREAM = "cream"
    OINTMENT = "ointment"
    DROPS = "drops"
    INHALER = "inhaler"
    SUPPOSITORY = "suppository"
    OTHER = "other"


class PartyType(str, Enum):
    """Counterparty kind.  Names are unique per type."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"
