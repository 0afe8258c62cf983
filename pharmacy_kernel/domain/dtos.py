"""
DTOs -- immutable data transfer objects returned by services and selectors.

Responsibility:
    Frozen snapshots of medicines, orders, purchases, sales and parties.
    Callers never receive live ORM rows, so nothing outside the kernel can
    mutate inventory state by accident.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``from_model()`` class methods are
    boundary converters invoked only from services and selectors.

Invariants enforced:
    - All monetary fields are raw ``Decimal``; formatting belongs to callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from pharmacy_kernel.domain.values import DoseForm, OrderStatus, PartyType, SaleStatus

if TYPE_CHECKING:
    from pharmacy_kernel.models.medicine import Medicine as MedicineModel
    from pharmacy_kernel.models.order import Order as OrderModel
    from pharmacy_kernel.models.party import Party as PartyModel
    from pharmacy_kernel.models.purchase import Purchase as PurchaseModel
    from pharmacy_kernel.models.sale import Sale as SaleModel


@dataclass(frozen=True)
class MedicineSnapshot:
    """Catalog and inventory state of one medicine at read time."""

    id: UUID
    name: str
    dose_form: DoseForm
    strength: str
    therapeutic_class: str | None
    pack_size: str | None
    level_of_use: int | None
    pack_size_quantity: int
    issue_unit_quantity: int
    issue_unit_per_pack_size: int
    pack_size_purchase_price: Decimal
    pack_size_selling_price: Decimal
    issue_unit_purchase_price: Decimal
    issue_unit_selling_price: Decimal
    profit_per_pack_size: Decimal
    profit_per_issue_unit: Decimal
    expiry_date: date | None
    deleted_at: datetime | None = None

    def is_expired(self, today: date) -> bool:
        return self.expiry_date is not None and self.expiry_date <= today

    @classmethod
    def from_model(cls, model: MedicineModel) -> MedicineSnapshot:
        return cls(
            id=model.id,
            name=model.name,
            dose_form=DoseForm(model.dose_form),
            strength=model.strength,
            therapeutic_class=model.therapeutic_class,
            pack_size=model.pack_size,
            level_of_use=model.level_of_use,
            pack_size_quantity=model.pack_size_quantity,
            issue_unit_quantity=model.issue_unit_quantity,
            issue_unit_per_pack_size=model.issue_unit_per_pack_size,
            pack_size_purchase_price=model.pack_size_purchase_price,
            pack_size_selling_price=model.pack_size_selling_price,
            issue_unit_purchase_price=model.issue_unit_purchase_price,
            issue_unit_selling_price=model.issue_unit_selling_price,
            profit_per_pack_size=model.profit_per_pack_size,
            profit_per_issue_unit=model.profit_per_issue_unit,
            expiry_date=model.expiry_date,
            deleted_at=model.deleted_at,
        )


@dataclass(frozen=True)
class OrderInfo:
    """A supplier order and its remaining quantity."""

    id: UUID
    medicine_id: UUID
    supplier_id: UUID
    order_quantity: int
    status: OrderStatus
    order_date: datetime
    cancelled_at: datetime | None = None

    @classmethod
    def from_model(cls, model: OrderModel) -> OrderInfo:
        return cls(
            id=model.id,
            medicine_id=model.medicine_id,
            supplier_id=model.supplier_id,
            order_quantity=model.order_quantity,
            status=OrderStatus(model.status),
            order_date=model.order_date,
            cancelled_at=model.cancelled_at,
        )


@dataclass(frozen=True)
class PurchaseRecord:
    """A purchase as stored, with the totals and margins it produced."""

    id: UUID
    order_id: UUID
    purchased_pack_size_quantity: int
    price_per_pack_size: Decimal
    issue_unit_per_pack_size: int
    expiry_date: date
    total_purchase_price: Decimal
    total_issue_unit_quantity: int
    profit_per_pack_size: Decimal
    profit_per_issue_unit: Decimal
    profit_margin_percentage_per_pack_size: Decimal
    profit_margin_percentage_per_issue_unit: Decimal
    purchase_date: datetime

    @classmethod
    def from_model(cls, model: PurchaseModel) -> PurchaseRecord:
        return cls(
            id=model.id,
            order_id=model.order_id,
            purchased_pack_size_quantity=model.purchased_pack_size_quantity,
            price_per_pack_size=model.price_per_pack_size,
            issue_unit_per_pack_size=model.issue_unit_per_pack_size,
            expiry_date=model.expiry_date,
            total_purchase_price=model.total_purchase_price,
            total_issue_unit_quantity=model.total_issue_unit_quantity,
            profit_per_pack_size=model.profit_per_pack_size,
            profit_per_issue_unit=model.profit_per_issue_unit,
            profit_margin_percentage_per_pack_size=(
                model.profit_margin_percentage_per_pack_size
            ),
            profit_margin_percentage_per_issue_unit=(
                model.profit_margin_percentage_per_issue_unit
            ),
            purchase_date=model.purchase_date,
        )


@dataclass(frozen=True)
class PurchaseView:
    """A purchase joined with its order, medicine and supplier for reports."""

    purchase: PurchaseRecord
    medicine_id: UUID
    medicine_name: str
    supplier_id: UUID
    supplier_name: str
    order_status: OrderStatus
    order_date: datetime


@dataclass(frozen=True)
class SaleLine:
    """One line of a sale batch as requested by the caller."""

    medicine_id: UUID
    customer_id: UUID
    issue_unit_quantity: int


@dataclass(frozen=True)
class SaleRecord:
    """A sale with the price snapshot taken when it was issued."""

    id: UUID
    medicine_id: UUID
    customer_id: UUID
    issue_unit_quantity: int
    issue_unit_price: Decimal
    total_price: Decimal
    status: SaleStatus
    sale_date: datetime

    @classmethod
    def from_model(cls, model: SaleModel) -> SaleRecord:
        return cls(
            id=model.id,
            medicine_id=model.medicine_id,
            customer_id=model.customer_id,
            issue_unit_quantity=model.issue_unit_quantity,
            issue_unit_price=model.issue_unit_price,
            total_price=model.total_price,
            status=SaleStatus(model.status),
            sale_date=model.sale_date,
        )


@dataclass(frozen=True)
class PartyInfo:
    """A customer or supplier."""

    id: UUID
    party_type: PartyType
    name: str
    phone: str | None
    email: str | None
    address: str | None

    @classmethod
    def from_model(cls, model: PartyModel) -> PartyInfo:
        return cls(
            id=model.id,
            party_type=PartyType(model.party_type),
            name=model.name,
            phone=model.phone,
            email=model.email,
            address=model.address,
        )
