"""
Module: pharmacy_kernel.selectors.inventory_selector
Responsibility: Read API for reporting.  Returns frozen DTOs with raw
    Decimal fields; currency and date formatting belong to the caller.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Tombstoned medicines, orders, purchases and parties are excluded.
      Cancelled sales are not tombstones and are returned unless a status
      filter says otherwise.
    - Listings are ordered deterministically so repeated reads of the same
      snapshot return the same sequence.

Failure modes:
    - *NotFoundError from the single-row getters.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import aliased

from pharmacy_kernel.domain.dtos import (
    MedicineSnapshot,
    OrderInfo,
    PurchaseRecord,
    PurchaseView,
    SaleRecord,
)
from pharmacy_kernel.domain.values import OrderStatus, SaleStatus
from pharmacy_kernel.exceptions import (
    MedicineNotFoundError,
    OrderNotFoundError,
    PurchaseNotFoundError,
    SaleNotFoundError,
)
from pharmacy_kernel.models.medicine import Medicine
from pharmacy_kernel.models.order import Order
from pharmacy_kernel.models.party import Party
from pharmacy_kernel.models.purchase import Purchase
from pharmacy_kernel.models.sale import Sale
from pharmacy_kernel.selectors.base import BaseSelector


class InventorySelector(BaseSelector[Medicine]):
    """
    Read-only queries over medicines, orders, purchases and sales.

    Non-goals:
        - No calendar bucketing or aggregation; reports group the rows.
    """

    # Medicines

    def get_medicine_snapshot(self, medicine_id: UUID) -> MedicineSnapshot:
        medicine = self.session.execute(
            select(Medicine).where(Medicine.id == medicine_id, Medicine.live())
        ).scalar_one_or_none()
        if medicine is None:
            raise MedicineNotFoundError(str(medicine_id))
        return MedicineSnapshot.from_model(medicine)

    def list_medicines(self, in_stock_only: bool = False) -> list[MedicineSnapshot]:
        stmt = select(Medicine).where(Medicine.live())
        if in_stock_only:
            stmt = stmt.where(Medicine.issue_unit_quantity > 0)
        stmt = stmt.order_by(Medicine.name, Medicine.strength, Medicine.id)
        return [
            MedicineSnapshot.from_model(m) for m in self.session.execute(stmt).scalars()
        ]

    def list_expired_medicines(self, as_of: date) -> list[MedicineSnapshot]:
        """Live medicines whose batch expires on or before ``as_of``."""
        stmt = (
            select(Medicine)
            .where(
                Medicine.live(),
                Medicine.expiry_date.is_not(None),
                Medicine.expiry_date <= as_of,
            )
            .order_by(Medicine.expiry_date, Medicine.name, Medicine.id)
        )
        return [
            MedicineSnapshot.from_model(m) for m in self.session.execute(stmt).scalars()
        ]

    # Orders

    def get_order(self, order_id: UUID) -> OrderInfo:
        order = self.session.execute(
            select(Order).where(Order.id == order_id, Order.live())
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return OrderInfo.from_model(order)

    def list_orders(self, status: OrderStatus | None = None) -> list[OrderInfo]:
        stmt = select(Order).where(Order.live())
        if status is not None:
            stmt = stmt.where(Order.status == OrderStatus(status).value)
        stmt = stmt.order_by(Order.order_date, Order.id)
        return [OrderInfo.from_model(o) for o in self.session.execute(stmt).scalars()]

    # Purchases

    def get_purchase(self, purchase_id: UUID) -> PurchaseView:
        views = self._purchase_views(Purchase.id == purchase_id)
        if not views:
            raise PurchaseNotFoundError(str(purchase_id))
        return views[0]

    def list_purchases(
        self,
        order_id: UUID | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[PurchaseView]:
        """Purchases joined with order, medicine and supplier.

        ``since`` is inclusive, ``until`` exclusive.
        """
        criteria = []
        if order_id is not None:
            criteria.append(Purchase.order_id == order_id)
        if since is not None:
            criteria.append(Purchase.purchase_date >= since)
        if until is not None:
            criteria.append(Purchase.purchase_date < until)
        return self._purchase_views(*criteria)

    def _purchase_views(self, *criteria) -> list[PurchaseView]:
        supplier = aliased(Party)
        stmt = (
            select(Purchase, Order, Medicine.name, supplier.name)
            .join(Order, Purchase.order_id == Order.id)
            .join(Medicine, Order.medicine_id == Medicine.id)
            .join(supplier, Order.supplier_id == supplier.id)
            .where(Purchase.live(), Order.live(), *criteria)
            .order_by(Purchase.purchase_date, Purchase.id)
        )
        return [
            PurchaseView(
                purchase=PurchaseRecord.from_model(purchase),
                medicine_id=order.medicine_id,
                medicine_name=medicine_name,
                supplier_id=order.supplier_id,
                supplier_name=supplier_name,
                order_status=OrderStatus(order.status),
                order_date=order.order_date,
            )
            for purchase, order, medicine_name, supplier_name in self.session.execute(stmt)
        ]

    # Sales

    def get_sale(self, sale_id: UUID) -> SaleRecord:
        sale = self.session.execute(
            select(Sale).where(Sale.id == sale_id, Sale.live())
        ).scalar_one_or_none()
        if sale is None:
            raise SaleNotFoundError(str(sale_id))
        return SaleRecord.from_model(sale)

    def list_sales(
        self,
        status: SaleStatus | None = None,
        customer_id: UUID | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[SaleRecord]:
        """Sales filtered by status, customer and date (``until`` exclusive)."""
        stmt = select(Sale).where(Sale.live())
        if status is not None:
            stmt = stmt.where(Sale.status == SaleStatus(status).value)
        if customer_id is not None:
            stmt = stmt.where(Sale.customer_id == customer_id)
        if since is not None:
            stmt = stmt.where(Sale.sale_date >= since)
        if until is not None:
            stmt = stmt.where(Sale.sale_date < until)
        stmt = stmt.order_by(Sale.sale_date, Sale.id)
        return [SaleRecord.from_model(s) for s in self.session.execute(stmt).scalars()]
