"""
PurchaseReconciler -- applies supplier purchases to orders and inventory.

Responsibility:
    Creating, editing and removing a purchase.  Each operation recomputes
    the affected order's remaining quantity and status and the medicine's
    stock, prices, profits and expiry, in one flush-only unit of work.

Architecture position:
    Kernel > Services -- imperative shell.  Consumes OrderService and
    MedicineService for locked lookups, ``order_tracker`` for order
    transitions, and ``pricing`` for every monetary number.

Invariants enforced:
    NO_OVER_SUPPLY        -- via order_tracker.apply_supply.
    ORDER_CLOSURE         -- via order_tracker.assert_open.
    NON_NEGATIVE_STOCK    -- via the Medicine ledger mutators; a rollback
                             that would go negative is refused.
    PRICE_MONOTONICITY    -- via Medicine.set_selling_price.
    LOCK_ORDERING         -- order row first, then its purchase, then the
                             medicine row.

Failure modes:
    - InvalidPayloadError / InvalidExpiryDateError before any row is read.
    - OrderNotFoundError, PurchaseNotFoundError, MedicineNotFoundError.
    - OrderClosedError, OverSupplyError, NegativeStockError.
    - ExpiredMedicineError when the batch on hand has expired.
    On any failure the caller rolls the transaction back; nothing written
    by a half-finished reconciliation survives.

Audit relevance:
    Every create, rollback, reapply and removal is logged with the order,
    medicine and purchase ids and the quantities involved.  The factor a
    purchase used is stored on it so later edits can be audited against it.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pharmacy_kernel.domain.clock import Clock
from pharmacy_kernel.domain.dtos import PurchaseRecord
from pharmacy_kernel.domain.order_tracker import apply_supply, assert_open
from pharmacy_kernel.domain.policies import (
    PurchaseRemovalPolicy,
    RollbackFactor,
    StockPolicy,
)
from pharmacy_kernel.domain.pricing import PriceBreakdown, PricingPolicy, price_purchase
from pharmacy_kernel.domain.validation import (
    require_expiry_not_past,
    require_positive_decimal,
    require_positive_int,
)
from pharmacy_kernel.domain.values import OrderStatus
from pharmacy_kernel.exceptions import ExpiredMedicineError, PurchaseNotFoundError
from pharmacy_kernel.logging_config import get_logger
from pharmacy_kernel.models.medicine import Medicine
from pharmacy_kernel.models.order import Order
from pharmacy_kernel.models.purchase import Purchase
from pharmacy_kernel.services.base import BaseService
from pharmacy_kernel.services.medicine_service import MedicineService
from pharmacy_kernel.services.order_service import OrderService

logger = get_logger("services.purchase")


class PurchaseReconciler(BaseService[Purchase]):
    """
    Reconciles purchases against orders and the medicine ledger.

    Contract:
        Every public method runs inside the caller's transaction and leaves
        the order, the medicine and the purchase mutually consistent when it
        returns.  If it raises, the caller must roll back.

    Guarantees:
        - An edit rolls the original purchase back and reapplies the new
          values under the same row locks, so no reader can observe the
          rolled-back-only state.
        - Removal tombstones the purchase; with REVERSE_STOCK it also undoes
          the purchase's effect on the order and the stock.

    Non-goals:
        - Prices are not rolled back on edit.  Purchase prices are
          recomputed by the reapply; selling prices never fall.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        pricing: PricingPolicy | None = None,
        stock: StockPolicy | None = None,
    ):
        super().__init__(session, clock)
        self.pricing = pricing or PricingPolicy()
        self.stock = stock or StockPolicy()
        self._orders = OrderService(session, self.clock)
        self._medicines = MedicineService(session, self.clock)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_purchase(
        self,
        order_id: UUID,
        actor_id: UUID,
        purchased_pack_size_quantity: int,
        price_per_pack_size: Decimal,
        issue_unit_per_pack_size: int,
        expiry_date: date,
    ) -> PurchaseRecord:
        """
        Record a delivery of packs against an order.

        Preconditions:
            - quantity, price and factor are positive; expiry is not past.
            - The order exists, is live and is PENDING or ACTIVE.
            - The medicine's current batch has not expired.

        Postconditions:
            - order.order_quantity decreased by the quantity; status ACTIVE,
              or DELIVERED when nothing remains.
            - Medicine stock increased, prices, profits and expiry updated.
            - A Purchase row exists with totals and margins.

        Raises:
            InvalidPayloadError, InvalidExpiryDateError, OrderNotFoundError,
            OrderClosedError, MedicineNotFoundError, ExpiredMedicineError,
            OverSupplyError.
        """
        today = self.clock.today()
        quantity = require_positive_int(
            purchased_pack_size_quantity, "purchased_pack_size_quantity"
        )
        price = require_positive_decimal(price_per_pack_size, "price_per_pack_size")
        factor = require_positive_int(issue_unit_per_pack_size, "issue_unit_per_pack_size")
        expiry = require_expiry_not_past(expiry_date, today)

        order = self._orders.get_model(order_id, lock=True)
        assert_open(str(order.id), order.status)
        medicine = self._medicines.get_model(order.medicine_id, lock=True)
        self._assert_not_expired(medicine, today)

        breakdown = self._apply(order, medicine, quantity, price, factor, expiry, actor_id)

        purchase = Purchase(
            order_id=order.id,
            purchase_date=self.clock.now(),
            created_by_id=actor_id,
        )
        self._write_purchase(purchase, quantity, price, factor, expiry, breakdown)
        self.session.add(purchase)
        self.session.flush()

        logger.info(
            "purchase_created",
            extra={
                "purchase_id": str(purchase.id),
                "order_id": str(order.id),
                "medicine_id": str(medicine.id),
                "quantity": quantity,
                "issue_unit_per_pack_size": factor,
                "order_status": order.status,
                "order_remaining": order.order_quantity,
            },
        )
        return PurchaseRecord.from_model(purchase)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_purchase(
        self,
        purchase_id: UUID,
        actor_id: UUID,
        purchased_pack_size_quantity: int | None = None,
        price_per_pack_size: Decimal | None = None,
        issue_unit_per_pack_size: int | None = None,
        expiry_date: date | None = None,
    ) -> PurchaseRecord:
        """
        Edit a purchase by rolling it back and reapplying the new values.

        Omitted values fall back to the ones stored on the purchase.

        Raises:
            InvalidPayloadError, InvalidExpiryDateError,
            PurchaseNotFoundError, OrderClosedError, NegativeStockError,
            OverSupplyError.
        """
        today = self.clock.today()
        if purchased_pack_size_quantity is not None:
            require_positive_int(purchased_pack_size_quantity, "purchased_pack_size_quantity")
        if price_per_pack_size is not None:
            price_per_pack_size = require_positive_decimal(
                price_per_pack_size, "price_per_pack_size"
            )
        if issue_unit_per_pack_size is not None:
            require_positive_int(issue_unit_per_pack_size, "issue_unit_per_pack_size")
        if expiry_date is not None:
            expiry_date = require_expiry_not_past(expiry_date, today)

        order, purchase, medicine = self._lock_purchase(purchase_id)
        assert_open(str(order.id), order.status)

        self._rollback(order, purchase, medicine, actor_id)

        quantity = (
            purchased_pack_size_quantity
            if purchased_pack_size_quantity is not None
            else purchase.purchased_pack_size_quantity
        )
        price = (
            price_per_pack_size
            if price_per_pack_size is not None
            else purchase.price_per_pack_size
        )
        factor = (
            issue_unit_per_pack_size
            if issue_unit_per_pack_size is not None
            else purchase.issue_unit_per_pack_size
        )
        expiry = expiry_date if expiry_date is not None else purchase.expiry_date

        breakdown = self._apply(order, medicine, quantity, price, factor, expiry, actor_id)
        self._write_purchase(purchase, quantity, price, factor, expiry, breakdown)
        purchase.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "purchase_updated",
            extra={
                "purchase_id": str(purchase.id),
                "order_id": str(order.id),
                "medicine_id": str(medicine.id),
                "quantity": quantity,
                "issue_unit_per_pack_size": factor,
                "order_status": order.status,
                "order_remaining": order.order_quantity,
            },
        )
        return PurchaseRecord.from_model(purchase)

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    def remove_purchase(self, purchase_id: UUID, actor_id: UUID) -> PurchaseRecord:
        """
        Tombstone a purchase.

        Under TOMBSTONE_ONLY the order and the ledger are left as they are.
        Under REVERSE_STOCK the order must still be open; its remaining
        quantity and the medicine's stock are restored, and the order falls
        back to ACTIVE if other live purchases exist, else PENDING.

        Raises:
            PurchaseNotFoundError, OrderClosedError (REVERSE_STOCK only),
            NegativeStockError (REVERSE_STOCK only).
        """
        order, purchase, medicine = self._lock_purchase(purchase_id)
        reverse = self.stock.purchase_removal == PurchaseRemovalPolicy.REVERSE_STOCK

        if reverse:
            assert_open(str(order.id), order.status)
            self._rollback(order, purchase, medicine, actor_id)

        purchase.soft_delete(self.clock.now())
        purchase.updated_by_id = actor_id
        self.session.flush()

        if reverse:
            order.status = (
                OrderStatus.ACTIVE.value
                if self._live_purchase_count(order.id) > 0
                else OrderStatus.PENDING.value
            )
            self.session.flush()

        logger.info(
            "purchase_removed",
            extra={
                "purchase_id": str(purchase.id),
                "order_id": str(order.id),
                "policy": self.stock.purchase_removal.value,
                "order_status": order.status,
            },
        )
        return PurchaseRecord.from_model(purchase)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_purchase(self, purchase_id: UUID) -> tuple[Order, Purchase, Medicine]:
        """Lock order, purchase and medicine in that order."""
        order_id = self.session.execute(
            select(Purchase.order_id).where(Purchase.id == purchase_id, Purchase.live())
        ).scalar_one_or_none()
        if order_id is None:
            raise PurchaseNotFoundError(str(purchase_id))

        order = self._orders.get_model(order_id, lock=True)
        purchase = self._load_live(Purchase, purchase_id, lock=True)
        if purchase is None:
            raise PurchaseNotFoundError(str(purchase_id))
        medicine = self._medicines.get_model(order.medicine_id, lock=True)
        return order, purchase, medicine

    def _assert_not_expired(self, medicine: Medicine, today: date) -> None:
        if medicine.is_expired(today):
            logger.warning(
                "purchase_rejected_expired_medicine",
                extra={
                    "medicine_id": str(medicine.id),
                    "expiry_date": medicine.expiry_date,
                },
            )
            raise ExpiredMedicineError(str(medicine.id), str(medicine.expiry_date))

    def _rollback(
        self,
        order: Order,
        purchase: Purchase,
        medicine: Medicine,
        actor_id: UUID,
    ) -> None:
        """Undo a purchase's order deduction and stock addition."""
        quantity = purchase.purchased_pack_size_quantity
        if self.stock.rollback_factor_source == RollbackFactor.PURCHASE_RECORDED:
            factor = purchase.issue_unit_per_pack_size
        else:
            factor = medicine.issue_unit_per_pack_size

        if medicine.issue_unit_per_pack_size != purchase.issue_unit_per_pack_size:
            logger.warning(
                "rollback_factor_drift",
                extra={
                    "purchase_id": str(purchase.id),
                    "medicine_id": str(medicine.id),
                    "medicine_factor": medicine.issue_unit_per_pack_size,
                    "purchase_factor": purchase.issue_unit_per_pack_size,
                    "factor_used": factor,
                },
            )

        order.order_quantity = order.order_quantity + quantity
        order.updated_by_id = actor_id
        medicine.set_pack_size_quantity(medicine.pack_size_quantity - quantity)
        medicine.set_issue_unit_quantity(medicine.issue_unit_quantity - quantity * factor)
        medicine.updated_by_id = actor_id

        logger.info(
            "purchase_rolled_back",
            extra={
                "purchase_id": str(purchase.id),
                "order_id": str(order.id),
                "medicine_id": str(medicine.id),
                "quantity": quantity,
                "factor_used": factor,
                "order_remaining": order.order_quantity,
            },
        )

    def _apply(
        self,
        order: Order,
        medicine: Medicine,
        quantity: int,
        price: Decimal,
        factor: int,
        expiry: date,
        actor_id: UUID,
    ) -> PriceBreakdown:
        """Supply ``quantity`` packs against the order and into stock."""
        transition = apply_supply(order.order_quantity, quantity, str(order.id))
        order.order_quantity = transition.remaining
        order.status = transition.status.value
        order.updated_by_id = actor_id

        medicine.set_pack_size_quantity(medicine.pack_size_quantity + quantity)
        medicine.set_issue_unit_per_pack_size(factor)
        medicine.set_issue_unit_quantity(medicine.issue_unit_quantity + quantity * factor)

        breakdown = price_purchase(
            price,
            factor,
            medicine.pack_size_selling_price,
            medicine.issue_unit_selling_price,
            self.pricing,
        )
        medicine.set_purchase_price(
            breakdown.pack_size_purchase_price, breakdown.issue_unit_purchase_price
        )
        medicine.set_selling_price(
            breakdown.pack_size_selling_price, breakdown.issue_unit_selling_price
        )
        medicine.set_profit_margins(
            breakdown.profit_per_pack_size, breakdown.profit_per_issue_unit
        )
        medicine.set_expiry_date(expiry)
        medicine.updated_by_id = actor_id
        return breakdown

    def _write_purchase(
        self,
        purchase: Purchase,
        quantity: int,
        price: Decimal,
        factor: int,
        expiry: date,
        breakdown: PriceBreakdown,
    ) -> None:
        purchase.purchased_pack_size_quantity = quantity
        purchase.price_per_pack_size = breakdown.pack_size_purchase_price
        purchase.issue_unit_per_pack_size = factor
        purchase.expiry_date = expiry
        purchase.total_purchase_price = self.pricing.quantize(price * quantity)
        purchase.total_issue_unit_quantity = quantity * factor
        purchase.profit_per_pack_size = breakdown.profit_per_pack_size
        purchase.profit_per_issue_unit = breakdown.profit_per_issue_unit
        purchase.profit_margin_percentage_per_pack_size = (
            breakdown.profit_margin_percentage_per_pack_size
        )
        purchase.profit_margin_percentage_per_issue_unit = (
            breakdown.profit_margin_percentage_per_issue_unit
        )

    def _live_purchase_count(self, order_id: UUID) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(Purchase)
            .where(Purchase.order_id == order_id, Purchase.live())
        ).scalar_one()
