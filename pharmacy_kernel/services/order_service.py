"""
OrderService -- supplier order lifecycle outside of purchases.

Responsibility:
    Create, resize, cancel and tombstone supplier orders, and hand locked
    order rows to the purchase reconciler.  Quantity changes caused by
    purchases go through ``order_tracker`` in the reconciler, not here.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.

Invariants enforced:
    - ORDER_CLOSURE -- DELIVERED and CANCELLED orders cannot be cancelled
      again or resized.
    - Orders are only opened for live, unexpired medicines and live
      suppliers.

Failure modes:
    - OrderNotFoundError, MedicineNotFoundError, PartyNotFoundError.
    - ExpiredMedicineError when ordering an expired medicine.
    - OrderClosedError / ForbiddenOperationError for illegal transitions.
    - InvalidPayloadError for a non-positive quantity.
"""

from uuid import UUID

from pharmacy_kernel.domain.clock import Clock
from pharmacy_kernel.domain.dtos import OrderInfo
from pharmacy_kernel.domain.values import OrderStatus, PartyType
from pharmacy_kernel.exceptions import (
    ExpiredMedicineError,
    ForbiddenOperationError,
    InvalidPayloadError,
    OrderClosedError,
    OrderNotFoundError,
)
from pharmacy_kernel.logging_config import get_logger
from pharmacy_kernel.models.order import Order
from pharmacy_kernel.services.base import BaseService
from pharmacy_kernel.services.medicine_service import MedicineService
from pharmacy_kernel.services.party_service import PartyService

logger = get_logger("services.order")


class OrderService(BaseService[Order]):
    """Create and manage supplier orders."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._medicines = MedicineService(session, self.clock)
        self._parties = PartyService(session, self.clock)

    def get(self, order_id: UUID) -> OrderInfo:
        return OrderInfo.from_model(self.get_model(order_id))

    def get_model(self, order_id: UUID, *, lock: bool = False) -> Order:
        order = self._load_live(Order, order_id, lock=lock)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return order

    def create_order(
        self,
        actor_id: UUID,
        medicine_id: UUID,
        supplier_id: UUID,
        order_quantity: int,
    ) -> OrderInfo:
        _require_positive_quantity(order_quantity)
        self._parties.get_model(supplier_id, PartyType.SUPPLIER)
        medicine = self._medicines.get_model(medicine_id)

        today = self.clock.today()
        if medicine.is_expired(today):
            logger.warning(
                "order_rejected_expired_medicine",
                extra={"medicine_id": str(medicine_id), "expiry_date": medicine.expiry_date},
            )
            raise ExpiredMedicineError(str(medicine_id), str(medicine.expiry_date))

        order = Order(
            medicine_id=medicine_id,
            supplier_id=supplier_id,
            order_quantity=order_quantity,
            status=OrderStatus.PENDING.value,
            order_date=self.clock.now(),
            created_by_id=actor_id,
        )
        self.session.add(order)
        self.session.flush()

        logger.info(
            "order_created",
            extra={
                "order_id": str(order.id),
                "medicine_id": str(medicine_id),
                "order_quantity": order_quantity,
            },
        )
        return OrderInfo.from_model(order)

    def update_order_quantity(
        self, order_id: UUID, actor_id: UUID, order_quantity: int
    ) -> OrderInfo:
        """Resize an order.  Only PENDING orders can be resized."""
        _require_positive_quantity(order_quantity)
        order = self.get_model(order_id, lock=True)
        if order.status != OrderStatus.PENDING:
            raise ForbiddenOperationError(
                f"Order {order_id} is {order.status}; only pending orders can be resized"
            )

        previous = order.order_quantity
        order.order_quantity = order_quantity
        order.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "order_quantity_updated",
            extra={
                "order_id": str(order.id),
                "previous_quantity": previous,
                "order_quantity": order_quantity,
            },
        )
        return OrderInfo.from_model(order)

    def cancel_order(self, order_id: UUID, actor_id: UUID) -> OrderInfo:
        order = self.get_model(order_id, lock=True)
        if order.is_closed:
            logger.warning(
                "order_cancel_rejected",
                extra={"order_id": str(order.id), "status": order.status},
            )
            raise OrderClosedError(str(order.id), OrderStatus(order.status).value)

        order.status = OrderStatus.CANCELLED.value
        order.cancelled_at = self.clock.now()
        order.updated_by_id = actor_id
        self.session.flush()

        logger.info("order_cancelled", extra={"order_id": str(order.id)})
        return OrderInfo.from_model(order)

    def delete_order(self, order_id: UUID, actor_id: UUID) -> OrderInfo:
        """Tombstone an order that never received stock, or was cancelled."""
        order = self.get_model(order_id, lock=True)
        if order.status not in (OrderStatus.PENDING, OrderStatus.CANCELLED):
            raise ForbiddenOperationError(
                f"Order {order_id} is {order.status}; only pending or cancelled "
                "orders can be deleted"
            )

        order.soft_delete(self.clock.now())
        order.updated_by_id = actor_id
        self.session.flush()

        logger.info("order_deleted", extra={"order_id": str(order.id)})
        return OrderInfo.from_model(order)


def _require_positive_quantity(order_quantity: object) -> None:
    if (
        not isinstance(order_quantity, int)
        or isinstance(order_quantity, bool)
        or order_quantity <= 0
    ):
        raise InvalidPayloadError("order_quantity", order_quantity, "must be a positive integer")
