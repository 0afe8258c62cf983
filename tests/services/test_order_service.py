"""Tests for OrderService: creating, resizing, cancelling and deleting orders."""

from uuid import uuid4

import pytest

from pharmacy_kernel.domain.values import OrderStatus
from pharmacy_kernel.exceptions import (
    ExpiredMedicineError,
    ForbiddenOperationError,
    InvalidPayloadError,
    MedicineNotFoundError,
    OrderClosedError,
    OrderNotFoundError,
    PartyNotFoundError,
)
from pharmacy_kernel.models.medicine import Medicine


class TestCreateOrder:

    def test_new_order_is_pending(self, create_medicine, create_supplier, order_service, test_actor_id, deterministic_clock):
        medicine = create_medicine()
        supplier = create_supplier()

        order = order_service.create_order(test_actor_id, medicine.id, supplier.id, 50)

        assert order.status == OrderStatus.PENDING
        assert order.order_quantity == 50
        assert order.medicine_id == medicine.id
        assert order.supplier_id == supplier.id
        assert order.order_date == deterministic_clock.now()
        assert order.cancelled_at is None

    @pytest.mark.parametrize("quantity", [0, -5, True])
    def test_quantity_must_be_positive(self, create_medicine, create_supplier, order_service, test_actor_id, quantity):
        with pytest.raises(InvalidPayloadError):
            order_service.create_order(
                test_actor_id, create_medicine().id, create_supplier().id, quantity
            )

    def test_unknown_supplier(self, create_medicine, order_service, test_actor_id):
        with pytest.raises(PartyNotFoundError):
            order_service.create_order(test_actor_id, create_medicine().id, uuid4(), 10)

    def test_customer_is_not_a_supplier(self, create_medicine, create_customer, order_service, test_actor_id):
        with pytest.raises(PartyNotFoundError):
            order_service.create_order(
                test_actor_id, create_medicine().id, create_customer().id, 10
            )

    def test_unknown_medicine(self, create_supplier, order_service, test_actor_id):
        with pytest.raises(MedicineNotFoundError):
            order_service.create_order(test_actor_id, uuid4(), create_supplier().id, 10)

    def test_expired_medicine(self, create_medicine, create_supplier, order_service, test_actor_id, session, today):
        medicine = create_medicine()
        session.get(Medicine, medicine.id).set_expiry_date(today)
        session.flush()

        with pytest.raises(ExpiredMedicineError):
            order_service.create_order(test_actor_id, medicine.id, create_supplier().id, 10)


class TestResizeOrder:

    def test_pending_order_resized(self, create_order, order_service, test_actor_id):
        order = create_order(50)

        resized = order_service.update_order_quantity(order.id, test_actor_id, 80)

        assert resized.order_quantity == 80
        assert resized.status == OrderStatus.PENDING

    def test_active_order_cannot_be_resized(self, create_order, order_service, purchase_reconciler, test_actor_id, next_year):
        order = create_order(50)
        purchase_reconciler.create_purchase(order.id, test_actor_id, 10, 100, 10, next_year)

        with pytest.raises(ForbiddenOperationError):
            order_service.update_order_quantity(order.id, test_actor_id, 80)


class TestCancelOrder:

    def test_cancel_pending(self, create_order, order_service, test_actor_id, deterministic_clock):
        order = create_order()

        cancelled = order_service.cancel_order(order.id, test_actor_id)

        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.cancelled_at == deterministic_clock.now()

    def test_cancel_active(self, create_order, order_service, purchase_reconciler, test_actor_id, next_year):
        order = create_order(50)
        purchase_reconciler.create_purchase(order.id, test_actor_id, 10, 100, 10, next_year)

        cancelled = order_service.cancel_order(order.id, test_actor_id)

        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.order_quantity == 40

    def test_cancel_twice_rejected(self, create_order, order_service, test_actor_id):
        order = create_order()
        order_service.cancel_order(order.id, test_actor_id)

        with pytest.raises(OrderClosedError) as exc_info:
            order_service.cancel_order(order.id, test_actor_id)
        assert exc_info.value.status == "cancelled"

    def test_cancel_delivered_rejected(self, create_order, order_service, purchase_reconciler, test_actor_id, next_year):
        order = create_order(10)
        purchase_reconciler.create_purchase(order.id, test_actor_id, 10, 100, 10, next_year)

        with pytest.raises(OrderClosedError):
            order_service.cancel_order(order.id, test_actor_id)


class TestDeleteOrder:

    def test_delete_pending(self, create_order, order_service, test_actor_id):
        order = create_order()

        order_service.delete_order(order.id, test_actor_id)

        with pytest.raises(OrderNotFoundError):
            order_service.get(order.id)

    def test_delete_cancelled(self, create_order, order_service, test_actor_id):
        order = create_order()
        order_service.cancel_order(order.id, test_actor_id)

        order_service.delete_order(order.id, test_actor_id)

        with pytest.raises(OrderNotFoundError):
            order_service.get(order.id)

    def test_delete_active_rejected(self, create_order, order_service, purchase_reconciler, test_actor_id, next_year):
        order = create_order(50)
        purchase_reconciler.create_purchase(order.id, test_actor_id, 10, 100, 10, next_year)

        with pytest.raises(ForbiddenOperationError):
            order_service.delete_order(order.id, test_actor_id)

    def test_deleted_order_rejects_purchases(self, create_order, order_service, purchase_reconciler, test_actor_id, next_year):
        order = create_order()
        order_service.delete_order(order.id, test_actor_id)

        with pytest.raises(OrderNotFoundError):
            purchase_reconciler.create_purchase(order.id, test_actor_id, 1, 100, 10, next_year)
