"""
pharmacy_services.inventory_orchestrator -- transaction boundary for the kernel.

Responsibility:
    Exposes every public inventory operation.  Each call opens one
    transaction, builds the kernel services on its session, runs the
    operation, and commits.  Any exception rolls the whole transaction back
    and propagates unchanged.

Architecture position:
    Services -- the outermost layer.  The only place where kernel services
    are constructed and where ``commit`` happens.  Configuration reaches
    the kernel exclusively through the policy objects built here.

Invariants enforced:
    - ATOMIC_RECONCILIATION: one operation, one transaction.  A sale batch
      whose third line fails leaves the first two unapplied.
    - Every write carries an ``actor_id``; it is bound into the log context
      and stored on every row the operation touches.

Failure modes:
    - Any PharmacyKernelError raised by the kernel, after rollback.
    - RuntimeError from the engine module if no session factory is given
      and the engine was never initialized.

Usage:
    orchestrator = build_inventory_orchestrator()
    supplier = orchestrator.create_supplier(actor_id, "Acme Pharma")
    ...
    with orchestrator.snapshot() as reports:
        reports.list_purchases(since=start_of_day)
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from pharmacy_kernel.db.engine import (
    get_session_factory,
    init_engine_from_url,
    session_scope,
    snapshot_scope,
)
from pharmacy_kernel.domain.clock import Clock, SystemClock
from pharmacy_kernel.domain.dtos import (
    MedicineSnapshot,
    OrderInfo,
    PartyInfo,
    PurchaseRecord,
    SaleLine,
    SaleRecord,
)
from pharmacy_kernel.domain.policies import StockPolicy
from pharmacy_kernel.domain.pricing import PricingPolicy
from pharmacy_kernel.domain.values import DoseForm, PartyType, SaleStatus
from pharmacy_kernel.logging_config import LogContext, configure_logging, get_logger
from pharmacy_kernel.selectors.inventory_selector import InventorySelector
from pharmacy_kernel.services.medicine_service import MedicineService
from pharmacy_kernel.services.order_service import OrderService
from pharmacy_kernel.services.party_service import PartyService
from pharmacy_kernel.services.purchase_reconciler import PurchaseReconciler
from pharmacy_kernel.services.sale_reconciler import SaleReconciler

logger = get_logger("services.orchestrator")


@dataclass(frozen=True)
class KernelServices:
    """Kernel services bound to one transaction's session."""

    session: Session
    medicines: MedicineService
    parties: PartyService
    orders: OrderService
    purchases: PurchaseReconciler
    sales: SaleReconciler


class InventoryOrchestrator:
    """Public operations of the inventory system, one transaction each.

    Contract:
        Receives a session factory, a Clock and the pricing and stock
        policies.  Every public method is a complete unit of work.

    Guarantees:
        - All kernel services of one operation share one Session and Clock.
        - Commit on success, rollback on any exception.

    Non-goals:
        - Does NOT authorize callers; the caller decides allow/deny before
          invoking an operation.
        - Does NOT retry.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
        pricing: PricingPolicy | None = None,
        stock: StockPolicy | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.clock = clock or SystemClock()
        self.pricing = pricing or PricingPolicy()
        self.stock = stock or StockPolicy()

    @property
    def session_factory(self) -> sessionmaker[Session]:
        return self._session_factory or get_session_factory()

    # ------------------------------------------------------------------
    # Transaction scopes
    # ------------------------------------------------------------------

    @contextmanager
    def unit_of_work(
        self, operation: str, actor_id: UUID, **context: object
    ) -> Iterator[KernelServices]:
        """Open a transaction and yield the kernel services bound to it."""
        with LogContext.bind(
            correlation_id=str(uuid4()),
            operation=operation,
            actor_id=str(actor_id),
            **{k: str(v) for k, v in context.items() if v is not None},
        ):
            with session_scope(self.session_factory) as session:
                yield self._build_services(session)
            logger.info("operation_committed")

    @contextmanager
    def snapshot(self) -> Iterator[InventorySelector]:
        """Read-only transaction for reports that must see one state."""
        with snapshot_scope(self.session_factory) as session:
            yield InventorySelector(session)

    def _build_services(self, session: Session) -> KernelServices:
        return KernelServices(
            session=session,
            medicines=MedicineService(session, self.clock),
            parties=PartyService(session, self.clock),
            orders=OrderService(session, self.clock),
            purchases=PurchaseReconciler(session, self.clock, self.pricing, self.stock),
            sales=SaleReconciler(session, self.clock, self.pricing, self.stock),
        )

    # ------------------------------------------------------------------
    # Purchases
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
        with self.unit_of_work("create_purchase", actor_id, order_id=order_id) as k:
            return k.purchases.create_purchase(
                order_id,
                actor_id,
                purchased_pack_size_quantity,
                price_per_pack_size,
                issue_unit_per_pack_size,
                expiry_date,
            )

    def update_purchase(
        self,
        purchase_id: UUID,
        actor_id: UUID,
        purchased_pack_size_quantity: int | None = None,
        price_per_pack_size: Decimal | None = None,
        issue_unit_per_pack_size: int | None = None,
        expiry_date: date | None = None,
    ) -> PurchaseRecord:
        with self.unit_of_work("update_purchase", actor_id) as k:
            return k.purchases.update_purchase(
                purchase_id,
                actor_id,
                purchased_pack_size_quantity=purchased_pack_size_quantity,
                price_per_pack_size=price_per_pack_size,
                issue_unit_per_pack_size=issue_unit_per_pack_size,
                expiry_date=expiry_date,
            )

    def remove_purchase(self, purchase_id: UUID, actor_id: UUID) -> PurchaseRecord:
        with self.unit_of_work("remove_purchase", actor_id) as k:
            return k.purchases.remove_purchase(purchase_id, actor_id)

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def create_sales(
        self,
        actor_id: UUID,
        lines: Sequence[SaleLine | Mapping[str, object]],
    ) -> list[SaleRecord]:
        with self.unit_of_work("create_sales", actor_id) as k:
            return k.sales.create_sales(actor_id, lines)

    def update_sale(
        self,
        sale_id: UUID,
        actor_id: UUID,
        issue_unit_quantity: int | None = None,
        status: SaleStatus | str | None = None,
    ) -> SaleRecord:
        with self.unit_of_work("update_sale", actor_id) as k:
            return k.sales.update_sale(
                sale_id, actor_id, issue_unit_quantity=issue_unit_quantity, status=status
            )

    def remove_sale(self, sale_id: UUID, actor_id: UUID) -> SaleRecord:
        with self.unit_of_work("remove_sale", actor_id) as k:
            return k.sales.remove_sale(sale_id, actor_id)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(
        self,
        actor_id: UUID,
        medicine_id: UUID,
        supplier_id: UUID,
        order_quantity: int,
    ) -> OrderInfo:
        with self.unit_of_work("create_order", actor_id, medicine_id=medicine_id) as k:
            return k.orders.create_order(actor_id, medicine_id, supplier_id, order_quantity)

    def update_order_quantity(
        self, order_id: UUID, actor_id: UUID, order_quantity: int
    ) -> OrderInfo:
        with self.unit_of_work("update_order_quantity", actor_id, order_id=order_id) as k:
            return k.orders.update_order_quantity(order_id, actor_id, order_quantity)

    def cancel_order(self, order_id: UUID, actor_id: UUID) -> OrderInfo:
        with self.unit_of_work("cancel_order", actor_id, order_id=order_id) as k:
            return k.orders.cancel_order(order_id, actor_id)

    def delete_order(self, order_id: UUID, actor_id: UUID) -> OrderInfo:
        with self.unit_of_work("delete_order", actor_id, order_id=order_id) as k:
            return k.orders.delete_order(order_id, actor_id)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def create_medicine(
        self,
        actor_id: UUID,
        name: str,
        dose_form: DoseForm | str,
        strength: str,
        therapeutic_class: str | None = None,
        pack_size: str | None = None,
        level_of_use: int | None = None,
    ) -> MedicineSnapshot:
        with self.unit_of_work("create_medicine", actor_id) as k:
            return k.medicines.create_medicine(
                actor_id,
                name,
                dose_form,
                strength,
                therapeutic_class=therapeutic_class,
                pack_size=pack_size,
                level_of_use=level_of_use,
            )

    def update_medicine(
        self, medicine_id: UUID, actor_id: UUID, **changes: object
    ) -> MedicineSnapshot:
        with self.unit_of_work("update_medicine", actor_id, medicine_id=medicine_id) as k:
            return k.medicines.update_medicine(medicine_id, actor_id, **changes)

    def remove_medicine(self, medicine_id: UUID, actor_id: UUID) -> MedicineSnapshot:
        with self.unit_of_work("remove_medicine", actor_id, medicine_id=medicine_id) as k:
            return k.medicines.remove_medicine(medicine_id, actor_id)

    # ------------------------------------------------------------------
    # Parties
    # ------------------------------------------------------------------

    def create_customer(self, actor_id: UUID, name: str, **details: str | None) -> PartyInfo:
        with self.unit_of_work("create_customer", actor_id) as k:
            return k.parties.create_party(actor_id, PartyType.CUSTOMER, name, **details)

    def create_supplier(self, actor_id: UUID, name: str, **details: str | None) -> PartyInfo:
        with self.unit_of_work("create_supplier", actor_id) as k:
            return k.parties.create_party(actor_id, PartyType.SUPPLIER, name, **details)

    def update_party(self, party_id: UUID, actor_id: UUID, **changes: str | None) -> PartyInfo:
        with self.unit_of_work("update_party", actor_id) as k:
            return k.parties.update_party(party_id, actor_id, **changes)

    def remove_party(self, party_id: UUID, actor_id: UUID) -> PartyInfo:
        with self.unit_of_work("remove_party", actor_id) as k:
            return k.parties.remove_party(party_id, actor_id)


def build_inventory_orchestrator(
    name: str = "default",
    config_dir: Path | None = None,
    clock: Clock | None = None,
) -> InventoryOrchestrator:
    """Build an InventoryOrchestrator from configuration.

    Loads config via ``get_active_config()``, initializes the engine from
    ``database.url``, configures logging at ``logging.level`` and turns the
    pricing and stock sections into kernel policies.
    """
    from pharmacy_config import get_active_config
    from pharmacy_config.bridges import build_pricing_policy, build_stock_policy

    config = get_active_config(name, config_dir=config_dir)
    configure_logging(level=logging.getLevelName(config.logging.level))
    init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )
    return InventoryOrchestrator(
        session_factory=get_session_factory(),
        clock=clock or SystemClock(),
        pricing=build_pricing_policy(config),
        stock=build_stock_policy(config),
    )
