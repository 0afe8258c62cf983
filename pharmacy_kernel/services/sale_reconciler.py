"""
SaleReconciler -- applies customer sales to the medicine ledger.

Responsibility:
    Issuing a batch of sales, editing a sale, and removing (cancelling) a
    sale.  Each operation moves issue units out of or back into stock and
    recomputes the pack count from the issue-unit count.

Architecture position:
    Kernel > Services -- imperative shell.  Consumes PartyService and
    MedicineService for lookups and ``pricing`` for line totals.

Invariants enforced:
    NON_NEGATIVE_STOCK -- a sale that would leave zero or fewer issue units
                          is refused; a sale is also refused while fewer
                          than ``min_pack_size_stock_for_sale`` packs remain.
    LOCK_ORDERING      -- all medicines of a batch are locked in ascending
                          id order before the first line is evaluated; an
                          edit locks the sale, then its medicine.

Failure modes:
    - InvalidPayloadError for an empty batch or a non-positive quantity.
    - PartyNotFoundError, MedicineNotFoundError, SaleNotFoundError.
    - InsufficientStockError, ExpiredMedicineError, SaleCancelledError.
    A failing line fails the whole batch; the caller rolls back.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pharmacy_kernel.domain.clock import Clock
from pharmacy_kernel.domain.dtos import SaleLine, SaleRecord
from pharmacy_kernel.domain.policies import StockPolicy
from pharmacy_kernel.domain.pricing import PricingPolicy, line_total
from pharmacy_kernel.domain.validation import require_positive_int
from pharmacy_kernel.domain.values import PartyType, SaleStatus
from pharmacy_kernel.exceptions import (
    ExpiredMedicineError,
    InsufficientStockError,
    InvalidPayloadError,
    MedicineNotFoundError,
    SaleCancelledError,
    SaleNotFoundError,
)
from pharmacy_kernel.logging_config import get_logger
from pharmacy_kernel.models.medicine import Medicine
from pharmacy_kernel.models.sale import Sale
from pharmacy_kernel.services.base import BaseService
from pharmacy_kernel.services.medicine_service import MedicineService
from pharmacy_kernel.services.party_service import PartyService

logger = get_logger("services.sale")


class SaleReconciler(BaseService[Sale]):
    """
    Reconciles customer sales against the medicine ledger.

    Contract:
        Lines of a batch are applied sequentially in input order, so a
        medicine appearing twice sees the first line's decrement.

    Guarantees:
        - Each sale snapshots the issue-unit selling price at the time it
          is issued or edited.
        - pack_size_quantity is recomputed as floor(issue units / factor)
          after every stock movement.
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
        self._parties = PartyService(session, self.clock)
        self._medicines = MedicineService(session, self.clock)

    def get_model(self, sale_id: UUID, *, lock: bool = False) -> Sale:
        sale = self._load_live(Sale, sale_id, lock=lock)
        if sale is None:
            raise SaleNotFoundError(str(sale_id))
        return sale

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_sales(
        self,
        actor_id: UUID,
        lines: Sequence[SaleLine | Mapping[str, object]],
    ) -> list[SaleRecord]:
        """
        Issue a batch of sales.

        Raises:
            InvalidPayloadError, PartyNotFoundError, MedicineNotFoundError,
            InsufficientStockError, ExpiredMedicineError.
        """
        sale_lines = [_coerce_line(line) for line in lines]
        if not sale_lines:
            raise InvalidPayloadError("lines", list(lines), "at least one sale line is required")

        locked = self._lock_medicines({line.medicine_id for line in sale_lines})

        records: list[SaleRecord] = []
        for index, line in enumerate(sale_lines):
            self._parties.get_model(line.customer_id, PartyType.CUSTOMER)
            medicine = locked.get(line.medicine_id)
            if medicine is None:
                raise MedicineNotFoundError(str(line.medicine_id))

            self._check_saleable(medicine, line.issue_unit_quantity)
            unit_price, total = self._deduct(medicine, line.issue_unit_quantity, actor_id)

            sale = Sale(
                medicine_id=medicine.id,
                customer_id=line.customer_id,
                issue_unit_quantity=line.issue_unit_quantity,
                issue_unit_price=unit_price,
                total_price=total,
                status=SaleStatus.ISSUED.value,
                sale_date=self.clock.now(),
                created_by_id=actor_id,
            )
            self.session.add(sale)
            self.session.flush()

            logger.info(
                "sale_created",
                extra={
                    "sale_id": str(sale.id),
                    "line_index": index,
                    "medicine_id": str(medicine.id),
                    "customer_id": str(line.customer_id),
                    "quantity": line.issue_unit_quantity,
                    "total_price": total,
                    "issue_unit_remaining": medicine.issue_unit_quantity,
                },
            )
            records.append(SaleRecord.from_model(sale))

        return records

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_sale(
        self,
        sale_id: UUID,
        actor_id: UUID,
        issue_unit_quantity: int | None = None,
        status: SaleStatus | str | None = None,
    ) -> SaleRecord:
        """
        Edit a sale's quantity or status.

        The previous quantity is returned to stock first.  A new status of
        CANCELLED keeps it there; otherwise the new quantity is deducted and
        the price is re-snapshotted.

        Raises:
            InvalidPayloadError, SaleNotFoundError, SaleCancelledError,
            MedicineNotFoundError, InsufficientStockError.
        """
        if issue_unit_quantity is not None:
            require_positive_int(issue_unit_quantity, "issue_unit_quantity")
        new_status = _sale_status(status) if status is not None else None

        sale = self.get_model(sale_id, lock=True)
        if sale.is_cancelled:
            raise SaleCancelledError(str(sale.id))
        medicine = self._medicines.get_model(sale.medicine_id, lock=True)

        previous_quantity = sale.issue_unit_quantity
        self._restore(medicine, previous_quantity, actor_id)

        if new_status == SaleStatus.CANCELLED:
            sale.status = SaleStatus.CANCELLED.value
            sale.updated_by_id = actor_id
            self.session.flush()
            logger.info(
                "sale_cancelled",
                extra={
                    "sale_id": str(sale.id),
                    "medicine_id": str(medicine.id),
                    "restored_quantity": previous_quantity,
                },
            )
            return SaleRecord.from_model(sale)

        quantity = issue_unit_quantity if issue_unit_quantity is not None else previous_quantity
        unit_price, total = self._deduct(medicine, quantity, actor_id)

        sale.issue_unit_quantity = quantity
        sale.issue_unit_price = unit_price
        sale.total_price = total
        if new_status is not None:
            sale.status = new_status.value
        sale.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "sale_updated",
            extra={
                "sale_id": str(sale.id),
                "medicine_id": str(medicine.id),
                "previous_quantity": previous_quantity,
                "quantity": quantity,
                "total_price": total,
            },
        )
        return SaleRecord.from_model(sale)

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    def remove_sale(self, sale_id: UUID, actor_id: UUID) -> SaleRecord:
        """Cancel a sale, returning its issue units to stock unless the
        policy says otherwise.

        Raises:
            SaleNotFoundError, SaleCancelledError.
        """
        sale = self.get_model(sale_id, lock=True)
        if sale.is_cancelled:
            raise SaleCancelledError(str(sale.id))

        restored = 0
        if self.stock.restore_stock_on_sale_removal:
            medicine = self._medicines.get_model(sale.medicine_id, lock=True)
            self._restore(medicine, sale.issue_unit_quantity, actor_id)
            restored = sale.issue_unit_quantity

        sale.status = SaleStatus.CANCELLED.value
        sale.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "sale_removed",
            extra={
                "sale_id": str(sale.id),
                "medicine_id": str(sale.medicine_id),
                "restored_quantity": restored,
            },
        )
        return SaleRecord.from_model(sale)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_medicines(self, medicine_ids: set[UUID]) -> dict[UUID, Medicine]:
        """SELECT ... FOR UPDATE every live medicine of the batch, id-ordered."""
        rows = self.session.execute(
            select(Medicine)
            .where(Medicine.id.in_(sorted(medicine_ids, key=str)), Medicine.live())
            .order_by(Medicine.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars()
        return {medicine.id: medicine for medicine in rows}

    def _check_saleable(self, medicine: Medicine, requested: int) -> None:
        if medicine.pack_size_quantity < self.stock.min_pack_size_stock_for_sale:
            logger.warning(
                "sale_rejected_low_stock",
                extra={
                    "medicine_id": str(medicine.id),
                    "pack_size_quantity": medicine.pack_size_quantity,
                    "minimum": self.stock.min_pack_size_stock_for_sale,
                },
            )
            raise InsufficientStockError(
                str(medicine.id),
                medicine.issue_unit_quantity,
                requested,
                "pack size stock below the sale minimum",
            )

        if medicine.is_expired(self.clock.today()):
            logger.warning(
                "sale_rejected_expired_medicine",
                extra={
                    "medicine_id": str(medicine.id),
                    "expiry_date": medicine.expiry_date,
                },
            )
            raise ExpiredMedicineError(str(medicine.id), str(medicine.expiry_date))

    def _deduct(
        self, medicine: Medicine, quantity: int, actor_id: UUID
    ) -> tuple[Decimal, Decimal]:
        """Take ``quantity`` issue units out of stock; return (unit price, total)."""
        remaining = medicine.issue_unit_quantity - quantity
        if remaining <= 0:
            logger.warning(
                "sale_rejected_insufficient_stock",
                extra={
                    "medicine_id": str(medicine.id),
                    "available": medicine.issue_unit_quantity,
                    "requested": quantity,
                },
            )
            raise InsufficientStockError(
                str(medicine.id),
                medicine.issue_unit_quantity,
                quantity,
                "sale would exhaust stock",
            )

        unit_price = medicine.issue_unit_selling_price
        total = line_total(unit_price, quantity, self.pricing)
        medicine.set_issue_unit_quantity(remaining)
        medicine.set_pack_size_quantity(_packs(medicine, remaining))
        medicine.updated_by_id = actor_id
        return unit_price, total

    def _restore(self, medicine: Medicine, quantity: int, actor_id: UUID) -> None:
        restored = medicine.issue_unit_quantity + quantity
        medicine.set_issue_unit_quantity(restored)
        medicine.set_pack_size_quantity(_packs(medicine, restored))
        medicine.updated_by_id = actor_id


def _packs(medicine: Medicine, issue_units: int) -> int:
    # No factor before the first purchase; the pack count is left alone.
    if medicine.issue_unit_per_pack_size <= 0:
        return medicine.pack_size_quantity
    return issue_units // medicine.issue_unit_per_pack_size


def _coerce_line(line: SaleLine | Mapping[str, object]) -> SaleLine:
    if isinstance(line, SaleLine):
        sale_line = line
    elif isinstance(line, Mapping):
        try:
            sale_line = SaleLine(
                medicine_id=_as_uuid("medicine_id", line["medicine_id"]),
                customer_id=_as_uuid("customer_id", line["customer_id"]),
                issue_unit_quantity=line["issue_unit_quantity"],
            )
        except KeyError as exc:
            raise InvalidPayloadError(str(exc.args[0]), None, "is required") from None
    else:
        raise InvalidPayloadError("line", line, "must be a SaleLine or a mapping")
    require_positive_int(sale_line.issue_unit_quantity, "issue_unit_quantity")
    return sale_line


def _sale_status(value: object) -> SaleStatus:
    try:
        return SaleStatus(value)
    except ValueError:
        raise InvalidPayloadError("status", value, "unknown sale status") from None


def _as_uuid(field: str, value: object) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise InvalidPayloadError(field, value, "must be a UUID") from None
