"""
MedicineService -- catalog maintenance for medicines.

Responsibility:
    Create, update and tombstone catalog entries.  Inventory fields are
    never written here; they belong to the reconcilers.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.

Invariants enforced:
    - The live combination (name, dose_form, strength) is unique.
    - SOFT_DELETE -- remove_medicine tombstones the row.

Failure modes:
    - DuplicateMedicineError on a live duplicate.
    - MedicineNotFoundError for a missing or tombstoned id.
    - InvalidPayloadError for a blank name or strength.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from pharmacy_kernel.domain.dtos import MedicineSnapshot
from pharmacy_kernel.domain.values import DoseForm
from pharmacy_kernel.exceptions import (
    DuplicateMedicineError,
    InvalidPayloadError,
    MedicineNotFoundError,
)
from pharmacy_kernel.logging_config import get_logger
from pharmacy_kernel.models.medicine import Medicine
from pharmacy_kernel.services.base import BaseService

logger = get_logger("services.medicine")

_CATALOG_FIELDS = frozenset(
    {"name", "dose_form", "strength", "therapeutic_class", "pack_size", "level_of_use"}
)


class MedicineService(BaseService[Medicine]):
    """Catalog CRUD for medicines."""

    def get(self, medicine_id: UUID) -> MedicineSnapshot:
        return MedicineSnapshot.from_model(self.get_model(medicine_id))

    def get_model(self, medicine_id: UUID, *, lock: bool = False) -> Medicine:
        medicine = self._load_live(Medicine, medicine_id, lock=lock)
        if medicine is None:
            raise MedicineNotFoundError(str(medicine_id))
        return medicine

    def exists(self, medicine_id: UUID) -> bool:
        return self._load_live(Medicine, medicine_id) is not None

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
        name, strength = _required_text("name", name), _required_text("strength", strength)
        form = _dose_form(dose_form)
        self._assert_unique(name, form, strength)

        zero = Decimal("0")
        medicine = Medicine(
            name=name,
            dose_form=form.value,
            strength=strength,
            therapeutic_class=therapeutic_class,
            pack_size=pack_size,
            level_of_use=level_of_use,
            pack_size_quantity=0,
            issue_unit_quantity=0,
            issue_unit_per_pack_size=0,
            pack_size_purchase_price=zero,
            pack_size_selling_price=zero,
            issue_unit_purchase_price=zero,
            issue_unit_selling_price=zero,
            profit_per_pack_size=zero,
            profit_per_issue_unit=zero,
            expiry_date=None,
            created_by_id=actor_id,
        )
        self.session.add(medicine)
        self.session.flush()

        logger.info(
            "medicine_created",
            extra={"medicine_id": str(medicine.id), "medicine_name": name},
        )
        return MedicineSnapshot.from_model(medicine)

    def update_medicine(
        self, medicine_id: UUID, actor_id: UUID, **changes: object
    ) -> MedicineSnapshot:
        """Update catalog fields.  Inventory fields are rejected."""
        unknown = set(changes) - _CATALOG_FIELDS
        if unknown:
            field = sorted(unknown)[0]
            raise InvalidPayloadError(field, changes[field], "not an editable catalog field")

        medicine = self.get_model(medicine_id, lock=True)

        name = _required_text("name", changes.get("name", medicine.name))
        strength = _required_text("strength", changes.get("strength", medicine.strength))
        form = _dose_form(changes.get("dose_form", medicine.dose_form))
        if (name, form.value, strength) != (medicine.name, medicine.dose_form, medicine.strength):
            self._assert_unique(name, form, strength, exclude_id=medicine.id)

        medicine.name = name
        medicine.strength = strength
        medicine.dose_form = form.value
        for field in ("therapeutic_class", "pack_size", "level_of_use"):
            if field in changes:
                setattr(medicine, field, changes[field])
        medicine.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "medicine_updated",
            extra={"medicine_id": str(medicine.id), "fields": sorted(changes)},
        )
        return MedicineSnapshot.from_model(medicine)

    def remove_medicine(self, medicine_id: UUID, actor_id: UUID) -> MedicineSnapshot:
        medicine = self.get_model(medicine_id, lock=True)
        medicine.soft_delete(self.clock.now())
        medicine.updated_by_id = actor_id
        self.session.flush()

        logger.info("medicine_removed", extra={"medicine_id": str(medicine.id)})
        return MedicineSnapshot.from_model(medicine)

    def _assert_unique(
        self,
        name: str,
        dose_form: DoseForm,
        strength: str,
        exclude_id: UUID | None = None,
    ) -> None:
        stmt = (
            select(func.count())
            .select_from(Medicine)
            .where(
                Medicine.name == name,
                Medicine.dose_form == dose_form.value,
                Medicine.strength == strength,
                Medicine.live(),
            )
        )
        if exclude_id is not None:
            stmt = stmt.where(Medicine.id != exclude_id)
        if self.session.execute(stmt).scalar_one() > 0:
            logger.warning(
                "medicine_duplicate_rejected",
                extra={"medicine_name": name, "dose_form": dose_form.value},
            )
            raise DuplicateMedicineError(name, dose_form.value, strength)


def _required_text(field: str, value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidPayloadError(field, value, "must be a non-empty string")
    return value.strip()


def _dose_form(value: object) -> DoseForm:
    try:
        return DoseForm(value)
    except ValueError:
        raise InvalidPayloadError("dose_form", value, "unknown dose form") from None
