"""
PartyService -- customers and suppliers.

Responsibility:
    Create, update and tombstone parties, and answer the ``exists`` /
    ``get`` lookups the order service and sale reconciler depend on.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.

Invariants enforced:
    - Names are unique per party type among live rows.
    - SOFT_DELETE -- tombstoned parties are invisible to ``exists``/``get``.

Failure modes:
    - DuplicatePartyError on a live name clash within the same type.
    - PartyNotFoundError for a missing, tombstoned or wrong-type id.
"""

from uuid import UUID

from sqlalchemy import func, select

from pharmacy_kernel.domain.dtos import PartyInfo
from pharmacy_kernel.domain.values import PartyType
from pharmacy_kernel.exceptions import (
    DuplicatePartyError,
    InvalidPayloadError,
    PartyNotFoundError,
)
from pharmacy_kernel.logging_config import get_logger
from pharmacy_kernel.models.party import Party
from pharmacy_kernel.services.base import BaseService

logger = get_logger("services.party")

_EDITABLE_FIELDS = frozenset({"name", "phone", "email", "address"})


class PartyService(BaseService[Party]):
    """CRUD for customers and suppliers."""

    def create_party(
        self,
        actor_id: UUID,
        party_type: PartyType | str,
        name: str,
        phone: str | None = None,
        email: str | None = None,
        address: str | None = None,
    ) -> PartyInfo:
        kind = _party_type(party_type)
        name = _required_name(name)
        self._assert_unique(kind, name)

        party = Party(
            party_type=kind.value,
            name=name,
            phone=phone,
            email=email,
            address=address,
            created_by_id=actor_id,
        )
        self.session.add(party)
        self.session.flush()

        logger.info(
            "party_created",
            extra={"party_id": str(party.id), "party_type": kind.value},
        )
        return PartyInfo.from_model(party)

    def create_customer(self, actor_id: UUID, name: str, **details: str | None) -> PartyInfo:
        return self.create_party(actor_id, PartyType.CUSTOMER, name, **details)

    def create_supplier(self, actor_id: UUID, name: str, **details: str | None) -> PartyInfo:
        return self.create_party(actor_id, PartyType.SUPPLIER, name, **details)

    def update_party(
        self, party_id: UUID, actor_id: UUID, **changes: str | None
    ) -> PartyInfo:
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            field = sorted(unknown)[0]
            raise InvalidPayloadError(field, changes[field], "not an editable party field")

        party = self.get_model(party_id, lock=True)
        if "name" in changes:
            name = _required_name(changes["name"])
            if name != party.name:
                self._assert_unique(PartyType(party.party_type), name, exclude_id=party.id)
            changes["name"] = name

        for field, value in changes.items():
            setattr(party, field, value)
        party.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "party_updated",
            extra={"party_id": str(party.id), "fields": sorted(changes)},
        )
        return PartyInfo.from_model(party)

    def remove_party(self, party_id: UUID, actor_id: UUID) -> PartyInfo:
        party = self.get_model(party_id, lock=True)
        party.soft_delete(self.clock.now())
        party.updated_by_id = actor_id
        self.session.flush()

        logger.info("party_removed", extra={"party_id": str(party.id)})
        return PartyInfo.from_model(party)

    def get(self, party_id: UUID, party_type: PartyType | None = None) -> PartyInfo:
        return PartyInfo.from_model(self.get_model(party_id, party_type))

    def get_model(
        self,
        party_id: UUID,
        party_type: PartyType | None = None,
        *,
        lock: bool = False,
    ) -> Party:
        party = self._load_live(Party, party_id, lock=lock)
        if party is None or (party_type is not None and party.party_type != party_type):
            raise PartyNotFoundError(str(party_id))
        return party

    def exists(self, party_id: UUID, party_type: PartyType | None = None) -> bool:
        party = self._load_live(Party, party_id)
        if party is None:
            return False
        return party_type is None or party.party_type == party_type

    def _assert_unique(
        self, party_type: PartyType, name: str, exclude_id: UUID | None = None
    ) -> None:
        stmt = (
            select(func.count())
            .select_from(Party)
            .where(
                Party.party_type == party_type.value,
                Party.name == name,
                Party.live(),
            )
        )
        if exclude_id is not None:
            stmt = stmt.where(Party.id != exclude_id)
        if self.session.execute(stmt).scalar_one() > 0:
            logger.warning(
                "party_duplicate_rejected",
                extra={"party_type": party_type.value, "party_name": name},
            )
            raise DuplicatePartyError(party_type.value, name)


def _party_type(value: object) -> PartyType:
    try:
        return PartyType(value)
    except ValueError:
        raise InvalidPayloadError("party_type", value, "unknown party type") from None


def _required_name(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidPayloadError("name", value, "must be a non-empty string")
    return value.strip()
