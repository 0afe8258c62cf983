"""
Module: pharmacy_kernel.db.base
Responsibility: ORM foundations shared by the inventory tables: the UUID
    column type, the declarative base, creator/editor tracking, and the
    tombstone every catalog, order, purchase and sale row carries.
Architecture position: Kernel > DB.  Imported by every model; imports
    nothing from the kernel.

Invariants enforced:
    - Ids are uuid4 values stored as 36-character strings, so the same
      schema runs on SQLite and PostgreSQL.
    - Money and margins are Numeric(38, 9).  Floats never reach a column.
    - A tombstoned row keeps its first ``deleted_at``; lookups exclude it
      through ``live()``.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.types import TypeDecorator

UUID = PyUUID


class UUIDString(TypeDecorator):
    """UUID on the Python side, ``VARCHAR(36)`` in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        return None if value is None else str(value)

    def process_result_value(self, value: Any, dialect: Dialect) -> PyUUID | None:
        if value is None or isinstance(value, PyUUID):
            return value
        return PyUUID(value)


class Base(DeclarativeBase):
    """Declarative base.  Python annotations decide the column types."""

    type_annotation_map: ClassVar[dict] = {
        PyUUID: UUIDString(),
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Rows that remember who created them and who touched them last.

    Timestamps come from the database clock; the actor ids come from the
    service call that made the change.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
    created_by_id: Mapped[PyUUID]
    updated_by_id: Mapped[PyUUID | None]


class SoftDeleteMixin:
    """Tombstone for rows that removal must keep for history."""

    deleted_at: Mapped[datetime | None] = mapped_column(default=None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, deleted_at: datetime) -> None:
        """Stamp the tombstone.  A row already removed keeps its first stamp."""
        if self.deleted_at is None:
            self.deleted_at = deleted_at

    @classmethod
    def live(cls) -> ColumnElement[bool]:
        """WHERE clause for rows that have not been removed."""
        return cls.deleted_at.is_(None)
