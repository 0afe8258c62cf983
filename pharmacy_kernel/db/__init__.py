"""Database layer - engine, base classes, and soft-delete mixin."""

from pharmacy_kernel.db.base import UUID, Base, SoftDeleteMixin, TrackedBase, UUIDString
from pharmacy_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
    snapshot_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "session_scope",
    "snapshot_scope",
    "Base",
    "TrackedBase",
    "SoftDeleteMixin",
    "UUIDString",
    "UUID",
]
