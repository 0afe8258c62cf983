"""
BaseService -- abstract base for all kernel write services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write service in the kernel layer.  All concrete services receive
    a SQLAlchemy ``Session`` that they use via ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    ATOMIC_RECONCILIATION -- services flush within the caller's transaction
        and never commit or roll back themselves.  The caller
        (InventoryOrchestrator or a test harness) owns commit/rollback.

Failure modes:
    - If a subclass calls ``session.commit()``, a failure later in the same
      reconciliation would leave partial state behind.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pharmacy_kernel.db.base import Base
from pharmacy_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` and a ``Clock`` from the caller and
        uses ``session.flush()`` to persist changes within the active
        transaction.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Does NOT provide report queries -- those belong in
          ``pharmacy_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _load_live(
        self,
        model: type[ModelType],
        entity_id: UUID,
        *,
        lock: bool = False,
    ) -> ModelType | None:
        """Fetch a non-tombstoned row by id, optionally SELECT ... FOR UPDATE.

        A locked load refreshes any copy already in the identity map, so the
        caller sees the values committed before the lock was granted.
        """
        stmt = select(model).where(model.id == entity_id, model.live())
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()
