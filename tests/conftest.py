"""
Pytest fixtures for the pharmacy kernel test suite.

Provides:
- Database sessions for all tests (SQLite in memory by default)
- Service, selector and orchestrator fixtures
- Factory fixtures for suppliers, customers, medicines and orders

Environment Variables:
- DATABASE_URL: connection URL.  Defaults to an in-memory SQLite database.
  Point it at PostgreSQL (postgresql://...) to run the tests
  marked ``postgres`` as well; they are skipped on SQLite.
"""

import json
import logging
import os
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session

from pharmacy_kernel.db.base import Base
from pharmacy_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from pharmacy_kernel.domain.clock import DeterministicClock
from pharmacy_kernel.domain.policies import StockPolicy
from pharmacy_kernel.domain.pricing import PricingPolicy
from pharmacy_kernel.domain.values import DoseForm
from pharmacy_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from pharmacy_kernel.models.medicine import Medicine
from pharmacy_kernel.selectors.inventory_selector import InventorySelector
from pharmacy_kernel.services.medicine_service import MedicineService
from pharmacy_kernel.services.order_service import OrderService
from pharmacy_kernel.services.party_service import PartyService
from pharmacy_kernel.services.purchase_reconciler import PurchaseReconciler
from pharmacy_kernel.services.sale_reconciler import SaleReconciler
from pharmacy_services.inventory_orchestrator import InventoryOrchestrator

TEST_ACTOR_ID = uuid4()

DEFAULT_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    """DATABASE_URL, or an in-memory SQLite database."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def _is_postgres_url(url: str) -> bool:
    return url.startswith("postgresql")


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """JSON logging at DEBUG for the whole run."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """No test inherits the correlation id or actor of the one before."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Records logged under ``pharmacy_kernel`` during the test, as dicts.

    Call the fixture value to read what has been logged so far::

        purchase_reconciler.create_purchase(...)
        created = [r for r in captured_logs() if r["message"] == "purchase_created"]
    """
    buffer = StringIO()
    capture = logging.StreamHandler(buffer)
    capture.setFormatter(StructuredFormatter())
    namespace = logging.getLogger("pharmacy_kernel")
    namespace.addHandler(capture)
    try:
        yield lambda: [json.loads(line) for line in buffer.getvalue().splitlines() if line]
    finally:
        namespace.removeHandler(capture)


def pytest_configure(config):
    config.addinivalue_line("markers", "postgres: needs DATABASE_URL pointing at PostgreSQL")


def pytest_collection_modifyitems(config, items):
    """Skip PostgreSQL-only tests when DATABASE_URL is not PostgreSQL."""
    if _is_postgres_url(get_database_url()):
        return
    skip_pg = pytest.mark.skip(reason="requires DATABASE_URL pointing at PostgreSQL")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_pg)


# =============================================================================
# Engine and schema, once per run
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session.

    Pool is large enough for the PostgreSQL concurrency tests (30+20
    overflow); SQLite in memory runs on one shared connection.
    """
    eng = init_engine_from_url(
        get_database_url(),
        echo=False,
        pool_size=30,
        max_overflow=20,
        pool_timeout=10,
    )
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end."""
    drop_tables()
    create_tables()
    yield
    drop_tables()


def _clear_all_tables(engine):
    """Remove every row, for tests that perform real commits.

    PostgreSQL uses TRUNCATE ... CASCADE; SQLite has no TRUNCATE, so rows
    are deleted child tables first.
    """
    tables = list(reversed(Base.metadata.sorted_tables))
    if not tables:
        return
    with engine.begin() as conn:
        if engine.dialect.name == "postgresql":
            conn.execute(text("TRUNCATE " + ", ".join(t.name for t in tables) + " CASCADE"))
        else:
            for table in tables:
                conn.execute(table.delete())


# =============================================================================
# Rolled-back session per test
# =============================================================================


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Session for one test, inside a transaction that is always rolled back.

    Services only flush, so everything a test writes lives in the outer
    transaction on ``conn``; a ``session.commit()`` in a test only ends a
    savepoint.  Do not combine with ``orchestrator`` in one test: on
    SQLite both run on the same shared connection.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Real commits (orchestrator and concurrency tests)
# =============================================================================


@pytest.fixture(scope="function")
def committed_session_factory(db_engine, db_tables):
    """Session factory whose sessions really commit.  Rows are cleared at teardown."""
    yield get_session_factory()
    _clear_all_tables(db_engine)


@pytest.fixture
def orchestrator(committed_session_factory, deterministic_clock) -> InventoryOrchestrator:
    """InventoryOrchestrator with real commits and the deterministic clock."""
    return InventoryOrchestrator(
        session_factory=committed_session_factory,
        clock=deterministic_clock,
    )


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


# Clock fixtures


@pytest.fixture
def deterministic_clock():
    """2024-01-01 12:00 UTC until a test moves it."""
    return DeterministicClock()


@pytest.fixture
def today(deterministic_clock) -> date:
    return deterministic_clock.today()


@pytest.fixture
def next_year(today) -> date:
    """An expiry date safely in the future."""
    return today + timedelta(days=365)


# Policy fixtures


@pytest.fixture
def pricing_policy() -> PricingPolicy:
    return PricingPolicy()


@pytest.fixture
def stock_policy() -> StockPolicy:
    return StockPolicy()


# Service fixtures


@pytest.fixture
def medicine_service(session: Session, deterministic_clock) -> MedicineService:
    return MedicineService(session, deterministic_clock)


@pytest.fixture
def party_service(session: Session, deterministic_clock) -> PartyService:
    return PartyService(session, deterministic_clock)


@pytest.fixture
def order_service(session: Session, deterministic_clock) -> OrderService:
    return OrderService(session, deterministic_clock)


@pytest.fixture
def purchase_reconciler(
    session: Session, deterministic_clock, pricing_policy, stock_policy
) -> PurchaseReconciler:
    return PurchaseReconciler(session, deterministic_clock, pricing_policy, stock_policy)


@pytest.fixture
def sale_reconciler(
    session: Session, deterministic_clock, pricing_policy, stock_policy
) -> SaleReconciler:
    return SaleReconciler(session, deterministic_clock, pricing_policy, stock_policy)


# Selector fixtures


@pytest.fixture
def inventory_selector(session: Session) -> InventorySelector:
    return InventorySelector(session)


# =============================================================================
# Factory fixtures
# =============================================================================


@pytest.fixture
def create_supplier(party_service: PartyService, test_actor_id: UUID):
    """Factory fixture to create suppliers with unique names."""

    def _create(name: str | None = None, **details):
        return party_service.create_supplier(
            test_actor_id, name or f"Supplier {uuid4().hex[:8]}", **details
        )

    return _create


@pytest.fixture
def create_customer(party_service: PartyService, test_actor_id: UUID):
    """Factory fixture to create customers with unique names."""

    def _create(name: str | None = None, **details):
        return party_service.create_customer(
            test_actor_id, name or f"Customer {uuid4().hex[:8]}", **details
        )

    return _create


@pytest.fixture
def create_medicine(medicine_service: MedicineService, test_actor_id: UUID):
    """Factory fixture to create catalog medicines with empty ledgers."""

    def _create(
        name: str | None = None,
        dose_form: DoseForm = DoseForm.TABLET,
        strength: str = "500 mg",
        **catalog,
    ):
        return medicine_service.create_medicine(
            test_actor_id,
            name or f"Medicine {uuid4().hex[:8]}",
            dose_form,
            strength,
            **catalog,
        )

    return _create


@pytest.fixture
def create_order(
    order_service: OrderService, create_medicine, create_supplier, test_actor_id: UUID
):
    """Factory fixture to create PENDING orders.

    Creates a medicine and a supplier when none are given.
    """

    def _create(
        order_quantity: int = 50,
        medicine_id: UUID | None = None,
        supplier_id: UUID | None = None,
    ):
        if medicine_id is None:
            medicine_id = create_medicine().id
        if supplier_id is None:
            supplier_id = create_supplier().id
        return order_service.create_order(
            test_actor_id, medicine_id, supplier_id, order_quantity
        )

    return _create


@pytest.fixture
def stock_medicine(session: Session, next_year):
    """Put a medicine's ledger into a known state without a purchase.

    Pack count is derived from the issue units and the factor.
    """

    def _stock(
        medicine_id: UUID,
        issue_unit_quantity: int,
        issue_unit_per_pack_size: int = 10,
        issue_unit_selling_price: Decimal = Decimal("15"),
        expiry_date: date | None = None,
    ) -> Medicine:
        medicine = session.get(Medicine, medicine_id)
        medicine.set_issue_unit_per_pack_size(issue_unit_per_pack_size)
        medicine.set_issue_unit_quantity(issue_unit_quantity)
        medicine.set_pack_size_quantity(issue_unit_quantity // issue_unit_per_pack_size)
        medicine.set_selling_price(
            issue_unit_selling_price * issue_unit_per_pack_size, issue_unit_selling_price
        )
        medicine.set_expiry_date(expiry_date or next_year)
        session.flush()
        return medicine

    return _stock
