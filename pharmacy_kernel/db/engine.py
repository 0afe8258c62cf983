"""
Module: pharmacy_kernel.db.engine
Responsibility: One engine and session factory per process, plus the two
    transaction scopes the orchestrator runs operations in.
Architecture position: Kernel > DB.  Imports db/base.py and, for table
    creation only, the models package.

Invariants enforced:
    - PostgreSQL connections run at READ COMMITTED; the reconcilers take
      the row locks they need with SELECT ... FOR UPDATE.
    - On SQLite the database write lock serializes writers.  BEGIN is
      issued by SQLAlchemy so savepoints and reads are transactional.
    - session_scope() commits once at the end or rolls everything back.
    - snapshot_scope() never writes; on PostgreSQL it reads one
      REPEATABLE READ snapshot.

Failure modes:
    - RuntimeError from any accessor used before init_engine_from_url().
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pharmacy_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def _engine_options(url: URL, **pool: Any) -> dict[str, Any]:
    if url.get_backend_name() != "sqlite":
        return {"isolation_level": "READ COMMITTED", **pool}
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        # One shared connection, or every session sees an empty database.
        options["poolclass"] = StaticPool
    return options


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """Create the process engine and session factory, replacing any previous one.

    Pool settings apply to PostgreSQL only.
    """
    global _engine, _session_factory

    url = make_url(database_url)
    reset_engine()
    _engine = create_engine(
        url,
        echo=echo,
        **_engine_options(
            url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
        ),
    )
    if url.get_backend_name() == "sqlite":
        _explicit_sqlite_begin(_engine)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": url.get_backend_name(),
            "database": url.database,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
        },
    )
    return _engine


def _explicit_sqlite_begin(engine: Engine) -> None:
    # pysqlite would otherwise delay BEGIN to the first write.
    @event.listens_for(engine, "connect")
    def _autocommit_driver(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for worker threads that each need their own session."""
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """
    Run a block as one transaction.

    Commits when the block finishes, rolls back and re-raises when it
    raises.  The services inside only flush, so this commit is the single
    point where a reconciliation becomes visible.
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


@contextmanager
def snapshot_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """A read-only transaction for reports; always rolled back."""
    session = (factory or get_session_factory())()
    try:
        if session.get_bind().dialect.name == "postgresql":
            session.execute(text("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ READ ONLY"))
        yield session
    finally:
        session.rollback()
        session.close()


def create_tables() -> None:
    from pharmacy_kernel.db.base import Base
    import pharmacy_kernel.models  # noqa: F401  registers the tables

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables() -> None:
    """Drop every inventory table.  Tests only."""
    from pharmacy_kernel.db.base import Base
    import pharmacy_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
