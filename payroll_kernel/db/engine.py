"""
Module: payroll_kernel.db.engine
Responsibility: The process-wide engine and session factory, and the two
    ways callers get a transaction out of them: ``session_scope()`` for
    setup and maintenance work, and ``get_session_factory()`` for the
    SettlementReconciler, which opens its own transaction per attempt.
Architecture position: Kernel > DB.

Backends:
    - PostgreSQL: READ COMMITTED.  Settlements serialize on row locks
      (``SELECT ... FOR UPDATE``) on the staff member's counter and ledger
      rows, so settlements for different staff run in parallel.
    - SQLite: every transaction starts with ``BEGIN IMMEDIATE`` and takes
      the database write lock up front.  ``FOR UPDATE`` is a no-op there,
      and without the early lock two settlements could both read a balance
      before either writes it.
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import Session, sessionmaker

from payroll_kernel.logging_config import configure_logging, get_logger

if TYPE_CHECKING:
    from payroll_kernel.config import PayrollSettings

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _sqlite_engine(url: URL, echo: bool, busy_timeout: int) -> Engine:
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"timeout": busy_timeout, "check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # pysqlite must not emit its own deferred BEGIN
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def _server_engine(url: URL, echo: bool, pool: dict) -> Engine:
    return create_engine(url, echo=echo, isolation_level="READ COMMITTED", **pool)


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    sqlite_busy_timeout: int = 30,
) -> Engine:
    """
    Create the engine and session factory, replacing any previous ones.

    Pool arguments apply to server backends only; ``sqlite_busy_timeout`` is
    how many seconds a SQLite writer waits for the database lock.  Also
    installs the ORM immutability listeners and JSON logging.
    """
    global _engine, _session_factory

    url = make_url(database_url)
    backend = url.get_backend_name()
    if backend == "sqlite":
        engine = _sqlite_engine(url, echo, sqlite_busy_timeout)
    else:
        engine = _server_engine(
            url,
            echo,
            {
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_pre_ping": pool_pre_ping,
                "pool_timeout": pool_timeout,
                "pool_recycle": pool_recycle,
            },
        )

    if _engine is not None:
        _engine.dispose()
    _engine = engine
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    from payroll_kernel.db.immutability import register_immutability_listeners

    register_immutability_listeners()
    configure_logging()
    logger.info("engine_initialized", extra={"backend": backend, "echo": echo})
    return engine


def init_engine_from_settings(settings: "PayrollSettings", **engine_options) -> Engine:
    """``init_engine_from_url(settings.database_url, ...)``."""
    return init_engine_from_url(settings.database_url, **engine_options)


def _not_initialized() -> RuntimeError:
    return RuntimeError("Engine not initialized. Call init_engine_from_url() first.")


def get_engine() -> Engine:
    if _engine is None:
        raise _not_initialized()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """
    The session factory handed to SettlementReconciler.

    Raises:
        RuntimeError: If no engine has been initialized.
    """
    if _session_factory is None:
        raise _not_initialized()
    return _session_factory


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    One transaction: commit on normal exit, rollback and re-raise otherwise.

    Usage:
        with session_scope() as session:
            LedgerService(session).open_ledgers(staff.id, actor_id)
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create every payroll table that does not exist yet."""
    from payroll_kernel.db.base import Base
    import payroll_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables() -> None:
    from payroll_kernel.db.base import Base
    import payroll_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
