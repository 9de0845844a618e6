"""
Pytest fixtures for the payroll kernel test suite.

Provides:
- A session-scoped engine and schema
- Per-test data cleanup (settlements commit for real, so there is no
  rollback-isolation trick here)
- Staff, attendance, leave period and payment account factories
- A SettlementReconciler wired to a deterministic clock

Environment Variables:
- DATABASE_URL: SQLAlchemy URL of the test database.  If not set, a SQLite
  file in a temporary directory is used.

SQLite note: every transaction starts with BEGIN IMMEDIATE, so a test must
close (or commit) its own ``session`` before calling the reconciler, or the
reconciler will wait on the test's write lock.
"""

import json
import logging
import os
from decimal import Decimal
from datetime import date, datetime, timezone
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy import select, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session

from payroll_kernel.config import PayrollSettings
from payroll_kernel.db.base import Base
from payroll_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from payroll_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from payroll_kernel.domain.clock import DeterministicClock
from payroll_kernel.domain.values import (
    AttendanceStatus,
    LeaveType,
    PaymentMode,
    SettlementRequest,
    SettlementType,
)
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_kernel.models import (
    AdvanceBalance,
    AttendanceRecord,
    CarryForwardBalance,
    LeavePeriod,
    PaymentAccount,
    Staff,
)
from payroll_kernel.services.ledger_service import LedgerService
from payroll_kernel.services.settlement_reconciler import SettlementReconciler

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

DEFAULT_SALARY = Decimal("15000")
DEFAULT_JOINING_DATE = date(2023, 1, 1)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, reconciler):
            reconciler.settle(...)
            logs = captured_logs()
            assert any(r["message"] == "settlement_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Session-scoped DB infrastructure
# =============================================================================


def get_database_url(tmp_dir) -> str:
    """DATABASE_URL from the environment, or a throwaway SQLite file."""
    return os.environ.get("DATABASE_URL") or f"sqlite:///{tmp_dir / 'payroll_test.db'}"


def _kill_orphaned_connections(url: str) -> None:
    """Terminate leftover backends of a previous run (PostgreSQL only)."""
    import psycopg2

    parsed = make_url(url)
    conn = psycopg2.connect(
        dbname="postgres",
        user=parsed.username,
        password=parsed.password,
        host=parsed.host or "localhost",
        port=parsed.port or 5432,
    )
    conn.autocommit = True
    cur = conn.cursor()
    cur.execute(
        """
        SELECT pg_terminate_backend(pid)
        FROM pg_stat_activity
        WHERE datname = %s
        AND pid <> pg_backend_pid()
        """,
        (parsed.database,),
    )
    cur.close()
    conn.close()


@pytest.fixture(scope="session")
def database_url(tmp_path_factory) -> str:
    return get_database_url(tmp_path_factory.mktemp("payroll_db"))


@pytest.fixture(scope="session")
def db_engine(database_url):
    """Single engine for the entire test session."""
    if make_url(database_url).get_backend_name() == "postgresql":
        _kill_orphaned_connections(database_url)
    eng = init_engine_from_url(
        database_url,
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
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()
    drop_tables()


def _delete_all_rows(engine) -> None:
    """
    Remove all rows after a test.

    Core-level statements bypass the ORM immutability listeners.
    """
    tables = list(reversed(Base.metadata.sorted_tables))
    with engine.begin() as conn:
        if engine.dialect.name == "postgresql":
            conn.execute(text("TRUNCATE " + ", ".join(t.name for t in tables) + " CASCADE"))
        else:
            for table in tables:
                conn.execute(table.delete())


@pytest.fixture
def db(db_engine, db_tables):
    """Schema available for this test; all data removed afterwards."""
    yield db_engine
    _delete_all_rows(db_engine)


@pytest.fixture
def session_factory(db):
    return get_session_factory()


@pytest.fixture
def session(db) -> Generator[Session, None, None]:
    """A plain session.  Rolled back and closed at teardown."""
    s = get_session_factory()()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Common fixtures
# =============================================================================


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(datetime(2024, 1, 31, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings(database_url) -> PayrollSettings:
    return PayrollSettings(
        database_url=database_url,
        max_settlement_attempts=3,
        retry_backoff_seconds=Decimal("0"),
    )


@pytest.fixture
def reconciler(session_factory, settings, deterministic_clock) -> SettlementReconciler:
    return SettlementReconciler(session_factory, settings, deterministic_clock)


# =============================================================================
# Data factories (each commits its own short transaction)
# =============================================================================


@pytest.fixture
def create_staff(db, test_actor_id):
    """
    Factory fixture: register a staff member and open both ledgers.

    Returns the staff id.
    """

    def _create(
        monthly_salary: Decimal = DEFAULT_SALARY,
        name: str = "Test Staff",
        is_active: bool = True,
        date_of_joining: date | None = DEFAULT_JOINING_DATE,
        open_ledgers: bool = True,
    ) -> UUID:
        with session_scope() as s:
            staff = Staff(
                name=name,
                monthly_salary=monthly_salary,
                is_active=is_active,
                date_of_joining=date_of_joining,
                created_by_id=test_actor_id,
            )
            s.add(staff)
            s.flush()
            if open_ledgers:
                LedgerService(s).open_ledgers(staff.id, test_actor_id)
            return staff.id

    return _create


@pytest.fixture
def record_attendance(db, test_actor_id):
    """Factory fixture: record attendance for one or more days."""

    def _record(staff_id: UUID, status: AttendanceStatus, *days: date) -> None:
        with session_scope() as s:
            for day in days:
                s.add(
                    AttendanceRecord(
                        staff_id=staff_id,
                        attendance_date=day,
                        status=status.value,
                        created_by_id=test_actor_id,
                    )
                )

    return _record


@pytest.fixture
def add_leave_period(db, test_actor_id):
    """Factory fixture: record a leave period (both ends inclusive)."""

    def _add(
        staff_id: UUID,
        start: date,
        end: date,
        leave_type: LeaveType = LeaveType.UNPAID,
    ) -> None:
        with session_scope() as s:
            s.add(
                LeavePeriod(
                    staff_id=staff_id,
                    start_date=start,
                    end_date=end,
                    leave_type=leave_type.value,
                    created_by_id=test_actor_id,
                )
            )

    return _add


@pytest.fixture
def create_payment_account(db, test_actor_id):
    """Factory fixture: a receiving account for electronic transfers."""

    def _create(handle: str | None = None, is_active: bool = True) -> UUID:
        with session_scope() as s:
            account = PaymentAccount(
                account_name="Business UPI",
                handle=handle or f"shop-{uuid4().hex[:8]}@upi",
                is_active=is_active,
                created_by_id=test_actor_id,
            )
            s.add(account)
            s.flush()
            return account.id

    return _create


@pytest.fixture
def seed_balances(db, test_actor_id):
    """Factory fixture: set a staff member's ledger balances directly."""

    def _seed(
        staff_id: UUID,
        advance: Decimal = Decimal("0"),
        carry_forward: Decimal = Decimal("0"),
    ) -> None:
        with session_scope() as s:
            for model, value in (
                (AdvanceBalance, advance),
                (CarryForwardBalance, carry_forward),
            ):
                row = s.execute(
                    select(model).where(model.staff_id == staff_id)
                ).scalar_one()
                row.balance = value
                row.updated_by_id = test_actor_id

    return _seed


@pytest.fixture
def make_request(test_actor_id):
    """Factory fixture: a SettlementRequest with sensible defaults."""

    def _make(
        staff_id: UUID,
        settlement_type: SettlementType | str = SettlementType.SALARY,
        amount="14000",
        mode: PaymentMode | str = PaymentMode.CASH,
        period: tuple[int, int] | None = (1, 2024),
        idempotency_key: str | None = None,
        payment_account_id: UUID | None = None,
        notes: str | None = None,
    ) -> SettlementRequest:
        month, year = period if period is not None else (None, None)
        return SettlementRequest(
            staff_id=staff_id,
            settlement_type=settlement_type,
            amount=amount,
            mode=mode,
            idempotency_key=idempotency_key or f"settle-{uuid4()}",
            actor_id=test_actor_id,
            period_month=month,
            period_year=year,
            payment_account_id=payment_account_id,
            notes=notes,
        )

    return _make
