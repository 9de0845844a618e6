"""
Module: payroll_kernel.db.base
Responsibility: Declarative base for every payroll table: UUID primary keys,
    the Python-type to column-type map, and the audit columns shared by all
    tracked rows (who created or last touched a row, and when).
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  MUST NOT import from models/, services/, selectors/ or domain/.

Invariants enforced:
    - Primary keys are uuid4 values, stored as 36-character strings so the
      same schema runs on PostgreSQL and SQLite.
    - Decimal annotations become Numeric(38, 9).  Money is never a float.
    - Audit columns are metadata, not payroll data.  They are the only
      columns db/immutability.py lets change on a PaymentRecord.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """A UUID column stored as its canonical string form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Declarative base; every payroll row gets a uuid4 ``id``."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        date: Date(),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Abstract base for rows written on behalf of an operator.

    ``created_by_id`` is the actor of the request that inserted the row and
    is required; ``updated_by_id`` is set by whichever service last changed
    it (ledger rows after every settlement, staff rows on salary edits).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    created_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    updated_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
