"""
Write side of the kernel.

Services mutate rows inside a transaction someone else opened.  They flush
so that constraint violations surface where they happen, and leave commit
and rollback to SettlementReconciler, which runs one transaction per
settlement attempt.  Ledger updates and the payment record therefore land
together or not at all.
"""

from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from payroll_kernel.db.base import Base

RowT = TypeVar("RowT", bound=Base)


class BaseService(Generic[RowT]):
    """Holds the caller's session.  Never commits."""

    def __init__(self, session: Session):
        self.session = session

    def _persist(self, *rows: Base) -> None:
        """Add rows to the unit of work and flush them immediately."""
        self.session.add_all(rows)
        self.session.flush()
