"""
Per-staff payment record numbering.

Each staff member has a counter row named ``payment_record:<staff_id>``.
SettlementReconciler bumps it under ``SELECT ... FOR UPDATE`` as the first
write of every settlement, and the row lock it takes is held until commit.
Two settlements for the same person therefore queue on this row before
either one reads a ledger balance; settlements for different people never
touch the same counter.

Numbers come only from the counter row, never from ``max(staff_sequence) + 1``.
A rolled-back settlement leaves the counter where it was, so the committed
history of a staff member is numbered 1..n without gaps.  The first
settlement of a new staff member creates the counter inside a savepoint;
if a concurrent first settlement wins that insert, the loser re-reads and
locks the winner's row.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")

PAYMENT_RECORD_SEQUENCE_PREFIX = "payment_record"


def payment_record_sequence(staff_id: UUID) -> str:
    """Name of the per-staff PaymentRecord sequence."""
    return f"{PAYMENT_RECORD_SEQUENCE_PREFIX}:{staff_id}"


class SequenceService:
    """
    Transactional counters keyed by name.

    Usage:
        with session.begin():
            seq = SequenceService(session).next_value(payment_record_sequence(staff_id))
            # the counter row stays locked until commit or rollback
    """

    def __init__(self, session: Session):
        self.session = session

    def _lock(self, name: str) -> SequenceCounter | None:
        stmt = (
            select(SequenceCounter)
            .where(SequenceCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.scalars(stmt).one_or_none()

    def _start(self, name: str) -> SequenceCounter | None:
        """Insert the counter at 1; None if a concurrent transaction inserted it first."""
        savepoint = self.session.begin_nested()
        counter = SequenceCounter(name=name, current_value=1)
        try:
            self.session.add(counter)
            self.session.flush()
        except IntegrityError:
            savepoint.rollback()
            logger.debug("sequence_create_lost_race", extra={"sequence_name": name})
            return None
        savepoint.commit()
        return counter

    def next_value(self, name: str) -> int:
        """
        Lock the named counter, creating it on first use, and return its next
        value.  The first value of a sequence is 1.
        """
        counter = self._lock(name)
        if counter is None:
            started = self._start(name)
            if started is not None:
                value = started.current_value
                logger.debug("sequence_allocated", extra={"sequence_name": name, "value": value})
                return value
            counter = self._lock(name)
            if counter is None:
                raise RuntimeError(f"sequence counter {name!r} vanished after insert race")

        counter.current_value += 1
        self.session.flush()
        value = counter.current_value
        logger.debug("sequence_allocated", extra={"sequence_name": name, "value": value})
        return value

    def current_value(self, name: str) -> int | None:
        """Last value handed out, without locking or incrementing; None if never used."""
        return self.session.scalar(
            select(SequenceCounter.current_value).where(SequenceCounter.name == name)
        )
