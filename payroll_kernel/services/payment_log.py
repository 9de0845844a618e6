"""
PaymentRecordLog -- append-only log of settlements.

Responsibility:
    Persists one immutable PaymentRecord per settlement, carrying the
    request, the salary computation snapshot and the ledger movement.

Architecture position:
    Kernel > Services -- imperative shell.  Called by SettlementReconciler
    after the ledger movement has been flushed, in the same transaction.

Invariants enforced:
    - Append-only: this service has no update or delete path, and the ORM
      listeners in db.immutability reject both.
    - The record is flushed immediately; any storage failure surfaces here
      as a SQLAlchemy error and aborts the caller's whole transaction.
"""

from uuid import UUID

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.values import (
    LedgerMovement,
    NetPayable,
    SettlementType,
    ValidatedSettlement,
)
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.payment import PaymentRecord
from payroll_kernel.services.base import BaseService

logger = get_logger("services.payment_log")


class PaymentRecordLog(BaseService[PaymentRecord]):
    """Writes PaymentRecords; never reads, updates or deletes them."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def append(
        self,
        settlement: ValidatedSettlement,
        movement: LedgerMovement,
        staff_sequence: int,
        salary: NetPayable | None = None,
    ) -> UUID:
        """
        Persist one record and return its id.

        Raises:
            sqlalchemy.exc.IntegrityError: duplicate idempotency key, salary
                period or staff sequence.
            sqlalchemy.exc.SQLAlchemyError: any other storage failure.
        """
        period = settlement.period
        is_salary = settlement.settlement_type is SettlementType.SALARY

        record = PaymentRecord(
            staff_id=settlement.staff_id,
            settlement_type=settlement.settlement_type.value,
            amount=settlement.amount,
            mode=settlement.mode.value,
            payment_account_id=settlement.payment_account_id,
            period_month=period.month if period else None,
            period_year=period.year if period else None,
            salary_period_key=period.key if is_salary else None,
            notes=settlement.notes,
            paid_at=self._clock.now_utc(),
            idempotency_key=settlement.idempotency_key,
            request_hash=settlement.request_hash,
            staff_sequence=staff_sequence,
            base_salary=salary.base_salary if salary else None,
            leave_days=salary.deduction.leave_days if salary else None,
            deduction_amount=salary.deduction.deduction_amount if salary else None,
            net_payable=movement.net_payable,
            shortfall=movement.shortfall,
            overpay=movement.overpay,
            advance_delta=movement.advance_delta,
            carry_forward_delta=movement.carry_forward_delta,
            advance_balance_after=movement.balances_after.advance,
            carry_forward_balance_after=movement.balances_after.carry_forward,
            created_by_id=settlement.actor_id,
        )
        self._persist(record)

        logger.info(
            "payment_record_appended",
            extra={
                "payment_record_id": str(record.id),
                "settlement_type": settlement.settlement_type.value,
                "amount": settlement.amount,
                "staff_sequence": staff_sequence,
            },
        )
        return record.id
