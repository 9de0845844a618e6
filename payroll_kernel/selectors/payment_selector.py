"""
Module: payroll_kernel.selectors.payment_selector
Responsibility: Read access to the PaymentRecord log and the current ledger
    balances: payment history, idempotency lookups, per-period lookups.
Architecture position: Kernel > Selectors.

All reads return frozen DTOs.  Balance reads return zero for a ledger row
that does not exist yet.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from payroll_kernel.db.types import MONEY_DECIMAL_PLACES, ZERO, round_money
from payroll_kernel.domain.values import (
    LedgerBalances,
    PaymentMode,
    PayPeriod,
    SettlementResult,
    SettlementType,
)
from payroll_kernel.models.ledger import AdvanceBalance, CarryForwardBalance
from payroll_kernel.models.payment import PaymentRecord
from payroll_kernel.selectors.base import BaseSelector

DEFAULT_HISTORY_LIMIT = 100


def _money(value: Decimal | None, places: int) -> Decimal | None:
    # Backends without a native decimal type hand back extra scale.
    return round_money(value, places) if value is not None else None


def _utc(value: datetime) -> datetime:
    # SQLite drops the offset; paid_at is always written in UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class PaymentRecordDTO:
    """A PaymentRecord as seen by callers."""

    id: UUID
    staff_id: UUID
    settlement_type: SettlementType
    amount: Decimal
    mode: PaymentMode
    payment_account_id: UUID | None
    period: PayPeriod | None
    notes: str | None
    paid_at: datetime
    idempotency_key: str
    request_hash: str
    staff_sequence: int
    base_salary: Decimal | None
    leave_days: int | None
    deduction_amount: Decimal | None
    net_payable: Decimal | None
    shortfall: Decimal
    overpay: Decimal
    advance_delta: Decimal
    carry_forward_delta: Decimal
    advance_balance_after: Decimal
    carry_forward_balance_after: Decimal
    created_by_id: UUID

    @classmethod
    def from_model(
        cls, record: PaymentRecord, decimal_places: int = MONEY_DECIMAL_PLACES
    ) -> "PaymentRecordDTO":
        def money(value):
            return _money(value, decimal_places)

        period = None
        if record.period_month is not None and record.period_year is not None:
            period = PayPeriod(month=record.period_month, year=record.period_year)
        return cls(
            id=record.id,
            staff_id=record.staff_id,
            settlement_type=SettlementType(record.settlement_type),
            amount=money(record.amount),
            mode=PaymentMode(record.mode),
            payment_account_id=record.payment_account_id,
            period=period,
            notes=record.notes,
            paid_at=_utc(record.paid_at),
            idempotency_key=record.idempotency_key,
            request_hash=record.request_hash,
            staff_sequence=record.staff_sequence,
            base_salary=money(record.base_salary),
            leave_days=record.leave_days,
            deduction_amount=money(record.deduction_amount),
            net_payable=money(record.net_payable),
            shortfall=money(record.shortfall),
            overpay=money(record.overpay),
            advance_delta=money(record.advance_delta),
            carry_forward_delta=money(record.carry_forward_delta),
            advance_balance_after=money(record.advance_balance_after),
            carry_forward_balance_after=money(record.carry_forward_balance_after),
            created_by_id=record.created_by_id,
        )

    def to_result(self, replayed: bool = False) -> SettlementResult:
        """The SettlementResult this record was committed with."""
        return SettlementResult(
            payment_record_id=self.id,
            staff_id=self.staff_id,
            settlement_type=self.settlement_type,
            amount_paid=self.amount,
            mode=self.mode,
            period=self.period,
            net_payable=self.net_payable,
            base_salary=self.base_salary,
            leave_days=self.leave_days,
            deduction_amount=self.deduction_amount,
            shortfall=self.shortfall,
            overpay=self.overpay,
            advance_delta=self.advance_delta,
            carry_forward_delta=self.carry_forward_delta,
            advance_balance=self.advance_balance_after,
            carry_forward_balance=self.carry_forward_balance_after,
            staff_sequence=self.staff_sequence,
            idempotency_key=self.idempotency_key,
            paid_at=self.paid_at,
            replayed=replayed,
        )


class PaymentSelector(BaseSelector[PaymentRecord]):
    """Read-only queries over payment records and ledger balances."""

    model = PaymentRecord

    def __init__(self, session: Session, decimal_places: int = MONEY_DECIMAL_PLACES):
        super().__init__(session)
        self.decimal_places = decimal_places

    def _dto(self, record: PaymentRecord | None) -> PaymentRecordDTO | None:
        if record is None:
            return None
        return PaymentRecordDTO.from_model(record, self.decimal_places)

    def get(self, record_id: UUID) -> PaymentRecordDTO | None:
        record = self._row(record_id)
        return self._dto(record)

    def get_by_idempotency_key(self, idempotency_key: str) -> PaymentRecordDTO | None:
        record = self.session.execute(
            select(PaymentRecord).where(PaymentRecord.idempotency_key == idempotency_key)
        ).scalar_one_or_none()
        return self._dto(record)

    def salary_record_for_period(
        self, staff_id: UUID, period: PayPeriod
    ) -> PaymentRecordDTO | None:
        """The committed Salary settlement for the period, if any."""
        record = self.session.execute(
            select(PaymentRecord)
            .where(PaymentRecord.staff_id == staff_id)
            .where(PaymentRecord.salary_period_key == period.key)
        ).scalar_one_or_none()
        return self._dto(record)

    def history(
        self,
        staff_id: UUID | None = None,
        settlement_type: SettlementType | None = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[PaymentRecordDTO]:
        """Payment records, newest first."""
        stmt = select(PaymentRecord)
        if staff_id is not None:
            stmt = stmt.where(PaymentRecord.staff_id == staff_id)
        if settlement_type is not None:
            stmt = stmt.where(
                PaymentRecord.settlement_type == SettlementType(settlement_type).value
            )
        stmt = stmt.order_by(
            PaymentRecord.paid_at.desc(),
            PaymentRecord.staff_sequence.desc(),
        ).limit(limit)
        return [self._dto(r) for r in self.session.scalars(stmt)]

    def records_in_sequence(self, staff_id: UUID) -> list[PaymentRecordDTO]:
        """Every record of one staff member in settlement order."""
        stmt = (
            select(PaymentRecord)
            .where(PaymentRecord.staff_id == staff_id)
            .order_by(PaymentRecord.staff_sequence)
        )
        return [self._dto(r) for r in self.session.scalars(stmt)]

    def total_paid(
        self,
        staff_id: UUID,
        settlement_type: SettlementType,
        start: datetime,
        end: datetime,
    ) -> Decimal:
        """Sum of amounts of one type paid in [start, end)."""
        total = self.session.execute(
            select(func.coalesce(func.sum(PaymentRecord.amount), 0))
            .where(PaymentRecord.staff_id == staff_id)
            .where(PaymentRecord.settlement_type == settlement_type.value)
            .where(PaymentRecord.paid_at >= start)
            .where(PaymentRecord.paid_at < end)
        ).scalar_one()
        return round_money(Decimal(str(total)), self.decimal_places)

    def balances(self, staff_id: UUID) -> LedgerBalances:
        """Current Advance and Carry-Forward balances of a staff member."""
        advance = self.session.execute(
            select(AdvanceBalance.balance).where(AdvanceBalance.staff_id == staff_id)
        ).scalar_one_or_none()
        carry = self.session.execute(
            select(CarryForwardBalance.balance).where(
                CarryForwardBalance.staff_id == staff_id
            )
        ).scalar_one_or_none()
        return LedgerBalances(
            advance=_money(advance, self.decimal_places) if advance is not None else ZERO,
            carry_forward=_money(carry, self.decimal_places) if carry is not None else ZERO,
        )
