"""
Values -- Immutable domain value objects for settlement processing.

Responsibility:
    Enumerations and frozen dataclasses shared by the pure core and the
    service shell: settlement types, payment modes, attendance statuses,
    pay periods, settlement requests and results, ledger movements.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    May import from payroll_kernel.exceptions, db.types and utils only.

Failure modes:
    - InvalidPeriodError on construction of a PayPeriod outside the calendar.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from payroll_kernel.db.types import ZERO
from payroll_kernel.exceptions import InvalidPeriodError
from payroll_kernel.utils.hashing import hash_payload


class SettlementType(str, Enum):
    """Kind of payroll transaction processed by the reconciler."""

    ADVANCE = "advance"
    SALARY = "salary"
    SALARY_CARRYFORWARD = "salary_carryforward"


class PaymentMode(str, Enum):
    """How the money left the business."""

    CASH = "cash"
    ELECTRONIC_TRANSFER = "electronic_transfer"


class AttendanceStatus(str, Enum):
    """Per-day attendance status recorded by the attendance subsystem."""

    PRESENT = "present"
    ABSENT = "absent"
    PAID_LEAVE = "paid_leave"
    UNPAID_LEAVE = "unpaid_leave"

    @property
    def is_deductible(self) -> bool:
        return self in DEDUCTIBLE_STATUSES


# Only these statuses reduce the period's salary.
DEDUCTIBLE_STATUSES: frozenset[AttendanceStatus] = frozenset(
    {AttendanceStatus.ABSENT, AttendanceStatus.UNPAID_LEAVE}
)


class LeaveType(str, Enum):
    """Type of a multi-day leave period."""

    PAID = "paid"
    UNPAID = "unpaid"


@dataclass(frozen=True, slots=True)
class PayPeriod:
    """
    A calendar month that salary is settled for.

    Guarantees:
        - 1 <= month <= 12 and 1 <= year <= 9999.
        - ``key`` is the zero-padded "YYYY-MM" form used for uniqueness.
    """

    month: int
    year: int

    def __post_init__(self) -> None:
        if isinstance(self.month, bool) or not isinstance(self.month, int):
            raise InvalidPeriodError(self.month, self.year, "month must be an integer")
        if isinstance(self.year, bool) or not isinstance(self.year, int):
            raise InvalidPeriodError(self.month, self.year, "year must be an integer")
        if not 1 <= self.month <= 12:
            raise InvalidPeriodError(self.month, self.year, "month must be between 1 and 12")
        if not 1 <= self.year <= 9999:
            raise InvalidPeriodError(self.month, self.year, "year must be between 1 and 9999")

    @classmethod
    def from_key(cls, key: str) -> PayPeriod:
        """Parse a "YYYY-MM" key."""
        try:
            year_str, month_str = key.split("-")
            return cls(month=int(month_str), year=int(year_str))
        except ValueError as exc:
            raise InvalidPeriodError(None, None, f"malformed period key {key!r}") from exc

    @classmethod
    def containing(cls, day: date) -> PayPeriod:
        return cls(month=day.month, year=day.year)

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    @property
    def day_count(self) -> int:
        return self.last_day.day

    def contains(self, day: date) -> bool:
        return self.first_day <= day <= self.last_day

    def days(self) -> list[date]:
        """Every calendar day of the period, in order."""
        return [self.first_day + timedelta(days=i) for i in range(self.day_count)]

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class SettlementRequest:
    """
    A settlement as submitted by the surrounding application.

    Fields arrive unvalidated; ``domain.validation.validate_request`` turns
    them into a ``ValidatedSettlement`` or raises a SettlementValidationError.
    ``settlement_type`` and ``mode`` accept either the enum or its value.
    ``amount`` accepts Decimal, int or a numeric string (never float).
    """

    staff_id: UUID
    settlement_type: SettlementType | str
    amount: Any
    mode: PaymentMode | str
    idempotency_key: str
    actor_id: UUID
    period_month: int | None = None
    period_year: int | None = None
    payment_account_id: UUID | None = None
    notes: str | None = None


@dataclass(frozen=True)
class ValidatedSettlement:
    """A settlement request after shape validation and normalization."""

    staff_id: UUID
    settlement_type: SettlementType
    amount: Decimal
    mode: PaymentMode
    idempotency_key: str
    actor_id: UUID
    period: PayPeriod | None = None
    payment_account_id: UUID | None = None
    notes: str | None = None

    def fingerprint_payload(self) -> dict[str, Any]:
        # actor_id is excluded: an operator resubmitting on behalf of
        # another is still the same settlement.
        return {
            "staff_id": self.staff_id,
            "settlement_type": self.settlement_type,
            "amount": self.amount,
            "mode": self.mode,
            "period": self.period.key if self.period else None,
            "payment_account_id": self.payment_account_id,
            "notes": self.notes,
        }

    @property
    def request_hash(self) -> str:
        return hash_payload(self.fingerprint_payload())


@dataclass(frozen=True)
class LeaveDayBreakdown:
    """Attendance counts for one staff member over one pay period."""

    present: int = 0
    absent: int = 0
    paid_leave: int = 0
    unpaid_leave: int = 0
    unpaid_leave_period_days: int = 0

    @property
    def leave_days(self) -> int:
        """Days that reduce the period's salary."""
        return self.absent + self.unpaid_leave + self.unpaid_leave_period_days


@dataclass(frozen=True)
class DeductionResult:
    """Outcome of the leave deduction calculation for a period."""

    staff_id: UUID
    period: PayPeriod
    base_salary: Decimal
    leave_days: int
    deduction_per_day: Decimal
    deduction_amount: Decimal
    breakdown: LeaveDayBreakdown = field(default_factory=LeaveDayBreakdown)


@dataclass(frozen=True)
class NetPayable:
    """Net salary owed for a period, with the deduction it was derived from."""

    amount: Decimal
    deduction: DeductionResult

    @property
    def base_salary(self) -> Decimal:
        return self.deduction.base_salary


@dataclass(frozen=True)
class LedgerBalances:
    """Both running balances of one staff member."""

    advance: Decimal = ZERO
    carry_forward: Decimal = ZERO

    @property
    def net_position(self) -> Decimal:
        """What the staff member owes the business, net of what it owes them."""
        return self.advance - self.carry_forward


@dataclass(frozen=True)
class LedgerMovement:
    """
    The full effect of one settlement on the two ledgers.

    ``from_advance`` / ``from_carry_forward`` are the amounts absorbed from
    an existing balance; ``advance_delta`` / ``carry_forward_delta`` are the
    signed changes applied to each ledger.
    """

    settlement_type: SettlementType
    amount_paid: Decimal
    net_payable: Decimal | None
    shortfall: Decimal
    overpay: Decimal
    from_advance: Decimal
    from_carry_forward: Decimal
    advance_delta: Decimal
    carry_forward_delta: Decimal
    balances_before: LedgerBalances
    balances_after: LedgerBalances


@dataclass(frozen=True)
class SettlementResult:
    """
    What the caller sees after ``settle()``.

    ``replayed`` is True when the idempotency key matched an already
    committed settlement and no ledger was touched by this call.
    """

    payment_record_id: UUID
    staff_id: UUID
    settlement_type: SettlementType
    amount_paid: Decimal
    mode: PaymentMode
    period: PayPeriod | None
    net_payable: Decimal | None
    base_salary: Decimal | None
    leave_days: int | None
    deduction_amount: Decimal | None
    shortfall: Decimal
    overpay: Decimal
    advance_delta: Decimal
    carry_forward_delta: Decimal
    advance_balance: Decimal
    carry_forward_balance: Decimal
    staff_sequence: int
    idempotency_key: str
    paid_at: datetime
    replayed: bool = False

    @property
    def balances(self) -> LedgerBalances:
        return LedgerBalances(
            advance=self.advance_balance,
            carry_forward=self.carry_forward_balance,
        )
