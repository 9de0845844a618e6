"""
Leave deduction arithmetic.

Pure functions behind LeaveDeductionCalculator and SalaryResolver:

    deduction_per_day = floor(base_salary / denominator_days)
    deduction_amount  = deduction_per_day * leave_days
    net_payable       = max(base_salary - deduction_amount, 0)

The denominator is a fixed 30 days by business policy, whatever the
calendar length of the month. It is configurable through PayrollSettings
but is never derived from the month itself.
"""

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal

from payroll_kernel.db.types import ZERO, floor_money
from payroll_kernel.domain.values import (
    AttendanceStatus,
    LeaveDayBreakdown,
    PayPeriod,
)

# Business policy: the monthly salary is divided by a fixed 30 days,
# whatever the calendar length of the month.
DEFAULT_DEDUCTION_DENOMINATOR_DAYS = 30


def deduction_per_day(
    base_salary: Decimal,
    denominator_days: int = DEFAULT_DEDUCTION_DENOMINATOR_DAYS,
) -> Decimal:
    """Whole-unit daily deduction for a monthly salary."""
    if base_salary < 0:
        raise ValueError(f"base_salary cannot be negative: {base_salary}")
    if denominator_days <= 0:
        raise ValueError("denominator_days must be positive")
    return floor_money(base_salary / Decimal(denominator_days))


def compute_deduction(
    base_salary: Decimal,
    leave_days: int,
    denominator_days: int = DEFAULT_DEDUCTION_DENOMINATOR_DAYS,
) -> tuple[Decimal, Decimal]:
    """
    Return ``(deduction_per_day, deduction_amount)``.

    Zero leave days always yields a zero deduction.
    """
    if leave_days < 0:
        raise ValueError(f"leave_days cannot be negative: {leave_days}")
    per_day = deduction_per_day(base_salary, denominator_days)
    if leave_days == 0:
        return per_day, ZERO
    return per_day, per_day * leave_days


def net_payable(base_salary: Decimal, deduction_amount: Decimal) -> Decimal:
    """Salary owed after deduction, floored at zero."""
    return max(base_salary - deduction_amount, ZERO)


def count_leave_days(
    period: PayPeriod,
    attendance: Mapping[date, AttendanceStatus],
    unpaid_leave_ranges: Iterable[tuple[date, date]] = (),
) -> LeaveDayBreakdown:
    """
    Classify every day of ``period``.

    ``attendance`` maps a date to its recorded status; dates outside the
    period are ignored. A day covered by an unpaid leave range counts as
    a leave day only when it has no attendance record, so a day is never
    counted twice.
    """
    counts = {status: 0 for status in AttendanceStatus}
    for day, status in attendance.items():
        if period.contains(day):
            counts[AttendanceStatus(status)] += 1

    uncovered: set[date] = set()
    for start, end in unpaid_leave_ranges:
        lo = max(start, period.first_day)
        hi = min(end, period.last_day)
        for day in period.days():
            if lo <= day <= hi and day not in attendance:
                uncovered.add(day)

    return LeaveDayBreakdown(
        present=counts[AttendanceStatus.PRESENT],
        absent=counts[AttendanceStatus.ABSENT],
        paid_leave=counts[AttendanceStatus.PAID_LEAVE],
        unpaid_leave=counts[AttendanceStatus.UNPAID_LEAVE],
        unpaid_leave_period_days=len(uncovered),
    )
