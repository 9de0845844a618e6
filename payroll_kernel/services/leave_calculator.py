"""
LeaveDeductionCalculator -- leave days and deduction for a pay period.

Responsibility:
    Counts the deductible days of a staff member in a calendar month
    (Absent and Unpaid Leave attendance records, plus uncovered days of
    unpaid leave periods when enabled) and derives the deduction:

        deduction_per_day = floor(monthly_salary / deduction_denominator_days)
        deduction_amount  = deduction_per_day * leave_days

Architecture position:
    Kernel > Services.  Reads through StaffSelector and AttendanceSelector;
    arithmetic is delegated to domain.deduction.

Failure modes:
    - StaffNotFoundError: staff identifier does not resolve.  No default
      salary is ever assumed.
    - InvalidPeriodError: month/year out of range.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from payroll_kernel.config import PayrollSettings
from payroll_kernel.db.types import round_money
from payroll_kernel.domain import deduction
from payroll_kernel.domain.values import DeductionResult, PayPeriod
from payroll_kernel.logging_config import get_logger
from payroll_kernel.selectors.attendance_selector import AttendanceSelector
from payroll_kernel.selectors.staff_selector import StaffSelector

logger = get_logger("services.leave_calculator")


class LeaveDeductionCalculator:
    """Computes the leave deduction of one staff member for one month."""

    def __init__(self, session: Session, settings: PayrollSettings | None = None):
        self._settings = settings or PayrollSettings()
        self._staff = StaffSelector(session)
        self._attendance = AttendanceSelector(session)

    def compute_deduction(self, staff_id: UUID, month: int, year: int) -> DeductionResult:
        """Return leave days and deduction amount for the period."""
        period = PayPeriod(month=month, year=year)
        staff = self._staff.get(staff_id)

        breakdown = self._attendance.breakdown(
            staff_id,
            period,
            include_leave_periods=self._settings.count_leave_periods,
        )
        per_day, amount = deduction.compute_deduction(
            staff.monthly_salary,
            breakdown.leave_days,
            self._settings.deduction_denominator_days,
        )
        places = self._settings.money_decimal_places

        result = DeductionResult(
            staff_id=staff_id,
            period=period,
            base_salary=round_money(staff.monthly_salary, places),
            leave_days=breakdown.leave_days,
            deduction_per_day=round_money(per_day, places),
            deduction_amount=round_money(amount, places),
            breakdown=breakdown,
        )
        logger.debug(
            "leave_deduction_computed",
            extra={
                "staff_id": str(staff_id),
                "period": period.key,
                "leave_days": result.leave_days,
                "deduction_amount": result.deduction_amount,
            },
        )
        return result
