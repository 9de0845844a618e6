"""
SalaryResolver -- net payable salary for a pay period.

    net_payable = max(monthly_salary - deduction_amount, 0)

The monthly salary is read from the Staff row at call time, so a salary
change takes effect on the next settlement.  No state is written.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from payroll_kernel.config import PayrollSettings
from payroll_kernel.db.types import round_money
from payroll_kernel.domain import deduction
from payroll_kernel.domain.values import NetPayable, PayPeriod
from payroll_kernel.exceptions import InvalidPeriodError
from payroll_kernel.selectors.staff_selector import StaffSelector
from payroll_kernel.services.leave_calculator import LeaveDeductionCalculator


class SalaryResolver:
    """Combines the declared salary with the leave deduction."""

    def __init__(
        self,
        session: Session,
        settings: PayrollSettings | None = None,
        calculator: LeaveDeductionCalculator | None = None,
    ):
        self._settings = settings or PayrollSettings()
        self._staff = StaffSelector(session)
        self._calculator = calculator or LeaveDeductionCalculator(session, self._settings)

    def resolve(self, staff_id: UUID, period: PayPeriod) -> NetPayable:
        """
        Net payable with the deduction it was derived from.

        Raises:
            StaffNotFoundError: unknown staff member.
            InvalidPeriodError: the period ends before the staff member joined.
        """
        staff = self._staff.get(staff_id)
        if staff.date_of_joining is not None and period.last_day < staff.date_of_joining:
            raise InvalidPeriodError(
                period.month,
                period.year,
                f"period ends before joining date {staff.date_of_joining.isoformat()}",
            )

        result = self._calculator.compute_deduction(staff_id, period.month, period.year)
        amount = round_money(
            deduction.net_payable(result.base_salary, result.deduction_amount),
            self._settings.money_decimal_places,
        )
        return NetPayable(amount=amount, deduction=result)

    def resolve_net_payable(self, staff_id: UUID, month: int, year: int):
        """Net payable amount for ``month``/``year``."""
        return self.resolve(staff_id, PayPeriod(month=month, year=year)).amount
