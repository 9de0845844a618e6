"""
Module: payroll_kernel.selectors.payroll_selector
Responsibility: The payroll line for one staff member and one pay period,
    as shown on the payroll screen: attendance counts, deduction, net
    payable, what was paid, and the running balances.
Architecture position: Kernel > Selectors.  Combines StaffSelector,
    AttendanceSelector and PaymentSelector with the pure deduction
    functions; writes nothing.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from payroll_kernel.config import PayrollSettings
from payroll_kernel.db.types import round_money
from payroll_kernel.domain import deduction
from payroll_kernel.domain.values import LeaveDayBreakdown, PayPeriod, SettlementType
from payroll_kernel.selectors.attendance_selector import AttendanceSelector
from payroll_kernel.selectors.payment_selector import PaymentSelector
from payroll_kernel.selectors.staff_selector import StaffSelector

STATUS_PAID = "paid"
STATUS_PENDING = "pending"


@dataclass(frozen=True)
class PeriodStatement:
    """One payroll line."""

    staff_id: UUID
    staff_name: str
    period: PayPeriod
    base_salary: Decimal
    attendance: LeaveDayBreakdown
    leave_days: int
    deduction_per_day: Decimal
    deduction_amount: Decimal
    net_payable: Decimal
    salary_paid: Decimal | None
    salary_record_id: UUID | None
    advances_in_period: Decimal
    advance_balance: Decimal
    carry_forward_balance: Decimal
    status: str

    @property
    def is_paid(self) -> bool:
        return self.status == STATUS_PAID


def _period_bounds(period: PayPeriod) -> tuple[datetime, datetime]:
    start = datetime.combine(period.first_day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(period.last_day + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return start, end


class PayrollSelector:
    """Period statements for the payroll view."""

    def __init__(self, session: Session, settings: PayrollSettings | None = None):
        self.session = session
        self._settings = settings or PayrollSettings()
        self._staff = StaffSelector(session)
        self._attendance = AttendanceSelector(session)
        self._payments = PaymentSelector(session, self._settings.money_decimal_places)

    def period_statement(self, staff_id: UUID, month: int, year: int) -> PeriodStatement:
        """
        Build the payroll line for ``staff_id`` in ``month``/``year``.

        Net payable is computed from the current salary and attendance, the
        same way a settlement made now would compute it.

        Raises:
            StaffNotFoundError: unknown staff member.
            InvalidPeriodError: month/year out of range.
        """
        period = PayPeriod(month=month, year=year)
        staff = self._staff.get(staff_id)
        attendance = self._attendance.breakdown(
            staff_id, period, include_leave_periods=self._settings.count_leave_periods
        )
        per_day, deduction_amount = deduction.compute_deduction(
            staff.monthly_salary,
            attendance.leave_days,
            self._settings.deduction_denominator_days,
        )
        places = self._settings.money_decimal_places
        net = round_money(deduction.net_payable(staff.monthly_salary, deduction_amount), places)

        salary_record = self._payments.salary_record_for_period(staff_id, period)
        start, end = _period_bounds(period)
        advances = self._payments.total_paid(staff_id, SettlementType.ADVANCE, start, end)
        balances = self._payments.balances(staff_id)

        return PeriodStatement(
            staff_id=staff.id,
            staff_name=staff.name,
            period=period,
            base_salary=round_money(staff.monthly_salary, places),
            attendance=attendance,
            leave_days=attendance.leave_days,
            deduction_per_day=round_money(per_day, places),
            deduction_amount=round_money(deduction_amount, places),
            net_payable=net,
            salary_paid=salary_record.amount if salary_record else None,
            salary_record_id=salary_record.id if salary_record else None,
            advances_in_period=advances,
            advance_balance=balances.advance,
            carry_forward_balance=balances.carry_forward,
            status=STATUS_PAID if salary_record else STATUS_PENDING,
        )

    def period_statements(self, staff_ids: list[UUID], month: int, year: int) -> list[PeriodStatement]:
        """Statements for several staff members, in the order given."""
        return [self.period_statement(staff_id, month, year) for staff_id in staff_ids]
