"""
LeaveDeductionCalculator against stored attendance and leave periods.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_kernel.config import PayrollSettings
from payroll_kernel.domain.values import AttendanceStatus, LeaveType
from payroll_kernel.exceptions import InvalidPeriodError, StaffNotFoundError
from payroll_kernel.services.leave_calculator import LeaveDeductionCalculator


class TestComputeDeduction:

    def test_two_absent_days(self, create_staff, record_attendance, session):
        staff_id = create_staff(monthly_salary=Decimal("15000"))
        record_attendance(staff_id, AttendanceStatus.ABSENT, date(2024, 1, 8))
        record_attendance(staff_id, AttendanceStatus.UNPAID_LEAVE, date(2024, 1, 9))
        record_attendance(staff_id, AttendanceStatus.PAID_LEAVE, date(2024, 1, 10))
        record_attendance(staff_id, AttendanceStatus.PRESENT, date(2024, 1, 11))

        result = LeaveDeductionCalculator(session).compute_deduction(staff_id, 1, 2024)

        assert result.leave_days == 2
        assert result.deduction_per_day == Decimal("500.00")
        assert result.deduction_amount == Decimal("1000.00")
        assert result.base_salary == Decimal("15000.00")
        assert result.breakdown.paid_leave == 1
        assert result.breakdown.present == 1

    def test_no_attendance_no_deduction(self, create_staff, session):
        staff_id = create_staff()
        result = LeaveDeductionCalculator(session).compute_deduction(staff_id, 1, 2024)
        assert result.leave_days == 0
        assert result.deduction_amount == Decimal("0.00")

    def test_other_months_ignored(self, create_staff, record_attendance, session):
        staff_id = create_staff()
        record_attendance(
            staff_id, AttendanceStatus.ABSENT, date(2023, 12, 31), date(2024, 2, 1)
        )
        result = LeaveDeductionCalculator(session).compute_deduction(staff_id, 1, 2024)
        assert result.leave_days == 0

    def test_other_staff_ignored(self, create_staff, record_attendance, session):
        staff_id = create_staff()
        other_id = create_staff(name="Other")
        record_attendance(other_id, AttendanceStatus.ABSENT, date(2024, 1, 5))
        result = LeaveDeductionCalculator(session).compute_deduction(staff_id, 1, 2024)
        assert result.leave_days == 0

    def test_unknown_staff(self, db, session):
        with pytest.raises(StaffNotFoundError):
            LeaveDeductionCalculator(session).compute_deduction(uuid4(), 1, 2024)

    def test_invalid_period(self, create_staff, session):
        staff_id = create_staff()
        with pytest.raises(InvalidPeriodError):
            LeaveDeductionCalculator(session).compute_deduction(staff_id, 13, 2024)


class TestLeavePeriods:

    def test_unpaid_period_days_counted(
        self, create_staff, record_attendance, add_leave_period, session
    ):
        staff_id = create_staff()
        add_leave_period(staff_id, date(2024, 1, 15), date(2024, 1, 17))
        # A day inside the range with its own record is classified by the record
        record_attendance(staff_id, AttendanceStatus.PRESENT, date(2024, 1, 15))

        result = LeaveDeductionCalculator(session).compute_deduction(staff_id, 1, 2024)

        assert result.breakdown.unpaid_leave_period_days == 2
        assert result.leave_days == 2
        assert result.deduction_amount == Decimal("1000.00")

    def test_paid_period_not_deducted(self, create_staff, add_leave_period, session):
        staff_id = create_staff()
        add_leave_period(staff_id, date(2024, 1, 1), date(2024, 1, 5), LeaveType.PAID)
        result = LeaveDeductionCalculator(session).compute_deduction(staff_id, 1, 2024)
        assert result.leave_days == 0

    def test_period_spanning_months_is_clipped(self, create_staff, add_leave_period, session):
        staff_id = create_staff()
        add_leave_period(staff_id, date(2024, 1, 30), date(2024, 2, 2))
        calculator = LeaveDeductionCalculator(session)
        assert calculator.compute_deduction(staff_id, 1, 2024).leave_days == 2
        assert calculator.compute_deduction(staff_id, 2, 2024).leave_days == 2

    def test_leave_periods_can_be_disabled(self, create_staff, add_leave_period, session):
        staff_id = create_staff()
        add_leave_period(staff_id, date(2024, 1, 15), date(2024, 1, 17))
        settings = PayrollSettings(count_leave_periods=False)
        result = LeaveDeductionCalculator(session, settings).compute_deduction(staff_id, 1, 2024)
        assert result.leave_days == 0


def test_custom_denominator(create_staff, record_attendance, session):
    staff_id = create_staff(monthly_salary=Decimal("26000"))
    record_attendance(staff_id, AttendanceStatus.ABSENT, date(2024, 3, 4))
    settings = PayrollSettings(deduction_denominator_days=26)
    result = LeaveDeductionCalculator(session, settings).compute_deduction(staff_id, 3, 2024)
    assert result.deduction_per_day == Decimal("1000.00")
    assert result.deduction_amount == Decimal("1000.00")
