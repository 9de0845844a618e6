"""
Module: payroll_kernel.selectors.attendance_selector
Responsibility: Attendance and leave-period reads for one staff member over
    one pay period, and the day classification built from them.
Architecture position: Kernel > Selectors.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select

from payroll_kernel.domain.deduction import count_leave_days
from payroll_kernel.domain.values import (
    AttendanceStatus,
    LeaveDayBreakdown,
    LeaveType,
    PayPeriod,
)
from payroll_kernel.models.attendance import AttendanceRecord, LeavePeriod
from payroll_kernel.selectors.base import BaseSelector


class AttendanceSelector(BaseSelector[AttendanceRecord]):
    """Read-only attendance queries."""

    model = AttendanceRecord

    def statuses_for_period(
        self, staff_id: UUID, period: PayPeriod
    ) -> dict[date, AttendanceStatus]:
        """Recorded status per day within the period."""
        rows = self.session.execute(
            select(AttendanceRecord.attendance_date, AttendanceRecord.status)
            .where(AttendanceRecord.staff_id == staff_id)
            .where(AttendanceRecord.attendance_date >= period.first_day)
            .where(AttendanceRecord.attendance_date <= period.last_day)
        ).all()
        return {day: AttendanceStatus(status) for day, status in rows}

    def unpaid_leave_ranges(
        self, staff_id: UUID, period: PayPeriod
    ) -> list[tuple[date, date]]:
        """Unpaid leave periods overlapping the pay period."""
        rows = self.session.execute(
            select(LeavePeriod.start_date, LeavePeriod.end_date)
            .where(LeavePeriod.staff_id == staff_id)
            .where(LeavePeriod.leave_type == LeaveType.UNPAID.value)
            .where(LeavePeriod.start_date <= period.last_day)
            .where(LeavePeriod.end_date >= period.first_day)
            .order_by(LeavePeriod.start_date)
        ).all()
        return [(start, end) for start, end in rows]

    def breakdown(
        self,
        staff_id: UUID,
        period: PayPeriod,
        include_leave_periods: bool = True,
    ) -> LeaveDayBreakdown:
        """Classify every day of the period for the staff member."""
        ranges = (
            self.unpaid_leave_ranges(staff_id, period) if include_leave_periods else []
        )
        return count_leave_days(
            period,
            self.statuses_for_period(staff_id, period),
            ranges,
        )
