"""Read-only query selectors for the payroll kernel."""

from payroll_kernel.selectors.attendance_selector import AttendanceSelector
from payroll_kernel.selectors.base import BaseSelector
from payroll_kernel.selectors.payment_selector import PaymentRecordDTO, PaymentSelector
from payroll_kernel.selectors.payroll_selector import PayrollSelector, PeriodStatement
from payroll_kernel.selectors.staff_selector import (
    PaymentAccountInfo,
    StaffInfo,
    StaffSelector,
)

__all__ = [
    "BaseSelector",
    "AttendanceSelector",
    "PaymentSelector",
    "PaymentRecordDTO",
    "PayrollSelector",
    "PeriodStatement",
    "StaffSelector",
    "StaffInfo",
    "PaymentAccountInfo",
]
