"""Domain models for the payroll kernel."""

from payroll_kernel.models.attendance import AttendanceRecord, LeavePeriod
from payroll_kernel.models.ledger import AdvanceBalance, CarryForwardBalance
from payroll_kernel.models.payment import PaymentRecord
from payroll_kernel.models.sequence import SequenceCounter
from payroll_kernel.models.staff import PaymentAccount, Staff

__all__ = [
    "Staff",
    "PaymentAccount",
    "AttendanceRecord",
    "LeavePeriod",
    "AdvanceBalance",
    "CarryForwardBalance",
    "PaymentRecord",
    "SequenceCounter",
]
