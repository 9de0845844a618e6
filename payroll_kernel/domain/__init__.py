"""
Pure functional core of the payroll kernel.

Value objects, request validation, deduction arithmetic and the two-ledger
reconciliation algorithm. Nothing in this package touches the database.
"""

from payroll_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from payroll_kernel.domain.values import (
    DEDUCTIBLE_STATUSES,
    AttendanceStatus,
    DeductionResult,
    LeaveDayBreakdown,
    LeaveType,
    LedgerBalances,
    LedgerMovement,
    NetPayable,
    PaymentMode,
    PayPeriod,
    SettlementRequest,
    SettlementResult,
    SettlementType,
    ValidatedSettlement,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "DEDUCTIBLE_STATUSES",
    "AttendanceStatus",
    "DeductionResult",
    "LeaveDayBreakdown",
    "LeaveType",
    "LedgerBalances",
    "LedgerMovement",
    "NetPayable",
    "PaymentMode",
    "PayPeriod",
    "SettlementRequest",
    "SettlementResult",
    "SettlementType",
    "ValidatedSettlement",
]
