"""Services for the payroll kernel (imperative shell)."""

from payroll_kernel.services.base import BaseService
from payroll_kernel.services.leave_calculator import LeaveDeductionCalculator
from payroll_kernel.services.ledger_auditor import LedgerAuditor, LedgerReplayReport
from payroll_kernel.services.ledger_service import LedgerService, LockedLedgers
from payroll_kernel.services.payment_log import PaymentRecordLog
from payroll_kernel.services.salary_resolver import SalaryResolver
from payroll_kernel.services.sequence_service import (
    SequenceService,
    payment_record_sequence,
)
from payroll_kernel.services.settlement_reconciler import SettlementReconciler

__all__ = [
    "BaseService",
    "LeaveDeductionCalculator",
    "LedgerAuditor",
    "LedgerReplayReport",
    "LedgerService",
    "LockedLedgers",
    "PaymentRecordLog",
    "SalaryResolver",
    "SequenceService",
    "payment_record_sequence",
    "SettlementReconciler",
]
