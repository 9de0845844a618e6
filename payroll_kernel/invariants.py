"""
Kernel Invariants Contract.

These invariants are structural law for settlement processing. They are
hardcoded in the reconciliation algorithm, the ledger rows and the ORM
listeners. No PayrollSettings value may switch them off.

This module declares these invariants and the import boundary of the pure
core explicitly. Enforcement is distributed across domain.reconciliation,
LedgerService, PaymentRecordLog, SettlementReconciler and db.immutability.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the payroll kernel."""

    NON_NEGATIVE_BALANCES = "non_negative_balances"
    """AdvanceBalance and CarryForwardBalance are never below zero.
    Enforced by domain.reconciliation, LedgerService and DB check
    constraints."""

    SHORTFALL_OVERPAY_EXCLUSIVE = "shortfall_overpay_exclusive"
    """A salary settlement has a shortfall or an overpay, never both."""

    CONSERVATION = "conservation"
    """Ledger deltas are fully determined by the settlement amount, the
    net payable and the starting balances. No amount is counted twice."""

    PAIRED_AUDIT_RECORD = "paired_audit_record"
    """Every ledger mutation commits together with exactly one appended
    PaymentRecord, in one transaction."""

    IMMUTABILITY = "immutability"
    """PaymentRecords are append-only. Enforced by ORM listeners
    (payroll_kernel.db.immutability)."""

    PER_STAFF_SERIALIZATION = "per_staff_serialization"
    """Settlements for the same staff member never apply deltas against the
    same starting balances. Enforced by the per-staff counter lock and the
    ledger version columns."""

    IDEMPOTENCY = "idempotency"
    """The same idempotency_key never produces a second settlement.
    Enforced by SettlementReconciler and a unique constraint."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)


# The pure core (payroll_kernel.domain) performs no I/O. It may use the
# money helpers in payroll_kernel.db.types but nothing that touches a session.
FORBIDDEN_DOMAIN_IMPORTS: tuple[str, ...] = (
    "sqlalchemy",
    "payroll_kernel.db.engine",
    "payroll_kernel.models",
    "payroll_kernel.selectors",
    "payroll_kernel.services",
    "payroll_kernel.config",
)
