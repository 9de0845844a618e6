"""
Module: payroll_kernel.models.payment
Responsibility: The append-only PaymentRecord log, the audit trail of every
    settlement and the ground truth the ledger balances derive from.
Architecture position: Kernel > Models.  May import from db/ and
    domain/values.py only.

Invariants enforced:
    - Append-only: ORM listeners in db/immutability.py reject UPDATE and
      DELETE of payroll columns once a record is flushed.
    - One record per idempotency key (uq_payment_idempotency_key).
    - One Salary record per staff member per period
      (uq_payment_staff_salary_period; NULL for non-salary types).
    - Per-staff records are numbered 1, 2, 3, ... (uq_payment_staff_sequence).
    - amount > 0; balances after the settlement >= 0; shortfall and overpay
      are never both positive.

Each record snapshots the inputs and outputs of its settlement (net
payable, base salary, leave days, deltas and resulting balances), so the
ledgers can be replayed from the log alone.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase, UUIDString
from payroll_kernel.domain.values import PaymentMode, SettlementType


class PaymentRecord(TrackedBase):
    """
    One committed settlement.

    Written once by PaymentRecordLog in the same transaction as the ledger
    updates it describes.
    """

    __tablename__ = "payment_records"

    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_payment_idempotency_key"),
        UniqueConstraint(
            "staff_id", "salary_period_key", name="uq_payment_staff_salary_period"
        ),
        UniqueConstraint("staff_id", "staff_sequence", name="uq_payment_staff_sequence"),
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        CheckConstraint(
            "advance_balance_after >= 0 AND carry_forward_balance_after >= 0",
            name="ck_payment_balances_non_negative",
        ),
        CheckConstraint(
            "NOT (shortfall > 0 AND overpay > 0)",
            name="ck_payment_shortfall_overpay_exclusive",
        ),
        Index("idx_payment_staff_paid_at", "staff_id", "paid_at"),
        Index("idx_payment_type", "settlement_type"),
    )

    staff_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("staff.id"),
        nullable=False,
    )

    settlement_type: Mapped[SettlementType] = mapped_column(
        String(30),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    mode: Mapped[PaymentMode] = mapped_column(
        String(30),
        nullable=False,
    )

    payment_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("payment_accounts.id"),
        nullable=True,
    )

    # Period the settlement refers to (required for Salary)
    period_month: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    period_year: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    # "YYYY-MM", set only for Salary records
    salary_period_key: Mapped[str | None] = mapped_column(
        String(7),
        nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(
        String(4000),
        nullable=True,
    )

    paid_at: Mapped[datetime] = mapped_column(
        nullable=False,
    )

    # Idempotency
    idempotency_key: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    request_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    staff_sequence: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    # Salary computation snapshot (Salary records only)
    base_salary: Mapped[Decimal | None] = mapped_column(
        nullable=True,
    )

    leave_days: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    deduction_amount: Mapped[Decimal | None] = mapped_column(
        nullable=True,
    )

    net_payable: Mapped[Decimal | None] = mapped_column(
        nullable=True,
    )

    # Reconciliation outcome
    shortfall: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    overpay: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    advance_delta: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    carry_forward_delta: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    advance_balance_after: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    carry_forward_balance_after: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentRecord {self.settlement_type} {self.amount} "
            f"staff={self.staff_id} seq={self.staff_sequence}>"
        )
