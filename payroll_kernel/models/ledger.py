"""
Module: payroll_kernel.models.ledger
Responsibility: The two running balances kept per staff member.
Architecture position: Kernel > Models.  May import from db/ only.

    AdvanceBalance       money advanced to the staff member, not yet recovered
    CarryForwardBalance  salary the business still owes the staff member

Invariants enforced:
    - Exactly one row per staff member per ledger (unique staff_id).
    - balance >= 0 (check constraint; LedgerService checks before flush).
    - ``version`` is the optimistic lock column: an UPDATE that races
      another committed UPDATE matches zero rows and raises StaleDataError.

Both balances are cached running totals. The PaymentRecord log is the
ground truth they can be rebuilt from (see services.ledger_auditor).
Rows are mutated only by LedgerService on behalf of SettlementReconciler.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase, UUIDString


class AdvanceBalance(TrackedBase):
    """What a staff member owes the business from prior advances."""

    __tablename__ = "advance_balances"

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_advance_balance_non_negative"),
    )

    staff_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("staff.id"),
        nullable=False,
        unique=True,
    )

    balance: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<AdvanceBalance staff={self.staff_id} balance={self.balance}>"


class CarryForwardBalance(TrackedBase):
    """What the business owes a staff member from past underpayments."""

    __tablename__ = "carry_forward_balances"

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_carry_forward_balance_non_negative"),
    )

    staff_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("staff.id"),
        nullable=False,
        unique=True,
    )

    balance: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<CarryForwardBalance staff={self.staff_id} balance={self.balance}>"
