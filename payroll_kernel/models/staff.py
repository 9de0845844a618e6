"""
Module: payroll_kernel.models.staff
Responsibility: ORM persistence for staff members and the receiving accounts
    that electronic transfers are paid from.
Architecture position: Kernel > Models.  May import from db/ only.

Both tables are owned by the staff-management side of the application; the
settlement engine only reads them.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase


class Staff(TrackedBase):
    """
    A staff member on the payroll.

    ``monthly_salary`` is read at settlement time, so a salary change takes
    effect on the next settlement.
    """

    __tablename__ = "staff"

    __table_args__ = (
        CheckConstraint("monthly_salary >= 0", name="ck_staff_salary_non_negative"),
        Index("idx_staff_active", "is_active"),
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    monthly_salary: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    date_of_joining: Mapped[date | None] = mapped_column(
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Staff {self.name} ({self.id})>"


class PaymentAccount(TrackedBase):
    """A business account that electronic transfers are sent from."""

    __tablename__ = "payment_accounts"

    __table_args__ = (
        UniqueConstraint("handle", name="uq_payment_account_handle"),
    )

    account_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Transfer address, e.g. a UPI id
    handle: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    def __repr__(self) -> str:
        return f"<PaymentAccount {self.account_name} [{self.handle}]>"
