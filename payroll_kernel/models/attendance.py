"""
Module: payroll_kernel.models.attendance
Responsibility: Per-day attendance records and multi-day leave periods.
    Written by the attendance subsystem; read-only to the settlement engine.
Architecture position: Kernel > Models.  May import from db/ and
    domain/values.py only.

Invariants enforced:
    - One AttendanceRecord per staff member per date (uq_attendance_staff_date).
    - A LeavePeriod never ends before it starts.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase, UUIDString
from payroll_kernel.domain.values import AttendanceStatus, LeaveType


class AttendanceRecord(TrackedBase):
    """Status of one staff member on one day."""

    __tablename__ = "attendance_records"

    __table_args__ = (
        UniqueConstraint("staff_id", "attendance_date", name="uq_attendance_staff_date"),
        Index("idx_attendance_staff_date", "staff_id", "attendance_date"),
    )

    staff_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("staff.id"),
        nullable=False,
    )

    attendance_date: Mapped[date] = mapped_column(
        nullable=False,
    )

    status: Mapped[AttendanceStatus] = mapped_column(
        String(20),
        nullable=False,
    )


class LeavePeriod(TrackedBase):
    """A leave spanning one or more days (both ends inclusive)."""

    __tablename__ = "leave_periods"

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_leave_period_range"),
        Index("idx_leave_period_staff", "staff_id", "start_date"),
    )

    staff_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("staff.id"),
        nullable=False,
    )

    start_date: Mapped[date] = mapped_column(
        nullable=False,
    )

    end_date: Mapped[date] = mapped_column(
        nullable=False,
    )

    leave_type: Mapped[LeaveType] = mapped_column(
        String(20),
        nullable=False,
    )

    reason: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
