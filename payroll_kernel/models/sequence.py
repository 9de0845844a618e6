"""
Module: payroll_kernel.models.sequence
Responsibility: Named counter rows behind SequenceService.
Architecture position: Kernel > Models.  May import from db/ only.

The per-staff counter ``payment_record:<staff_id>`` numbers that staff
member's PaymentRecords and doubles as the per-staff settlement lock.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    Row-level locking ensures monotonicity under concurrency.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
