"""
Clock -- where settlement timestamps come from.

PaymentRecordLog stamps ``paid_at`` from an injected Clock rather than
calling ``datetime.now()``, so the payment history written by a test or a
replay is reproducible.  SystemClock is the only place the kernel reads the
wall clock.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Source of the current instant, always timezone-aware UTC."""

    @abstractmethod
    def now_utc(self) -> datetime: ...


class SystemClock(Clock):

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


def _require_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError("DeterministicClock needs a timezone-aware datetime")
    return value


class DeterministicClock(Clock):
    """
    Test clock.  Stands still until ``set_time()`` or ``advance()``.

    Defaults to the last day of January 2024 at noon UTC, a payday for the
    January pay period.
    """

    DEFAULT_TIME = datetime(2024, 1, 31, 12, 0, 0, tzinfo=timezone.utc)

    def __init__(self, fixed_time: datetime | None = None):
        self._current = _require_aware(fixed_time or self.DEFAULT_TIME)

    def now_utc(self) -> datetime:
        return self._current.astimezone(timezone.utc)

    def set_time(self, time: datetime) -> None:
        self._current = _require_aware(time)

    def advance(self, seconds: int = 1) -> datetime:
        """Move forward and return the new instant."""
        self._current += timedelta(seconds=seconds)
        return self.now_utc()
