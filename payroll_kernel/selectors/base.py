"""
Read side of the kernel.

A selector wraps a session it does not own.  It runs SELECTs only, and what
it hands back are frozen dataclasses, never live ORM rows, so nothing a
caller does with a result can leak back into the unit of work.  Selectors
may import db/, models/ and domain/; services/ imports them, never the
reverse.
"""

from typing import ClassVar, Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from payroll_kernel.db.base import Base

RowT = TypeVar("RowT", bound=Base)


class BaseSelector(Generic[RowT]):
    """Holds the caller's session and the primary model a selector reads."""

    model: ClassVar[type[Base]]

    def __init__(self, session: Session):
        self.session = session

    def _row(self, row_id: UUID) -> RowT | None:
        return self.session.get(self.model, row_id)
