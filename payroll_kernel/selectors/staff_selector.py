"""
Module: payroll_kernel.selectors.staff_selector
Responsibility: Read access to staff members and receiving accounts.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from payroll_kernel.exceptions import StaffNotFoundError
from payroll_kernel.models.staff import PaymentAccount, Staff
from payroll_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class StaffInfo:
    id: UUID
    name: str
    monthly_salary: Decimal
    is_active: bool
    date_of_joining: date | None


@dataclass(frozen=True)
class PaymentAccountInfo:
    id: UUID
    account_name: str
    handle: str
    is_active: bool


class StaffSelector(BaseSelector[Staff]):
    """Staff lookups for the settlement engine."""

    model = Staff

    def find(self, staff_id: UUID) -> StaffInfo | None:
        staff = self._row(staff_id)
        if staff is None:
            return None
        return StaffInfo(
            id=staff.id,
            name=staff.name,
            monthly_salary=staff.monthly_salary,
            is_active=staff.is_active,
            date_of_joining=staff.date_of_joining,
        )

    def get(self, staff_id: UUID) -> StaffInfo:
        """
        Read a staff member as of now.

        Raises:
            StaffNotFoundError: if the identifier does not resolve.
        """
        info = self.find(staff_id)
        if info is None:
            raise StaffNotFoundError(str(staff_id))
        return info

    def payment_account(self, account_id: UUID) -> PaymentAccountInfo | None:
        account = self.session.get(PaymentAccount, account_id)
        if account is None:
            return None
        return PaymentAccountInfo(
            id=account.id,
            account_name=account.account_name,
            handle=account.handle,
            is_active=account.is_active,
        )
