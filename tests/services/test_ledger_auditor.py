"""
LedgerAuditor: rebuilding balances from the payment record log.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import update

from payroll_kernel.db.engine import session_scope
from payroll_kernel.domain.values import AttendanceStatus, LedgerBalances, SettlementType
from payroll_kernel.exceptions import LedgerReconstructionError
from payroll_kernel.models import AdvanceBalance, PaymentRecord
from payroll_kernel.services.ledger_auditor import LedgerAuditor

D = Decimal


@pytest.fixture
def settled_staff(create_staff, make_request, reconciler):
    """A staff member with a few months of settlements."""
    staff_id = create_staff()
    reconciler.settle(make_request(staff_id, amount="13000", period=(1, 2024)))
    reconciler.settle(make_request(staff_id, SettlementType.ADVANCE, amount="1000", period=None))
    reconciler.settle(make_request(staff_id, amount="16000", period=(2, 2024)))
    return staff_id


class TestReplay:

    def test_consistent_history(self, settled_staff, session):
        report = LedgerAuditor(session).verify(settled_staff)

        assert report.is_consistent
        assert report.records_replayed == 3
        assert report.replayed_balances == report.stored_balances
        assert report.stored_balances == LedgerBalances(D("1000"), D("1000"))

    def test_no_history(self, create_staff, session):
        staff_id = create_staff()
        report = LedgerAuditor(session).replay(staff_id)
        assert report.is_consistent
        assert report.records_replayed == 0

    def test_later_attendance_edit_is_not_a_discrepancy(
        self, settled_staff, record_attendance, session
    ):
        # January was settled against 15000; an absence recorded afterwards
        # changes today's net payable but not the stored snapshot
        record_attendance(settled_staff, AttendanceStatus.ABSENT, date(2024, 1, 5))
        assert LedgerAuditor(session).replay(settled_staff).is_consistent


class TestTampering:

    def test_ledger_row_drift_detected(self, settled_staff, session, captured_logs):
        with session_scope() as s:
            s.execute(
                update(AdvanceBalance.__table__)
                .where(AdvanceBalance.__table__.c.staff_id == settled_staff)
                .values(balance=D("5000"))
            )

        with pytest.raises(LedgerReconstructionError) as exc_info:
            LedgerAuditor(session).verify(settled_staff)

        assert any("ledger rows hold advance=5000" in d for d in exc_info.value.discrepancies)
        assert any(r["message"] == "ledger_audit_failed" for r in captured_logs())

    def test_record_snapshot_tampering_detected(self, settled_staff, session):
        table = PaymentRecord.__table__
        with session_scope() as s:
            s.execute(
                update(table)
                .where(table.c.staff_id == settled_staff)
                .where(table.c.staff_sequence == 1)
                .values(carry_forward_balance_after=D("0"))
            )

        report = LedgerAuditor(session).replay(settled_staff)

        assert not report.is_consistent
        assert any("carry_forward_balance_after" in d for d in report.discrepancies)

    def test_sequence_gap_detected(self, settled_staff, session):
        table = PaymentRecord.__table__
        with session_scope() as s:
            s.execute(
                update(table)
                .where(table.c.staff_id == settled_staff)
                .where(table.c.staff_sequence == 3)
                .values(staff_sequence=7)
            )

        report = LedgerAuditor(session).replay(settled_staff)

        assert any("sequence gap" in d for d in report.discrepancies)
