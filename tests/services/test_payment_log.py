"""
PaymentRecordLog and the append-only guarantee on payment records.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from payroll_kernel.domain.reconciliation import reconcile
from payroll_kernel.domain.validation import validate_request
from payroll_kernel.domain.values import LedgerBalances, SettlementType
from payroll_kernel.exceptions import ImmutabilityViolationError
from payroll_kernel.models import PaymentRecord
from payroll_kernel.services.payment_log import PaymentRecordLog

D = Decimal


class TestAppend:

    def test_advance_record(self, create_staff, make_request, session, deterministic_clock):
        staff_id = create_staff()
        settlement = validate_request(
            make_request(staff_id, SettlementType.ADVANCE, amount="2000", period=None, notes=" festival ")
        )
        movement = reconcile(settlement.settlement_type, settlement.amount, LedgerBalances())

        record_id = PaymentRecordLog(session, deterministic_clock).append(settlement, movement, 1)

        record = session.get(PaymentRecord, record_id)
        assert record.settlement_type == "advance"
        assert record.mode == "cash"
        assert record.amount == D("2000")
        assert record.salary_period_key is None
        assert record.net_payable is None
        assert record.notes == "festival"
        assert record.advance_balance_after == D("2000")
        assert record.request_hash == settlement.request_hash
        assert record.created_by_id == settlement.actor_id

    def test_salary_period_key_only_for_salary(self, create_staff, make_request, session):
        staff_id = create_staff()
        settlement = validate_request(
            make_request(staff_id, SettlementType.SALARY_CARRYFORWARD, amount="100", period=(1, 2024))
        )
        movement = reconcile(
            settlement.settlement_type, settlement.amount, LedgerBalances(carry_forward=D("100"))
        )
        record_id = PaymentRecordLog(session).append(settlement, movement, 1)

        record = session.get(PaymentRecord, record_id)
        assert record.period_month == 1
        assert record.salary_period_key is None

    def test_duplicate_key_rejected(self, create_staff, make_request, session):
        staff_id = create_staff()
        log = PaymentRecordLog(session)
        first = validate_request(
            make_request(staff_id, SettlementType.ADVANCE, amount="10", period=None, idempotency_key="dup")
        )
        log.append(first, reconcile(SettlementType.ADVANCE, D("10"), LedgerBalances()), 1)
        with pytest.raises(IntegrityError):
            log.append(first, reconcile(SettlementType.ADVANCE, D("10"), LedgerBalances()), 2)


class TestImmutability:

    @pytest.fixture
    def settled_record_id(self, create_staff, make_request, reconciler):
        staff_id = create_staff()
        return reconciler.settle(make_request(staff_id)).payment_record_id

    def test_update_rejected(self, settled_record_id, session):
        record = session.get(PaymentRecord, settled_record_id)
        record.amount = D("1")
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "PaymentRecord"
        assert "amount" in exc_info.value.reason

    def test_delete_rejected(self, settled_record_id, session):
        record = session.get(PaymentRecord, settled_record_id)
        session.delete(record)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_audit_metadata_may_change(self, settled_record_id, session):
        record = session.get(PaymentRecord, settled_record_id)
        record.updated_by_id = uuid4()
        session.flush()

    def test_record_survives_rejected_update(self, settled_record_id, session):
        record = session.get(PaymentRecord, settled_record_id)
        record.staff_sequence = 99
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        stored = session.execute(
            select(PaymentRecord.staff_sequence).where(PaymentRecord.id == settled_record_id)
        ).scalar_one()
        assert stored == 1
