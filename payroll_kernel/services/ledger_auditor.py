"""
LedgerAuditor -- rebuild ledger balances from the PaymentRecord log.

Responsibility:
    The Advance and Carry-Forward balances are cached running totals.  The
    auditor replays a staff member's PaymentRecords in ``staff_sequence``
    order from zero balances through the same pure reconciliation used at
    settlement time, and compares every stored snapshot and the live ledger
    rows with the replayed values.

Architecture position:
    Kernel > Services.  Read-only: it never repairs a ledger.

Salary records are replayed with their stored ``net_payable`` snapshot, not
a fresh computation, so attendance edited after the fact does not show up
as a ledger discrepancy.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from payroll_kernel.config import PayrollSettings
from payroll_kernel.domain.reconciliation import reconcile
from payroll_kernel.domain.values import LedgerBalances
from payroll_kernel.exceptions import LedgerReconstructionError
from payroll_kernel.logging_config import get_logger
from payroll_kernel.selectors.payment_selector import PaymentRecordDTO, PaymentSelector

logger = get_logger("services.ledger_auditor")


@dataclass(frozen=True)
class LedgerReplayReport:
    """Result of replaying one staff member's settlements."""

    staff_id: UUID
    records_replayed: int
    replayed_balances: LedgerBalances
    stored_balances: LedgerBalances
    discrepancies: tuple[str, ...]

    @property
    def is_consistent(self) -> bool:
        return not self.discrepancies


def _compare_record(record: PaymentRecordDTO, movement) -> list[str]:
    prefix = f"record {record.staff_sequence} ({record.id})"
    checks = (
        ("shortfall", record.shortfall, movement.shortfall),
        ("overpay", record.overpay, movement.overpay),
        ("advance_delta", record.advance_delta, movement.advance_delta),
        ("carry_forward_delta", record.carry_forward_delta, movement.carry_forward_delta),
        ("advance_balance_after", record.advance_balance_after, movement.balances_after.advance),
        (
            "carry_forward_balance_after",
            record.carry_forward_balance_after,
            movement.balances_after.carry_forward,
        ),
    )
    return [
        f"{prefix}: {name} stored {stored}, replayed {replayed}"
        for name, stored, replayed in checks
        if stored != replayed
    ]


class LedgerAuditor:
    """Replays payment history against the ledger rows."""

    def __init__(self, session: Session, settings: PayrollSettings | None = None):
        settings = settings or PayrollSettings()
        self._payments = PaymentSelector(session, settings.money_decimal_places)

    def replay(self, staff_id: UUID) -> LedgerReplayReport:
        """Replay every record of ``staff_id`` and report discrepancies."""
        records = self._payments.records_in_sequence(staff_id)
        balances = LedgerBalances()
        discrepancies: list[str] = []

        for expected_sequence, record in enumerate(records, start=1):
            if record.staff_sequence != expected_sequence:
                discrepancies.append(
                    f"sequence gap: expected {expected_sequence}, found {record.staff_sequence}"
                )
            try:
                movement = reconcile(
                    record.settlement_type,
                    record.amount,
                    balances,
                    record.net_payable,
                )
            except ValueError as exc:
                discrepancies.append(
                    f"record {record.staff_sequence} ({record.id}): cannot replay: {exc}"
                )
                continue
            discrepancies.extend(_compare_record(record, movement))
            balances = movement.balances_after

        stored = self._payments.balances(staff_id)
        if stored != balances:
            discrepancies.append(
                f"ledger rows hold advance={stored.advance} "
                f"carry_forward={stored.carry_forward}, replay gives "
                f"advance={balances.advance} carry_forward={balances.carry_forward}"
            )

        return LedgerReplayReport(
            staff_id=staff_id,
            records_replayed=len(records),
            replayed_balances=balances,
            stored_balances=stored,
            discrepancies=tuple(discrepancies),
        )

    def verify(self, staff_id: UUID) -> LedgerReplayReport:
        """
        Replay and raise if anything disagrees.

        Raises:
            LedgerReconstructionError: with the list of discrepancies.
        """
        report = self.replay(staff_id)
        if not report.is_consistent:
            logger.error(
                "ledger_audit_failed",
                extra={
                    "staff_id": str(staff_id),
                    "records_replayed": report.records_replayed,
                    "discrepancies": list(report.discrepancies),
                },
            )
            raise LedgerReconstructionError(str(staff_id), list(report.discrepancies))

        logger.info(
            "ledger_audit_passed",
            extra={
                "staff_id": str(staff_id),
                "records_replayed": report.records_replayed,
            },
        )
        return report
