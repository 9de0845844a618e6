"""
SettlementReconciler -- the settlement orchestrator.

Responsibility:
    Turns one SettlementRequest into one committed settlement: net payable
    resolution (Salary), the two-ledger movement, and the PaymentRecord,
    all in a single database transaction.

Architecture position:
    Kernel > Services -- imperative shell.  The only component that owns
    transaction boundaries: it takes a session factory and opens one
    session and one transaction per attempt.

Flow (per attempt):

    validate_request()                         (before any I/O)
         |
    begin transaction
         |
    idempotency lookup -----------------------> replay stored result
         |
    staff / account / period checks
         |
    SalaryResolver.resolve()                   (Salary only)
         |
    SequenceService.next_value()               per-staff lock, sequence
    LedgerService.lock_ledgers()               advance, then carry-forward
    reconcile()                                pure two-ledger algorithm
    LedgerService.apply_movement()
    PaymentRecordLog.append()
         |
    commit  (or rollback of everything)

Invariants enforced:
    - Ledger mutations and their PaymentRecord commit together or not at all.
    - Settlements for the same staff member are serialized by the counter
      row lock; ledger version checks catch anything that slips past it.
    - A repeated idempotency key never settles twice.
    - One Salary settlement per staff member per period.

Failure modes:
    - SettlementValidationError subclasses: raised before the transaction.
    - StaffNotFoundError, StaffInactiveError, UnknownPaymentAccountError,
      PeriodAlreadySettledError, IdempotencyKeyConflictError: raised inside
      the transaction, before any ledger is written; rolled back.
    - ConcurrencyConflictError: retries exhausted after StaleDataError,
      IntegrityError or a transient lock error.  ``retryable = True``.
    - PersistenceError: any other storage failure.  Whole call rolled back.
"""

import time

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from payroll_kernel.config import PayrollSettings
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.reconciliation import reconcile
from payroll_kernel.domain.validation import validate_request
from payroll_kernel.domain.values import (
    PaymentMode,
    SettlementRequest,
    SettlementResult,
    SettlementType,
    ValidatedSettlement,
)
from payroll_kernel.exceptions import (
    ConcurrencyConflictError,
    IdempotencyKeyConflictError,
    PayrollKernelError,
    PeriodAlreadySettledError,
    PersistenceError,
    StaffInactiveError,
    UnknownPaymentAccountError,
)
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_kernel.selectors.payment_selector import PaymentSelector
from payroll_kernel.selectors.staff_selector import StaffSelector
from payroll_kernel.services.ledger_service import LedgerService
from payroll_kernel.services.payment_log import PaymentRecordLog
from payroll_kernel.services.salary_resolver import SalaryResolver
from payroll_kernel.services.sequence_service import (
    SequenceService,
    payment_record_sequence,
)

logger = get_logger("services.settlement_reconciler")

_TRANSIENT_MARKERS = (
    "deadlock",
    "database is locked",
    "lock timeout",
    "could not serialize",
    "could not obtain lock",
)


def _is_transient(exc: OperationalError) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


class SettlementReconciler:
    """
    Settles payroll transactions against the Advance and Carry-Forward
    ledgers.

    Usage:
        reconciler = SettlementReconciler(get_session_factory(), settings)
        result = reconciler.settle(SettlementRequest(...))
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: PayrollSettings | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._settings = settings or PayrollSettings()
        self._clock = clock or SystemClock()

    def settle(self, request: SettlementRequest) -> SettlementResult:
        """
        Process one settlement request.

        Either the whole settlement (deduction, both ledger updates, the
        record) commits, or none of it does.
        """
        settlement = validate_request(request, self._settings.money_decimal_places)

        with LogContext.bind(
            staff_id=str(settlement.staff_id),
            idempotency_key=settlement.idempotency_key,
            actor_id=str(settlement.actor_id),
        ):
            logger.info(
                "settlement_started",
                extra={
                    "settlement_type": settlement.settlement_type.value,
                    "amount": settlement.amount,
                    "mode": settlement.mode.value,
                    "period": settlement.period.key if settlement.period else None,
                },
            )
            return self._settle_with_retry(settlement)

    def _settle_with_retry(self, settlement: ValidatedSettlement) -> SettlementResult:
        max_attempts = self._settings.max_settlement_attempts
        reason = ""

        for attempt in range(1, max_attempts + 1):
            session = self._session_factory()
            try:
                with session.begin():
                    result = self._settle_once(session, settlement)
            except (StaleDataError, IntegrityError) as exc:
                reason = f"{type(exc).__name__}: {exc}"
            except OperationalError as exc:
                if not _is_transient(exc):
                    self._log_rollback(exc)
                    raise PersistenceError("settle", str(exc)) from exc
                reason = f"{type(exc).__name__}: {exc}"
            except SQLAlchemyError as exc:
                self._log_rollback(exc)
                raise PersistenceError("settle", str(exc)) from exc
            except PayrollKernelError as exc:
                logger.warning(
                    "settlement_rejected",
                    extra={"error_code": exc.code, "attempt": attempt},
                )
                raise
            else:
                self._log_outcome(result, attempt)
                return result
            finally:
                session.close()

            logger.warning(
                "settlement_conflict_retry",
                extra={
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "reason": reason,
                },
            )
            if attempt < max_attempts:
                time.sleep(float(self._settings.retry_backoff_seconds) * attempt)

        logger.error(
            "settlement_conflict_exhausted",
            extra={"attempts": max_attempts, "reason": reason},
        )
        raise ConcurrencyConflictError(str(settlement.staff_id), max_attempts, reason)

    def _settle_once(self, session: Session, settlement: ValidatedSettlement) -> SettlementResult:
        places = self._settings.money_decimal_places
        payments = PaymentSelector(session, places)

        existing = payments.get_by_idempotency_key(settlement.idempotency_key)
        if existing is not None:
            if existing.request_hash != settlement.request_hash:
                raise IdempotencyKeyConflictError(
                    settlement.idempotency_key,
                    existing.request_hash,
                    settlement.request_hash,
                )
            return existing.to_result(replayed=True)

        self._check_preconditions(session, settlement, payments)

        salary = None
        if settlement.settlement_type is SettlementType.SALARY:
            salary = SalaryResolver(session, self._settings).resolve(
                settlement.staff_id, settlement.period
            )

        # Lock order: counter row, advance row, carry-forward row.
        staff_sequence = SequenceService(session).next_value(
            payment_record_sequence(settlement.staff_id)
        )
        ledgers = LedgerService(session, places)
        locked = ledgers.lock_ledgers(settlement.staff_id, settlement.actor_id)

        movement = reconcile(
            settlement.settlement_type,
            settlement.amount,
            locked.balances,
            salary.amount if salary else None,
        )
        ledgers.apply_movement(locked, movement, settlement.actor_id)

        record_id = PaymentRecordLog(session, self._clock).append(
            settlement, movement, staff_sequence, salary
        )
        return payments.get(record_id).to_result()

    def _check_preconditions(
        self,
        session: Session,
        settlement: ValidatedSettlement,
        payments: PaymentSelector,
    ) -> None:
        staff_selector = StaffSelector(session)
        staff = staff_selector.get(settlement.staff_id)

        if settlement.settlement_type is SettlementType.ADVANCE and not staff.is_active:
            raise StaffInactiveError(str(staff.id), settlement.settlement_type.value)

        if settlement.mode is PaymentMode.ELECTRONIC_TRANSFER:
            account = staff_selector.payment_account(settlement.payment_account_id)
            if account is None:
                raise UnknownPaymentAccountError(
                    str(settlement.payment_account_id), "no such account"
                )
            if not account.is_active:
                raise UnknownPaymentAccountError(
                    str(settlement.payment_account_id), "account is inactive"
                )

        if settlement.settlement_type is SettlementType.SALARY:
            settled = payments.salary_record_for_period(settlement.staff_id, settlement.period)
            if settled is not None:
                raise PeriodAlreadySettledError(
                    str(settlement.staff_id), settlement.period.key, str(settled.id)
                )

    def _log_outcome(self, result: SettlementResult, attempt: int) -> None:
        with LogContext.bind(settlement_id=str(result.payment_record_id)):
            if result.replayed:
                logger.info(
                    "settlement_replayed",
                    extra={"staff_sequence": result.staff_sequence},
                )
                return
            logger.info(
                "settlement_committed",
                extra={
                    "attempt": attempt,
                    "settlement_type": result.settlement_type.value,
                    "amount": result.amount_paid,
                    "net_payable": result.net_payable,
                    "shortfall": result.shortfall,
                    "overpay": result.overpay,
                    "advance_balance": result.advance_balance,
                    "carry_forward_balance": result.carry_forward_balance,
                    "staff_sequence": result.staff_sequence,
                },
            )

    def _log_rollback(self, exc: Exception) -> None:
        logger.error(
            "settlement_rolled_back",
            extra={"error_type": type(exc).__name__},
            exc_info=exc,
        )

    def settlement_for_key(self, idempotency_key: str) -> SettlementResult | None:
        """The committed settlement for an idempotency key, if any."""
        session = self._session_factory()
        try:
            record = PaymentSelector(
                session, self._settings.money_decimal_places
            ).get_by_idempotency_key(idempotency_key)
            return record.to_result(replayed=True) if record else None
        finally:
            session.close()

