"""
Typed Exception Hierarchy for the Payroll Kernel.

Every error raised by the settlement engine is a typed exception with a
class-level ``code`` (machine-readable, API-safe) and structured attributes.
Callers catch by type and read attributes; they never parse messages.

    PayrollKernelError (base)
    |
    +-- SettlementValidationError
    |   +-- InvalidAmountError
    |   +-- InvalidPeriodError
    |   +-- MissingPeriodError
    |   +-- UnsupportedPaymentModeError
    |   +-- UnsupportedSettlementTypeError
    |   +-- UnknownPaymentAccountError
    |   +-- InvalidIdempotencyKeyError
    |   |   +-- MissingIdempotencyKeyError
    |   +-- NotesTooLongError
    |   +-- StaffInactiveError
    |   +-- PeriodAlreadySettledError
    |
    +-- NotFoundError
    |   +-- StaffNotFoundError
    |
    +-- IdempotencyError
    |   +-- IdempotencyKeyConflictError
    |
    +-- ConcurrencyConflictError
    |
    +-- PersistenceError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- LedgerIntegrityError
        +-- NegativeBalanceError
        +-- LedgerReconstructionError

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_AMOUNT              | Amount missing, non-numeric or out of range
                | INVALID_PERIOD              | Month/year out of range, before joining
                | MISSING_PERIOD              | Salary settlement without a period
                | UNSUPPORTED_PAYMENT_MODE    | Mode is not Cash / ElectronicTransfer
                | UNSUPPORTED_SETTLEMENT_TYPE | Type is not Advance / Salary / carry
                | UNKNOWN_PAYMENT_ACCOUNT     | Transfer without an active account
                | INVALID_IDEMPOTENCY_KEY     | Idempotency key longer than allowed
                | MISSING_IDEMPOTENCY_KEY     | Request carries no idempotency key
                | NOTES_TOO_LONG              | Notes exceed the stored column width
                | STAFF_INACTIVE              | Advance to an inactive staff member
                | PERIOD_ALREADY_SETTLED      | Second salary settlement for a period
----------------|-----------------------------|-----------------------------------------
Not found       | STAFF_NOT_FOUND             | Staff identifier does not resolve
----------------|-----------------------------|-----------------------------------------
Idempotency     | IDEMPOTENCY_KEY_CONFLICT    | Same key, different request
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONCURRENCY_CONFLICT        | Retries exhausted (retryable)
----------------|-----------------------------|-----------------------------------------
Persistence     | PERSISTENCE_ERROR           | Storage failure, whole call rolled back
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE/DELETE on a PaymentRecord
----------------|-----------------------------|-----------------------------------------
Ledger          | NEGATIVE_BALANCE            | A movement would drive a ledger below 0
                | LEDGER_RECONSTRUCTION_FAILED| Replay disagrees with stored state

Validation errors are raised before any ledger read or write and are fully
recoverable. ConcurrencyConflictError carries ``retryable = True``.
"""


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"
    retryable: bool = False


# Validation exceptions


class SettlementValidationError(PayrollKernelError):
    """Base exception for malformed settlement requests."""

    code: str = "VALIDATION_ERROR"


# The taxonomy name used by callers that do not care about the subtype.
ValidationError = SettlementValidationError


class InvalidAmountError(SettlementValidationError):
    """Settlement amount is missing, non-numeric or not strictly positive."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str, reason: str = "amount must be greater than zero"):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount}: {reason}")


class InvalidPeriodError(SettlementValidationError):
    """Settlement period is not a valid calendar month."""

    code: str = "INVALID_PERIOD"

    def __init__(self, month: int | None, year: int | None, reason: str):
        self.month = month
        self.year = year
        self.reason = reason
        super().__init__(f"Invalid period {year}-{month}: {reason}")


class MissingPeriodError(SettlementValidationError):
    """A salary settlement was submitted without its period."""

    code: str = "MISSING_PERIOD"

    def __init__(self, settlement_type: str):
        self.settlement_type = settlement_type
        super().__init__(f"Settlement type {settlement_type} requires a period")


class UnsupportedPaymentModeError(SettlementValidationError):
    """Payment mode is not one of the recognised modes."""

    code: str = "UNSUPPORTED_PAYMENT_MODE"

    def __init__(self, mode: str):
        self.mode = mode
        super().__init__(f"Unsupported payment mode: {mode}")


class UnsupportedSettlementTypeError(SettlementValidationError):
    """Settlement type is not one of the recognised types."""

    code: str = "UNSUPPORTED_SETTLEMENT_TYPE"

    def __init__(self, settlement_type: str):
        self.settlement_type = settlement_type
        super().__init__(f"Unsupported settlement type: {settlement_type}")


class UnknownPaymentAccountError(SettlementValidationError):
    """Electronic transfer names no receiving account, or an unusable one."""

    code: str = "UNKNOWN_PAYMENT_ACCOUNT"

    def __init__(self, payment_account_id: str | None, reason: str):
        self.payment_account_id = payment_account_id
        self.reason = reason
        super().__init__(
            f"Unknown payment account {payment_account_id}: {reason}"
        )


class InvalidIdempotencyKeyError(SettlementValidationError):
    """Idempotency key is present but cannot be stored."""

    code: str = "INVALID_IDEMPOTENCY_KEY"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid idempotency key: {reason}")


class MissingIdempotencyKeyError(InvalidIdempotencyKeyError):
    """Settlement request carries no idempotency key."""

    code: str = "MISSING_IDEMPOTENCY_KEY"

    def __init__(self, reason: str = "settlement requests require an idempotency_key"):
        super().__init__(reason)


class NotesTooLongError(SettlementValidationError):
    """Free-text notes are longer than the payment record can hold."""

    code: str = "NOTES_TOO_LONG"

    def __init__(self, length: int, max_length: int):
        self.length = length
        self.max_length = max_length
        super().__init__(f"Notes are {length} characters; at most {max_length} allowed")


class StaffInactiveError(SettlementValidationError):
    """Staff member is inactive and cannot receive this settlement type."""

    code: str = "STAFF_INACTIVE"

    def __init__(self, staff_id: str, settlement_type: str):
        self.staff_id = staff_id
        self.settlement_type = settlement_type
        super().__init__(
            f"Staff {staff_id} is inactive; {settlement_type} not allowed"
        )


class PeriodAlreadySettledError(SettlementValidationError):
    """A salary settlement for this staff and period already committed."""

    code: str = "PERIOD_ALREADY_SETTLED"

    def __init__(self, staff_id: str, period_key: str, payment_record_id: str | None = None):
        self.staff_id = staff_id
        self.period_key = period_key
        self.payment_record_id = payment_record_id
        super().__init__(
            f"Salary for {period_key} already settled for staff {staff_id}"
        )


# Lookup exceptions


class NotFoundError(PayrollKernelError):
    """Base exception for unresolvable identifiers."""

    code: str = "NOT_FOUND"


class StaffNotFoundError(NotFoundError):
    """Staff identifier does not resolve."""

    code: str = "STAFF_NOT_FOUND"

    def __init__(self, staff_id: str):
        self.staff_id = staff_id
        super().__init__(f"Staff not found: {staff_id}")


# Idempotency exceptions


class IdempotencyError(PayrollKernelError):
    """Base exception for idempotency violations."""

    code: str = "IDEMPOTENCY_ERROR"


class IdempotencyKeyConflictError(IdempotencyError):
    """
    Idempotency key was already used for a different request.

    This is a protocol violation: a key identifies exactly one settlement
    attempt and its payload.
    """

    code: str = "IDEMPOTENCY_KEY_CONFLICT"

    def __init__(self, idempotency_key: str, expected_hash: str, received_hash: str):
        self.idempotency_key = idempotency_key
        self.expected_hash = expected_hash
        self.received_hash = received_hash
        super().__init__(
            f"Idempotency key {idempotency_key} reused with a different request: "
            f"expected {expected_hash}, received {received_hash}"
        )


# Concurrency exceptions


class ConcurrencyConflictError(PayrollKernelError):
    """
    A competing settlement for the same staff member committed first.

    Raised to the caller only after the reconciler's bounded retries are
    exhausted. Safe to resubmit with the same idempotency key.
    """

    code: str = "CONCURRENCY_CONFLICT"
    retryable: bool = True

    def __init__(self, staff_id: str, attempts: int, reason: str = ""):
        self.staff_id = staff_id
        self.attempts = attempts
        self.reason = reason
        super().__init__(
            f"Concurrent settlement conflict for staff {staff_id} "
            f"after {attempts} attempt(s): {reason}"
        )


# Persistence exceptions


class PersistenceError(PayrollKernelError):
    """
    Storage failed; the whole settlement was rolled back.

    Fatal to the call, not to the process.
    """

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Persistence failure during {operation}: {detail}")


# Immutability exceptions


class ImmutabilityError(PayrollKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Ledger integrity exceptions


class LedgerIntegrityError(PayrollKernelError):
    """Base exception for ledger consistency failures."""

    code: str = "LEDGER_INTEGRITY_ERROR"


class NegativeBalanceError(LedgerIntegrityError):
    """A ledger movement would leave a balance below zero."""

    code: str = "NEGATIVE_BALANCE"

    def __init__(self, ledger: str, staff_id: str, balance: str):
        self.ledger = ledger
        self.staff_id = staff_id
        self.balance = balance
        super().__init__(
            f"{ledger} balance for staff {staff_id} would become {balance}"
        )


class LedgerReconstructionError(LedgerIntegrityError):
    """Replaying payment history does not reproduce the stored balances."""

    code: str = "LEDGER_RECONSTRUCTION_FAILED"

    def __init__(self, staff_id: str, discrepancies: list[str]):
        self.staff_id = staff_id
        self.discrepancies = discrepancies
        super().__init__(
            f"Ledger replay for staff {staff_id} found "
            f"{len(discrepancies)} discrepancy(ies): {'; '.join(discrepancies)}"
        )
