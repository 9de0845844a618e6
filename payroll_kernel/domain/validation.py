"""
Settlement request validation.

Shape checks that need no database access: amount, enums, period,
idempotency key, receiving account presence. Everything here runs before
the reconciler opens a transaction, so a rejected request never reads or
writes a ledger.

Checks that need stored state (staff exists, staff active, account active,
period already settled) live in the services layer.
"""

from decimal import Decimal, InvalidOperation

from payroll_kernel.db.types import MONEY_DECIMAL_PLACES, round_money, to_decimal
from payroll_kernel.domain.values import (
    PaymentMode,
    PayPeriod,
    SettlementRequest,
    SettlementType,
    ValidatedSettlement,
)
from payroll_kernel.exceptions import (
    InvalidAmountError,
    InvalidIdempotencyKeyError,
    MissingIdempotencyKeyError,
    MissingPeriodError,
    NotesTooLongError,
    UnknownPaymentAccountError,
    UnsupportedPaymentModeError,
    UnsupportedSettlementTypeError,
)

MAX_IDEMPOTENCY_KEY_LENGTH = 128
MAX_NOTES_LENGTH = 4000
# Largest single settlement; keeps ledger sums well inside Numeric(38, 9).
MAX_SETTLEMENT_AMOUNT = Decimal("1000000000000000")


def parse_settlement_type(value) -> SettlementType:
    if isinstance(value, SettlementType):
        return value
    try:
        return SettlementType(value)
    except ValueError as exc:
        raise UnsupportedSettlementTypeError(str(value)) from exc


def parse_payment_mode(value) -> PaymentMode:
    if isinstance(value, PaymentMode):
        return value
    try:
        return PaymentMode(value)
    except ValueError as exc:
        raise UnsupportedPaymentModeError(str(value)) from exc


def parse_amount(value, decimal_places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """
    Convert the submitted amount to a rounded, strictly positive Decimal.

    Rounding happens before the positivity check, so 0.001 is rejected
    rather than silently stored as 0.00.
    """
    if value is None:
        raise InvalidAmountError("None", "amount is required")
    try:
        amount = to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise InvalidAmountError(repr(value), str(exc)) from exc

    if amount >= MAX_SETTLEMENT_AMOUNT:
        raise InvalidAmountError(str(amount), f"amount must be below {MAX_SETTLEMENT_AMOUNT}")
    try:
        amount = round_money(amount, decimal_places)
    except InvalidOperation as exc:
        raise InvalidAmountError(str(amount), "amount cannot be represented") from exc
    if amount <= 0:
        raise InvalidAmountError(str(amount))
    return amount


def validate_request(
    request: SettlementRequest,
    decimal_places: int = MONEY_DECIMAL_PLACES,
) -> ValidatedSettlement:
    """
    Validate and normalize a settlement request.

    Raises:
        UnsupportedSettlementTypeError, UnsupportedPaymentModeError,
        InvalidAmountError, MissingPeriodError, InvalidPeriodError,
        UnknownPaymentAccountError, MissingIdempotencyKeyError,
        InvalidIdempotencyKeyError, NotesTooLongError.
    """
    settlement_type = parse_settlement_type(request.settlement_type)
    mode = parse_payment_mode(request.mode)
    amount = parse_amount(request.amount, decimal_places)

    key = (request.idempotency_key or "").strip()
    if not key:
        raise MissingIdempotencyKeyError()
    if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise InvalidIdempotencyKeyError(
            f"idempotency_key longer than {MAX_IDEMPOTENCY_KEY_LENGTH} characters"
        )

    period = None
    if request.period_month is not None or request.period_year is not None:
        if request.period_month is None or request.period_year is None:
            raise MissingPeriodError(settlement_type.value)
        period = PayPeriod(month=request.period_month, year=request.period_year)
    elif settlement_type is SettlementType.SALARY:
        raise MissingPeriodError(settlement_type.value)

    payment_account_id = None
    if mode is PaymentMode.ELECTRONIC_TRANSFER:
        if request.payment_account_id is None:
            raise UnknownPaymentAccountError(
                None, "electronic transfer requires a receiving account"
            )
        payment_account_id = request.payment_account_id

    notes = (request.notes or "").strip() or None
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        raise NotesTooLongError(len(notes), MAX_NOTES_LENGTH)

    return ValidatedSettlement(
        staff_id=request.staff_id,
        settlement_type=settlement_type,
        amount=amount,
        mode=mode,
        idempotency_key=key,
        actor_id=request.actor_id,
        period=period,
        payment_account_id=payment_account_id,
        notes=notes,
    )
