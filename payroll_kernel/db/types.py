"""
Module: payroll_kernel.db.types
Responsibility: Annotated type aliases and the sanctioned rounding helpers for
    monetary columns and values.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

CRITICAL: No floats anywhere in the payroll kernel.  All monetary amounts
use Decimal with explicit precision.
"""

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from sqlalchemy import BigInteger, Numeric, String

# 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Monotonic sequence number for ordering
Sequence = Annotated[int, BigInteger]

# SHA-256 hash as hex string (64 characters)
PayloadHash = Annotated[str, String(64)]

# Short identifier strings
ShortCode = Annotated[str, String(50)]

# Long text for notes
LongText = Annotated[str, String(4000)]


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """
    Convert an int, str or Decimal to Decimal.

    Floats are rejected: binary floating point cannot represent most
    currency amounts exactly.

    Raises:
        TypeError: If value is a float or an unsupported type.
        ValueError: If value is a string that is not a finite number.
    """
    if isinstance(value, bool):
        raise TypeError("Booleans are not monetary amounts")
    if isinstance(value, float):
        raise TypeError("Floats are not accepted for monetary amounts")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"Not a number: {value!r}") from exc
    else:
        raise TypeError(f"Unsupported amount type: {type(value).__name__}")
    if not result.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to ``decimal_places``.

    This is the only sanctioned rounding function for amounts entering
    the kernel.
    """
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=rounding)


def floor_money(value: Decimal) -> Decimal:
    """Floor a monetary value to a whole currency unit."""
    return value.to_integral_value(rounding=ROUND_FLOOR)
