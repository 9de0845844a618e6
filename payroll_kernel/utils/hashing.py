"""
Request fingerprints.

An idempotency key is only safe to replay if the retried request is the
same request.  The fingerprint stored on a PaymentRecord is the SHA-256 of
a canonical JSON rendering of the request, so it must not depend on dict
ordering, on how an amount was typed (``2000`` vs ``2000.00``) or on the
Python process that computed it.
"""

import hashlib
import json
from datetime import date
from decimal import Decimal
from enum import Enum
from functools import singledispatch
from typing import Any
from uuid import UUID


@singledispatch
def _canonical(obj: Any) -> Any:
    raise TypeError(f"cannot fingerprint a {type(obj).__name__}")


@_canonical.register
def _(obj: Decimal) -> str:
    # 2000, 2000.0 and 2000.00 all render as "2E+3"
    return str(obj.normalize())


@_canonical.register
def _(obj: Enum) -> Any:
    return obj.value


@_canonical.register
def _(obj: date) -> str:
    # also covers datetime
    return obj.isoformat()


@_canonical.register
def _(obj: UUID) -> str:
    return str(obj)


def canonicalize_json(data: Any) -> str:
    """Sorted keys, no whitespace, payroll value types rendered as strings."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_canonical)


def hash_payload(payload: dict) -> str:
    """Hex SHA-256 of the canonical JSON form of ``payload``."""
    return hashlib.sha256(canonicalize_json(payload).encode("utf-8")).hexdigest()
