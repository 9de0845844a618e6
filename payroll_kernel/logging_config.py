"""
Structured JSON logging for the payroll kernel.

Every record is one JSON object per line.  Besides the fixed keys (``ts``,
``level``, ``logger``, ``message``) a line carries:

- the request-scoped fields currently bound in LogContext (which staff
  member, which idempotency key, which actor),
- anything passed through ``extra=``,
- for records logged with ``exc_info``, the exception type, message and the
  public attributes of PayrollKernelError subclasses, prefixed ``exc_``.

Only the ``payroll_kernel`` logger hierarchy is configured; the host
application's root logger is left alone.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from types import MappingProxyType
from typing import Any

LOGGER_NAMESPACE = "payroll_kernel"

_EMPTY: Mapping[str, str] = MappingProxyType({})
_bound_fields: ContextVar[Mapping[str, str]] = ContextVar("payroll_log_context", default=_EMPTY)


class LogContext:
    """
    Request-scoped fields added to every log line.

    Backed by a ContextVar holding an immutable mapping, so threads and
    asyncio tasks each see their own fields.
    """

    FIELDS = frozenset(
        {"correlation_id", "staff_id", "settlement_id", "idempotency_key", "actor_id"}
    )

    @classmethod
    def _merged(cls, fields: dict[str, str | None]) -> Mapping[str, str]:
        current = dict(_bound_fields.get())
        current.update(
            (name, value)
            for name, value in fields.items()
            if name in cls.FIELDS and value is not None
        )
        return MappingProxyType(current)

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Add fields to the current context.  None values leave a field as it is."""
        _bound_fields.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_bound_fields.get())

    @classmethod
    def clear(cls) -> None:
        _bound_fields.set(_EMPTY)

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a block; names outside FIELDS are ignored."""
        token = _bound_fields.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _bound_fields.reset(token)


# Attributes every LogRecord has; anything else on a record came from extra=.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """ISO dates; str() for UUID, Decimal and anything else."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                line.setdefault(key, value)
        if record.exc_info and record.exc_info[1] is not None:
            line.update(self._exception_fields(record))
        return json.dumps(line, cls=_JSONEncoder)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        fields.update(
            (f"exc_{name}", value)
            for name, value in vars(exc).items()
            if not name.startswith("_") and name not in ("args", "code")
        )
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger under the payroll_kernel namespace, e.g. ``get_logger("services.ledger")``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_config_lock = threading.Lock()
_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the payroll_kernel logger.

    The first call wins; later calls are no-ops until reset_logging().
    """
    global _handler
    with _config_lock:
        if _handler is not None:
            return
        _handler = handler or logging.StreamHandler(stream or sys.stderr)

    _handler.setFormatter(StructuredFormatter())
    kernel_logger = logging.getLogger(LOGGER_NAMESPACE)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False
    kernel_logger.addHandler(_handler)


def reset_logging() -> None:
    """Detach the handler installed by configure_logging().  Used by tests."""
    global _handler
    with _config_lock:
        _handler = None
    kernel_logger = logging.getLogger(LOGGER_NAMESPACE)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
