"""
ORM-Level Immutability Enforcement for payment records.

PaymentRecord is the audit trail of every settlement. Ledger balances are
cached running totals derived from it, so a record that could be edited
after commit would let balances drift away from their history without a
trace. Records are therefore append-only from the moment they are flushed.

SQLAlchemy fires mapper events before UPDATE/DELETE statements are sent:

    session.flush()
         |
         v
    [before_update] --> _check_payment_record_immutability() --> ImmutabilityViolationError
    [before_delete] --> _check_payment_record_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

updated_at / updated_by_id are audit metadata and may still change.

Core-level ``delete(table)`` statements bypass mapper events; they are used
only by test cleanup.

Usage:

    from payroll_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from payroll_kernel.exceptions import ImmutabilityViolationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_METADATA_FIELDS = frozenset({"updated_at", "updated_by_id"})

_registered = False


def _changed_fields(target) -> list[str]:
    changed = []
    for attr in target.__mapper__.column_attrs:
        if attr.key in _AUDIT_METADATA_FIELDS:
            continue
        if get_history(target, attr.key).has_changes():
            changed.append(attr.key)
    return changed


def _check_payment_record_immutability(mapper, connection, target):
    """Block any UPDATE of payroll data on a flushed PaymentRecord."""
    changed = _changed_fields(target)
    if not changed:
        return

    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "PaymentRecord",
            "entity_id": str(target.id),
            "operation": "UPDATE",
            "fields": changed,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="PaymentRecord",
        entity_id=str(target.id),
        reason=f"payment records are append-only (attempted change: {', '.join(changed)})",
    )


def _check_payment_record_delete(mapper, connection, target):
    """Block DELETE of any PaymentRecord."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "PaymentRecord",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="PaymentRecord",
        entity_id=str(target.id),
        reason="payment records cannot be deleted",
    )


def register_immutability_listeners() -> None:
    """Register the ORM listeners (idempotent)."""
    global _registered
    if _registered:
        return

    from payroll_kernel.models.payment import PaymentRecord

    event.listen(PaymentRecord, "before_update", _check_payment_record_immutability)
    event.listen(PaymentRecord, "before_delete", _check_payment_record_delete)
    _registered = True
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners() -> None:
    """Remove the ORM listeners. FOR TESTING ONLY."""
    global _registered
    if not _registered:
        return

    from payroll_kernel.models.payment import PaymentRecord

    for name, fn in (
        ("before_update", _check_payment_record_immutability),
        ("before_delete", _check_payment_record_delete),
    ):
        if event.contains(PaymentRecord, name, fn):
            event.remove(PaymentRecord, name, fn)
    _registered = False
    logger.debug("immutability_listeners_unregistered")
