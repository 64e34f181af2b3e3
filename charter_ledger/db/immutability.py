"""
Module: charter_ledger.db.immutability
Responsibility: ORM-level guard that keeps processed and cancelled accounting
    events, and the journals linked to them, from being edited in place.
Architecture position: Ledger > DB.  Imports models lazily inside the
    listener functions.

Invariants enforced:
    - An AccountingEvent whose persisted status is processed or cancelled
      accepts no attribute change through the ORM.  Status transitions are
      written by EventStore through conditional UPDATE statements, which do
      not pass through these mapper events.
    - JournalEntryLine rows are never updated once flushed.

Failure modes:
    - ImmutabilityViolationError raised from the flush that attempted the edit.

Usage:
    register_immutability_listeners()    # once at startup (idempotent)
    unregister_immutability_listeners()  # tests that need to bypass the guard
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from charter_ledger.exceptions import ImmutabilityViolationError
from charter_ledger.logging_config import get_logger

logger = get_logger("db.immutability")


def _persisted_status(target) -> str | None:
    history = get_history(target, "status")
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return None


def _check_event_immutability(mapper, connection, target):
    from charter_ledger.models.accounting_event import TERMINAL_STATUSES

    old_status = _persisted_status(target)
    if old_status is None or str(old_status) not in TERMINAL_STATUSES:
        return

    for attr in inspect(target).attrs:
        if attr.history.has_changes():
            logger.error(
                "immutability_violation_blocked",
                extra={
                    "entity_type": "AccountingEvent",
                    "entity_id": str(target.id),
                    "field": attr.key,
                    "status": str(old_status),
                },
            )
            raise ImmutabilityViolationError(
                entity_type="AccountingEvent",
                entity_id=str(target.id),
                reason=f"field '{attr.key}' cannot change on a {old_status} event",
            )


def _check_line_immutability(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="JournalEntryLine",
        entity_id=str(target.id),
        reason="journal lines are append-only",
    )


def _listeners():
    from charter_ledger.models.accounting_event import AccountingEvent
    from charter_ledger.models.journal import JournalEntryLine

    return (
        (AccountingEvent, "before_update", _check_event_immutability),
        (JournalEntryLine, "before_update", _check_line_immutability),
    )


def register_immutability_listeners() -> None:
    for target, identifier, fn in _listeners():
        if not event.contains(target, identifier, fn):
            event.listen(target, identifier, fn)


def unregister_immutability_listeners() -> None:
    for target, identifier, fn in _listeners():
        if event.contains(target, identifier, fn):
            event.remove(target, identifier, fn)
