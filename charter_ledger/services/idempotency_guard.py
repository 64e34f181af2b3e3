"""
IdempotencyGuard -- one accounting event per business action.

An event is identified by (event_type, source_document_type,
source_document_id).  A business-action handler asks the guard before
creating an event; the unique constraint ``uq_event_source`` backs it up
against concurrent writers.

The guard reports a duplicate whatever the existing event's status is:
a cancelled approval still blocks a second approval of the same expense.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from charter_ledger.domain.event_types import EventType
from charter_ledger.models.accounting_event import AccountingEvent


def _type_value(event_type: EventType | str) -> str:
    return event_type.value if isinstance(event_type, EventType) else str(event_type)


class IdempotencyGuard:
    """Read-only duplicate detection over accounting events."""

    def __init__(self, session: Session):
        self.session = session

    def find_existing(
        self,
        event_type: EventType | str,
        source_document_type: str | None,
        source_document_id: str | None,
    ) -> AccountingEvent | None:
        """The event already recorded for this business action, if any."""
        if source_document_id is None:
            return None

        stmt = select(AccountingEvent).where(
            AccountingEvent.event_type == _type_value(event_type),
            AccountingEvent.source_document_id == source_document_id,
        )
        if source_document_type is None:
            stmt = stmt.where(AccountingEvent.source_document_type.is_(None))
        else:
            stmt = stmt.where(AccountingEvent.source_document_type == source_document_type)
        return self.session.execute(stmt.limit(1)).scalar_one_or_none()

    def check_duplicate(
        self,
        event_type: EventType | str,
        source_document_type: str | None,
        source_document_id: str | None,
    ) -> bool:
        """
        True when an event of any status exists for this business action.

        Events without a source document id are never duplicates.
        """
        return (
            self.find_existing(event_type, source_document_type, source_document_id)
            is not None
        )
