"""
Module: charter_ledger.selectors.event_selector
Responsibility: Read-only listing of accounting events for operators and
    reconciliation jobs.
"""

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from charter_ledger.models.accounting_event import AccountingEvent, EventStatus
from charter_ledger.models.event_journal_link import EventJournalEntry
from charter_ledger.selectors.base import BaseSelector


@dataclass
class AccountingEventDTO:
    id: UUID
    event_type: str
    event_date: date
    status: str
    source_document_type: str | None
    source_document_id: str | None
    affected_companies: list[str]
    retry_count: int
    error_message: str | None
    processed_at: datetime | None
    created_at: datetime | None


class EventSelector(BaseSelector[AccountingEvent]):
    def __init__(self, session: Session):
        super().__init__(session)

    def _to_dto(self, event: AccountingEvent) -> AccountingEventDTO:
        return AccountingEventDTO(
            id=event.id,
            event_type=event.event_type,
            event_date=event.event_date,
            status=event.status,
            source_document_type=event.source_document_type,
            source_document_id=event.source_document_id,
            affected_companies=list(event.affected_companies),
            retry_count=event.retry_count,
            error_message=event.error_message,
            processed_at=event.processed_at,
            created_at=event.created_at,
        )

    def get(self, event_id: UUID) -> AccountingEventDTO | None:
        event = self.session.get(AccountingEvent, event_id)
        return self._to_dto(event) if event else None

    def list_by_status(
        self, status: EventStatus, limit: int = 100
    ) -> list[AccountingEventDTO]:
        events = self.session.execute(
            select(AccountingEvent)
            .where(AccountingEvent.status == status.value)
            .order_by(AccountingEvent.created_at, AccountingEvent.event_date)
            .limit(limit)
        ).scalars()
        return [self._to_dto(e) for e in events]

    def list_by_source(
        self, source_document_type: str, source_document_id: str
    ) -> list[AccountingEventDTO]:
        """Every event raised from one source document, oldest first."""
        events = self.session.execute(
            select(AccountingEvent)
            .where(
                AccountingEvent.source_document_type == source_document_type,
                AccountingEvent.source_document_id == source_document_id,
            )
            .order_by(AccountingEvent.created_at)
        ).scalars()
        return [self._to_dto(e) for e in events]

    def count_by_status(self) -> dict[str, int]:
        rows = self.session.execute(
            select(AccountingEvent.status, func.count(AccountingEvent.id)).group_by(
                AccountingEvent.status
            )
        ).all()
        counts = {status.value: 0 for status in EventStatus}
        counts.update({status: count for status, count in rows})
        return counts

    def journal_count(self, event_id: UUID) -> int:
        return self.session.execute(
            select(func.count(EventJournalEntry.id)).where(
                EventJournalEntry.event_id == event_id
            )
        ).scalar_one()
