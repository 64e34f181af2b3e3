"""
Module: charter_ledger.selectors.journal_selector
Responsibility: Read-only access to journal entries and their lines, by event,
    company or reference number.
Architecture position: Ledger > Selectors.

Invariants enforced:
    - Lines are returned in ``line_order``.
    - Entries for an event come back in the order they were posted.

Failure modes:
    - Returns None or an empty list when nothing matches; never raises on
      absence of data.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from charter_ledger.models.event_journal_link import EventJournalEntry
from charter_ledger.models.journal import JournalEntry, LineEntryType
from charter_ledger.selectors.base import BaseSelector


@dataclass
class JournalLineDTO:
    """Data transfer object for a journal line."""

    id: UUID
    account_code: str
    entry_type: str
    amount: Decimal
    description: str | None
    line_order: int

    @property
    def is_debit(self) -> bool:
        return self.entry_type == LineEntryType.DEBIT.value


@dataclass
class JournalEntryDTO:
    """Data transfer object for a journal entry."""

    id: UUID
    reference_number: str
    company_id: str
    entry_date: date
    description: str | None
    status: str
    currency: str
    total_debit: Decimal
    total_credit: Decimal
    source_document_type: str | None
    source_document_id: str | None
    lines: list[JournalLineDTO]

    @property
    def total_debits(self) -> Decimal:
        return sum((l.amount for l in self.lines if l.is_debit), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((l.amount for l in self.lines if not l.is_debit), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


class JournalSelector(BaseSelector[JournalEntry]):
    """
    Contract:
        Public methods return JournalEntryDTO instances with lines sorted by
        ``line_order``.

    Guarantees:
        - Lines are loaded with selectinload to avoid N+1 queries.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _to_dto(self, entry: JournalEntry) -> JournalEntryDTO:
        lines = [
            JournalLineDTO(
                id=line.id,
                account_code=line.account_code,
                entry_type=line.entry_type,
                amount=line.amount,
                description=line.description,
                line_order=line.line_order,
            )
            for line in sorted(entry.lines, key=lambda x: x.line_order)
        ]
        return JournalEntryDTO(
            id=entry.id,
            reference_number=entry.reference_number,
            company_id=entry.company_id,
            entry_date=entry.entry_date,
            description=entry.description,
            status=entry.status,
            currency=entry.currency,
            total_debit=entry.total_debit,
            total_credit=entry.total_credit,
            source_document_type=entry.source_document_type,
            source_document_id=entry.source_document_id,
            lines=lines,
        )

    def get_entry(self, entry_id: UUID) -> JournalEntryDTO | None:
        entry = self.session.execute(
            select(JournalEntry)
            .where(JournalEntry.id == entry_id)
            .options(selectinload(JournalEntry.lines))
        ).scalar_one_or_none()
        return self._to_dto(entry) if entry else None

    def get_event_journals(self, event_id: UUID) -> list[JournalEntryDTO]:
        """Journals linked to an event, in posting order."""
        entries = self.session.execute(
            select(JournalEntry)
            .join(EventJournalEntry, EventJournalEntry.journal_entry_id == JournalEntry.id)
            .where(EventJournalEntry.event_id == event_id)
            .order_by(EventJournalEntry.position)
            .options(selectinload(JournalEntry.lines))
        ).scalars()
        return [self._to_dto(e) for e in entries]

    def get_by_reference(self, company_id: str, reference_number: str) -> JournalEntryDTO | None:
        entry = self.session.execute(
            select(JournalEntry)
            .where(
                JournalEntry.company_id == company_id,
                JournalEntry.reference_number == reference_number,
            )
            .options(selectinload(JournalEntry.lines))
        ).scalar_one_or_none()
        return self._to_dto(entry) if entry else None

    def list_company_journals(
        self, company_id: str, start: date | None = None, end: date | None = None
    ) -> list[JournalEntryDTO]:
        stmt = (
            select(JournalEntry)
            .where(JournalEntry.company_id == company_id)
            .options(selectinload(JournalEntry.lines))
            .order_by(JournalEntry.entry_date, JournalEntry.reference_number)
        )
        if start is not None:
            stmt = stmt.where(JournalEntry.entry_date >= start)
        if end is not None:
            stmt = stmt.where(JournalEntry.entry_date <= end)
        return [self._to_dto(e) for e in self.session.execute(stmt).scalars()]

