"""
Module: charter_ledger.models.event_journal_link
Responsibility: Many-to-many link between accounting events and the journal
    headers they produced.  An intercompany event owns one link per company
    header, all pointing at the same event id.
Architecture position: Ledger > Models.  May import from db/ only.

Invariants enforced:
    - One link per (event, journal) pair (UNIQUE event_id, journal_entry_id).
"""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from charter_ledger.db.base import Base, UUIDString


class EventJournalEntry(Base):
    """Link row written by JournalPoster alongside each header."""

    __tablename__ = "event_journal_entries"

    __table_args__ = (
        UniqueConstraint("event_id", "journal_entry_id", name="uq_event_journal"),
        Index("idx_event_journal_event", "event_id"),
    )

    event_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounting_events.id"),
        nullable=False,
    )
    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Index of the journal within the event's posting plan
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
