"""
Module: charter_ledger.models.accounting_event
Responsibility: ORM persistence for AccountingEvent -- a business fact awaiting
    (or having received) journal posting -- and its status lifecycle.
Architecture position: Ledger > Models.  May import from db/ only.

Invariants enforced:
    - Lifecycle: pending -> processed | failed; failed -> processed | failed
      (retry); pending | failed -> cancelled.  processed and cancelled are
      terminal.  VALID_TRANSITIONS is the single table of allowed moves.
    - Source uniqueness: UNIQUE (event_type, source_document_type,
      source_document_id).  Rows without a source document never collide
      because NULLs are distinct in the constraint.
    - Immutability once terminal (ORM listener in db/immutability.py).

Failure modes:
    - IntegrityError on uq_event_source, surfaced as DuplicateEventError by
      EventStore.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from charter_ledger.db.base import Base


class EventStatus(str, Enum):
    """Processing status of an accounting event."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"
    CANCELLED = "cancelled"


VALID_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.PENDING: frozenset(
        {EventStatus.PROCESSED, EventStatus.FAILED, EventStatus.CANCELLED}
    ),
    EventStatus.FAILED: frozenset(
        {EventStatus.PROCESSED, EventStatus.FAILED, EventStatus.CANCELLED}
    ),
    EventStatus.PROCESSED: frozenset(),
    EventStatus.CANCELLED: frozenset(),
}

# Stored column values
TERMINAL_STATUSES: frozenset[str] = frozenset(
    {EventStatus.PROCESSED.value, EventStatus.CANCELLED.value}
)


def can_transition(from_status: str, to_status: str) -> bool:
    """True when ``from_status -> to_status`` is an allowed lifecycle move."""
    try:
        source = EventStatus(from_status)
        target = EventStatus(to_status)
    except ValueError:
        return False
    return target in VALID_TRANSITIONS[source]


class AccountingEvent(Base):
    """
    A business fact to be turned into journal entries.

    Contract:
        Created ``pending`` by a business-action handler.  Only EventStore
        changes ``status``, and only through a status-guarded conditional
        update.  ``event_data`` is the JSON form of the typed payload for
        ``event_type``; amounts are stored as strings.
    """

    __tablename__ = "accounting_events"

    __table_args__ = (
        UniqueConstraint(
            "event_type",
            "source_document_type",
            "source_document_id",
            name="uq_event_source",
        ),
        Index("idx_event_status", "status"),
        Index("idx_event_source", "source_document_type", "source_document_id"),
    )

    event_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Accounting date stamped on resulting journals
    event_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EventStatus.PENDING.value,
    )

    source_document_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source_document_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Ordered company ids; two or more for intercompany events
    affected_companies: Mapped[list[str]] = mapped_column(JSON, nullable=False)

    event_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    error_message: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<AccountingEvent {self.id} {self.event_type} "
            f"{self.source_document_type}:{self.source_document_id} [{self.status}]>"
        )
