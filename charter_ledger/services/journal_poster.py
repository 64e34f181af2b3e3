"""
JournalPoster -- the atomic write of an event's journals.

Responsibility:
    Persists a JournalPostingPlan for one event: for every planned journal a
    header, its lines and the event link, then the event's transition to
    ``processed``.  All of it happens inside one SAVEPOINT.

Architecture position:
    Ledger > Services.  Called by EventProcessor after the posting rules have
    produced the plan.

Invariants enforced:
    - Every journal is validated (balanced, at least one debit and one
      credit leg, positive amounts, account codes present) before the first
      row is written.
    - All-or-nothing: a failure anywhere rolls the savepoint back, leaving no
      header, line or link and the event in its previous status.  The outer
      transaction stays usable for recording the failure.
    - Reference numbers come from SequenceService; a conflict on
      (company_id, reference_number) is retried with linear backoff.

Failure modes:
    - UnbalancedEntryError / InvalidJournalSpecError before any write.
    - StorageError wrapping any database error raised during the write.
    - ConcurrentModificationError when the event changed status under us.
"""

from __future__ import annotations

import time
from typing import Callable
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from charter_ledger.db.types import ZERO
from charter_ledger.domain.posting_plan import EntrySide, JournalPostingPlan, PlannedJournal
from charter_ledger.exceptions import InvalidJournalSpecError, StorageError
from charter_ledger.logging_config import get_logger
from charter_ledger.models.accounting_event import AccountingEvent
from charter_ledger.models.event_journal_link import EventJournalEntry
from charter_ledger.models.journal import (
    JournalEntry,
    JournalEntryLine,
    JournalEntryStatus,
)
from charter_ledger.services.base import BaseService
from charter_ledger.services.event_store import EventStore
from charter_ledger.services.sequence_service import SequenceService

logger = get_logger("services.journal_poster")


def validate_journal(journal: PlannedJournal) -> None:
    """
    Reject a planned journal that cannot be posted.

    Raises:
        UnbalancedEntryError: debits != credits.
        InvalidJournalSpecError: missing legs, non-positive amounts or
            missing account codes.
    """
    journal.assert_balanced()

    sides = {line.side for line in journal.lines}
    if EntrySide.DEBIT not in sides or EntrySide.CREDIT not in sides:
        raise InvalidJournalSpecError(
            journal.company_id, "a journal needs at least one debit and one credit line"
        )
    for index, line in enumerate(journal.lines, start=1):
        if line.amount <= ZERO:
            raise InvalidJournalSpecError(
                journal.company_id, f"line {index} has non-positive amount {line.amount}"
            )
        if not line.account_code:
            raise InvalidJournalSpecError(
                journal.company_id, f"line {index} has no account code"
            )


def _is_reference_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return (
        "uq_journal_company_reference" in message
        or "journal_entries.reference_number" in message
    )


class JournalPoster(BaseService[JournalEntry]):
    """
    Contract:
        ``post(event, plan)`` returns the new journal entry ids in plan order
        and leaves the event ``processed``; or raises and leaves nothing.

    Non-goals:
        - Does NOT compute journals or record failures on the event.
    """

    def __init__(
        self,
        session: Session,
        event_store: EventStore,
        sequence_service: SequenceService | None = None,
        reference_retry_attempts: int = 3,
        reference_retry_backoff_seconds: float = 0.05,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(session)
        self._events = event_store
        self._sequences = sequence_service or SequenceService(session)
        self._reference_attempts = max(1, reference_retry_attempts)
        self._reference_backoff = reference_retry_backoff_seconds
        self._sleep = sleep

    def post(self, event: AccountingEvent, plan: JournalPostingPlan) -> list[UUID]:
        for journal in plan.journals:
            validate_journal(journal)

        entry_ids: list[UUID] = []
        try:
            with self.session.begin_nested():
                for position, journal in enumerate(plan.journals):
                    entry = self._insert_header(event, journal)
                    self._insert_lines(entry, journal)
                    self._insert_link(event, entry, position)
                    entry_ids.append(entry.id)
                self._events.mark_processed(event)
        except SQLAlchemyError as exc:
            logger.error(
                "journal_posting_rolled_back",
                extra={"event_id": str(event.id), "error": str(exc)},
            )
            raise StorageError(
                f"Journal posting failed: {getattr(exc, 'orig', None) or exc}",
                "post_journals",
            ) from exc
        except Exception:
            logger.warning(
                "journal_posting_rolled_back",
                extra={"event_id": str(event.id)},
                exc_info=True,
            )
            raise

        logger.info(
            "journals_posted",
            extra={
                "event_id": str(event.id),
                "journal_count": len(entry_ids),
                "companies": list(plan.company_ids),
            },
        )
        return entry_ids

    def _insert_header(self, event: AccountingEvent, journal: PlannedJournal) -> JournalEntry:
        for attempt in range(1, self._reference_attempts + 1):
            reference = self._sequences.next_journal_reference(
                journal.company_id, journal.entry_date
            )
            entry = JournalEntry(
                reference_number=reference,
                entry_date=journal.entry_date,
                company_id=journal.company_id,
                description=journal.description[:500],
                status=(
                    JournalEntryStatus.POSTED.value
                    if journal.auto_post
                    else JournalEntryStatus.DRAFT.value
                ),
                currency=journal.currency,
                total_debit=journal.total_debit,
                total_credit=journal.total_credit,
                source_document_type=journal.source_document_type,
                source_document_id=journal.source_document_id,
                is_auto_generated=True,
                created_by=event.created_by,
            )
            try:
                with self.session.begin_nested():
                    self.session.add(entry)
                    self.session.flush()
            except IntegrityError as exc:
                if not _is_reference_conflict(exc) or attempt == self._reference_attempts:
                    raise
                logger.warning(
                    "journal_reference_conflict_retry",
                    extra={
                        "company_id": journal.company_id,
                        "reference_number": reference,
                        "attempt": attempt,
                    },
                )
                self._sleep(self._reference_backoff * attempt)
                continue
            return entry
        raise AssertionError("unreachable")  # pragma: no cover

    def _insert_lines(self, entry: JournalEntry, journal: PlannedJournal) -> None:
        for order, line in enumerate(journal.lines, start=1):
            self.session.add(
                JournalEntryLine(
                    journal_entry_id=entry.id,
                    account_code=line.account_code,
                    entry_type=line.side.value,
                    amount=line.amount,
                    description=line.description[:500] or None,
                    line_order=order,
                )
            )
        self.session.flush()

    def _insert_link(self, event: AccountingEvent, entry: JournalEntry, position: int) -> None:
        self.session.add(
            EventJournalEntry(
                event_id=event.id,
                journal_entry_id=entry.id,
                company_id=entry.company_id,
                position=position,
            )
        )
        self.session.flush()
