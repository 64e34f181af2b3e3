"""
EventProcessor -- drives accounting events from ``pending`` to journals.

Responsibility:
    The public façade of the ledger: create an event and process it, process
    or retry an existing event, cancel one, and read back its journals.
    Coordinates EventStore (lifecycle), the posting rule registry (pure
    computation), JournalEventSettingsService (per-company switches),
    JournalPoster (atomic write) and SideEffectDispatcher.

Architecture position:
    Ledger > Services -- the outermost service.  Receives a Session and a
    Clock; never commits.

Invariants enforced:
    - A failed computation or posting leaves no journal rows and records
      ``failed`` with the error message on the event.
    - Pending and failed events are processed; only failed events are
      retried, and only a retry counts towards ``max_retries``.
    - A second event for the same business action is never created.

Failure modes:
    Every LedgerError raised while creating, computing or posting becomes an
    ``EventProcessResult(success=False)`` carrying the error code.  Two cases
    raise instead:
    - EventNotFoundError for an id that does not exist.
    - InvalidStateTransitionError from ``cancel_event`` on a processed or
      cancelled event.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from charter_config import LedgerConfig, get_active_config
from charter_ledger.domain.clock import Clock, SystemClock
from charter_ledger.domain.context import RuleContext
from charter_ledger.domain.event_types import EventType, parse_event_type
from charter_ledger.domain.payloads import EventPayload, parse_payload
from charter_ledger.domain.posting_plan import JournalPostingPlan
from charter_ledger.exceptions import (
    ConcurrentModificationError,
    DuplicateEventError,
    InvalidStateTransitionError,
    LedgerError,
    RetryLimitExceededError,
)
from charter_ledger.logging_config import LogContext, get_logger
from charter_ledger.models.accounting_event import AccountingEvent, EventStatus
from charter_ledger.posting_rules.registry import PostingRuleRegistry, get_default_registry
from charter_ledger.selectors.journal_selector import JournalEntryDTO, JournalSelector
from charter_ledger.services.event_settings import JournalEventSettingsService
from charter_ledger.services.event_store import EventStore
from charter_ledger.services.idempotency_guard import IdempotencyGuard
from charter_ledger.services.journal_poster import JournalPoster
from charter_ledger.services.sequence_service import SequenceService
from charter_ledger.services.side_effects import SideEffectDispatcher

logger = get_logger("services.event_processor")


@dataclass(frozen=True)
class EventProcessResult:
    """Outcome of one processing attempt."""

    success: bool
    event_id: UUID | None = None
    journal_entry_ids: tuple[UUID, ...] = ()
    error: str | None = None
    error_code: str | None = None
    is_duplicate: bool = False
    skipped_companies: tuple[str, ...] = ()


class EventProcessor:
    """
    Contract:
        Turns accounting events into balanced journals, one per affected
        company, in one atomic write per event.

    Guarantees:
        - All-or-nothing per event: headers, lines, links and the
          ``processed`` status, or none of them.
        - Failures are recorded on the event and returned, not raised.

    Non-goals:
        - Does NOT commit; wrap calls in ``session_scope()``.
        - Does NOT reverse journals of processed events.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        registry: PostingRuleRegistry | None = None,
        config: LedgerConfig | None = None,
        side_effects: SideEffectDispatcher | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._registry = registry or get_default_registry()
        self._store = EventStore(session, self._clock)
        self._guard = IdempotencyGuard(session)
        self._settings = JournalEventSettingsService(session, self._config)
        self._poster = JournalPoster(
            session,
            self._store,
            SequenceService(session),
            reference_retry_attempts=self._config.limits.reference_retry_attempts,
            reference_retry_backoff_seconds=self._config.limits.reference_retry_backoff_seconds,
            sleep=sleep,
        )
        self._side_effects = side_effects or SideEffectDispatcher(session)
        self._selector = JournalSelector(session)

    @property
    def max_retries(self) -> int:
        return self._config.limits.max_retries

    @property
    def store(self) -> EventStore:
        return self._store

    # Creation

    def check_duplicate(
        self,
        event_type: EventType | str,
        source_document_type: str | None,
        source_document_id: str | None,
    ) -> bool:
        return self._guard.check_duplicate(
            event_type, source_document_type, source_document_id
        )

    def create_and_process(
        self,
        event_type: EventType | str,
        event_date: date,
        affected_companies: Iterable[str],
        event_data: EventPayload | dict[str, Any],
        source_document_type: str | None = None,
        source_document_id: str | None = None,
        created_by: str | None = None,
    ) -> EventProcessResult:
        """
        Record a new event and process it immediately.

        A duplicate business action returns ``is_duplicate=True`` with the
        existing event's id and creates nothing.
        """
        try:
            event = self._store.create(
                event_type,
                event_date,
                affected_companies,
                event_data,
                source_document_type=source_document_type,
                source_document_id=source_document_id,
                created_by=created_by,
            )
        except DuplicateEventError as exc:
            logger.info(
                "duplicate_event_skipped",
                extra={
                    "event_type": exc.event_type,
                    "source_document_type": exc.source_document_type,
                    "source_document_id": exc.source_document_id,
                    "existing_event_id": exc.existing_event_id,
                },
            )
            return EventProcessResult(
                success=False,
                event_id=UUID(exc.existing_event_id) if exc.existing_event_id else None,
                error=str(exc),
                error_code=exc.code,
                is_duplicate=True,
            )
        except LedgerError as exc:
            logger.warning(
                "event_creation_rejected",
                extra={"error_code": exc.code, "error": str(exc)},
            )
            return EventProcessResult(success=False, error=str(exc), error_code=exc.code)

        return self._run(event)

    # Processing

    def process_event(self, event_id: UUID | str) -> EventProcessResult:
        """
        Process a pending or failed event without counting a retry.

        Raises:
            EventNotFoundError: No event has this id.
        """
        event = self._store.get(event_id)
        if event.status not in (EventStatus.PENDING.value, EventStatus.FAILED.value):
            return self._rejected(
                event,
                InvalidStateTransitionError(
                    event.id, event.status, EventStatus.PROCESSED.value
                ),
            )
        return self._run(event)

    def retry_event(self, event_id: UUID | str) -> EventProcessResult:
        """
        Reprocess a failed event, incrementing its retry count.

        Raises:
            EventNotFoundError: No event has this id.
        """
        event = self._store.get(event_id)
        if event.status != EventStatus.FAILED.value:
            return self._rejected(
                event,
                InvalidStateTransitionError(
                    event.id, event.status, EventStatus.PROCESSED.value
                ),
            )
        if event.retry_count >= self.max_retries:
            return self._rejected(
                event,
                RetryLimitExceededError(event.id, event.retry_count, self.max_retries),
            )
        try:
            self._store.begin_retry(event)
        except (InvalidStateTransitionError, ConcurrentModificationError) as exc:
            return self._rejected(event, exc)

        logger.info(
            "event_retry_started",
            extra={"event_id": str(event.id), "retry_count": event.retry_count},
        )
        return self._run(event)

    def cancel_event(self, event_id: UUID | str, reason: str | None = None) -> AccountingEvent:
        """
        Cancel a pending or failed event.

        Raises:
            EventNotFoundError: No event has this id.
            InvalidStateTransitionError: The event is processed or cancelled.
        """
        event = self._store.get(event_id)
        return self._store.cancel(event, reason)

    def get_event_journals(self, event_id: UUID | str) -> list[JournalEntryDTO]:
        """
        Journals posted for an event, in posting order.

        Raises:
            EventNotFoundError: No event has this id.
        """
        event = self._store.get(event_id)
        return self._selector.get_event_journals(event.id)

    def process_pending_events(self, limit: int = 100) -> list[EventProcessResult]:
        return [
            self.process_event(event.id)
            for event in self._store.list_by_status(EventStatus.PENDING, limit)
        ]

    def retry_failed_events(self, limit: int = 100) -> list[EventProcessResult]:
        """Retry failed events that still have retries left."""
        candidates = self._store.list_by_status(
            EventStatus.FAILED, limit, max_retry_count=self.max_retries
        )
        return [self.retry_event(event.id) for event in candidates]

    # Internals

    def _plan(self, event: AccountingEvent) -> tuple[EventPayload, JournalPostingPlan]:
        event_type = parse_event_type(event.event_type)
        payload = parse_payload(event_type, event.event_data)
        companies = tuple(event.affected_companies)
        context = RuleContext(
            event_date=event.event_date,
            affected_companies=companies,
            accounts=self._config.accounts,
            company_fallbacks=self._settings.fallbacks_for(companies, event_type),
            source_document_type=event.source_document_type,
            source_document_id=event.source_document_id,
            rounding_tolerance=self._config.limits.rounding_tolerance,
        )
        plan = self._registry.compute_journals(event_type, payload, context)
        return payload, self._settings.apply(plan, event_type)

    def _run(self, event: AccountingEvent) -> EventProcessResult:
        with LogContext.bind(event_id=str(event.id), event_type=event.event_type):
            try:
                payload, plan = self._plan(event)
                entry_ids = self._poster.post(event, plan)
            except LedgerError as exc:
                return self._record_failure(event, exc)

            self._side_effects.dispatch(event, payload, entry_ids)
            logger.info(
                "event_processed",
                extra={
                    "journal_entry_ids": [str(i) for i in entry_ids],
                    "skipped_companies": list(plan.skipped_companies),
                },
            )
            return EventProcessResult(
                success=True,
                event_id=event.id,
                journal_entry_ids=tuple(entry_ids),
                skipped_companies=plan.skipped_companies,
            )

    def _record_failure(self, event: AccountingEvent, exc: LedgerError) -> EventProcessResult:
        message = str(exc)
        try:
            self._store.mark_failed(event, message)
        except (InvalidStateTransitionError, ConcurrentModificationError):
            logger.warning(
                "event_failure_not_recorded",
                extra={"event_id": str(event.id), "status": event.status},
            )
        logger.warning(
            "event_processing_failed",
            extra={"error_code": exc.code, "error": message},
        )
        return EventProcessResult(
            success=False,
            event_id=event.id,
            error=message,
            error_code=exc.code,
        )

    def _rejected(self, event: AccountingEvent, exc: LedgerError) -> EventProcessResult:
        logger.info(
            "event_transition_rejected",
            extra={
                "event_id": str(event.id),
                "status": event.status,
                "error_code": exc.code,
            },
        )
        return EventProcessResult(
            success=False,
            event_id=event.id,
            error=str(exc),
            error_code=exc.code,
        )
