"""
EventStore -- persistence and lifecycle of AccountingEvents.

Responsibility:
    Creates events, loads them, and moves them through the status lifecycle.
    Every status change is a compare-and-swap: a single
    ``UPDATE ... WHERE id = :id AND status IN (:allowed)`` whose row count
    proves the event was still in an allowed status.

Architecture position:
    Ledger > Services.  Used by EventProcessor and JournalPoster.

Invariants enforced:
    - Lifecycle per ``VALID_TRANSITIONS``; processed and cancelled are
      terminal.
    - Retry increments ``retry_count`` atomically with the status guard.
    - One event per (event_type, source_document_type, source_document_id).

Failure modes:
    - EventNotFoundError from ``get``.
    - DuplicateEventError from ``create`` (carries the existing event id).
    - InvalidStateTransitionError when the move is not allowed.
    - ConcurrentModificationError when the status changed under the update.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from charter_ledger.domain.clock import Clock, SystemClock
from charter_ledger.domain.event_types import EventType, parse_event_type
from charter_ledger.domain.payloads import EventPayload, payload_to_json
from charter_ledger.exceptions import (
    ConcurrentModificationError,
    DuplicateEventError,
    EventNotFoundError,
    InvalidStateTransitionError,
    PayloadValidationError,
    StorageError,
)
from charter_ledger.logging_config import get_logger
from charter_ledger.models.accounting_event import (
    AccountingEvent,
    EventStatus,
    can_transition,
)
from charter_ledger.services.base import BaseService
from charter_ledger.services.idempotency_guard import IdempotencyGuard

logger = get_logger("services.event_store")

_ERROR_MESSAGE_LIMIT = 4000


def _as_uuid(event_id: UUID | str) -> UUID:
    if isinstance(event_id, UUID):
        return event_id
    try:
        return UUID(str(event_id))
    except ValueError:
        raise EventNotFoundError(event_id) from None


class EventStore(BaseService[AccountingEvent]):
    """
    Contract:
        Owns every write to ``accounting_events``.

    Guarantees:
        - Status is never written through ORM attribute assignment, so the
          immutability listener and the status guard cannot be bypassed by
          a stale object.
        - After each transition the passed event object is refreshed.

    Non-goals:
        - Does NOT compute or post journals.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._guard = IdempotencyGuard(session)

    def create(
        self,
        event_type: EventType | str,
        event_date: date,
        affected_companies: Iterable[str],
        event_data: EventPayload | dict[str, Any],
        source_document_type: str | None = None,
        source_document_id: str | None = None,
        created_by: str | None = None,
    ) -> AccountingEvent:
        """
        Insert a pending event.

        Raises:
            UnknownEventTypeError: ``event_type`` is not catalogued.
            PayloadValidationError: No affected company was given.
            DuplicateEventError: An event for this source document exists.
        """
        tag = parse_event_type(event_type)
        companies = [str(c) for c in affected_companies]
        if not companies:
            raise PayloadValidationError(
                tag.value, "affected_companies", "At least one affected company is required"
            )

        existing = self._guard.find_existing(tag, source_document_type, source_document_id)
        if existing is not None:
            raise DuplicateEventError(
                tag.value, source_document_type, source_document_id, existing.id
            )

        event = AccountingEvent(
            event_type=tag.value,
            event_date=event_date,
            status=EventStatus.PENDING.value,
            source_document_type=source_document_type,
            source_document_id=source_document_id,
            affected_companies=companies,
            event_data=payload_to_json(event_data),
            retry_count=0,
            created_by=created_by,
            created_at=self._clock.now(),
        )
        try:
            with self.session.begin_nested():
                self.session.add(event)
                self.session.flush()
        except IntegrityError as exc:
            existing = self._guard.find_existing(tag, source_document_type, source_document_id)
            if existing is None:
                raise StorageError(f"Could not record event: {exc.orig}", "create_event") from exc
            raise DuplicateEventError(
                tag.value, source_document_type, source_document_id, existing.id
            ) from exc

        logger.info(
            "event_created",
            extra={
                "event_id": str(event.id),
                "event_type": tag.value,
                "source_document_type": source_document_type,
                "source_document_id": source_document_id,
                "affected_companies": companies,
            },
        )
        return event

    def get(self, event_id: UUID | str) -> AccountingEvent:
        event = self.session.get(AccountingEvent, _as_uuid(event_id))
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def find(self, event_id: UUID | str) -> AccountingEvent | None:
        try:
            return self.get(event_id)
        except EventNotFoundError:
            return None

    def list_by_status(
        self,
        status: EventStatus,
        limit: int | None = None,
        max_retry_count: int | None = None,
    ) -> list[AccountingEvent]:
        """Events in ``status``, oldest first; ``max_retry_count`` is exclusive."""
        stmt = (
            select(AccountingEvent)
            .where(AccountingEvent.status == status.value)
            .order_by(AccountingEvent.created_at, AccountingEvent.event_date)
        )
        if max_retry_count is not None:
            stmt = stmt.where(AccountingEvent.retry_count < max_retry_count)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    # Lifecycle

    def _transition(
        self,
        event: AccountingEvent,
        to_status: EventStatus,
        expected: tuple[EventStatus, ...],
        values: dict[str, Any],
        extra_criteria: tuple = (),
    ) -> AccountingEvent:
        from_status = event.status
        if from_status not in {s.value for s in expected} or not can_transition(
            from_status, to_status.value
        ):
            raise InvalidStateTransitionError(event.id, from_status, to_status.value)

        self.session.flush()
        expected_values = tuple(s.value for s in expected)
        result = self.session.execute(
            update(AccountingEvent)
            .where(
                AccountingEvent.id == event.id,
                AccountingEvent.status.in_(expected_values),
                *extra_criteria,
            )
            .values(status=to_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.refresh(event)
            logger.warning(
                "event_transition_conflict",
                extra={
                    "event_id": str(event.id),
                    "expected": list(expected_values),
                    "actual": event.status,
                },
            )
            raise ConcurrentModificationError(event.id, expected_values)

        self.session.refresh(event)
        logger.info(
            "event_status_changed",
            extra={
                "event_id": str(event.id),
                "from_status": from_status,
                "to_status": to_status.value,
                "retry_count": event.retry_count,
            },
        )
        return event

    def mark_processed(self, event: AccountingEvent) -> AccountingEvent:
        return self._transition(
            event,
            EventStatus.PROCESSED,
            (EventStatus.PENDING, EventStatus.FAILED),
            {"processed_at": self._clock.now(), "error_message": None},
        )

    def mark_failed(self, event: AccountingEvent, message: str) -> AccountingEvent:
        return self._transition(
            event,
            EventStatus.FAILED,
            (EventStatus.PENDING, EventStatus.FAILED),
            {"error_message": message[:_ERROR_MESSAGE_LIMIT]},
        )

    def begin_retry(self, event: AccountingEvent) -> AccountingEvent:
        """
        Claim a failed event for another attempt.

        The event stays ``failed`` until the attempt completes; the claim is
        the atomic ``retry_count`` increment, guarded on both status and the
        retry count that was read.
        """
        if event.status != EventStatus.FAILED.value:
            raise InvalidStateTransitionError(
                event.id, event.status, EventStatus.PROCESSED.value
            )
        return self._transition(
            event,
            EventStatus.FAILED,
            (EventStatus.FAILED,),
            {"retry_count": AccountingEvent.retry_count + 1},
            (AccountingEvent.retry_count == event.retry_count,),
        )

    def cancel(self, event: AccountingEvent, reason: str | None = None) -> AccountingEvent:
        """
        Raises:
            InvalidStateTransitionError: The event is processed or cancelled.
        """
        values: dict[str, Any] = {}
        if reason:
            values["error_message"] = reason[:_ERROR_MESSAGE_LIMIT]
        return self._transition(
            event,
            EventStatus.CANCELLED,
            (EventStatus.PENDING, EventStatus.FAILED),
            values,
        )
