"""
Typed exception hierarchy for the charter ledger.

===============================================================================
CONVENTIONS
===============================================================================

Every exception carries:
  1. A TYPED class, so callers catch by type and never parse messages.
  2. A ``code`` CLASS attribute, machine-readable and stable across releases.
     ``EventProcessResult.error_code`` is populated from it.
  3. Structured attributes (event ids, totals, field names) so that log
     records and API responses survive without string parsing.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- EventError
    |   +-- EventNotFoundError
    |   +-- DuplicateEventError
    |   +-- InvalidStateTransitionError
    |   |   +-- RetryLimitExceededError
    |   +-- ConcurrentModificationError
    |
    +-- ValidationError
    |   +-- UnknownEventTypeError
    |   +-- PayloadValidationError
    |
    +-- PostingError
    |   +-- UnbalancedEntryError
    |   +-- InvalidJournalSpecError
    |   +-- EmptyPostingPlanError
    |
    +-- StorageError
    +-- ImmutabilityViolationError
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                       | When Raised
-------------|----------------------------|------------------------------------------
Event        | EVENT_NOT_FOUND            | Processor called with an unknown id
             | DUPLICATE_EVENT            | Same (type, source doc type, source id)
             | INVALID_STATE_TRANSITION   | process/retry/cancel outside lifecycle
             | RETRY_LIMIT_EXCEEDED       | retry_count reached max_retries
             | CONCURRENT_MODIFICATION    | Status changed under a compare-and-swap
-------------|----------------------------|------------------------------------------
Validation   | VALIDATION_ERROR           | Generic payload problem
             | UNKNOWN_EVENT_TYPE         | event_type outside the closed catalogue
             | PAYLOAD_VALIDATION_FAILED  | Missing or malformed payload field
-------------|----------------------------|------------------------------------------
Posting      | UNBALANCED_ENTRY           | Debits != credits beyond tolerance
             | INVALID_JOURNAL_SPEC       | Header without debit or credit legs, etc.
             | EMPTY_POSTING_PLAN         | Rule produced no journals
-------------|----------------------------|------------------------------------------
Storage      | STORAGE_ERROR              | Atomic write failed (constraint, I/O)
Immutability | IMMUTABILITY_VIOLATION     | Update of processed/cancelled event
Config       | CONFIGURATION_ERROR        | Invalid ledger configuration document

===============================================================================
PROPAGATION
===============================================================================

The EventProcessor converts every LedgerError raised while processing into an
``EventProcessResult(success=False)``.  Only ``EventNotFoundError`` (a caller
defect) and ``InvalidStateTransitionError`` from ``cancel_event`` reach the
caller as exceptions.
"""

from __future__ import annotations

from uuid import UUID


class LedgerError(Exception):
    """
    Base exception for all charter ledger errors.

    All subclasses carry a ``code`` class attribute.
    """

    code: str = "LEDGER_ERROR"


# Event lifecycle


class EventError(LedgerError):
    """Base exception for accounting event lifecycle errors."""

    code: str = "EVENT_ERROR"


class EventNotFoundError(EventError):
    """Accounting event with the given id does not exist."""

    code: str = "EVENT_NOT_FOUND"

    def __init__(self, event_id: UUID | str):
        self.event_id = str(event_id)
        super().__init__(f"Accounting event not found: {event_id}")


class DuplicateEventError(EventError):
    """
    An event for the same source document already exists.

    Callers treat this as "already handled", not as a fatal error.
    """

    code: str = "DUPLICATE_EVENT"

    def __init__(
        self,
        event_type: str,
        source_document_type: str | None,
        source_document_id: str | None,
        existing_event_id: UUID | str | None = None,
    ):
        self.event_type = event_type
        self.source_document_type = source_document_type
        self.source_document_id = source_document_id
        self.existing_event_id = (
            str(existing_event_id) if existing_event_id is not None else None
        )
        super().__init__(
            f"{event_type} event already exists for "
            f"{source_document_type}:{source_document_id}"
        )


class InvalidStateTransitionError(EventError):
    """Requested status transition is not permitted from the current status."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, event_id: UUID | str, from_status: str, to_status: str):
        self.event_id = str(event_id)
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid transition for event {event_id}: {from_status} -> {to_status}"
        )


class RetryLimitExceededError(InvalidStateTransitionError):
    """A failed event has already been retried the maximum number of times."""

    code: str = "RETRY_LIMIT_EXCEEDED"

    def __init__(self, event_id: UUID | str, retry_count: int, max_retries: int):
        self.retry_count = retry_count
        self.max_retries = max_retries
        super().__init__(event_id, "failed", "failed")
        self.args = (
            f"Retry limit reached for event {event_id}: "
            f"{retry_count}/{max_retries}",
        )


class ConcurrentModificationError(EventError):
    """The event status changed between read and conditional write."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, event_id: UUID | str, expected_statuses: tuple[str, ...]):
        self.event_id = str(event_id)
        self.expected_statuses = expected_statuses
        super().__init__(
            f"Event {event_id} is no longer in status "
            f"{'/'.join(expected_statuses)}"
        )


# Validation


class ValidationError(LedgerError):
    """Base exception for invalid event input."""

    code: str = "VALIDATION_ERROR"


class UnknownEventTypeError(ValidationError):
    """Event type is not part of the event catalogue."""

    code: str = "UNKNOWN_EVENT_TYPE"

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"Unknown event type: {event_type}")


class PayloadValidationError(ValidationError):
    """Event payload is missing a required field or carries an invalid value."""

    code: str = "PAYLOAD_VALIDATION_FAILED"

    def __init__(self, event_type: str, field: str | None, reason: str):
        self.event_type = event_type
        self.field = field
        self.reason = reason
        super().__init__(reason)


# Posting


class PostingError(LedgerError):
    """Base exception for journal computation and posting errors."""

    code: str = "POSTING_ERROR"


class UnbalancedEntryError(PostingError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(
        self,
        debits: str,
        credits: str,
        currency: str,
        company_id: str | None = None,
    ):
        self.debits = debits
        self.credits = credits
        self.currency = currency
        self.company_id = company_id
        super().__init__(
            f"Unbalanced entry for company {company_id} in {currency}: "
            f"debits={debits}, credits={credits}"
        )


class InvalidJournalSpecError(PostingError):
    """A computed journal cannot be posted as specified."""

    code: str = "INVALID_JOURNAL_SPEC"

    def __init__(self, company_id: str, reason: str):
        self.company_id = company_id
        self.reason = reason
        super().__init__(f"Invalid journal for company {company_id}: {reason}")


class EmptyPostingPlanError(PostingError):
    """A posting rule produced no journals."""

    code: str = "EMPTY_POSTING_PLAN"

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"Posting rule for {event_type} produced no journals")


# Storage and persistence


class StorageError(LedgerError):
    """
    The underlying atomic write failed.

    The message is recorded verbatim on the failed event.
    """

    code: str = "STORAGE_ERROR"

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        super().__init__(message)


class ImmutabilityViolationError(LedgerError):
    """Attempt to modify a processed or cancelled accounting event."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


class ConfigurationError(LedgerError):
    """Ledger configuration document is invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration at '{key}': {reason}")
