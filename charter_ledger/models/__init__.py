"""ORM models.  Importing this package registers every ledger table."""

from charter_ledger.models.accounting_event import (
    AccountingEvent,
    EventStatus,
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
    can_transition,
)
from charter_ledger.models.event_journal_link import EventJournalEntry
from charter_ledger.models.journal import (
    JournalEntry,
    JournalEntryLine,
    JournalEntryStatus,
    LineEntryType,
)
from charter_ledger.models.journal_event_setting import JournalEventSetting
from charter_ledger.models.sequence_counter import SequenceCounter

__all__ = [
    "AccountingEvent",
    "EventJournalEntry",
    "EventStatus",
    "JournalEntry",
    "JournalEntryLine",
    "JournalEntryStatus",
    "JournalEventSetting",
    "LineEntryType",
    "SequenceCounter",
    "TERMINAL_STATUSES",
    "VALID_TRANSITIONS",
    "can_transition",
]
