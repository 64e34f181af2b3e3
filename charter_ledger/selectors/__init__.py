"""Read-only selectors returning DTOs."""

from charter_ledger.selectors.base import BaseSelector
from charter_ledger.selectors.event_selector import AccountingEventDTO, EventSelector
from charter_ledger.selectors.journal_selector import (
    JournalEntryDTO,
    JournalLineDTO,
    JournalSelector,
)

__all__ = [
    "AccountingEventDTO",
    "BaseSelector",
    "EventSelector",
    "JournalEntryDTO",
    "JournalLineDTO",
    "JournalSelector",
]
