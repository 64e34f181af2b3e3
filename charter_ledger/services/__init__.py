"""Write-side services.  Each receives a Session and only flushes."""

from charter_ledger.services.event_processor import EventProcessor, EventProcessResult
from charter_ledger.services.event_settings import JournalEventSettingsService
from charter_ledger.services.event_store import EventStore
from charter_ledger.services.expense_posting import ExpensePostingService
from charter_ledger.services.idempotency_guard import IdempotencyGuard
from charter_ledger.services.journal_poster import JournalPoster, validate_journal
from charter_ledger.services.sequence_service import SequenceService
from charter_ledger.services.side_effects import (
    SideEffectDispatcher,
    SideEffectHandler,
    WhtCertificateSideEffect,
)

__all__ = [
    "EventProcessResult",
    "EventProcessor",
    "EventStore",
    "ExpensePostingService",
    "IdempotencyGuard",
    "JournalEventSettingsService",
    "JournalPoster",
    "SequenceService",
    "SideEffectDispatcher",
    "SideEffectHandler",
    "WhtCertificateSideEffect",
    "validate_journal",
]
