"""
Pure domain layer: event catalogue, payloads, posting plans and rounding.

Nothing in this package performs I/O.
"""

from charter_ledger.domain.accounts import ChartDefaults, FallbackAccounts, IntercompanyAccounts
from charter_ledger.domain.clock import Clock, DeterministicClock, SystemClock
from charter_ledger.domain.context import RuleContext
from charter_ledger.domain.event_types import (
    EVENT_TYPE_METADATA,
    EventType,
    EventTypeMetadata,
    parse_event_type,
)
from charter_ledger.domain.payloads import (
    CASH_SENTINEL,
    PAYLOAD_TYPES,
    EventPayload,
    parse_payload,
    payload_to_json,
)
from charter_ledger.domain.posting_plan import (
    EntrySide,
    JournalPostingPlan,
    PlannedJournal,
    PlannedLine,
    credit,
    debit,
)
from charter_ledger.domain.rounding import reconcile_rounding

__all__ = [
    "CASH_SENTINEL",
    "ChartDefaults",
    "Clock",
    "DeterministicClock",
    "EVENT_TYPE_METADATA",
    "EntrySide",
    "EventPayload",
    "EventType",
    "EventTypeMetadata",
    "FallbackAccounts",
    "IntercompanyAccounts",
    "JournalPostingPlan",
    "PAYLOAD_TYPES",
    "PlannedJournal",
    "PlannedLine",
    "RuleContext",
    "SystemClock",
    "credit",
    "debit",
    "parse_event_type",
    "parse_payload",
    "payload_to_json",
    "reconcile_rounding",
]
