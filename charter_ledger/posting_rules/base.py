"""
Base posting rule protocol.

Posting rules transform a validated event payload into a journal posting
plan deterministically.
"""

from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from charter_ledger.domain.context import RuleContext
from charter_ledger.domain.event_types import EventType
from charter_ledger.domain.payloads import EventPayload, parse_payload
from charter_ledger.domain.posting_plan import (
    JournalPostingPlan,
    PlannedJournal,
    PlannedLine,
)


@runtime_checkable
class PostingRule(Protocol):
    """
    Protocol for posting rules.

    Each rule is:
    - Deterministic: Same payload and context always produce the same plan
    - Stateless: No I/O and no side effects during computation
    """

    @property
    def event_type(self) -> EventType:
        ...

    def compute(self, event_data: Any, context: RuleContext) -> JournalPostingPlan:
        ...


class BasePostingRule(ABC):
    """
    Abstract base class for posting rules.

    Subclasses set ``event_type`` and implement ``build_journals`` over the
    typed payload; ``compute`` validates the raw payload first.
    """

    event_type: EventType

    def validate(self, event_data: Any) -> EventPayload:
        """
        Parse ``event_data`` into this rule's payload type.

        Raises:
            PayloadValidationError: If the payload is malformed.
        """
        return parse_payload(self.event_type, event_data)

    def compute(self, event_data: Any, context: RuleContext) -> JournalPostingPlan:
        payload = self.validate(event_data)
        return JournalPostingPlan(tuple(self.build_journals(payload, context)))

    @abstractmethod
    def build_journals(
        self, payload: EventPayload, context: RuleContext
    ) -> list[PlannedJournal]:
        pass

    @staticmethod
    def journal(
        context: RuleContext,
        company_id: str,
        description: str,
        currency: str,
        lines: list[PlannedLine] | tuple[PlannedLine, ...],
    ) -> PlannedJournal:
        """Stamp a journal with the event date and source document."""
        return PlannedJournal(
            company_id=company_id,
            entry_date=context.event_date,
            description=description,
            currency=currency,
            lines=tuple(lines),
            source_document_type=context.source_document_type,
            source_document_id=context.source_document_id,
        )
