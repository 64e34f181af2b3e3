"""
Posting rule registry.

Manages registration and lookup of posting rules by event type, and exposes
``compute_journals``, the single entry point from an event to its plan.
"""

from typing import Any, Dict

from charter_ledger.domain.context import RuleContext
from charter_ledger.domain.event_types import EventType, parse_event_type
from charter_ledger.domain.posting_plan import JournalPostingPlan
from charter_ledger.exceptions import (
    ConfigurationError,
    EmptyPostingPlanError,
    InvalidJournalSpecError,
)
from charter_ledger.posting_rules.base import PostingRule


class PostingRuleRegistry:
    """
    Registry for posting rules.

    Holds exactly one rule per event type; registering again replaces it.
    """

    def __init__(self):
        self._rules: Dict[EventType, PostingRule] = {}

    def register(self, rule: PostingRule) -> None:
        self._rules[parse_event_type(rule.event_type)] = rule

    def get_rule(self, event_type: EventType | str) -> PostingRule | None:
        return self._rules.get(parse_event_type(event_type))

    def list_event_types(self) -> list[EventType]:
        return list(self._rules.keys())

    def assert_complete(self) -> None:
        """
        Raises:
            ConfigurationError: If any catalogued event type lacks a rule.
        """
        missing = [t.value for t in EventType if t not in self._rules]
        if missing:
            raise ConfigurationError(
                "posting_rules", f"no rule registered for {', '.join(missing)}"
            )

    def compute_journals(
        self,
        event_type: EventType | str,
        event_data: Any,
        context: RuleContext,
    ) -> JournalPostingPlan:
        """
        Compute the posting plan for one event.

        Raises:
            UnknownEventTypeError: ``event_type`` is not catalogued.
            ConfigurationError: No rule is registered for it.
            PayloadValidationError: The payload is malformed.
            InvalidJournalSpecError: A journal targets a company the event
                does not list as affected.
            EmptyPostingPlanError: The rule produced no journals.
        """
        event_type = parse_event_type(event_type)
        rule = self.get_rule(event_type)
        if rule is None:
            raise ConfigurationError(
                "posting_rules", f"no rule registered for {event_type.value}"
            )

        plan = rule.compute(event_data, context)
        if plan.is_empty:
            raise EmptyPostingPlanError(event_type.value)

        if context.affected_companies:
            for journal in plan.journals:
                if journal.company_id not in context.affected_companies:
                    raise InvalidJournalSpecError(
                        journal.company_id,
                        "company is not listed in the event's affected companies",
                    )
        return plan


def default_registry() -> PostingRuleRegistry:
    """A registry holding the built-in rule for every event type."""
    from charter_ledger.posting_rules.equity import EQUITY_RULES
    from charter_ledger.posting_rules.expense import EXPENSE_RULES
    from charter_ledger.posting_rules.intercompany import INTERCOMPANY_RULES
    from charter_ledger.posting_rules.inventory import INVENTORY_RULES
    from charter_ledger.posting_rules.revenue import REVENUE_RULES

    registry = PostingRuleRegistry()
    for rule in (
        *EXPENSE_RULES,
        *INVENTORY_RULES,
        *REVENUE_RULES,
        *INTERCOMPANY_RULES,
        *EQUITY_RULES,
    ):
        registry.register(rule)
    registry.assert_complete()
    return registry


_default_registry: PostingRuleRegistry | None = None


def get_default_registry() -> PostingRuleRegistry:
    global _default_registry
    if _default_registry is None:
        _default_registry = default_registry()
    return _default_registry


def compute_journals(
    event_type: EventType | str,
    event_data: Any,
    context: RuleContext,
    registry: PostingRuleRegistry | None = None,
) -> JournalPostingPlan:
    """Pure function from (event type, payload, context) to a posting plan."""
    return (registry or get_default_registry()).compute_journals(
        event_type, event_data, context
    )
