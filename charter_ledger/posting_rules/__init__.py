"""Posting rules for transforming accounting events into journal plans."""

from charter_ledger.posting_rules.base import BasePostingRule, PostingRule
from charter_ledger.posting_rules.registry import (
    PostingRuleRegistry,
    compute_journals,
    default_registry,
    get_default_registry,
)

__all__ = [
    "BasePostingRule",
    "PostingRule",
    "PostingRuleRegistry",
    "compute_journals",
    "default_registry",
    "get_default_registry",
]
