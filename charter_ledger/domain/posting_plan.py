"""
Posting plan -- the pure output of a posting rule.

A rule turns one event into a ``JournalPostingPlan``: one ``PlannedJournal``
per company it touches, each a list of positive debit/credit lines.  The
plan carries no ids, reference numbers or timestamps; JournalPoster assigns
those when it writes the rows.

Invariants enforced:
    - ``PlannedJournal.assert_balanced`` raises UnbalancedEntryError when
      debits != credits.  JournalPoster calls it for every journal before any
      write.
    - Lines keep the order the rule produced them in; the order becomes
      ``line_order`` on the persisted lines.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum

from charter_ledger.db.types import ZERO
from charter_ledger.exceptions import UnbalancedEntryError


class EntrySide(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


@dataclass(frozen=True)
class PlannedLine:
    """One leg of a planned journal. ``amount`` is always positive."""

    account_code: str
    side: EntrySide
    amount: Decimal
    description: str = ""

    @property
    def is_debit(self) -> bool:
        return self.side == EntrySide.DEBIT

    def with_amount(self, amount: Decimal) -> "PlannedLine":
        return replace(self, amount=amount)


def debit(account_code: str, amount: Decimal, description: str = "") -> PlannedLine:
    return PlannedLine(account_code, EntrySide.DEBIT, amount, description)


def credit(account_code: str, amount: Decimal, description: str = "") -> PlannedLine:
    return PlannedLine(account_code, EntrySide.CREDIT, amount, description)


@dataclass(frozen=True)
class PlannedJournal:
    """
    A balanced journal entry for a single company, ready to persist.

    Contract:
        Produced by posting rules; consumed by JournalPoster.

    Guarantees:
        ``total_debit``/``total_credit`` are derived from ``lines``, never
        supplied by the rule.
    """

    company_id: str
    entry_date: date
    description: str
    currency: str
    lines: tuple[PlannedLine, ...]
    source_document_type: str | None = None
    source_document_id: str | None = None
    auto_post: bool = False

    @property
    def total_debit(self) -> Decimal:
        return sum((l.amount for l in self.lines if l.side == EntrySide.DEBIT), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((l.amount for l in self.lines if l.side == EntrySide.CREDIT), ZERO)

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit

    def assert_balanced(self) -> None:
        if not self.is_balanced:
            raise UnbalancedEntryError(
                debits=str(self.total_debit),
                credits=str(self.total_credit),
                currency=self.currency,
                company_id=self.company_id,
            )


@dataclass(frozen=True)
class JournalPostingPlan:
    """Every journal one event produces, in posting order."""

    journals: tuple[PlannedJournal, ...]
    skipped_companies: tuple[str, ...] = field(default=())

    @property
    def is_empty(self) -> bool:
        return not self.journals

    @property
    def company_ids(self) -> tuple[str, ...]:
        return tuple(j.company_id for j in self.journals)

    def without_companies(self, company_ids) -> "JournalPostingPlan":
        """Drop journals for ``company_ids`` and remember which were dropped."""
        excluded = set(company_ids)
        kept = tuple(j for j in self.journals if j.company_id not in excluded)
        dropped = tuple(
            j.company_id for j in self.journals if j.company_id in excluded
        )
        return JournalPostingPlan(kept, self.skipped_companies + dropped)

    def with_auto_post(self, company_ids) -> "JournalPostingPlan":
        flagged = set(company_ids)
        return replace(
            self,
            journals=tuple(
                replace(j, auto_post=j.company_id in flagged) for j in self.journals
            ),
        )
