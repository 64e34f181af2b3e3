"""
Chart-of-accounts codes used by the posting rules.

Responsibility:
    ``ChartDefaults`` names every account a rule may post to when the payload
    does not carry an explicit code.  Codes are not validated for existence;
    the chart of accounts is owned elsewhere.

Architecture position:
    Ledger > Domain -- pure value objects.  Built from YAML by
    ``charter_config``; the defaults below match the bundled configuration.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class IntercompanyAccounts:
    """Receivable/payable pair used against one counterparty company."""

    receivable: str
    payable: str


@dataclass(frozen=True)
class ChartDefaults:
    cash: str = "1000"
    default_bank: str = "1010"
    cash_on_hand: str = "1020"
    accounts_receivable: str = "1100"
    vat_input: str = "1170"
    intercompany_receivable: str = "1180"
    inventory: str = "1200"
    accounts_payable: str = "2000"
    vat_output: str = "2200"
    deferred_revenue: str = "2300"
    intercompany_payable: str = "2700"
    partner_payables: str = "2750"
    retained_earnings: str = "3200"
    default_revenue: str = "4490"
    management_fee_income: str = "4800"
    default_expense: str = "6790"
    management_fee_expense: str = "6800"

    # counterparty company id -> dedicated intercompany accounts
    intercompany_overrides: Mapping[str, IntercompanyAccounts] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def intercompany_receivable_from(self, counterparty_id: str) -> str:
        """Account holding amounts owed to us by ``counterparty_id``."""
        override = self.intercompany_overrides.get(counterparty_id)
        return override.receivable if override else self.intercompany_receivable

    def intercompany_payable_to(self, counterparty_id: str) -> str:
        """Account holding amounts we owe ``counterparty_id``."""
        override = self.intercompany_overrides.get(counterparty_id)
        return override.payable if override else self.intercompany_payable


@dataclass(frozen=True)
class FallbackAccounts:
    """Per-company accounts substituted when a computed line has no code."""

    debit: str | None = None
    credit: str | None = None
