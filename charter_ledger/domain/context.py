"""
Everything a posting rule may know besides the payload.

``RuleContext`` is built by EventProcessor from the stored event, the active
configuration and the per-company journal event settings.  Rules never reach
past it for data, which keeps them pure and testable without a database.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from charter_ledger.db.types import ONE_CENT
from charter_ledger.domain.accounts import ChartDefaults, FallbackAccounts
from charter_ledger.exceptions import InvalidJournalSpecError


@dataclass(frozen=True)
class RuleContext:
    event_date: date
    affected_companies: tuple[str, ...]
    accounts: ChartDefaults = field(default_factory=ChartDefaults)
    company_fallbacks: Mapping[str, FallbackAccounts] = field(
        default_factory=lambda: MappingProxyType({})
    )
    source_document_type: str | None = None
    source_document_id: str | None = None
    rounding_tolerance: Decimal = ONE_CENT

    def primary_company(self) -> str:
        """Company that owns a single-company event."""
        if not self.affected_companies:
            raise InvalidJournalSpecError("<none>", "event lists no affected companies")
        return self.affected_companies[0]

    def fallback_debit_account(self, company_id: str) -> str:
        """Setting default for ``company_id``, else the system expense account."""
        fallback = self.company_fallbacks.get(company_id)
        if fallback and fallback.debit:
            return fallback.debit
        return self.accounts.default_expense

    def fallback_credit_account(self, company_id: str) -> str:
        """Setting default for ``company_id``, else the system revenue account."""
        fallback = self.company_fallbacks.get(company_id)
        if fallback and fallback.credit:
            return fallback.credit
        return self.accounts.default_revenue
