"""
Posting rules for balances and partner equity.

OPENING_BALANCE            one line per non-zero balance, as given
PARTNER_PROFIT_ALLOCATION  Dr retained earnings  / Cr partner payable per partner
PARTNER_PAYMENT            Dr partner payable    / Cr bank
"""

from charter_ledger.db.types import ZERO
from charter_ledger.domain.context import RuleContext
from charter_ledger.domain.event_types import EventType
from charter_ledger.domain.payloads import (
    OpeningBalanceData,
    PartnerPaymentData,
    PartnerProfitAllocationData,
)
from charter_ledger.domain.posting_plan import EntrySide, PlannedJournal, credit, debit
from charter_ledger.domain.rounding import reconcile_rounding
from charter_ledger.posting_rules.base import BasePostingRule


class OpeningBalanceRule(BasePostingRule):
    """Balances are posted verbatim; an unbalanced set is rejected at posting."""

    event_type = EventType.OPENING_BALANCE

    def build_journals(
        self, payload: OpeningBalanceData, context: RuleContext
    ) -> list[PlannedJournal]:
        lines = []
        for balance in payload.balances:
            label = balance.account_name or f"Opening balance {balance.account_code}"
            if balance.debit_amount > ZERO:
                lines.append(debit(balance.account_code, balance.debit_amount, label))
            elif balance.credit_amount > ZERO:
                lines.append(credit(balance.account_code, balance.credit_amount, label))
        return [
            self.journal(
                context,
                context.primary_company(),
                f"Opening balances FY{payload.fiscal_year}",
                payload.currency,
                lines,
            )
        ]


class PartnerProfitAllocationRule(BasePostingRule):
    event_type = EventType.PARTNER_PROFIT_ALLOCATION

    def build_journals(
        self, payload: PartnerProfitAllocationData, context: RuleContext
    ) -> list[PlannedJournal]:
        accounts = context.accounts
        lines = [
            debit(
                accounts.retained_earnings,
                payload.total_profit,
                f"Profit allocation: {payload.project_name}",
            )
        ]
        for allocation in payload.allocations:
            lines.append(
                credit(
                    accounts.partner_payables,
                    allocation.allocated_amount,
                    f"Due to {allocation.participant_name}",
                )
            )
        lines = reconcile_rounding(lines, EntrySide.CREDIT, context.rounding_tolerance)
        return [
            self.journal(
                context,
                context.primary_company(),
                f"Profit allocation: {payload.project_name}",
                payload.currency,
                lines,
            )
        ]


class PartnerPaymentRule(BasePostingRule):
    event_type = EventType.PARTNER_PAYMENT

    def build_journals(
        self, payload: PartnerPaymentData, context: RuleContext
    ) -> list[PlannedJournal]:
        amount = payload.payment_amount
        return [
            self.journal(
                context,
                context.primary_company(),
                f"Partner payment: {payload.participant_name}",
                payload.currency,
                [
                    debit(context.accounts.partner_payables, amount, payload.participant_name),
                    credit(payload.bank_account_gl_code, amount, "Bank payment"),
                ],
            )
        ]


EQUITY_RULES = (
    OpeningBalanceRule(),
    PartnerProfitAllocationRule(),
    PartnerPaymentRule(),
)
