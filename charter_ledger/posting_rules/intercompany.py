"""
Posting rules between group companies.

MANAGEMENT_FEE_RECOGNIZED
    project company     Dr management fee expense   / Cr intercompany payable
    management company  Dr intercompany receivable  / Cr management fee income
INTERCOMPANY_SETTLEMENT
    paying company      Dr intercompany payable     / Cr bank
    receiving company   Dr bank                     / Cr intercompany receivable
"""

from charter_ledger.domain.context import RuleContext
from charter_ledger.domain.event_types import EventType
from charter_ledger.domain.payloads import IntercompanySettlementData, ManagementFeeData
from charter_ledger.domain.posting_plan import PlannedJournal, credit, debit
from charter_ledger.posting_rules.base import BasePostingRule


class ManagementFeeRule(BasePostingRule):
    event_type = EventType.MANAGEMENT_FEE_RECOGNIZED

    def build_journals(
        self, payload: ManagementFeeData, context: RuleContext
    ) -> list[PlannedJournal]:
        accounts = context.accounts
        project_co = payload.project_company_id
        mgmt_co = payload.management_company_id
        fee = payload.fee_amount
        label = f"Management fee: {payload.project_name}"

        return [
            self.journal(
                context,
                project_co,
                label,
                payload.currency,
                [
                    debit(accounts.management_fee_expense, fee, label),
                    credit(accounts.intercompany_payable_to(mgmt_co), fee, "Fee payable"),
                ],
            ),
            self.journal(
                context,
                mgmt_co,
                label,
                payload.currency,
                [
                    debit(accounts.intercompany_receivable_from(project_co), fee, "Fee receivable"),
                    credit(accounts.management_fee_income, fee, label),
                ],
            ),
        ]


class IntercompanySettlementRule(BasePostingRule):
    event_type = EventType.INTERCOMPANY_SETTLEMENT

    def build_journals(
        self, payload: IntercompanySettlementData, context: RuleContext
    ) -> list[PlannedJournal]:
        accounts = context.accounts
        payer = payload.from_company_id
        payee = payload.to_company_id
        amount = payload.settlement_amount
        label = "Intercompany settlement" + (
            f": {payload.reference}" if payload.reference else ""
        )

        return [
            self.journal(
                context,
                payer,
                label,
                payload.currency,
                [
                    debit(accounts.intercompany_payable_to(payee), amount, label),
                    credit(payload.from_bank_gl_code, amount, "Bank transfer out"),
                ],
            ),
            self.journal(
                context,
                payee,
                label,
                payload.currency,
                [
                    debit(payload.to_bank_gl_code, amount, "Bank transfer in"),
                    credit(accounts.intercompany_receivable_from(payer), amount, label),
                ],
            ),
        ]


INTERCOMPANY_RULES = (
    ManagementFeeRule(),
    IntercompanySettlementRule(),
)
