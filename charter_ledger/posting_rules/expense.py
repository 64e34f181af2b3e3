"""
Posting rules for the purchase side: approval, payment, capital expenditure.

EXPENSE_APPROVED       Dr expense lines + VAT input      / Cr accounts payable
EXPENSE_PAID           Dr accounts payable               / Cr bank (or cash)
EXPENSE_PAID_INTERCOMPANY
    paying company     Dr intercompany receivable        / Cr bank
    owning company     Dr accounts payable               / Cr intercompany payable
CAPEX_INCURRED         Dr asset                          / Cr cash, bank or AP
"""

from charter_ledger.db.types import ZERO
from charter_ledger.domain.context import RuleContext
from charter_ledger.domain.event_types import EventType
from charter_ledger.domain.payloads import (
    CapexIncurredData,
    ExpenseApprovedData,
    ExpensePaidData,
    ExpensePaidIntercompanyData,
)
from charter_ledger.domain.posting_plan import EntrySide, PlannedJournal, credit, debit
from charter_ledger.domain.rounding import reconcile_rounding
from charter_ledger.posting_rules.base import BasePostingRule


class ExpenseApprovedRule(BasePostingRule):
    """
    Accrual on approval.  Each line item debits its own account (or the
    company's fallback expense account); the rounding residual against the
    payable lands on the largest debit.
    """

    event_type = EventType.EXPENSE_APPROVED

    def build_journals(
        self, payload: ExpenseApprovedData, context: RuleContext
    ) -> list[PlannedJournal]:
        company_id = context.primary_company()
        lines = []
        for item in payload.line_items:
            if item.amount <= ZERO:
                continue
            lines.append(
                debit(
                    item.account_code or context.fallback_debit_account(company_id),
                    item.amount,
                    item.description or f"Expense: {payload.expense_number}",
                )
            )
        if payload.total_vat_amount > ZERO:
            lines.append(
                debit(
                    context.accounts.vat_input,
                    payload.total_vat_amount,
                    f"Input VAT: {payload.expense_number}",
                )
            )
        lines.append(
            credit(
                context.accounts.accounts_payable,
                payload.total_amount,
                f"AP: {payload.vendor_name or payload.expense_number}",
            )
        )

        lines = reconcile_rounding(lines, EntrySide.DEBIT, context.rounding_tolerance)
        return [
            self.journal(
                context,
                company_id,
                f"Expense approved: {payload.expense_number}"
                + (f" - {payload.vendor_name}" if payload.vendor_name else ""),
                payload.currency,
                lines,
            )
        ]


class ExpensePaidRule(BasePostingRule):
    event_type = EventType.EXPENSE_PAID

    def build_journals(
        self, payload: ExpensePaidData, context: RuleContext
    ) -> list[PlannedJournal]:
        company_id = context.primary_company()
        if payload.is_cash:
            funding_account = context.accounts.cash
        else:
            funding_account = payload.bank_account_gl_code

        lines = [
            debit(
                context.accounts.accounts_payable,
                payload.payment_amount,
                f"AP settled: {payload.expense_number}",
            ),
            credit(
                funding_account,
                payload.payment_amount,
                "Cash payment" if payload.is_cash else "Bank payment",
            ),
        ]
        return [
            self.journal(
                context,
                company_id,
                f"Expense payment: {payload.expense_number}",
                payload.currency,
                lines,
            )
        ]


class ExpensePaidIntercompanyRule(BasePostingRule):
    """
    One company's bank pays another company's expense.  Produces two
    journals of the same amount, payer first.
    """

    event_type = EventType.EXPENSE_PAID_INTERCOMPANY

    def build_journals(
        self, payload: ExpensePaidIntercompanyData, context: RuleContext
    ) -> list[PlannedJournal]:
        payer = payload.paying_company_id
        owner = payload.receiving_company_id
        amount = payload.payment_amount
        accounts = context.accounts

        payer_journal = self.journal(
            context,
            payer,
            f"Paid {payload.expense_number} on behalf of {payload.receiving_company_name}",
            payload.currency,
            [
                debit(
                    accounts.intercompany_receivable_from(owner),
                    amount,
                    f"Due from {payload.receiving_company_name}",
                ),
                credit(payload.bank_account_gl_code, amount, "Bank payment"),
            ],
        )
        owner_journal = self.journal(
            context,
            owner,
            f"Expense {payload.expense_number} paid by {payload.paying_company_name}",
            payload.currency,
            [
                debit(
                    accounts.accounts_payable,
                    amount,
                    f"AP settled: {payload.expense_number}",
                ),
                credit(
                    accounts.intercompany_payable_to(payer),
                    amount,
                    f"Due to {payload.paying_company_name}",
                ),
            ],
        )
        return [payer_journal, owner_journal]


class CapexIncurredRule(BasePostingRule):
    event_type = EventType.CAPEX_INCURRED

    def build_journals(
        self, payload: CapexIncurredData, context: RuleContext
    ) -> list[PlannedJournal]:
        company_id = context.primary_company()
        accounts = context.accounts
        if payload.payment_method == "cash":
            funding_account = accounts.cash
        elif payload.payment_method == "bank":
            funding_account = payload.bank_account_gl_code
        else:
            funding_account = accounts.accounts_payable

        cost = payload.acquisition_cost
        return [
            self.journal(
                context,
                company_id,
                f"Asset acquired: {payload.asset_description}",
                payload.currency,
                [
                    debit(payload.asset_account_code, cost, payload.asset_description),
                    credit(funding_account, cost, payload.vendor_name or "Asset payment"),
                ],
            )
        ]


EXPENSE_RULES = (
    ExpenseApprovedRule(),
    ExpensePaidRule(),
    ExpensePaidIntercompanyRule(),
    CapexIncurredRule(),
)
