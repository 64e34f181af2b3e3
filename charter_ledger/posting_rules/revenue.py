"""
Posting rules for the sales side.

RECEIPT_ISSUED         Dr bank/cash per payment (+ AR for any unpaid part)
                       Cr revenue lines + VAT output
RECEIPT_ISSUED_INTERCOMPANY
    bank company       Dr bank                     / Cr intercompany payable
    charter company    Dr intercompany receivable  / Cr revenue or deferred revenue
PROJECT_SERVICE_COMPLETED  Dr deferred revenue     / Cr revenue
"""

from charter_ledger.db.types import ZERO
from charter_ledger.domain.context import RuleContext
from charter_ledger.domain.event_types import EventType
from charter_ledger.domain.payloads import (
    ProjectServiceCompletedData,
    ReceiptIssuedData,
    ReceiptIssuedIntercompanyData,
)
from charter_ledger.domain.posting_plan import EntrySide, PlannedJournal, credit, debit
from charter_ledger.domain.rounding import reconcile_rounding
from charter_ledger.exceptions import PayloadValidationError
from charter_ledger.posting_rules.base import BasePostingRule


class ReceiptIssuedRule(BasePostingRule):
    """
    Cash receipt against a customer receipt document.  Revenue lines absorb
    the rounding residual against the money received.
    """

    event_type = EventType.RECEIPT_ISSUED

    def build_journals(
        self, payload: ReceiptIssuedData, context: RuleContext
    ) -> list[PlannedJournal]:
        company_id = context.primary_company()
        accounts = context.accounts

        outstanding = payload.total_amount - payload.total_paid
        if outstanding < -context.rounding_tolerance:
            raise PayloadValidationError(
                self.event_type.value,
                "payments",
                f"Payments {payload.total_paid} exceed receipt total {payload.total_amount}",
            )

        lines = []
        for payment in payload.payments:
            lines.append(
                debit(
                    payment.bank_account_gl_code or accounts.cash,
                    payment.amount,
                    f"Received: {payload.receipt_number}",
                )
            )
        if outstanding > ZERO:
            lines.append(
                debit(
                    accounts.accounts_receivable,
                    outstanding,
                    f"Due from {payload.client_name}",
                )
            )
        for item in payload.line_items:
            if item.amount <= ZERO:
                continue
            lines.append(
                credit(
                    item.account_code or context.fallback_credit_account(company_id),
                    item.amount,
                    item.description or f"Revenue: {payload.receipt_number}",
                )
            )
        if payload.total_vat_amount > ZERO:
            lines.append(
                credit(
                    accounts.vat_output,
                    payload.total_vat_amount,
                    f"Output VAT: {payload.receipt_number}",
                )
            )

        lines = reconcile_rounding(lines, EntrySide.CREDIT, context.rounding_tolerance)
        return [
            self.journal(
                context,
                company_id,
                f"Receipt issued: {payload.receipt_number} - {payload.client_name}",
                payload.currency,
                lines,
            )
        ]


class ReceiptIssuedIntercompanyRule(BasePostingRule):
    """The customer paid into a bank account owned by another company."""

    event_type = EventType.RECEIPT_ISSUED_INTERCOMPANY

    def build_journals(
        self, payload: ReceiptIssuedIntercompanyData, context: RuleContext
    ) -> list[PlannedJournal]:
        bank_co = payload.bank_company_id
        charter_co = payload.charter_company_id
        amount = payload.total_amount
        accounts = context.accounts

        if payload.uses_deferred_revenue:
            revenue_account = accounts.deferred_revenue
        else:
            revenue_account = context.fallback_credit_account(charter_co)

        return [
            self.journal(
                context,
                bank_co,
                f"Receipt {payload.receipt_number} collected for {payload.charter_company_name}",
                payload.currency,
                [
                    debit(payload.bank_account_gl_code, amount, f"Received: {payload.receipt_number}"),
                    credit(
                        accounts.intercompany_payable_to(charter_co),
                        amount,
                        f"Due to {payload.charter_company_name}",
                    ),
                ],
            ),
            self.journal(
                context,
                charter_co,
                f"Receipt {payload.receipt_number} collected by {payload.bank_company_name}",
                payload.currency,
                [
                    debit(
                        accounts.intercompany_receivable_from(bank_co),
                        amount,
                        f"Due from {payload.bank_company_name}",
                    ),
                    credit(revenue_account, amount, payload.project_name or payload.client_name),
                ],
            ),
        ]


class ProjectServiceCompletedRule(BasePostingRule):
    event_type = EventType.PROJECT_SERVICE_COMPLETED

    def build_journals(
        self, payload: ProjectServiceCompletedData, context: RuleContext
    ) -> list[PlannedJournal]:
        company_id = context.primary_company()
        deferred = payload.deferred_revenue_account_code or context.accounts.deferred_revenue
        revenue = payload.revenue_account_code or context.fallback_credit_account(company_id)
        return [
            self.journal(
                context,
                company_id,
                f"Service completed: {payload.project_name}",
                payload.currency,
                [
                    debit(deferred, payload.amount, "Release deferred revenue"),
                    credit(revenue, payload.amount, payload.description or payload.project_name),
                ],
            )
        ]


REVENUE_RULES = (
    ReceiptIssuedRule(),
    ReceiptIssuedIntercompanyRule(),
    ProjectServiceCompletedRule(),
)
