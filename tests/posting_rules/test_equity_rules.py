"""Tests for opening balance and partner equity rules."""

from datetime import date
from decimal import Decimal

from charter_ledger.domain.context import RuleContext
from charter_ledger.domain.posting_plan import EntrySide
from charter_ledger.posting_rules.equity import (
    OpeningBalanceRule,
    PartnerPaymentRule,
    PartnerProfitAllocationRule,
)

CONTEXT = RuleContext(event_date=date(2024, 1, 1), affected_companies=("company-a",))


class TestOpeningBalanceRule:
    def test_lines_posted_as_given(self):
        journal = OpeningBalanceRule().compute(
            {
                "fiscal_year": "2024",
                "currency": "THB",
                "balances": [
                    {"account_code": "1010", "account_name": "Bank", "debit_amount": "250000.00"},
                    {"account_code": "3000", "credit_amount": "250000.00"},
                    {"account_code": "1200"},
                ],
            },
            CONTEXT,
        ).journals[0]

        assert [(l.account_code, l.side) for l in journal.lines] == [
            ("1010", EntrySide.DEBIT),
            ("3000", EntrySide.CREDIT),
        ]
        assert journal.lines[0].description == "Bank"
        assert journal.description == "Opening balances FY2024"
        assert journal.is_balanced

    def test_unbalanced_set_not_corrected(self):
        journal = OpeningBalanceRule().compute(
            {
                "fiscal_year": "2024",
                "currency": "THB",
                "balances": [
                    {"account_code": "1010", "debit_amount": "100.00"},
                    {"account_code": "3000", "credit_amount": "90.00"},
                ],
            },
            CONTEXT,
        ).journals[0]
        assert not journal.is_balanced


class TestPartnerProfitAllocationRule:
    def test_allocation_split_reconciled(self):
        journal = PartnerProfitAllocationRule().compute(
            {
                "project_id": "prj-1",
                "project_name": "Similan charter",
                "total_profit": "100.00",
                "currency": "THB",
                "allocations": [
                    {"participant_id": f"p{i}", "participant_name": f"Partner {i}",
                     "allocated_amount": "33.333"}
                    for i in range(3)
                ],
            },
            CONTEXT,
        ).journals[0]

        assert journal.lines[0].account_code == "3200"
        assert {l.account_code for l in journal.lines[1:]} == {"2750"}
        assert journal.total_credit == Decimal("100.00")
        assert journal.is_balanced


class TestPartnerPaymentRule:
    def test_payment(self):
        journal = PartnerPaymentRule().compute(
            {
                "project_id": "prj-1",
                "participant_id": "p1",
                "participant_name": "Partner 1",
                "payment_amount": "5000.00",
                "bank_account_gl_code": "1010",
                "currency": "THB",
            },
            CONTEXT,
        ).journals[0]
        assert [(l.side, l.account_code) for l in journal.lines] == [
            (EntrySide.DEBIT, "2750"),
            (EntrySide.CREDIT, "1010"),
        ]
