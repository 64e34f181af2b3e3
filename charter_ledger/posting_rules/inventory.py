"""
Posting rules for stock bought into inventory and later used on projects.

INVENTORY_PURCHASE_RECORDED  Dr inventory + VAT input  / Cr bank, cash on hand or petty cash
INVENTORY_CONSUMED           Dr item expense accounts  / Cr inventory
"""

from charter_ledger.db.types import ZERO
from charter_ledger.domain.context import RuleContext
from charter_ledger.domain.event_types import EventType
from charter_ledger.domain.payloads import InventoryConsumedData, InventoryPurchaseData
from charter_ledger.domain.posting_plan import EntrySide, PlannedJournal, credit, debit
from charter_ledger.domain.rounding import reconcile_rounding
from charter_ledger.posting_rules.base import BasePostingRule


class InventoryPurchaseRule(BasePostingRule):
    event_type = EventType.INVENTORY_PURCHASE_RECORDED

    def build_journals(
        self, payload: InventoryPurchaseData, context: RuleContext
    ) -> list[PlannedJournal]:
        company_id = context.primary_company()
        accounts = context.accounts
        number = payload.purchase_number
        vendor = payload.vendor_name

        if payload.payment_type == "bank":
            funding_account = payload.bank_account_gl_code
            funding_description = f"Payment for inventory - {number}"
        elif payload.payment_type == "cash":
            funding_account = accounts.cash_on_hand
            funding_description = f"Payment for inventory - {number}"
        else:
            funding_account = payload.petty_cash_gl_code
            wallet = payload.petty_cash_wallet_name
            funding_description = (
                f"Petty cash ({wallet}) - {number}" if wallet else f"Petty cash - {number}"
            )

        lines = [
            debit(
                accounts.inventory,
                payload.total_subtotal,
                f"Inventory purchase from {vendor} - {number}"
                if vendor
                else f"Inventory purchase - {number}",
            )
        ]
        if payload.total_vat_amount > ZERO:
            lines.append(
                debit(
                    accounts.vat_input,
                    payload.total_vat_amount,
                    f"VAT on inventory purchase - {number}",
                )
            )
        lines.append(credit(funding_account, payload.total_net_payable, funding_description))

        lines = reconcile_rounding(lines, EntrySide.DEBIT, context.rounding_tolerance)
        return [
            self.journal(
                context,
                company_id,
                f"Inventory Purchase - {number}" + (f" ({vendor})" if vendor else ""),
                payload.currency,
                lines,
            )
        ]


class InventoryConsumedRule(BasePostingRule):
    """Each consumed item is expensed to its own account against inventory."""

    event_type = EventType.INVENTORY_CONSUMED

    def build_journals(
        self, payload: InventoryConsumedData, context: RuleContext
    ) -> list[PlannedJournal]:
        company_id = context.primary_company()
        number = payload.purchase_number
        lines = [
            debit(
                item.expense_account_code,
                item.amount,
                (item.description or f"Inventory used - {number}")
                + (f" - {item.project_name}" if item.project_name else ""),
            )
            for item in payload.consumptions
        ]
        lines.append(
            credit(
                context.accounts.inventory,
                payload.total_amount,
                f"Inventory consumed - {number}",
            )
        )

        lines = reconcile_rounding(lines, EntrySide.DEBIT, context.rounding_tolerance)
        return [
            self.journal(
                context,
                company_id,
                f"Inventory Consumed - {number}",
                payload.currency,
                lines,
            )
        ]


INVENTORY_RULES = (
    InventoryPurchaseRule(),
    InventoryConsumedRule(),
)
