"""
ExpensePostingService -- turns expense documents into accounting events.

Responsibility:
    The business-action side of the purchase workflow.  Approving an expense
    records EXPENSE_APPROVED; paying it records EXPENSE_PAID, or
    EXPENSE_PAID_INTERCOMPANY when the money left a bank account owned by
    another group company.  Each call hands the event to EventProcessor.

Failure modes:
    - DuplicateEventError when the expense was already approved (any status).
    - Payment duplicates come back as ``EventProcessResult(is_duplicate=True)``.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from charter_ledger.domain.accounts import ChartDefaults
from charter_ledger.domain.collaborators import (
    BankAccountInfo,
    BankAccountResolver,
    CompanyDirectory,
    ExpenseRecord,
    PaymentRecord,
)
from charter_ledger.domain.event_types import EventType
from charter_ledger.domain.payloads import (
    CASH_SENTINEL,
    ExpenseApprovedData,
    ExpenseLineItem,
    ExpensePaidData,
    ExpensePaidIntercompanyData,
    WithholdingInfo,
)
from charter_ledger.db.types import ZERO
from charter_ledger.exceptions import DuplicateEventError
from charter_ledger.logging_config import get_logger
from charter_ledger.services.event_processor import EventProcessor, EventProcessResult
from charter_ledger.services.idempotency_guard import IdempotencyGuard

logger = get_logger("services.expense_posting")

EXPENSE_SOURCE = "expense"
PAYMENT_SOURCE = "expense_payment"


class ExpensePostingService:
    def __init__(
        self,
        session: Session,
        processor: EventProcessor,
        bank_accounts: BankAccountResolver,
        companies: CompanyDirectory,
        accounts: ChartDefaults | None = None,
    ):
        self.session = session
        self._processor = processor
        self._bank_accounts = bank_accounts
        self._companies = companies
        self._accounts = accounts or ChartDefaults()
        self._guard = IdempotencyGuard(session)

    def approve_expense(
        self, expense: ExpenseRecord, created_by: str | None = None
    ) -> EventProcessResult:
        """
        Raises:
            DuplicateEventError: An approval event already exists for the
                expense, whatever its status.
        """
        existing = self._guard.find_existing(
            EventType.EXPENSE_APPROVED, EXPENSE_SOURCE, expense.expense_id
        )
        if existing is not None:
            raise DuplicateEventError(
                EventType.EXPENSE_APPROVED.value,
                EXPENSE_SOURCE,
                expense.expense_id,
                existing.id,
            )

        payload = ExpenseApprovedData(
            expense_id=expense.expense_id,
            expense_number=expense.expense_number,
            vendor_name=expense.vendor_name,
            expense_date=expense.expense_date,
            line_items=tuple(
                ExpenseLineItem(
                    amount=line.amount,
                    description=line.description,
                    account_code=line.account_code,
                    vat_amount=line.vat_amount,
                    wht_rate=line.wht_rate,
                    project_id=line.project_id,
                )
                for line in expense.lines
            ),
            total_subtotal=expense.subtotal,
            total_vat_amount=expense.vat_amount,
            total_amount=expense.total_amount,
            currency=expense.currency,
        )
        return self._processor.create_and_process(
            EventType.EXPENSE_APPROVED,
            expense.expense_date,
            [expense.company_id],
            payload,
            source_document_type=EXPENSE_SOURCE,
            source_document_id=expense.expense_id,
            created_by=created_by,
        )

    def _withholding(self, expense: ExpenseRecord) -> WithholdingInfo | None:
        if expense.wht_amount <= ZERO:
            return None
        rate = expense.lines[0].wht_rate if expense.lines else None
        return WithholdingInfo(
            wht_amount=expense.wht_amount,
            wht_rate=rate if rate is not None else Decimal("3"),
            payee_name=expense.vendor_name,
            payee_tax_id=expense.vendor_tax_id,
            amount_paid=expense.subtotal,
            income_description=expense.lines[0].description if expense.lines else None,
        )

    def _resolve_bank(self, expense: ExpenseRecord, bank_account_id: str) -> BankAccountInfo:
        bank = self._bank_accounts.resolve(bank_account_id)
        if bank is None:
            logger.warning(
                "bank_account_not_found",
                extra={"bank_account_id": bank_account_id, "expense_id": expense.expense_id},
            )
            return BankAccountInfo(bank_account_id, expense.company_id, self._accounts.default_bank)
        if not bank.gl_account_code:
            return BankAccountInfo(bank.bank_account_id, bank.company_id, self._accounts.default_bank)
        return bank

    def _company_name(self, company_id: str) -> str:
        return self._companies.get_name(company_id) or company_id

    def record_payment(
        self,
        expense: ExpenseRecord,
        payment: PaymentRecord,
        created_by: str | None = None,
    ) -> EventProcessResult:
        withholding = self._withholding(expense)
        common = dict(
            source_document_type=PAYMENT_SOURCE,
            source_document_id=payment.payment_id,
            created_by=created_by,
        )

        if payment.paid_from == CASH_SENTINEL:
            payload = ExpensePaidData(
                expense_id=expense.expense_id,
                expense_number=expense.expense_number,
                payment_amount=payment.amount,
                currency=expense.currency,
                paid_from=CASH_SENTINEL,
                payment_id=payment.payment_id,
                vendor_name=expense.vendor_name,
                payment_date=payment.payment_date,
                withholding=withholding,
            )
            return self._processor.create_and_process(
                EventType.EXPENSE_PAID, payment.payment_date, [expense.company_id], payload, **common
            )

        bank = self._resolve_bank(expense, payment.paid_from)
        if bank.company_id != expense.company_id:
            payload = ExpensePaidIntercompanyData(
                expense_id=expense.expense_id,
                expense_number=expense.expense_number,
                paying_company_id=bank.company_id,
                paying_company_name=self._company_name(bank.company_id),
                bank_account_id=bank.bank_account_id,
                bank_account_gl_code=bank.gl_account_code,
                receiving_company_id=expense.company_id,
                receiving_company_name=self._company_name(expense.company_id),
                payment_amount=payment.amount,
                currency=expense.currency,
                payment_id=payment.payment_id,
                vendor_name=expense.vendor_name,
                payment_date=payment.payment_date,
                withholding=withholding,
            )
            logger.info(
                "intercompany_payment_detected",
                extra={
                    "expense_id": expense.expense_id,
                    "paying_company_id": bank.company_id,
                    "receiving_company_id": expense.company_id,
                },
            )
            return self._processor.create_and_process(
                EventType.EXPENSE_PAID_INTERCOMPANY,
                payment.payment_date,
                [expense.company_id, bank.company_id],
                payload,
                **common,
            )

        payload = ExpensePaidData(
            expense_id=expense.expense_id,
            expense_number=expense.expense_number,
            payment_amount=payment.amount,
            currency=expense.currency,
            paid_from=bank.bank_account_id,
            bank_account_id=bank.bank_account_id,
            bank_account_gl_code=bank.gl_account_code,
            payment_id=payment.payment_id,
            vendor_name=expense.vendor_name,
            payment_date=payment.payment_date,
            withholding=withholding,
        )
        return self._processor.create_and_process(
            EventType.EXPENSE_PAID, payment.payment_date, [expense.company_id], payload, **common
        )
