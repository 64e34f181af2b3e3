"""
Interfaces the ledger consumes from the surrounding charter system.

Bank accounts, companies and expense documents live outside this package.
Services receive implementations of these protocols through their
constructors; tests pass small in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class BankAccountInfo:
    bank_account_id: str
    company_id: str
    gl_account_code: str | None = None


@runtime_checkable
class BankAccountResolver(Protocol):
    def resolve(self, bank_account_id: str) -> BankAccountInfo | None:
        """Return the bank account, or None when it does not exist."""
        ...


@runtime_checkable
class CompanyDirectory(Protocol):
    def get_name(self, company_id: str) -> str | None:
        ...


@dataclass(frozen=True)
class ExpenseLine:
    amount: Decimal
    description: str = ""
    account_code: str | None = None
    vat_amount: Decimal = Decimal("0")
    wht_rate: Decimal | None = None
    project_id: str | None = None


@dataclass(frozen=True)
class ExpenseRecord:
    """An approved purchase document as the ledger sees it."""

    expense_id: str
    expense_number: str
    company_id: str
    vendor_name: str
    expense_date: date
    currency: str
    lines: tuple[ExpenseLine, ...]
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    wht_amount: Decimal = Decimal("0")
    vendor_tax_id: str | None = None
    vendor_id: str | None = None


@dataclass(frozen=True)
class PaymentRecord:
    """A payment made against an expense."""

    payment_id: str
    payment_date: date
    amount: Decimal
    paid_from: str
    """Bank account id, or ``"cash"``."""
    reference: str | None = None


@dataclass(frozen=True)
class WhtCertificateRequest:
    """Everything needed to issue a withholding tax certificate."""

    company_id: str
    expense_id: str
    expense_number: str
    payment_id: str | None
    payee_name: str
    payee_tax_id: str | None
    form_type: str
    tax_period: str
    payment_date: date
    amount_paid: Decimal
    wht_rate: Decimal
    wht_amount: Decimal
    income_description: str = ""
    extra: dict = field(default_factory=dict)


@runtime_checkable
class WhtCertificateIssuer(Protocol):
    def issue(self, request: WhtCertificateRequest) -> str:
        """Create the certificate and return its identifier."""
        ...
