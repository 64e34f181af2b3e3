"""
Event payloads -- one frozen dataclass per event type.

Responsibility:
    Parses the JSON ``event_data`` stored on an AccountingEvent into the typed
    payload for its event type, rejecting any payload that is missing a
    required field or carries a malformed value.  ``payload_to_json`` is the
    inverse used when events are created from typed payloads.

Architecture position:
    Ledger > Domain -- pure, no I/O.  Consumed by the posting rules (which
    receive already-validated payloads) and by EventProcessor/EventStore.

Invariants enforced:
    - Exactly one payload class per EventType (PAYLOAD_TYPES); the posting
      rule registry checks the same coverage.
    - Amounts are Decimal; floats are rejected at the boundary.
    - Intercompany payloads name two different companies.

Failure modes:
    - PayloadValidationError naming the offending field (dotted path for
      nested items, e.g. ``line_items[1].amount``).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, is_dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, ClassVar, Mapping, TypeVar

from charter_ledger.db.types import ZERO, money_from_value, validate_currency
from charter_ledger.domain.event_types import EventType, parse_event_type
from charter_ledger.exceptions import PayloadValidationError

T = TypeVar("T")

CASH_SENTINEL = "cash"


class _FieldReader:
    """Reads typed fields out of a payload mapping, raising on bad input."""

    def __init__(self, event_type: str, data: Mapping[str, Any], path: str = ""):
        self._event_type = event_type
        self._data = data
        self._path = path

    def _name(self, key: str) -> str:
        return f"{self._path}{key}"

    def fail(self, key: str | None, reason: str) -> PayloadValidationError:
        return PayloadValidationError(
            self._event_type, self._name(key) if key else self._path.rstrip(".") or None, reason
        )

    def _present(self, key: str) -> bool:
        value = self._data.get(key)
        return value is not None and value != ""

    def text(self, key: str) -> str:
        if not self._present(key):
            raise self.fail(key, f"Missing {self._name(key)}")
        return str(self._data[key])

    def optional_text(self, key: str, default: str | None = None) -> str | None:
        return str(self._data[key]) if self._present(key) else default

    def amount(self, key: str, *, allow_zero: bool = False) -> Decimal:
        if not self._present(key):
            raise self.fail(key, f"Missing {self._name(key)}")
        return self._to_amount(key, allow_zero=allow_zero)

    def optional_amount(self, key: str, default: Decimal | None = ZERO) -> Decimal | None:
        if not self._present(key):
            return default
        return self._to_amount(key, allow_zero=True)

    def _to_amount(self, key: str, *, allow_zero: bool) -> Decimal:
        try:
            value = money_from_value(self._data[key])
        except ValueError as exc:
            raise self.fail(key, f"Invalid {self._name(key)}: {exc}") from None
        if value < ZERO or (value == ZERO and not allow_zero):
            raise self.fail(key, f"Invalid {self._name(key)}: must be positive")
        return value

    def optional_date(self, key: str) -> date | None:
        if not self._present(key):
            return None
        value = self._data[key]
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value))
        except ValueError:
            raise self.fail(key, f"Invalid {self._name(key)}: not an ISO date") from None

    def flag(self, key: str, default: bool = False) -> bool:
        value = self._data.get(key)
        if value is None:
            return default
        if not isinstance(value, bool):
            raise self.fail(key, f"Invalid {self._name(key)}: expected true/false")
        return value

    def choice(self, key: str, choices: tuple[str, ...], default: str | None = None) -> str:
        value = self.optional_text(key, default)
        if value not in choices:
            raise self.fail(key, f"Invalid {self._name(key)}: expected one of {', '.join(choices)}")
        return value

    def currency(self, key: str = "currency") -> str:
        if not self._present(key):
            raise self.fail(key, f"Missing {self._name(key)}")
        try:
            return validate_currency(self._data[key])
        except ValueError as exc:
            raise self.fail(key, str(exc)) from None

    def items(
        self,
        key: str,
        parse: Callable[["_FieldReader"], T],
        *,
        allow_empty: bool = False,
    ) -> tuple[T, ...]:
        raw = self._data.get(key)
        if raw is None and allow_empty:
            return ()
        if not isinstance(raw, (list, tuple)):
            raise self.fail(key, f"Missing {self._name(key)}")
        if not raw and not allow_empty:
            raise self.fail(key, f"No {self._name(key)} provided")
        parsed = []
        for index, item in enumerate(raw):
            item_path = f"{self._name(key)}[{index}]."
            if is_dataclass(item):
                item = asdict(item)
            if not isinstance(item, Mapping):
                raise PayloadValidationError(
                    self._event_type, item_path.rstrip("."), f"Invalid {item_path.rstrip('.')}"
                )
            parsed.append(parse(_FieldReader(self._event_type, item, item_path)))
        return tuple(parsed)

    def nested(self, key: str, parse: Callable[["_FieldReader"], T]) -> T | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        if is_dataclass(raw):
            raw = asdict(raw)
        if not isinstance(raw, Mapping):
            raise self.fail(key, f"Invalid {self._name(key)}")
        return parse(_FieldReader(self._event_type, raw, f"{self._name(key)}."))


# ---------------------------------------------------------------------------
# Nested items
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExpenseLineItem:
    amount: Decimal
    description: str = ""
    account_code: str | None = None
    vat_amount: Decimal = ZERO
    wht_rate: Decimal | None = None
    project_id: str | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "ExpenseLineItem":
        return cls(
            amount=r.amount("amount", allow_zero=True),
            description=r.optional_text("description", ""),
            account_code=r.optional_text("account_code"),
            vat_amount=r.optional_amount("vat_amount"),
            wht_rate=r.optional_amount("wht_rate", None),
            project_id=r.optional_text("project_id"),
        )


@dataclass(frozen=True)
class WithholdingInfo:
    """Withholding tax deducted from a vendor payment."""

    wht_amount: Decimal
    wht_rate: Decimal | None = None
    payee_name: str | None = None
    payee_tax_id: str | None = None
    amount_paid: Decimal | None = None
    income_description: str | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "WithholdingInfo":
        return cls(
            wht_amount=r.amount("wht_amount", allow_zero=True),
            wht_rate=r.optional_amount("wht_rate", None),
            payee_name=r.optional_text("payee_name"),
            payee_tax_id=r.optional_text("payee_tax_id"),
            amount_paid=r.optional_amount("amount_paid", None),
            income_description=r.optional_text("income_description"),
        )


@dataclass(frozen=True)
class ReceiptLineItem:
    amount: Decimal
    description: str = ""
    account_code: str | None = None
    project_id: str | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "ReceiptLineItem":
        return cls(
            amount=r.amount("amount", allow_zero=True),
            description=r.optional_text("description", ""),
            account_code=r.optional_text("account_code"),
            project_id=r.optional_text("project_id"),
        )


@dataclass(frozen=True)
class ReceiptPayment:
    amount: Decimal
    bank_account_id: str | None = None
    bank_account_gl_code: str | None = None
    payment_method: str | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "ReceiptPayment":
        return cls(
            amount=r.amount("amount"),
            bank_account_id=r.optional_text("bank_account_id"),
            bank_account_gl_code=r.optional_text("bank_account_gl_code"),
            payment_method=r.optional_text("payment_method"),
        )


@dataclass(frozen=True)
class OpeningBalanceLine:
    account_code: str
    account_name: str | None = None
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO

    @classmethod
    def parse(cls, r: _FieldReader) -> "OpeningBalanceLine":
        line = cls(
            account_code=r.text("account_code"),
            account_name=r.optional_text("account_name"),
            debit_amount=r.optional_amount("debit_amount"),
            credit_amount=r.optional_amount("credit_amount"),
        )
        if line.debit_amount > ZERO and line.credit_amount > ZERO:
            raise r.fail(None, "A balance line carries either a debit or a credit, not both")
        return line


@dataclass(frozen=True)
class PartnerAllocation:
    participant_id: str
    participant_name: str
    allocated_amount: Decimal
    ownership_percentage: Decimal | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "PartnerAllocation":
        return cls(
            participant_id=r.text("participant_id"),
            participant_name=r.text("participant_name"),
            allocated_amount=r.amount("allocated_amount"),
            ownership_percentage=r.optional_amount("ownership_percentage", None),
        )


# ---------------------------------------------------------------------------
# Payload union
# ---------------------------------------------------------------------------


class EventPayload:
    """Marker base for payload variants.  ``EVENT_TYPE`` is the union tag."""

    EVENT_TYPE: ClassVar[EventType]

    @classmethod
    def parse(cls, r: _FieldReader):  # pragma: no cover - abstract
        raise NotImplementedError


@dataclass(frozen=True)
class ExpenseApprovedData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.EXPENSE_APPROVED

    expense_id: str
    expense_number: str
    line_items: tuple[ExpenseLineItem, ...]
    total_amount: Decimal
    currency: str
    vendor_name: str = ""
    total_subtotal: Decimal | None = None
    total_vat_amount: Decimal = ZERO
    expense_date: date | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "ExpenseApprovedData":
        return cls(
            expense_id=r.text("expense_id"),
            expense_number=r.text("expense_number"),
            line_items=r.items("line_items", ExpenseLineItem.parse),
            total_amount=r.amount("total_amount"),
            currency=r.currency(),
            vendor_name=r.optional_text("vendor_name", ""),
            total_subtotal=r.optional_amount("total_subtotal", None),
            total_vat_amount=r.optional_amount("total_vat_amount"),
            expense_date=r.optional_date("expense_date"),
        )


@dataclass(frozen=True)
class ExpensePaidData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.EXPENSE_PAID

    expense_id: str
    expense_number: str
    payment_amount: Decimal
    currency: str
    paid_from: str | None = None
    bank_account_id: str | None = None
    bank_account_gl_code: str | None = None
    payment_id: str | None = None
    vendor_name: str = ""
    payment_date: date | None = None
    withholding: WithholdingInfo | None = None

    @property
    def is_cash(self) -> bool:
        return self.paid_from == CASH_SENTINEL

    @classmethod
    def parse(cls, r: _FieldReader) -> "ExpensePaidData":
        payload = cls(
            expense_id=r.text("expense_id"),
            expense_number=r.text("expense_number"),
            payment_amount=r.amount("payment_amount"),
            currency=r.currency(),
            paid_from=r.optional_text("paid_from"),
            bank_account_id=r.optional_text("bank_account_id"),
            bank_account_gl_code=r.optional_text("bank_account_gl_code"),
            payment_id=r.optional_text("payment_id"),
            vendor_name=r.optional_text("vendor_name", ""),
            payment_date=r.optional_date("payment_date"),
            withholding=r.nested("withholding", WithholdingInfo.parse),
        )
        if not payload.is_cash and not payload.bank_account_gl_code:
            raise r.fail("bank_account_gl_code", "Missing bank account GL code")
        return payload


@dataclass(frozen=True)
class ExpensePaidIntercompanyData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.EXPENSE_PAID_INTERCOMPANY

    expense_id: str
    expense_number: str
    paying_company_id: str
    paying_company_name: str
    bank_account_id: str
    bank_account_gl_code: str
    receiving_company_id: str
    receiving_company_name: str
    payment_amount: Decimal
    currency: str
    payment_id: str | None = None
    vendor_name: str = ""
    payment_date: date | None = None
    project_id: str | None = None
    project_name: str | None = None
    withholding: WithholdingInfo | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "ExpensePaidIntercompanyData":
        payload = cls(
            expense_id=r.text("expense_id"),
            expense_number=r.text("expense_number"),
            paying_company_id=r.text("paying_company_id"),
            paying_company_name=r.text("paying_company_name"),
            bank_account_id=r.text("bank_account_id"),
            bank_account_gl_code=r.text("bank_account_gl_code"),
            receiving_company_id=r.text("receiving_company_id"),
            receiving_company_name=r.text("receiving_company_name"),
            payment_amount=r.amount("payment_amount"),
            currency=r.currency(),
            payment_id=r.optional_text("payment_id"),
            vendor_name=r.optional_text("vendor_name", ""),
            payment_date=r.optional_date("payment_date"),
            project_id=r.optional_text("project_id"),
            project_name=r.optional_text("project_name"),
            withholding=r.nested("withholding", WithholdingInfo.parse),
        )
        if payload.paying_company_id == payload.receiving_company_id:
            raise r.fail(
                "receiving_company_id",
                "Paying and receiving company must be different for intercompany transactions",
            )
        return payload


@dataclass(frozen=True)
class ReceiptIssuedData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.RECEIPT_ISSUED

    receipt_id: str
    receipt_number: str
    client_name: str
    line_items: tuple[ReceiptLineItem, ...]
    total_amount: Decimal
    currency: str
    payments: tuple[ReceiptPayment, ...] = ()
    total_subtotal: Decimal | None = None
    total_vat_amount: Decimal = ZERO
    receipt_date: date | None = None

    @property
    def total_paid(self) -> Decimal:
        return sum((p.amount for p in self.payments), ZERO)

    @classmethod
    def parse(cls, r: _FieldReader) -> "ReceiptIssuedData":
        return cls(
            receipt_id=r.text("receipt_id"),
            receipt_number=r.text("receipt_number"),
            client_name=r.text("client_name"),
            line_items=r.items("line_items", ReceiptLineItem.parse),
            total_amount=r.amount("total_amount"),
            currency=r.currency(),
            payments=r.items("payments", ReceiptPayment.parse, allow_empty=True),
            total_subtotal=r.optional_amount("total_subtotal", None),
            total_vat_amount=r.optional_amount("total_vat_amount"),
            receipt_date=r.optional_date("receipt_date"),
        )


@dataclass(frozen=True)
class ReceiptIssuedIntercompanyData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.RECEIPT_ISSUED_INTERCOMPANY

    receipt_id: str
    receipt_number: str
    client_name: str
    bank_company_id: str
    bank_company_name: str
    charter_company_id: str
    charter_company_name: str
    bank_account_gl_code: str
    total_amount: Decimal
    currency: str
    uses_deferred_revenue: bool = False
    project_name: str | None = None
    charter_date_from: date | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "ReceiptIssuedIntercompanyData":
        payload = cls(
            receipt_id=r.text("receipt_id"),
            receipt_number=r.text("receipt_number"),
            client_name=r.text("client_name"),
            bank_company_id=r.text("bank_company_id"),
            bank_company_name=r.text("bank_company_name"),
            charter_company_id=r.text("charter_company_id"),
            charter_company_name=r.text("charter_company_name"),
            bank_account_gl_code=r.text("bank_account_gl_code"),
            total_amount=r.amount("total_amount"),
            currency=r.currency(),
            uses_deferred_revenue=r.flag("uses_deferred_revenue"),
            project_name=r.optional_text("project_name"),
            charter_date_from=r.optional_date("charter_date_from"),
        )
        if payload.bank_company_id == payload.charter_company_id:
            raise r.fail(
                "charter_company_id",
                "Bank and charter company must be different for intercompany transactions",
            )
        return payload


@dataclass(frozen=True)
class ProjectServiceCompletedData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.PROJECT_SERVICE_COMPLETED

    project_id: str
    project_name: str
    amount: Decimal
    currency: str
    description: str = ""
    invoice_id: str | None = None
    revenue_account_code: str | None = None
    deferred_revenue_account_code: str | None = None
    completion_date: date | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "ProjectServiceCompletedData":
        return cls(
            project_id=r.text("project_id"),
            project_name=r.text("project_name"),
            amount=r.amount("amount"),
            currency=r.currency(),
            description=r.optional_text("description", ""),
            invoice_id=r.optional_text("invoice_id"),
            revenue_account_code=r.optional_text("revenue_account_code"),
            deferred_revenue_account_code=r.optional_text("deferred_revenue_account_code"),
            completion_date=r.optional_date("completion_date"),
        )


CAPEX_PAYMENT_METHODS = ("cash", "bank", "payable")


@dataclass(frozen=True)
class CapexIncurredData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.CAPEX_INCURRED

    asset_description: str
    asset_account_code: str
    acquisition_cost: Decimal
    payment_method: str
    currency: str
    bank_account_gl_code: str | None = None
    vendor_name: str | None = None
    expense_id: str | None = None
    acquisition_date: date | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "CapexIncurredData":
        payload = cls(
            asset_description=r.text("asset_description"),
            asset_account_code=r.text("asset_account_code"),
            acquisition_cost=r.amount("acquisition_cost"),
            payment_method=r.choice("payment_method", CAPEX_PAYMENT_METHODS),
            currency=r.currency(),
            bank_account_gl_code=r.optional_text("bank_account_gl_code"),
            vendor_name=r.optional_text("vendor_name"),
            expense_id=r.optional_text("expense_id"),
            acquisition_date=r.optional_date("acquisition_date"),
        )
        if payload.payment_method == "bank" and not payload.bank_account_gl_code:
            raise r.fail("bank_account_gl_code", "Missing bank account GL code")
        return payload


INVENTORY_PAYMENT_TYPES = ("bank", "cash", "petty_cash")


@dataclass(frozen=True)
class InventoryPurchaseData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.INVENTORY_PURCHASE_RECORDED

    purchase_id: str
    purchase_number: str
    purchase_date: date
    total_subtotal: Decimal
    total_net_payable: Decimal
    payment_type: str
    currency: str
    total_vat_amount: Decimal = ZERO
    vendor_name: str = ""
    bank_account_gl_code: str | None = None
    petty_cash_gl_code: str | None = None
    petty_cash_wallet_name: str | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "InventoryPurchaseData":
        purchase_date = r.optional_date("purchase_date")
        if purchase_date is None:
            raise r.fail("purchase_date", "Missing purchase date")
        payload = cls(
            purchase_id=r.text("purchase_id"),
            purchase_number=r.text("purchase_number"),
            purchase_date=purchase_date,
            total_subtotal=r.amount("total_subtotal"),
            total_net_payable=r.amount("total_net_payable"),
            payment_type=r.choice("payment_type", INVENTORY_PAYMENT_TYPES),
            currency=r.currency(),
            total_vat_amount=r.optional_amount("total_vat_amount"),
            vendor_name=r.optional_text("vendor_name", ""),
            bank_account_gl_code=r.optional_text("bank_account_gl_code"),
            petty_cash_gl_code=r.optional_text("petty_cash_gl_code"),
            petty_cash_wallet_name=r.optional_text("petty_cash_wallet_name"),
        )
        if payload.payment_type == "bank" and not payload.bank_account_gl_code:
            raise r.fail("bank_account_gl_code", "Missing bank account GL code")
        if payload.payment_type == "petty_cash" and not payload.petty_cash_gl_code:
            raise r.fail("petty_cash_gl_code", "Missing petty cash GL code")
        return payload


@dataclass(frozen=True)
class InventoryConsumption:
    expense_account_code: str
    amount: Decimal
    description: str = ""
    line_item_id: str | None = None
    quantity: Decimal | None = None
    project_id: str | None = None
    project_name: str | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "InventoryConsumption":
        return cls(
            expense_account_code=r.text("expense_account_code"),
            amount=r.amount("amount"),
            description=r.optional_text("description", ""),
            line_item_id=r.optional_text("line_item_id"),
            quantity=r.optional_amount("quantity", None),
            project_id=r.optional_text("project_id"),
            project_name=r.optional_text("project_name"),
        )


@dataclass(frozen=True)
class InventoryConsumedData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.INVENTORY_CONSUMED

    purchase_id: str
    purchase_number: str
    consumptions: tuple[InventoryConsumption, ...]
    total_amount: Decimal
    currency: str
    consumed_date: date | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "InventoryConsumedData":
        return cls(
            purchase_id=r.text("purchase_id"),
            purchase_number=r.text("purchase_number"),
            consumptions=r.items("consumptions", InventoryConsumption.parse),
            total_amount=r.amount("total_amount"),
            currency=r.currency(),
            consumed_date=r.optional_date("consumed_date"),
        )


@dataclass(frozen=True)
class ManagementFeeData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.MANAGEMENT_FEE_RECOGNIZED

    project_id: str
    project_name: str
    project_company_id: str
    management_company_id: str
    fee_amount: Decimal
    currency: str
    period_from: date | None = None
    period_to: date | None = None
    fee_percentage: Decimal | None = None
    gross_income: Decimal | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "ManagementFeeData":
        payload = cls(
            project_id=r.text("project_id"),
            project_name=r.text("project_name"),
            project_company_id=r.text("project_company_id"),
            management_company_id=r.text("management_company_id"),
            fee_amount=r.amount("fee_amount"),
            currency=r.currency(),
            period_from=r.optional_date("period_from"),
            period_to=r.optional_date("period_to"),
            fee_percentage=r.optional_amount("fee_percentage", None),
            gross_income=r.optional_amount("gross_income", None),
        )
        if payload.project_company_id == payload.management_company_id:
            raise r.fail(
                "management_company_id",
                "Project and management company must be different",
            )
        return payload


@dataclass(frozen=True)
class IntercompanySettlementData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.INTERCOMPANY_SETTLEMENT

    from_company_id: str
    to_company_id: str
    settlement_amount: Decimal
    from_bank_gl_code: str
    to_bank_gl_code: str
    currency: str
    reference: str = ""
    from_bank_account_id: str | None = None
    to_bank_account_id: str | None = None
    settlement_date: date | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "IntercompanySettlementData":
        payload = cls(
            from_company_id=r.text("from_company_id"),
            to_company_id=r.text("to_company_id"),
            settlement_amount=r.amount("settlement_amount"),
            from_bank_gl_code=r.text("from_bank_gl_code"),
            to_bank_gl_code=r.text("to_bank_gl_code"),
            currency=r.currency(),
            reference=r.optional_text("reference", ""),
            from_bank_account_id=r.optional_text("from_bank_account_id"),
            to_bank_account_id=r.optional_text("to_bank_account_id"),
            settlement_date=r.optional_date("settlement_date"),
        )
        if payload.from_company_id == payload.to_company_id:
            raise r.fail("to_company_id", "Settlement requires two different companies")
        return payload


@dataclass(frozen=True)
class OpeningBalanceData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.OPENING_BALANCE

    fiscal_year: str
    balances: tuple[OpeningBalanceLine, ...]
    currency: str

    @classmethod
    def parse(cls, r: _FieldReader) -> "OpeningBalanceData":
        return cls(
            fiscal_year=r.text("fiscal_year"),
            balances=r.items("balances", OpeningBalanceLine.parse),
            currency=r.currency(),
        )


@dataclass(frozen=True)
class PartnerProfitAllocationData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.PARTNER_PROFIT_ALLOCATION

    project_id: str
    project_name: str
    allocations: tuple[PartnerAllocation, ...]
    total_profit: Decimal
    currency: str
    period_from: date | None = None
    period_to: date | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "PartnerProfitAllocationData":
        return cls(
            project_id=r.text("project_id"),
            project_name=r.text("project_name"),
            allocations=r.items("allocations", PartnerAllocation.parse),
            total_profit=r.amount("total_profit"),
            currency=r.currency(),
            period_from=r.optional_date("period_from"),
            period_to=r.optional_date("period_to"),
        )


@dataclass(frozen=True)
class PartnerPaymentData(EventPayload):
    EVENT_TYPE: ClassVar[EventType] = EventType.PARTNER_PAYMENT

    project_id: str
    participant_id: str
    participant_name: str
    payment_amount: Decimal
    bank_account_gl_code: str
    currency: str
    bank_account_id: str | None = None
    payment_date: date | None = None

    @classmethod
    def parse(cls, r: _FieldReader) -> "PartnerPaymentData":
        return cls(
            project_id=r.text("project_id"),
            participant_id=r.text("participant_id"),
            participant_name=r.text("participant_name"),
            payment_amount=r.amount("payment_amount"),
            bank_account_gl_code=r.text("bank_account_gl_code"),
            currency=r.currency(),
            bank_account_id=r.optional_text("bank_account_id"),
            payment_date=r.optional_date("payment_date"),
        )


PAYLOAD_TYPES: dict[EventType, type[EventPayload]] = {
    cls.EVENT_TYPE: cls
    for cls in (
        OpeningBalanceData,
        ReceiptIssuedData,
        ReceiptIssuedIntercompanyData,
        ProjectServiceCompletedData,
        ExpenseApprovedData,
        ExpensePaidData,
        ExpensePaidIntercompanyData,
        CapexIncurredData,
        InventoryPurchaseData,
        InventoryConsumedData,
        ManagementFeeData,
        IntercompanySettlementData,
        PartnerProfitAllocationData,
        PartnerPaymentData,
    )
}


def parse_payload(event_type: EventType | str, data: Any) -> EventPayload:
    """
    Validate ``data`` against the payload shape for ``event_type``.

    ``data`` may be the stored JSON mapping or an already-built payload
    instance; an instance of the wrong variant is rejected.

    Raises:
        UnknownEventTypeError: ``event_type`` is not in the catalogue.
        PayloadValidationError: a required field is missing or malformed.
    """
    tag = parse_event_type(event_type)
    payload_cls = PAYLOAD_TYPES[tag]

    if isinstance(data, EventPayload):
        if not isinstance(data, payload_cls):
            raise PayloadValidationError(
                tag.value,
                None,
                f"Payload {type(data).__name__} does not match event type {tag.value}",
            )
        data = payload_to_json(data)

    if not isinstance(data, Mapping):
        raise PayloadValidationError(tag.value, None, "Event data must be an object")

    return payload_cls.parse(_FieldReader(tag.value, data))


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def payload_to_json(payload: EventPayload | Mapping[str, Any]) -> dict[str, Any]:
    """
    JSON-safe form of a payload for the ``event_data`` column.

    Decimals become strings and dates ISO strings; ``None`` fields are
    dropped so stored payloads stay compact.
    """
    if is_dataclass(payload) and not isinstance(payload, type):
        raw = {
            f.name: getattr(payload, f.name)
            for f in fields(payload)
        }
        raw = {
            k: asdict(v) if is_dataclass(v) else v
            for k, v in raw.items()
            if v is not None
        }
        raw = {
            k: [asdict(i) if is_dataclass(i) else i for i in v] if isinstance(v, tuple) else v
            for k, v in raw.items()
        }
        return _jsonable(raw)
    return _jsonable(dict(payload))
