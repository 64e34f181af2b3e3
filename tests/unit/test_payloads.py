"""
Tests for event payload validation.

Every event type has exactly one payload shape.  Missing or malformed fields
raise PayloadValidationError naming the field, before any rule runs.
"""

from datetime import date
from decimal import Decimal

import pytest

from charter_ledger.domain.event_types import EventType
from charter_ledger.domain.payloads import (
    PAYLOAD_TYPES,
    ExpenseApprovedData,
    ExpensePaidData,
    ExpensePaidIntercompanyData,
    InventoryConsumedData,
    InventoryPurchaseData,
    OpeningBalanceData,
    ReceiptIssuedData,
    parse_payload,
    payload_to_json,
)
from charter_ledger.exceptions import PayloadValidationError, UnknownEventTypeError


def _expense_approved(**overrides):
    data = {
        "expense_id": "exp-001",
        "expense_number": "EXP-001",
        "line_items": [{"description": "Fuel", "account_code": "6000", "amount": "1000.00"}],
        "total_vat_amount": "70.00",
        "total_amount": "1070.00",
        "currency": "THB",
    }
    data.update(overrides)
    return data


def _expense_paid(**overrides):
    data = {
        "expense_id": "exp-001",
        "expense_number": "EXP-001",
        "payment_amount": "1070.00",
        "paid_from": "bank-a",
        "bank_account_gl_code": "1010",
        "currency": "THB",
    }
    data.update(overrides)
    return data


class TestPayloadCatalogue:
    def test_every_event_type_has_a_payload(self):
        assert set(PAYLOAD_TYPES) == set(EventType)

    def test_unknown_event_type_rejected(self):
        with pytest.raises(UnknownEventTypeError):
            parse_payload("EXPENSE_REFUNDED", {})

    def test_non_mapping_rejected(self):
        with pytest.raises(PayloadValidationError, match="must be an object"):
            parse_payload("EXPENSE_APPROVED", ["not", "a", "dict"])


class TestExpenseApprovedPayload:
    def test_parses_amounts_as_decimal(self):
        payload = parse_payload("EXPENSE_APPROVED", _expense_approved())

        assert isinstance(payload, ExpenseApprovedData)
        assert payload.total_amount == Decimal("1070.00")
        assert payload.total_vat_amount == Decimal("70.00")
        assert payload.line_items[0].account_code == "6000"
        assert payload.line_items[0].amount == Decimal("1000.00")

    def test_missing_expense_id(self):
        with pytest.raises(PayloadValidationError, match="Missing expense_id") as exc_info:
            parse_payload("EXPENSE_APPROVED", _expense_approved(expense_id=None))
        assert exc_info.value.field == "expense_id"

    def test_empty_line_items(self):
        with pytest.raises(PayloadValidationError, match="No line_items provided"):
            parse_payload("EXPENSE_APPROVED", _expense_approved(line_items=[]))

    def test_nested_field_path_reported(self):
        items = [
            {"description": "Fuel", "amount": "500.00"},
            {"description": "Ice", "amount": "-1"},
        ]
        with pytest.raises(PayloadValidationError) as exc_info:
            parse_payload("EXPENSE_APPROVED", _expense_approved(line_items=items))
        assert exc_info.value.field == "line_items[1].amount"

    def test_zero_total_rejected(self):
        with pytest.raises(PayloadValidationError, match="must be positive"):
            parse_payload("EXPENSE_APPROVED", _expense_approved(total_amount="0"))

    def test_float_amount_rejected(self):
        with pytest.raises(PayloadValidationError, match="float"):
            parse_payload("EXPENSE_APPROVED", _expense_approved(total_amount=1070.0))

    def test_invalid_currency(self):
        with pytest.raises(PayloadValidationError, match="ISO 4217"):
            parse_payload("EXPENSE_APPROVED", _expense_approved(currency="BAHT"))

    def test_invalid_date(self):
        with pytest.raises(PayloadValidationError, match="not an ISO date"):
            parse_payload("EXPENSE_APPROVED", _expense_approved(expense_date="15/03/2024"))

    def test_iso_date_parsed(self):
        payload = parse_payload(
            "EXPENSE_APPROVED", _expense_approved(expense_date="2024-03-15")
        )
        assert payload.expense_date == date(2024, 3, 15)


class TestExpensePaidPayload:
    def test_bank_payment_requires_gl_code(self):
        with pytest.raises(PayloadValidationError, match="GL code") as exc_info:
            parse_payload("EXPENSE_PAID", _expense_paid(bank_account_gl_code=None))
        assert exc_info.value.field == "bank_account_gl_code"

    def test_cash_payment_needs_no_gl_code(self):
        payload = parse_payload(
            "EXPENSE_PAID", _expense_paid(paid_from="cash", bank_account_gl_code=None)
        )
        assert isinstance(payload, ExpensePaidData)
        assert payload.is_cash

    def test_withholding_parsed(self):
        payload = parse_payload(
            "EXPENSE_PAID",
            _expense_paid(withholding={"wht_amount": "30.00", "wht_rate": "3"}),
        )
        assert payload.withholding.wht_amount == Decimal("30.00")
        assert payload.withholding.wht_rate == Decimal("3")


class TestIntercompanyPayload:
    def _data(self, **overrides):
        data = {
            "expense_id": "exp-001",
            "expense_number": "EXP-001",
            "paying_company_id": "company-b",
            "paying_company_name": "Bravo Marine",
            "bank_account_id": "bank-b",
            "bank_account_gl_code": "1020",
            "receiving_company_id": "company-a",
            "receiving_company_name": "Alpha Charters",
            "payment_amount": "1000.00",
            "currency": "THB",
        }
        data.update(overrides)
        return data

    def test_valid(self):
        payload = parse_payload("EXPENSE_PAID_INTERCOMPANY", self._data())
        assert isinstance(payload, ExpensePaidIntercompanyData)

    def test_same_company_rejected(self):
        with pytest.raises(PayloadValidationError, match="must be different"):
            parse_payload(
                "EXPENSE_PAID_INTERCOMPANY", self._data(receiving_company_id="company-b")
            )


class TestOtherPayloads:
    def test_receipt_total_paid(self):
        payload = parse_payload(
            "RECEIPT_ISSUED",
            {
                "receipt_id": "rcp-1",
                "receipt_number": "RC-1",
                "client_name": "Guest",
                "line_items": [{"description": "Charter", "amount": "1000.00"}],
                "total_amount": "1000.00",
                "currency": "THB",
                "payments": [
                    {"amount": "600.00", "bank_account_gl_code": "1010"},
                    {"amount": "400.00", "payment_method": "cash"},
                ],
            },
        )
        assert isinstance(payload, ReceiptIssuedData)
        assert payload.total_paid == Decimal("1000.00")

    def test_opening_balance_line_with_both_sides_rejected(self):
        with pytest.raises(PayloadValidationError, match="either a debit or a credit"):
            parse_payload(
                "OPENING_BALANCE",
                {
                    "fiscal_year": "2024",
                    "currency": "THB",
                    "balances": [
                        {"account_code": "1010", "debit_amount": "5", "credit_amount": "5"}
                    ],
                },
            )

    def test_capex_payment_method_checked(self):
        with pytest.raises(PayloadValidationError, match="expected one of"):
            parse_payload(
                "CAPEX_INCURRED",
                {
                    "asset_description": "Tender",
                    "asset_account_code": "1500",
                    "acquisition_cost": "50000",
                    "payment_method": "barter",
                    "currency": "THB",
                },
            )

    def test_inventory_purchase_dates_and_amounts(self):
        payload = parse_payload(
            "INVENTORY_PURCHASE_RECORDED",
            {
                "purchase_id": "pur-1",
                "purchase_number": "PUR-1",
                "purchase_date": "2024-04-02",
                "total_subtotal": "500.00",
                "total_net_payable": "500.00",
                "payment_type": "cash",
                "currency": "thb",
            },
        )
        assert isinstance(payload, InventoryPurchaseData)
        assert payload.purchase_date == date(2024, 4, 2)
        assert payload.total_vat_amount == Decimal("0")
        assert payload.currency == "THB"

    def test_inventory_consumption_item_path(self):
        with pytest.raises(PayloadValidationError) as exc_info:
            parse_payload(
                "INVENTORY_CONSUMED",
                {
                    "purchase_id": "pur-1",
                    "purchase_number": "PUR-1",
                    "consumptions": [
                        {"expense_account_code": "6100", "amount": "10.00"},
                        {"expense_account_code": "6100", "amount": "-1"},
                    ],
                    "total_amount": "9.00",
                    "currency": "THB",
                },
            )
        assert exc_info.value.field == "consumptions[1].amount"

    def test_inventory_consumption_quantity_serialized(self):
        payload = parse_payload(
            "INVENTORY_CONSUMED",
            {
                "purchase_id": "pur-1",
                "purchase_number": "PUR-1",
                "consumptions": [
                    {"expense_account_code": "6100", "amount": "10.00", "quantity": "2"}
                ],
                "total_amount": "10.00",
                "currency": "THB",
            },
        )
        assert isinstance(payload, InventoryConsumedData)
        data = payload_to_json(payload)
        assert data["consumptions"][0]["quantity"] == "2"


class TestTypedPayloadInput:
    def test_payload_instance_accepted(self):
        payload = parse_payload("EXPENSE_APPROVED", _expense_approved())
        again = parse_payload("EXPENSE_APPROVED", payload)
        assert again == payload

    def test_wrong_variant_rejected(self):
        payload = parse_payload("EXPENSE_APPROVED", _expense_approved())
        with pytest.raises(PayloadValidationError, match="does not match event type"):
            parse_payload("EXPENSE_PAID", payload)

    def test_payload_to_json_is_json_safe(self):
        payload = parse_payload(
            "OPENING_BALANCE",
            {
                "fiscal_year": "2024",
                "currency": "THB",
                "balances": [{"account_code": "1010", "debit_amount": "100.50"}],
            },
        )
        assert isinstance(payload, OpeningBalanceData)
        data = payload_to_json(payload)
        assert data["balances"][0]["debit_amount"] == "100.50"
        assert data["balances"][0]["credit_amount"] == "0"
        assert data["fiscal_year"] == "2024"
