"""
Tests for money conversion, rounding and currency validation.

- Amounts enter the ledger as Decimal; floats are refused.
- round_money is ROUND_HALF_UP to two places.
- Currency codes are ISO 4217, normalized to uppercase.
"""

from decimal import Decimal

import pytest

from charter_ledger.db.types import (
    InvalidCurrencyError,
    money_from_value,
    round_money,
    validate_currency,
)


class TestMoneyFromValue:
    def test_accepts_decimal_int_and_string(self):
        assert money_from_value(Decimal("10.50")) == Decimal("10.50")
        assert money_from_value(7) == Decimal("7")
        assert money_from_value(" 1070.00 ") == Decimal("1070.00")

    def test_rejects_float(self):
        """Binary floats cannot carry exact cents."""
        with pytest.raises(ValueError, match="must not be float"):
            money_from_value(10.5)

    def test_rejects_bool(self):
        with pytest.raises(ValueError):
            money_from_value(True)

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity", None, [1]])
    def test_rejects_non_numeric_and_non_finite(self, value):
        with pytest.raises(ValueError):
            money_from_value(value)

    def test_integer_digit_cap(self):
        assert money_from_value("9" * 24 + ".99") == Decimal("9" * 24 + ".99")
        with pytest.raises(ValueError, match="exceeds 24 integer digits"):
            money_from_value("1" + "0" * 24)
        with pytest.raises(ValueError, match="integer digits"):
            money_from_value(Decimal("1E27"))


class TestRoundMoney:
    def test_half_up(self):
        assert round_money(Decimal("0.125")) == Decimal("0.13")
        assert round_money(Decimal("0.124")) == Decimal("0.12")
        assert round_money(Decimal("2.675")) == Decimal("2.68")

    def test_negative_half_rounds_away_from_zero(self):
        assert round_money(Decimal("-0.125")) == Decimal("-0.13")

    def test_custom_places(self):
        assert round_money(Decimal("1.23456"), decimal_places=3) == Decimal("1.235")

    def test_wide_values_do_not_overflow_context(self):
        huge = Decimal("1" + "0" * 27)
        assert round_money(huge) == huge
        assert round_money(Decimal("1" + "0" * 30 + ".005")) == Decimal("1" + "0" * 30 + ".01")


class TestValidateCurrency:
    def test_valid_codes(self):
        for code in ("THB", "USD", "EUR"):
            assert validate_currency(code) == code

    def test_normalizes_case_and_whitespace(self):
        assert validate_currency(" thb ") == "THB"

    @pytest.mark.parametrize("code", ["XXY", "", None, "US", 764])
    def test_invalid_codes_rejected(self, code):
        with pytest.raises(InvalidCurrencyError, match="Invalid ISO 4217 currency code"):
            validate_currency(code)
