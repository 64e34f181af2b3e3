"""
Module: charter_ledger.db.types
Responsibility: Money conversion, the single sanctioned rounding
    function, and ISO 4217 currency validation.
Architecture position: Ledger > DB.  Importable from models/, domain/,
    services/ and selectors/.

Invariants enforced:
    - round_money() is the ONLY rounding function applied to amounts.  Journal
      lines are rounded to MONEY_DECIMAL_PLACES with ROUND_HALF_UP.
    - validate_currency() rejects anything that is not an ISO 4217 code.
    - No floats: money_from_value() refuses float input.
    - Amounts carry at most MAX_INTEGER_DIGITS integer digits, so line
      totals stay exact in the default 28-digit decimal context.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any


# Journal lines are posted in minor units of two decimal places (THB, USD, EUR)
MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0")
ONE_CENT = Decimal("0.01")
MAX_INTEGER_DIGITS = 24
# Numeric(38, 9)
ROUNDING_PRECISION = 38


def money_from_value(value: Any) -> Decimal:
    """
    Convert a payload value into a Decimal amount.

    Accepts Decimal, int, or a numeric string.  Floats are rejected because
    their binary representation cannot carry exact cents.

    Raises:
        ValueError: If value is a float, bool, not numeric, or has more than
            MAX_INTEGER_DIGITS integer digits.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Monetary amounts must not be {type(value).__name__}: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a numeric amount: {value!r}") from exc
    else:
        raise ValueError(f"Not a numeric amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    if result.adjusted() >= MAX_INTEGER_DIGITS:
        raise ValueError(
            f"Amount exceeds {MAX_INTEGER_DIGITS} integer digits: {value!r}"
        )
    return result


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value.

    This is the only rounding applied to journal amounts; rules and the
    rounding reconciler both delegate here.
    """
    exponent = Decimal(1).scaleb(-decimal_places)
    with localcontext() as ctx:
        ctx.prec = ROUNDING_PRECISION
        return value.quantize(exponent, rounding=rounding)


ISO_4217_CURRENCIES: frozenset[str] = frozenset(
    """
    AED AFN ALL AMD ANG AOA ARS AUD AWG AZN BAM BBD BDT BGN BHD BIF BMD BND
    BOB BRL BSD BTN BWP BYN BZD CAD CDF CHF CLP CNY COP CRC CUP CVE CZK DJF
    DKK DOP DZD EGP ERN ETB EUR FJD FKP GBP GEL GHS GIP GMD GNF GTQ GYD HKD
    HNL HTG HUF IDR ILS INR IQD IRR ISK JMD JOD JPY KES KGS KHR KMF KPW KRW
    KWD KYD KZT LAK LBP LKR LRD LSL LYD MAD MDL MGA MKD MMK MNT MOP MRU MUR
    MVR MWK MXN MYR MZN NAD NGN NIO NOK NPR NZD OMR PAB PEN PGK PHP PKR PLN
    PYG QAR RON RSD RUB RWF SAR SBD SCR SDG SEK SGD SHP SLE SOS SRD SSP STN
    SYP SZL THB TJS TMT TND TOP TRY TTD TWD TZS UAH UGX USD UYU UZS VES VND
    VUV WST XAF XCD XOF XPF YER ZAR ZMW ZWL
    """.split()
)


class InvalidCurrencyError(ValueError):
    """Raised when a currency code is not a recognized ISO 4217 code."""

    def __init__(self, currency: Any):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


def validate_currency(currency: Any) -> str:
    """
    Normalize and validate an ISO 4217 currency code.

    Returns:
        The uppercase code.

    Raises:
        InvalidCurrencyError: If the code is not recognized.
    """
    if not currency or not isinstance(currency, str):
        raise InvalidCurrencyError(currency)
    normalized = currency.strip().upper()
    if normalized not in ISO_4217_CURRENCIES:
        raise InvalidCurrencyError(currency)
    return normalized
