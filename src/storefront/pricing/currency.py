"""Currency conversion with a single source for the BDT/USD exchange rate.

Amounts are plain floats tagged with a currency code. Conversion never
rounds; rounding to a currency's natural precision happens only in
``format_amount`` (display) and ``round_amount`` (explicitly requested by a
business rule such as coupon discounts).
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum


class Currency(Enum):
    BDT = "BDT"
    USD = "USD"


# Natural precision per currency: whole taka, cents for dollars
_PRECISION = {
    Currency.BDT: 0,
    Currency.USD: 2,
}

_SYMBOLS = {
    Currency.BDT: "৳",
    Currency.USD: "$",
}

def parse_currency(code) -> Currency:
    """Return the Currency for a code string, raising ValueError when unsupported."""
    if isinstance(code, Currency):
        return code
    try:
        return Currency(str(code).strip().upper())
    except ValueError:
        raise ValueError(f"Unsupported currency: {code!r}") from None


class CurrencyConverter:
    """Converts amounts between BDT and USD using one exchange rate.

    ``usd_to_bdt_rate`` is expressed as taka per dollar (110 means $1 = ৳110).
    """

    def __init__(self, usd_to_bdt_rate: float):
        if usd_to_bdt_rate <= 0:
            raise ValueError("Exchange rate must be positive")
        self.usd_to_bdt_rate = float(usd_to_bdt_rate)

    def convert(self, amount: float, source, target) -> float:
        source = parse_currency(source)
        target = parse_currency(target)
        if source == target:
            return float(amount)
        if source == Currency.BDT:
            return float(amount) / self.usd_to_bdt_rate
        return float(amount) * self.usd_to_bdt_rate


def half_up(amount: float, digits: int) -> float:
    """Round halves away from zero: 100.5 becomes 101, not 100."""
    return float(Decimal(str(amount)).quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP))


def round_amount(amount: float, currency) -> float:
    """Round to the natural precision of the currency."""
    return half_up(amount, _PRECISION[parse_currency(currency)])


def format_amount(amount: float, currency) -> str:
    """Render an amount for display: ``৳1,000`` or ``$9.09``."""
    currency = parse_currency(currency)
    digits = _PRECISION[currency]
    return f"{_SYMBOLS[currency]}{half_up(amount, digits):,.{digits}f}"
