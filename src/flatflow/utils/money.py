from __future__ import annotations

import re
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Union

from flatflow.errors import AmountParseError

MINOR_UNITS = 100

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "RUB": "₽",
}

_AMOUNT_RE = re.compile(r"^[+-]?\d+([.,]\d+)?$")


def parse_amount(value: Union[str, int, Decimal]) -> int:
    """
    Convert a major-unit amount into integer minor units.

    Accepted forms:
    - 12.50 / 12,50
    - 1 234.56 (spaces as thousands separators)
    - 12 (whole units)
    """
    if isinstance(value, int):
        return value * MINOR_UNITS
    if isinstance(value, Decimal):
        decimal_value = value
    else:
        text = value.strip().replace(" ", "").replace("\u00a0", "")
        if not _AMOUNT_RE.match(text):
            raise AmountParseError(f"cannot parse amount: {value!r}")
        try:
            decimal_value = Decimal(text.replace(",", "."))
        except InvalidOperation as exc:
            raise AmountParseError(f"cannot parse amount: {value!r}") from exc

    if not decimal_value.is_finite():
        raise AmountParseError(f"cannot parse amount: {value!r}")
    minor = (decimal_value * MINOR_UNITS).quantize(Decimal("1"), rounding=ROUND_HALF_EVEN)
    return int(minor)


def format_amount(amount: int, currency: str = "USD") -> str:
    sign = "-" if amount < 0 else ""
    major, minor = divmod(abs(amount), MINOR_UNITS)
    number = f"{major:,}.{minor:02d}"
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol is None:
        return f"{sign}{number} {currency.upper()}"
    return f"{sign}{symbol}{number}"
