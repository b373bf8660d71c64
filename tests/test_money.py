from decimal import Decimal

import pytest

from flatflow.errors import AmountParseError
from flatflow.utils.money import format_amount, parse_amount


def test_parse_amount_forms():
    assert parse_amount("12.50") == 1250
    assert parse_amount("12,5") == 1250
    assert parse_amount("1 234.56") == 123456
    assert parse_amount("7") == 700
    assert parse_amount(3) == 300
    assert parse_amount(Decimal("0.015")) == 2


def test_parse_amount_rejects_garbage():
    for value in ("", "abc", "12.3.4", "1e5", "NaN"):
        with pytest.raises(AmountParseError):
            parse_amount(value)


def test_format_amount():
    assert format_amount(1250) == "$12.50"
    assert format_amount(123456789, "eur") == "€1,234,567.89"
    assert format_amount(-5, "USD") == "-$0.05"
    assert format_amount(1000, "CHF") == "10.00 CHF"
