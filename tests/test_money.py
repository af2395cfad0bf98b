from decimal import Decimal

import pytest

from studio.utils.money import format_currency, parse_amount, parse_amount_or, round2


@pytest.mark.parametrize(
    "expr,expected",
    [
        ("150", 150.0),
        ("1,500", 1500.0),
        ("$45.50", 45.5),
        ("300/2", 150.0),
        ("-(10+5)", -15.0),
        (12, 12.0),
        (Decimal("9.99"), 9.99),
    ],
)
def test_parse_amount(expr, expected):
    assert parse_amount(expr) == expected


@pytest.mark.parametrize("expr", [None, "", "  ", "abc", "2**10", "1/0", "__import__('os')", True])
def test_parse_amount_rejects(expr):
    with pytest.raises(ValueError):
        parse_amount(expr)


def test_parse_amount_or_default():
    assert parse_amount_or("") == 0.0
    assert parse_amount_or("oops", default=None) is None
    assert parse_amount_or("7.5", default=None) == 7.5


def test_round2_half_up():
    assert round2(2.675) == 2.68
    assert round2(0.125) == 0.13
    assert round2(-0.125) == -0.13
    assert round2(14.999999999999998) == 15.0


def test_format_currency():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(-6.429) == "-$6.43"
    assert format_currency(None) == "$0.00"
