"""Token amount conversions."""

from decimal import Decimal

import pytest

from eth_harvest.token import convert_to_decimals, convert_to_raw


def test_convert_to_raw_usdc():
    assert convert_to_raw("500", 6) == 500_000000
    assert convert_to_raw(Decimal("1.5"), 6) == 1_500_000
    assert convert_to_raw("0.000001", 6) == 1
    assert convert_to_raw("0", 6) == 0


def test_convert_to_raw_large_amount():
    """18 decimals with a lot of whole units does not lose precision."""
    assert convert_to_raw("123456789012345678901234567890.123456789012345678", 18) == 123456789012345678901234567890123456789012345678


def test_convert_to_raw_too_many_decimals():
    with pytest.raises(ValueError):
        convert_to_raw("0.0000001", 6)


@pytest.mark.parametrize("bad", ["-1", "abc", "NaN", "Infinity"])
def test_convert_to_raw_bad_amount(bad):
    with pytest.raises(ValueError):
        convert_to_raw(bad, 18)


def test_convert_to_raw_refuses_float():
    with pytest.raises(AssertionError):
        convert_to_raw(1.5, 6)


def test_convert_to_decimals():
    assert convert_to_decimals(500_000000, 6) == Decimal("500")
    assert convert_to_decimals(1, 18) == Decimal("0.000000000000000001")


@pytest.mark.parametrize(
    "amount, decimals",
    [
        ("500", 6),
        ("125.5", 6),
        ("0.000001", 6),
        ("1.000000000000000001", 18),
        ("99999999999.99999999", 8),
        ("0", 0),
    ],
)
def test_convert_round_trip(amount, decimals):
    """Decimal to raw and back gives the same value."""
    assert convert_to_decimals(convert_to_raw(amount, decimals), decimals) == Decimal(amount)
