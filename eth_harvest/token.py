"""Token amount conversions.

Operators give amounts as human readable decimals, contracts take raw ``uint256``.
"""

from decimal import Decimal, InvalidOperation, localcontext

#: uint256 has 78 digits, keep some headroom over the default 28 digit context
UINT256_PRECISION = 80


def convert_to_raw(decimal_amount: Decimal | str | int, decimals: int) -> int:
    """Convert decimalised token amount to raw uint256.

    Example:

    .. code-block:: python

        # Convert 1.5 USDC to raw unit with 6 decimals
        assert convert_to_raw("1.5", 6) == 1_500_000

    :param decimal_amount:
        Human readable amount. Given as a string or :py:class:`Decimal`, never float.

    :param decimals:
        Token decimals

    :raise ValueError:
        If the amount is negative, not a number or has more fractional digits than the token supports
    """
    assert type(decimals) is int and decimals >= 0, f"Bad decimals: {decimals}"
    assert not isinstance(decimal_amount, float), f"Use Decimal or str for token amounts, got float {decimal_amount}"

    try:
        amount = Decimal(decimal_amount)
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal amount: {decimal_amount}") from e

    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Token amount must be a non-negative number: {decimal_amount}")

    with localcontext() as ctx:
        ctx.prec = UINT256_PRECISION
        raw = amount.scaleb(decimals)

    if raw != raw.to_integral_value():
        raise ValueError(f"Amount {decimal_amount} has more fractional digits than the token's {decimals} decimals")

    return int(raw)


def convert_to_decimals(raw_amount: int, decimals: int) -> Decimal:
    """Convert raw token units to decimals.

    Example:

    .. code-block:: python

        assert convert_to_decimals(500_000_000, 6) == Decimal("500")

    """
    assert type(raw_amount) == int, f"Got {type(raw_amount)}, expected int: {raw_amount}"
    with localcontext() as ctx:
        ctx.prec = UINT256_PRECISION
        return Decimal(raw_amount).scaleb(-decimals)
