"""
fixed_point.py - Integer fixed-point arithmetic

All balances, shares and prices are plain Python ints. A value of WAD (10**18)
represents 1.0. The helpers here keep rounding direction explicit so that
callers can always round in the vault's favour.

exp_wad() and ln_wad() evaluate in Decimal under the module-level 50-digit
context (see core.py) and truncate back to integers.
"""

from __future__ import annotations
from decimal import Decimal, ROUND_FLOOR, localcontext

from .core import WAD, SHARE_DECIMALS


_WAD_DECIMAL = Decimal(WAD)

# e^x overflows any realistic supply long before this; keeps Decimal bounded.
MAX_EXP_INPUT = 135 * WAD


def mul_div(a: int, b: int, denominator: int, round_up: bool = False) -> int:
    """
    Compute a * b / denominator on non-negative integers.

    Args:
        a, b: Non-negative factors.
        denominator: Positive divisor.
        round_up: Round toward +infinity instead of truncating.

    Raises:
        ZeroDivisionError: If denominator is zero.
        ValueError: If any factor is negative.
    """
    if a < 0 or b < 0 or denominator < 0:
        raise ValueError("mul_div operates on non-negative integers")
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    product = a * b
    if round_up:
        return -(-product // denominator)
    return product // denominator


def wad_mul(a: int, b: int, round_up: bool = False) -> int:
    """a * b where b is a WAD fraction."""
    return mul_div(a, b, WAD, round_up)


def wad_div(a: int, b: int, round_up: bool = False) -> int:
    """a / b expressed as a WAD fraction."""
    return mul_div(a, WAD, b, round_up)


def scale_decimals(amount: int, from_decimals: int, to_decimals: int, round_up: bool = False) -> int:
    """Rescale an integer amount between two decimal conventions."""
    if from_decimals == to_decimals:
        return amount
    if to_decimals > from_decimals:
        return amount * 10 ** (to_decimals - from_decimals)
    return mul_div(amount, 1, 10 ** (from_decimals - to_decimals), round_up)


def to_share_scale(amount: int, decimals: int, round_up: bool = False) -> int:
    """Express an asset amount on the 18-decimal share scale."""
    return scale_decimals(amount, decimals, SHARE_DECIMALS, round_up)


def from_share_scale(amount: int, decimals: int, round_up: bool = False) -> int:
    """Bring an 18-decimal amount back to an asset's native decimals."""
    return scale_decimals(amount, SHARE_DECIMALS, decimals, round_up)


def exp_wad(x: int) -> int:
    """
    floor(e^(x / WAD) * WAD).

    Monotonic non-decreasing in x, which the management fee relies on.

    Raises:
        OverflowError: If x exceeds MAX_EXP_INPUT.
    """
    if x > MAX_EXP_INPUT:
        raise OverflowError(f"exp_wad input too large: {x}")
    if x == 0:
        return WAD
    with localcontext() as ctx:
        ctx.prec = 60
        result = (Decimal(x) / _WAD_DECIMAL).exp() * _WAD_DECIMAL
        return int(result.to_integral_value(rounding=ROUND_FLOOR))


def ln_wad(x: int) -> int:
    """
    floor(ln(x / WAD) * WAD) for x > 0.

    Raises:
        ValueError: If x is not positive.
    """
    if x <= 0:
        raise ValueError(f"ln_wad undefined for {x}")
    if x == WAD:
        return 0
    with localcontext() as ctx:
        ctx.prec = 60
        result = (Decimal(x) / _WAD_DECIMAL).ln() * _WAD_DECIMAL
        return int(result.to_integral_value(rounding=ROUND_FLOOR))


def to_wad(value) -> int:
    """
    Convert a Decimal/str/int fraction (e.g. Decimal("0.02")) to a WAD integer.

    Integers are taken to be WAD-scaled already.
    """
    if isinstance(value, bool):
        raise TypeError("bool is not a fraction")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        value = Decimal(str(value))
    return int((Decimal(value) * _WAD_DECIMAL).to_integral_value(rounding=ROUND_FLOOR))
