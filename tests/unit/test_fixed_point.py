"""
test_fixed_point.py - Unit tests for integer fixed-point helpers

Tests:
- mul_div rounding and validation
- Decimal rescaling between asset and share scales
- exp_wad / ln_wad against numpy float references
- to_wad conversions
"""

import math
from decimal import Decimal

import numpy as np
import pytest

from vault import WAD
from vault.fixed_point import (
    MAX_EXP_INPUT, exp_wad, from_share_scale, ln_wad, mul_div, scale_decimals,
    to_share_scale, to_wad, wad_div, wad_mul,
)


class TestMulDiv:

    def test_rounds_down_by_default(self):
        assert mul_div(10, 10, 3) == 33

    def test_rounds_up_on_request(self):
        assert mul_div(10, 10, 3, round_up=True) == 34

    def test_exact_division_unaffected_by_rounding(self):
        assert mul_div(6, 5, 3, round_up=True) == 10

    def test_zero_denominator(self):
        with pytest.raises(ZeroDivisionError):
            mul_div(1, 1, 0)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            mul_div(-1, 1, 1)

    def test_wad_helpers(self):
        assert wad_mul(3 * WAD, WAD // 2) == 3 * WAD // 2
        assert wad_div(WAD, 4 * WAD) == WAD // 4


class TestScaling:

    def test_usdc_to_share_scale(self):
        assert to_share_scale(1_000_000, 6) == WAD

    def test_share_scale_to_usdc_truncates(self):
        assert from_share_scale(WAD + 1, 6) == 1_000_000

    def test_share_scale_to_usdc_rounds_up(self):
        assert from_share_scale(WAD + 1, 6, round_up=True) == 1_000_001

    def test_same_decimals_is_identity(self):
        assert scale_decimals(12345, 18, 18) == 12345


class TestExpLn:

    @pytest.mark.parametrize("x", [Decimal("0.000001"), Decimal("0.02"), Decimal("1"), Decimal("5.5")])
    def test_exp_matches_numpy(self, x):
        result = exp_wad(to_wad(x))
        expected = np.exp(float(x))
        assert result / WAD == pytest.approx(expected, rel=1e-12)

    @pytest.mark.parametrize("x", [Decimal("0.5"), Decimal("0.98"), Decimal("1.5"), Decimal("42")])
    def test_ln_matches_numpy(self, x):
        result = ln_wad(to_wad(x))
        expected = np.log(float(x))
        assert result / WAD == pytest.approx(expected, rel=1e-12)

    def test_exp_zero_is_one(self):
        assert exp_wad(0) == WAD

    def test_ln_one_is_zero(self):
        assert ln_wad(WAD) == 0

    def test_exp_monotonic(self):
        values = [exp_wad(x) for x in range(0, 10 * WAD, WAD // 7)]
        assert values == sorted(values)

    def test_exp_overflow(self):
        with pytest.raises(OverflowError):
            exp_wad(MAX_EXP_INPUT + 1)

    def test_ln_of_non_positive(self):
        with pytest.raises(ValueError):
            ln_wad(0)

    def test_exp_ln_inverse(self):
        x = to_wad("1.2345")
        assert abs(exp_wad(ln_wad(x)) - x) <= 2

    def test_negative_exponent(self):
        assert exp_wad(-WAD) / WAD == pytest.approx(math.exp(-1), rel=1e-12)


class TestToWad:

    def test_decimal(self):
        assert to_wad(Decimal("0.02")) == 2 * WAD // 100

    def test_string(self):
        assert to_wad("0.5") == WAD // 2

    def test_int_passthrough(self):
        assert to_wad(123) == 123

    def test_float_via_str(self):
        assert to_wad(0.1) == WAD // 10

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            to_wad(True)
