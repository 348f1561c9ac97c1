"""
Unit tests for scale calibration

Tests derivation of xscale / yscale and the 2x/1x ratio self-check.
"""

import pytest

from ..core.calibration import (
    CalibrationResult,
    calculate_scales,
    calibrate_parameters,
    price_ratio,
)
from ..core.errors import CalibrationMismatch, InvalidConfiguration
from ..core.fixed_point import MAX_EXP_INPUT
from ..core.price_curve import CurveParameters, calculate_price


GAS_EXCESS_MAX = 90_900_000_000
PRICE = 1_000_000_000
TARGET = 150_000_000


def derived_ratio(gas_excess_max=GAS_EXCESS_MAX, price=PRICE, target=TARGET):
    """Ratio the curve actually produces, read back from a deliberate mismatch."""
    with pytest.raises(CalibrationMismatch) as excinfo:
        calculate_scales(gas_excess_max, price, target, 1)
    return excinfo.value.actual


class TestCalculateScales:
    """Derivation and self-check."""

    def test_xscale_uses_full_exp_domain(self):
        ratio = derived_ratio()
        result = calculate_scales(GAS_EXCESS_MAX, PRICE, TARGET, ratio)

        assert result.xscale == MAX_EXP_INPUT // GAS_EXCESS_MAX
        assert result.xscale == 1_488_514_844

    def test_round_trip_hits_target_price(self):
        """The calibrated curve charges exactly `price` for `target` gas at the midpoint."""
        ratio = derived_ratio()
        result = calculate_scales(GAS_EXCESS_MAX, PRICE, TARGET, ratio)
        params = result.to_parameters(gas_issue_per_second=12_500_000)

        assert isinstance(result, CalibrationResult)
        assert result.ratio_2x1x == ratio
        assert calculate_price(params, GAS_EXCESS_MAX // 2, TARGET) == PRICE
        assert price_ratio(params, GAS_EXCESS_MAX // 2, TARGET) == ratio

    def test_ratio_reflects_convexity(self):
        """Doubling the purchase costs more per gas, but not double."""
        ratio = derived_ratio()
        assert 10_000 < ratio < 12_000

    def test_mismatch_reports_both_ratios(self):
        ratio = derived_ratio()
        with pytest.raises(CalibrationMismatch) as excinfo:
            calculate_scales(GAS_EXCESS_MAX, PRICE, TARGET, ratio + 1)

        assert excinfo.value.expected == ratio + 1
        assert excinfo.value.actual == ratio

    @pytest.mark.parametrize("gas_excess_max,price,target", [
        (0, PRICE, TARGET),
        (GAS_EXCESS_MAX, 0, TARGET),
        (GAS_EXCESS_MAX, PRICE, 0),
        (-1, PRICE, TARGET),
    ])
    def test_non_positive_inputs_rejected(self, gas_excess_max, price, target):
        with pytest.raises(InvalidConfiguration):
            calculate_scales(gas_excess_max, price, target, 11_250)

    def test_domain_larger_than_exp_input(self):
        """xscale would truncate to zero."""
        with pytest.raises(InvalidConfiguration):
            calculate_scales(MAX_EXP_INPUT + 1, PRICE, TARGET, 11_250)

    def test_price_too_high_for_slope(self):
        """yscale would truncate to zero."""
        with pytest.raises(InvalidConfiguration):
            calculate_scales(GAS_EXCESS_MAX, 10**60, TARGET, 11_250)

    def test_target_overflows_curve(self):
        """midpoint + target leaves the exponential domain."""
        with pytest.raises(InvalidConfiguration):
            calculate_scales(GAS_EXCESS_MAX, PRICE, 50_000_000_000, 11_250)

    def test_mismatch_is_value_error(self):
        with pytest.raises(ValueError):
            calculate_scales(GAS_EXCESS_MAX, PRICE, TARGET, 1)


class TestCalibrateParameters:
    """Convenience wrapper returning CurveParameters."""

    def test_returns_usable_parameters(self):
        ratio = derived_ratio()
        params = calibrate_parameters(GAS_EXCESS_MAX, PRICE, TARGET, ratio, gas_issue_per_second=12_500_000)

        assert isinstance(params, CurveParameters)
        assert params.gas_excess_max == GAS_EXCESS_MAX
        assert params.gas_issue_per_second == 12_500_000
        assert params.yscale > 0

    def test_smaller_domain(self):
        ratio = derived_ratio(gas_excess_max=10_000_000_000, price=10_000_000, target=15_000_000)
        params = calibrate_parameters(10_000_000_000, 10_000_000, 15_000_000, ratio, gas_issue_per_second=1_250_000)

        assert params.xscale == MAX_EXP_INPUT // 10_000_000_000
        assert calculate_price(params, 5_000_000_000, 15_000_000) == 10_000_000
