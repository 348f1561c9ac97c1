"""
Scale Calibration

Derives the curve-shape constants from a target price:

    xscale = MAX_EXP_INPUT // E_max
    yscale = Δy(E_max / 2, target) / target / price

and then checks that the derived curve prices a block of 2 * target gas at
exactly `ratio_2x1x / 10_000` times a block of `target` gas, both bought at
the midpoint. Any mismatch rejects the constants.

yscale is solved in two phases: the first phase runs the regular pricing
path with `price` sitting in the yscale slot, which turns the division by
yscale into a division by the target price and yields the real yscale. The
second phase only ever uses the solved value.
"""

import logging
from dataclasses import dataclass

from .errors import CalibrationMismatch, ExcessTooLarge, InvalidConfiguration
from .fixed_point import MAX_EXP_INPUT
from .price_curve import CurveParameters, calculate_price

logger = logging.getLogger(__name__)

RATIO_PRECISION = 10_000


@dataclass(frozen=True)
class CalibrationResult:
    """Derived curve scales and the ratio they were validated against."""

    xscale: int
    yscale: int
    gas_excess_max: int
    ratio_2x1x: int

    def to_parameters(self, gas_issue_per_second: int) -> CurveParameters:
        return CurveParameters(
            xscale=self.xscale,
            yscale=self.yscale,
            gas_excess_max=self.gas_excess_max,
            gas_issue_per_second=gas_issue_per_second,
        )


def price_ratio(params: CurveParameters, gas_excess: int, target: int) -> int:
    """
    Ratio of the 2x-target price to the 1x-target price, in basis points.

    Raises:
        InvalidConfiguration: If the 1x price truncates to zero
    """
    price_1x = calculate_price(params, gas_excess, target)
    price_2x = calculate_price(params, gas_excess, target * 2)
    if price_1x == 0:
        raise InvalidConfiguration(
            f"price for {target:,} gas at excess {gas_excess:,} truncates to zero"
        )
    return price_2x * RATIO_PRECISION // price_1x


def _solve_yscale(provisional: CurveParameters, midpoint: int, target: int) -> int:
    """Phase one: provisional.yscale holds the target price, not a real yscale."""
    return calculate_price(provisional, midpoint, target)


def calculate_scales(gas_excess_max: int, price: int, target: int, ratio_2x1x: int) -> CalibrationResult:
    """
    Derive (xscale, yscale) and validate them against the expected ratio.

    Args:
        gas_excess_max: Ceiling of the gas excess domain
        price: Desired base fee (wei per gas) for `target` gas at the midpoint
        target: Target gas per block
        ratio_2x1x: Expected price_2x * 10_000 // price_1x

    Returns:
        CalibrationResult with the validated scales

    Raises:
        InvalidConfiguration: If inputs are zero, negative or unusable
        CalibrationMismatch: If the derived scales give a different ratio
    """
    if gas_excess_max <= 0:
        raise InvalidConfiguration(f"gas_excess_max must be positive, got {gas_excess_max}")
    if price <= 0:
        raise InvalidConfiguration(f"price must be positive, got {price}")
    if target <= 0:
        raise InvalidConfiguration(f"target must be positive, got {target}")

    xscale = MAX_EXP_INPUT // gas_excess_max
    if xscale == 0:
        raise InvalidConfiguration(
            f"gas_excess_max {gas_excess_max:,} exceeds MAX_EXP_INPUT {MAX_EXP_INPUT:,}"
        )

    midpoint = gas_excess_max // 2

    try:
        provisional = CurveParameters(
            xscale=xscale, yscale=price, gas_excess_max=gas_excess_max, gas_issue_per_second=0
        )
        yscale = _solve_yscale(provisional, midpoint, target)
        if yscale == 0:
            raise InvalidConfiguration(
                f"price {price:,} is too high for the curve slope at the midpoint; yscale truncates to zero"
            )

        params = CurveParameters(
            xscale=xscale, yscale=yscale, gas_excess_max=gas_excess_max, gas_issue_per_second=0
        )
        ratio = price_ratio(params, midpoint, target)
    except ExcessTooLarge as e:
        raise InvalidConfiguration(f"target {target:,} gas overflows the curve at the midpoint: {e}") from e

    if ratio != ratio_2x1x:
        logger.error(f"Calibration rejected: expected ratio {ratio_2x1x}, derived {ratio}")
        raise CalibrationMismatch(ratio_2x1x, ratio)

    logger.info(f"Calibrated xscale={xscale:,} yscale={yscale:,} (ratio {ratio})")
    return CalibrationResult(
        xscale=xscale, yscale=yscale, gas_excess_max=gas_excess_max, ratio_2x1x=ratio
    )


def calibrate_parameters(
    gas_excess_max: int, price: int, target: int, ratio_2x1x: int, gas_issue_per_second: int
) -> CurveParameters:
    """Calibrate and return ready-to-use CurveParameters."""
    result = calculate_scales(gas_excess_max, price, target, ratio_2x1x)
    return result.to_parameters(gas_issue_per_second)
