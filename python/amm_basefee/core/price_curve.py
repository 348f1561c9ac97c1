"""
Price Curve Implementation

The base fee is the slope of an exponential curve over the gas excess,
measured by a finite difference over the gas being bought:

    y(x)  = exp(x * xscale)
    price = (y(excess + g) - y(excess)) / g / yscale,   g = max(gas_to_buy, 1)

where:
- xscale: compresses gas units into the exponential's input domain
- yscale: normalises the curve height into wei per gas
- excess: gas excess after the purchase has been applied

All divisions truncate, so quoted fees are biased low.
"""

import logging
from dataclasses import dataclass

from .errors import ExcessTooLarge, InvalidConfiguration
from .fixed_point import MAX_EXP_INPUT, exp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurveParameters:
    """Immutable curve-shape and issuance constants."""

    xscale: int
    yscale: int
    gas_excess_max: int
    gas_issue_per_second: int

    def __post_init__(self):
        """Validate parameter ranges and the exp domain."""
        errors = []

        for name in ('xscale', 'yscale', 'gas_excess_max', 'gas_issue_per_second'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                errors.append(f"{name} must be an integer, got {type(value).__name__}")
        if errors:
            raise InvalidConfiguration("; ".join(errors))

        if self.xscale <= 0:
            errors.append(f"xscale must be positive, got {self.xscale}")
        if self.yscale <= 0:
            errors.append(f"yscale must be positive, got {self.yscale}")
        if self.gas_excess_max <= 0:
            errors.append(f"gas_excess_max must be positive, got {self.gas_excess_max}")
        if self.gas_issue_per_second < 0:
            errors.append(f"gas_issue_per_second must be non-negative, got {self.gas_issue_per_second}")

        if not errors and self.gas_excess_max * self.xscale >= MAX_EXP_INPUT:
            errors.append(
                f"gas_excess_max * xscale = {self.gas_excess_max * self.xscale:,} "
                f"must stay below MAX_EXP_INPUT {MAX_EXP_INPUT:,}"
            )

        if errors:
            raise InvalidConfiguration("; ".join(errors))

    @property
    def neutral_excess(self) -> int:
        """Midpoint of the excess domain, where the curve starts."""
        return self.gas_excess_max // 2


def curve_height(params: CurveParameters, gas_excess: int) -> int:
    """
    Evaluate y(x) = exp(x * xscale).

    Raises:
        ExcessTooLarge: If x * xscale falls outside the exponential's domain
    """
    scaled = gas_excess * params.xscale
    if scaled >= MAX_EXP_INPUT:
        raise ExcessTooLarge(
            gas_excess, MAX_EXP_INPUT // params.xscale, reason="outside exponential domain"
        )
    return exp(scaled)


def calculate_price(params: CurveParameters, gas_excess: int, gas_to_buy: int) -> int:
    """
    Calculate the per-gas price of buying `gas_to_buy` at `gas_excess`.

    Implements: (y(x + g) - y(x)) // g // yscale with g = max(gas_to_buy, 1)

    Args:
        params: Curve parameters
        gas_excess: Gas excess the purchase is priced at
        gas_to_buy: Gas being bought; zero is priced as a single unit

    Returns:
        Base fee in wei per gas (unbounded int)

    Raises:
        ExcessTooLarge: If gas_excess + g leaves the curve's domain
    """
    purchase = gas_to_buy if gas_to_buy else 1

    before = curve_height(params, gas_excess)
    after = curve_height(params, gas_excess + purchase)

    price = (after - before) // purchase // params.yscale
    logger.debug(f"price at excess={gas_excess:,} purchase={purchase:,}: {price:,} wei/gas")
    return price
