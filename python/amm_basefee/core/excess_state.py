"""
Gas Excess State Machine

Mathematical Formulas:

issued(t)   = r * Δt
decayed(t)  = max(E(t-1), issued(t)) - issued(t)
E(t)        = decayed(t) + g(t)
F(t)        = price(E(t), g(t))

where:
- r: gas issued per second
- Δt: seconds since the last committed update
- E(t): gas excess, always within [0, E_max]
- g(t): gas consumed by the block
- F(t): base fee per gas

A transition whose E(t) exceeds E_max is rejected outright; the excess is
never clamped, since clamping would understate demand.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

from .errors import ExcessTooLarge
from .price_curve import CurveParameters, calculate_price

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExcessState:
    """Gas excess together with the timestamp it was committed at."""

    gas_excess: int
    last_update_timestamp: int

    @classmethod
    def initial(cls, params: CurveParameters, timestamp: int) -> "ExcessState":
        """Start at the neutral point of the curve."""
        return cls(gas_excess=params.neutral_excess, last_update_timestamp=timestamp)


@dataclass(frozen=True)
class PriceQuote:
    """Base fee and the gas excess it was priced at."""

    base_fee_per_gas: int
    gas_excess: int


def decay_excess(gas_excess: int, issued: int) -> int:
    """Saturating subtraction: max(gas_excess, issued) - issued."""
    return max(gas_excess, issued) - issued


class ExcessStateMachine:
    """
    Time-decay and accumulation of the gas excess.

    The machine holds only the immutable curve parameters; the state is
    passed in and a successor is handed back, so a failed transition leaves
    nothing to roll back.
    """

    def __init__(self, params: CurveParameters):
        self.params = params

    def compute(self, gas_excess: int, elapsed_seconds: int, gas_to_buy: int) -> PriceQuote:
        """
        Run the transition arithmetic shared by quotes and commits.

        Args:
            gas_excess: Current gas excess
            elapsed_seconds: Seconds since the last committed update
            gas_to_buy: Gas consumed by the block

        Returns:
            PriceQuote with the base fee and the new gas excess

        Raises:
            ExcessTooLarge: If the new excess exceeds gas_excess_max
            ValueError: If elapsed_seconds or gas_to_buy is negative
        """
        if elapsed_seconds < 0:
            raise ValueError(f"elapsed_seconds cannot be negative, got {elapsed_seconds}")
        if gas_to_buy < 0:
            raise ValueError(f"gas_to_buy cannot be negative, got {gas_to_buy}")

        issued = self.params.gas_issue_per_second * elapsed_seconds
        decayed = decay_excess(gas_excess, issued)
        new_excess = decayed + gas_to_buy

        if new_excess > self.params.gas_excess_max:
            logger.warning(
                f"Rejecting transition: excess {gas_excess:,} decayed to {decayed:,}, "
                f"+{gas_to_buy:,} gas exceeds max {self.params.gas_excess_max:,}"
            )
            raise ExcessTooLarge(new_excess, self.params.gas_excess_max)

        base_fee = calculate_price(self.params, new_excess, gas_to_buy)

        logger.debug(
            f"transition: excess {gas_excess:,} -> {new_excess:,} "
            f"(issued={issued:,}, gas={gas_to_buy:,}), base fee {base_fee:,} wei/gas"
        )
        return PriceQuote(base_fee_per_gas=base_fee, gas_excess=new_excess)

    def quote(self, state: ExcessState, elapsed_seconds: int, gas_to_buy: int) -> PriceQuote:
        """Read-only transition: price a block without producing a successor state."""
        return self.compute(state.gas_excess, elapsed_seconds, gas_to_buy)

    def advance(
        self, state: ExcessState, elapsed_seconds: int, gas_to_buy: int
    ) -> Tuple[PriceQuote, ExcessState]:
        """
        Mutating transition.

        Returns:
            (quote, successor) where successor carries the new excess and
            timestamp last_update_timestamp + elapsed_seconds
        """
        quote = self.compute(state.gas_excess, elapsed_seconds, gas_to_buy)
        successor = ExcessState(
            gas_excess=quote.gas_excess,
            last_update_timestamp=state.last_update_timestamp + elapsed_seconds,
        )
        return quote, successor

    def __str__(self) -> str:
        return (f"ExcessStateMachine(max={self.params.gas_excess_max:,}, "
                f"issue/s={self.params.gas_issue_per_second:,})")

    def __repr__(self) -> str:
        return self.__str__()
