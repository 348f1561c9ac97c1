"""
Base Fee Oracle

Public face of the engine: owns the single ExcessState, commits transitions
and narrows results for callers.

- initialize(): start at the neutral excess and announce the starting fee
- update_base_fee(gas_used): commit a transition, return the new base fee
- quote_base_fee(gas_used): same computation, nothing persisted

The committed state is replaced with one assignment after the transition has
succeeded, so excess and timestamp can never be observed half-updated.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from .errors import OracleNotInitialized, UnauthorizedCaller
from .excess_state import ExcessState, ExcessStateMachine, PriceQuote
from .price_curve import CurveParameters
from .units import saturate_uint64, saturate_uint128, validate_uint32

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeeNotification:
    """Emitted when the oracle starts up or commits a new base fee."""

    kind: str
    base_fee_per_gas: int
    gas_excess: int
    timestamp: int


Listener = Callable[[FeeNotification], None]


def _system_clock() -> int:
    return int(time.time())


class BaseFeeOracle:
    """Single-writer base fee oracle over an ExcessStateMachine."""

    def __init__(
        self,
        params: CurveParameters,
        clock: Optional[Callable[[], int]] = None,
        authorized_caller: Optional[str] = None,
    ):
        """
        Args:
            params: Curve parameters
            clock: Returns the current unix time in whole seconds
            authorized_caller: Only this identity may call update_base_fee.
                               If None, updates are not gated.
        """
        self.params = params
        self.machine = ExcessStateMachine(params)
        self.clock = clock or _system_clock
        self.authorized_caller = authorized_caller

        self._state: Optional[ExcessState] = None
        self._listeners: List[Listener] = []

    @property
    def state(self) -> Optional[ExcessState]:
        return self._state

    @property
    def initialized(self) -> bool:
        return self._state is not None

    def load_state(self, state: Optional[ExcessState]) -> None:
        """
        Replace the committed state, e.g. with one read back from storage.

        Passing None returns the oracle to the uninitialized state.
        """
        if state is not None and not (0 <= state.gas_excess <= self.params.gas_excess_max):
            raise ValueError(
                f"gas_excess {state.gas_excess:,} outside [0, {self.params.gas_excess_max:,}]"
            )
        self._state = state

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _emit(self, notification: FeeNotification) -> None:
        logger.info(
            f"{notification.kind}: base fee {notification.base_fee_per_gas:,} wei/gas, "
            f"excess {notification.gas_excess:,} at t={notification.timestamp}"
        )
        for listener in self._listeners:
            listener(notification)

    def initialize(self) -> None:
        """Reset to the neutral excess and emit the fee for a single unit of gas."""
        state = ExcessState.initial(self.params, self.clock())
        quote, _ = self.machine.advance(state, 0, 1)
        self._state = state

        self._emit(FeeNotification(
            kind="initialized",
            base_fee_per_gas=saturate_uint64(quote.base_fee_per_gas),
            gas_excess=state.gas_excess,
            timestamp=state.last_update_timestamp,
        ))

    def _require_state(self) -> ExcessState:
        if self._state is None:
            raise OracleNotInitialized("initialize() must be called before pricing blocks")
        return self._state

    def _elapsed(self, state: ExcessState, now: int) -> int:
        elapsed = now - state.last_update_timestamp
        if elapsed < 0:
            raise ValueError(
                f"clock moved backwards: now={now} < last update {state.last_update_timestamp}"
            )
        return elapsed

    def quote(self, gas_used: int) -> PriceQuote:
        """Price a block at the current time without committing it."""
        validate_uint32(gas_used, "gas_used")
        state = self._require_state()
        elapsed = self._elapsed(state, self.clock())
        return self.machine.quote(state, elapsed, gas_used)

    def quote_base_fee(self, gas_used: int) -> int:
        """Read-only base fee estimate, narrowed to uint64."""
        return saturate_uint64(self.quote(gas_used).base_fee_per_gas)

    def update_base_fee(self, gas_used: int, caller: Optional[str] = None) -> int:
        """
        Commit a block's gas usage and return the resulting base fee.

        Args:
            gas_used: Gas used by the parent block (uint32)
            caller: Identity of the caller, checked against authorized_caller

        Returns:
            Base fee in wei per gas, saturated to uint64

        Raises:
            UnauthorizedCaller: If caller is not the designated updater
            OracleNotInitialized: If initialize() has not run
            ExcessTooLarge: If the block would push the excess past its max
            ValueError: If gas_used is not a uint32 or the clock ran backwards
        """
        if self.authorized_caller is not None and caller != self.authorized_caller:
            raise UnauthorizedCaller(f"caller {caller!r} may not update the base fee")

        validate_uint32(gas_used, "gas_used")
        state = self._require_state()
        now = self.clock()
        elapsed = self._elapsed(state, now)

        quote, _ = self.machine.advance(state, elapsed, gas_used)

        self._state = ExcessState(
            gas_excess=saturate_uint128(quote.gas_excess),
            last_update_timestamp=now,
        )

        base_fee = saturate_uint64(quote.base_fee_per_gas)
        self._emit(FeeNotification(
            kind="updated",
            base_fee_per_gas=base_fee,
            gas_excess=self._state.gas_excess,
            timestamp=now,
        ))
        return base_fee

    def __str__(self) -> str:
        if self._state is None:
            return "BaseFeeOracle(uninitialized)"
        return (f"BaseFeeOracle(excess={self._state.gas_excess:,}, "
                f"last_update={self._state.last_update_timestamp})")

    def __repr__(self) -> str:
        return self.__str__()
