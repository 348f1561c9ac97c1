"""
Simulation Engine Implementation

Replays a block series (timestamp, gas used) through a BaseFeeOracle so the
exact committed fee path can be inspected as a DataFrame.
"""

from typing import Optional, Dict, Any, Sequence
import numpy as np
import pandas as pd

from .base_fee_oracle import BaseFeeOracle
from .errors import ExcessTooLarge
from .excess_state import ExcessState
from .price_curve import CurveParameters
from .units import wei_to_gwei

ON_REJECT_MODES = ("raise", "skip")


class SimulationEngine:
    """
    Block-by-block replay of the AMM base fee mechanism.

    The oracle reads time from the engine, so each simulated block is
    committed at its own timestamp.
    """

    def __init__(
        self,
        params: CurveParameters,
        initial_gas_excess: Optional[int] = None,
        on_reject: str = "raise",
    ):
        """
        Initialize simulation engine.

        Args:
            params: Curve parameters
            initial_gas_excess: Starting excess. If None, starts at the neutral point.
            on_reject: "raise" to propagate ExcessTooLarge, "skip" to record the
                       block as rejected and keep the state unchanged
        """
        if on_reject not in ON_REJECT_MODES:
            raise ValueError(f"on_reject must be one of {ON_REJECT_MODES}, got {on_reject!r}")
        if initial_gas_excess is not None and not (0 <= initial_gas_excess <= params.gas_excess_max):
            raise ValueError(
                f"initial_gas_excess must be in [0, {params.gas_excess_max:,}], got {initial_gas_excess:,}"
            )

        self.params = params
        self.initial_gas_excess = initial_gas_excess
        self.on_reject = on_reject

        self._now = 0
        self.oracle = BaseFeeOracle(params, clock=lambda: self._now)

    def start(self, timestamp: int) -> None:
        """Initialize the oracle at `timestamp`."""
        self._now = int(timestamp)
        self.oracle.initialize()
        if self.initial_gas_excess is not None:
            self.oracle.load_state(ExcessState(self.initial_gas_excess, self._now))

    def simulate_step(self, timestamp: int, gas_used: int) -> Dict[str, Any]:
        """
        Commit one block.

        Args:
            timestamp: Block timestamp (unix seconds)
            gas_used: Gas used by the block

        Returns:
            Dictionary with the step's inputs, state before/after and base fee
        """
        state = self.oracle.state
        if state is None:
            self.start(timestamp)
            state = self.oracle.state

        self._now = int(timestamp)
        elapsed = self._now - state.last_update_timestamp

        try:
            base_fee = self.oracle.update_base_fee(int(gas_used))
            rejected = False
        except ExcessTooLarge:
            if self.on_reject == "raise":
                raise
            base_fee = None
            rejected = True

        return {
            'timestamp': self._now,
            'elapsed_seconds': elapsed,
            'gas_used': int(gas_used),
            'gas_excess_before': state.gas_excess,
            'gas_excess_after': self.oracle.state.gas_excess,
            'base_fee_per_gas': base_fee,
            'base_fee_gwei': wei_to_gwei(base_fee) if base_fee is not None else np.nan,
            'rejected': rejected,
        }

    def simulate_series(self, timestamps: Sequence[int], gas_used: Sequence[int]) -> pd.DataFrame:
        """
        Replay a full block series.

        The oracle is initialized at the first timestamp, so the first block is
        priced with zero elapsed time.

        Args:
            timestamps: Non-decreasing block timestamps (unix seconds)
            gas_used: Gas used per block

        Returns:
            DataFrame with one row per block
        """
        if len(timestamps) != len(gas_used):
            raise ValueError("timestamps and gas_used must have same length")
        if len(timestamps) == 0:
            raise ValueError("Block series cannot be empty")

        self.reset_state()
        self.start(int(timestamps[0]))

        results = []
        for i, (timestamp, gas) in enumerate(zip(timestamps, gas_used)):
            step_result = self.simulate_step(int(timestamp), int(gas))
            step_result['step'] = i
            results.append(step_result)

        df = pd.DataFrame(results)
        # object dtype keeps uint64 fees exact and rejected blocks as None
        df['base_fee_per_gas'] = pd.Series([r['base_fee_per_gas'] for r in results], dtype=object)
        return df

    def reset_state(self) -> None:
        """Drop the oracle state; the next block re-initializes it."""
        self.oracle.load_state(None)

    def calculate_metrics(self, simulation_df: pd.DataFrame) -> Dict[str, float]:
        """
        Calculate key fee and excess metrics from simulation results.

        Args:
            simulation_df: DataFrame from simulate_series()

        Returns:
            Dictionary of calculated metrics
        """
        if len(simulation_df) == 0:
            raise ValueError("Simulation DataFrame is empty")

        metrics = {}

        # Fee metrics over accepted blocks
        fees_gwei = simulation_df['base_fee_gwei'].dropna()
        if len(fees_gwei) > 0:
            metrics['avg_fee_gwei'] = float(fees_gwei.mean())
            metrics['median_fee_gwei'] = float(fees_gwei.median())
            metrics['fee_std_gwei'] = float(fees_gwei.std(ddof=0))
            metrics['fee_cv'] = metrics['fee_std_gwei'] / metrics['avg_fee_gwei'] if metrics['avg_fee_gwei'] > 0 else 0.0
            metrics['fee_p95_gwei'] = float(fees_gwei.quantile(0.95))
            metrics['fee_p99_gwei'] = float(fees_gwei.quantile(0.99))
            metrics['max_fee_gwei'] = float(fees_gwei.max())

        # Excess metrics
        excess = simulation_df['gas_excess_after'].astype(float)
        utilization = excess / self.params.gas_excess_max
        metrics['avg_gas_excess'] = float(excess.mean())
        metrics['max_gas_excess'] = float(excess.max())
        metrics['avg_excess_utilization'] = float(utilization.mean())
        metrics['max_excess_utilization'] = float(utilization.max())

        # Rejections
        rejected = simulation_df['rejected'].astype(bool)
        metrics['rejected_blocks'] = int(rejected.sum())
        metrics['rejection_rate'] = float(np.mean(rejected))

        metrics['total_gas_used'] = float(simulation_df.loc[~rejected, 'gas_used'].sum())

        return metrics

    def get_state_summary(self) -> Dict[str, Any]:
        state = self.oracle.state
        return {
            'gas_excess': state.gas_excess if state else None,
            'last_update_timestamp': state.last_update_timestamp if state else None,
            'parameters': {
                'xscale': self.params.xscale,
                'yscale': self.params.yscale,
                'gas_excess_max': self.params.gas_excess_max,
                'gas_issue_per_second': self.params.gas_issue_per_second,
            }
        }

    def __str__(self) -> str:
        return (f"SimulationEngine(max={self.params.gas_excess_max:,}, "
                f"issue/s={self.params.gas_issue_per_second:,}, on_reject={self.on_reject})")

    def __repr__(self) -> str:
        return self.__str__()
