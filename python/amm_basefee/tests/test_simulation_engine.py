"""
Unit tests for SimulationEngine

Tests block replays through the oracle, rejection handling and metrics.
"""

import pytest
import numpy as np
import pandas as pd

from ..config import reference_parameters
from ..core.errors import ExcessTooLarge
from ..core.simulation_engine import SimulationEngine


PARAMS = reference_parameters()
MIDPOINT = PARAMS.neutral_excess
START = 1_700_000_000


def block_times(count: int, interval: int = 12):
    return [START + i * interval for i in range(count)]


class TestSimulationEngine:
    """Test suite for block replays."""

    def test_initialization(self):
        engine = SimulationEngine(PARAMS)

        assert engine.params == PARAMS
        assert engine.on_reject == "raise"
        assert engine.oracle.state is None

    @pytest.mark.parametrize("kwargs", [
        {"on_reject": "ignore"},
        {"initial_gas_excess": -1},
        {"initial_gas_excess": PARAMS.gas_excess_max + 1},
    ])
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            SimulationEngine(PARAMS, **kwargs)

    def test_steady_state_at_target(self):
        """Using exactly the issued gas every block holds the excess constant."""
        engine = SimulationEngine(PARAMS)
        df = engine.simulate_series(block_times(20), [150_000_000] * 20)

        assert isinstance(df, pd.DataFrame)
        assert len(df) == 20
        assert (df['gas_excess_after'] == MIDPOINT + 150_000_000).all()
        assert df['base_fee_per_gas'].nunique() == 1
        assert not df['rejected'].any()
        assert list(df['step']) == list(range(20))

    def test_first_block_has_zero_elapsed(self):
        engine = SimulationEngine(PARAMS)
        df = engine.simulate_series(block_times(3), [0, 0, 0])

        assert list(df['elapsed_seconds']) == [0, 12, 12]
        assert df['gas_excess_before'].iloc[0] == MIDPOINT

    def test_empty_blocks_lower_fee(self):
        engine = SimulationEngine(PARAMS)
        df = engine.simulate_series(block_times(10), [0] * 10)

        fees = list(df['base_fee_per_gas'])
        for later, earlier in zip(fees[1:], fees):
            assert later < earlier
        assert df['gas_excess_after'].iloc[-1] == MIDPOINT - 9 * 150_000_000

    def test_fees_are_exact_integers(self):
        engine = SimulationEngine(PARAMS)
        df = engine.simulate_series(block_times(5), [15_000_000] * 5)

        assert df['base_fee_per_gas'].dtype == object
        assert all(isinstance(fee, int) for fee in df['base_fee_per_gas'])

    def test_rejection_raises_by_default(self):
        engine = SimulationEngine(PARAMS, initial_gas_excess=PARAMS.gas_excess_max - 1_000)
        with pytest.raises(ExcessTooLarge):
            engine.simulate_series(block_times(2), [1_000_000, 0])

    def test_rejection_recorded_when_skipping(self):
        start_excess = PARAMS.gas_excess_max - 1_000
        engine = SimulationEngine(PARAMS, initial_gas_excess=start_excess, on_reject="skip")
        df = engine.simulate_series(block_times(2), [1_000_000, 0])

        first = df.iloc[0]
        assert bool(first['rejected'])
        assert first['base_fee_per_gas'] is None
        assert np.isnan(first['base_fee_gwei'])
        assert first['gas_excess_after'] == start_excess

        second = df.iloc[1]
        assert not bool(second['rejected'])
        assert second['gas_excess_after'] == start_excess - 150_000_000

    def test_length_mismatch(self):
        engine = SimulationEngine(PARAMS)
        with pytest.raises(ValueError):
            engine.simulate_series(block_times(3), [0, 0])
        with pytest.raises(ValueError):
            engine.simulate_series([], [])

    def test_series_replay_is_repeatable(self):
        engine = SimulationEngine(PARAMS)
        gas = [0, 30_000_000, 150_000_000, 5_000_000]

        first = engine.simulate_series(block_times(4), gas)
        second = engine.simulate_series(block_times(4), gas)

        assert list(first['base_fee_per_gas']) == list(second['base_fee_per_gas'])

    def test_calculate_metrics(self):
        engine = SimulationEngine(PARAMS, initial_gas_excess=PARAMS.gas_excess_max - 1_000, on_reject="skip")
        df = engine.simulate_series(block_times(2), [1_000_000, 0])
        metrics = engine.calculate_metrics(df)

        assert metrics['rejected_blocks'] == 1
        assert metrics['rejection_rate'] == pytest.approx(0.5)
        assert metrics['total_gas_used'] == 0.0
        assert metrics['avg_fee_gwei'] == pytest.approx(df['base_fee_gwei'].iloc[1])
        assert metrics['fee_std_gwei'] == 0.0
        assert 0.0 < metrics['max_excess_utilization'] <= 1.0

    def test_metrics_for_steady_state(self):
        engine = SimulationEngine(PARAMS)
        df = engine.simulate_series(block_times(10), [150_000_000] * 10)
        metrics = engine.calculate_metrics(df)

        assert metrics['fee_cv'] == pytest.approx(0.0, abs=1e-9)
        assert metrics['total_gas_used'] == 1_500_000_000.0
        assert metrics['avg_excess_utilization'] == pytest.approx(
            (MIDPOINT + 150_000_000) / PARAMS.gas_excess_max
        )

    def test_metrics_on_empty_frame(self):
        engine = SimulationEngine(PARAMS)
        with pytest.raises(ValueError):
            engine.calculate_metrics(pd.DataFrame())

    def test_state_summary(self):
        engine = SimulationEngine(PARAMS)
        assert engine.get_state_summary()['gas_excess'] is None

        engine.simulate_series(block_times(2), [150_000_000, 150_000_000])
        summary = engine.get_state_summary()
        assert summary['gas_excess'] == MIDPOINT + 150_000_000
        assert summary['last_update_timestamp'] == START + 12
        assert summary['parameters']['gas_excess_max'] == PARAMS.gas_excess_max
