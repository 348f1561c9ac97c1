"""
AMM-style EIP-1559 Base Fee Engine

Prices blocks along an exponential curve over an accumulated gas excess:

- FixedPointExp: integer-only e^x
- PriceCurve: finite-difference slope of the curve
- ExcessStateMachine: decay and accumulation of the gas excess
- ScaleCalibrator: derivation and self-check of xscale / yscale

All fee arithmetic is exact integer arithmetic.
"""

__version__ = "1.0.0"

from .core.base_fee_oracle import BaseFeeOracle
from .core.calibration import calculate_scales, calibrate_parameters
from .core.excess_state import ExcessState, ExcessStateMachine
from .core.price_curve import CurveParameters, calculate_price
from .core.simulation_engine import SimulationEngine
from .data.loader import DataLoader

__all__ = [
    "BaseFeeOracle",
    "calculate_scales",
    "calibrate_parameters",
    "ExcessState",
    "ExcessStateMachine",
    "CurveParameters",
    "calculate_price",
    "SimulationEngine",
    "DataLoader",
]
