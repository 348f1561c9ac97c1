"""
Core components of the AMM base fee mechanism.
"""

from .fixed_point import exp, exp2, MAX_EXP_INPUT, WAD
from .price_curve import CurveParameters, calculate_price, curve_height
from .excess_state import ExcessState, ExcessStateMachine, PriceQuote, decay_excess
from .calibration import CalibrationResult, calculate_scales, calibrate_parameters, price_ratio
from .base_fee_oracle import BaseFeeOracle, FeeNotification
from .simulation_engine import SimulationEngine

__all__ = [
    "exp",
    "exp2",
    "MAX_EXP_INPUT",
    "WAD",
    "CurveParameters",
    "calculate_price",
    "curve_height",
    "ExcessState",
    "ExcessStateMachine",
    "PriceQuote",
    "decay_excess",
    "CalibrationResult",
    "calculate_scales",
    "calibrate_parameters",
    "price_ratio",
    "BaseFeeOracle",
    "FeeNotification",
    "SimulationEngine",
]
