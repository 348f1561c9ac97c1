"""
Fee Mechanism API Endpoints

REST endpoints over the process-wide BaseFeeOracle. All handlers run on the
server's event loop, one at a time, which serialises state updates.
"""

from fastapi import APIRouter, Depends, HTTPException
from typing import Optional, NoReturn
import logging

from ..config import create_default_oracle
from ..core.base_fee_oracle import BaseFeeOracle
from ..core.calibration import calculate_scales
from ..core.errors import (
    CalibrationMismatch,
    ExcessTooLarge,
    FeeMechanismError,
    OracleNotInitialized,
    UnauthorizedCaller,
)
from ..core.price_curve import CurveParameters
from ..core.simulation_engine import SimulationEngine
from ..core.units import saturate_uint64, wei_to_gwei
from .models import (
    BaseFeeResponse,
    CalibrationRequest,
    CalibrationResponse,
    CurveParametersModel,
    QuoteRequest,
    SimulationRequest,
    SimulationResponse,
    SimulationStepResult,
    StateResponse,
    UpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/fee", tags=["fee_mechanism"])

_oracle: Optional[BaseFeeOracle] = None


def get_oracle() -> BaseFeeOracle:
    """Process-wide oracle, built from the environment on first use."""
    global _oracle
    if _oracle is None:
        _oracle = create_default_oracle()
        logger.info(f"Oracle ready: {_oracle}")
    return _oracle


def _parameters_model(params: CurveParameters) -> CurveParametersModel:
    return CurveParametersModel(
        xscale=params.xscale,
        yscale=params.yscale,
        gas_excess_max=params.gas_excess_max,
        gas_issue_per_second=params.gas_issue_per_second,
    )


_STATUS_CODES = (
    (UnauthorizedCaller, 403),
    (ExcessTooLarge, 409),
    (OracleNotInitialized, 503),
)


def _raise_http(e: ValueError, action: str) -> NoReturn:
    """Translate engine errors into HTTP errors."""
    status_code = 400
    for error_type, code in _STATUS_CODES:
        if isinstance(e, error_type):
            status_code = code
            break

    detail = {"error": type(e).__name__, "message": f"{action} failed: {e}"}
    if isinstance(e, ExcessTooLarge):
        detail.update(gas_excess=e.gas_excess, limit=e.limit)
    elif isinstance(e, CalibrationMismatch):
        detail.update(expected=e.expected, actual=e.actual)

    logger.warning(f"{action} failed: {e}")
    raise HTTPException(status_code=status_code, detail=detail) from e


@router.get("/state", response_model=StateResponse)
async def get_state(oracle: BaseFeeOracle = Depends(get_oracle)) -> StateResponse:
    """Current gas excess, last update time and curve parameters."""
    state = oracle.state
    return StateResponse(
        initialized=state is not None,
        gas_excess=state.gas_excess if state else None,
        last_update_timestamp=state.last_update_timestamp if state else None,
        parameters=_parameters_model(oracle.params),
    )


@router.post("/quote", response_model=BaseFeeResponse)
async def quote_base_fee(request: QuoteRequest, oracle: BaseFeeOracle = Depends(get_oracle)) -> BaseFeeResponse:
    """Read-only base fee estimate for a block using `gas_used` gas."""
    try:
        quote = oracle.quote(request.gas_used)
        base_fee = saturate_uint64(quote.base_fee_per_gas)
    except ValueError as e:
        _raise_http(e, "Fee quote")

    return BaseFeeResponse(
        base_fee_per_gas=base_fee,
        base_fee_gwei=wei_to_gwei(base_fee),
        gas_excess=quote.gas_excess,
        committed=False,
    )


@router.post("/update", response_model=BaseFeeResponse)
async def update_base_fee(request: UpdateRequest, oracle: BaseFeeOracle = Depends(get_oracle)) -> BaseFeeResponse:
    """Commit a block's gas usage and return the new base fee."""
    try:
        base_fee = oracle.update_base_fee(request.gas_used, caller=request.caller)
    except ValueError as e:
        _raise_http(e, "Fee update")

    return BaseFeeResponse(
        base_fee_per_gas=base_fee,
        base_fee_gwei=wei_to_gwei(base_fee),
        gas_excess=oracle.state.gas_excess,
        committed=True,
    )


@router.post("/calibrate", response_model=CalibrationResponse)
async def calibrate(request: CalibrationRequest) -> CalibrationResponse:
    """Derive and validate xscale / yscale for a target price and ratio."""
    try:
        result = calculate_scales(
            request.gas_excess_max, request.price, request.target, request.ratio_2x1x
        )
        params = result.to_parameters(request.gas_issue_per_second)
    except FeeMechanismError as e:
        _raise_http(e, "Calibration")

    return CalibrationResponse(
        xscale=result.xscale,
        yscale=result.yscale,
        ratio_2x1x=result.ratio_2x1x,
        parameters=_parameters_model(params),
    )


@router.post("/simulate", response_model=SimulationResponse)
async def simulate(request: SimulationRequest, oracle: BaseFeeOracle = Depends(get_oracle)) -> SimulationResponse:
    """Replay a block series on a private engine; the live oracle is untouched."""
    try:
        if request.parameters is not None:
            params = CurveParameters(**request.parameters.model_dump())
        else:
            params = oracle.params

        engine = SimulationEngine(
            params,
            initial_gas_excess=request.initial_gas_excess,
            on_reject="skip" if request.skip_rejected else "raise",
        )
        df = engine.simulate_series(
            [block.timestamp for block in request.blocks],
            [block.gas_used for block in request.blocks],
        )
        metrics = engine.calculate_metrics(df)
    except ValueError as e:
        _raise_http(e, "Simulation")

    steps = [
        SimulationStepResult(
            step=int(row['step']),
            timestamp=int(row['timestamp']),
            elapsed_seconds=int(row['elapsed_seconds']),
            gas_used=int(row['gas_used']),
            gas_excess_before=int(row['gas_excess_before']),
            gas_excess_after=int(row['gas_excess_after']),
            base_fee_per_gas=None if row['rejected'] else int(row['base_fee_per_gas']),
            rejected=bool(row['rejected']),
        )
        for row in df.to_dict('records')
    ]
    return SimulationResponse(steps=steps, metrics=metrics)
