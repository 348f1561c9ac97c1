"""
API Data Models for the AMM Base Fee Service

Pydantic models for request/response validation and serialization.
Fee and excess values are integers end to end; gwei fields are for display.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Dict, Any

from ..core.units import UINT32_MAX


class QuoteRequest(BaseModel):
    """Request model for a read-only fee quote."""
    gas_used: int = Field(..., ge=0, le=UINT32_MAX, description="Gas used by the block")


class UpdateRequest(BaseModel):
    """Request model for committing a block's gas usage."""
    gas_used: int = Field(..., ge=0, le=UINT32_MAX, description="Gas used by the parent block")
    caller: Optional[str] = Field(None, description="Identity of the updater")


class BaseFeeResponse(BaseModel):
    """Response model for quotes and updates."""
    base_fee_per_gas: int = Field(..., description="Base fee in wei per gas (uint64, saturated)")
    base_fee_gwei: float = Field(..., description="Base fee in gwei (display only)")
    gas_excess: int = Field(..., description="Gas excess the fee was priced at")
    committed: bool = Field(..., description="Whether the state was updated")


class CurveParametersModel(BaseModel):
    """Curve parameters as exposed over the API."""
    xscale: int
    yscale: int
    gas_excess_max: int
    gas_issue_per_second: int


class StateResponse(BaseModel):
    """Response model for the current oracle state."""
    initialized: bool
    gas_excess: Optional[int] = None
    last_update_timestamp: Optional[int] = None
    parameters: CurveParametersModel


class CalibrationRequest(BaseModel):
    """Request model for deriving xscale / yscale."""
    gas_excess_max: int = Field(..., gt=0, description="Ceiling of the gas excess domain")
    price: int = Field(..., gt=0, description="Target base fee (wei per gas) at the midpoint")
    target: int = Field(..., gt=0, description="Target gas per block")
    ratio_2x1x: int = Field(..., gt=0, description="Expected price_2x * 10000 // price_1x")
    gas_issue_per_second: int = Field(0, ge=0, description="Issuance rate for the returned parameters")


class CalibrationResponse(BaseModel):
    """Response model for a successful calibration."""
    xscale: int
    yscale: int
    ratio_2x1x: int
    parameters: CurveParametersModel


class BlockInput(BaseModel):
    """One block of a simulation request."""
    timestamp: int = Field(..., ge=0, description="Block timestamp (unix seconds)")
    gas_used: int = Field(..., ge=0, le=UINT32_MAX)


class SimulationRequest(BaseModel):
    """Request model for replaying a block series."""
    blocks: List[BlockInput] = Field(..., min_length=1, max_length=100_000)
    initial_gas_excess: Optional[int] = Field(None, ge=0)
    skip_rejected: bool = Field(False, description="Record over-limit blocks instead of failing")
    parameters: Optional[CurveParametersModel] = Field(
        None, description="Curve parameters; defaults to the oracle's"
    )

    @field_validator('blocks')
    @classmethod
    def validate_block_order(cls, v):
        """Blocks must be in non-decreasing timestamp order."""
        for previous, current in zip(v, v[1:]):
            if current.timestamp < previous.timestamp:
                raise ValueError(
                    f"block timestamps must be non-decreasing ({current.timestamp} < {previous.timestamp})"
                )
        return v


class SimulationStepResult(BaseModel):
    """Single block of a simulation."""
    step: int
    timestamp: int
    elapsed_seconds: int
    gas_used: int
    gas_excess_before: int
    gas_excess_after: int
    base_fee_per_gas: Optional[int]
    rejected: bool


class SimulationResponse(BaseModel):
    """Response model for a block replay."""
    steps: List[SimulationStepResult]
    metrics: Dict[str, float]


class HealthCheckResponse(BaseModel):
    """Response model for health check."""
    status: str = "healthy"
    version: str
    uptime_seconds: float
    oracle_initialized: bool


class ErrorResponse(BaseModel):
    """Response model for API errors."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error description")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
