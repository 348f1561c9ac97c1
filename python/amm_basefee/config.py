"""
Deployment configuration for the base fee oracle.

Defaults are the reference constants. Every value can be overridden through
AMM_BASEFEE_* environment variables; constants are immutable once an oracle
has been built from them.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

from .core.base_fee_oracle import BaseFeeOracle
from .core.errors import InvalidConfiguration
from .core.price_curve import CurveParameters

logger = logging.getLogger(__name__)

REFERENCE_XSCALE = 1_488_514_844
REFERENCE_YSCALE = 358_298_803_609_133_338_138_868_404_779
REFERENCE_GAS_ISSUE_PER_SECOND = 12_500_000
REFERENCE_GAS_EXCESS_MAX = 90_900_000_000

ENV_PREFIX = "AMM_BASEFEE_"


def _int_from_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw.replace("_", ""))
    except ValueError as e:
        raise InvalidConfiguration(f"{ENV_PREFIX + name} must be an integer, got {raw!r}") from e


@dataclass
class OracleSettings:
    """Deployment-time constants for one oracle."""

    xscale: int = REFERENCE_XSCALE
    yscale: int = REFERENCE_YSCALE
    gas_issue_per_second: int = REFERENCE_GAS_ISSUE_PER_SECOND
    gas_excess_max: int = REFERENCE_GAS_EXCESS_MAX
    authorized_caller: Optional[str] = None

    parameters: CurveParameters = field(init=False, repr=False)

    def __post_init__(self):
        """Validate by building the curve parameters once."""
        self.parameters = CurveParameters(
            xscale=self.xscale,
            yscale=self.yscale,
            gas_excess_max=self.gas_excess_max,
            gas_issue_per_second=self.gas_issue_per_second,
        )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "OracleSettings":
        """Read settings from AMM_BASEFEE_* variables, falling back to the reference values."""
        env = os.environ if env is None else env
        settings = cls(
            xscale=_int_from_env(env, "XSCALE", REFERENCE_XSCALE),
            yscale=_int_from_env(env, "YSCALE", REFERENCE_YSCALE),
            gas_issue_per_second=_int_from_env(env, "GAS_ISSUE_PER_SECOND", REFERENCE_GAS_ISSUE_PER_SECOND),
            gas_excess_max=_int_from_env(env, "GAS_EXCESS_MAX", REFERENCE_GAS_EXCESS_MAX),
            authorized_caller=env.get(ENV_PREFIX + "AUTHORIZED_CALLER") or None,
        )
        logger.debug(f"Loaded settings: {settings}")
        return settings


def reference_parameters() -> CurveParameters:
    """Curve parameters for the reference deployment."""
    return OracleSettings().parameters


def create_default_oracle(
    settings: Optional[OracleSettings] = None,
    clock: Optional[Callable[[], int]] = None,
    initialize: bool = True,
) -> BaseFeeOracle:
    """Build (and by default initialize) an oracle from settings."""
    settings = settings or OracleSettings.from_env()
    oracle = BaseFeeOracle(
        settings.parameters,
        clock=clock,
        authorized_caller=settings.authorized_caller,
    )
    if initialize:
        oracle.initialize()
    return oracle
