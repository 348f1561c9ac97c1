"""
REST API for the AMM base fee oracle.
"""

from .fee_api import router, get_oracle

__all__ = ["router", "get_oracle"]
