"""
Error taxonomy for the AMM base fee engine.

Every failure raised by the fee path derives from FeeMechanismError, which is
itself a ValueError so existing `except ValueError` call sites keep working.
"""

from typing import Optional


class FeeMechanismError(ValueError):
    """Base class for all fee mechanism failures"""
    pass


class DomainOverflow(FeeMechanismError):
    """Raised when the exponential evaluator receives an input it cannot represent"""

    def __init__(self, value: int, limit: int):
        self.value = value
        self.limit = limit
        super().__init__(f"exp input {value:,} outside domain [0, {limit:,})")


class ExcessTooLarge(FeeMechanismError):
    """Raised when a candidate gas excess leaves the curve's valid range"""

    def __init__(self, gas_excess: int, limit: int, reason: Optional[str] = None):
        self.gas_excess = gas_excess
        self.limit = limit
        message = f"gas excess {gas_excess:,} exceeds limit {limit:,}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class CalibrationMismatch(FeeMechanismError):
    """Raised when derived scales do not reproduce the expected 2x/1x price ratio"""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"calibration ratio mismatch: expected {expected}, got {actual}")


class InvalidConfiguration(FeeMechanismError):
    """Raised for curve parameters or calibration inputs that cannot be used"""
    pass


class UnauthorizedCaller(FeeMechanismError):
    """Raised when someone other than the designated caller updates the base fee"""
    pass


class OracleNotInitialized(FeeMechanismError):
    """Raised when the oracle is used before initialize()"""
    pass
