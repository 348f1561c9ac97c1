"""
Integer unit helpers and saturating narrowing

The fee path is pure integer arithmetic on unbounded Python ints. Values only
get narrowed when they leave the engine through the public interface, and
narrowing always saturates at the target width instead of wrapping.
"""

# === WIDTHS ===

WEI_PER_GWEI = 10**9

UINT32_MAX = 2**32 - 1
UINT64_MAX = 2**64 - 1
UINT128_MAX = 2**128 - 1


# === CONVERSION UTILITIES ===

def wei_to_gwei(wei: int) -> float:
    """Convert wei to gwei (display only, never fed back into the fee path)"""
    return wei / WEI_PER_GWEI


# === SATURATING NARROWING ===

def saturate(value: int, maximum: int) -> int:
    """Clamp a non-negative integer to `maximum`"""
    if value < 0:
        raise ValueError(f"cannot narrow negative value {value}")
    return value if value <= maximum else maximum


def saturate_uint64(value: int) -> int:
    return saturate(value, UINT64_MAX)


def saturate_uint128(value: int) -> int:
    return saturate(value, UINT128_MAX)


# === VALIDATION FUNCTIONS ===

def validate_uint(value: int, name: str, maximum: int) -> int:
    """
    Validate an unsigned integer argument

    Args:
        value: Value to validate
        name: Name for error messages
        maximum: Largest accepted value

    Returns:
        The value, unchanged

    Raises:
        ValueError: If value is not an int or lies outside [0, maximum]
    """
    # bool is an int subclass but never a meaningful gas amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")

    if not (0 <= value <= maximum):
        raise ValueError(f"{name} {value:,} outside valid range [0, {maximum:,}]")

    return value


def validate_uint32(value: int, name: str) -> int:
    return validate_uint(value, name, UINT32_MAX)
