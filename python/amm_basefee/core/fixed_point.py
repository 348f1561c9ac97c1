"""
Fixed-Point Exponential

Evaluates e^x for 18-decimal fixed-point ("wad") inputs using integer
arithmetic only, so identical inputs give identical outputs everywhere.

Method:
    e^x = 2^(x * log2(e))

    2^y is split into an integer part n and a binary fraction f with
    FRACTION_BITS bits. For every set bit k of f (weight 2^-k) the Q128
    accumulator is multiplied by 2^(2^-k), taken from a precomputed table:

        2^y = 2^n * prod_{k : bit k set} 2^(2^-k)

The multiplier table is derived with integer square roots only:
2^(2^-1) = sqrt(2), 2^(2^-(k+1)) = sqrt(2^(2^-k)).
"""

import math
from typing import Tuple

from .errors import DomainOverflow


WAD = 10**18

# log2(e) in wad
LOG2_E = 1_442_695_040_888_963_407

# floor(ln((2**255 - 1) / 1e18) * 1e18); e^x no longer fits a signed 256-bit word above this
MAX_EXP_INPUT = 135_305_999_368_893_231_588

FRACTION_BITS = 64
TABLE_PRECISION = 128
_GUARD_BITS = 64

_FRACTION_MASK = (1 << FRACTION_BITS) - 1
_ONE = 1 << TABLE_PRECISION


def _build_root_table(bits: int, precision: int) -> Tuple[int, ...]:
    """
    Build the per-bit multiplier table.

    Entry k-1 holds floor(2^(2^-k) * 2^precision) for k = 1..bits. Roots are
    taken with _GUARD_BITS extra bits and truncated once at the end.
    """
    scale = precision + _GUARD_BITS
    root = 2 << scale
    table = []
    for _ in range(bits):
        root = math.isqrt(root << scale)
        table.append(root >> _GUARD_BITS)
    return tuple(table)


ROOTS_OF_TWO = _build_root_table(FRACTION_BITS, TABLE_PRECISION)


def exp2(y: int) -> int:
    """
    Compute 2^y for a non-negative wad `y`, returning a wad.

    Args:
        y: Exponent in wad

    Returns:
        2^y in wad, truncated

    Raises:
        ValueError: If y is negative
    """
    if y < 0:
        raise ValueError(f"exp2 is only defined for non-negative input, got {y}")

    binary = (y << FRACTION_BITS) // WAD
    whole = binary >> FRACTION_BITS
    fraction = binary & _FRACTION_MASK

    result = _ONE
    for k, multiplier in enumerate(ROOTS_OF_TWO, start=1):
        if fraction & (1 << (FRACTION_BITS - k)):
            result = (result * multiplier) >> TABLE_PRECISION

    return (result * WAD << whole) >> TABLE_PRECISION


def exp(x: int) -> int:
    """
    Compute e^x for a non-negative wad `x`, returning a wad.

    Raises:
        DomainOverflow: If x >= MAX_EXP_INPUT
        ValueError: If x is negative
    """
    if x >= MAX_EXP_INPUT:
        raise DomainOverflow(x, MAX_EXP_INPUT)
    if x < 0:
        raise ValueError(f"exp is only defined for non-negative input, got {x}")

    return exp2(x * LOG2_E // WAD)
