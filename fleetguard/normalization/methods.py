"""
Normalization methods for FLEETGUARD.

Every BPS sub-metric is clamped and linearly rescaled to [0, 1] against a
fixed reference range. Out-of-range inputs saturate; they never raise.
"""

import logging
import math

logger = logging.getLogger(__name__)


def clamp(value: float, low: float, high: float) -> float:
    """
    Clamp a value into [low, high].

    NaN is treated as ``low`` so a corrupted metric can only lower a score.
    """
    if value is None or math.isnan(value):
        return low
    return max(low, min(high, value))


def clamp01(value: float) -> float:
    """Clamp a value into [0, 1]."""
    return clamp(value, 0.0, 1.0)


def linear_rescale(
    value: float,
    low: float,
    high: float,
) -> float:
    """
    Rescale ``value`` from [low, high] to [0, 1], saturating at both ends.

    Args:
        value: The value to rescale
        low: Reference value mapped to 0
        high: Reference value mapped to 1

    Returns:
        Rescaled value in [0, 1]
    """
    if high == low:
        logger.debug(f"Degenerate range [{low}, {high}], returning 0.0")
        return 0.0
    return clamp01((value - low) / (high - low))


def inverse_rescale(value: float, cap: float) -> float:
    """
    Map [0, cap] to [1, 0]: zero scores 1, ``cap`` or more scores 0.

    Used for metrics where larger is worse (drawdown).
    """
    if cap <= 0:
        return 0.0
    return clamp01(1.0 - value / cap)
