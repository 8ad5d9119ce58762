"""
Pairwise correlation primitives for the correlation monitor.

Pearson coefficient, level classification, the capital risk multiplier
schedule and archetype shared-exposure lookup.
"""

import logging
from collections.abc import Sequence
from enum import Enum

import numpy as np

from fleetguard.core.constants import ARCHETYPE_EXPOSURES, MIN_CORRELATION_SAMPLES

logger = logging.getLogger(__name__)


class CorrelationLevel(str, Enum):
    """Classification of a correlation coefficient."""

    NEGATIVE = "NEGATIVE"
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    DANGEROUS = "DANGEROUS"


def calculate_pearson_correlation(
    x: Sequence[float] | np.ndarray,
    y: Sequence[float] | np.ndarray,
    min_samples: int = MIN_CORRELATION_SAMPLES,
) -> float:
    """
    Pearson correlation coefficient of two equal-length series.

    Args:
        x: First return series
        y: Second return series
        min_samples: Minimum sample count; fewer yields 0

    Returns:
        Coefficient clamped to [-1, 1]; 0 when lengths differ, the sample
        is too short, or either series has zero variance
    """
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)

    if xs.shape != ys.shape or xs.size < min_samples:
        return 0.0

    dx = xs - xs.mean()
    dy = ys - ys.mean()
    denominator = np.sqrt(np.sum(dx * dx) * np.sum(dy * dy))

    if denominator == 0 or not np.isfinite(denominator):
        return 0.0

    r = float(np.sum(dx * dy) / denominator)
    return max(-1.0, min(1.0, r))


def classify_correlation(correlation: float) -> CorrelationLevel:
    """
    Classify a coefficient.

    <-0.3 is NEGATIVE; otherwise by |r|: <0.3 LOW, <0.5 MODERATE,
    <0.75 HIGH, else DANGEROUS.
    """
    magnitude = abs(correlation)

    if correlation < -0.3:
        return CorrelationLevel.NEGATIVE
    if magnitude < 0.3:
        return CorrelationLevel.LOW
    if magnitude < 0.5:
        return CorrelationLevel.MODERATE
    if magnitude < 0.75:
        return CorrelationLevel.HIGH
    return CorrelationLevel.DANGEROUS


def calculate_risk_multiplier(correlation: float) -> float:
    """Capital-scaling factor for a pair, 0.8 (negative) up to 2.0."""
    if correlation < 0:
        return 0.8
    if correlation < 0.3:
        return 1.0
    if correlation < 0.5:
        return 1.2
    if correlation < 0.75:
        return 1.5
    return 2.0


def find_shared_exposure(archetype_a: str, archetype_b: str) -> list[str]:
    """
    Exposure tags two archetypes have in common.

    Unknown archetypes have no tags. Order follows ``archetype_a``.
    """
    exposure_b = set(ARCHETYPE_EXPOSURES.get(archetype_b, ()))
    return [tag for tag in ARCHETYPE_EXPOSURES.get(archetype_a, ()) if tag in exposure_b]
