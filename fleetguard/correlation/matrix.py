"""
Return alignment and correlation matrix construction.

Daily return series are aligned by date into a pandas frame (one column
per bot). Missing days stay NaN; each pair is correlated only over the
days both bots actually traded.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from fleetguard.core.constants import HIGH_CORRELATION_THRESHOLD, MIN_CORRELATION_SAMPLES
from fleetguard.core.types import BotId
from fleetguard.correlation.pearson import (
    CorrelationLevel,
    calculate_pearson_correlation,
    calculate_risk_multiplier,
    classify_correlation,
    find_shared_exposure,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BotReturns:
    """Daily return series for one active bot."""

    bot_id: BotId
    bot_name: str
    stage: str
    archetype: str
    daily_returns: tuple[float, ...]
    dates: tuple[str, ...] = field(default_factory=tuple)

    @property
    def sample_count(self) -> int:
        """Number of finite return observations."""
        return int(np.isfinite(np.asarray(self.daily_returns, dtype=float)).sum())

    @property
    def is_dated(self) -> bool:
        return len(self.dates) > 0 and len(self.dates) == len(self.daily_returns)


@dataclass(frozen=True)
class BotRef:
    """Identity of one side of a correlated pair."""

    id: BotId
    name: str
    archetype: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "archetype": self.archetype}


@dataclass(frozen=True)
class PairCorrelation:
    """A correlated bot pair with its classification and exposure overlap."""

    bot_a: BotRef
    bot_b: BotRef
    correlation: float
    level: CorrelationLevel
    shared_exposure: tuple[str, ...]
    risk_multiplier: float

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "botA": self.bot_a.to_dict(),
            "botB": self.bot_b.to_dict(),
            "correlation": self.correlation,
            "level": self.level.value,
            "sharedExposure": list(self.shared_exposure),
            "riskMultiplier": self.risk_multiplier,
        }


def align_returns(
    bot_returns: Sequence[BotReturns],
    lookback_days: int | None = None,
) -> pd.DataFrame:
    """
    Align return series into one frame.

    When every bot supplies dates, rows are the sorted union of dates;
    samples whose date cannot be parsed are dropped. Otherwise series are
    aligned positionally on their most recent sample.

    Args:
        bot_returns: Per-bot series
        lookback_days: Keep only the last N rows (None keeps all)

    Returns:
        DataFrame with one column per input series, labelled by bot_id,
        in input order
    """
    if not bot_returns:
        return pd.DataFrame()

    dated = all(br.is_dated for br in bot_returns)
    columns: list[pd.Series] = []

    for br in bot_returns:
        values = np.asarray(br.daily_returns, dtype=float)
        if dated:
            index = pd.to_datetime(
                list(br.dates), errors="coerce", utc=True, format="mixed"
            )
            series = pd.Series(values, index=index)
            unparsed = series.index.isna()
            if unparsed.any():
                logger.warning(
                    f"Dropping {int(unparsed.sum())} returns with unparseable dates for {br.bot_id}"
                )
                series = series[~unparsed]
            series = series[~series.index.duplicated(keep="last")]
        else:
            # Newest sample sits at position 0
            index = pd.RangeIndex(start=-len(values) + 1, stop=1)
            series = pd.Series(values, index=index)
        columns.append(series)

    # Columns stay positional so repeated ids never merge
    frame = pd.concat(columns, axis=1, ignore_index=True).sort_index()
    frame.columns = [br.bot_id for br in bot_returns]
    if lookback_days is not None and lookback_days > 0:
        frame = frame.tail(lookback_days)

    logger.debug(f"Aligned {frame.shape[1]} bots over {frame.shape[0]} rows")
    return frame


def calculate_correlation_matrix(
    returns: pd.DataFrame | Sequence[Sequence[float]],
    min_samples: int = MIN_CORRELATION_SAMPLES,
) -> np.ndarray:
    """
    Symmetric pairwise correlation matrix with unit diagonal.

    Args:
        returns: Aligned frame (one column per bot), or one row per bot
        min_samples: Minimum overlapping observations per pair; fewer gives 0

    Returns:
        n x n array in column (or row) order
    """
    if isinstance(returns, pd.DataFrame):
        data = returns.to_numpy(dtype=float).T
    else:
        data = pd.DataFrame(list(returns)).to_numpy(dtype=float)

    n = data.shape[0] if data.ndim == 2 else 0
    matrix = np.zeros((n, n))

    for i in range(n):
        matrix[i, i] = 1.0
        for j in range(i + 1, n):
            overlap = np.isfinite(data[i]) & np.isfinite(data[j])
            corr = calculate_pearson_correlation(
                data[i][overlap], data[j][overlap], min_samples=min_samples
            )
            matrix[i, j] = corr
            matrix[j, i] = corr

    return matrix


def find_high_correlation_pairs(
    matrix: np.ndarray,
    bot_returns: Sequence[BotReturns],
    threshold: float = HIGH_CORRELATION_THRESHOLD,
) -> list[PairCorrelation]:
    """
    Pairs whose |r| meets the threshold, strongest first.

    Args:
        matrix: Correlation matrix in ``bot_returns`` order
        bot_returns: Bots the matrix was built from
        threshold: Minimum |r|

    Returns:
        List of PairCorrelation sorted by |r| descending
    """
    pairs: list[PairCorrelation] = []
    n = len(matrix)

    for i in range(n):
        for j in range(i + 1, n):
            correlation = float(matrix[i][j])
            if abs(correlation) < threshold:
                continue
            a, b = bot_returns[i], bot_returns[j]
            pairs.append(
                PairCorrelation(
                    bot_a=BotRef(a.bot_id, a.bot_name, a.archetype),
                    bot_b=BotRef(b.bot_id, b.bot_name, b.archetype),
                    correlation=correlation,
                    level=classify_correlation(correlation),
                    shared_exposure=tuple(find_shared_exposure(a.archetype, b.archetype)),
                    risk_multiplier=calculate_risk_multiplier(correlation),
                )
            )

    # stable sort keeps index order among ties
    return sorted(pairs, key=lambda p: -abs(p.correlation))
