"""
Cross-strategy correlation monitor for FLEETGUARD.

Detects strategies that are likely to fail together: builds the
fleet's correlation matrix from daily returns, extracts high-correlation
pairs and clusters, scores diversification and rates portfolio risk.

Return series come from an injected provider, results are cached per
lookback window in a CorrelationCache, and high-correlation pairs are
appended to a DriftHistory for later inspection. Nothing runs on import.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

import numpy as np

from fleetguard.core.config import Settings
from fleetguard.core.constants import (
    CLUSTER_THRESHOLD,
    DEFAULT_LOOKBACK_DAYS,
    HIGH_CORRELATION_THRESHOLD,
    MIN_CORRELATION_SAMPLES,
)
from fleetguard.core.types import BotId
from fleetguard.correlation.cache import CorrelationCache, DriftHistory, DriftSample
from fleetguard.correlation.clusters import CorrelationCluster, find_correlation_clusters
from fleetguard.correlation.diversification import (
    DiversificationScore,
    PortfolioRisk,
    RiskLevel,
    calculate_diversification_score,
    calculate_portfolio_risk,
)
from fleetguard.correlation.matrix import (
    BotReturns,
    PairCorrelation,
    align_returns,
    calculate_correlation_matrix,
    find_high_correlation_pairs,
)
from fleetguard.correlation.pearson import CorrelationLevel

logger = logging.getLogger(__name__)

ReturnsProvider = Callable[[int], Sequence[BotReturns]]


@dataclass(frozen=True)
class CorrelationSettings:
    """Thresholds for one correlation analysis."""

    default_lookback_days: int = DEFAULT_LOOKBACK_DAYS
    high_correlation_threshold: float = HIGH_CORRELATION_THRESHOLD
    cluster_threshold: float = CLUSTER_THRESHOLD
    min_samples: int = MIN_CORRELATION_SAMPLES


DEFAULT_CORRELATION_SETTINGS = CorrelationSettings()


@dataclass(frozen=True, eq=False)
class CorrelationMatrixResult:
    """Full output of one correlation analysis."""

    matrix: np.ndarray
    bot_ids: tuple[BotId, ...]
    bot_names: tuple[str, ...]
    high_correlation_pairs: tuple[PairCorrelation, ...]
    clusters: tuple[CorrelationCluster, ...]
    diversification_score: DiversificationScore
    portfolio_risk: PortfolioRisk
    timestamp: datetime
    lookback_days: int = DEFAULT_LOOKBACK_DAYS

    @property
    def average_correlation(self) -> float:
        """Mean of the upper-triangle coefficients (signed)."""
        n = len(self.matrix)
        if n < 2:
            return 0.0
        return float(np.mean(self.matrix[np.triu_indices(n, k=1)]))

    def correlation_between(self, bot_a: BotId, bot_b: BotId) -> float | None:
        """Coefficient for a pair, or None if either bot is absent."""
        try:
            i = self.bot_ids.index(bot_a)
            j = self.bot_ids.index(bot_b)
        except ValueError:
            return None
        return float(self.matrix[i][j])

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "matrix": np.asarray(self.matrix).tolist(),
            "botIds": list(self.bot_ids),
            "botNames": list(self.bot_names),
            "highCorrelationPairs": [p.to_dict() for p in self.high_correlation_pairs],
            "clusters": [c.to_dict() for c in self.clusters],
            "diversificationScore": self.diversification_score.to_dict(),
            "portfolioRisk": self.portfolio_risk.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class CorrelationSummary:
    """Compact view of the last cached analysis."""

    last_analysis: datetime | None = None
    bot_count: int = 0
    avg_correlation: float = 0.0
    dangerous_pairs: int = 0
    diversification_grade: str = "N/A"
    overall_risk: str = "UNKNOWN"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "lastAnalysis": self.last_analysis.isoformat() if self.last_analysis else None,
            "botCount": self.bot_count,
            "avgCorrelation": self.avg_correlation,
            "dangerousPairs": self.dangerous_pairs,
            "diversificationGrade": self.diversification_grade,
            "overallRisk": self.overall_risk,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CorrelationMonitor:
    """
    Fleet correlation analysis with a TTL result cache and drift history.
    """

    def __init__(
        self,
        returns_provider: ReturnsProvider,
        cache: CorrelationCache | None = None,
        drift_history: DriftHistory | None = None,
        settings: CorrelationSettings | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the monitor.

        Args:
            returns_provider: Called with the lookback window, returns the
                active bots' daily return series
            cache: Result cache (a fresh one if omitted)
            drift_history: Pair history store (a fresh one if omitted)
            settings: Analysis thresholds
            now: Clock used for result and drift timestamps
        """
        self.returns_provider = returns_provider
        self.cache = cache if cache is not None else CorrelationCache()
        self.drift_history = drift_history if drift_history is not None else DriftHistory()
        self.settings = settings or DEFAULT_CORRELATION_SETTINGS
        self._now = now

    @classmethod
    def from_settings(
        cls,
        returns_provider: ReturnsProvider,
        app_settings: Settings,
        settings: CorrelationSettings | None = None,
    ) -> "CorrelationMonitor":
        """Build a monitor whose cache and history bounds come from the environment."""
        return cls(
            returns_provider,
            cache=CorrelationCache(ttl_seconds=app_settings.correlation_cache_ttl_seconds),
            drift_history=DriftHistory(
                max_samples=app_settings.drift_history_max_samples,
                max_pairs=app_settings.drift_history_max_pairs,
            ),
            settings=settings,
        )

    def _empty_result(
        self,
        bot_returns: Sequence[BotReturns],
        lookback_days: int,
    ) -> CorrelationMatrixResult:
        return CorrelationMatrixResult(
            matrix=np.zeros((0, 0)),
            bot_ids=tuple(br.bot_id for br in bot_returns),
            bot_names=tuple(br.bot_name for br in bot_returns),
            high_correlation_pairs=(),
            clusters=(),
            diversification_score=calculate_diversification_score(
                bot_returns, np.zeros((0, 0)), []
            ),
            portfolio_risk=PortfolioRisk(
                concentration_risk=100.0,
                correlation_risk=0.0,
                overall_risk_level=RiskLevel.HIGH,
            ),
            timestamp=self._now(),
            lookback_days=lookback_days,
        )

    def analyze_correlations(
        self,
        lookback_days: int | None = None,
        force_refresh: bool = False,
    ) -> CorrelationMatrixResult:
        """
        Analyze correlations across the active fleet.

        Args:
            lookback_days: Window of daily returns (settings default if None)
            force_refresh: Skip the cache

        Returns:
            CorrelationMatrixResult. With fewer than two usable bots the
            result is empty, rated HIGH, and not cached.
            A bot id supplied twice keeps its first series.
        """
        lookback = lookback_days or self.settings.default_lookback_days

        if not force_refresh:
            cached = self.cache.get(lookback)
            if cached is not None:
                logger.debug(f"Correlation cache hit for {lookback} day lookback")
                return cached

        logger.info(f"Analyzing correlations with {lookback} day lookback")

        bot_returns: list[BotReturns] = []
        seen: set[BotId] = set()
        for br in self.returns_provider(lookback):
            if br.bot_id in seen:
                logger.warning(f"Duplicate return series for {br.bot_id}; keeping the first")
                continue
            seen.add(br.bot_id)
            if br.sample_count >= self.settings.min_samples:
                bot_returns.append(br)

        if len(bot_returns) < 2:
            logger.info(f"Only {len(bot_returns)} bots with enough returns; skipping matrix")
            return self._empty_result(bot_returns, lookback)

        frame = align_returns(bot_returns, lookback)
        matrix = calculate_correlation_matrix(frame, min_samples=self.settings.min_samples)
        matrix.setflags(write=False)

        pairs = find_high_correlation_pairs(
            matrix, bot_returns, self.settings.high_correlation_threshold
        )
        clusters = find_correlation_clusters(matrix, bot_returns, self.settings.cluster_threshold)
        diversification = calculate_diversification_score(bot_returns, matrix, clusters)
        portfolio_risk = calculate_portfolio_risk(matrix, clusters)

        timestamp = self._now()
        for pair in pairs:
            self.drift_history.record(pair.bot_a.id, pair.bot_b.id, pair.correlation, timestamp)

        result = CorrelationMatrixResult(
            matrix=matrix,
            bot_ids=tuple(br.bot_id for br in bot_returns),
            bot_names=tuple(br.bot_name for br in bot_returns),
            high_correlation_pairs=tuple(pairs),
            clusters=tuple(clusters),
            diversification_score=diversification,
            portfolio_risk=portfolio_risk,
            timestamp=timestamp,
            lookback_days=lookback,
        )
        self.cache.put(lookback, result)

        logger.info(
            f"Correlation analysis: {len(bot_returns)} bots, {len(pairs)} high pairs, "
            f"{len(clusters)} clusters, risk {portfolio_risk.overall_risk_level.value}, "
            f"diversification {diversification.grade}"
        )
        return result

    def get_correlation_drift(self, bot_a: BotId, bot_b: BotId) -> list[DriftSample]:
        """Recorded history for a pair, in either order."""
        return self.drift_history.get(bot_a, bot_b)

    def get_correlation_summary(self, lookback_days: int | None = None) -> CorrelationSummary:
        """
        Summarize the cached analysis without triggering a new one.

        Returns:
            CorrelationSummary; defaults (grade "N/A", risk "UNKNOWN") when
            nothing is cached for the window
        """
        lookback = lookback_days or self.settings.default_lookback_days
        result: CorrelationMatrixResult | None = self.cache.get(lookback)
        if result is None:
            return CorrelationSummary()

        return CorrelationSummary(
            last_analysis=result.timestamp,
            bot_count=len(result.bot_ids),
            avg_correlation=result.average_correlation,
            dangerous_pairs=sum(
                1 for p in result.high_correlation_pairs if p.level == CorrelationLevel.DANGEROUS
            ),
            diversification_grade=result.diversification_score.grade,
            overall_risk=result.portfolio_risk.overall_risk_level.value,
        )

    def retire_bot(self, bot_id: BotId) -> None:
        """Forget a retired bot's drift history and invalidate cached results."""
        removed = self.drift_history.forget_bot(bot_id)
        self.cache.invalidate()
        logger.info(f"Retired {bot_id} from correlation tracking ({removed} pairs dropped)")
