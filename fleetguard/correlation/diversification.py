"""
Diversification score and portfolio-level correlation risk.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from fleetguard.core.constants import (
    ARCHETYPE_REGIMES,
    CLUSTER_RISK_PENALTIES,
    MAX_CLUSTER_PENALTY,
    REFERENCE_ARCHETYPE_COUNT,
    REFERENCE_REGIME_COUNT,
)
from fleetguard.correlation.clusters import ClusterRisk, CorrelationCluster
from fleetguard.correlation.matrix import BotReturns
from fleetguard.correlation.templates import RECOMMENDATION_TEMPLATES

logger = logging.getLogger(__name__)


class RiskLevel(str, Enum):
    """Overall portfolio correlation risk."""

    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class DiversificationBreakdown:
    archetype_diversity: float = 0.0
    correlation_penalty: float = 0.0
    cluster_penalty: float = 0.0
    regime_coverage: float = 0.0

    def to_dict(self) -> dict:
        return {
            "archetypeDiversity": self.archetype_diversity,
            "correlationPenalty": self.correlation_penalty,
            "clusterPenalty": self.cluster_penalty,
            "regimeCoverage": self.regime_coverage,
        }


@dataclass(frozen=True)
class DiversificationScore:
    """0-100 diversification score with grade and recommendations."""

    score: float
    grade: str
    breakdown: DiversificationBreakdown
    recommendations: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "score": self.score,
            "grade": self.grade,
            "breakdown": self.breakdown.to_dict(),
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class PortfolioRisk:
    """Concentration and correlation risk rolled into one level."""

    concentration_risk: float
    correlation_risk: float
    overall_risk_level: RiskLevel

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "concentrationRisk": self.concentration_risk,
            "correlationRisk": self.correlation_risk,
            "overallRiskLevel": self.overall_risk_level.value,
        }


def _upper_triangle(matrix: np.ndarray) -> np.ndarray:
    m = np.asarray(matrix, dtype=float)
    if m.ndim != 2 or m.shape[0] < 2:
        return np.empty(0)
    return m[np.triu_indices(m.shape[0], k=1)]


def get_diversification_grade(score: float) -> str:
    """A >= 80, B >= 65, C >= 50, D >= 35, else F."""
    if score >= 80:
        return "A"
    if score >= 65:
        return "B"
    if score >= 50:
        return "C"
    if score >= 35:
        return "D"
    return "F"


def calculate_diversification_score(
    bot_returns: Sequence[BotReturns],
    matrix: np.ndarray,
    clusters: Sequence[CorrelationCluster],
) -> DiversificationScore:
    """
    Composite diversification score.

    Combines archetype diversity (x0.3), 40 less the average |r| x 40,
    40 less the capped cluster penalty, and regime coverage (x0.3).

    Args:
        bot_returns: Bots in the analysis
        matrix: Their correlation matrix
        clusters: Clusters found in the matrix

    Returns:
        DiversificationScore clamped to [0, 100]
    """
    if not bot_returns:
        return DiversificationScore(
            score=0.0,
            grade="F",
            breakdown=DiversificationBreakdown(),
            recommendations=(RECOMMENDATION_TEMPLATES["empty"],),
        )

    archetypes = {br.archetype for br in bot_returns}
    archetype_diversity = min(100.0, len(archetypes) / REFERENCE_ARCHETYPE_COUNT * 100)

    pairs = _upper_triangle(matrix)
    avg_abs_correlation = float(np.mean(np.abs(pairs))) if pairs.size else 0.0
    correlation_penalty = avg_abs_correlation * 40

    cluster_penalty = min(
        MAX_CLUSTER_PENALTY,
        sum(CLUSTER_RISK_PENALTIES[c.cluster_risk.value] for c in clusters),
    )

    covered_regimes = {
        ARCHETYPE_REGIMES[br.archetype] for br in bot_returns if br.archetype in ARCHETYPE_REGIMES
    }
    regime_coverage = len(covered_regimes) / REFERENCE_REGIME_COUNT * 25

    raw = (
        archetype_diversity * 0.3
        + (40 - correlation_penalty)
        + (40 - cluster_penalty)
        + regime_coverage * 0.3
    )
    score = max(0.0, min(100.0, raw))

    recommendations: list[str] = []
    if len(archetypes) < 3:
        recommendations.append(RECOMMENDATION_TEMPLATES["few_archetypes"])
    if avg_abs_correlation > 0.5:
        recommendations.append(RECOMMENDATION_TEMPLATES["high_avg_correlation"])
    if any(c.cluster_risk in (ClusterRisk.CRITICAL, ClusterRisk.HIGH) for c in clusters):
        recommendations.append(RECOMMENDATION_TEMPLATES["dangerous_clusters"])
    if "crisis" not in covered_regimes:
        recommendations.append(RECOMMENDATION_TEMPLATES["no_crisis_coverage"])
    if len(bot_returns) < 5:
        recommendations.append(RECOMMENDATION_TEMPLATES["small_fleet"])

    return DiversificationScore(
        score=score,
        grade=get_diversification_grade(score),
        breakdown=DiversificationBreakdown(
            archetype_diversity=archetype_diversity,
            correlation_penalty=correlation_penalty,
            cluster_penalty=cluster_penalty,
            regime_coverage=regime_coverage,
        ),
        recommendations=tuple(recommendations),
    )


def concentration_risk_for(bot_count: int) -> float:
    """Fewer bots means higher concentration risk (bands at 3/5/8)."""
    if bot_count < 3:
        return 70.0
    if bot_count < 5:
        return 40.0
    if bot_count < 8:
        return 20.0
    return 10.0


def calculate_portfolio_risk(
    matrix: np.ndarray,
    clusters: Sequence[CorrelationCluster],
) -> PortfolioRisk:
    """
    Portfolio-level risk from fleet size, max pairwise correlation and clusters.

    Args:
        matrix: Correlation matrix
        clusters: Clusters found in the matrix

    Returns:
        PortfolioRisk
    """
    n = len(matrix)
    if n == 0:
        return PortfolioRisk(0.0, 0.0, RiskLevel.LOW)

    concentration_risk = concentration_risk_for(n)

    pairs = _upper_triangle(matrix)
    max_corr = max(0.0, float(pairs.max())) if pairs.size else 0.0
    correlation_risk = max_corr * 100

    has_critical = any(c.cluster_risk == ClusterRisk.CRITICAL for c in clusters)
    has_high = any(c.cluster_risk == ClusterRisk.HIGH for c in clusters)

    if has_critical or (concentration_risk > 60 and correlation_risk > 70):
        level = RiskLevel.CRITICAL
    elif has_high or concentration_risk > 50 or correlation_risk > 60:
        level = RiskLevel.HIGH
    elif concentration_risk > 30 or correlation_risk > 40:
        level = RiskLevel.MODERATE
    else:
        level = RiskLevel.LOW

    return PortfolioRisk(concentration_risk, correlation_risk, level)
