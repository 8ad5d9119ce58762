"""Cross-strategy correlation monitoring for FLEETGUARD."""

from fleetguard.correlation.cache import CorrelationCache, DriftHistory, DriftSample
from fleetguard.correlation.clusters import (
    ClusterRisk,
    CorrelationCluster,
    classify_cluster_risk,
    find_correlation_clusters,
)
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
from fleetguard.correlation.monitor import (
    CorrelationMatrixResult,
    CorrelationMonitor,
    CorrelationSettings,
    CorrelationSummary,
)
from fleetguard.correlation.pearson import (
    CorrelationLevel,
    calculate_pearson_correlation,
    calculate_risk_multiplier,
    classify_correlation,
    find_shared_exposure,
)

__all__ = [
    "BotReturns",
    "ClusterRisk",
    "CorrelationCache",
    "CorrelationCluster",
    "CorrelationLevel",
    "CorrelationMatrixResult",
    "CorrelationMonitor",
    "CorrelationSettings",
    "CorrelationSummary",
    "DiversificationScore",
    "DriftHistory",
    "DriftSample",
    "PairCorrelation",
    "PortfolioRisk",
    "RiskLevel",
    "align_returns",
    "calculate_correlation_matrix",
    "calculate_diversification_score",
    "calculate_pearson_correlation",
    "calculate_portfolio_risk",
    "calculate_risk_multiplier",
    "classify_cluster_risk",
    "classify_correlation",
    "find_correlation_clusters",
    "find_high_correlation_pairs",
    "find_shared_exposure",
]
