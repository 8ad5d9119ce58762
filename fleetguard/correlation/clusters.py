"""
Greedy clustering of mutually correlated bots.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

import numpy as np

from fleetguard.core.constants import CLUSTER_THRESHOLD
from fleetguard.core.types import BotId
from fleetguard.correlation.matrix import BotReturns
from fleetguard.correlation.templates import format_cluster_explanation

logger = logging.getLogger(__name__)


class ClusterRisk(str, Enum):
    """Risk tier of a cluster, from size and average correlation."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK: dict[ClusterRisk, int] = {
    ClusterRisk.LOW: 1,
    ClusterRisk.MEDIUM: 2,
    ClusterRisk.HIGH: 3,
    ClusterRisk.CRITICAL: 4,
}


@dataclass(frozen=True)
class ClusterMember:
    id: BotId
    name: str


@dataclass(frozen=True)
class CorrelationCluster:
    """Bots whose pairwise correlations all meet the cluster threshold."""

    id: str
    bots: tuple[ClusterMember, ...]
    avg_correlation: float
    cluster_risk: ClusterRisk
    explanation: str

    @property
    def size(self) -> int:
        return len(self.bots)

    @property
    def bot_ids(self) -> tuple[BotId, ...]:
        return tuple(m.id for m in self.bots)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "bots": [{"id": m.id, "name": m.name} for m in self.bots],
            "avgCorrelation": self.avg_correlation,
            "clusterRisk": self.cluster_risk.value,
            "explanation": self.explanation,
        }


def classify_cluster_risk(size: int, avg_correlation: float) -> ClusterRisk:
    """
    Risk tier for a cluster.

    CRITICAL needs 4+ members above 0.7 average, HIGH needs 3+ above 0.6,
    MEDIUM is any average above 0.5.
    """
    if size >= 4 and avg_correlation > 0.7:
        return ClusterRisk.CRITICAL
    if size >= 3 and avg_correlation > 0.6:
        return ClusterRisk.HIGH
    if avg_correlation > 0.5:
        return ClusterRisk.MEDIUM
    return ClusterRisk.LOW


def _average_pairwise(matrix: np.ndarray, members: list[int]) -> float:
    values = [
        matrix[members[a]][members[b]]
        for a in range(len(members))
        for b in range(a + 1, len(members))
    ]
    return float(np.mean(values)) if values else 0.0


def find_correlation_clusters(
    matrix: np.ndarray,
    bot_returns: Sequence[BotReturns],
    threshold: float = CLUSTER_THRESHOLD,
) -> list[CorrelationCluster]:
    """
    Single greedy pass over bots in index order.

    Each unvisited bot seeds a cluster; a later unvisited bot joins only if
    its correlation to every current member is at least ``threshold``.
    Clusters of one are discarded.

    Args:
        matrix: Correlation matrix in ``bot_returns`` order
        bot_returns: Bots the matrix was built from
        threshold: Minimum pairwise correlation to join

    Returns:
        Clusters sorted by risk tier, highest first
    """
    n = len(matrix)
    visited: set[int] = set()
    clusters: list[CorrelationCluster] = []

    for i in range(n):
        if i in visited:
            continue

        members = [i]
        visited.add(i)

        for j in range(i + 1, n):
            if j in visited:
                continue
            if all(matrix[m][j] >= threshold for m in members):
                members.append(j)
                visited.add(j)

        if len(members) < 2:
            continue

        avg_correlation = _average_pairwise(matrix, members)
        clusters.append(
            CorrelationCluster(
                id=f"cluster-{len(clusters) + 1}",
                bots=tuple(
                    ClusterMember(bot_returns[m].bot_id, bot_returns[m].bot_name)
                    for m in members
                ),
                avg_correlation=avg_correlation,
                cluster_risk=classify_cluster_risk(len(members), avg_correlation),
                explanation=format_cluster_explanation(len(members), avg_correlation),
            )
        )

    if clusters:
        logger.debug(f"Found {len(clusters)} correlation clusters")

    return sorted(clusters, key=lambda c: -c.cluster_risk.rank)
