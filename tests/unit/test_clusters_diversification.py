"""Tests for clustering, diversification and portfolio risk."""

import numpy as np
import pytest

from fleetguard.correlation.clusters import (
    ClusterRisk,
    classify_cluster_risk,
    find_correlation_clusters,
)
from fleetguard.correlation.diversification import (
    RiskLevel,
    calculate_diversification_score,
    calculate_portfolio_risk,
    concentration_risk_for,
    get_diversification_grade,
)
from fleetguard.correlation.matrix import BotReturns, align_returns, calculate_correlation_matrix
from fleetguard.correlation.templates import RECOMMENDATION_TEMPLATES


def _bots(*archetypes: str) -> list[BotReturns]:
    return [
        BotReturns(f"bot-{i}", f"Bot {i}", "LIVE", archetype, ())
        for i, archetype in enumerate(archetypes)
    ]


def _uniform(n: int, r: float) -> np.ndarray:
    matrix = np.full((n, n), r)
    np.fill_diagonal(matrix, 1.0)
    return matrix


class TestClusterRisk:
    """Tests for cluster risk tiers."""

    @pytest.mark.parametrize(
        "size,avg,risk",
        [
            (4, 0.75, ClusterRisk.CRITICAL),
            (4, 0.7, ClusterRisk.HIGH),
            (3, 0.65, ClusterRisk.HIGH),
            (2, 0.9, ClusterRisk.MEDIUM),
            (3, 0.55, ClusterRisk.MEDIUM),
            (2, 0.5, ClusterRisk.LOW),
        ],
    )
    def test_classify(self, size, avg, risk):
        assert classify_cluster_risk(size, avg) == risk


class TestFindClusters:
    """Tests for greedy clustering."""

    def test_fixture_fleet(self, fleet_returns):
        matrix = calculate_correlation_matrix(align_returns(fleet_returns))
        clusters = find_correlation_clusters(matrix, fleet_returns)

        assert len(clusters) == 1
        cluster = clusters[0]
        assert cluster.bot_ids == ("trend-1", "trend-2")
        assert cluster.cluster_risk == ClusterRisk.MEDIUM
        assert cluster.explanation == (
            f"2 strategies with {cluster.avg_correlation * 100:.0f}% average correlation"
            " - may fail together during stress"
        )

    def test_uniform_high_correlation(self):
        bots = _bots("TREND_FOLLOW", "BREAKOUT", "SWING", "SCALP")
        (cluster,) = find_correlation_clusters(_uniform(4, 0.8), bots)

        assert cluster.size == 4
        assert cluster.avg_correlation == pytest.approx(0.8)
        assert cluster.cluster_risk == ClusterRisk.CRITICAL
        assert cluster.id == "cluster-1"

    def test_member_must_match_every_member(self):
        # 0-1 and 1-2 correlated, 0-2 not: 2 cannot join 0's cluster
        matrix = np.array(
            [
                [1.0, 0.8, 0.1],
                [0.8, 1.0, 0.8],
                [0.1, 0.8, 1.0],
            ]
        )
        clusters = find_correlation_clusters(matrix, _bots("SCALP", "SCALP", "SCALP"))

        assert [c.bot_ids for c in clusters] == [("bot-0", "bot-1")]

    def test_sorted_by_risk(self):
        matrix = np.eye(6)
        # bots 0,1 loosely correlated; bots 2..5 tightly
        matrix[0, 1] = matrix[1, 0] = 0.62
        for i in range(2, 6):
            for j in range(2, 6):
                if i != j:
                    matrix[i, j] = 0.9
        clusters = find_correlation_clusters(matrix, _bots(*["SCALP"] * 6))

        assert [c.cluster_risk for c in clusters] == [ClusterRisk.CRITICAL, ClusterRisk.MEDIUM]
        assert clusters[0].id == "cluster-2"

    def test_no_clusters(self):
        assert find_correlation_clusters(np.eye(3), _bots("SCALP", "SWING", "BREAKOUT")) == []


class TestDiversificationScore:
    """Tests for the diversification score."""

    def test_empty(self):
        result = calculate_diversification_score([], np.empty((0, 0)), [])
        assert result.score == 0.0
        assert result.grade == "F"
        assert result.recommendations == (RECOMMENDATION_TEMPLATES["empty"],)

    def test_fixture_fleet(self, fleet_returns):
        matrix = calculate_correlation_matrix(align_returns(fleet_returns))
        clusters = find_correlation_clusters(matrix, fleet_returns)
        result = calculate_diversification_score(fleet_returns, matrix, clusters)

        assert result.breakdown.archetype_diversity == pytest.approx(400 / 6)
        assert result.breakdown.cluster_penalty == 8.0
        assert result.breakdown.regime_coverage == pytest.approx(25.0)
        assert 65 <= result.score < 80
        assert result.grade == "B"
        assert RECOMMENDATION_TEMPLATES["high_avg_correlation"] in result.recommendations
        assert RECOMMENDATION_TEMPLATES["small_fleet"] in result.recommendations
        assert RECOMMENDATION_TEMPLATES["no_crisis_coverage"] not in result.recommendations

    def test_uncorrelated_diverse_fleet(self):
        bots = _bots("TREND_FOLLOW", "MEAN_REVERT", "BREAKOUT", "SCALP", "SWING", "VOLATILITY")
        result = calculate_diversification_score(bots, np.eye(6), [])

        # 30 + 40 + 40 + 9.375, clamped
        assert result.score == pytest.approx(100.0)
        assert result.grade == "A"
        assert result.recommendations == ()

    def test_cluster_penalty_capped(self):
        bots = _bots(*["SCALP"] * 12)
        matrix = _uniform(12, 0.95)
        clusters = find_correlation_clusters(matrix, bots)
        # a second CRITICAL cluster would still cap the penalty at 40
        result = calculate_diversification_score(bots, matrix, clusters + clusters)

        assert result.breakdown.cluster_penalty == 40.0
        assert RECOMMENDATION_TEMPLATES["dangerous_clusters"] in result.recommendations
        assert RECOMMENDATION_TEMPLATES["few_archetypes"] in result.recommendations

    @pytest.mark.parametrize(
        "score,grade",
        [(80, "A"), (79.9, "B"), (65, "B"), (50, "C"), (35, "D"), (34.9, "F")],
    )
    def test_grades(self, score, grade):
        assert get_diversification_grade(score) == grade


class TestPortfolioRisk:
    """Tests for the overall risk level."""

    def test_empty_matrix(self):
        risk = calculate_portfolio_risk(np.empty((0, 0)), [])
        assert risk.overall_risk_level == RiskLevel.LOW
        assert risk.concentration_risk == 0.0

    @pytest.mark.parametrize("n,expected", [(1, 70.0), (2, 70.0), (3, 40.0), (5, 20.0), (8, 10.0)])
    def test_concentration_bands(self, n, expected):
        assert concentration_risk_for(n) == expected

    def test_critical_cluster(self):
        bots = _bots(*["SCALP"] * 4)
        matrix = _uniform(4, 0.8)
        risk = calculate_portfolio_risk(matrix, find_correlation_clusters(matrix, bots))
        assert risk.overall_risk_level == RiskLevel.CRITICAL

    def test_small_correlated_fleet_is_critical(self):
        risk = calculate_portfolio_risk(_uniform(2, 0.75), [])
        assert risk.correlation_risk == pytest.approx(75.0)
        assert risk.overall_risk_level == RiskLevel.CRITICAL

    def test_large_uncorrelated_fleet_is_low(self):
        risk = calculate_portfolio_risk(np.eye(8), [])
        assert risk.correlation_risk == 0.0
        assert risk.overall_risk_level == RiskLevel.LOW

    def test_negative_correlation_floors_at_zero(self):
        matrix = np.array([[1.0, -0.9, -0.9], [-0.9, 1.0, -0.9], [-0.9, -0.9, 1.0]])
        risk = calculate_portfolio_risk(matrix, [])
        assert risk.correlation_risk == 0.0
        assert risk.overall_risk_level == RiskLevel.MODERATE

    def test_fixture_fleet(self, fleet_returns):
        matrix = calculate_correlation_matrix(align_returns(fleet_returns))
        clusters = find_correlation_clusters(matrix, fleet_returns)
        risk = calculate_portfolio_risk(matrix, clusters)

        assert risk.concentration_risk == 40.0
        assert risk.correlation_risk > 90
        assert risk.overall_risk_level == RiskLevel.HIGH
