"""Tests for the capital allocation engine."""

from dataclasses import replace

import pytest

from fleetguard.allocation.engine import (
    AllocationSettings,
    BotAllocationInput,
    compute_allocations,
    compute_weights,
)
from fleetguard.core.types import HealthState, PriorityBucket, Stage


def _by_id(results):
    return {r.bot_id: r for r in results}


class TestComputeWeights:
    """Tests for score-proportional weights."""

    def test_eligible_weights_sum_to_one(self, allocation_fleet):
        weights = compute_weights(allocation_fleet)
        eligible = [w for bot_id, w in weights.items() if bot_id != "delta"]
        assert sum(eligible) == pytest.approx(1.0)

    def test_proportional_to_score(self, allocation_fleet):
        weights = compute_weights(allocation_fleet)
        assert weights["alpha"] == pytest.approx(80 / 180)
        assert weights["bravo"] == pytest.approx(60 / 180)
        assert weights["charlie"] == pytest.approx(40 / 180)

    def test_unhealthy_weight_zero(self, allocation_fleet):
        """CRITICAL: DEGRADED bot gets nothing despite the top score."""
        assert compute_weights(allocation_fleet)["delta"] == 0.0

    def test_weight_monotonic_in_score(self, allocation_fleet):
        """Raising one score, others fixed, never lowers its weight."""
        previous = -1.0
        for score in [0, 10, 30, 50, 70, 90, 100]:
            fleet = [
                replace(b, priority_score=score) if b.bot_id == "charlie" else b
                for b in allocation_fleet
            ]
            weight = compute_weights(fleet)["charlie"]
            assert weight >= previous
            previous = weight

    def test_all_zero_scores_split_evenly(self):
        fleet = [
            BotAllocationInput(f"bot-{i}", 0.0, PriorityBucket.F, Stage.PAPER, HealthState.OK)
            for i in range(4)
        ]
        weights = compute_weights(fleet)
        assert all(w == pytest.approx(0.25) for w in weights.values())

    def test_no_eligible_bots(self):
        fleet = [
            BotAllocationInput("x", 70.0, PriorityBucket.F, Stage.LIVE, HealthState.FROZEN),
        ]
        assert compute_weights(fleet) == {"x": 0.0}

    def test_empty_fleet(self):
        assert compute_weights([]) == {}


class TestComputeAllocations:
    """Tests for per-bot limits."""

    def test_output_order_matches_input(self, allocation_fleet, account_budget):
        results = compute_allocations(allocation_fleet, account_budget)
        assert [r.bot_id for r in results] == ["alpha", "bravo", "charlie", "delta"]

    def test_degraded_bot_gets_zero_limits(self, allocation_fleet, account_budget):
        delta = _by_id(compute_allocations(allocation_fleet, account_budget))["delta"]

        assert delta.eligible is False
        assert delta.weight == 0.0
        assert delta.risk_units == 0.0
        assert delta.max_contracts_dynamic == 0
        assert delta.max_risk_dollars_dynamic == 0.0
        assert "DEGRADED" in delta.reason

    def test_contracts_and_dollars(self, allocation_fleet, account_budget):
        results = _by_id(compute_allocations(allocation_fleet, account_budget))

        # alpha: floor(0.444 * 20 * 1.0) = 8, capped at min(5, 8)
        assert results["alpha"].max_contracts_dynamic == 5
        # alpha: 0.444 * 1500 = 666.67, capped at per-trade 500
        assert results["alpha"].max_risk_dollars_dynamic == pytest.approx(500.0)

        # bravo: floor(0.333 * 20 * 0.85) = 5
        assert results["bravo"].max_contracts_dynamic == 5
        assert results["bravo"].max_risk_dollars_dynamic == pytest.approx(425.0)

        # charlie: floor(0.222 * 20 * 0.5) = 2
        assert results["charlie"].max_contracts_dynamic == 2
        assert results["charlie"].max_risk_dollars_dynamic == pytest.approx(166.67)

    def test_risk_units(self, allocation_fleet, account_budget):
        results = _by_id(compute_allocations(allocation_fleet, account_budget, capacity_units=90))
        assert results["alpha"].risk_units == pytest.approx(40.0)
        assert results["bravo"].risk_units == pytest.approx(30.0)
        assert results["charlie"].risk_units == pytest.approx(20.0)

    def test_never_exceeds_account_caps(self, account_budget):
        fleet = [
            BotAllocationInput("solo", 100.0, PriorityBucket.A_PLUS, Stage.LIVE, HealthState.OK),
        ]
        (result,) = compute_allocations(fleet, account_budget)

        assert result.weight == pytest.approx(1.0)
        assert result.max_contracts_dynamic <= account_budget.max_contracts_per_trade
        assert result.max_contracts_dynamic <= account_budget.max_contracts_per_symbol
        assert result.max_risk_dollars_dynamic <= account_budget.per_trade_risk_budget_dollars

    def test_lower_bucket_never_gets_more(self, account_budget):
        """At equal weight, D receives no more than A."""
        fleet = [
            BotAllocationInput("a", 50.0, PriorityBucket.A, Stage.LIVE, HealthState.OK),
            BotAllocationInput("d", 50.0, PriorityBucket.D, Stage.LIVE, HealthState.OK),
        ]
        results = _by_id(compute_allocations(fleet, account_budget))

        assert results["d"].max_contracts_dynamic <= results["a"].max_contracts_dynamic
        assert results["d"].max_risk_dollars_dynamic <= results["a"].max_risk_dollars_dynamic
        assert results["d"].bucket_multiplier == pytest.approx(0.5 * results["a"].bucket_multiplier)

    def test_unknown_bucket_multiplier_zero(self, account_budget):
        fleet = [BotAllocationInput("z", 80.0, "Z", Stage.LIVE, HealthState.OK)]
        (result,) = compute_allocations(fleet, account_budget)
        assert result.bucket_multiplier == 0.0
        assert result.max_contracts_dynamic == 0

    def test_custom_settings(self, allocation_fleet, account_budget):
        settings = AllocationSettings(
            bucket_multipliers={"A+": 1.0, "A": 0.5, "B": 0.5, "C": 0.5, "D": 0.5, "F": 0.0},
            default_capacity_units=10.0,
        )
        results = _by_id(compute_allocations(allocation_fleet, account_budget, settings=settings))
        assert results["alpha"].bucket_multiplier == 0.5
        assert results["alpha"].risk_units == pytest.approx(4.44)

    def test_to_dict(self, allocation_fleet, account_budget):
        data = compute_allocations(allocation_fleet, account_budget)[0].to_dict()
        assert data["botId"] == "alpha"
        assert data["maxContractsDynamic"] == 5
        assert data["eligible"] is True
