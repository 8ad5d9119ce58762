"""Tests for the correlation monitor."""

from datetime import datetime, timedelta, timezone

import pytest

from fleetguard.core.config import Settings
from fleetguard.correlation.cache import CorrelationCache, DriftHistory
from fleetguard.correlation.diversification import RiskLevel
from fleetguard.correlation.matrix import BotReturns
from fleetguard.correlation.monitor import (
    CorrelationMonitor,
    CorrelationSettings,
    CorrelationSummary,
)


class FakeProvider:
    """Returns a fixed fleet and records each lookback requested."""

    def __init__(self, bots):
        self.bots = list(bots)
        self.calls: list[int] = []

    def __call__(self, lookback_days: int):
        self.calls.append(lookback_days)
        return self.bots


class SteppingNow:
    """Wall clock that advances one minute per read."""

    def __init__(self):
        self.current = datetime(2024, 6, 3, 14, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(minutes=1)
        return self.current


@pytest.fixture
def clock():
    class Clock:
        now = 0.0

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def monitor_parts(fleet_returns, clock):
    provider = FakeProvider(fleet_returns)
    cache = CorrelationCache(ttl_seconds=300, clock=clock)
    history = DriftHistory()
    monitor = CorrelationMonitor(provider, cache=cache, drift_history=history, now=SteppingNow())
    return monitor, provider, cache, history


class TestAnalyze:
    """Tests for the full analysis."""

    def test_result_contents(self, monitor_parts):
        monitor, provider, _, _ = monitor_parts
        result = monitor.analyze_correlations()

        assert provider.calls == [30]
        assert result.bot_ids == ("trend-1", "trend-2", "revert-1", "vol-1")
        assert result.matrix.shape == (4, 4)
        assert len(result.high_correlation_pairs) == 3
        assert [c.bot_ids for c in result.clusters] == [("trend-1", "trend-2")]
        assert result.portfolio_risk.overall_risk_level == RiskLevel.HIGH
        assert result.lookback_days == 30

    def test_matrix_is_read_only(self, monitor_parts):
        monitor, _, _, _ = monitor_parts
        result = monitor.analyze_correlations()
        with pytest.raises(ValueError):
            result.matrix[0, 1] = 0.0

    def test_repeated_bot_id_keeps_first_series(self):
        up = (0.1, 0.2, 0.3, 0.4, 0.5, 0.6)
        provider = FakeProvider(
            [
                BotReturns("b1", "B1", "LIVE", "TREND_FOLLOW", up),
                BotReturns("b1", "B1", "LIVE", "TREND_FOLLOW", tuple(reversed(up))),
                BotReturns("b2", "B2", "LIVE", "BREAKOUT", up),
            ]
        )
        monitor = CorrelationMonitor(
            provider, cache=CorrelationCache(), drift_history=DriftHistory(), now=SteppingNow()
        )

        result = monitor.analyze_correlations()

        assert result.bot_ids == ("b1", "b2")
        assert result.matrix.shape == (2, 2)
        assert result.matrix[0, 1] == pytest.approx(1.0)
        assert result.high_correlation_pairs[0].bot_a.id == "b1"

    def test_unparseable_dates_do_not_raise(self):
        up = (0.1, 0.2, 0.3, 0.4, 0.5)
        dates = tuple(f"2024-05-{day}" for day in range(20, 25))
        provider = FakeProvider(
            [
                BotReturns("a", "A", "LIVE", "SCALP", up, ("x",) * 5),
                BotReturns("b", "B", "LIVE", "SCALP", up, dates),
                BotReturns("c", "C", "LIVE", "SCALP", tuple(reversed(up)), dates),
            ]
        )
        monitor = CorrelationMonitor(
            provider, cache=CorrelationCache(), drift_history=DriftHistory(), now=SteppingNow()
        )

        result = monitor.analyze_correlations()

        assert result.bot_ids == ("a", "b", "c")
        assert result.matrix[0, 1] == 0.0
        assert result.matrix[1, 2] == pytest.approx(-1.0)

    def test_correlation_between(self, monitor_parts):
        monitor, _, _, _ = monitor_parts
        result = monitor.analyze_correlations()

        assert result.correlation_between("trend-1", "revert-1") == pytest.approx(-1.0)
        assert result.correlation_between("trend-1", "ghost") is None

    def test_cached_within_ttl(self, monitor_parts, clock):
        monitor, provider, _, _ = monitor_parts
        first = monitor.analyze_correlations()
        clock.now = 120.0
        second = monitor.analyze_correlations()

        assert second is first
        assert provider.calls == [30]

    def test_recomputed_after_ttl(self, monitor_parts, clock):
        monitor, provider, _, _ = monitor_parts
        first = monitor.analyze_correlations()
        clock.now = 300.0
        second = monitor.analyze_correlations()

        assert second is not first
        assert len(provider.calls) == 2

    def test_force_refresh(self, monitor_parts):
        monitor, provider, _, _ = monitor_parts
        monitor.analyze_correlations()
        monitor.analyze_correlations(force_refresh=True)
        assert len(provider.calls) == 2

    def test_lookback_keys_cache(self, monitor_parts):
        monitor, provider, _, _ = monitor_parts
        monitor.analyze_correlations(lookback_days=30)
        result = monitor.analyze_correlations(lookback_days=60)
        assert provider.calls == [30, 60]
        assert result.lookback_days == 60

    def test_fewer_than_two_bots_not_cached(self, fleet_returns, clock):
        provider = FakeProvider(fleet_returns[:1])
        cache = CorrelationCache(clock=clock)
        monitor = CorrelationMonitor(provider, cache=cache)

        result = monitor.analyze_correlations()

        assert result.matrix.shape == (0, 0)
        assert result.portfolio_risk.concentration_risk == 100.0
        assert result.portfolio_risk.overall_risk_level == RiskLevel.HIGH
        assert len(cache) == 0

    def test_short_series_filtered(self, fleet_returns):
        short = BotReturns("new-1", "New", "PAPER", "SCALP", (0.1, 0.2, 0.3))
        monitor = CorrelationMonitor(FakeProvider([*fleet_returns, short]))

        result = monitor.analyze_correlations()

        assert "new-1" not in result.bot_ids

    def test_custom_thresholds(self, fleet_returns):
        settings = CorrelationSettings(high_correlation_threshold=0.99, cluster_threshold=0.99)
        monitor = CorrelationMonitor(FakeProvider(fleet_returns), settings=settings)

        result = monitor.analyze_correlations()

        assert [(p.bot_a.id, p.bot_b.id) for p in result.high_correlation_pairs] == [
            ("trend-1", "revert-1")
        ]
        assert result.clusters == ()


class TestDriftAndSummary:
    """Tests for drift tracking, summary and retirement."""

    def test_drift_recorded_per_run(self, monitor_parts):
        monitor, _, _, _ = monitor_parts
        monitor.analyze_correlations()
        monitor.analyze_correlations(force_refresh=True)

        drift = monitor.get_correlation_drift("trend-2", "trend-1")
        assert len(drift) == 2
        assert drift[0].timestamp < drift[1].timestamp
        assert monitor.get_correlation_drift("trend-1", "vol-1") == []

    def test_summary_without_analysis(self, monitor_parts):
        monitor, provider, _, _ = monitor_parts
        assert monitor.get_correlation_summary() == CorrelationSummary()
        assert provider.calls == []

    def test_summary_after_analysis(self, monitor_parts):
        monitor, _, _, _ = monitor_parts
        result = monitor.analyze_correlations()
        summary = monitor.get_correlation_summary()

        assert summary.last_analysis == result.timestamp
        assert summary.bot_count == 4
        assert summary.dangerous_pairs == 1
        assert summary.diversification_grade == "B"
        assert summary.overall_risk == "HIGH"
        assert summary.avg_correlation == pytest.approx(result.average_correlation)

    def test_retire_bot(self, monitor_parts):
        monitor, _, cache, history = monitor_parts
        monitor.analyze_correlations()

        monitor.retire_bot("trend-1")

        assert monitor.get_correlation_drift("trend-1", "trend-2") == []
        assert history.pair_count == 1
        assert len(cache) == 0

    def test_from_settings(self, fleet_returns):
        app_settings = Settings(
            CORRELATION_CACHE_TTL_SECONDS=10,
            DRIFT_HISTORY_MAX_SAMPLES=5,
            DRIFT_HISTORY_MAX_PAIRS=7,
        )
        monitor = CorrelationMonitor.from_settings(FakeProvider(fleet_returns), app_settings)

        assert monitor.cache.ttl_seconds == 10
        assert monitor.drift_history.max_samples == 5
        assert monitor.drift_history.max_pairs == 7
