"""
Pytest configuration and fixtures for FLEETGUARD tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from fleetguard.allocation.engine import AccountBudget, BotAllocationInput
from fleetguard.core.types import HealthState, PriorityBucket, Stage, TargetMode
from fleetguard.correlation.matrix import BotReturns
from fleetguard.readiness.gate import LiveReadinessInput
from fleetguard.scoring.formula import BPSInputs


@pytest.fixture
def as_of() -> datetime:
    """Standard evaluation timestamp."""
    return datetime(2024, 6, 3, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def paper_inputs() -> BPSInputs:
    """Reference PAPER bot (BPS 51.75, bucket C)."""
    return BPSInputs(
        sharpe_30d=1.0,
        profit_factor_30d=1.4,
        expectancy_30d=30.0,
        max_dd_pct_30d=5.0,
        trades_30d=50,
        health_state=HealthState.OK,
        stage=Stage.PAPER,
    )


@pytest.fixture
def account_budget() -> AccountBudget:
    """Mid-sized futures account."""
    return AccountBudget(
        account_id="acct-1",
        balance=50_000.0,
        per_trade_risk_budget_dollars=500.0,
        daily_risk_budget_dollars=1_500.0,
        max_contracts_per_trade=5,
        max_contracts_per_symbol=8,
        max_total_exposure_contracts=20,
    )


@pytest.fixture
def allocation_fleet() -> list[BotAllocationInput]:
    """Three healthy bots and one DEGRADED bot."""
    return [
        BotAllocationInput("alpha", 80.0, PriorityBucket.A, Stage.LIVE, HealthState.OK),
        BotAllocationInput("bravo", 60.0, PriorityBucket.B, Stage.CANARY, HealthState.OK),
        BotAllocationInput("charlie", 40.0, PriorityBucket.D, Stage.PAPER, HealthState.WARN),
        BotAllocationInput("delta", 90.0, PriorityBucket.F, Stage.LIVE, HealthState.DEGRADED),
    ]


@pytest.fixture
def healthy_readiness(as_of: datetime) -> LiveReadinessInput:
    """Every readiness signal healthy, targeting LIVE."""
    return LiveReadinessInput(
        as_of=as_of,
        require_2fa=True,
        last_2fa_at=as_of - timedelta(hours=2),
        no_mock_data=True,
        mock_data_detected=False,
        emergency_mode_active=False,
        redis_healthy=True,
        redis_latency_ms=5.0,
        market_data_live_healthy=True,
        market_data_live_staleness_seconds=1.0,
        market_data_historical_available=True,
        broker_validated=True,
        broker_auth_ok=True,
        queue_backlog_count=3,
        oldest_job_age_seconds=30.0,
        critical_alert_count=0,
        last_audit_status="PASS",
        last_audit_at=as_of - timedelta(hours=1),
        stalled_bot_count=0,
        degraded_bot_count=0,
        live_bot_count=2,
        risk_engine_loaded=True,
        target_mode=TargetMode.LIVE,
    )


@pytest.fixture
def trading_dates() -> list[str]:
    """Ten consecutive weekdays."""
    return [
        "2024-05-20", "2024-05-21", "2024-05-22", "2024-05-23", "2024-05-24",
        "2024-05-27", "2024-05-28", "2024-05-29", "2024-05-30", "2024-05-31",
    ]


@pytest.fixture
def fleet_returns(trading_dates: list[str]) -> list[BotReturns]:
    """
    Four bots: two near-identical trend bots, a mirror-image mean reverter,
    and an unrelated volatility bot.
    """
    base = [0.5, -0.2, 0.8, 0.1, -0.4, 0.9, 0.3, -0.6, 0.7, 0.2]
    noisy = [0.6, -0.1, 0.7, 0.2, -0.5, 0.8, 0.4, -0.5, 0.6, 0.3]
    mirror = [-r for r in base]
    unrelated = [0.2, 0.2, 0.1, -0.3, 0.1, 0.0, -0.2, 0.0, -0.1, 0.3]
    return [
        BotReturns("trend-1", "Trend 1", "LIVE", "TREND_FOLLOW", tuple(base), tuple(trading_dates)),
        BotReturns("trend-2", "Trend 2", "LIVE", "BREAKOUT", tuple(noisy), tuple(trading_dates)),
        BotReturns("revert-1", "Revert 1", "PAPER", "MEAN_REVERT", tuple(mirror), tuple(trading_dates)),
        BotReturns("vol-1", "Vol 1", "PAPER", "VOLATILITY", tuple(unrelated), tuple(trading_dates)),
    ]
