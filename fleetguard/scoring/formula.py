"""
Bot Priority Score (BPS) formula.

Formula:
    BPS_raw = 100 * (0.30*S + 0.20*P + 0.15*E + 0.15*D + 0.10*R + 0.10*H)
    BPS     = round(BPS_raw * stage_multiplier * correlation_multiplier, 2)

Where each component is clamped and rescaled to [0, 1]:
    S = sharpe over (-1 .. 2)
    P = profit factor over (1 .. 1.8)
    E = expectancy over (0 .. expectancy_target)
    D = 1 - drawdown / dd_cap_pct
    R = trades / trades_target (sample-size reliability)
    H = OK 1.0, WARN 0.7, DEGRADED / FROZEN 0.0

The score drives capital weight, arbiter ranking and runner queue priority.
It is pure: missing metrics default to neutral values and nothing raises.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from fleetguard.core.constants import (
    BPS_WEIGHTS,
    BUCKET_THRESHOLDS,
    CORRELATION_PENALTY_FLOOR,
    DRAWDOWN_CAP_PCT,
    EXPECTANCY_TARGET,
    HEALTH_FACTORS,
    PROFIT_FACTOR_RANGE,
    SHARPE_RANGE,
    STAGE_MULTIPLIERS,
    TRADES_TARGET,
    UNKNOWN_STAGE_MULTIPLIER,
)
from fleetguard.core.types import HealthState, PriorityBucket, Stage
from fleetguard.normalization.methods import clamp, inverse_rescale, linear_rescale

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BPSInputs:
    """
    Rolling 30-day performance snapshot for one bot.

    Ephemeral: recomputed every evaluation cycle, never persisted.
    """

    sharpe_30d: float | None = None
    profit_factor_30d: float | None = None
    expectancy_30d: float | None = None
    max_dd_pct_30d: float | None = None
    trades_30d: int | None = 0
    health_state: HealthState | str = HealthState.OK
    stage: Stage | str = Stage.TRIALS
    correlation_to_portfolio: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BPSInputs":
        """Build inputs from either snake_case or the web layer's camelCase keys."""

        def pick(snake: str, camel: str, default: Any = None) -> Any:
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        return cls(
            sharpe_30d=pick("sharpe_30d", "sharpe30D"),
            profit_factor_30d=pick("profit_factor_30d", "profitFactor30D"),
            expectancy_30d=pick("expectancy_30d", "expectancy30D"),
            max_dd_pct_30d=pick("max_dd_pct_30d", "maxDdPct30D"),
            trades_30d=pick("trades_30d", "trades30D", 0),
            health_state=pick("health_state", "healthState", HealthState.OK),
            stage=pick("stage", "stage", Stage.TRIALS),
            correlation_to_portfolio=pick(
                "correlation_to_portfolio", "correlationToPortfolio"
            ),
        )


@dataclass(frozen=True)
class BPSSettings:
    """Tunable parameters of the BPS formula."""

    expectancy_target: float = EXPECTANCY_TARGET
    dd_cap_pct: float = DRAWDOWN_CAP_PCT
    trades_target: float = TRADES_TARGET
    weights: dict[str, float] = field(default_factory=lambda: dict(BPS_WEIGHTS))
    stage_multipliers: dict[str, float] = field(
        default_factory=lambda: dict(STAGE_MULTIPLIERS)
    )
    bucket_thresholds: dict[str, float] = field(
        default_factory=lambda: dict(BUCKET_THRESHOLDS)
    )


DEFAULT_BPS_SETTINGS = BPSSettings()


@dataclass(frozen=True)
class ComponentScore:
    """One BPS sub-metric: its raw input, normalized value and weighted share."""

    name: str
    raw: Any
    normalized: float
    weight: float

    @property
    def weighted(self) -> float:
        """weight * normalized."""
        return self.weight * self.normalized


@dataclass(frozen=True)
class BPSBreakdown:
    """
    Full audit trail of one BPS evaluation.

    ``bps_final`` is produced by ``compute_bps`` itself, so the breakdown
    can never disagree with the score the rest of the system sees.
    """

    components: tuple[ComponentScore, ...]
    stage: str
    stage_multiplier: float
    correlation_to_portfolio: float | None
    correlation_multiplier: float
    bps_raw: float
    bps_final: float
    bucket: PriorityBucket

    def component(self, name: str) -> ComponentScore:
        """Look up a component by name."""
        for c in self.components:
            if c.name == name:
                return c
        raise KeyError(name)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "components": {
                c.name: {
                    "raw": c.raw,
                    "normalized": c.normalized,
                    "weighted": c.weighted,
                }
                for c in self.components
            },
            "multipliers": {
                "stage": {"value": self.stage, "multiplier": self.stage_multiplier},
                "correlation": {
                    "value": self.correlation_to_portfolio,
                    "multiplier": self.correlation_multiplier,
                },
            },
            "bpsRaw": self.bps_raw,
            "bpsFinal": self.bps_final,
            "bucket": self.bucket.value,
        }


def _enum_value(value: Any) -> str:
    """Wire string of an enum member or plain string."""
    return value.value if hasattr(value, "value") else str(value)


def health_factor(health_state: HealthState | str) -> float:
    """Discrete health factor; unknown health counts as unhealthy."""
    return HEALTH_FACTORS.get(_enum_value(health_state).upper(), 0.0)


def stage_multiplier(stage: Stage | str, settings: BPSSettings = DEFAULT_BPS_SETTINGS) -> float:
    """Trust cap for a lifecycle stage."""
    return settings.stage_multipliers.get(
        _enum_value(stage).upper(), UNKNOWN_STAGE_MULTIPLIER
    )


def correlation_multiplier(correlation_to_portfolio: float | None) -> float:
    """clamp(1 - corr, 0.5, 1.0); no penalty when correlation is unknown."""
    if correlation_to_portfolio is None:
        return 1.0
    return clamp(1.0 - correlation_to_portfolio, CORRELATION_PENALTY_FLOOR, 1.0)


def normalize_components(
    inputs: BPSInputs,
    settings: BPSSettings = DEFAULT_BPS_SETTINGS,
) -> tuple[ComponentScore, ...]:
    """
    Normalize the six BPS sub-metrics.

    Missing values take neutral defaults: sharpe 0, profit factor 1,
    expectancy 0, drawdown 0, trades 0.
    """
    w = settings.weights
    sharpe = inputs.sharpe_30d if inputs.sharpe_30d is not None else 0.0
    pf = inputs.profit_factor_30d if inputs.profit_factor_30d is not None else 1.0
    expectancy = inputs.expectancy_30d if inputs.expectancy_30d is not None else 0.0
    drawdown = inputs.max_dd_pct_30d if inputs.max_dd_pct_30d is not None else 0.0
    trades = inputs.trades_30d if inputs.trades_30d is not None else 0

    return (
        ComponentScore("sharpe", inputs.sharpe_30d, linear_rescale(sharpe, *SHARPE_RANGE), w["sharpe"]),
        ComponentScore(
            "profit_factor",
            inputs.profit_factor_30d,
            linear_rescale(pf, *PROFIT_FACTOR_RANGE),
            w["profit_factor"],
        ),
        ComponentScore(
            "expectancy",
            inputs.expectancy_30d,
            linear_rescale(expectancy, 0.0, settings.expectancy_target),
            w["expectancy"],
        ),
        ComponentScore(
            "drawdown",
            inputs.max_dd_pct_30d,
            inverse_rescale(drawdown, settings.dd_cap_pct),
            w["drawdown"],
        ),
        ComponentScore(
            "reliability",
            inputs.trades_30d,
            linear_rescale(float(trades), 0.0, settings.trades_target),
            w["reliability"],
        ),
        ComponentScore(
            "health",
            _enum_value(inputs.health_state),
            health_factor(inputs.health_state),
            w["health"],
        ),
    )


def compute_bps(
    inputs: BPSInputs,
    settings: BPSSettings = DEFAULT_BPS_SETTINGS,
) -> float:
    """
    Compute the Bot Priority Score.

    Args:
        inputs: Rolling performance, health and stage of one bot
        settings: Formula parameters

    Returns:
        Score in [0, 100], rounded to 2 decimals
    """
    components = normalize_components(inputs, settings)
    bps_raw = 100.0 * sum(c.weighted for c in components)
    bps = (
        bps_raw
        * stage_multiplier(inputs.stage, settings)
        * correlation_multiplier(inputs.correlation_to_portfolio)
    )
    return round(bps, 2)


def get_bucket(
    score: float,
    health_state: HealthState | str,
    thresholds: dict[str, float] | None = None,
) -> PriorityBucket:
    """
    Map a BPS score to its letter bucket.

    DEGRADED and FROZEN health force F regardless of the score.
    """
    health = HealthState.parse(health_state)
    if health is not None and health.is_unhealthy:
        return PriorityBucket.F

    t = thresholds or BUCKET_THRESHOLDS
    if score >= t["A+"]:
        return PriorityBucket.A_PLUS
    elif score >= t["A"]:
        return PriorityBucket.A
    elif score >= t["B"]:
        return PriorityBucket.B
    elif score >= t["C"]:
        return PriorityBucket.C
    elif score >= t["D"]:
        return PriorityBucket.D
    else:
        return PriorityBucket.F


def compute_bps_breakdown(
    inputs: BPSInputs,
    settings: BPSSettings = DEFAULT_BPS_SETTINGS,
) -> BPSBreakdown:
    """
    Expose every normalized component and multiplier behind a score.

    Args:
        inputs: Rolling performance, health and stage of one bot
        settings: Formula parameters

    Returns:
        BPSBreakdown whose bps_final equals compute_bps(inputs, settings)
    """
    components = normalize_components(inputs, settings)
    bps_final = compute_bps(inputs, settings)
    breakdown = BPSBreakdown(
        components=components,
        stage=_enum_value(inputs.stage),
        stage_multiplier=stage_multiplier(inputs.stage, settings),
        correlation_to_portfolio=inputs.correlation_to_portfolio,
        correlation_multiplier=correlation_multiplier(inputs.correlation_to_portfolio),
        bps_raw=100.0 * sum(c.weighted for c in components),
        bps_final=bps_final,
        bucket=get_bucket(bps_final, inputs.health_state, settings.bucket_thresholds),
    )
    logger.debug(
        f"BPS breakdown: raw={breakdown.bps_raw:.2f} "
        f"stage={breakdown.stage}x{breakdown.stage_multiplier:.2f} "
        f"corr x{breakdown.correlation_multiplier:.2f} -> {bps_final:.2f}"
    )
    return breakdown
