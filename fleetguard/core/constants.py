"""
Constants for FLEETGUARD.

Default values for every formula in the governance core. These are the
reference values the web layer and operators have calibrated against;
override them through the YAML files in ``config/`` rather than editing here.
"""

from typing import Final

# =============================================================================
# BOT PRIORITY SCORE (BPS)
# =============================================================================

BPS_WEIGHTS: Final[dict[str, float]] = {
    "sharpe": 0.30,
    "profit_factor": 0.20,
    "expectancy": 0.15,
    "drawdown": 0.15,
    "reliability": 0.10,
    "health": 0.10,
}

assert abs(sum(BPS_WEIGHTS.values()) - 1.0) < 1e-9, "BPS weights must sum to 1.0"

# Reference ranges for linear rescaling to [0, 1]
SHARPE_RANGE: Final[tuple[float, float]] = (-1.0, 2.0)
PROFIT_FACTOR_RANGE: Final[tuple[float, float]] = (1.0, 1.8)
EXPECTANCY_TARGET: Final[float] = 50.0
DRAWDOWN_CAP_PCT: Final[float] = 15.0
TRADES_TARGET: Final[int] = 50

HEALTH_FACTORS: Final[dict[str, float]] = {
    "OK": 1.0,
    "WARN": 0.7,
    "DEGRADED": 0.0,
    "FROZEN": 0.0,
}

# Trust cap per lifecycle stage
STAGE_MULTIPLIERS: Final[dict[str, float]] = {
    "TRIALS": 0.50,
    "PAPER": 0.75,
    "SHADOW": 0.90,
    "CANARY": 0.95,
    "LIVE": 1.00,
}
UNKNOWN_STAGE_MULTIPLIER: Final[float] = 0.50

# Correlation penalty bounds: clamp(1 - corr, FLOOR, 1.0)
CORRELATION_PENALTY_FLOOR: Final[float] = 0.5

# Lower bound (inclusive) for each bucket; below D is F
BUCKET_THRESHOLDS: Final[dict[str, float]] = {
    "A+": 85.0,
    "A": 75.0,
    "B": 60.0,
    "C": 45.0,
    "D": 30.0,
}

# =============================================================================
# ALLOCATION
# =============================================================================

DEFAULT_CAPACITY_UNITS: Final[float] = 100.0

# Risk downscale per bucket. D is half of A.
BUCKET_RISK_MULTIPLIERS: Final[dict[str, float]] = {
    "A+": 1.00,
    "A": 1.00,
    "B": 0.85,
    "C": 0.70,
    "D": 0.50,
    "F": 0.25,
}

# Trade arbiter candidate score weights
ARBITER_WEIGHTS: Final[dict[str, float]] = {
    "priority": 0.60,
    "confidence": 0.25,
    "regime_fit": 0.15,
}

# =============================================================================
# CORRELATION
# =============================================================================

MIN_CORRELATION_SAMPLES: Final[int] = 5
DEFAULT_LOOKBACK_DAYS: Final[int] = 30
HIGH_CORRELATION_THRESHOLD: Final[float] = 0.5
CLUSTER_THRESHOLD: Final[float] = 0.6

CORRELATION_CACHE_TTL_SECONDS: Final[float] = 300.0
DRIFT_HISTORY_MAX_SAMPLES: Final[int] = 100
DRIFT_HISTORY_MAX_PAIRS: Final[int] = 500

# Diversification reference counts
REFERENCE_ARCHETYPE_COUNT: Final[int] = 6
REFERENCE_REGIME_COUNT: Final[int] = 4

CLUSTER_RISK_PENALTIES: Final[dict[str, float]] = {
    "CRITICAL": 25.0,
    "HIGH": 15.0,
    "MEDIUM": 8.0,
    "LOW": 3.0,
}
MAX_CLUSTER_PENALTY: Final[float] = 40.0

ARCHETYPE_EXPOSURES: Final[dict[str, tuple[str, ...]]] = {
    "TREND_FOLLOW": ("momentum", "directional", "trend"),
    "MEAN_REVERT": ("reversal", "range-bound", "counter-trend"),
    "BREAKOUT": ("momentum", "volatility", "directional"),
    "SCALP": ("intraday", "market-making", "short-term"),
    "SWING": ("multi-day", "intermediate", "trend"),
    "VOLATILITY": ("vix", "options", "tail-risk"),
}

ARCHETYPE_REGIMES: Final[dict[str, str]] = {
    "TREND_FOLLOW": "trending",
    "MEAN_REVERT": "ranging",
    "BREAKOUT": "volatile",
    "VOLATILITY": "crisis",
    "SCALP": "any",
    "SWING": "trending",
}

# =============================================================================
# READINESS
# =============================================================================

MARKET_DATA_LIVE_THRESHOLD_SECONDS: Final[float] = 5.0
REDIS_LATENCY_THRESHOLD_MS: Final[float] = 50.0
QUEUE_BACKLOG_THRESHOLD: Final[int] = 100
OLDEST_JOB_AGE_THRESHOLD_SECONDS: Final[float] = 300.0
AUDIT_MAX_AGE_HOURS: Final[float] = 6.0
TWO_FACTOR_MAX_AGE_HOURS: Final[float] = 24.0
