"""
FLEETGUARD - Fleet Governance & Capital Allocation Engine.

Decides which trading bots in an algorithmic fleet get capital, how much
risk each may take, whether a bot may move between lifecycle stages, and
whether the platform as a whole is fit for live order execution.

Components:
    - PriorityScorer: Bot Priority Score in [0, 100] and bucket A+..F
    - AllocationEngine: per-bot contract / risk-dollar limits
    - LifecycleFSM: bot, job, runner and improvement state machines
    - CorrelationMonitor: correlation matrix, clusters, diversification
    - ReadinessGate: live/canary admission and the pre-trade block check

Design Philosophy:
    - Pure computation over caller-supplied snapshots, no I/O
    - Fail closed without raising on bad data
    - Unhealthy bots never score well and never get capital
"""

from fleetguard.core.types import (
    ExecutionMode,
    HealthState,
    PriorityBucket,
    Stage,
    TargetMode,
)

__version__ = "1.0.0"

__all__ = [
    "ExecutionMode",
    "HealthState",
    "PriorityBucket",
    "Stage",
    "TargetMode",
    "__version__",
]
