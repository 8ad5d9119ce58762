"""Live readiness gate for FLEETGUARD."""

from fleetguard.readiness.gate import (
    DEFAULT_THRESHOLDS,
    Blocker,
    ComponentHealth,
    ComponentStatus,
    ExecutionBlockDecision,
    LiveReadinessInput,
    LiveReadinessResult,
    OverallStatus,
    ReadinessThresholds,
    compute_live_readiness,
    should_block_live_execution,
)
from fleetguard.readiness.templates import BLOCKER_TEMPLATES, BlockerTemplate

__all__ = [
    "BLOCKER_TEMPLATES",
    "DEFAULT_THRESHOLDS",
    "Blocker",
    "BlockerTemplate",
    "ComponentHealth",
    "ComponentStatus",
    "ExecutionBlockDecision",
    "LiveReadinessInput",
    "LiveReadinessResult",
    "OverallStatus",
    "ReadinessThresholds",
    "compute_live_readiness",
    "should_block_live_execution",
]
