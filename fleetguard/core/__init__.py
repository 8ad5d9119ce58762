"""Core types, constants, configuration, and exceptions for FLEETGUARD."""

from fleetguard.core.config import (
    AllocationConfig,
    CorrelationConfig,
    ReadinessConfig,
    ScoringConfig,
    Settings,
    get_settings,
    load_config,
)
from fleetguard.core.constants import (
    BPS_WEIGHTS,
    BUCKET_RISK_MULTIPLIERS,
    BUCKET_THRESHOLDS,
    STAGE_MULTIPLIERS,
)
from fleetguard.core.exceptions import (
    ConfigurationError,
    FleetGuardError,
    SnapshotError,
    TransitionTableError,
)
from fleetguard.core.types import (
    STAGE_ORDER,
    ExecutionMode,
    HealthState,
    PriorityBucket,
    Severity,
    Stage,
    TargetMode,
)

__all__ = [
    # Types
    "ExecutionMode",
    "HealthState",
    "PriorityBucket",
    "STAGE_ORDER",
    "Severity",
    "Stage",
    "TargetMode",
    # Constants
    "BPS_WEIGHTS",
    "BUCKET_RISK_MULTIPLIERS",
    "BUCKET_THRESHOLDS",
    "STAGE_MULTIPLIERS",
    # Config
    "AllocationConfig",
    "CorrelationConfig",
    "ReadinessConfig",
    "ScoringConfig",
    "Settings",
    "get_settings",
    "load_config",
    # Exceptions
    "ConfigurationError",
    "FleetGuardError",
    "SnapshotError",
    "TransitionTableError",
]
