"""
Core type definitions for FLEETGUARD.

Shared enums used across scoring, allocation, lifecycle and readiness.
Every enum is a ``str`` enum so its value is the stable wire string the
web layer and the pre-trade gate key on.
"""

from enum import Enum
from typing import TypeAlias


class HealthState(str, Enum):
    """
    Bot health signal supplied by upstream collectors.

    DEGRADED and FROZEN gate both scoring (bucket F) and allocation (weight 0).
    """

    OK = "OK"
    WARN = "WARN"
    DEGRADED = "DEGRADED"
    FROZEN = "FROZEN"

    @property
    def is_unhealthy(self) -> bool:
        """Whether the bot must be excluded from scoring and allocation."""
        return self in (HealthState.DEGRADED, HealthState.FROZEN)

    @classmethod
    def parse(cls, value: "HealthState | str | None") -> "HealthState | None":
        """Coerce a wire string to a HealthState, returning None if unknown."""
        if value is None or isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return None


class Stage(str, Enum):
    """Lifecycle tier of a bot, in promotion order."""

    TRIALS = "TRIALS"
    PAPER = "PAPER"
    SHADOW = "SHADOW"
    CANARY = "CANARY"
    LIVE = "LIVE"

    @property
    def tier(self) -> int:
        """Zero-based position on the promotion ladder."""
        return STAGE_ORDER.index(self)


STAGE_ORDER: tuple[Stage, ...] = (
    Stage.TRIALS,
    Stage.PAPER,
    Stage.SHADOW,
    Stage.CANARY,
    Stage.LIVE,
)


class PriorityBucket(str, Enum):
    """Letter grade derived from the Bot Priority Score."""

    A_PLUS = "A+"
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class ExecutionMode(str, Enum):
    """How a bot's orders are executed."""

    BACKTEST_ONLY = "BACKTEST_ONLY"
    SIM_LIVE = "SIM_LIVE"
    SHADOW = "SHADOW"
    LIVE = "LIVE"


class TargetMode(str, Enum):
    """Execution context a readiness check is evaluated for."""

    SIM = "SIM"
    PAPER = "PAPER"
    SHADOW = "SHADOW"
    CANARY = "CANARY"
    LIVE = "LIVE"

    @property
    def is_live(self) -> bool:
        """LIVE and CANARY enforce the strict blocking rules."""
        return self in (TargetMode.LIVE, TargetMode.CANARY)


class Severity(str, Enum):
    """Severity of a readiness blocker or invariant violation."""

    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"


BotId: TypeAlias = str
Score: TypeAlias = float  # Bot Priority Score in [0, 100]
