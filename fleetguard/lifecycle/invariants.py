"""
Cross-cutting invariant checker for bot state.

Runs independently of any single transition and cross-checks a bot's
composite context against five fixed business rules. Violations are
returned, never raised; callers decide whether to auto-remediate.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from fleetguard.core.types import ExecutionMode, HealthState, Stage

logger = logging.getLogger(__name__)

ACTIVE_STAGES: frozenset[str] = frozenset(
    {Stage.PAPER.value, Stage.SHADOW.value, Stage.CANARY.value, Stage.LIVE.value}
)
LIVE_MODE_STAGES: frozenset[str] = frozenset({Stage.CANARY.value, Stage.LIVE.value})


class ViolationSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"


@dataclass(frozen=True)
class BotInvariantContext:
    """Snapshot of everything the invariant rules look at for one bot."""

    stage: str
    mode: str
    is_trading_enabled: bool
    has_runner: bool
    runner_status: str | None = None
    health_state: str | None = None
    improvement_status: str | None = None


@dataclass(frozen=True)
class InvariantViolation:
    """One broken rule and how it could be fixed."""

    code: str
    message: str
    severity: ViolationSeverity
    auto_fixable: bool
    fix_action: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "auto_fixable": self.auto_fixable,
            "fix_action": self.fix_action,
        }


def _norm(value) -> str:
    if value is None:
        return ""
    return str(getattr(value, "value", value)).upper()


def check_bot_invariants(ctx: BotInvariantContext) -> list[InvariantViolation]:
    """
    Evaluate a bot's context against the invariant rules.

    Args:
        ctx: Current stage, mode, trading flag, runner and health state

    Returns:
        List of violations (empty when the bot is consistent)
    """
    stage = _norm(ctx.stage)
    mode = _norm(ctx.mode)
    violations: list[InvariantViolation] = []

    # 1. TRIALS bots never carry a live execution mode
    if stage == Stage.TRIALS.value and mode == ExecutionMode.LIVE.value:
        violations.append(
            InvariantViolation(
                code="TRIALS_INVALID_MODE",
                message="TRIALS bots cannot be in LIVE mode",
                severity=ViolationSeverity.CRITICAL,
                auto_fixable=True,
                fix_action="SET_MODE_BACKTEST_ONLY",
            )
        )

    # 2. PAPER and above need a runner while trading is enabled
    if stage in ACTIVE_STAGES and ctx.is_trading_enabled and not ctx.has_runner:
        violations.append(
            InvariantViolation(
                code="RUNNER_REQUIRED",
                message=f"{stage} bots require a running runner when trading is enabled",
                severity=ViolationSeverity.CRITICAL,
                auto_fixable=True,
                fix_action="START_RUNNER",
            )
        )

    # 3. LIVE mode only on CANARY / LIVE
    if mode == ExecutionMode.LIVE.value and stage not in LIVE_MODE_STAGES:
        violations.append(
            InvariantViolation(
                code="MODE_STAGE_MISMATCH",
                message="LIVE mode only valid for CANARY/LIVE stages",
                severity=ViolationSeverity.CRITICAL,
                auto_fixable=True,
                fix_action="RECONCILE_MODE",
            )
        )

    # 4. DEGRADED bots should not keep trading
    if (
        _norm(ctx.health_state) == HealthState.DEGRADED.value
        and _norm(ctx.runner_status) == "RUNNING"
        and ctx.is_trading_enabled
    ):
        violations.append(
            InvariantViolation(
                code="DEGRADED_SHOULD_PAUSE",
                message="DEGRADED bots should have trading disabled",
                severity=ViolationSeverity.WARNING,
                auto_fixable=True,
                fix_action="DISABLE_TRADING",
            )
        )

    # 5. Paused improvement outside TRIALS with no runner
    if (
        _norm(ctx.improvement_status) == "PAUSED"
        and not ctx.has_runner
        and stage != Stage.TRIALS.value
    ):
        violations.append(
            InvariantViolation(
                code="ORPHAN_PAUSE",
                message="Bot is PAUSED but may need auto-resume",
                severity=ViolationSeverity.WARNING,
                auto_fixable=True,
                fix_action="CHECK_PAUSE_VALIDITY",
            )
        )

    if violations:
        logger.debug(f"Invariant violations: {[v.code for v in violations]}")
    return violations


def count_critical(violations: list[InvariantViolation]) -> int:
    """Number of CRITICAL violations."""
    return sum(1 for v in violations if v.severity == ViolationSeverity.CRITICAL)
