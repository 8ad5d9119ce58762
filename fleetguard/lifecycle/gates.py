"""
Stage promotion gates.

Layered on top of the bot lifecycle machine: the machine says whether an
edge exists, the gate adds what must be true before a promotion is taken
(evidence requirements, and maker-checker approval for CANARY -> LIVE).
"""

import logging
from dataclasses import dataclass, field

from fleetguard.core.types import STAGE_ORDER, Stage
from fleetguard.lifecycle.machines import BOT_LIFECYCLE

logger = logging.getLogger(__name__)

GATE_REQUIREMENTS: dict[tuple[Stage, Stage], tuple[str, ...]] = {
    (Stage.TRIALS, Stage.PAPER): (
        "3 consecutive backtest sessions meeting thresholds",
        "sharpe_ratio >= 1.0",
        "max_drawdown <= 15%",
        "profit_factor >= 1.3",
        "win_rate >= 40%",
    ),
    (Stage.PAPER, Stage.SHADOW): (
        "Minimum 24 hours paper trading",
        "Positive cumulative P&L",
        "No excessive drawdown events",
        "Signal consistency verified",
    ),
    (Stage.SHADOW, Stage.CANARY): (
        "Shadow validation period complete (48 hours)",
        "Shadow vs Paper P&L correlation > 0.8",
        "No execution discrepancies detected",
    ),
    (Stage.CANARY, Stage.LIVE): (
        "Maker-checker governance approval",
        "Risk limits verified",
        "Account funding confirmed",
        "Broker connection validated",
    ),
}


@dataclass(frozen=True)
class StageGateResult:
    """Whether a stage change may proceed and what it requires."""

    allowed: bool
    reason: str | None = None
    requires_approval: bool = False
    gate_requirements: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "requiresApproval": self.requires_approval,
            "gateRequirements": list(self.gate_requirements),
        }


def _stage(value: Stage | str) -> Stage | None:
    try:
        return Stage(getattr(value, "value", value))
    except ValueError:
        return None


def is_promotion(from_stage: Stage | str, to_stage: Stage | str) -> bool:
    """Whether ``to_stage`` is higher on the ladder."""
    a, b = _stage(from_stage), _stage(to_stage)
    return a is not None and b is not None and b.tier > a.tier


def is_demotion(from_stage: Stage | str, to_stage: Stage | str) -> bool:
    """Whether ``to_stage`` is lower on the ladder."""
    a, b = _stage(from_stage), _stage(to_stage)
    return a is not None and b is not None and b.tier < a.tier


def next_promotion_stage(stage: Stage | str) -> Stage | None:
    """The single stage a bot may be promoted to, or None at the top."""
    s = _stage(stage)
    if s is None or s == STAGE_ORDER[-1]:
        return None
    return STAGE_ORDER[s.tier + 1]


def promotion_gates(from_stage: Stage | str, to_stage: Stage | str) -> tuple[str, ...]:
    """Evidence required for a promotion edge (empty for non-promotions)."""
    a, b = _stage(from_stage), _stage(to_stage)
    if a is None or b is None:
        return ()
    return GATE_REQUIREMENTS.get((a, b), ())


def requires_governance_approval(from_stage: Stage | str, to_stage: Stage | str) -> bool:
    """CANARY -> LIVE needs maker-checker approval."""
    return _stage(from_stage) == Stage.CANARY and _stage(to_stage) == Stage.LIVE


def validate_stage_promotion(
    from_stage: Stage | str,
    to_stage: Stage | str,
    has_governance_approval: bool = False,
) -> StageGateResult:
    """
    Validate a stage change against the lifecycle machine and promotion gates.

    Args:
        from_stage: Current ladder stage
        to_stage: Proposed ladder stage
        has_governance_approval: Whether maker-checker approval is on record

    Returns:
        StageGateResult
    """
    validation = BOT_LIFECYCLE.validate(from_stage, to_stage)
    if not validation.valid:
        return StageGateResult(allowed=False, reason=validation.reason)

    if not is_promotion(from_stage, to_stage):
        return StageGateResult(allowed=True)

    requirements = promotion_gates(from_stage, to_stage)
    if requires_governance_approval(from_stage, to_stage) and not has_governance_approval:
        logger.info("CANARY -> LIVE promotion held for governance approval")
        return StageGateResult(
            allowed=False,
            reason="CANARY -> LIVE requires maker-checker governance approval",
            requires_approval=True,
            gate_requirements=requirements,
        )

    return StageGateResult(allowed=True, gate_requirements=requirements)
