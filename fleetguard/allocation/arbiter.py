"""
Trade arbiter for FLEETGUARD.

Deterministic gating and ranking of individual signals against an
account's remaining headroom. Where the allocation engine sets each bot's
standing limits, the arbiter sizes one order at a time.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from fleetguard.core.constants import ARBITER_WEIGHTS
from fleetguard.core.types import BotId, ExecutionMode, HealthState, Stage

logger = logging.getLogger(__name__)


class ArbiterDecision(str, Enum):
    """Outcome of arbitrating one signal."""

    ALLOWED = "ALLOWED"
    REDUCED = "REDUCED"
    DELAYED = "DELAYED"
    REJECTED = "REJECTED"


class ExecutionRouting(str, Enum):
    """Where fills for an account/mode combination come from."""

    INTERNAL_SIM_FILLS = "INTERNAL_SIM_FILLS"
    BROKER_FILLS = "BROKER_FILLS"
    BLOCKED = "BLOCKED"


@dataclass(frozen=True)
class MacroEvent:
    """A scheduled high-impact economic release."""

    name: str
    scheduled_at: datetime
    country: str | None = None


@dataclass(frozen=True)
class MacroEventBlock:
    """Macro-event blackout window supplied by the calendar collector."""

    is_blocked: bool
    events: tuple[MacroEvent, ...] = ()


@dataclass(frozen=True)
class BotContext:
    """Bot state the arbiter needs to gate a signal."""

    bot_id: BotId
    stage: Stage | str
    execution_mode: ExecutionMode | str
    priority_score: float
    health_state: HealthState | str
    account_type: str
    macro_event_block: MacroEventBlock | None = None


@dataclass(frozen=True)
class ExposureSnapshot:
    """Account limits together with current usage."""

    daily_loss_limit_dollars: float
    daily_loss_used_dollars: float
    max_total_exposure_contracts: int
    current_exposure_contracts: int
    max_contracts_per_symbol: int
    current_symbol_contracts: int


@dataclass(frozen=True)
class SignalCandidate:
    """A proposed order from one bot."""

    bot: BotContext
    signal_confidence: float  # 0-1
    regime_fit: float  # 0-1
    requested_contracts: int
    dollars_per_contract_at_stop: float
    symbol: str
    direction: str  # BUY / SELL


@dataclass(frozen=True)
class ArbiterResult:
    """Decision for one signal."""

    decision: ArbiterDecision
    allowed_contracts: int
    reason: str
    candidate_score: float
    caps_applied: tuple[str, ...] = field(default_factory=tuple)
    macro_event_block: MacroEventBlock | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "decision": self.decision.value,
            "allowedContracts": self.allowed_contracts,
            "reason": self.reason,
            "candidateScore": round(self.candidate_score, 6),
            "capsApplied": list(self.caps_applied),
        }


def _value(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def check_safety_gates(bot: BotContext) -> str | None:
    """Hard gates. Returns a rejection reason, or None when all pass."""
    health = HealthState.parse(bot.health_state)
    if health is None or health.is_unhealthy:
        return f"FROZEN: Bot health is {_value(bot.health_state)}"

    mode = _value(bot.execution_mode)
    if mode == ExecutionMode.LIVE.value and bot.account_type != "LIVE":
        return "BLOCKED: LIVE mode requires LIVE account"

    if _value(bot.stage) == Stage.TRIALS.value and mode == ExecutionMode.LIVE.value:
        return "BLOCKED: TRIALS stage cannot execute LIVE orders"

    if bot.macro_event_block is not None and bot.macro_event_block.is_blocked:
        names = ", ".join(e.name for e in bot.macro_event_block.events)
        return f"BLOCKED: High-impact macro event(s): {names}"

    return None


def check_headroom(
    exposure: ExposureSnapshot,
    requested_contracts: int,
) -> tuple[int, str | None]:
    """
    Remaining room for an order.

    Returns:
        Tuple of (max allowed contracts, rejection reason or None)
    """
    daily_headroom = exposure.daily_loss_limit_dollars - abs(exposure.daily_loss_used_dollars)
    if daily_headroom <= 0:
        return 0, "BUDGET_EXHAUSTED: Daily loss limit reached"

    exposure_headroom = exposure.max_total_exposure_contracts - exposure.current_exposure_contracts
    if exposure_headroom <= 0:
        return 0, "BUDGET_EXHAUSTED: Max exposure reached"

    symbol_headroom = exposure.max_contracts_per_symbol - exposure.current_symbol_contracts
    if symbol_headroom <= 0:
        return 0, "BUDGET_EXHAUSTED: Symbol limit reached"

    return min(requested_contracts, exposure_headroom, symbol_headroom), None


def compute_candidate_score(
    candidate: SignalCandidate,
    correlation_penalty: float = 0.0,
    exposure_penalty: float = 0.0,
) -> float:
    """Ranking score: 0.60 * BPS/100 + 0.25 * confidence + 0.15 * regime fit, less penalties."""
    base = (
        ARBITER_WEIGHTS["priority"] * (candidate.bot.priority_score / 100.0)
        + ARBITER_WEIGHTS["confidence"] * candidate.signal_confidence
        + ARBITER_WEIGHTS["regime_fit"] * candidate.regime_fit
    )
    return max(0.0, base - correlation_penalty - exposure_penalty)


def arbitrate_signal(
    candidate: SignalCandidate,
    exposure: ExposureSnapshot,
    correlation_penalty: float = 0.0,
    exposure_penalty: float = 0.0,
) -> ArbiterResult:
    """
    Arbitrate a single signal.

    Args:
        candidate: The proposed order
        exposure: Account limits and current usage
        correlation_penalty: Score penalty for correlated bots
        exposure_penalty: Score penalty for concentrated exposure

    Returns:
        ArbiterResult with decision and allowed size
    """
    rejection = check_safety_gates(candidate.bot)
    if rejection:
        logger.info(f"Signal from {candidate.bot.bot_id} rejected: {rejection}")
        return ArbiterResult(
            decision=ArbiterDecision.REJECTED,
            allowed_contracts=0,
            reason=rejection,
            candidate_score=0.0,
            macro_event_block=candidate.bot.macro_event_block
            if rejection.startswith("BLOCKED: High-impact")
            else None,
        )

    max_allowed, budget_reason = check_headroom(exposure, candidate.requested_contracts)
    if budget_reason:
        return ArbiterResult(
            decision=ArbiterDecision.REJECTED,
            allowed_contracts=0,
            reason=budget_reason,
            candidate_score=0.0,
        )

    score = compute_candidate_score(candidate, correlation_penalty, exposure_penalty)
    allowed = max(0, min(candidate.requested_contracts, max_allowed))

    caps: list[str] = []
    if allowed < candidate.requested_contracts:
        if (
            exposure.current_exposure_contracts + candidate.requested_contracts
            > exposure.max_total_exposure_contracts
        ):
            caps.append("max_total_exposure")
        if (
            exposure.current_symbol_contracts + candidate.requested_contracts
            > exposure.max_contracts_per_symbol
        ):
            caps.append("max_contracts_per_symbol")

    if allowed == 0:
        decision = ArbiterDecision.REJECTED
        reason = "Order reduced to zero after caps applied"
    elif allowed < candidate.requested_contracts:
        decision = ArbiterDecision.REDUCED
        reason = f"Reduced from {candidate.requested_contracts} to {allowed} contracts"
    else:
        decision = ArbiterDecision.ALLOWED
        reason = "Order allowed at requested size"

    return ArbiterResult(
        decision=decision,
        allowed_contracts=allowed,
        reason=reason,
        candidate_score=score,
        caps_applied=tuple(caps),
    )


def arbitrate_signals(
    candidates: Sequence[SignalCandidate],
    exposure: ExposureSnapshot,
    correlation_penalties: Mapping[BotId, float] | None = None,
) -> dict[BotId, ArbiterResult]:
    """
    Arbitrate competing signals, highest candidate score first.

    Each allowed order debits the remaining exposure and (approximately,
    half the stop distance) the remaining daily-loss headroom before the
    next candidate is evaluated.
    """
    penalties = correlation_penalties or {}
    ranked = sorted(
        candidates,
        key=lambda c: (
            -compute_candidate_score(c, penalties.get(c.bot.bot_id, 0.0)),
            c.bot.bot_id,
        ),
    )

    remaining_exposure = exposure.max_total_exposure_contracts - exposure.current_exposure_contracts
    remaining_daily_loss = exposure.daily_loss_limit_dollars - abs(exposure.daily_loss_used_dollars)

    results: dict[BotId, ArbiterResult] = {}
    for candidate in ranked:
        adjusted = replace(
            exposure,
            current_exposure_contracts=exposure.max_total_exposure_contracts - remaining_exposure,
            daily_loss_used_dollars=exposure.daily_loss_limit_dollars - remaining_daily_loss,
        )
        result = arbitrate_signal(
            candidate,
            adjusted,
            penalties.get(candidate.bot.bot_id, 0.0),
        )

        if result.decision in (ArbiterDecision.ALLOWED, ArbiterDecision.REDUCED):
            remaining_exposure -= result.allowed_contracts
            remaining_daily_loss -= (
                result.allowed_contracts * candidate.dollars_per_contract_at_stop * 0.5
            )

        results[candidate.bot.bot_id] = result

    return results


def get_execution_routing(
    account_type: str,
    execution_mode: ExecutionMode | str,
) -> ExecutionRouting:
    """Fill source for an account type / execution mode combination."""
    mode = _value(execution_mode)
    if mode in (
        ExecutionMode.BACKTEST_ONLY.value,
        ExecutionMode.SIM_LIVE.value,
        ExecutionMode.SHADOW.value,
    ):
        return ExecutionRouting.INTERNAL_SIM_FILLS

    if mode == ExecutionMode.LIVE.value and account_type == "LIVE":
        return ExecutionRouting.BROKER_FILLS

    return ExecutionRouting.BLOCKED
