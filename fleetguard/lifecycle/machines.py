"""
The four lifecycle state machines: Bot, Job, Runner, Improvement.

Bot lifecycle:
    TRIALS -> PAPER -> SHADOW -> CANARY -> LIVE
    Promotion advances exactly one tier. Demotion may skip any number of
    tiers. FROZEN / USER_PAUSED / QUARANTINED are escape hatches that
    recover back onto the ladder. TRIALS -> SHADOW is never valid.

Job: COMPLETED, DEAD_LETTERED and CANCELLED are terminal.
Runner: supervised process; CIRCUIT_BREAK exits only via STOPPED or
    STARTING (after an external cooldown).
Improvement: evolution/backtest pipeline with PAUSED / FROZEN escape
    from every non-terminal state.
"""

from enum import Enum
from typing import Any

from fleetguard.core.types import STAGE_ORDER
from fleetguard.lifecycle.machine import (
    ANY,
    EventRule,
    FSMDomain,
    StateMachine,
    TransitionEvent,
    TransitionValidation,
)


class BotLifecycleState(str, Enum):
    TRIALS = "TRIALS"
    PAPER = "PAPER"
    SHADOW = "SHADOW"
    CANARY = "CANARY"
    LIVE = "LIVE"
    QUARANTINED = "QUARANTINED"
    FROZEN = "FROZEN"
    USER_PAUSED = "USER_PAUSED"


class JobState(str, Enum):
    QUEUED = "QUEUED"
    DISPATCHED = "DISPATCHED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    DEAD_LETTERED = "DEAD_LETTERED"
    CANCELLED = "CANCELLED"


class RunnerState(str, Enum):
    STOPPED = "STOPPED"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    STALLED = "STALLED"
    RESTARTING = "RESTARTING"
    CIRCUIT_BREAK = "CIRCUIT_BREAK"
    ERROR = "ERROR"


class ImprovementState(str, Enum):
    IDLE = "IDLE"
    IMPROVING = "IMPROVING"
    EVOLVING = "EVOLVING"
    AWAITING_BACKTEST = "AWAITING_BACKTEST"
    TOURNAMENT = "TOURNAMENT"
    COOLDOWN = "COOLDOWN"
    PAUSED = "PAUSED"
    FROZEN = "FROZEN"
    EXHAUSTED = "EXHAUSTED"


# =============================================================================
# BOT LIFECYCLE
# =============================================================================

_B = BotLifecycleState

BOT_LIFECYCLE_TRANSITIONS: dict[BotLifecycleState, frozenset[BotLifecycleState]] = {
    _B.TRIALS: frozenset({_B.PAPER, _B.FROZEN, _B.USER_PAUSED}),
    _B.PAPER: frozenset({_B.TRIALS, _B.SHADOW, _B.FROZEN, _B.USER_PAUSED, _B.QUARANTINED}),
    _B.SHADOW: frozenset(
        {_B.TRIALS, _B.PAPER, _B.CANARY, _B.FROZEN, _B.USER_PAUSED, _B.QUARANTINED}
    ),
    _B.CANARY: frozenset(
        {_B.TRIALS, _B.PAPER, _B.SHADOW, _B.LIVE, _B.FROZEN, _B.USER_PAUSED, _B.QUARANTINED}
    ),
    _B.LIVE: frozenset(
        {_B.TRIALS, _B.PAPER, _B.SHADOW, _B.CANARY, _B.FROZEN, _B.USER_PAUSED, _B.QUARANTINED}
    ),
    _B.QUARANTINED: frozenset({_B.TRIALS, _B.PAPER, _B.FROZEN}),
    _B.FROZEN: frozenset({_B.TRIALS, _B.PAPER, _B.SHADOW, _B.CANARY, _B.LIVE}),
    _B.USER_PAUSED: frozenset({_B.TRIALS, _B.PAPER, _B.SHADOW, _B.CANARY, _B.LIVE}),
}

BOT_EVENT_RULES: tuple[EventRule, ...] = (
    EventRule(_B.TRIALS, _B.PAPER, "PROMOTED"),
    EventRule(_B.PAPER, _B.SHADOW, "PROMOTED"),
    EventRule(_B.SHADOW, _B.CANARY, "PROMOTED"),
    EventRule(_B.CANARY, _B.LIVE, "PROMOTED"),
    EventRule(_B.LIVE, _B.SHADOW, "DEMOTED"),
    EventRule(_B.SHADOW, _B.PAPER, "DEMOTED"),
    EventRule(_B.PAPER, _B.TRIALS, "DEMOTED"),
    EventRule(ANY, _B.FROZEN, "FROZEN"),
    EventRule(ANY, _B.USER_PAUSED, "PAUSED"),
    EventRule(_B.USER_PAUSED, ANY, "RESUMED"),
    EventRule(_B.FROZEN, ANY, "UNFROZEN"),
)

_LADDER = tuple(BotLifecycleState(s.value) for s in STAGE_ORDER)


class BotLifecycleMachine(StateMachine[BotLifecycleState]):
    """Bot machine with ladder-aware rejection messages."""

    def _rejection_reason(self, from_state: BotLifecycleState, to_state: BotLifecycleState) -> str:
        if from_state in _LADDER and to_state in _LADDER:
            lo, hi = _LADDER.index(from_state), _LADDER.index(to_state)
            if hi - lo > 1:
                path = " -> ".join(s.value for s in _LADDER[lo : hi + 1])
                return (
                    f"Cannot skip stages: {from_state.value} -> {to_state.value}. "
                    f"Must promote through: {path}"
                )
        return f"Cannot transition from {from_state.value} to {to_state.value}"


BOT_LIFECYCLE = BotLifecycleMachine(
    FSMDomain.BOT, BotLifecycleState, BOT_LIFECYCLE_TRANSITIONS, BOT_EVENT_RULES
)

# =============================================================================
# JOB
# =============================================================================

_J = JobState

JOB_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    _J.QUEUED: frozenset({_J.DISPATCHED, _J.CANCELLED, _J.DEAD_LETTERED}),
    _J.DISPATCHED: frozenset({_J.RUNNING, _J.QUEUED, _J.FAILED, _J.CANCELLED}),
    _J.RUNNING: frozenset({_J.COMPLETED, _J.FAILED, _J.DEAD_LETTERED}),
    _J.COMPLETED: frozenset(),
    _J.FAILED: frozenset({_J.QUEUED, _J.DEAD_LETTERED}),
    _J.DEAD_LETTERED: frozenset(),
    _J.CANCELLED: frozenset(),
}

JOB_EVENT_RULES: tuple[EventRule, ...] = (
    EventRule(_J.DISPATCHED, _J.RUNNING, "JOB_STARTED"),
    EventRule(_J.RUNNING, _J.COMPLETED, "JOB_FINISHED"),
    EventRule(_J.RUNNING, _J.FAILED, "JOB_FAILED"),
    EventRule(ANY, _J.DEAD_LETTERED, "JOB_DEAD_LETTERED"),
)

JOB = StateMachine(FSMDomain.JOB, JobState, JOB_TRANSITIONS, JOB_EVENT_RULES)

# =============================================================================
# RUNNER
# =============================================================================

_R = RunnerState

RUNNER_TRANSITIONS: dict[RunnerState, frozenset[RunnerState]] = {
    _R.STOPPED: frozenset({_R.STARTING}),
    _R.STARTING: frozenset({_R.RUNNING, _R.ERROR, _R.STOPPED}),
    _R.RUNNING: frozenset({_R.STALLED, _R.STOPPED, _R.ERROR}),
    _R.STALLED: frozenset({_R.RESTARTING, _R.STOPPED, _R.CIRCUIT_BREAK}),
    _R.RESTARTING: frozenset({_R.RUNNING, _R.ERROR, _R.CIRCUIT_BREAK, _R.STOPPED}),
    _R.CIRCUIT_BREAK: frozenset({_R.STOPPED, _R.STARTING}),
    _R.ERROR: frozenset({_R.STOPPED, _R.RESTARTING}),
}

RUNNER_EVENT_RULES: tuple[EventRule, ...] = (
    EventRule(_R.STOPPED, _R.STARTING, "RUNNER_STARTED"),
    EventRule(_R.STARTING, _R.RUNNING, "RUNNER_RUNNING"),
    EventRule(_R.RUNNING, _R.STALLED, "RUNNER_STALLED"),
    EventRule(_R.STALLED, _R.RESTARTING, "RUNNER_RESTARTING"),
    EventRule(ANY, _R.CIRCUIT_BREAK, "RUNNER_CIRCUIT_BREAK"),
)

RUNNER = StateMachine(FSMDomain.RUNNER, RunnerState, RUNNER_TRANSITIONS, RUNNER_EVENT_RULES)

# =============================================================================
# IMPROVEMENT
# =============================================================================

_I = ImprovementState

IMPROVEMENT_TRANSITIONS: dict[ImprovementState, frozenset[ImprovementState]] = {
    _I.IDLE: frozenset({_I.IMPROVING, _I.PAUSED, _I.FROZEN}),
    _I.IMPROVING: frozenset({_I.EVOLVING, _I.IDLE, _I.PAUSED, _I.FROZEN, _I.EXHAUSTED}),
    _I.EVOLVING: frozenset({_I.AWAITING_BACKTEST, _I.IMPROVING, _I.PAUSED, _I.FROZEN}),
    _I.AWAITING_BACKTEST: frozenset({_I.TOURNAMENT, _I.IMPROVING, _I.PAUSED, _I.FROZEN}),
    _I.TOURNAMENT: frozenset({_I.COOLDOWN, _I.IMPROVING, _I.PAUSED, _I.FROZEN}),
    _I.COOLDOWN: frozenset({_I.IMPROVING, _I.IDLE, _I.PAUSED, _I.FROZEN}),
    _I.PAUSED: frozenset({_I.IDLE, _I.IMPROVING, _I.FROZEN}),
    _I.FROZEN: frozenset({_I.IDLE, _I.PAUSED}),
    _I.EXHAUSTED: frozenset({_I.IDLE, _I.FROZEN}),
}

IMPROVEMENT_EVENT_RULES: tuple[EventRule, ...] = (
    EventRule(_I.IDLE, _I.IMPROVING, "EVOLUTION_STARTED"),
    EventRule(_I.TOURNAMENT, _I.COOLDOWN, "EVOLUTION_COMPLETED"),
    EventRule(ANY, _I.PAUSED, "EVOLUTION_PAUSED"),
    EventRule(ANY, _I.EXHAUSTED, "EVOLUTION_EXHAUSTED"),
)

IMPROVEMENT = StateMachine(
    FSMDomain.IMPROVEMENT, ImprovementState, IMPROVEMENT_TRANSITIONS, IMPROVEMENT_EVENT_RULES
)

MACHINES: dict[FSMDomain, StateMachine] = {
    FSMDomain.BOT: BOT_LIFECYCLE,
    FSMDomain.JOB: JOB,
    FSMDomain.RUNNER: RUNNER,
    FSMDomain.IMPROVEMENT: IMPROVEMENT,
}


def get_machine(domain: FSMDomain | str) -> StateMachine:
    """Machine for a domain."""
    return MACHINES[FSMDomain(getattr(domain, "value", domain))]


def can_transition_bot_lifecycle(from_state: BotLifecycleState | str, to_state: BotLifecycleState | str) -> bool:
    return BOT_LIFECYCLE.can_transition(from_state, to_state)


def validate_bot_lifecycle_transition(
    from_state: BotLifecycleState | str, to_state: BotLifecycleState | str
) -> TransitionValidation:
    return BOT_LIFECYCLE.validate(from_state, to_state)


def can_transition_job(from_state: JobState | str, to_state: JobState | str) -> bool:
    return JOB.can_transition(from_state, to_state)


def validate_job_transition(from_state: JobState | str, to_state: JobState | str) -> TransitionValidation:
    return JOB.validate(from_state, to_state)


def can_transition_runner(from_state: RunnerState | str, to_state: RunnerState | str) -> bool:
    return RUNNER.can_transition(from_state, to_state)


def validate_runner_transition(
    from_state: RunnerState | str, to_state: RunnerState | str
) -> TransitionValidation:
    return RUNNER.validate(from_state, to_state)


def can_transition_improvement(
    from_state: ImprovementState | str, to_state: ImprovementState | str
) -> bool:
    return IMPROVEMENT.can_transition(from_state, to_state)


def validate_improvement_transition(
    from_state: ImprovementState | str, to_state: ImprovementState | str
) -> TransitionValidation:
    return IMPROVEMENT.validate(from_state, to_state)


def create_transition_event(
    domain: FSMDomain | str,
    from_state: Any,
    to_state: Any,
    reason: str | None = None,
    evidence: dict[str, Any] | None = None,
) -> TransitionEvent:
    """Event record for a transition in any domain."""
    return get_machine(domain).create_event(from_state, to_state, reason, evidence)
