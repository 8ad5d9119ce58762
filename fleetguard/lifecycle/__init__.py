"""Lifecycle state machines and invariant checks for FLEETGUARD."""

from fleetguard.lifecycle.gates import (
    StageGateResult,
    next_promotion_stage,
    promotion_gates,
    requires_governance_approval,
    validate_stage_promotion,
)
from fleetguard.lifecycle.invariants import (
    BotInvariantContext,
    InvariantViolation,
    ViolationSeverity,
    check_bot_invariants,
)
from fleetguard.lifecycle.machine import (
    ANY,
    EventRule,
    FSMDomain,
    StateMachine,
    TransitionEvent,
    TransitionResult,
    TransitionValidation,
)
from fleetguard.lifecycle.machines import (
    BOT_LIFECYCLE,
    IMPROVEMENT,
    JOB,
    RUNNER,
    BotLifecycleState,
    ImprovementState,
    JobState,
    RunnerState,
    can_transition_bot_lifecycle,
    can_transition_improvement,
    can_transition_job,
    can_transition_runner,
    create_transition_event,
    get_machine,
    validate_bot_lifecycle_transition,
    validate_improvement_transition,
    validate_job_transition,
    validate_runner_transition,
)

__all__ = [
    "ANY",
    "BOT_LIFECYCLE",
    "IMPROVEMENT",
    "JOB",
    "RUNNER",
    "BotInvariantContext",
    "BotLifecycleState",
    "EventRule",
    "FSMDomain",
    "ImprovementState",
    "InvariantViolation",
    "JobState",
    "RunnerState",
    "StageGateResult",
    "StateMachine",
    "TransitionEvent",
    "TransitionResult",
    "TransitionValidation",
    "ViolationSeverity",
    "can_transition_bot_lifecycle",
    "can_transition_improvement",
    "can_transition_job",
    "can_transition_runner",
    "check_bot_invariants",
    "create_transition_event",
    "get_machine",
    "next_promotion_stage",
    "promotion_gates",
    "requires_governance_approval",
    "validate_bot_lifecycle_transition",
    "validate_improvement_transition",
    "validate_job_transition",
    "validate_runner_transition",
    "validate_stage_promotion",
]
