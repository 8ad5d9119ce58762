"""Allocation module for FLEETGUARD."""

from fleetguard.allocation.arbiter import (
    ArbiterDecision,
    ArbiterResult,
    BotContext,
    ExecutionRouting,
    ExposureSnapshot,
    MacroEvent,
    MacroEventBlock,
    SignalCandidate,
    arbitrate_signal,
    arbitrate_signals,
    get_execution_routing,
)
from fleetguard.allocation.engine import (
    DEFAULT_ALLOCATION_SETTINGS,
    AccountBudget,
    AllocationResult,
    AllocationSettings,
    BotAllocationInput,
    compute_allocations,
    compute_weights,
)

__all__ = [
    "DEFAULT_ALLOCATION_SETTINGS",
    "AccountBudget",
    "AllocationResult",
    "AllocationSettings",
    "ArbiterDecision",
    "ArbiterResult",
    "BotAllocationInput",
    "BotContext",
    "ExecutionRouting",
    "ExposureSnapshot",
    "MacroEvent",
    "MacroEventBlock",
    "SignalCandidate",
    "arbitrate_signal",
    "arbitrate_signals",
    "compute_allocations",
    "compute_weights",
    "get_execution_routing",
]
