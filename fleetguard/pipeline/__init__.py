"""Governance cycle orchestration for FLEETGUARD."""

from fleetguard.pipeline.cycle import BotSnapshot, CycleReport, FleetSnapshot, GovernanceCycle
from fleetguard.pipeline.snapshot import load_snapshot

__all__ = [
    "BotSnapshot",
    "CycleReport",
    "FleetSnapshot",
    "GovernanceCycle",
    "load_snapshot",
]
