"""Scoring module for FLEETGUARD."""

from fleetguard.scoring.engine import PriorityScore, PriorityScorer
from fleetguard.scoring.formula import (
    DEFAULT_BPS_SETTINGS,
    BPSBreakdown,
    BPSInputs,
    BPSSettings,
    compute_bps,
    compute_bps_breakdown,
    get_bucket,
)

__all__ = [
    "DEFAULT_BPS_SETTINGS",
    "BPSBreakdown",
    "BPSInputs",
    "BPSSettings",
    "PriorityScore",
    "PriorityScorer",
    "compute_bps",
    "compute_bps_breakdown",
    "get_bucket",
]
