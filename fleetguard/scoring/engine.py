"""
Priority scoring engine for FLEETGUARD.

Wraps the BPS formula for a whole fleet:
1. Score each bot (BPS in [0, 100])
2. Classify bucket (health override to F)
3. Rank the fleet
4. Hand off allocation inputs to the AllocationEngine
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from fleetguard.allocation.engine import BotAllocationInput
from fleetguard.core.types import BotId, HealthState, PriorityBucket, Stage
from fleetguard.scoring.formula import (
    DEFAULT_BPS_SETTINGS,
    BPSBreakdown,
    BPSInputs,
    BPSSettings,
    compute_bps,
    compute_bps_breakdown,
    get_bucket,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriorityScore:
    """Score and bucket of one bot."""

    bot_id: BotId
    score: float
    bucket: PriorityBucket
    health_state: HealthState | str
    stage: Stage | str

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "botId": self.bot_id,
            "score": self.score,
            "bucket": self.bucket.value,
        }


class PriorityScorer:
    """
    Bot Priority Score engine.

    Holds one set of formula parameters and applies it across the fleet.
    Stateless between calls.
    """

    def __init__(self, settings: BPSSettings | None = None) -> None:
        """
        Initialize scorer.

        Args:
            settings: Formula parameters (frozen defaults if not provided)
        """
        self.settings = settings or DEFAULT_BPS_SETTINGS

    def score(self, bot_id: BotId, inputs: BPSInputs) -> PriorityScore:
        """Score a single bot."""
        score = compute_bps(inputs, self.settings)
        bucket = get_bucket(score, inputs.health_state, self.settings.bucket_thresholds)
        return PriorityScore(
            bot_id=bot_id,
            score=score,
            bucket=bucket,
            health_state=inputs.health_state,
            stage=inputs.stage,
        )

    def explain(self, inputs: BPSInputs) -> BPSBreakdown:
        """Full component breakdown for audit and debugging."""
        return compute_bps_breakdown(inputs, self.settings)

    def rank(self, fleet: Mapping[BotId, BPSInputs]) -> list[PriorityScore]:
        """
        Score and rank a fleet.

        Ordered by score descending, ties broken by bot id so the
        ranking is deterministic.
        """
        scores = [self.score(bot_id, inputs) for bot_id, inputs in fleet.items()]
        ranked = sorted(scores, key=lambda s: (-s.score, s.bot_id))

        if ranked:
            logger.debug(
                f"Ranked {len(ranked)} bots, top={ranked[0].bot_id} "
                f"({ranked[0].score:.2f} {ranked[0].bucket.value})"
            )
        return ranked

    @staticmethod
    def to_allocation_input(score: PriorityScore) -> BotAllocationInput:
        """Bridge a PriorityScore to the AllocationEngine input."""
        return BotAllocationInput(
            bot_id=score.bot_id,
            priority_score=score.score,
            priority_bucket=score.bucket,
            stage=score.stage,
            health_state=score.health_state,
        )
