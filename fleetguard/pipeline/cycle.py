"""
Governance cycle for FLEETGUARD.

Orchestrates one evaluation cycle over a fleet snapshot:
1. Score and rank every bot
2. Allocate the account's risk budget
3. Check lifecycle invariants per bot
4. Analyze cross-bot correlation (when return series are present)
5. Fold correlation risk and invariant violations into the readiness gate
"""

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path

import pandas as pd

from fleetguard.allocation.engine import (
    AccountBudget,
    AllocationResult,
    AllocationSettings,
    compute_allocations,
)
from fleetguard.core.config import get_settings, load_config
from fleetguard.core.exceptions import SnapshotError
from fleetguard.core.types import BotId, ExecutionMode, Stage
from fleetguard.correlation.cache import CorrelationCache, DriftHistory
from fleetguard.correlation.matrix import BotReturns
from fleetguard.correlation.monitor import (
    CorrelationMatrixResult,
    CorrelationMonitor,
    CorrelationSettings,
)
from fleetguard.lifecycle.invariants import (
    BotInvariantContext,
    InvariantViolation,
    check_bot_invariants,
    count_critical,
)
from fleetguard.readiness.gate import (
    LiveReadinessInput,
    LiveReadinessResult,
    ReadinessThresholds,
    compute_live_readiness,
)
from fleetguard.scoring.engine import PriorityScore, PriorityScorer
from fleetguard.scoring.formula import BPSInputs

logger = logging.getLogger(__name__)

ACTIVE_STAGES: frozenset[str] = frozenset(
    {Stage.PAPER.value, Stage.SHADOW.value, Stage.CANARY.value, Stage.LIVE.value}
)
LIVE_STAGES: frozenset[str] = frozenset({Stage.CANARY.value, Stage.LIVE.value})


def _value(v) -> str:
    return str(getattr(v, "value", v))


@dataclass(frozen=True)
class BotSnapshot:
    """Everything the cycle knows about one bot."""

    bot_id: BotId
    inputs: BPSInputs
    name: str = ""
    archetype: str = "UNKNOWN"
    mode: ExecutionMode | str = ExecutionMode.BACKTEST_ONLY
    is_trading_enabled: bool = False
    has_runner: bool = False
    runner_status: str | None = None
    improvement_status: str | None = None
    daily_returns: tuple[float, ...] = field(default_factory=tuple)
    dates: tuple[str, ...] = field(default_factory=tuple)

    @property
    def stage(self) -> str:
        return _value(self.inputs.stage)

    @property
    def is_active(self) -> bool:
        """PAPER or above with trading enabled."""
        return self.stage in ACTIVE_STAGES and self.is_trading_enabled

    def invariant_context(self) -> BotInvariantContext:
        return BotInvariantContext(
            stage=self.stage,
            mode=_value(self.mode),
            is_trading_enabled=self.is_trading_enabled,
            has_runner=self.has_runner,
            runner_status=self.runner_status,
            health_state=_value(self.inputs.health_state),
            improvement_status=self.improvement_status,
        )

    def returns(self) -> BotReturns:
        return BotReturns(
            bot_id=self.bot_id,
            bot_name=self.name or self.bot_id,
            stage=self.stage,
            archetype=self.archetype,
            daily_returns=tuple(self.daily_returns),
            dates=tuple(self.dates),
        )


def duplicate_bot_ids(bots: Sequence[BotSnapshot]) -> list[BotId]:
    """Bot ids that appear more than once, sorted."""
    counts = Counter(b.bot_id for b in bots)
    return sorted(bot_id for bot_id, n in counts.items() if n > 1)


@dataclass(frozen=True)
class FleetSnapshot:
    """
    Point-in-time view of an account, its bots and the platform health.

    Bot ids must be unique; a repeated id raises SnapshotError.
    """

    as_of: datetime
    account: AccountBudget
    bots: tuple[BotSnapshot, ...]
    readiness: LiveReadinessInput

    def __post_init__(self) -> None:
        repeated = duplicate_bot_ids(self.bots)
        if repeated:
            raise SnapshotError(f"Duplicate bot_id in snapshot: {', '.join(repeated)}")

    @property
    def live_bot_count(self) -> int:
        return sum(1 for b in self.bots if b.stage in LIVE_STAGES)


@dataclass(frozen=True, eq=False)
class CycleReport:
    """Output of one governance cycle."""

    as_of: datetime
    scores: tuple[PriorityScore, ...]
    allocations: tuple[AllocationResult, ...]
    violations: dict[BotId, list[InvariantViolation]]
    correlation: CorrelationMatrixResult | None
    readiness: LiveReadinessResult

    @property
    def critical_violation_count(self) -> int:
        return sum(count_critical(v) for v in self.violations.values())

    def allocations_frame(self) -> pd.DataFrame:
        """
        One row per bot with score, bucket and allocation.

        Returns:
            DataFrame ordered by score descending
        """
        if not self.scores:
            return pd.DataFrame()

        scores = pd.DataFrame(
            [
                {
                    "bot_id": s.bot_id,
                    "score": s.score,
                    "bucket": s.bucket.value,
                    "stage": _value(s.stage),
                    "health_state": _value(s.health_state),
                }
                for s in self.scores
            ]
        )
        allocations = pd.DataFrame(
            [
                {
                    "bot_id": a.bot_id,
                    "eligible": a.eligible,
                    "weight": a.weight,
                    "risk_units": a.risk_units,
                    "max_contracts_dynamic": a.max_contracts_dynamic,
                    "max_risk_dollars_dynamic": a.max_risk_dollars_dynamic,
                }
                for a in self.allocations
            ]
        )
        frame = scores.merge(allocations, on="bot_id", how="left")
        return frame.sort_values(["score", "bot_id"], ascending=[False, True]).reset_index(
            drop=True
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "asOf": self.as_of.isoformat(),
            "scores": [s.to_dict() for s in self.scores],
            "allocations": [a.to_dict() for a in self.allocations],
            "violations": {
                bot_id: [v.to_dict() for v in found]
                for bot_id, found in self.violations.items()
                if found
            },
            "correlation": self.correlation.to_dict() if self.correlation else None,
            "readiness": self.readiness.to_dict(),
        }


class GovernanceCycle:
    """
    Runs scoring, allocation, invariant checks, correlation and readiness.

    The correlation cache and drift history are owned by the cycle and
    carried across runs, so drift accumulates cycle over cycle.
    """

    def __init__(
        self,
        scorer: PriorityScorer | None = None,
        allocation_settings: AllocationSettings | None = None,
        correlation_settings: CorrelationSettings | None = None,
        thresholds: ReadinessThresholds | None = None,
        cache: CorrelationCache | None = None,
        drift_history: DriftHistory | None = None,
        capacity_units: float | None = None,
    ) -> None:
        self.scorer = scorer or PriorityScorer()
        self.allocation_settings = allocation_settings
        self.correlation_settings = correlation_settings or CorrelationSettings()
        self.thresholds = thresholds
        self.cache = cache if cache is not None else CorrelationCache()
        self.drift_history = drift_history if drift_history is not None else DriftHistory()
        self.capacity_units = capacity_units

    @classmethod
    def from_config(cls, config_dir: Path | None = None) -> "GovernanceCycle":
        """
        Build a cycle from the YAML config directory and environment settings.

        Args:
            config_dir: Directory with scoring/allocation/correlation/readiness
                YAML files (FLEETGUARD_CONFIG_DIR if omitted)
        """
        settings = get_settings()
        base = config_dir if config_dir is not None else settings.config_dir
        logger.info(f"Loading governance config from {base}")
        return cls(
            scorer=PriorityScorer(load_config("scoring", base).to_settings()),
            allocation_settings=load_config("allocation", base).to_settings(),
            correlation_settings=load_config("correlation", base).to_settings(),
            thresholds=load_config("readiness", base).to_thresholds(),
            cache=CorrelationCache(ttl_seconds=settings.correlation_cache_ttl_seconds),
            drift_history=DriftHistory(
                max_samples=settings.drift_history_max_samples,
                max_pairs=settings.drift_history_max_pairs,
            ),
        )

    def _check_invariants(self, bots: Sequence[BotSnapshot]) -> dict[BotId, list[InvariantViolation]]:
        violations: dict[BotId, list[InvariantViolation]] = {}
        for bot in bots:
            found = check_bot_invariants(bot.invariant_context())
            violations[bot.bot_id] = found
            for v in found:
                logger.warning(f"Invariant {v.code} on {bot.bot_id}: {v.message}")
        return violations

    def _analyze_correlation(self, snapshot: FleetSnapshot) -> CorrelationMatrixResult | None:
        active = [b.returns() for b in snapshot.bots if b.is_active and b.daily_returns]
        if not active:
            return None

        monitor = CorrelationMonitor(
            returns_provider=lambda _lookback: active,
            cache=self.cache,
            drift_history=self.drift_history,
            settings=self.correlation_settings,
            now=lambda: snapshot.as_of,
        )
        # Each snapshot carries its own returns; never serve a previous cycle's matrix
        return monitor.analyze_correlations(force_refresh=True)

    def run(self, snapshot: FleetSnapshot) -> CycleReport:
        """
        Run one cycle.

        Args:
            snapshot: Fleet snapshot to evaluate

        Returns:
            CycleReport
        """
        logger.info(
            f"Governance cycle for account {snapshot.account.account_id} "
            f"at {snapshot.as_of.isoformat()} ({len(snapshot.bots)} bots)"
        )

        ranked = self.scorer.rank({b.bot_id: b.inputs for b in snapshot.bots})
        allocations = compute_allocations(
            [PriorityScorer.to_allocation_input(s) for s in ranked],
            snapshot.account,
            capacity_units=self.capacity_units,
            settings=self.allocation_settings,
        )

        violations = self._check_invariants(snapshot.bots)
        critical = sum(count_critical(v) for v in violations.values())

        correlation = self._analyze_correlation(snapshot)

        readiness_input = replace(
            snapshot.readiness,
            as_of=snapshot.as_of,
            live_bot_count=(
                None
                if snapshot.readiness.live_bot_count is None
                else max(snapshot.readiness.live_bot_count, snapshot.live_bot_count)
            ),
            critical_invariant_violations=critical,
            portfolio_risk_level=(
                correlation.portfolio_risk.overall_risk_level.value
                if correlation is not None
                else snapshot.readiness.portfolio_risk_level
            ),
        )
        readiness = compute_live_readiness(readiness_input, self.thresholds)

        report = CycleReport(
            as_of=snapshot.as_of,
            scores=tuple(ranked),
            allocations=tuple(allocations),
            violations=violations,
            correlation=correlation,
            readiness=readiness,
        )

        logger.info(
            f"Cycle complete: {sum(1 for a in allocations if a.eligible)} funded bots, "
            f"{critical} critical violations, readiness {readiness.overall_status.value}"
        )
        return report
