"""
Capital allocation engine for FLEETGUARD.

Distributes an account's risk budget across competing bots:
1. Exclude unhealthy bots (DEGRADED / FROZEN get weight 0, zero limits)
2. Weight eligible bots by priority score (share of the eligible total)
3. Scale each bot's share of the exposure and risk caps by its bucket
4. Clamp to account-level per-trade / per-symbol caps

Deterministic and side-effect free. Callers persist or apply the result.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from fleetguard.core.constants import BUCKET_RISK_MULTIPLIERS, DEFAULT_CAPACITY_UNITS
from fleetguard.core.types import BotId, HealthState, PriorityBucket, Stage
from fleetguard.normalization.methods import clamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountBudget:
    """Risk budget and hard caps of one trading account."""

    account_id: str
    balance: float
    per_trade_risk_budget_dollars: float
    daily_risk_budget_dollars: float
    max_contracts_per_trade: int
    max_contracts_per_symbol: int
    max_total_exposure_contracts: int


@dataclass(frozen=True)
class BotAllocationInput:
    """Per-bot input to the allocation engine."""

    bot_id: BotId
    priority_score: float
    priority_bucket: PriorityBucket | str
    stage: Stage | str
    health_state: HealthState | str


@dataclass(frozen=True)
class AllocationSettings:
    """
    Bucket downscale table.

    Multipliers scale dynamic contracts and risk dollars; a lower bucket
    never receives more than a higher bucket at equal weight.
    """

    bucket_multipliers: dict[str, float] = field(
        default_factory=lambda: dict(BUCKET_RISK_MULTIPLIERS)
    )
    default_capacity_units: float = DEFAULT_CAPACITY_UNITS

    def multiplier_for(self, bucket: PriorityBucket | str) -> float:
        """Downscale multiplier for a bucket; unknown buckets get 0."""
        key = bucket.value if isinstance(bucket, PriorityBucket) else str(bucket)
        return self.bucket_multipliers.get(key, 0.0)


DEFAULT_ALLOCATION_SETTINGS = AllocationSettings()


@dataclass(frozen=True)
class AllocationResult:
    """
    Allocation for one bot.

    Invariants:
        - unhealthy bots have weight 0 and zero limits
        - max_contracts_dynamic <= account max_contracts_per_trade
        - max_risk_dollars_dynamic <= account per_trade_risk_budget_dollars
    """

    bot_id: BotId
    eligible: bool
    weight: float
    risk_units: float
    max_contracts_dynamic: int
    max_risk_dollars_dynamic: float
    bucket_multiplier: float
    reason: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "botId": self.bot_id,
            "eligible": self.eligible,
            "weight": round(self.weight, 6),
            "riskUnits": self.risk_units,
            "maxContractsDynamic": self.max_contracts_dynamic,
            "maxRiskDollarsDynamic": self.max_risk_dollars_dynamic,
            "bucketMultiplier": self.bucket_multiplier,
            "reason": self.reason,
        }


def is_eligible(bot: BotAllocationInput) -> bool:
    """Bots with DEGRADED / FROZEN (or unrecognised) health are never funded."""
    health = HealthState.parse(bot.health_state)
    return health is not None and not health.is_unhealthy


def compute_weights(bots: Sequence[BotAllocationInput]) -> dict[BotId, float]:
    """
    Share of the budget per bot.

    Weight is the bot's score over the eligible total, so raising one bot's
    score (others fixed) never lowers its weight. If every eligible score is
    zero the eligible bots split evenly.
    """
    eligible = [b for b in bots if is_eligible(b)]
    scores = {b.bot_id: clamp(float(b.priority_score), 0.0, 100.0) for b in eligible}
    total = sum(scores.values())

    weights: dict[BotId, float] = {b.bot_id: 0.0 for b in bots}
    if not eligible:
        return weights

    if total <= 0:
        even = 1.0 / len(eligible)
        for b in eligible:
            weights[b.bot_id] = even
        return weights

    for bot_id, score in scores.items():
        weights[bot_id] = score / total
    return weights


def compute_allocations(
    bots: Sequence[BotAllocationInput],
    budget: AccountBudget,
    capacity_units: float | None = None,
    settings: AllocationSettings | None = None,
) -> list[AllocationResult]:
    """
    Distribute an account's risk budget across bots.

    Args:
        bots: Scored bots competing for the account
        budget: The account's risk budget and caps
        capacity_units: Abstract risk units to split by weight
        settings: Bucket downscale table

    Returns:
        One AllocationResult per input bot, in input order
    """
    settings = settings or DEFAULT_ALLOCATION_SETTINGS
    capacity = settings.default_capacity_units if capacity_units is None else capacity_units
    weights = compute_weights(bots)

    contract_cap = max(0, min(budget.max_contracts_per_trade, budget.max_contracts_per_symbol))
    dollar_cap = max(0.0, budget.per_trade_risk_budget_dollars)

    results: list[AllocationResult] = []
    for bot in bots:
        if not is_eligible(bot):
            results.append(
                AllocationResult(
                    bot_id=bot.bot_id,
                    eligible=False,
                    weight=0.0,
                    risk_units=0.0,
                    max_contracts_dynamic=0,
                    max_risk_dollars_dynamic=0.0,
                    bucket_multiplier=0.0,
                    reason=f"Health {getattr(bot.health_state, 'value', bot.health_state)} excludes bot from allocation",
                )
            )
            continue

        weight = weights[bot.bot_id]
        multiplier = settings.multiplier_for(bot.priority_bucket)

        contracts = math.floor(weight * budget.max_total_exposure_contracts * multiplier)
        contracts = int(clamp(contracts, 0, contract_cap))

        dollars = weight * budget.daily_risk_budget_dollars * multiplier
        dollars = round(clamp(dollars, 0.0, dollar_cap), 2)

        results.append(
            AllocationResult(
                bot_id=bot.bot_id,
                eligible=True,
                weight=weight,
                risk_units=round(weight * capacity, 2),
                max_contracts_dynamic=contracts,
                max_risk_dollars_dynamic=dollars,
                bucket_multiplier=multiplier,
            )
        )

    funded = sum(1 for r in results if r.eligible)
    logger.debug(
        f"Allocated account {budget.account_id}: {funded}/{len(results)} bots funded, "
        f"{sum(r.max_contracts_dynamic for r in results)} contracts"
    )
    return results
