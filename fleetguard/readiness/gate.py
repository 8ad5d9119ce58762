"""
Live readiness gate for FLEETGUARD.

Single truth function deciding whether live and canary execution are
allowed, plus the synchronous pre-trade block check that sits in front of
the broker. Every check appends a Blocker and/or a ComponentHealth entry;
nothing here raises on bad or missing data.

Staleness is measured against the caller's ``as_of`` timestamp only.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from fleetguard.core.constants import (
    AUDIT_MAX_AGE_HOURS,
    MARKET_DATA_LIVE_THRESHOLD_SECONDS,
    OLDEST_JOB_AGE_THRESHOLD_SECONDS,
    QUEUE_BACKLOG_THRESHOLD,
    REDIS_LATENCY_THRESHOLD_MS,
    TWO_FACTOR_MAX_AGE_HOURS,
)
from fleetguard.core.types import Severity, TargetMode
from fleetguard.readiness.templates import BLOCKER_TEMPLATES

logger = logging.getLogger(__name__)


class ComponentStatus(str, Enum):
    OK = "OK"
    DEGRADED = "DEGRADED"
    FAIL = "FAIL"
    UNKNOWN = "UNKNOWN"


class OverallStatus(str, Enum):
    OK = "OK"
    WARN = "WARN"
    BLOCKED = "BLOCKED"


@dataclass(frozen=True)
class ReadinessThresholds:
    """Numeric limits for the readiness checks."""

    market_data_live_threshold_seconds: float = MARKET_DATA_LIVE_THRESHOLD_SECONDS
    redis_latency_threshold_ms: float = REDIS_LATENCY_THRESHOLD_MS
    queue_backlog_threshold: int = QUEUE_BACKLOG_THRESHOLD
    oldest_job_age_threshold_seconds: float = OLDEST_JOB_AGE_THRESHOLD_SECONDS
    audit_max_age_hours: float = AUDIT_MAX_AGE_HOURS
    two_factor_max_age_hours: float = TWO_FACTOR_MAX_AGE_HOURS


DEFAULT_THRESHOLDS = ReadinessThresholds()


@dataclass(frozen=True)
class Blocker:
    """A failing readiness check."""

    code: str
    message: str
    severity: Severity
    component: str
    since: datetime | None = None
    cta: str | None = None
    deep_link: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "component": self.component,
        }
        if self.since is not None:
            data["since"] = self.since.isoformat()
        if self.cta is not None:
            data["cta"] = self.cta
        if self.deep_link is not None:
            data["deepLink"] = self.deep_link
        return data


@dataclass(frozen=True)
class ComponentHealth:
    """Health of one subsystem as seen by the gate."""

    name: str
    status: ComponentStatus
    latency_ms: float | None = None
    staleness_seconds: float | None = None
    last_success_at: datetime | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {"name": self.name, "status": self.status.value}
        if self.latency_ms is not None:
            data["latencyMs"] = self.latency_ms
        if self.staleness_seconds is not None:
            data["stalenessSeconds"] = self.staleness_seconds
        if self.last_success_at is not None:
            data["lastSuccessAt"] = self.last_success_at.isoformat()
        return data


@dataclass(frozen=True)
class LiveReadinessInput:
    """
    Snapshot of everything the gate looks at.

    Health flags default to the failing value so an incomplete snapshot
    cannot pass the gate. ``target_mode`` None means LIVE (strictest).
    A None alert or fleet count is unknown and fails its check.
    The two fleet-governance signals (portfolio_risk_level and
    critical_invariant_violations) are skipped when None.
    """

    as_of: datetime

    # User security
    require_2fa: bool = True
    last_2fa_at: datetime | None = None

    # App settings
    no_mock_data: bool = True
    mock_data_detected: bool = False
    emergency_mode_active: bool = False

    # Component health
    redis_healthy: bool = False
    redis_latency_ms: float | None = None
    market_data_live_healthy: bool = False
    market_data_live_staleness_seconds: float | None = None
    market_data_historical_available: bool = False
    broker_validated: bool = False
    broker_auth_ok: bool | None = None
    queue_backlog_count: int | None = None
    oldest_job_age_seconds: float | None = None
    critical_alert_count: int | None = 0
    last_audit_status: str | None = None  # PASS / FAIL
    last_audit_at: datetime | None = None

    # Fleet
    stalled_bot_count: int | None = 0
    degraded_bot_count: int | None = 0
    live_bot_count: int | None = 0
    risk_engine_loaded: bool = False

    target_mode: TargetMode | str | None = None

    # Fleet governance
    portfolio_risk_level: str | None = None
    critical_invariant_violations: int | None = None

    @property
    def is_live_target(self) -> bool:
        """LIVE/CANARY, or an absent/unknown target (treated as LIVE)."""
        if self.target_mode is None:
            return True
        try:
            return TargetMode(getattr(self.target_mode, "value", self.target_mode)).is_live
        except ValueError:
            return True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], as_of: datetime | None = None) -> "LiveReadinessInput":
        """
        Build from a snake_case mapping.

        ISO-8601 strings are accepted for timestamp fields; unknown keys
        are ignored.

        Args:
            data: Field values
            as_of: Evaluation time, overriding ``data["as_of"]``
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if as_of is not None:
            values["as_of"] = as_of
        for key in ("as_of", "last_2fa_at", "last_audit_at"):
            if isinstance(values.get(key), str):
                values[key] = datetime.fromisoformat(values[key])
        return cls(**values)


@dataclass(frozen=True)
class LiveReadinessResult:
    """Gate decision with every blocker and component status found."""

    live_ready: bool
    canary_ready: bool
    overall_status: OverallStatus
    blockers: tuple[Blocker, ...]
    component_health: tuple[ComponentHealth, ...]
    timestamp: datetime

    def blocker_codes(self) -> list[str]:
        return [b.code for b in self.blockers]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "liveReady": self.live_ready,
            "canaryReady": self.canary_ready,
            "overallStatus": self.overall_status.value,
            "blockers": [b.to_dict() for b in self.blockers],
            "componentHealth": [c.to_dict() for c in self.component_health],
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ExecutionBlockDecision:
    """Outcome of the pre-trade gate."""

    blocked: bool
    reason: str | None = None
    blocker_code: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {"blocked": self.blocked}
        if self.reason is not None:
            data["reason"] = self.reason
        if self.blocker_code is not None:
            data["blockerCode"] = self.blocker_code
        return data


def _blocker(code: str, severity: Severity, since: datetime | None = None, **params) -> Blocker:
    template = BLOCKER_TEMPLATES[code]
    return Blocker(
        code=code,
        message=template.message.format(**params),
        severity=severity,
        component=template.component,
        since=since,
        cta=template.cta,
        deep_link=template.deep_link,
    )


def _hours_between(later: datetime, earlier: datetime) -> float:
    # Naive timestamps are taken as UTC
    if later.tzinfo is None:
        later = later.replace(tzinfo=timezone.utc)
    if earlier.tzinfo is None:
        earlier = earlier.replace(tzinfo=timezone.utc)
    return (later - earlier).total_seconds() / 3600.0


def _count_fails(count: int | None) -> bool:
    # Unknown counts fail closed
    return count is None or count > 0


def _shown(count: int | None) -> int | str:
    return "An unknown number of" if count is None else count


def _status(healthy: bool, is_live: bool, otherwise: ComponentStatus) -> ComponentStatus:
    if healthy:
        return ComponentStatus.OK
    return ComponentStatus.FAIL if is_live else otherwise


def compute_live_readiness(
    inputs: LiveReadinessInput,
    thresholds: ReadinessThresholds | None = None,
) -> LiveReadinessResult:
    """
    Evaluate live/canary readiness.

    Most checks only block when the target is LIVE or CANARY; in SIM,
    PAPER and SHADOW contexts the same condition is recorded in component
    health but adds no blocker. Emergency mode, mock data, critical
    alerts, queue backlog, fleet health and the risk engine apply to
    every target.

    Args:
        inputs: Readiness snapshot
        thresholds: Numeric limits (defaults if omitted)

    Returns:
        LiveReadinessResult; live_ready requires no CRITICAL or ERROR
        blocker, canary_ready requires no CRITICAL blocker
    """
    t = thresholds or DEFAULT_THRESHOLDS
    is_live = inputs.is_live_target
    blockers: list[Blocker] = []
    health: list[ComponentHealth] = []

    # 1. Emergency mode
    if inputs.emergency_mode_active:
        blockers.append(_blocker("EMERGENCY_MODE_ACTIVE", Severity.CRITICAL))

    # 2. Mock data
    if inputs.no_mock_data and inputs.mock_data_detected:
        blockers.append(_blocker("MOCK_DATA_DETECTED", Severity.CRITICAL))

    # 3. 2FA
    if inputs.require_2fa and is_live:
        if inputs.last_2fa_at is None:
            blockers.append(_blocker("2FA_REQUIRED", Severity.CRITICAL))
        elif _hours_between(inputs.as_of, inputs.last_2fa_at) > t.two_factor_max_age_hours:
            blockers.append(
                _blocker(
                    "2FA_STALE",
                    Severity.ERROR,
                    since=inputs.last_2fa_at,
                    max_age_hours=t.two_factor_max_age_hours,
                )
            )

    # 4. Redis
    health.append(
        ComponentHealth(
            "Redis",
            _status(inputs.redis_healthy, is_live, ComponentStatus.DEGRADED),
            latency_ms=inputs.redis_latency_ms,
        )
    )
    if not inputs.redis_healthy and is_live:
        blockers.append(_blocker("NO_REDIS", Severity.CRITICAL))
    elif (
        inputs.redis_latency_ms is not None
        and inputs.redis_latency_ms > t.redis_latency_threshold_ms
        and is_live
    ):
        blockers.append(
            _blocker(
                "REDIS_LATENCY_HIGH",
                Severity.ERROR,
                latency_ms=inputs.redis_latency_ms,
                threshold_ms=t.redis_latency_threshold_ms,
            )
        )

    # 5. Live market data
    health.append(
        ComponentHealth(
            "Market Data Live",
            _status(inputs.market_data_live_healthy, is_live, ComponentStatus.DEGRADED),
            staleness_seconds=inputs.market_data_live_staleness_seconds,
        )
    )
    if not inputs.market_data_live_healthy and is_live:
        blockers.append(_blocker("NO_LIVE_MARKET_DATA", Severity.CRITICAL))
    elif (
        inputs.market_data_live_staleness_seconds is not None
        and inputs.market_data_live_staleness_seconds > t.market_data_live_threshold_seconds
        and is_live
    ):
        blockers.append(
            _blocker(
                "MARKET_DATA_STALE",
                Severity.CRITICAL,
                staleness_seconds=inputs.market_data_live_staleness_seconds,
                threshold_seconds=t.market_data_live_threshold_seconds,
            )
        )

    # 6. Historical data (never blocking)
    health.append(
        ComponentHealth(
            "Market Data Historical",
            ComponentStatus.OK
            if inputs.market_data_historical_available
            else ComponentStatus.DEGRADED,
        )
    )
    if not inputs.market_data_historical_available:
        blockers.append(_blocker("NO_HISTORICAL_DATA", Severity.WARNING))

    # 7. Brokers
    health.append(
        ComponentHealth(
            "Brokers",
            _status(inputs.broker_validated, is_live, ComponentStatus.UNKNOWN),
        )
    )
    if not inputs.broker_validated and is_live:
        blockers.append(_blocker("BROKER_NOT_VALIDATED", Severity.CRITICAL))
    elif inputs.broker_auth_ok is False and is_live:
        blockers.append(_blocker("BROKER_AUTH_FAILED", Severity.CRITICAL))

    # 8. Queues
    backlog = inputs.queue_backlog_count
    health.append(
        ComponentHealth(
            "Queues",
            ComponentStatus.OK
            if backlog is not None and backlog < t.queue_backlog_threshold
            else ComponentStatus.DEGRADED,
        )
    )
    backlog_high = backlog is not None and backlog > t.queue_backlog_threshold
    jobs_old = (
        inputs.oldest_job_age_seconds is not None
        and inputs.oldest_job_age_seconds > t.oldest_job_age_threshold_seconds
    )
    if backlog_high or jobs_old:
        blockers.append(_blocker("QUEUE_BACKLOG_CRITICAL", Severity.ERROR, backlog=backlog))

    # 9. Critical alerts
    if _count_fails(inputs.critical_alert_count):
        blockers.append(
            _blocker(
                "UNRESOLVED_CRITICAL_ALERT",
                Severity.CRITICAL,
                count=_shown(inputs.critical_alert_count),
            )
        )

    # 10. Audit
    audit_status = (inputs.last_audit_status or "").upper() or None
    health.append(
        ComponentHealth(
            "Audit",
            ComponentStatus.OK
            if audit_status == "PASS"
            else ComponentStatus.FAIL
            if audit_status == "FAIL"
            else ComponentStatus.UNKNOWN,
            last_success_at=inputs.last_audit_at,
        )
    )
    if audit_status is None and is_live:
        blockers.append(_blocker("AUDIT_MISSING", Severity.ERROR))
    elif audit_status == "FAIL" and is_live:
        blockers.append(_blocker("AUDIT_FAILED", Severity.CRITICAL))
    elif inputs.last_audit_at is not None and is_live:
        age_hours = _hours_between(inputs.as_of, inputs.last_audit_at)
        if age_hours > t.audit_max_age_hours:
            blockers.append(
                _blocker(
                    "AUDIT_STALE",
                    Severity.WARNING,
                    since=inputs.last_audit_at,
                    age_hours=age_hours,
                    max_age_hours=t.audit_max_age_hours,
                )
            )

    # 11. Bot fleet
    stalled = _count_fails(inputs.stalled_bot_count)
    degraded = _count_fails(inputs.degraded_bot_count)
    has_live_bots = _count_fails(inputs.live_bot_count)
    if not stalled and not degraded:
        fleet_status = ComponentStatus.OK
    elif degraded:
        fleet_status = ComponentStatus.DEGRADED
    else:
        fleet_status = ComponentStatus.FAIL
    health.append(ComponentHealth("Bot Fleet", fleet_status))

    if stalled and has_live_bots:
        blockers.append(
            _blocker("BOT_FLEET_STALLED", Severity.CRITICAL, count=_shown(inputs.stalled_bot_count))
        )
    if degraded and has_live_bots:
        blockers.append(
            _blocker("BOT_FLEET_DEGRADED", Severity.ERROR, count=_shown(inputs.degraded_bot_count))
        )

    # 12. Risk engine
    health.append(
        ComponentHealth(
            "Risk Engine",
            ComponentStatus.OK if inputs.risk_engine_loaded else ComponentStatus.FAIL,
        )
    )
    if not inputs.risk_engine_loaded:
        blockers.append(_blocker("RISK_ENGINE_MISSING", Severity.CRITICAL))

    # 13. Portfolio correlation risk
    if inputs.portfolio_risk_level is not None:
        level = str(getattr(inputs.portfolio_risk_level, "value", inputs.portfolio_risk_level)).upper()
        health.append(
            ComponentHealth(
                "Portfolio Correlation",
                ComponentStatus.FAIL
                if level == "CRITICAL"
                else ComponentStatus.DEGRADED
                if level == "HIGH"
                else ComponentStatus.OK,
            )
        )
        if level == "CRITICAL" and is_live:
            blockers.append(_blocker("CORRELATION_RISK_CRITICAL", Severity.ERROR))
        elif level == "HIGH" and is_live:
            blockers.append(_blocker("CORRELATION_RISK_HIGH", Severity.WARNING))

    # 14. Lifecycle invariants
    if inputs.critical_invariant_violations is not None:
        violations = inputs.critical_invariant_violations
        health.append(
            ComponentHealth(
                "Lifecycle",
                ComponentStatus.OK if violations == 0 else ComponentStatus.DEGRADED,
            )
        )
        if violations > 0 and has_live_bots:
            blockers.append(_blocker("FSM_INVARIANT_VIOLATION", Severity.ERROR, count=violations))

    critical = sum(1 for b in blockers if b.severity == Severity.CRITICAL)
    errors = sum(1 for b in blockers if b.severity == Severity.ERROR)

    live_ready = critical == 0 and errors == 0
    canary_ready = critical == 0

    if critical or errors:
        overall = OverallStatus.BLOCKED
    elif blockers:
        overall = OverallStatus.WARN
    else:
        overall = OverallStatus.OK

    if not live_ready and is_live:
        logger.warning(
            f"Live readiness BLOCKED: {[b.code for b in blockers if b.severity != Severity.WARNING]}"
        )
    else:
        logger.debug(f"Live readiness {overall.value} with {len(blockers)} blocker(s)")

    return LiveReadinessResult(
        live_ready=live_ready,
        canary_ready=canary_ready,
        overall_status=overall,
        blockers=tuple(blockers),
        component_health=tuple(health),
        timestamp=inputs.as_of,
    )


def should_block_live_execution(
    readiness: LiveReadinessResult,
    run_mode: str,
    account_type: str,
) -> ExecutionBlockDecision:
    """
    Pre-trade gate in front of the broker.

    Applies only to LIVE run mode on a LIVE account. When readiness is not
    live-ready, the first CRITICAL blocker (else the first blocker) is
    reported as the reason.

    Args:
        readiness: Latest readiness result
        run_mode: Execution mode of the order
        account_type: Account the order targets

    Returns:
        ExecutionBlockDecision
    """
    mode = getattr(run_mode, "value", run_mode)
    if mode != "LIVE" or account_type != "LIVE":
        return ExecutionBlockDecision(blocked=False)

    if readiness.live_ready:
        return ExecutionBlockDecision(blocked=False)

    top = next(
        (b for b in readiness.blockers if b.severity == Severity.CRITICAL),
        readiness.blockers[0] if readiness.blockers else None,
    )
    decision = ExecutionBlockDecision(
        blocked=True,
        reason=top.message if top else "Live trading not ready",
        blocker_code=top.code if top else None,
    )
    logger.warning(f"Live execution blocked: {decision.reason}")
    return decision
