"""
Blocker templates for the readiness gate.

Blocker codes are stable lookup keys for the web layer, which renders
the call to action and deep link from them. Messages are format strings
filled from the failing check's measurements.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BlockerTemplate:
    message: str
    component: str
    cta: str | None = None
    deep_link: str | None = None


BLOCKER_TEMPLATES: dict[str, BlockerTemplate] = {
    "EMERGENCY_MODE_ACTIVE": BlockerTemplate(
        "Emergency mode is active - all live trading suspended",
        "Emergency Controls",
        "Deactivate Emergency Mode",
        "/settings",
    ),
    "MOCK_DATA_DETECTED": BlockerTemplate(
        "Mock data detected in production environment",
        "Data Integrity",
        "Run Audit",
        "/system-status",
    ),
    "2FA_REQUIRED": BlockerTemplate(
        "Two-factor authentication required for live trading",
        "Authentication",
        "Complete 2FA",
        "/settings",
    ),
    "2FA_STALE": BlockerTemplate(
        "2FA verification expired (>{max_age_hours:g}h). Re-verify to enable live trading.",
        "Authentication",
        "Re-verify 2FA",
        "/settings",
    ),
    "NO_REDIS": BlockerTemplate(
        "Redis connection failed - critical for order state management",
        "Redis",
        "Check Connections",
        "/system-status",
    ),
    "REDIS_LATENCY_HIGH": BlockerTemplate(
        "Redis latency critically high: {latency_ms:g}ms (>{threshold_ms:g}ms threshold)",
        "Redis",
        "Check Infrastructure",
        "/system-status",
    ),
    "NO_LIVE_MARKET_DATA": BlockerTemplate(
        "No live market data available - cannot execute trades safely",
        "Market Data Live",
        "Configure Market Data",
        "/system-status",
    ),
    "MARKET_DATA_STALE": BlockerTemplate(
        "Market data stale: {staleness_seconds:g}s (threshold: {threshold_seconds:g}s)",
        "Market Data Live",
        "Run Smoke Test",
        "/system-status",
    ),
    "NO_HISTORICAL_DATA": BlockerTemplate(
        "Historical data unavailable - backtests and evaluations blocked",
        "Market Data Historical",
        "Check Data Providers",
        "/system-status",
    ),
    "BROKER_NOT_VALIDATED": BlockerTemplate(
        "No broker validated - live order execution not possible",
        "Brokers",
        "Validate Broker",
        "/system-status",
    ),
    "BROKER_AUTH_FAILED": BlockerTemplate(
        "Broker authentication failed - check credentials",
        "Brokers",
        "Update Credentials",
        "/system-status",
    ),
    "QUEUE_BACKLOG_CRITICAL": BlockerTemplate(
        "Queue backlog critical: {backlog} jobs pending",
        "Queues",
        "Check Queues",
        "/system-status",
    ),
    "UNRESOLVED_CRITICAL_ALERT": BlockerTemplate(
        "{count} unresolved critical alert(s) require attention",
        "Alerts",
        "View Alerts",
        "/bots",
    ),
    "AUDIT_MISSING": BlockerTemplate(
        "No audit has been run - required for live trading approval",
        "Audit",
        "Run Full Audit",
        "/system-status",
    ),
    "AUDIT_FAILED": BlockerTemplate(
        "Last audit FAILED - address issues before live trading",
        "Audit",
        "View Audit Report",
        "/system-status",
    ),
    "AUDIT_STALE": BlockerTemplate(
        "Audit is stale: {age_hours:.0f}h old (max: {max_age_hours:g}h)",
        "Audit",
        "Run Full Audit",
        "/system-status",
    ),
    "BOT_FLEET_STALLED": BlockerTemplate(
        "{count} LIVE/CANARY bot(s) have stalled heartbeats",
        "Bot Fleet",
        "View Bots",
        "/bots",
    ),
    "BOT_FLEET_DEGRADED": BlockerTemplate(
        "{count} LIVE/CANARY bot(s) are in DEGRADED health",
        "Bot Fleet",
        "View Bots",
        "/bots",
    ),
    "RISK_ENGINE_MISSING": BlockerTemplate(
        "Risk engine failed to load - cannot enforce trading limits",
        "Risk Engine",
        "Check Configuration",
        "/settings",
    ),
    "CORRELATION_RISK_CRITICAL": BlockerTemplate(
        "Portfolio correlation risk is CRITICAL - correlated strategies may fail together",
        "Portfolio Correlation",
        "Review Correlation Clusters",
        "/correlation",
    ),
    "CORRELATION_RISK_HIGH": BlockerTemplate(
        "Portfolio correlation risk is HIGH - consider reducing correlated exposure",
        "Portfolio Correlation",
        "Review Correlation Clusters",
        "/correlation",
    ),
    "FSM_INVARIANT_VIOLATION": BlockerTemplate(
        "{count} critical lifecycle invariant violation(s) on the bot fleet",
        "Lifecycle",
        "View Bots",
        "/bots",
    ),
}
