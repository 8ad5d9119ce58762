"""
Fleet snapshot loading.

Reads a YAML or JSON snapshot file into a FleetSnapshot:

    as_of: 2024-06-03T14:30:00+00:00
    account: {account_id: ..., balance: ..., per_trade_risk_budget_dollars: ...}
    readiness: {redis_healthy: true, ...}
    bots:
      - bot_id: trend-es-01
        archetype: TREND_FOLLOW
        stage: PAPER
        health_state: OK
        metrics: {sharpe_30d: 1.2, profit_factor_30d: 1.5, ...}
        returns: [0.4, -0.1, ...]
        dates: [2024-05-01, ...]
"""

import json
import logging
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from fleetguard.allocation.engine import AccountBudget
from fleetguard.core.exceptions import SnapshotError
from fleetguard.pipeline.cycle import BotSnapshot, FleetSnapshot, duplicate_bot_ids
from fleetguard.readiness.gate import LiveReadinessInput
from fleetguard.scoring.formula import BPSInputs

logger = logging.getLogger(__name__)

ACCOUNT_FIELDS: tuple[str, ...] = (
    "account_id",
    "balance",
    "per_trade_risk_budget_dollars",
    "daily_risk_budget_dollars",
    "max_contracts_per_trade",
    "max_contracts_per_symbol",
    "max_total_exposure_contracts",
)


def _read(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise SnapshotError(f"Snapshot file not found: {path}", path=str(path))

    try:
        with open(path) as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SnapshotError(f"Invalid snapshot {path}: {e}", path=str(path)) from e

    if not isinstance(data, dict):
        raise SnapshotError(f"Snapshot {path} must be a mapping", path=str(path))
    return data


def _as_datetime(value: Any, path: Path) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as e:
        raise SnapshotError(f"Invalid as_of timestamp {value!r}", path=str(path)) from e


def _parse_account(data: Mapping[str, Any], path: Path) -> AccountBudget:
    missing = [name for name in ACCOUNT_FIELDS if name not in data]
    if missing:
        raise SnapshotError(f"Account is missing fields: {missing}", path=str(path))
    try:
        return AccountBudget(
            account_id=str(data["account_id"]),
            balance=float(data["balance"]),
            per_trade_risk_budget_dollars=float(data["per_trade_risk_budget_dollars"]),
            daily_risk_budget_dollars=float(data["daily_risk_budget_dollars"]),
            max_contracts_per_trade=int(data["max_contracts_per_trade"]),
            max_contracts_per_symbol=int(data["max_contracts_per_symbol"]),
            max_total_exposure_contracts=int(data["max_total_exposure_contracts"]),
        )
    except (TypeError, ValueError) as e:
        raise SnapshotError(f"Invalid account values: {e}", path=str(path)) from e


def _parse_bot(data: Mapping[str, Any], path: Path) -> BotSnapshot:
    if "bot_id" not in data:
        raise SnapshotError("Bot entry is missing bot_id", path=str(path))

    bot_id = str(data["bot_id"])
    dates = tuple(str(d) for d in data.get("dates") or ())
    if dates:
        parsed = pd.to_datetime(list(dates), errors="coerce", utc=True, format="mixed")
        bad = [d for d, ts in zip(dates, parsed) if pd.isna(ts)]
        if bad:
            raise SnapshotError(
                f"Bot {bot_id} has unparseable dates: {', '.join(bad[:3])}", path=str(path)
            )

    metrics = dict(data.get("metrics") or {})
    for key in ("stage", "health_state", "correlation_to_portfolio"):
        if key in data:
            metrics.setdefault(key, data[key])

    return BotSnapshot(
        bot_id=bot_id,
        inputs=BPSInputs.from_dict(metrics),
        name=str(data.get("name", "")),
        archetype=str(data.get("archetype", "UNKNOWN")),
        mode=data.get("mode", "BACKTEST_ONLY"),
        is_trading_enabled=bool(data.get("is_trading_enabled", False)),
        has_runner=bool(data.get("has_runner", False)),
        runner_status=data.get("runner_status"),
        improvement_status=data.get("improvement_status"),
        daily_returns=tuple(float(r) for r in data.get("returns") or ()),
        dates=dates,
    )


def load_snapshot(path: str | Path) -> FleetSnapshot:
    """
    Load a fleet snapshot from YAML or JSON.

    Args:
        path: Snapshot file (.yaml, .yml or .json)

    Returns:
        FleetSnapshot

    Raises:
        SnapshotError: If the file is missing, unparseable or malformed
    """
    path = Path(path)
    data = _read(path)

    if "as_of" not in data:
        raise SnapshotError("Snapshot is missing as_of", path=str(path))
    as_of = _as_datetime(data["as_of"], path)

    account = _parse_account(data.get("account") or {}, path)

    bots_data = data.get("bots") or []
    if not isinstance(bots_data, list):
        raise SnapshotError("bots must be a list", path=str(path))
    try:
        bots = tuple(_parse_bot(b, path) for b in bots_data)
    except (TypeError, ValueError) as e:
        raise SnapshotError(f"Invalid bot entry: {e}", path=str(path)) from e

    repeated = duplicate_bot_ids(bots)
    if repeated:
        raise SnapshotError(f"Duplicate bot_id: {', '.join(repeated)}", path=str(path))

    try:
        readiness = LiveReadinessInput.from_dict(data.get("readiness") or {}, as_of=as_of)
    except (TypeError, ValueError) as e:
        raise SnapshotError(f"Invalid readiness section: {e}", path=str(path)) from e

    logger.info(f"Loaded snapshot {path} with {len(bots)} bots")
    return FleetSnapshot(as_of=as_of, account=account, bots=bots, readiness=readiness)
