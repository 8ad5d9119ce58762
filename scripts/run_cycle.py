#!/usr/bin/env python3
"""
FLEETGUARD governance cycle script.

Usage:
    python scripts/run_cycle.py data/sample_snapshot.yaml
    python scripts/run_cycle.py snapshot.json --config-dir config
    python scripts/run_cycle.py snapshot.yaml --json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from fleetguard.core.config import get_settings
from fleetguard.core.exceptions import FleetGuardError
from fleetguard.pipeline.cycle import CycleReport, GovernanceCycle
from fleetguard.pipeline.snapshot import load_snapshot


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else getattr(logging, get_settings().log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def print_report(report: CycleReport) -> None:
    """Human-readable cycle summary."""
    print("\n" + "=" * 60)
    print("FLEETGUARD GOVERNANCE CYCLE")
    print("=" * 60)
    print(f"As of:      {report.as_of.isoformat()}")
    print(f"Readiness:  {report.readiness.overall_status.value} "
          f"(live={report.readiness.live_ready}, canary={report.readiness.canary_ready})")
    print("-" * 60)
    print("Allocations:")
    frame = report.allocations_frame()
    if frame.empty:
        print("  (no bots)")
    else:
        print(frame.to_string(index=False))
    print("-" * 60)

    flagged = {bot_id: found for bot_id, found in report.violations.items() if found}
    if flagged:
        print("Invariant violations:")
        for bot_id, found in flagged.items():
            for v in found:
                print(f"  {bot_id}: [{v.severity.value}] {v.code} -> {v.fix_action}")
        print("-" * 60)

    if report.correlation is not None:
        div = report.correlation.diversification_score
        risk = report.correlation.portfolio_risk
        print(f"Diversification: {div.score:.1f} ({div.grade}), "
              f"portfolio risk {risk.overall_risk_level.value}")
        for cluster in report.correlation.clusters:
            print(f"  {cluster.id} [{cluster.cluster_risk.value}]: {cluster.explanation}")
        print("-" * 60)

    if report.readiness.blockers:
        print("Blockers:")
        for b in report.readiness.blockers:
            print(f"  [{b.severity.value}] {b.code}: {b.message}")
    print("=" * 60 + "\n")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run one FLEETGUARD governance cycle over a fleet snapshot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/run_cycle.py data/sample_snapshot.yaml
    python scripts/run_cycle.py snapshot.json --json > report.json

Readiness status:
    OK       No blockers
    WARN     Warnings only, live trading allowed
    BLOCKED  CRITICAL or ERROR blockers present
        """,
    )

    parser.add_argument("snapshot", type=Path, help="Fleet snapshot (.yaml, .yml or .json)")

    parser.add_argument(
        "--config-dir",
        "-c",
        type=Path,
        default=None,
        help="Config directory (default: FLEETGUARD_CONFIG_DIR or ./config)",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full report as JSON",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        cycle = GovernanceCycle.from_config(args.config_dir)
        report = cycle.run(load_snapshot(args.snapshot))
    except FleetGuardError as e:
        logging.error(f"Governance cycle failed: {e}")
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)

    return 0 if report.readiness.live_ready else 2


if __name__ == "__main__":
    sys.exit(main())
