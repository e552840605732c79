"""Command-line entry point: run a scenario file and optional randomized checks."""

import argparse
import logging
import sys
from typing import List, Optional

from .config.loader import load_config
from .engine.errors import RewardPoolError
from .reporting.export import export_csv, export_json
from .simulation.interleaving import RandomInterleavingRunner, summarize_runs
from .simulation.runner import SimulationRunner

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rewardpool",
        description="Replay a reward-pool scenario and check ledger invariants."
    )
    parser.add_argument("--config", help="Scenario YAML (defaults to the bundled scenario)")
    parser.add_argument("--export-csv", metavar="PATH", help="Write step snapshots to CSV")
    parser.add_argument("--export-json", metavar="PATH", help="Write full results to JSON")
    parser.add_argument(
        "--random-runs", type=int, default=0, metavar="N",
        help="Also run N randomized interleavings using the config's simulation settings"
    )
    parser.add_argument("--lenient", action="store_true", help="Record failing steps instead of aborting")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, ...)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        config = load_config(args.config)
        result = SimulationRunner(config).run(strict=not args.lenient)
    except RewardPoolError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(f"Scenario {config.compute_hash()} - pool {config.pool.pool_id!r}")
    print(f"{'account':<16}{'claimed':>14}{'pending':>14}")
    for name, pending in result.final_pending.items():
        print(f"{name:<16}{result.payouts.get(name, 0):>14,}{pending:>14,}")

    for warning in result.warnings:
        print(f"[{warning.severity}] {warning.category}: {warning.message}")
    for message in result.errors:
        print(f"[step error] {message}")
    for message in result.expectation_failures:
        print(f"[expectation] {message}")

    if args.export_csv:
        export_csv(result, args.export_csv)
    if args.export_json:
        export_json(result, args.export_json)

    exit_code = 0 if result.passed else 1

    if args.random_runs:
        runner = RandomInterleavingRunner(config.simulation)
        summary = summarize_runs(runner.run_many(runs=args.random_runs))
        print(
            f"Randomized runs: {summary['num_runs']}, violations: {summary['violations']}, "
            f"failed seeds: {summary['failed_seeds']}"
        )
        if summary['violations']:
            exit_code = 1

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
