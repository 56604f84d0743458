"""CLI entry point: run the aggregation pipeline once or on the hourly schedule."""

from __future__ import annotations

import argparse
from typing import Sequence

from fx_aggregator import FxAggregator
from fx_aggregator.config import AggregatorConfig
from fx_aggregator.utils.logger import configure_logging, get_logger

LOGGER = get_logger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Aggregate FX rates from multiple providers")
    parser.add_argument("--db-url", default=None, help="Database DSN (defaults to FX_AGGREGATOR_DB_URL or SQLite)")
    parser.add_argument("--seed-pairs", action="store_true", help="Seed the default currency pairs first")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument(
        "--no-align",
        action="store_true",
        help="Start the interval timer now instead of at the top of the hour",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    aggregator = FxAggregator(args.db_url, config=AggregatorConfig.from_env())
    try:
        if args.seed_pairs:
            aggregator.seed_pairs()
        if args.once:
            report = aggregator.run_once()
            return 0 if report.succeeded else 1
        scheduler = aggregator.scheduler(align_to_interval=not args.no_align)
        try:
            scheduler.run_forever()
        except KeyboardInterrupt:
            LOGGER.info("Interrupted; shutting down scheduler")
        return 0
    finally:
        aggregator.close()


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
