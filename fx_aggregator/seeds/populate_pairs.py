"""Seed the currency pair registry with the default set of pairs."""

from __future__ import annotations

import argparse
from typing import Sequence

from fx_aggregator.db.base_backend import BackendStrategy
from fx_aggregator.db.sqlite_backend import SQLiteBackend
from fx_aggregator.ingestion.models import CurrencyPair
from fx_aggregator.utils.logger import get_logger

LOGGER = get_logger(__name__)

DEFAULT_PAIRS: tuple[CurrencyPair, ...] = (
    CurrencyPair("USD", "GBP"),
    CurrencyPair("USD", "ZAR"),
    CurrencyPair("ZAR", "GBP"),
    CurrencyPair("USD", "EUR", active=False),
    CurrencyPair("GBP", "USD"),
    CurrencyPair("EUR", "GBP", active=False),
)


def seed_currency_pairs(
    store: BackendStrategy,
    pairs: Sequence[CurrencyPair] = DEFAULT_PAIRS,
    *,
    force: bool = False,
) -> list[CurrencyPair]:
    """Register ``pairs`` when the registry is empty (or always with ``force``).

    Returns the pairs that were written, with their assigned ids.
    """

    existing = store.fetch_pairs()
    if existing and not force:
        LOGGER.info("Currency pairs already exist. Skipping seeding.")
        return []
    saved = store.save_pairs(pairs)
    LOGGER.info("Successfully seeded %s currency pairs", len(saved))
    for pair in saved:
        LOGGER.info(
            "- %s: %s (Active: %s, Custom Markup: %s)",
            pair.pair_code,
            pair.display_name,
            pair.active,
            pair.custom_markup if pair.custom_markup is not None else "Default",
        )
    return saved


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the default currency pairs into SQLite")
    parser.add_argument("--db-path", default=None, help="SQLite database file")
    parser.add_argument(
        "--force", action="store_true", help="Upsert the defaults even if pairs exist"
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    backend = SQLiteBackend(args.db_path)
    try:
        seed_currency_pairs(backend, force=args.force)
    finally:
        backend.close()


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
