from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from fx_aggregator.db.sqlite_backend import SQLiteBackend
from fx_aggregator.ingestion.models import CurrencyPair
from fx_aggregator.seeds import DEFAULT_PAIRS, seed_currency_pairs
from fx_aggregator.seeds import populate_pairs


def test_default_pairs() -> None:
    assert [pair.pair_code for pair in DEFAULT_PAIRS if pair.active] == [
        "USDGBP",
        "USDZAR",
        "ZARGBP",
        "GBPUSD",
    ]
    assert {pair.pair_code for pair in DEFAULT_PAIRS if not pair.active} == {"USDEUR", "EURGBP"}


def test_seeding_is_skipped_when_pairs_exist(tmp_path: Path) -> None:
    store = SQLiteBackend(tmp_path / "fx.db")

    first = seed_currency_pairs(store)
    second = seed_currency_pairs(store)

    assert len(first) == 6
    assert [pair.pair_id for pair in first] == [1, 2, 3, 4, 5, 6]
    assert second == []
    assert len(store.fetch_pairs()) == 6


def test_force_upserts_existing_pairs(tmp_path: Path) -> None:
    store = SQLiteBackend(tmp_path / "fx.db")
    seed_currency_pairs(store)

    updated = seed_currency_pairs(
        store, [CurrencyPair("USD", "EUR", custom_markup=Decimal("0.03"))], force=True
    )

    assert updated[0].pair_id == 4
    usd_eur = store.find_pair("USDEUR")
    assert usd_eur.active is True
    assert usd_eur.custom_markup == Decimal("0.03")
    assert len(store.fetch_pairs()) == 6


def test_cli_seeds_sqlite_file(tmp_path: Path) -> None:
    db_path = tmp_path / "cli" / "fx.db"

    populate_pairs.main(["--db-path", str(db_path)])

    assert len(SQLiteBackend(db_path).fetch_pairs(active_only=True)) == 4
