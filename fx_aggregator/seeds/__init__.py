"""Helpers that populate the currency pair registry."""

from __future__ import annotations

from typing import Any

__all__ = ["DEFAULT_PAIRS", "seed_currency_pairs"]


def seed_currency_pairs(*args: Any, **kwargs: Any):
    from fx_aggregator.seeds.populate_pairs import seed_currency_pairs as _seed

    return _seed(*args, **kwargs)


def __getattr__(name: str) -> Any:
    if name == "DEFAULT_PAIRS":
        from fx_aggregator.seeds.populate_pairs import DEFAULT_PAIRS

        return DEFAULT_PAIRS
    raise AttributeError(f"module 'fx_aggregator.seeds' has no attribute {name}")
