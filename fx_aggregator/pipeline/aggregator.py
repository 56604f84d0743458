"""Turn a pair's raw provider quotes into one published rate."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence

from fx_aggregator.ingestion.models import AggregatedRate, CurrencyPair, RawQuote
from fx_aggregator.ingestion.rate_math import quantize_rate
from fx_aggregator.utils.clock import utc_now
from fx_aggregator.utils.currency import DEFAULT_MARKUP, validate_markup


def qualifying_quotes(raw_quotes: Iterable[RawQuote]) -> list[RawQuote]:
    """Keep SUCCESS quotes with a strictly positive rate."""

    return [quote for quote in raw_quotes if quote.is_usable]


def aggregate(
    pair: CurrencyPair,
    raw_quotes: Iterable[RawQuote],
    default_markup: Decimal = DEFAULT_MARKUP,
    *,
    observed_at: datetime | None = None,
) -> AggregatedRate | None:
    """Average the qualifying quotes of ``pair`` and apply its markup.

    Returns ``None`` when no provider produced a usable quote; the previously
    published rate then stays authoritative. The result depends only on the
    multiset of qualifying rates, not on provider identity or order.
    """

    usable = qualifying_quotes(raw_quotes)
    if not usable:
        return None
    total = sum((quote.rate for quote in usable), Decimal(0))
    average_rate = quantize_rate(total / len(usable))
    markup = pair.custom_markup if pair.custom_markup is not None else validate_markup(default_markup)
    final_rate = quantize_rate(average_rate * (Decimal(1) + markup))
    return AggregatedRate(
        pair_id=pair.pair_id,
        average_rate=average_rate,
        final_rate=final_rate,
        markup_applied=markup,
        sources_count=len(usable),
        observed_at=observed_at or utc_now(),
        pair_code=pair.pair_code,
    )


def group_quotes_by_pair(raw_quotes: Iterable[RawQuote]) -> dict[int, list[RawQuote]]:
    grouped: dict[int, list[RawQuote]] = {}
    for quote in raw_quotes:
        grouped.setdefault(quote.pair_id, []).append(quote)
    return grouped


def aggregate_all(
    pairs: Sequence[CurrencyPair],
    raw_quotes: Iterable[RawQuote],
    default_markup: Decimal = DEFAULT_MARKUP,
    *,
    observed_at: datetime | None = None,
) -> tuple[list[AggregatedRate], list[CurrencyPair]]:
    """Aggregate every pair; return the published rates and the skipped pairs."""

    grouped = group_quotes_by_pair(raw_quotes)
    stamp = observed_at or utc_now()
    published: list[AggregatedRate] = []
    skipped: list[CurrencyPair] = []
    for pair in pairs:
        result = aggregate(pair, grouped.get(pair.pair_id, ()), default_markup, observed_at=stamp)
        if result is None:
            skipped.append(pair)
        else:
            published.append(result)
    return published, skipped


__all__ = ["aggregate", "aggregate_all", "group_quotes_by_pair", "qualifying_quotes"]
