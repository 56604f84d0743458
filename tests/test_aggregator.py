from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from fx_aggregator.errors import InvalidCurrencyPair
from fx_aggregator.ingestion.models import CurrencyPair, FetchStatus, RawQuote
from fx_aggregator.pipeline.aggregator import aggregate, aggregate_all, qualifying_quotes

PAIR = CurrencyPair("USD", "GBP", pair_id=1)
STAMP = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _quote(rate: str, provider: str = "p", status: FetchStatus = FetchStatus.SUCCESS, pair_id: int = 1):
    return RawQuote(pair_id=pair_id, rate=Decimal(rate), provider_id=provider, status=status)


def test_three_providers_with_default_markup() -> None:
    quotes = [_quote("0.79", "a"), _quote("0.787", "b"), _quote("0.792", "c")]

    result = aggregate(PAIR, quotes, observed_at=STAMP)

    assert result is not None
    assert result.average_rate == Decimal("0.78966667")
    assert result.final_rate == Decimal("0.86863334")
    assert result.markup_applied == Decimal("0.10")
    assert result.sources_count == 3
    assert result.pair_code == "USDGBP"
    assert result.observed_at == STAMP


def test_failed_and_zero_quotes_are_excluded() -> None:
    quotes = [
        _quote("0.79", "a"),
        _quote("0", "b", FetchStatus.FAILED),
        _quote("0", "c"),
    ]

    result = aggregate(PAIR, quotes)

    assert result is not None
    assert result.sources_count == 1
    assert result.average_rate == Decimal("0.79000000")
    assert result.final_rate == Decimal("0.86900000")


def test_no_qualifying_quotes_publishes_nothing() -> None:
    quotes = [_quote("0", "a", FetchStatus.FAILED), _quote("0", "b", FetchStatus.FAILED)]

    assert aggregate(PAIR, quotes) is None
    assert aggregate(PAIR, []) is None


def test_custom_markup_overrides_default() -> None:
    pair = CurrencyPair("USD", "GBP", pair_id=1, custom_markup=Decimal("0.05"))

    result = aggregate(pair, [_quote("0.80")], Decimal("0.25"))

    assert result is not None
    assert result.markup_applied == Decimal("0.05")
    assert result.final_rate == Decimal("0.84000000")


def test_zero_markup_keeps_average() -> None:
    result = aggregate(PAIR, [_quote("0.80"), _quote("0.70")], Decimal("0"))

    assert result is not None
    assert result.final_rate == result.average_rate == Decimal("0.75000000")


def test_result_is_independent_of_quote_order() -> None:
    quotes = [_quote("0.79", "a"), _quote("0.787", "b"), _quote("0.792", "c")]

    forward = aggregate(PAIR, quotes, observed_at=STAMP)
    backward = aggregate(PAIR, list(reversed(quotes)), observed_at=STAMP)

    assert forward == backward


def test_invalid_default_markup_is_rejected() -> None:
    with pytest.raises(InvalidCurrencyPair):
        aggregate(PAIR, [_quote("0.79")], Decimal("1.5"))


def test_qualifying_quotes_filter() -> None:
    good = _quote("1.2")
    assert qualifying_quotes([good, _quote("0", status=FetchStatus.FAILED)]) == [good]


def test_aggregate_all_reports_skipped_pairs() -> None:
    other = CurrencyPair("GBP", "USD", pair_id=2)
    quotes = [
        _quote("0.79", "a"),
        _quote("0.80", "b"),
        _quote("0", "a", FetchStatus.FAILED, pair_id=2),
    ]

    published, skipped = aggregate_all([PAIR, other], quotes, observed_at=STAMP)

    assert [rate.pair_id for rate in published] == [1]
    assert published[0].average_rate == Decimal("0.79500000")
    assert skipped == [other]
