from __future__ import annotations

from decimal import Decimal

from fx_aggregator.ingestion.rate_math import (
    directional_rate,
    parse_rate_map,
    quantize_rate,
    to_usd_basis,
)


def test_direct_rate_from_usd() -> None:
    assert directional_rate("USD", "GBP", {"GBP": Decimal("0.79")}) == Decimal("0.79")


def test_inverse_rate_to_usd_rounds_half_up_to_eight_digits() -> None:
    rate = directional_rate("GBP", "USD", {"GBP": Decimal("0.79")})

    assert rate == Decimal("1.26582278")
    assert rate.as_tuple().exponent == -8


def test_cross_rate() -> None:
    usd = {"GBP": Decimal("0.79"), "ZAR": Decimal("18.50")}

    assert directional_rate("GBP", "ZAR", usd) == Decimal("23.41772152")


def test_missing_or_zero_inputs_yield_none() -> None:
    assert directional_rate("USD", "GBP", {}) is None
    assert directional_rate("GBP", "USD", {}) is None
    assert directional_rate("GBP", "USD", {"GBP": Decimal("0")}) is None
    assert directional_rate("GBP", "ZAR", {"GBP": Decimal("0.79")}) is None
    assert directional_rate("GBP", "ZAR", {"ZAR": Decimal("18.5")}) is None
    assert directional_rate("GBP", "ZAR", {"GBP": Decimal("0"), "ZAR": Decimal("18.5")}) is None


def test_to_usd_basis_converts_eur_basis_and_drops_anchor() -> None:
    converted = to_usd_basis("EUR", {"USD": Decimal("1.08"), "GBP": Decimal("0.85")})

    assert converted == {"GBP": Decimal("0.78703704")}


def test_to_usd_basis_without_anchor_is_empty() -> None:
    assert to_usd_basis("EUR", {"GBP": Decimal("0.85")}) == {}
    assert to_usd_basis("EUR", {"USD": Decimal("0"), "GBP": Decimal("0.85")}) == {}


def test_to_usd_basis_skips_non_positive_entries() -> None:
    converted = to_usd_basis(
        "EUR", {"USD": Decimal("1.08"), "GBP": Decimal("0"), "ZAR": Decimal("20.16")}
    )

    assert converted == {"ZAR": Decimal("18.66666667")}


def test_chained_conversion_rounds_at_each_division() -> None:
    usd = to_usd_basis("EUR", {"USD": Decimal("1.08"), "GBP": Decimal("0.85")})

    # 1 / 0.78703704, not 1.08 / 0.85
    assert directional_rate("GBP", "USD", usd) == Decimal("1.27058823")


def test_parse_rate_map_keeps_printed_digits_and_drops_junk() -> None:
    parsed = parse_rate_map(
        {"gbp": 0.79, "ZAR": "18.5", "BAD": "n/a", "NULL": None, "INF": "Infinity", "FLAG": True}
    )

    assert parsed == {"GBP": Decimal("0.79"), "ZAR": Decimal("18.5")}
    assert parse_rate_map(None) == {}


def test_quantize_rate_half_up() -> None:
    assert quantize_rate(Decimal("0.123456785")) == Decimal("0.12345679")
    assert quantize_rate(Decimal("0.123456784")) == Decimal("0.12345678")
