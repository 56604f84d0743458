"""Pure helpers for deriving pair rates from a USD-basis rate table.

All arithmetic uses :class:`decimal.Decimal` with eight fractional digits and
``ROUND_HALF_UP``. Every division is quantised immediately so chained
operations never accumulate more precision than a single step.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, DecimalException, InvalidOperation
from typing import Any, Mapping

RATE_SCALE = 8
_QUANTUM = Decimal(1).scaleb(-RATE_SCALE)

USD = "USD"


def quantize_rate(value: Decimal) -> Decimal:
    """Round ``value`` to eight fractional digits, half up."""

    return value.quantize(_QUANTUM, rounding=ROUND_HALF_UP)


def _divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    return quantize_rate(numerator / denominator)


def directional_rate(
    base: str, target: str, usd_basis: Mapping[str, Decimal]
) -> Decimal | None:
    """Return how many ``target`` units buy one ``base`` unit.

    ``usd_basis`` maps currency codes to units per one USD. ``None`` signals
    that the table cannot answer: a currency is missing, or a divisor is zero.
    """

    try:
        if base == USD:
            direct = usd_basis.get(target)
            return quantize_rate(direct) if direct is not None else None
        base_rate = usd_basis.get(base)
        if base_rate is None or base_rate == 0:
            return None
        if target == USD:
            return _divide(Decimal(1), base_rate)
        target_rate = usd_basis.get(target)
        if target_rate is None:
            return None
        return _divide(target_rate, base_rate)
    except DecimalException:
        return None


def to_usd_basis(native_basis: str, native_rates: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """Re-express a rate table quoted against ``native_basis`` against USD.

    ``native_rates["USD"]`` is the anchor (USD per one ``native_basis`` unit).
    A missing or zero anchor yields an empty table, which callers treat as a
    failure for every pair. The anchor itself is not carried over, and only
    positive entries are converted.
    """

    anchor = native_rates.get(USD)
    if anchor is None or anchor == 0:
        return {}
    converted: dict[str, Decimal] = {}
    for currency, value in native_rates.items():
        if currency == USD or value is None or value <= 0:
            continue
        try:
            converted[currency] = _divide(value, anchor)
        except DecimalException:
            continue
    return converted


def parse_rate_map(raw: Mapping[str, Any] | None) -> dict[str, Decimal]:
    """Coerce a JSON rate basket into ``Decimal`` values keyed by upper-case code.

    Values go through ``str`` so JSON floats keep their printed digits.
    Entries that are not finite numbers are dropped.
    """

    if not raw:
        return {}
    rates: dict[str, Decimal] = {}
    for code, value in raw.items():
        if isinstance(value, bool) or value is None:
            continue
        try:
            parsed = Decimal(str(value))
        except (InvalidOperation, ValueError):
            continue
        if parsed.is_finite():
            rates[str(code).upper()] = parsed
    return rates


__all__ = [
    "RATE_SCALE",
    "USD",
    "directional_rate",
    "parse_rate_map",
    "quantize_rate",
    "to_usd_basis",
]
