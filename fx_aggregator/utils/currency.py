"""Currency-code, pair-code and markup invariants used across the package."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from fx_aggregator.errors import InvalidCurrencyPair

DEFAULT_MARKUP = Decimal("0.10")
MIN_MARKUP = Decimal("0")
MAX_MARKUP = Decimal("1")
MAX_HISTORY_LIMIT = 100

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def validate_currency_code(code: str | None) -> str:
    """Return ``code`` upper-cased, or raise if it is not a 3-letter code."""

    cleaned = (code or "").strip().upper()
    if not _CURRENCY_RE.match(cleaned):
        raise InvalidCurrencyPair(f"Invalid currency code format: {code!r}")
    return cleaned


def split_pair_code(pair_code: str | None) -> tuple[str, str]:
    """Split ``USDGBP`` into ``("USD", "GBP")`` after validating it."""

    cleaned = (pair_code or "").strip().upper()
    if len(cleaned) != 6:
        raise InvalidCurrencyPair(f"Invalid currency pair format: {pair_code!r}")
    base = validate_currency_code(cleaned[:3])
    target = validate_currency_code(cleaned[3:])
    if base == target:
        raise InvalidCurrencyPair(f"Base and target currency must differ: {pair_code!r}")
    return base, target


def validate_pair_code(pair_code: str | None) -> str:
    base, target = split_pair_code(pair_code)
    return base + target


def validate_markup(markup: Decimal | float | str | None) -> Decimal | None:
    """Coerce ``markup`` to ``Decimal`` and enforce the ``[0, 1]`` domain.

    ``None`` is passed through so callers can fall back to the default markup.
    """

    if markup is None:
        return None
    try:
        value = markup if isinstance(markup, Decimal) else Decimal(str(markup))
    except InvalidOperation as exc:
        raise InvalidCurrencyPair(f"Markup must be numeric, got {markup!r}") from exc
    if not value.is_finite() or value < MIN_MARKUP or value > MAX_MARKUP:
        raise InvalidCurrencyPair(f"Markup must be between 0 and 1, got {markup!r}")
    return value


def validate_history_limit(limit: int) -> int:
    if limit <= 0 or limit > MAX_HISTORY_LIMIT:
        raise ValueError(f"Limit must be between 1 and {MAX_HISTORY_LIMIT}")
    return limit


__all__ = [
    "DEFAULT_MARKUP",
    "MAX_HISTORY_LIMIT",
    "split_pair_code",
    "validate_currency_code",
    "validate_history_limit",
    "validate_markup",
    "validate_pair_code",
]
