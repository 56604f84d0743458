"""Stateless helpers shared by the provider adapters.

The adapters do not inherit from a common base; they compose these functions
so each variant keeps its own session and configuration.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping

import requests

from fx_aggregator.errors import InvalidRateValue, MissingRateData, ProviderUnavailable
from fx_aggregator.ingestion.models import CurrencyPair, FetchStatus, RawQuote
from fx_aggregator.ingestion.rate_math import directional_rate
from fx_aggregator.ingestion.strategy import ProviderRequest
from fx_aggregator.utils.logger import get_logger

LOGGER = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
FAILED_RATE = Decimal("0")


def build_session(user_agent: str = "fx-aggregator") -> requests.Session:
    session = requests.Session()
    session.headers.update({"Accept": "application/json", "User-Agent": user_agent})
    return session


def request_json(
    session: requests.Session,
    provider_id: str,
    request: ProviderRequest,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Mapping[str, Any]:
    """GET ``request`` and decode the JSON object it returns.

    Transport errors, HTTP error statuses and undecodable bodies all surface as
    :class:`ProviderUnavailable`.
    """

    try:
        response = session.get(request.url, params=request.params, timeout=timeout)
        response.raise_for_status()
    except requests.HTTPError as exc:
        status = getattr(exc.response, "status_code", "unknown")
        raise ProviderUnavailable(provider_id, f"HTTP {status}") from exc
    except requests.RequestException as exc:
        raise ProviderUnavailable(provider_id, f"transport error: {type(exc).__name__}") from exc
    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderUnavailable(provider_id, "response body is not valid JSON") from exc
    if not isinstance(payload, Mapping):
        raise ProviderUnavailable(provider_id, "response body is not a JSON object")
    return payload


def failed_quote(pair: CurrencyPair, provider_id: str, observed_at: datetime) -> RawQuote:
    return RawQuote(
        pair_id=_require_pair_id(pair),
        rate=FAILED_RATE,
        provider_id=provider_id,
        status=FetchStatus.FAILED,
        observed_at=observed_at,
    )


def failed_quotes(
    pairs: Iterable[CurrencyPair], provider_id: str, observed_at: datetime
) -> dict[int, RawQuote]:
    """Record a FAILED quote for every pair when the whole provider is down."""

    return {
        _require_pair_id(pair): failed_quote(pair, provider_id, observed_at) for pair in pairs
    }


def resolve_pair_rate(pair: CurrencyPair, usd_basis: Mapping[str, Decimal]) -> Decimal:
    """Return the pair rate or raise the reason it cannot be derived."""

    for currency in pair.currencies:
        if currency != "USD" and currency not in usd_basis:
            raise MissingRateData(f"{currency} missing from rate basket for {pair.pair_code}")
    rate = directional_rate(pair.base_currency, pair.target_currency, usd_basis)
    if rate is None or not rate.is_finite() or rate <= 0:
        raise InvalidRateValue(f"Non-positive or undefined rate {rate} for {pair.pair_code}")
    return rate


def resolve_quotes(
    pairs: Iterable[CurrencyPair],
    provider_id: str,
    usd_basis: Mapping[str, Decimal],
    observed_at: datetime,
) -> dict[int, RawQuote]:
    """Turn a USD-basis basket into one quote per pair.

    A pair that cannot be priced gets a FAILED quote; its siblings are not
    affected.
    """

    quotes: dict[int, RawQuote] = {}
    for pair in pairs:
        pair_id = _require_pair_id(pair)
        try:
            rate = resolve_pair_rate(pair, usd_basis)
        except (MissingRateData, InvalidRateValue) as exc:
            LOGGER.warning("%s could not price %s: %s", provider_id, pair.pair_code, exc)
            quotes[pair_id] = failed_quote(pair, provider_id, observed_at)
            continue
        quotes[pair_id] = RawQuote(
            pair_id=pair_id,
            rate=rate,
            provider_id=provider_id,
            status=FetchStatus.SUCCESS,
            observed_at=observed_at,
        )
    return quotes


def _require_pair_id(pair: CurrencyPair) -> int:
    if pair.pair_id is None:
        raise ValueError(f"Currency pair {pair.pair_code} has no pair_id; register it first")
    return pair.pair_id


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "FAILED_RATE",
    "build_session",
    "failed_quotes",
    "request_json",
    "resolve_pair_rate",
    "resolve_quotes",
]
