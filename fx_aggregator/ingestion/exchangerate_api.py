"""ExchangeRate-API v6 adapter (USD basis)."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, Mapping

import requests

from fx_aggregator.errors import ProviderUnavailable
from fx_aggregator.ingestion.http import (
    DEFAULT_TIMEOUT_SECONDS,
    build_session,
    failed_quotes,
    request_json,
    resolve_quotes,
)
from fx_aggregator.ingestion.models import CurrencyPair, RawQuote
from fx_aggregator.ingestion.rate_math import USD, parse_rate_map
from fx_aggregator.ingestion.strategy import ProviderRequest
from fx_aggregator.utils.clock import utc_now
from fx_aggregator.utils.logger import get_logger

LOGGER = get_logger(__name__)

EXCHANGERATE_API_BASE_URL = "https://v6.exchangerate-api.com/v6"


class ExchangeRateApiAdapter:
    """Fetch ``/{key}/latest/USD``.

    The envelope carries ``result: "success"`` and ``conversion_rates``; errors
    are reported through ``error-type``.
    """

    provider_id = "exchangerate-api"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = EXCHANGERATE_API_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or build_session()

    def basis_currency(self) -> str:
        return USD

    def build_request(self, pairs: Iterable[CurrencyPair]) -> ProviderRequest:
        return ProviderRequest(url=f"{self.base_url}/{self.api_key}/latest/{USD}")

    def parse_rates(self, payload: Mapping[str, Any]) -> dict[str, Decimal]:
        result = payload.get("result")
        rates = parse_rate_map(payload.get("conversion_rates"))
        if result != "success" or not rates:
            message = payload.get("error-type") or (
                "API returned unsuccessful result" if result != "success" else "No rates data received"
            )
            raise ProviderUnavailable(self.provider_id, str(message))
        return rates

    def fetch(self, pairs: Iterable[CurrencyPair]) -> dict[int, RawQuote]:
        requested = list(pairs)
        observed_at = utc_now()
        try:
            payload = request_json(
                self.session, self.provider_id, self.build_request(requested), timeout=self.timeout
            )
            usd_rates = self.parse_rates(payload)
        except ProviderUnavailable as exc:
            LOGGER.error("%s API returned error: %s", self.provider_id, exc.message)
            return failed_quotes(requested, self.provider_id, observed_at)
        LOGGER.info("Successfully fetched %s rates from %s", len(usd_rates), self.provider_id)
        return resolve_quotes(requested, self.provider_id, usd_rates, observed_at)


__all__ = ["EXCHANGERATE_API_BASE_URL", "ExchangeRateApiAdapter"]
