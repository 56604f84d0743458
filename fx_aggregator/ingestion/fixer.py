"""Fixer.io adapter.

Fixer quotes every currency against EUR on the free tier. The basket is
re-based onto USD with :func:`to_usd_basis` before any pair is priced, using
the ``USD`` entry of the same payload as the anchor, so EUR-basis numbers
never leave :meth:`FixerAdapter.fetch`.
"""

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
from fx_aggregator.ingestion.rate_math import USD, parse_rate_map, to_usd_basis
from fx_aggregator.ingestion.strategy import ProviderRequest
from fx_aggregator.utils.clock import utc_now
from fx_aggregator.utils.logger import get_logger

LOGGER = get_logger(__name__)

FIXER_BASE_URL = "https://data.fixer.io/api"
EUR = "EUR"


class FixerAdapter:
    provider_id = "fixer-io"

    def __init__(
        self,
        access_key: str,
        *,
        base_url: str = FIXER_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.access_key = access_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or build_session()

    def basis_currency(self) -> str:
        return EUR

    @staticmethod
    def symbols_for(pairs: Iterable[CurrencyPair]) -> list[str]:
        """Every currency the pairs reference, minus the basis, plus the USD anchor."""

        symbols = {code for pair in pairs for code in pair.currencies if code != EUR}
        symbols.add(USD)
        return sorted(symbols)

    def build_request(self, pairs: Iterable[CurrencyPair]) -> ProviderRequest:
        return ProviderRequest(
            url=f"{self.base_url}/latest",
            params={"access_key": self.access_key, "symbols": ",".join(self.symbols_for(pairs))},
        )

    def parse_rates(self, payload: Mapping[str, Any]) -> dict[str, Decimal]:
        rates = parse_rate_map(payload.get("rates"))
        if payload.get("success") is not True or not rates:
            error = payload.get("error")
            info = error.get("info") if isinstance(error, Mapping) else None
            message = info or (
                "API returned unsuccessful response"
                if payload.get("success") is not True
                else "No rates data received"
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
            native_rates = self.parse_rates(payload)
        except ProviderUnavailable as exc:
            LOGGER.error("%s API returned error: %s", self.provider_id, exc.message)
            return failed_quotes(requested, self.provider_id, observed_at)
        usd_rates = to_usd_basis(self.basis_currency(), native_rates)
        if not usd_rates:
            LOGGER.error("USD rate not found or zero in %s response", self.provider_id)
        else:
            LOGGER.info("Successfully fetched %s rates from %s", len(native_rates), self.provider_id)
        return resolve_quotes(requested, self.provider_id, usd_rates, observed_at)


__all__ = ["FIXER_BASE_URL", "FixerAdapter"]
