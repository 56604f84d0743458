"""Provider adapter tests that replace the requests session with a stub."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest
import requests

from fx_aggregator.errors import ProviderUnavailable
from fx_aggregator.ingestion.exchangerate_api import ExchangeRateApiAdapter
from fx_aggregator.ingestion.fixer import FixerAdapter
from fx_aggregator.ingestion.http import request_json
from fx_aggregator.ingestion.models import CurrencyPair, FetchStatus
from fx_aggregator.ingestion.openexchangerates import OpenExchangeRatesAdapter
from fx_aggregator.ingestion.strategy import ProviderAdapter, ProviderRequest

PAIRS = [
    CurrencyPair("USD", "GBP", pair_id=1),
    CurrencyPair("GBP", "USD", pair_id=2),
    CurrencyPair("GBP", "ZAR", pair_id=3),
]


class _DummyResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, *, bad_json: bool = False):
        self._payload = payload
        self.status_code = status_code
        self._bad_json = bad_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self) -> Any:
        if self._bad_json:
            raise ValueError("Expecting value")
        return self._payload


class _DummySession:
    def __init__(self, response: _DummyResponse | None = None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, params: dict[str, Any] | None = None, timeout: float | None = None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def _statuses(quotes: dict) -> dict[int, FetchStatus]:
    return {pair_id: quote.status for pair_id, quote in quotes.items()}


def test_adapters_satisfy_protocol() -> None:
    session = _DummySession(_DummyResponse({}))

    assert isinstance(OpenExchangeRatesAdapter("id", session=session), ProviderAdapter)
    assert isinstance(ExchangeRateApiAdapter("key", session=session), ProviderAdapter)
    assert isinstance(FixerAdapter("key", session=session), ProviderAdapter)


def test_request_json_wraps_http_status() -> None:
    session = _DummySession(_DummyResponse({}, status_code=503))

    with pytest.raises(ProviderUnavailable) as excinfo:
        request_json(session, "p", ProviderRequest("https://example.test"))

    assert excinfo.value.provider_id == "p"
    assert excinfo.value.message == "HTTP 503"


def test_request_json_wraps_transport_errors() -> None:
    session = _DummySession(error=requests.ConnectionError("refused"))

    with pytest.raises(ProviderUnavailable, match="transport error: ConnectionError"):
        request_json(session, "p", ProviderRequest("https://example.test"))


def test_request_json_rejects_bad_bodies() -> None:
    with pytest.raises(ProviderUnavailable, match="not valid JSON"):
        request_json(
            _DummySession(_DummyResponse(bad_json=True)), "p", ProviderRequest("https://x.test")
        )
    with pytest.raises(ProviderUnavailable, match="not a JSON object"):
        request_json(_DummySession(_DummyResponse([1, 2])), "p", ProviderRequest("https://x.test"))


def test_openexchangerates_success() -> None:
    session = _DummySession(_DummyResponse({"base": "USD", "rates": {"GBP": 0.79, "ZAR": 18.5}}))
    adapter = OpenExchangeRatesAdapter("app", base_url="https://oxr.test/api/", timeout=3, session=session)

    quotes = adapter.fetch(PAIRS)

    assert session.calls == [
        {"url": "https://oxr.test/api/latest.json", "params": {"app_id": "app"}, "timeout": 3}
    ]
    assert set(quotes) == {1, 2, 3}
    assert quotes[1].rate == Decimal("0.79")
    assert quotes[2].rate == Decimal("1.26582278")
    assert quotes[3].rate == Decimal("23.41772152")
    assert all(quote.provider_id == "openexchangerates" for quote in quotes.values())
    assert all(quote.status is FetchStatus.SUCCESS for quote in quotes.values())
    assert len({quote.observed_at for quote in quotes.values()}) == 1


def test_openexchangerates_error_payload_fails_every_pair(caplog: pytest.LogCaptureFixture) -> None:
    session = _DummySession(_DummyResponse({"error": True, "description": "Invalid App ID"}))
    adapter = OpenExchangeRatesAdapter("bad", session=session)

    quotes = adapter.fetch(PAIRS)

    assert _statuses(quotes) == {1: FetchStatus.FAILED, 2: FetchStatus.FAILED, 3: FetchStatus.FAILED}
    assert all(quote.rate == 0 for quote in quotes.values())
    assert "Invalid App ID" in caplog.text


def test_missing_currency_fails_only_that_pair() -> None:
    session = _DummySession(_DummyResponse({"rates": {"GBP": 0.79}}))
    adapter = OpenExchangeRatesAdapter("app", session=session)

    quotes = adapter.fetch(PAIRS)

    assert _statuses(quotes) == {1: FetchStatus.SUCCESS, 2: FetchStatus.SUCCESS, 3: FetchStatus.FAILED}


def test_zero_rate_is_recorded_as_failure() -> None:
    session = _DummySession(_DummyResponse({"rates": {"GBP": 0, "ZAR": 18.5}}))
    adapter = OpenExchangeRatesAdapter("app", session=session)

    quotes = adapter.fetch(PAIRS)

    assert _statuses(quotes) == {1: FetchStatus.FAILED, 2: FetchStatus.FAILED, 3: FetchStatus.FAILED}


def test_http_failure_records_failed_quotes() -> None:
    adapter = OpenExchangeRatesAdapter("app", session=_DummySession(error=requests.Timeout()))

    quotes = adapter.fetch(PAIRS)

    assert set(_statuses(quotes).values()) == {FetchStatus.FAILED}


def test_exchangerate_api_success() -> None:
    payload = {"result": "success", "conversion_rates": {"USD": 1, "GBP": "0.787", "ZAR": "18.4"}}
    session = _DummySession(_DummyResponse(payload))
    adapter = ExchangeRateApiAdapter("secret", base_url="https://er.test/v6", session=session)

    quotes = adapter.fetch(PAIRS[:1])

    assert session.calls[0]["url"] == "https://er.test/v6/secret/latest/USD"
    assert session.calls[0]["params"] == {}
    assert quotes[1].rate == Decimal("0.787")
    assert quotes[1].provider_id == "exchangerate-api"


def test_exchangerate_api_unsuccessful_result(caplog: pytest.LogCaptureFixture) -> None:
    payload = {"result": "error", "error-type": "invalid-key"}
    adapter = ExchangeRateApiAdapter("bad", session=_DummySession(_DummyResponse(payload)))

    quotes = adapter.fetch(PAIRS)

    assert set(_statuses(quotes).values()) == {FetchStatus.FAILED}
    assert "invalid-key" in caplog.text


def test_fixer_symbols_include_usd_anchor_and_drop_basis() -> None:
    pairs = [CurrencyPair("EUR", "GBP", pair_id=1), CurrencyPair("ZAR", "GBP", pair_id=2)]
    adapter = FixerAdapter("key", base_url="https://fixer.test/api", session=_DummySession())

    request = adapter.build_request(pairs)

    assert adapter.basis_currency() == "EUR"
    assert request.url == "https://fixer.test/api/latest"
    assert request.params == {"access_key": "key", "symbols": "GBP,USD,ZAR"}


def test_fixer_converts_eur_basis_to_usd() -> None:
    payload = {"success": True, "base": "EUR", "rates": {"USD": 1.08, "GBP": 0.85, "ZAR": 20.16}}
    adapter = FixerAdapter("key", session=_DummySession(_DummyResponse(payload)))

    quotes = adapter.fetch(PAIRS)

    assert quotes[1].rate == Decimal("0.78703704")
    assert quotes[2].rate == Decimal("1.27058823")
    assert quotes[3].rate == Decimal("23.71764697")
    assert all(quote.provider_id == "fixer-io" for quote in quotes.values())


def test_fixer_without_usd_anchor_fails_every_pair(caplog: pytest.LogCaptureFixture) -> None:
    payload = {"success": True, "rates": {"GBP": 0.85, "ZAR": 20.16}}
    adapter = FixerAdapter("key", session=_DummySession(_DummyResponse(payload)))

    quotes = adapter.fetch(PAIRS)

    assert set(_statuses(quotes).values()) == {FetchStatus.FAILED}
    assert "USD rate not found or zero" in caplog.text


def test_fixer_error_envelope(caplog: pytest.LogCaptureFixture) -> None:
    payload = {"success": False, "error": {"code": 101, "info": "No API Key was specified."}}
    adapter = FixerAdapter("", session=_DummySession(_DummyResponse(payload)))

    quotes = adapter.fetch(PAIRS)

    assert set(_statuses(quotes).values()) == {FetchStatus.FAILED}
    assert "No API Key was specified." in caplog.text
