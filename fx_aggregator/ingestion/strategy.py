"""Abstractions for pluggable rate providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol, runtime_checkable

from fx_aggregator.ingestion.models import CurrencyPair, RawQuote


@dataclass(frozen=True, slots=True)
class ProviderRequest:
    """A fully resolved GET request against a provider endpoint."""

    url: str
    params: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ProviderAdapter(Protocol):
    """Contract for fetching one provider's snapshot as per-pair raw quotes.

    ``fetch`` never raises for provider-side problems: every requested pair is
    present in the result, either as a SUCCESS quote or a FAILED one.
    """

    provider_id: str

    def basis_currency(self) -> str:
        ...  # pragma: no cover - protocol definition

    def build_request(self, pairs: Iterable[CurrencyPair]) -> ProviderRequest:
        ...  # pragma: no cover - protocol definition

    def fetch(self, pairs: Iterable[CurrencyPair]) -> dict[int, RawQuote]:
        ...  # pragma: no cover - protocol definition


__all__ = ["ProviderAdapter", "ProviderRequest"]
