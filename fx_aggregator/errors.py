"""Exception hierarchy shared across fx_aggregator."""

from __future__ import annotations


class FxAggregatorError(Exception):
    """Base class for every error raised by the package."""


class ProviderUnavailable(FxAggregatorError):
    """A provider could not be reached or reported an unsuccessful payload."""

    def __init__(self, provider_id: str, message: str) -> None:
        super().__init__(f"{provider_id}: {message}")
        self.provider_id = provider_id
        self.message = message


class MissingRateData(FxAggregatorError):
    """A currency needed for a pair is absent from the provider basket."""


class InvalidRateValue(FxAggregatorError):
    """A resolved rate is zero, negative or not finite."""


class StoragePersistenceError(FxAggregatorError):
    """The storage backend rejected a read or write."""


class InvalidCurrencyPair(FxAggregatorError, ValueError):
    """Currency codes, pair codes or markups violate the pair invariants."""


class CurrencyPairNotFound(FxAggregatorError, LookupError):
    """No registered pair matches the requested pair code."""


class RateNotFound(FxAggregatorError, LookupError):
    """The pair exists but no aggregated rate has been published yet."""


__all__ = [
    "CurrencyPairNotFound",
    "FxAggregatorError",
    "InvalidCurrencyPair",
    "InvalidRateValue",
    "MissingRateData",
    "ProviderUnavailable",
    "RateNotFound",
    "StoragePersistenceError",
]
