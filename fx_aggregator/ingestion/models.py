"""Data models shared across ingestion, aggregation and storage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from fx_aggregator.errors import InvalidCurrencyPair
from fx_aggregator.utils.clock import utc_now
from fx_aggregator.utils.currency import validate_currency_code, validate_markup


class FetchStatus(str, Enum):
    """Outcome of one provider observation for one pair."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass(frozen=True, slots=True)
class CurrencyPair:
    """A configured pair as supplied by the pair registry.

    Codes are normalised to upper case and ``pair_code`` is always derived from
    them, so a constructed instance cannot violate the pair invariants.
    """

    base_currency: str
    target_currency: str
    pair_id: int | None = None
    active: bool = True
    custom_markup: Decimal | None = None
    pair_code: str = field(init=False)

    def __post_init__(self) -> None:
        base = validate_currency_code(self.base_currency)
        target = validate_currency_code(self.target_currency)
        if base == target:
            raise InvalidCurrencyPair(f"Base and target currency must differ: {base}")
        object.__setattr__(self, "base_currency", base)
        object.__setattr__(self, "target_currency", target)
        object.__setattr__(self, "pair_code", base + target)
        object.__setattr__(self, "custom_markup", validate_markup(self.custom_markup))

    @property
    def display_name(self) -> str:
        return f"{self.base_currency}-{self.target_currency}"

    @property
    def currencies(self) -> tuple[str, str]:
        return (self.base_currency, self.target_currency)


@dataclass(frozen=True, slots=True)
class RawQuote:
    """One provider's rate for one pair in one pipeline run."""

    pair_id: int
    rate: Decimal
    provider_id: str
    status: FetchStatus
    observed_at: datetime = field(default_factory=utc_now)

    @property
    def is_usable(self) -> bool:
        return self.status is FetchStatus.SUCCESS and self.rate > 0


@dataclass(frozen=True, slots=True)
class AggregatedRate:
    """The published rate for a pair: provider mean plus markup."""

    pair_id: int
    average_rate: Decimal
    final_rate: Decimal
    markup_applied: Decimal
    sources_count: int
    observed_at: datetime = field(default_factory=utc_now)
    pair_code: str | None = None


__all__ = ["AggregatedRate", "CurrencyPair", "FetchStatus", "RawQuote"]
