"""Storage port implemented by every database backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Sequence

from fx_aggregator.ingestion.models import AggregatedRate, CurrencyPair, RawQuote


@dataclass(slots=True)
class PersistenceResult:
    """Represents how many rows were inserted or updated in a batch."""

    inserted: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        """Return the total number of affected rows."""

        return self.inserted + self.updated


class BackendStrategy(ABC):
    """Common interface implemented by every database backend.

    ``raw_rates`` and ``aggregated_rates`` are append-only: backends never
    update or delete rows in them. Driver errors surface as
    :class:`~fx_aggregator.errors.StoragePersistenceError`.
    """

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create required tables/collections and verify connectivity."""

    @abstractmethod
    def save_pairs(self, pairs: Iterable[CurrencyPair]) -> list[CurrencyPair]:
        """Insert or update registry rows keyed by pair code; return them with ids."""

    @abstractmethod
    def fetch_pairs(self, *, active_only: bool = False) -> list[CurrencyPair]:
        """Return registered pairs ordered by id."""

    @abstractmethod
    def insert_raw_quotes(self, rows: Sequence[RawQuote]) -> PersistenceResult:
        """Append one batch of raw provider quotes."""

    @abstractmethod
    def insert_aggregated_rates(self, rows: Sequence[AggregatedRate]) -> PersistenceResult:
        """Append one batch of aggregated rates."""

    @abstractmethod
    def fetch_raw_quotes(
        self, pair_id: int | None = None, *, source: str | None = None
    ) -> list[RawQuote]:
        """Return raw quotes, oldest first."""

    @abstractmethod
    def latest_rates(self, pair_ids: Iterable[int] | None = None) -> list[AggregatedRate]:
        """Return the most recent aggregated rate of each pair (all pairs by default)."""

    @abstractmethod
    def rate_history(self, pair_id: int, limit: int = 10) -> list[AggregatedRate]:
        """Return up to ``limit`` aggregated rates for ``pair_id``, newest first."""

    def find_pair(self, pair_code: str) -> CurrencyPair | None:
        code = pair_code.strip().upper()
        for pair in self.fetch_pairs():
            if pair.pair_code == code:
                return pair
        return None

    def latest_rate(self, pair_id: int) -> AggregatedRate | None:
        rows = self.latest_rates([pair_id])
        return rows[0] if rows else None

    def close(self) -> None:  # pragma: no cover - optional cleanup hook
        """Backends may override to release connections/resources."""


__all__ = ["BackendStrategy", "PersistenceResult"]
