"""One fetch → persist → aggregate → persist cycle, single-flight."""

from __future__ import annotations

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Protocol, Sequence

from fx_aggregator.errors import StoragePersistenceError
from fx_aggregator.ingestion.http import failed_quotes
from fx_aggregator.ingestion.models import AggregatedRate, CurrencyPair, RawQuote
from fx_aggregator.ingestion.strategy import ProviderAdapter
from fx_aggregator.pipeline.aggregator import aggregate_all
from fx_aggregator.utils.clock import utc_now
from fx_aggregator.utils.currency import DEFAULT_MARKUP, validate_markup
from fx_aggregator.utils.logger import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported only for type checking
    from fx_aggregator.db.base_backend import BackendStrategy

LOGGER = get_logger(__name__)


class PipelineState(str, Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    PERSISTING_RAW = "PERSISTING_RAW"
    AGGREGATING = "AGGREGATING"
    PERSISTING_AGGREGATED = "PERSISTING_AGGREGATED"


class RunOutcome(str, Enum):
    COMPLETED = "COMPLETED"
    SKIPPED_BUSY = "SKIPPED_BUSY"
    NO_ACTIVE_PAIRS = "NO_ACTIVE_PAIRS"
    REGISTRY_UNAVAILABLE = "REGISTRY_UNAVAILABLE"
    ABORTED_RAW = "ABORTED_RAW"
    ABORTED_AGGREGATED = "ABORTED_AGGREGATED"


class PairRegistry(Protocol):
    def fetch_pairs(self, *, active_only: bool = False) -> list[CurrencyPair]:
        ...  # pragma: no cover - protocol definition


@dataclass(slots=True)
class RunReport:
    """Summary of one trigger of :meth:`PipelineRunner.run`."""

    run_id: str
    outcome: RunOutcome
    started_at: datetime
    finished_at: datetime | None = None
    raw_quotes: list[RawQuote] = field(default_factory=list)
    aggregated: list[AggregatedRate] = field(default_factory=list)
    skipped_pairs: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome in {RunOutcome.COMPLETED, RunOutcome.NO_ACTIVE_PAIRS}


class PipelineRunner:
    """Run the aggregation pipeline against a store and a set of adapters.

    The runner is reusable: every call to :meth:`run` walks
    ``IDLE → FETCHING → PERSISTING_RAW → AGGREGATING → PERSISTING_AGGREGATED →
    IDLE``. A trigger that arrives while a run is in flight is rejected with
    :attr:`RunOutcome.SKIPPED_BUSY` instead of starting a second writer.
    """

    def __init__(
        self,
        store: "BackendStrategy",
        adapters: Sequence[ProviderAdapter],
        *,
        registry: PairRegistry | None = None,
        default_markup: Decimal | str | float = DEFAULT_MARKUP,
    ) -> None:
        if not adapters:
            raise ValueError("At least one provider adapter is required")
        self.store = store
        self.registry: PairRegistry = registry or store
        self.adapters = list(adapters)
        resolved_markup = validate_markup(default_markup)
        self.default_markup = DEFAULT_MARKUP if resolved_markup is None else resolved_markup
        self._flight = threading.Lock()
        self._state = PipelineState.IDLE

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._flight.locked()

    def run(self) -> RunReport:
        run_id = uuid.uuid4().hex[:12]
        started_at = utc_now()
        if not self._flight.acquire(blocking=False):
            LOGGER.warning(
                "Run %s rejected: previous run still in state %s", run_id, self._state.value
            )
            return RunReport(run_id, RunOutcome.SKIPPED_BUSY, started_at, finished_at=utc_now())
        try:
            LOGGER.info("Starting forex rate aggregation run %s", run_id)
            report = self._run_cycle(run_id, started_at)
        except Exception:
            LOGGER.exception("Run %s failed in state %s", run_id, self._state.value)
            raise
        finally:
            self._state = PipelineState.IDLE
            self._flight.release()
        report.finished_at = utc_now()
        LOGGER.info("Run %s finished with outcome %s", run_id, report.outcome.value)
        return report

    def _run_cycle(self, run_id: str, started_at: datetime) -> RunReport:
        try:
            snapshot = self.registry.fetch_pairs(active_only=True)
        except StoragePersistenceError:
            LOGGER.exception("Run %s aborted: active currency pairs could not be loaded", run_id)
            return RunReport(run_id, RunOutcome.REGISTRY_UNAVAILABLE, started_at)
        pairs = [pair for pair in snapshot if pair.active and pair.pair_id is not None]
        if not pairs:
            LOGGER.warning("No active currency pairs found. Skipping rate aggregation.")
            return RunReport(run_id, RunOutcome.NO_ACTIVE_PAIRS, started_at)
        LOGGER.info(
            "Found %s active currency pairs: %s",
            len(pairs),
            [pair.pair_code for pair in pairs],
        )

        self._state = PipelineState.FETCHING
        raw_quotes = self._fetch_all(pairs)
        report = RunReport(run_id, RunOutcome.COMPLETED, started_at, raw_quotes=raw_quotes)

        self._state = PipelineState.PERSISTING_RAW
        try:
            result = self.store.insert_raw_quotes(raw_quotes)
        except StoragePersistenceError:
            LOGGER.exception("Run %s aborted: raw quotes could not be persisted", run_id)
            report.outcome = RunOutcome.ABORTED_RAW
            return report
        LOGGER.info("Saved %s raw API rates to database", result.inserted)

        self._state = PipelineState.AGGREGATING
        aggregated, skipped = aggregate_all(pairs, raw_quotes, self.default_markup)
        for pair in skipped:
            LOGGER.warning("No successful rates found for pair: %s", pair.pair_code)
        for rate in aggregated:
            LOGGER.info(
                "Calculated aggregated rate for %s: %s (from %s sources)",
                rate.pair_code,
                rate.final_rate,
                rate.sources_count,
            )
        report.aggregated = aggregated
        report.skipped_pairs = [pair.pair_code for pair in skipped]

        self._state = PipelineState.PERSISTING_AGGREGATED
        if aggregated:
            try:
                result = self.store.insert_aggregated_rates(aggregated)
            except StoragePersistenceError:
                LOGGER.exception("Run %s aborted: aggregated rates could not be persisted", run_id)
                report.outcome = RunOutcome.ABORTED_AGGREGATED
                return report
            LOGGER.info("Saved %s aggregated forex rates to database", result.inserted)
        return report

    def _fetch_all(self, pairs: list[CurrencyPair]) -> list[RawQuote]:
        with ThreadPoolExecutor(
            max_workers=len(self.adapters), thread_name_prefix="fx-provider"
        ) as executor:
            futures = [(adapter, executor.submit(adapter.fetch, pairs)) for adapter in self.adapters]
            collected: list[RawQuote] = []
            for adapter, future in futures:
                try:
                    quotes = future.result()
                except Exception:
                    # fetch() contains provider faults; this covers adapter bugs.
                    LOGGER.exception("Error fetching from %s", adapter.provider_id)
                    quotes = failed_quotes(pairs, adapter.provider_id, utc_now())
                LOGGER.info("Fetched %s rates from %s", len(quotes), adapter.provider_id)
                collected.extend(quotes[pair.pair_id] for pair in pairs if pair.pair_id in quotes)
        return collected


__all__ = ["PairRegistry", "PipelineRunner", "PipelineState", "RunOutcome", "RunReport"]
