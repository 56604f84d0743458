"""Public interface for the fx_aggregator package."""

from __future__ import annotations

from importlib import metadata as importlib_metadata
from typing import Any, Dict, Iterable, List, Sequence

from fx_aggregator.config import AggregatorConfig
from fx_aggregator.db.base_backend import BackendStrategy, PersistenceResult
from fx_aggregator.db.connection import DatabaseBackend, DatabaseConnectionInfo
from fx_aggregator.db.mysql_backend import MySQLBackend
from fx_aggregator.db.postgres_backend import PostgresBackend
from fx_aggregator.db.sqlite_backend import SQLiteBackend
from fx_aggregator.errors import CurrencyPairNotFound, RateNotFound, StoragePersistenceError
from fx_aggregator.ingestion.exchangerate_api import ExchangeRateApiAdapter
from fx_aggregator.ingestion.fixer import FixerAdapter
from fx_aggregator.ingestion.models import AggregatedRate, CurrencyPair, FetchStatus, RawQuote
from fx_aggregator.ingestion.openexchangerates import OpenExchangeRatesAdapter
from fx_aggregator.ingestion.strategy import ProviderAdapter
from fx_aggregator.pipeline.runner import PipelineRunner, RunReport
from fx_aggregator.pipeline.scheduler import HourlyScheduler
from fx_aggregator.utils.currency import (
    validate_currency_code,
    validate_history_limit,
    validate_pair_code,
)
from fx_aggregator.utils.logger import get_logger

__all__ = [
    "__version__",
    "AggregatedRate",
    "AggregatorConfig",
    "CurrencyPair",
    "DatabaseBackend",
    "DatabaseConnectionInfo",
    "FetchStatus",
    "FxAggregator",
    "PersistenceResult",
    "RawQuote",
    "RunReport",
]

LOGGER = get_logger(__name__)

try:
    __version__ = importlib_metadata.version("fx-aggregator")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - fallback for local runs
    __version__ = "0.1.0"


class FxAggregator:
    """Package facade that wires configuration, storage, adapters and the runner."""

    __slots__ = ("config", "connection_info", "_store", "_adapters", "_runner")

    __version__ = __version__

    def __init__(
        self,
        db_config: DatabaseConnectionInfo | str | None = None,
        *,
        config: AggregatorConfig | None = None,
        adapters: Sequence[ProviderAdapter] | None = None,
    ) -> None:
        """Configure storage and providers.

        ``db_config`` may be a ``DatabaseConnectionInfo`` or a DSN string. When
        omitted, ``config.db_url`` is used, and failing that a local SQLite
        file. ``adapters`` defaults to the three HTTP providers built from
        ``config``.
        """

        self.config = config or AggregatorConfig.from_env()
        self.connection_info = self._build_connection_info(db_config or self.config.db_url)
        self._store: BackendStrategy | None = None
        self._adapters: list[ProviderAdapter] = (
            list(adapters) if adapters is not None else self._build_adapters(self.config)
        )
        self._runner: PipelineRunner | None = None

    @staticmethod
    def _build_connection_info(
        db_config: DatabaseConnectionInfo | str | None,
    ) -> DatabaseConnectionInfo:
        if isinstance(db_config, DatabaseConnectionInfo):
            return db_config
        if isinstance(db_config, str):
            return DatabaseConnectionInfo.from_url(db_config)
        return DatabaseConnectionInfo.for_sqlite()

    @staticmethod
    def _build_adapters(config: AggregatorConfig) -> list[ProviderAdapter]:
        timeout = config.http_timeout_seconds
        for name, provider in (
            ("openexchangerates", config.openexchangerates),
            ("exchangerate-api", config.exchangerate_api),
            ("fixer-io", config.fixer),
        ):
            if not provider.enabled:
                LOGGER.warning("No API key configured for %s; its quotes will fail", name)
        return [
            OpenExchangeRatesAdapter(
                config.openexchangerates.api_key,
                base_url=config.openexchangerates.base_url,
                timeout=timeout,
            ),
            ExchangeRateApiAdapter(
                config.exchangerate_api.api_key,
                base_url=config.exchangerate_api.base_url,
                timeout=timeout,
            ),
            FixerAdapter(config.fixer.api_key, base_url=config.fixer.base_url, timeout=timeout),
        ]

    def _build_store(self) -> BackendStrategy:
        info = self.connection_info
        if info.backend is DatabaseBackend.SQLITE:
            return SQLiteBackend(info.name)
        if info.backend is DatabaseBackend.POSTGRES:
            backend: BackendStrategy = PostgresBackend(info.url)
        elif info.backend is DatabaseBackend.MYSQL:
            backend = MySQLBackend(info.url)
        elif info.backend is DatabaseBackend.MONGODB:
            from fx_aggregator.db.mongo_backend import MongoBackend

            backend = MongoBackend(info.url, database=info.name)
        else:  # pragma: no cover - enum is exhaustive
            raise ValueError(f"Unsupported backend: {info.backend}")
        backend.ensure_schema()
        return backend

    @property
    def store(self) -> BackendStrategy:
        if self._store is None:
            self._store = self._build_store()
        return self._store

    @property
    def adapters(self) -> list[ProviderAdapter]:
        return list(self._adapters)

    @property
    def runner(self) -> PipelineRunner:
        if self._runner is None:
            self._runner = PipelineRunner(
                self.store, self._adapters, default_markup=self.config.default_markup
            )
        return self._runner

    def run_once(self) -> RunReport:
        """Execute one pipeline cycle synchronously."""

        return self.runner.run()

    def scheduler(self, *, align_to_interval: bool = True) -> HourlyScheduler:
        return HourlyScheduler(
            self.runner,
            interval_seconds=self.config.interval_seconds,
            align_to_interval=align_to_interval,
        )

    def seed_pairs(
        self, pairs: Sequence[CurrencyPair] | None = None, *, force: bool = False
    ) -> list[CurrencyPair]:
        from fx_aggregator.seeds.populate_pairs import DEFAULT_PAIRS, seed_currency_pairs

        return seed_currency_pairs(self.store, pairs or DEFAULT_PAIRS, force=force)

    def pairs(self, *, active_only: bool = False) -> List[Dict[str, Any]]:
        return [
            {
                "pair_id": pair.pair_id,
                "pair_code": pair.pair_code,
                "base_currency": pair.base_currency,
                "target_currency": pair.target_currency,
                "active": pair.active,
                "custom_markup": pair.custom_markup,
            }
            for pair in self.store.fetch_pairs(active_only=active_only)
        ]

    def rate(self, pair_code: str) -> Dict[str, Any]:
        """Return the latest published rate for ``pair_code`` (e.g. ``"USDGBP"``)."""

        pair = self._require_pair(pair_code)
        latest = self.store.latest_rate(pair.pair_id)
        if latest is None:
            raise RateNotFound(f"No rate found for currency pair: {pair.pair_code}")
        return self._snapshot_payload(pair, latest)

    def rate_for(self, base_currency: str, target_currency: str) -> Dict[str, Any]:
        base = validate_currency_code(base_currency)
        target = validate_currency_code(target_currency)
        return self.rate(base + target)

    def rates(self, pair_codes: Iterable[str] | None = None) -> List[Dict[str, Any]]:
        """Return the latest rate of each requested pair; unknown or unrated pairs are omitted."""

        registry = {pair.pair_code: pair for pair in self.store.fetch_pairs()}
        if pair_codes is None:
            wanted = list(registry.values())
        else:
            codes = [validate_pair_code(code) for code in pair_codes]
            wanted = [registry[code] for code in codes if code in registry]
        by_id = {pair.pair_id: pair for pair in wanted}
        latest = self.store.latest_rates(list(by_id)) if by_id else []
        return [self._snapshot_payload(by_id[row.pair_id], row) for row in latest]

    def history(self, pair_code: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Return up to ``limit`` (1..100) published rates for a pair, newest first."""

        validate_history_limit(limit)
        pair = self._require_pair(pair_code)
        return [
            self._snapshot_payload(pair, row)
            for row in self.store.rate_history(pair.pair_id, limit)
        ]

    def _require_pair(self, pair_code: str) -> CurrencyPair:
        code = validate_pair_code(pair_code)
        pair = self.store.find_pair(code)
        if pair is None:
            raise CurrencyPairNotFound(f"Currency pair not found: {code}")
        return pair

    @staticmethod
    def _snapshot_payload(pair: CurrencyPair, rate: AggregatedRate) -> Dict[str, Any]:
        return {
            "pair_code": pair.pair_code,
            "base_currency": pair.base_currency,
            "target_currency": pair.target_currency,
            "average_rate": rate.average_rate,
            "final_rate": rate.final_rate,
            "markup_applied": rate.markup_applied,
            "sources_count": rate.sources_count,
            "observed_at": rate.observed_at,
        }

    def connection(self) -> tuple[bool, str | None]:
        """Open the configured store and verify its schema; report any failure."""

        try:
            self.store.ensure_schema()
        except ModuleNotFoundError as exc:
            return False, f"Missing database driver '{exc.name or exc}'"
        except (StoragePersistenceError, OSError, ValueError) as exc:
            return False, str(exc)
        return True, None

    def close(self) -> None:
        """Release the store connection and every adapter's HTTP session."""

        for adapter in self._adapters:
            session = getattr(adapter, "session", None)
            if session is not None:
                session.close()
        if self._store is not None:
            self._store.close()
            self._store = None
            self._runner = None
