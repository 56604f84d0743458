"""MongoDB backend strategy."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, Sequence

from bson.decimal128 import Decimal128
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from fx_aggregator.db.base_backend import BackendStrategy, PersistenceResult
from fx_aggregator.errors import InvalidCurrencyPair, StoragePersistenceError
from fx_aggregator.ingestion.models import AggregatedRate, CurrencyPair, FetchStatus, RawQuote
from fx_aggregator.utils.clock import as_aware_utc, as_naive_utc
from fx_aggregator.utils.logger import get_logger

LOGGER = get_logger(__name__)


def _to_bson_decimal(value: Decimal | None) -> Decimal128 | None:
    return Decimal128(value) if value is not None else None


def _from_bson_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal128):
        return value.to_decimal()
    return Decimal(str(value))


class MongoBackend(BackendStrategy):
    """Backend strategy that persists pairs and rates inside MongoDB."""

    def __init__(self, url: str, *, database: str | None = None) -> None:
        self.url = url
        self._client = MongoClient(url)
        db = self._client.get_default_database() if database is None else self._client[database]
        if db is None:
            raise ValueError("MongoDB connection URI must include a database name")
        self._pairs: Collection = db["currency_pairs"]
        self._raw_rates: Collection = db["raw_rates"]
        self._aggregated_rates: Collection = db["aggregated_rates"]

    def ensure_schema(self) -> None:
        try:
            LOGGER.info("Ensuring MongoDB currency pair and rate collections exist")
            self._client.admin.command("ping")
            self._pairs.create_index([("pair_code", ASCENDING)], unique=True)
            self._pairs.create_index([("pair_id", ASCENDING)], unique=True)
            self._raw_rates.create_index([("pair_id", ASCENDING), ("created_at", ASCENDING)])
            self._aggregated_rates.create_index(
                [("pair_id", ASCENDING), ("created_at", DESCENDING)]
            )
        except PyMongoError as exc:
            raise StoragePersistenceError(f"Failed to ensure MongoDB schema: {exc}") from exc

    def _next_pair_id(self) -> int:
        last = self._pairs.find_one(sort=[("pair_id", DESCENDING)])
        return int(last["pair_id"]) + 1 if last else 1

    def save_pairs(self, pairs: Iterable[CurrencyPair]) -> list[CurrencyPair]:
        saved: list[CurrencyPair] = []
        try:
            for pair in pairs:
                existing = self._pairs.find_one({"pair_code": pair.pair_code})
                pair_id = int(existing["pair_id"]) if existing else self._next_pair_id()
                doc = {
                    "pair_id": pair_id,
                    "base_currency": pair.base_currency,
                    "target_currency": pair.target_currency,
                    "pair_code": pair.pair_code,
                    "is_active": pair.active,
                    "custom_markup": _to_bson_decimal(pair.custom_markup),
                }
                self._pairs.update_one({"pair_code": pair.pair_code}, {"$set": doc}, upsert=True)
                saved.append(_pair_from_doc(doc))
        except PyMongoError as exc:
            raise StoragePersistenceError(f"Failed to save MongoDB currency pairs: {exc}") from exc
        return saved

    def fetch_pairs(self, *, active_only: bool = False) -> list[CurrencyPair]:
        query: dict[str, Any] = {"is_active": True} if active_only else {}
        try:
            docs = list(self._pairs.find(query).sort("pair_id", ASCENDING))
        except PyMongoError as exc:
            raise StoragePersistenceError(f"Failed to read MongoDB currency pairs: {exc}") from exc
        pairs: list[CurrencyPair] = []
        for doc in docs:
            try:
                pairs.append(_pair_from_doc(doc))
            except InvalidCurrencyPair as exc:
                LOGGER.warning("Skipping invalid currency pair %s: %s", doc.get("pair_code"), exc)
        return pairs

    def insert_raw_quotes(self, rows: Sequence[RawQuote]) -> PersistenceResult:
        result = PersistenceResult()
        if not rows:
            return result
        docs = [
            {
                "pair_id": row.pair_id,
                "rate": _to_bson_decimal(row.rate),
                "source": row.provider_id,
                "status": row.status.value,
                "created_at": as_naive_utc(row.observed_at),
            }
            for row in rows
        ]
        try:
            self._raw_rates.insert_many(docs, ordered=True)
        except PyMongoError as exc:
            raise StoragePersistenceError(f"Failed to insert MongoDB raw rates: {exc}") from exc
        result.inserted = len(docs)
        return result

    def insert_aggregated_rates(self, rows: Sequence[AggregatedRate]) -> PersistenceResult:
        result = PersistenceResult()
        if not rows:
            return result
        docs = [
            {
                "pair_id": row.pair_id,
                "pair_code": row.pair_code,
                "average_rate": _to_bson_decimal(row.average_rate),
                "final_rate": _to_bson_decimal(row.final_rate),
                "markup_applied": _to_bson_decimal(row.markup_applied),
                "sources_count": row.sources_count,
                "created_at": as_naive_utc(row.observed_at),
            }
            for row in rows
        ]
        try:
            self._aggregated_rates.insert_many(docs, ordered=True)
        except PyMongoError as exc:
            raise StoragePersistenceError(
                f"Failed to insert MongoDB aggregated rates: {exc}"
            ) from exc
        result.inserted = len(docs)
        return result

    def fetch_raw_quotes(
        self, pair_id: int | None = None, *, source: str | None = None
    ) -> list[RawQuote]:
        query: dict[str, Any] = {}
        if pair_id is not None:
            query["pair_id"] = pair_id
        if source is not None:
            query["source"] = source
        try:
            docs = self._raw_rates.find(query).sort("created_at", ASCENDING)
            return [
                RawQuote(
                    pair_id=int(doc["pair_id"]),
                    rate=_from_bson_decimal(doc["rate"]) or Decimal("0"),
                    provider_id=doc["source"],
                    status=FetchStatus(doc["status"]),
                    observed_at=as_aware_utc(doc["created_at"]),
                )
                for doc in docs
            ]
        except PyMongoError as exc:
            raise StoragePersistenceError(f"Failed to read MongoDB raw rates: {exc}") from exc

    def latest_rates(self, pair_ids: Iterable[int] | None = None) -> list[AggregatedRate]:
        targets = (
            sorted(set(pair_ids)) if pair_ids is not None else [p.pair_id for p in self.fetch_pairs()]
        )
        latest: list[AggregatedRate] = []
        for pair_id in targets:
            history = self.rate_history(pair_id, limit=1)
            if history:
                latest.append(history[0])
        return latest

    def rate_history(self, pair_id: int, limit: int = 10) -> list[AggregatedRate]:
        try:
            docs = (
                self._aggregated_rates.find({"pair_id": pair_id})
                .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
                .limit(limit)
            )
            return [_rate_from_doc(doc) for doc in docs]
        except PyMongoError as exc:
            raise StoragePersistenceError(
                f"Failed to read MongoDB aggregated rates: {exc}"
            ) from exc

    def close(self) -> None:  # pragma: no cover - trivial cleanup
        self._client.close()


def _pair_from_doc(doc: dict[str, Any]) -> CurrencyPair:
    return CurrencyPair(
        base_currency=doc["base_currency"],
        target_currency=doc["target_currency"],
        pair_id=int(doc["pair_id"]),
        active=bool(doc.get("is_active", True)),
        custom_markup=_from_bson_decimal(doc.get("custom_markup")),
    )


def _rate_from_doc(doc: dict[str, Any]) -> AggregatedRate:
    return AggregatedRate(
        pair_id=int(doc["pair_id"]),
        average_rate=_from_bson_decimal(doc["average_rate"]),
        final_rate=_from_bson_decimal(doc["final_rate"]),
        markup_applied=_from_bson_decimal(doc["markup_applied"]),
        sources_count=int(doc["sources_count"]),
        observed_at=as_aware_utc(doc["created_at"]),
        pair_code=doc.get("pair_code"),
    )


__all__ = ["MongoBackend"]
