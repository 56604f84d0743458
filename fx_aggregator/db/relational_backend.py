"""Shared logic for SQL (SQLite/Postgres/MySQL) backends."""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterable, Iterator, Sequence

from sqlalchemy import create_engine, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fx_aggregator.db.base_backend import BackendStrategy, PersistenceResult
from fx_aggregator.db.schema import AggregatedRateRow, Base, CurrencyPairRow, RawRateRow
from fx_aggregator.errors import InvalidCurrencyPair, StoragePersistenceError
from fx_aggregator.ingestion.models import AggregatedRate, CurrencyPair, RawQuote
from fx_aggregator.utils.clock import as_aware_utc, as_naive_utc
from fx_aggregator.utils.logger import get_logger

LOGGER = get_logger(__name__)


class RelationalBackend(BackendStrategy):
    """Base class that encapsulates SQLAlchemy powered interactions."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._engine_instance: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    def _engine_options(self) -> dict[str, Any]:
        """Extra ``create_engine`` keyword arguments for a concrete dialect."""

        return {}

    def _get_engine(self) -> Engine:
        if self._engine_instance is None:
            self._engine_instance = create_engine(self.url, future=True, **self._engine_options())
        return self._engine_instance

    @contextmanager
    def _session(self) -> Iterator[Session]:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self._get_engine(), expire_on_commit=False, future=True
            )
        try:
            with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            raise StoragePersistenceError(f"Database operation failed: {exc}") from exc

    def ensure_schema(self) -> None:
        engine = self._get_engine()
        try:
            with engine.begin() as connection:
                LOGGER.info("Ensuring currency_pairs/raw_rates/aggregated_rates schema exists")
                connection.execute(text("SELECT 1"))
                Base.metadata.create_all(connection)
        except SQLAlchemyError as exc:
            raise StoragePersistenceError(f"Failed to ensure schema: {exc}") from exc

    def save_pairs(self, pairs: Iterable[CurrencyPair]) -> list[CurrencyPair]:
        saved: list[CurrencyPairRow] = []
        with self._session() as session:
            for pair in pairs:
                row = session.scalars(
                    select(CurrencyPairRow).where(CurrencyPairRow.pair_code == pair.pair_code)
                ).one_or_none()
                if row is None:
                    row = CurrencyPairRow(
                        base_currency=pair.base_currency,
                        target_currency=pair.target_currency,
                        pair_code=pair.pair_code,
                    )
                    session.add(row)
                row.is_active = pair.active
                row.custom_markup = pair.custom_markup
                saved.append(row)
            session.commit()
            return [_pair_from_row(row) for row in saved]

    def fetch_pairs(self, *, active_only: bool = False) -> list[CurrencyPair]:
        with self._session() as session:
            stmt = select(CurrencyPairRow).order_by(CurrencyPairRow.id)
            if active_only:
                stmt = stmt.where(CurrencyPairRow.is_active.is_(True))
            pairs: list[CurrencyPair] = []
            for row in session.scalars(stmt):
                try:
                    pairs.append(_pair_from_row(row))
                except InvalidCurrencyPair as exc:
                    LOGGER.warning("Skipping invalid currency pair %s: %s", row.pair_code, exc)
            return pairs

    def insert_raw_quotes(self, rows: Sequence[RawQuote]) -> PersistenceResult:
        result = PersistenceResult()
        if not rows:
            return result
        with self._session() as session:
            session.add_all(
                RawRateRow(
                    pair_id=row.pair_id,
                    rate=row.rate,
                    source=row.provider_id,
                    status=row.status,
                    created_at=as_naive_utc(row.observed_at),
                )
                for row in rows
            )
            session.commit()
        result.inserted = len(rows)
        return result

    def insert_aggregated_rates(self, rows: Sequence[AggregatedRate]) -> PersistenceResult:
        result = PersistenceResult()
        if not rows:
            return result
        with self._session() as session:
            session.add_all(
                AggregatedRateRow(
                    pair_id=row.pair_id,
                    average_rate=row.average_rate,
                    final_rate=row.final_rate,
                    markup_applied=row.markup_applied,
                    sources_count=row.sources_count,
                    created_at=as_naive_utc(row.observed_at),
                )
                for row in rows
            )
            session.commit()
        result.inserted = len(rows)
        return result

    def fetch_raw_quotes(
        self, pair_id: int | None = None, *, source: str | None = None
    ) -> list[RawQuote]:
        with self._session() as session:
            stmt = select(RawRateRow).order_by(RawRateRow.created_at, RawRateRow.id)
            if pair_id is not None:
                stmt = stmt.where(RawRateRow.pair_id == pair_id)
            if source is not None:
                stmt = stmt.where(RawRateRow.source == source)
            return [
                RawQuote(
                    pair_id=row.pair_id,
                    rate=Decimal(row.rate),
                    provider_id=row.source,
                    status=row.status,
                    observed_at=as_aware_utc(row.created_at),
                )
                for row in session.scalars(stmt)
            ]

    def latest_rates(self, pair_ids: Iterable[int] | None = None) -> list[AggregatedRate]:
        ranked = select(
            AggregatedRateRow.id.label("rate_id"),
            func.row_number()
            .over(
                partition_by=AggregatedRateRow.pair_id,
                order_by=(AggregatedRateRow.created_at.desc(), AggregatedRateRow.id.desc()),
            )
            .label("position"),
        )
        if pair_ids is not None:
            ranked = ranked.where(AggregatedRateRow.pair_id.in_(list(pair_ids)))
        ranked_subquery = ranked.subquery()
        stmt = (
            select(AggregatedRateRow, CurrencyPairRow.pair_code)
            .join(ranked_subquery, ranked_subquery.c.rate_id == AggregatedRateRow.id)
            .join(CurrencyPairRow, CurrencyPairRow.id == AggregatedRateRow.pair_id)
            .where(ranked_subquery.c.position == 1)
            .order_by(AggregatedRateRow.pair_id)
        )
        with self._session() as session:
            return [_rate_from_row(row, code) for row, code in session.execute(stmt)]

    def rate_history(self, pair_id: int, limit: int = 10) -> list[AggregatedRate]:
        stmt = (
            select(AggregatedRateRow, CurrencyPairRow.pair_code)
            .join(CurrencyPairRow, CurrencyPairRow.id == AggregatedRateRow.pair_id)
            .where(AggregatedRateRow.pair_id == pair_id)
            .order_by(AggregatedRateRow.created_at.desc(), AggregatedRateRow.id.desc())
            .limit(limit)
        )
        with self._session() as session:
            return [_rate_from_row(row, code) for row, code in session.execute(stmt)]

    def close(self) -> None:  # pragma: no cover - trivial resource cleanup
        if self._engine_instance is not None:
            self._engine_instance.dispose()


def _pair_from_row(row: CurrencyPairRow) -> CurrencyPair:
    return CurrencyPair(
        base_currency=row.base_currency,
        target_currency=row.target_currency,
        pair_id=row.id,
        active=bool(row.is_active),
        custom_markup=Decimal(row.custom_markup) if row.custom_markup is not None else None,
    )


def _rate_from_row(row: AggregatedRateRow, pair_code: str | None) -> AggregatedRate:
    return AggregatedRate(
        pair_id=row.pair_id,
        average_rate=Decimal(row.average_rate),
        final_rate=Decimal(row.final_rate),
        markup_applied=Decimal(row.markup_applied),
        sources_count=row.sources_count,
        observed_at=as_aware_utc(row.created_at),
        pair_code=pair_code,
    )


__all__ = ["RelationalBackend"]
