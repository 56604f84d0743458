"""SQLAlchemy table definitions for the relational backends."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase

from fx_aggregator.ingestion.models import FetchStatus
from fx_aggregator.utils.clock import as_naive_utc, utc_now


def _naive_utc_now():
    return as_naive_utc(utc_now())


class Base(DeclarativeBase):
    pass


class CurrencyPairRow(Base):
    __tablename__ = "currency_pairs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    base_currency = Column(String(3), nullable=False)
    target_currency = Column(String(3), nullable=False)
    pair_code = Column(String(6), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    custom_markup = Column(Numeric(5, 4), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_naive_utc_now)
    updated_at = Column(DateTime, nullable=False, default=_naive_utc_now, onupdate=_naive_utc_now)


class RawRateRow(Base):
    __tablename__ = "raw_rates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pair_id = Column(Integer, ForeignKey("currency_pairs.id"), nullable=False)
    rate = Column(Numeric(12, 6), nullable=False)
    source = Column(String(50), nullable=False)
    status = Column(
        Enum(FetchStatus, name="fetch_status", native_enum=False, length=10),
        nullable=False,
        default=FetchStatus.SUCCESS,
    )
    created_at = Column(DateTime, nullable=False, default=_naive_utc_now)

    __table_args__ = (Index("ix_raw_rates_pair_created", "pair_id", "created_at"),)


class AggregatedRateRow(Base):
    __tablename__ = "aggregated_rates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pair_id = Column(Integer, ForeignKey("currency_pairs.id"), nullable=False)
    average_rate = Column(Numeric(12, 6), nullable=False)
    final_rate = Column(Numeric(12, 6), nullable=False)
    markup_applied = Column(Numeric(5, 4), nullable=False)
    sources_count = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_naive_utc_now)

    __table_args__ = (Index("ix_aggregated_rates_pair_created", "pair_id", "created_at"),)


__all__ = ["AggregatedRateRow", "Base", "CurrencyPairRow", "RawRateRow"]
