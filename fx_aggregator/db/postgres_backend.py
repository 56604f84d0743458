"""PostgreSQL backend strategy."""

from __future__ import annotations

from typing import Any

from fx_aggregator.db.relational_backend import RelationalBackend

POOL_RECYCLE_SECONDS = 1800


class PostgresBackend(RelationalBackend):
    """Relational backend for PostgreSQL.

    Pooled connections sit idle between hourly runs, so they are pinged before
    reuse and recycled after half an hour.
    """

    def _engine_options(self) -> dict[str, Any]:
        return {"pool_pre_ping": True, "pool_recycle": POOL_RECYCLE_SECONDS}


__all__ = ["PostgresBackend"]
