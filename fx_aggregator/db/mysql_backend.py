"""MySQL backend strategy."""

from __future__ import annotations

from typing import Any

from fx_aggregator.db.relational_backend import RelationalBackend

# Below the server's default wait_timeout of 8 hours.
POOL_RECYCLE_SECONDS = 3600


class MySQLBackend(RelationalBackend):
    """Relational backend for MySQL engines."""

    def _engine_options(self) -> dict[str, Any]:
        return {
            "pool_pre_ping": True,
            "pool_recycle": POOL_RECYCLE_SECONDS,
            "connect_args": {"charset": "utf8mb4"},
        }


__all__ = ["MySQLBackend"]
