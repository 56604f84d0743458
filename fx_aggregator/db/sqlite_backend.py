"""SQLite backend strategy implementation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fx_aggregator.db import default_sqlite_path
from fx_aggregator.db.relational_backend import RelationalBackend


class SQLiteBackend(RelationalBackend):
    """Relational backend stored in a local SQLite file.

    The schema is created on construction so a fresh file is usable at once.
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        self.db_path = Path(db_path).expanduser().resolve() if db_path else default_sqlite_path()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(f"sqlite:///{self.db_path.as_posix()}")
        self.ensure_schema()

    def _engine_options(self) -> dict[str, Any]:
        # Scheduled runs write from the scheduler thread.
        return {"connect_args": {"check_same_thread": False}}


__all__ = ["SQLiteBackend"]
