"""Helpers for locating the default SQLite database."""

from __future__ import annotations

from pathlib import Path
from typing import Final

__all__ = ["DEFAULT_SQLITE_DB_NAME", "default_sqlite_path"]

DEFAULT_SQLITE_DB_NAME: Final[str] = "fx_aggregator.db"


def default_sqlite_path() -> Path:
    """Return the absolute path of ``fx_aggregator.db`` in the working directory.

    Resolved at call time so long-running processes pick up ``chdir`` changes
    made before the store is opened.
    """

    return (Path.cwd() / DEFAULT_SQLITE_DB_NAME).resolve()
