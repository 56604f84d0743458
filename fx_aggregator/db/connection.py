"""Resolve database URLs into a backend kind and connection details."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import unquote, urlparse

from fx_aggregator.db import default_sqlite_path


class DatabaseBackend(str, Enum):
    """Storage engines FxAggregator can write to."""

    SQLITE = "sqlite"
    MYSQL = "mysql"
    POSTGRES = "postgres"
    MONGODB = "mongodb"

    @classmethod
    def parse_scheme(cls, scheme: str) -> tuple["DatabaseBackend", str]:
        """Return the backend for ``scheme`` and the scheme its driver expects.

        ``postgres`` is spelled ``postgresql`` for SQLAlchemy; explicit drivers
        (``mysql+pymysql``, ``mongodb+srv``) are kept. SQLite always uses the
        bundled driver.
        """

        if not scheme:
            raise ValueError("Database URL must include a scheme (e.g. sqlite:// or postgresql://)")
        name, _, driver = scheme.lower().partition("+")
        backend = _BACKEND_BY_SCHEME.get(name)
        if backend is None:
            raise ValueError(
                f"Unsupported database backend {scheme!r}; use sqlite, mysql, postgresql or mongodb"
            )
        if backend is cls.SQLITE:
            return backend, "sqlite"
        canonical = "postgresql" if backend is cls.POSTGRES else name
        return backend, f"{canonical}+{driver}" if driver else canonical

    @classmethod
    def from_scheme(cls, scheme: str) -> "DatabaseBackend":
        return cls.parse_scheme(scheme)[0]


_BACKEND_BY_SCHEME = {
    "sqlite": DatabaseBackend.SQLITE,
    "mysql": DatabaseBackend.MYSQL,
    "postgres": DatabaseBackend.POSTGRES,
    "postgresql": DatabaseBackend.POSTGRES,
    "mongodb": DatabaseBackend.MONGODB,
}


@dataclass(frozen=True, slots=True)
class DatabaseConnectionInfo:
    """A parsed database URL.

    ``name`` is the database name for server backends and the file path for
    SQLite (``sqlite:///relative.db`` or ``sqlite:////abs/path.db``).
    """

    backend: DatabaseBackend
    url: str
    name: str | None = None
    username: str | None = None
    password: str | None = None
    host: str | None = None
    port: int | None = None

    @classmethod
    def from_url(cls, url: str) -> "DatabaseConnectionInfo":
        parsed = urlparse(url)
        backend, scheme = DatabaseBackend.parse_scheme(parsed.scheme)
        if scheme != parsed.scheme:
            url = scheme + url[len(parsed.scheme):]
        return cls(
            backend=backend,
            url=url,
            name=unquote(parsed.path[1:]) or None,
            username=parsed.username,
            password=parsed.password,
            host=parsed.hostname,
            port=parsed.port,
        )

    @classmethod
    def for_sqlite(cls, db_path: str | Path | None = None) -> "DatabaseConnectionInfo":
        path = Path(db_path).expanduser().resolve() if db_path else default_sqlite_path()
        return cls(DatabaseBackend.SQLITE, f"sqlite:///{path.as_posix()}", name=str(path))

    @property
    def is_sqlite(self) -> bool:
        return self.backend is DatabaseBackend.SQLITE


__all__ = ["DatabaseBackend", "DatabaseConnectionInfo"]
