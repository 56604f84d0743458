from __future__ import annotations

from pathlib import Path

import pytest

from fx_aggregator import FxAggregator
from fx_aggregator.config import AggregatorConfig
from fx_aggregator.db.mysql_backend import MySQLBackend
from fx_aggregator.db.postgres_backend import PostgresBackend
from fx_aggregator.db.relational_backend import RelationalBackend
from fx_aggregator.db.sqlite_backend import SQLiteBackend


def test_server_backends_ping_and_recycle_pooled_connections() -> None:
    postgres = PostgresBackend("postgresql://localhost/fx")._engine_options()
    mysql = MySQLBackend("mysql+pymysql://localhost/fx")._engine_options()

    assert postgres == {"pool_pre_ping": True, "pool_recycle": 1800}
    assert mysql["pool_pre_ping"] is True
    assert mysql["pool_recycle"] == 3600
    assert mysql["connect_args"] == {"charset": "utf8mb4"}


def test_sqlite_backend_allows_cross_thread_use(tmp_path: Path) -> None:
    store = SQLiteBackend(tmp_path / "fx.db")

    assert store._engine_options() == {"connect_args": {"check_same_thread": False}}
    assert RelationalBackend(store.url)._engine_options() == {}


def test_facade_picks_backend_from_dsn(monkeypatch: pytest.MonkeyPatch) -> None:
    created: list[RelationalBackend] = []
    monkeypatch.setattr(RelationalBackend, "ensure_schema", lambda self: created.append(self))

    for url, expected in (
        ("postgres://u:p@db/fx", PostgresBackend),
        ("mysql+pymysql://u:p@db/fx", MySQLBackend),
    ):
        instance = FxAggregator(url, config=AggregatorConfig(), adapters=[object()])  # type: ignore[list-item]
        assert isinstance(instance.store, expected)

    assert [store.url for store in created] == ["postgresql://u:p@db/fx", "mysql+pymysql://u:p@db/fx"]
