from __future__ import annotations

from pathlib import Path
import sys

# Ensure repo root is importable
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))


import pytest
from fastapi.testclient import TestClient
from sqlalchemy.dialects import mysql, postgresql
from sqlalchemy.exc import OperationalError

from asset_vault.api.app import create_app
from asset_vault.core.settings import Settings


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    db_path = tmp_path / "test.db"
    return Settings(
        driver_name="sqlite",
        data_source_name=f"sqlite:///{db_path}",
        db_name="asset_vault",
        table_name_prefix="",
        db_echo=False,
        auto_sync_tables=True,
    )


@pytest.fixture()
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


class FakeResult:
    def __init__(self, row):
        self._row = row

    def first(self):
        return self._row


class FakeConnection:
    def __init__(self, engine: "FakeEngine"):
        self.engine = engine
        self.dialect = engine.dialect

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.engine.server.closed_connections += 1
        return False

    def execute(self, stmt, params=None):
        return self.engine.server.execute(self.engine.url.database, str(stmt), params or {})


class FakeEngine:
    def __init__(self, server: "FakeServer", url, kwargs):
        self.server = server
        self.url = url
        self.kwargs = kwargs
        backend = url.get_backend_name()
        self.dialect = postgresql.dialect() if backend.startswith("postgres") else mysql.dialect()

    def connect(self):
        if self.server.unreachable:
            raise OperationalError("connect", None, Exception("connection refused"))
        self.server.connected_databases.append(self.url.database)
        return FakeConnection(self)

    def dispose(self):
        self.server.disposed += 1


class FakeServer:
    """Records what the provisioner does against a pretend database server."""

    def __init__(self, databases=(), schemas=()):
        self.databases = set(databases)
        self.schemas = set(schemas)
        self.executed = []
        self.engines = []
        self.connected_databases = []
        self.disposed = 0
        self.closed_connections = 0
        self.unreachable = False
        # statement prefix -> exception raised once when it is executed
        self.fail_on = {}

    def engine_factory(self, url, **kwargs):
        engine = FakeEngine(self, url, kwargs)
        self.engines.append(engine)
        return engine

    @property
    def statements(self):
        return [sql for _db, sql, _params in self.executed]

    def execute(self, database, sql, params):
        self.executed.append((database, sql, params))
        for prefix, exc in list(self.fail_on.items()):
            if sql.startswith(prefix):
                del self.fail_on[prefix]
                raise exc
        if sql.startswith("SELECT 1 FROM pg_database"):
            return FakeResult((1,) if params["name"] in self.databases else None)
        if sql.startswith("CREATE DATABASE"):
            name = sql.replace("IF NOT EXISTS ", "").split()[2].strip('`"')
            self.databases.add(name)
        elif sql.startswith("CREATE SCHEMA"):
            self.schemas.add(sql.split()[-1].strip('"'))
        return FakeResult(None)


@pytest.fixture()
def fake_server() -> FakeServer:
    return FakeServer()
