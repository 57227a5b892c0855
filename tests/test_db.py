from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

import db
import main
from config import Settings


class RecordingPool:
    """Stands in for AsyncConnectionPool and remembers how it was built."""

    def __init__(self, conninfo, min_size, max_size, kwargs, open):
        self.conninfo = conninfo
        self.min_size = min_size
        self.max_size = max_size
        self.opened = False
        self.closed = False

    async def open(self):
        self.opened = True

    async def close(self):
        self.closed = True

    @asynccontextmanager
    async def connection(self):
        yield "pooled-connection"


@pytest.fixture
def prod_settings():
    return Settings(DATABASE_URL="dbname=writify_prod host=db.prod.example", DB_POOL_MAX_SIZE=4)


@pytest.mark.anyio
async def test_pool_is_opened_from_the_app_settings(prod_settings, monkeypatch):
    monkeypatch.setattr(db, "AsyncConnectionPool", RecordingPool)
    app = main.create_app(prod_settings)
    request = SimpleNamespace(app=app)

    connections = db.getDB(request)
    conn = await connections.__anext__()
    await connections.aclose()

    pool = app.state.pool
    assert conn == "pooled-connection"
    assert pool.conninfo == "dbname=writify_prod host=db.prod.example"
    assert pool.max_size == 4
    assert pool.opened

    await db.close_pool(app)
    assert pool.closed
    assert app.state.pool is None


@pytest.mark.anyio
async def test_pool_is_reused_across_requests(prod_settings, monkeypatch):
    monkeypatch.setattr(db, "AsyncConnectionPool", RecordingPool)
    app = main.create_app(prod_settings)
    pools = []

    for _ in range(2):
        connections = db.getDB(SimpleNamespace(app=app))
        await connections.__anext__()
        await connections.aclose()
        pools.append(app.state.pool)

    assert pools[0] is pools[1]


def test_lifespan_bootstraps_the_injected_database(prod_settings, monkeypatch):
    bootstrapped = []
    monkeypatch.setattr(main, "init_database", bootstrapped.append)

    with TestClient(main.create_app(prod_settings)) as client:
        assert client.get("/api/test").status_code == 200

    assert bootstrapped == ["dbname=writify_prod host=db.prod.example"]
