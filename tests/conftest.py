from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from db import getDB
from main import create_app
from config import Settings
from routes.auth import get_current_user


class FakeCursor:
    """Replays canned results in the order statements are executed."""

    def __init__(self, conn):
        self.conn = conn
        self._rows = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, sql, params=None):
        self.conn.executed.append((" ".join(sql.split()), params))
        result = self.conn.results.pop(0) if self.conn.results else []
        if isinstance(result, Exception):
            raise result
        self._rows = list(result)

    async def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    async def fetchall(self):
        rows, self._rows = self._rows, []
        return rows


class FakeConnection:
    def __init__(self, results=None):
        self.results = list(results or [])
        self.executed = []
        self.commits = 0
        self.rollbacks = 0

    def cursor(self):
        return FakeCursor(self)

    @asynccontextmanager
    async def transaction(self):
        try:
            yield self
        except BaseException:
            self.rollbacks += 1
            raise
        else:
            self.commits += 1

    def sql(self, index):
        return self.executed[index][0]

    def params(self, index):
        return self.executed[index][1]


def make_user(**overrides):
    user = {
        "id": 1,
        "google_id": "g-1",
        "email": "asha@student.iul.ac.in",
        "name": "Asha",
        "profile_picture": None,
        "role": "client",
        "writer_status": None,
        "rating": 0,
        "total_ratings": 0,
        "whatsapp_number": "9990001111",
        "university_stream": None,
    }
    user.update(overrides)
    return user


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_conn():
    return FakeConnection()


@pytest.fixture
def test_settings():
    return Settings(
        DATABASE_URL="dbname=writify_test",
        SESSION_SECRET="test-secret",
        FRONTEND_URL="http://frontend.test",
        BACKEND_URL="http://backend.test",
    )


@pytest.fixture
def app(test_settings, fake_conn):
    app = create_app(test_settings)

    async def override_db():
        yield fake_conn

    app.dependency_overrides[getDB] = override_db
    return app


@pytest.fixture
def login(app):
    """Call login(user) to make every request run as that user."""
    def _login(user):
        async def override_user():
            return user
        app.dependency_overrides[get_current_user] = override_user
        return user
    return _login


@pytest.fixture
def client(app):
    # No `with`: the lifespan would try to reach a real database
    return TestClient(app)
