"""
tests/conftest.py -- Shared test fixtures for Formdesk tests.

This module provides:
  - settings:    development Settings pointing at an isolated in-memory DB
  - client:      TestClient around create_app(settings), lifespan running
  - hasher:      fast PasswordHasher (bcrypt cost 4)
  - user_store:  file-backed UserStore in tmp_path, for concurrency tests
  - alice:       client with "alice" registered and logged in (cookie set)

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because route handlers run store calls in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process. Each test
gets a fresh name, so no state leaks between tests.

bcrypt_rounds=4 is bcrypt's minimum and keeps the suite fast; cost does not
change any behaviour under test.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from auth.passwords import PasswordHasher
from auth.store import UserStore
from core.config import Settings

TEST_SECRET = "formdesk-test-secret-0123456789abcdef"


def _memory_db_url() -> str:
    return f"sqlite:///file:formdesk_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def make_settings(**overrides) -> Settings:
    """Build Settings for tests without reading .env from the working directory."""
    values = {
        "environment": "development",
        "secret_key": TEST_SECRET,
        "database_url": _memory_db_url(),
        "bcrypt_rounds": 4,
        "db_connect_backoff_seconds": 0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory():
    """Return make_settings so tests can build variants (e.g. production)."""
    return make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def client(settings: Settings) -> Generator[TestClient, None, None]:
    """TestClient over the real app with a fresh database per test.

    Entering the context runs lifespan, so app.state holds real stores,
    a real TokenService and a real AuthService.
    """
    with TestClient(create_app(settings), raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def user_store(tmp_path) -> Generator[UserStore, None, None]:
    """File-backed store so concurrent writers contend on real SQLite locks."""
    store = UserStore(f"sqlite:///{tmp_path / 'auth.db'}")
    yield store
    store.close()


@pytest.fixture
def alice(client: TestClient) -> tuple[TestClient, str]:
    """Return (client, user_id) with alice registered and her session cookie in the jar."""
    resp = client.post("/register", json={"username": "alice", "email": "alice@x.com", "password": "secret1"})
    assert resp.status_code == 201, resp.text
    user_id = resp.json()["user"]["id"]
    resp = client.post("/login", json={"username": "alice", "password": "secret1"})
    assert resp.status_code == 200, resp.text
    return client, user_id
