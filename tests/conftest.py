"""
tests/conftest.py -- Shared test fixtures for content site integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory stores sharing one DB
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - stores: the three stores for direct seeding and inspection
  - web_client: TestClient with follow_redirects=False
  - make_user: creates a user with a real bcrypt hash

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

DEBUG, BCRYPT_ROUNDS and ALLOWED_HOSTS must be set before any app import: get_settings() is
cached on first call, auth/tokens.py reads it at import time.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager, suppress
from types import SimpleNamespace

# CRITICAL: Set before any auth/core import so get_settings() auto-generates
# SECRET_KEY in dev mode and bcrypt runs at its cheapest cost factor.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
# TestClient sends Host: testserver.
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.models import User
from auth.sessions import SessionStore
from auth.store import UserStore
from auth.tokens import hash_password
from content.store import ContentStore

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> SimpleNamespace:
    """Create user, session, and content stores over one named shared-memory DB.

    Args:
        db_suffix: Unique string appended to the DB name so tests don't share state.
    """
    url = f"sqlite:///file:test_site_{db_suffix}?mode=memory&cache=shared&uri=true"
    return SimpleNamespace(
        users=UserStore(db_url=url),
        sessions=SessionStore(db_url=url),
        content=ContentStore(db_url=url),
    )


def _patch_lifespan(stores: SimpleNamespace):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown can .cancel() a
    real asyncio.Task.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = stores.users
        app.state.session_store = stores.sessions
        app.state.content_store = stores.content
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()
        with suppress(asyncio.CancelledError):
            await app.state.purge_task

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def stores() -> Generator[SimpleNamespace, None, None]:
    s = _make_test_stores(uuid.uuid4().hex[:12])
    yield s
    s.content.close()
    s.sessions.close()
    s.users.close()


@pytest.fixture()
def make_user(stores: SimpleNamespace):
    """Factory: make_user("alice", "secret1", privileged=False) -> stored User."""

    def _make(username: str, password: str, privileged: bool = False) -> User:
        user = User(username=username, hashed_password=hash_password(password), is_privileged=privileged)
        user.id = stores.users.create_user(user)
        return user

    return _make


@pytest.fixture()
def web_client(stores: SimpleNamespace) -> Generator[TestClient, None, None]:
    """Yield a TestClient over the full app wired to the test stores.

    follow_redirects=False is essential: tests assert on redirect *locations*,
    which are invisible once the client follows the redirect.
    """
    app.router.lifespan_context = _patch_lifespan(stores)
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client
