"""
tests/conftest.py -- Shared test fixtures for CrudAdmin.

This module provides:
  - memory_url(): a named shared-memory SQLite URI
  - user_store / customer_store: function-scoped isolated repositories
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - web_client: module-scoped TestClient (follow_redirects=False) plus a
    signed session cookie for a seeded admin account
  - web: function-scoped view of web_client with cookies and the rate
    limiter reset, so tests cannot leak state into each other

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

APP_ENV, DATABASE_URL and SESSION_SECRET must be set before any app import
so get_settings() validates successfully.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import NamedTuple

# CRITICAL: configure the environment before importing anything that reads settings.
os.environ["APP_ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite:///file:crudadmin_default?mode=memory&cache=shared&uri=true")
os.environ.setdefault("SESSION_SECRET", "test-secret-" + "0123456789abcdef" * 4)

import pytest
from fastapi.testclient import TestClient

from api.limiter import RateLimiter
from asgi import app
from auth.models import User
from auth.passwords import hash_password
from auth.session import USER_ID_CLAIM, SessionStore
from auth.store import UserStore
from core.config import get_settings
from customers.store import CustomerStore

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass1"


class WebClient(NamedTuple):
    client: TestClient
    admin_id: str
    cookie: str  # raw signed session value for the admin account

    @property
    def auth_headers(self) -> dict[str, str]:
        return {"Cookie": f"{get_settings().session_cookie_name}={self.cookie}"}


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def memory_url(name: str) -> str:
    """Return a named shared-memory SQLite URI unique to `name`."""
    return f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true"


def _make_test_stores(db_suffix: str) -> tuple[UserStore, CustomerStore]:
    """Create isolated named shared-memory stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    user_store = UserStore(memory_url(f"test_users_{db_suffix}"))
    customer_store = CustomerStore(memory_url(f"test_customers_{db_suffix}"))
    return user_store, customer_store


def _patch_lifespan(user_store: UserStore, customer_store: CustomerStore):
    """Return an async context manager that replaces the real lifespan.

    No sweep task is started; tests drive the limiter directly.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        app.state.settings = settings
        app.state.user_store = user_store
        app.state.customer_store = customer_store
        app.state.session_store = SessionStore.from_settings(settings)
        app.state.limiter = RateLimiter()
        app.state.sweep_task = None
        yield

    return test_lifespan


def sign_in_cookie(user_id: str) -> str:
    """Return a signed session value carrying user_id."""
    store = SessionStore.from_settings(get_settings())
    session = store.create()
    session.set(USER_ID_CLAIM, user_id)
    return store.sign(session)


# ---------------------------------------------------------------------------
# Function-scoped store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(memory_url(f"unit_users_{uuid.uuid4().hex}"))
    yield store
    store.close()


@pytest.fixture
def customer_store() -> Generator[CustomerStore, None, None]:
    store = CustomerStore(memory_url(f"unit_customers_{uuid.uuid4().hex}"))
    yield store
    store.close()


# ---------------------------------------------------------------------------
# Module-scoped client -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def web_client(request) -> Generator[WebClient, None, None]:
    """Yield a WebClient for route integration tests.

    follow_redirects=False is essential: tests assert on redirect Location
    headers, which are invisible once the client follows the redirect.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    user_store, customer_store = _make_test_stores(suffix)
    admin_id = user_store.create_user(User(email=ADMIN_EMAIL, password_hash=hash_password(ADMIN_PASSWORD)))

    app.router.lifespan_context = _patch_lifespan(user_store, customer_store)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield WebClient(client=client, admin_id=admin_id, cookie=sign_in_cookie(admin_id))

    customer_store.close()
    user_store.close()


@pytest.fixture
def web(web_client: WebClient) -> WebClient:
    """web_client with an empty cookie jar and a fresh rate-limit budget."""
    web_client.client.cookies.clear()
    web_client.client.app.state.limiter.reset()
    return web_client
