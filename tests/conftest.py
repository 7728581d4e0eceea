"""
tests/conftest.py -- Shared test fixtures for AccessGate integration tests.

This module provides:
  - _make_test_store(): an isolated named shared-memory SQLite UserStore
  - _patch_lifespan(): wires the test store and a TokenService into app.state
  - api_client: (client, store, admin_token) for HTTP-level tests
  - store: a bare in-memory UserStore for lifecycle/store unit tests

Named shared-memory SQLite URIs (not plain :memory:) are required for the
HTTP tests because TestClient runs sync route handlers in a thread pool. A
plain :memory: DB is per-connection and each worker thread would see an
empty schema.

DEBUG and BCRYPT_ROUNDS must be set before any auth/core import:
get_settings() auto-generates SECRET_KEY only in debug mode, and
auth/passwords.py computes its dummy hash at import time.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app, build_token_service
from auth import lifecycle
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass123"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_store() -> UserStore:
    """Create a UserStore on a uniquely named shared-memory SQLite database."""
    db_name = f"test_auth_{uuid.uuid4().hex[:12]}"
    return UserStore(db_url=f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore, token_service: TokenService):
    """Return a lifespan that installs the test store instead of the real one."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.token_service = token_service
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    """Fresh in-memory UserStore. Single-threaded use only."""
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, UserStore, str], None, None]:
    """Yield (client, store, admin_token) backed by a fresh database.

    The admin is seeded through lifecycle.bootstrap_admin(), the same
    administrative path the app uses on startup. admin_token is meant for
    the Authorization header.

    The client keeps a cookie jar across requests, and the jwt cookie takes
    priority over the Bearer header. Tests that switch identities call
    client.cookies.clear() first.
    """
    user_store = _make_test_store()
    token_service = build_token_service(get_settings())

    admin = lifecycle.bootstrap_admin(user_store, "Admin User", ADMIN_EMAIL, ADMIN_PASSWORD)
    admin_token, _ = token_service.create_token(admin.id, admin.role)

    app.router.lifespan_context = _patch_lifespan(user_store, token_service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, user_store, admin_token

    user_store.close()


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


def registration_body(email: str | None = None, **overrides) -> dict:
    """A valid registration payload with a unique email unless one is given."""
    body = {
        "name": "Test User",
        "email": email or f"user-{uuid.uuid4().hex[:8]}@example.com",
        "password": "password123",
        "phoneNumber": "1234567890",
    }
    body.update(overrides)
    return body
