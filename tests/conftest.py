"""
tests/conftest.py -- Shared test fixtures for authflow tests.

This module provides:
  - _patch_lifespan(): pins app.state.auth_profile, bypassing real startup
  - client_for: factory yielding a TestClient for any catalog profile
  - settings_env: sets env vars for Settings and clears the get_settings() cache

Every client shares one FastAPI app, so only one client is open per test:
the lifespan writes the pinned profile to app.state.

The rate limit is raised before any api import: the limiter's in-memory
counters are shared by every test module in the session.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from contextlib import asynccontextmanager, contextmanager

os.environ.setdefault("PROFILE_RATE_LIMIT", "10000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import AuthenticationProfile
from core.config import get_settings

# ---------------------------------------------------------------------------
# Lifespan helpers
# ---------------------------------------------------------------------------


def _patch_lifespan(profile: AuthenticationProfile):
    """Return an async context manager that replaces the real lifespan.

    The real lifespan resolves the profile from the environment; tests pin it
    directly so each test module controls which profile is active.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.auth_profile = profile
        yield
        app.state.auth_profile = None

    return test_lifespan


@contextmanager
def _client(profile: AuthenticationProfile) -> Iterator[TestClient]:
    original = app.router.lifespan_context
    app.router.lifespan_context = _patch_lifespan(profile)
    try:
        with TestClient(app, raise_server_exceptions=True) as client:
            yield client
    finally:
        app.router.lifespan_context = original


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client_for() -> Generator[Callable[[AuthenticationProfile], TestClient], None, None]:
    """Yield a factory: client_for(profile) -> TestClient serving that profile.

    Clients opened through the factory are closed when the test finishes.
    """
    opened = []

    def factory(profile: AuthenticationProfile) -> TestClient:
        cm = _client(profile)
        opened.append(cm)
        return cm.__enter__()

    yield factory

    for cm in reversed(opened):
        cm.__exit__(None, None, None)


@pytest.fixture
def settings_env(monkeypatch: pytest.MonkeyPatch) -> Generator[Callable[..., None], None, None]:
    """Yield a setter for Settings env vars; the settings cache is cleared around each test."""
    get_settings.cache_clear()

    def set_env(**values: str) -> None:
        for name, value in values.items():
            monkeypatch.setenv(name.upper(), value)
        get_settings.cache_clear()

    yield set_env

    get_settings.cache_clear()
