"""Unit test fixtures."""

from contextlib import contextmanager
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

from config.settings import Settings
from genius.ratelimit import reset_rate_limiting


@contextmanager
def override_deps(app, overrides):
    """Set FastAPI dependency overrides and clear them on exit.

    Args:
        app: The FastAPI application.
        overrides: A dict mapping dependency functions to their replacement values.
    """

    def _make_override(val):
        return lambda: val

    for dep_fn, provider in overrides.items():
        app.dependency_overrides[dep_fn] = _make_override(provider)
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def mock_settings(monkeypatch):
    """Settings with safe test defaults (no real tokens/DSNs)."""
    monkeypatch.setenv("GENIUS_API_TOKEN", "")
    monkeypatch.setenv("DATABASE_URL_CACHE", "")
    monkeypatch.setenv("SENTRY_DSN", "")
    monkeypatch.setenv("POSTHOG_API_KEY", "")
    monkeypatch.setenv("ENABLE_TELEMETRY", "false")
    return Settings(
        genius_api_token="test-token",
        database_url_cache=None,
        sentry_dsn=None,
        posthog_api_key=None,
        enable_telemetry=False,
    )


@pytest.fixture
def mock_asyncpg_pool():
    """AsyncMock mimicking asyncpg.Pool."""
    pool = AsyncMock()
    pool.fetch = AsyncMock(return_value=[])
    pool.fetchrow = AsyncMock(return_value=None)
    pool.fetchval = AsyncMock(return_value=1)

    conn = AsyncMock()
    conn.execute = AsyncMock()

    # acquire() must return an async context manager (not a coroutine).
    acq_ctx = MagicMock()
    acq_ctx.__aenter__ = AsyncMock(return_value=conn)
    acq_ctx.__aexit__ = AsyncMock(return_value=False)
    pool.acquire = MagicMock(return_value=acq_ctx)

    pool._mock_conn = conn  # expose for assertions
    return pool


@pytest.fixture
def mock_posthog_client():
    """Mock PostHog client."""
    client = Mock()
    client.capture = Mock()
    client.flush = Mock()
    client.shutdown = Mock()
    return client


@pytest.fixture(autouse=True)
def reset_state():
    """Clear rate limiting state, client throttles and ContextVars between tests."""
    from core.telemetry import _cache_stats_var
    from main import throttle

    cache_stats_token = _cache_stats_var.set(None)
    throttle.reset()
    yield
    reset_rate_limiting()
    throttle.reset()
    _cache_stats_var.reset(cache_stats_token)
