"""Unit tests for routers/health.py."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from genius.client import GeniusClient
from routers.health import _check_cache, _check_genius_api, _run_check
from tests.unit.conftest import override_deps

# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def _genius(ok=True):
    client = AsyncMock(spec=GeniusClient)
    client.check_api = AsyncMock(return_value=ok)
    return client


def _store(ok=True):
    store = AsyncMock()
    store.is_available = AsyncMock(return_value=ok)
    return store


class TestCheckGeniusApi:
    @pytest.mark.asyncio
    async def test_ok(self):
        assert await _check_genius_api(_genius(True)) == "ok"

    @pytest.mark.asyncio
    async def test_error(self):
        assert await _check_genius_api(_genius(False)) == "error"

    @pytest.mark.asyncio
    async def test_none_client(self):
        assert await _check_genius_api(None) == "unavailable"


class TestCheckCache:
    @pytest.mark.asyncio
    async def test_ok(self):
        assert await _check_cache(_store(True)) == "ok"

    @pytest.mark.asyncio
    async def test_error(self):
        assert await _check_cache(_store(False)) == "error"

    @pytest.mark.asyncio
    async def test_none_store(self):
        assert await _check_cache(None) == "unavailable"


class TestRunCheck:
    @pytest.mark.asyncio
    async def test_success(self):
        async def ok_check():
            return "ok"

        assert await _run_check(ok_check()) == "ok"

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def slow_check():
            await asyncio.sleep(100)
            return "ok"

        with patch("routers.health.CHECK_TIMEOUT", 0.01):
            result = await _run_check(slow_check())
        assert result == "timeout"


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------


async def _get_health(genius_client, cache_store, settings):
    from config.settings import get_settings
    from core.dependencies import get_cache_store, get_genius_client
    from main import app

    with override_deps(
        app,
        {
            get_genius_client: genius_client,
            get_cache_store: cache_store,
            get_settings: settings,
        },
    ):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            return await client.get("/health")


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_healthy(self, mock_settings):
        resp = await _get_health(_genius(True), _store(True), mock_settings)

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["version"] == mock_settings.app_version
        assert body["services"] == {"genius_api": "ok", "cache": "ok"}

    @pytest.mark.asyncio
    async def test_degraded_when_genius_down(self, mock_settings):
        """Cache alone can still serve stale pages."""
        resp = await _get_health(_genius(False), _store(True), mock_settings)

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "degraded"
        assert body["services"]["genius_api"] == "error"

    @pytest.mark.asyncio
    async def test_degraded_when_cache_down(self, mock_settings):
        resp = await _get_health(_genius(True), _store(False), mock_settings)

        assert resp.status_code == 200
        assert resp.json()["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_unhealthy_returns_503(self, mock_settings):
        resp = await _get_health(_genius(False), _store(False), mock_settings)

        assert resp.status_code == 503
        assert resp.json()["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_before_startup_is_unhealthy(self, mock_settings):
        resp = await _get_health(None, None, mock_settings)

        assert resp.status_code == 503
        assert resp.json()["services"] == {"genius_api": "unavailable", "cache": "unavailable"}
