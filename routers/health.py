"""Health check router with real dependency connectivity checks."""

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from cache.store import CacheStore
from config.settings import Settings, get_settings
from core.dependencies import get_cache_store, get_genius_client
from genius.client import GeniusClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

CHECK_TIMEOUT = 3.0


async def _check_genius_api(client: GeniusClient | None) -> str:
    """Ping the Genius API via the service's own client."""
    if client is None:
        return "unavailable"
    return "ok" if await client.check_api() else "error"


async def _check_cache(store: CacheStore | None) -> str:
    """Ping the cache store."""
    if store is None:
        return "unavailable"
    return "ok" if await store.is_available() else "error"


async def _run_check(coro) -> str:
    """Run a single health check with a timeout."""
    try:
        return await asyncio.wait_for(coro, timeout=CHECK_TIMEOUT)
    except TimeoutError:
        return "timeout"


@router.get(
    "/health",
    summary="Health check",
    responses={
        200: {"description": "Service is healthy or degraded"},
        503: {"description": "Service is unhealthy (neither Genius nor the cache is usable)"},
    },
)
async def health_check(
    settings: Settings = Depends(get_settings),
    genius_client: GeniusClient | None = Depends(get_genius_client),
    cache_store: CacheStore | None = Depends(get_cache_store),
):
    """Health check with real connectivity probes for every dependency.

    Either dependency alone can still answer lookups (fresh from Genius, or
    stale from cache), so one failing probe only degrades the service.
    """
    results = await asyncio.gather(
        _run_check(_check_genius_api(genius_client)),
        _run_check(_check_cache(cache_store)),
    )

    services = {
        "genius_api": results[0],
        "cache": results[1],
    }

    ok_count = sum(1 for v in services.values() if v == "ok")

    if ok_count == len(services):
        status = "healthy"
    elif ok_count:
        status = "degraded"
    else:
        status = "unhealthy"

    body = {
        "status": status,
        "version": settings.app_version,
        "services": services,
    }

    status_code = 200 if status in ("healthy", "degraded") else 503
    return JSONResponse(content=body, status_code=status_code)
