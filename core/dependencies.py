"""Service construction and FastAPI dependency providers.

Services are built once during application startup and stored on
``app.state``; dependency providers only hand out what startup built.
"""

import logging
from dataclasses import dataclass

import asyncpg
from fastapi import Depends, Request
from posthog import Posthog

from cache.manager import ResultCacheManager
from cache.postgres import PostgresCacheStore
from cache.store import CacheStore, MemoryCacheStore
from config.settings import Settings, get_settings
from core.exceptions import ConfigurationError, ServiceInitializationError
from genius.client import GeniusClient
from lookup.orchestrator import LookupService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    """Everything startup builds, closed together at shutdown."""

    genius_client: GeniusClient
    cache_store: CacheStore
    lookup_service: LookupService
    posthog_client: Posthog | None = None


async def create_cache_store(settings: Settings) -> CacheStore:
    """Create the PostgreSQL store when configured and reachable, else an in-memory store.

    Args:
        settings: Application settings

    Returns:
        CacheStore ready for use
    """
    if settings.database_url_cache:
        try:
            pool = await asyncpg.create_pool(settings.database_url_cache, min_size=1, max_size=5)
            store = PostgresCacheStore(pool)
            await store.ensure_schema()
            logger.info("PostgreSQL cache store connected")
            return store
        except Exception as e:
            logger.warning(
                f"Failed to connect PostgreSQL cache store, using in-memory cache: "
                f"{type(e).__name__}: {e}"
            )

    logger.info(f"In-memory cache store enabled (maxsize: {settings.cache_maxsize})")
    return MemoryCacheStore(maxsize=settings.cache_maxsize)


def create_posthog_client(settings: Settings) -> Posthog | None:
    """Create a PostHog client if telemetry is enabled and configured."""
    if not settings.enable_telemetry:
        logger.debug("Telemetry disabled")
        return None

    if not settings.posthog_api_key:
        logger.debug("POSTHOG_API_KEY not set - telemetry disabled")
        return None

    client = Posthog(project_api_key=settings.posthog_api_key, host=settings.posthog_host)
    logger.info(f"PostHog client initialized (host: {settings.posthog_host})")
    return client


async def build_services(settings: Settings) -> Services:
    """Build the Genius client, cache and lookup service from settings.

    Raises:
        ConfigurationError: If GENIUS_API_TOKEN is not set
        ServiceInitializationError: If a service fails to initialize
    """
    if not settings.genius_api_token:
        raise ConfigurationError("GENIUS_API_TOKEN is not set")

    try:
        genius_client = GeniusClient.from_settings(settings)
        cache_store = await create_cache_store(settings)
        cache = ResultCacheManager(
            cache_store,
            version=settings.cache_version,
            mapping_ttl=settings.mapping_cache_ttl,
            page_ttl=settings.page_cache_ttl,
        )
        lookup_service = LookupService(genius_client, cache)
    except Exception as e:
        logger.error(f"Failed to initialize lookup services: {e}")
        raise ServiceInitializationError(f"Service initialization failed: {e}") from e

    return Services(
        genius_client=genius_client,
        cache_store=cache_store,
        lookup_service=lookup_service,
        posthog_client=create_posthog_client(settings),
    )


async def close_services(services: Services) -> None:
    """Close HTTP client, cache store and telemetry client."""
    await services.genius_client.close()
    await services.cache_store.close()
    if services.posthog_client:
        services.posthog_client.shutdown()
        logger.info("PostHog client shutdown")


def _services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise ServiceInitializationError("Lookup services are not initialized")
    return services


def get_lookup_service(request: Request) -> LookupService:
    """Get the lookup service built at startup."""
    return _services(request).lookup_service


def get_genius_client(request: Request) -> GeniusClient | None:
    """Get the Genius client, or None before startup completed."""
    services = getattr(request.app.state, "services", None)
    return services.genius_client if services else None


def get_cache_store(request: Request) -> CacheStore | None:
    """Get the cache store, or None before startup completed."""
    services = getattr(request.app.state, "services", None)
    return services.cache_store if services else None


def get_posthog_client(
    request: Request, settings: Settings = Depends(get_settings)
) -> Posthog | None:
    """Get the PostHog client if telemetry is enabled."""
    if not settings.enable_telemetry:
        return None
    services = getattr(request.app.state, "services", None)
    return services.posthog_client if services else None
