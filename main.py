"""Main application entry point for the Artist Song Lookup service."""

import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import get_settings
from core.dependencies import build_services, close_services
from core.exceptions import LookupServiceError
from core.logging import set_request_id, setup_logging
from core.sentry import init_sentry
from core.throttle import THROTTLED_MESSAGE, ClientThrottle, default_rules
from lookup.router import router as lookup_router
from routers.health import router as health_router

load_dotenv()

settings = get_settings()

init_sentry(
    dsn=settings.sentry_dsn,
    environment="production" if settings.log_level != "DEBUG" else "development",
    release=settings.app_version,
)

log_file = None
if settings.log_level != "DEBUG":
    log_dir = Path("/app/logs") if Path("/app/logs").exists() else Path("logs")
    log_file = log_dir / "artist-song-lookup.log"
setup_logging(level=settings.log_level, log_file=log_file)

logger = logging.getLogger(__name__)

throttle = ClientThrottle(default_rules(settings.api_rate_limit, settings.search_rate_limit))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build services at startup and close them at shutdown."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Cache store: {'postgres' if settings.database_url_cache else 'memory'}")

    app.state.services = await build_services(settings)

    yield

    logger.info("Shutting down application")
    await close_services(app.state.services)
    app.state.services = None
    logger.info("All services shut down")


app = FastAPI(
    title=settings.app_name,
    description="Artist song lookup backed by the Genius API with resilient caching",
    version=settings.app_version,
    lifespan=lifespan,
)


@app.exception_handler(LookupServiceError)
async def lookup_service_error_handler(request: Request, exc: LookupServiceError):
    """Render service errors raised outside a route body with their stable message."""
    logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.middleware("http")
async def posthog_flush_middleware(request: Request, call_next):
    """Flush PostHog events after each request to prevent data loss."""
    response = await call_next(request)
    services = getattr(request.app.state, "services", None)
    if services and services.posthog_client:
        services.posthog_client.flush()
    return response


@app.middleware("http")
async def throttle_middleware(request: Request, call_next):
    """Reject clients over their per-minute request budget."""
    if settings.enable_rate_limiting:
        client = request.client.host if request.client else "unknown"
        if not await throttle.allow(client, request.url.path):
            return JSONResponse(status_code=429, content={"error": THROTTLED_MESSAGE})
    return await call_next(request)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag logs with a request id and echo it back to the caller."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    set_request_id(request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(health_router, prefix="", tags=["health"])
app.include_router(lookup_router, prefix="/api/v1", tags=["lookup"])

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
