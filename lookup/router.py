"""Artist songs lookup API router."""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from posthog import Posthog

from core.dependencies import get_lookup_service, get_posthog_client
from core.exceptions import LookupServiceError
from core.sentry import capture_exception
from core.telemetry import RequestTelemetry, get_cache_stats, init_cache_stats
from lookup.models import ArtistSongsResponse, ErrorResponse
from lookup.orchestrator import DEFAULT_PER_PAGE, LookupService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["lookup"])

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get(
    "/artists/{name}/songs",
    response_model=ArtistSongsResponse,
    summary="List an artist's songs, most popular first",
    description="""
    Resolves a free-text artist name to a canonical Genius artist and returns
    one page of their songs.

    Pages are cached per canonical artist id. When Genius is unreachable a
    previously cached page is returned with `meta.stale=true` and
    `meta.api_unavailable=true`.
    """,
    responses={
        200: {"description": "Songs returned (fresh, cached or stale)"},
        404: {"model": ErrorResponse, "description": "Artist not found"},
        422: {"model": ErrorResponse, "description": "Invalid name, page or per_page"},
        429: {"model": ErrorResponse, "description": "Client rate limit exceeded"},
        502: {"model": ErrorResponse, "description": "Genius API error"},
        504: {"model": ErrorResponse, "description": "Genius API timed out"},
    },
)
async def get_artist_songs(
    name: str,
    page: int = Query(1, description="1-based page number"),
    per_page: int = Query(DEFAULT_PER_PAGE, description="Songs per page (1-50)"),
    service: LookupService = Depends(get_lookup_service),
    posthog_client: Posthog | None = Depends(get_posthog_client),
):
    """Look up one page of an artist's songs."""
    init_cache_stats()
    telemetry = RequestTelemetry()

    try:
        response = await service.lookup(name, page=page, per_page=per_page, telemetry=telemetry)
    except LookupServiceError as e:
        logger.info(f"Lookup for '{name}' failed: {type(e).__name__}: {e.message}")
        _send_telemetry(posthog_client, telemetry, {"error_type": type(e).__name__})
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception(f"Unexpected error during lookup for '{name}': {e}")
        capture_exception(e, {"name": name, "page": page, "per_page": per_page})
        return error_response(500, UNEXPECTED_ERROR_MESSAGE)

    _send_telemetry(
        posthog_client,
        telemetry,
        {
            "outcome": str(response.outcome),
            "songs_count": len(response.songs),
            "page": page,
            "per_page": per_page,
        },
    )
    return response


def _send_telemetry(
    posthog_client: Posthog | None, telemetry: RequestTelemetry, properties: dict
) -> None:
    if not posthog_client:
        return
    try:
        telemetry.send_to_posthog(posthog_client, properties)
    except Exception as e:
        logger.warning(f"Failed to send telemetry: {e}")
    logger.debug(f"Cache stats: {get_cache_stats()}")
