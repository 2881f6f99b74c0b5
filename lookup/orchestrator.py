"""Lookup orchestrator: the resilient artist songs lookup.

LookupService.lookup() validates input, resolves the artist, serves song
pages from the two-tier cache when possible and falls back to stale cached
data when the Genius API is unreachable:

1. mapping hit + page hit -> re-resolve against Genius
   - success: cached page with the fresh artist (cached)
   - Genius unreachable or timing out: cached page as-is (stale)
2. otherwise -> resolve, cache the mapping, serve the page tier for the
   canonical id or fetch the page from Genius and cache it (fresh)

Retries happen inside GeniusClient only; this layer just decides between
serving stale data and failing.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from cache.manager import ResultCacheManager
from core.exceptions import InvalidInputError, UpstreamAvailabilityError, UpstreamFormatError
from core.matching import MAX_ARTIST_NAME_LENGTH, normalize_name
from core.telemetry import RequestTelemetry
from genius.client import GeniusClient
from genius.models import Artist, NameToIdEntry, Song, SongPage
from genius.resolver import ArtistResolver
from lookup.models import ArtistSongsResponse, Pagination, ResponseMeta

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 50
"""Genius API maximum page size."""

DEFAULT_PER_PAGE = MAX_PER_PAGE


def utc_now() -> datetime:
    return datetime.now(UTC)


def validate_lookup_input(name: str | None, page: int, per_page: int) -> None:
    """Reject bad lookup parameters before any I/O happens.

    Raises:
        InvalidInputError: With a stable, single-sentence message
    """
    if name is None or not name.strip():
        raise InvalidInputError("Artist name is required")
    if len(name.strip()) > MAX_ARTIST_NAME_LENGTH:
        raise InvalidInputError(
            f"Artist name is too long (max {MAX_ARTIST_NAME_LENGTH} characters)"
        )
    if page < 1:
        raise InvalidInputError("Page must be positive")
    if not 1 <= per_page <= MAX_PER_PAGE:
        raise InvalidInputError(f"Per page must be 1-{MAX_PER_PAGE}")


def format_songs_page(payload: dict[str, Any]) -> SongPage:
    """Shape a raw Genius songs payload into a SongPage, keeping upstream order.

    Raises:
        UpstreamFormatError: If the payload or a song in it is malformed
    """
    response = payload.get("response")
    if not isinstance(response, dict):
        response = {}
    raw_songs = response.get("songs") or []

    try:
        songs = [
            Song(
                id=song["id"],
                title=song["title"],
                url=song["url"],
                release_date=song.get("release_date_for_display"),
            )
            for song in raw_songs
        ]
    except (KeyError, TypeError, AttributeError, ValidationError) as e:
        logger.error(f"Malformed song in Genius response: {e}")
        raise UpstreamFormatError("Invalid response from Genius API") from e

    return SongPage(songs=songs, has_next=response.get("next_page") is not None)


def build_response(
    artist: Artist,
    songs_page: SongPage,
    page: int,
    per_page: int,
    fetched_at: datetime,
) -> ArtistSongsResponse:
    """Assemble a freshly fetched response."""
    return ArtistSongsResponse(
        artist=artist,
        songs=songs_page.songs,
        pagination=Pagination(page=page, per_page=per_page, has_next=songs_page.has_next),
        meta=ResponseMeta(fetched_at=fetched_at),
    )


def mark_cached(entry: ArtistSongsResponse, artist: Artist) -> ArtistSongsResponse:
    """A cached page confirmed against a healthy upstream, carrying the fresh artist."""
    return entry.model_copy(
        update={
            "artist": artist,
            "meta": entry.meta.model_copy(
                update={"cached": True, "stale": False, "api_unavailable": False}
            ),
        }
    )


def mark_stale(entry: ArtistSongsResponse) -> ArtistSongsResponse:
    """A cached page served as-is because the upstream is unavailable."""
    return entry.model_copy(
        update={
            "meta": entry.meta.model_copy(
                update={"cached": True, "stale": True, "api_unavailable": True}
            ),
        }
    )


class LookupService:
    """Public entry point of the artist songs lookup.

    All collaborators are passed in explicitly, including the clock used to
    stamp ``fetched_at`` and the logger, so tests can substitute any of them.
    """

    def __init__(
        self,
        client: GeniusClient,
        cache: ResultCacheManager,
        resolver: ArtistResolver | None = None,
        clock: Callable[[], datetime] = utc_now,
        log: logging.Logger | None = None,
    ):
        self.client = client
        self.cache = cache
        self.resolver = resolver or ArtistResolver(client)
        self.clock = clock
        self.log = log or logger

    async def lookup(
        self,
        name: str,
        page: int = 1,
        per_page: int = DEFAULT_PER_PAGE,
        telemetry: RequestTelemetry | None = None,
    ) -> ArtistSongsResponse:
        """Look up one page of an artist's songs.

        Args:
            name: Free-text artist name
            page: 1-based page number
            per_page: Page size, 1-50
            telemetry: Optional per-request step timer

        Returns:
            ArtistSongsResponse with freshness metadata

        Raises:
            InvalidInputError: Bad parameters (raised before any I/O)
            ArtistNotFoundError: No artist matches the name
            UpstreamError: Genius failed and there was nothing cached to fall back to
        """
        validate_lookup_input(name, page, per_page)
        telemetry = telemetry or RequestTelemetry()
        normalized = normalize_name(name)

        with telemetry.track_step("mapping_cache"):
            mapping = await self.cache.read_mapping(normalized)

        if mapping is not None:
            with telemetry.track_step("page_cache"):
                cached_page = await self.cache.read_page(mapping.artist_id, page, per_page)

            if cached_page is not None:
                try:
                    with telemetry.track_step("resolve"):
                        artist = await self.resolver.resolve(name)
                except UpstreamAvailabilityError as e:
                    self.log.warning(
                        f"Genius unavailable ({type(e).__name__}), serving stale page for "
                        f"artist {mapping.artist_id} page {page}"
                    )
                    return self._respond(mark_stale(cached_page))

                if artist.id == mapping.artist_id:
                    await self._remember_artist(normalized, artist)
                    return self._respond(mark_cached(cached_page, artist))

                self.log.info(
                    f"'{name}' now resolves to artist {artist.id} (was {mapping.artist_id})"
                )
                try:
                    response = await self._serve_artist(artist, page, per_page, telemetry)
                except UpstreamAvailabilityError as e:
                    # Mapping still points at the old id so its page stays reachable.
                    self.log.warning(
                        f"Genius unavailable ({type(e).__name__}) fetching artist {artist.id}, "
                        f"serving stale page for artist {mapping.artist_id} page {page}"
                    )
                    return self._respond(mark_stale(cached_page))

                await self._remember_artist(normalized, artist)
                return response

        with telemetry.track_step("resolve"):
            artist = await self.resolver.resolve(name)
        await self._remember_artist(normalized, artist)
        return await self._serve_artist(artist, page, per_page, telemetry)

    async def _remember_artist(self, normalized: str, artist: Artist) -> None:
        await self.cache.write_mapping(
            normalized, NameToIdEntry(artist_id=artist.id, artist_name=artist.name)
        )

    async def _serve_artist(
        self,
        artist: Artist,
        page: int,
        per_page: int,
        telemetry: RequestTelemetry,
    ) -> ArtistSongsResponse:
        """Serve a page for a freshly resolved artist: page tier first, then Genius."""
        with telemetry.track_step("page_cache"):
            cached_page = await self.cache.read_page(artist.id, page, per_page)
        if cached_page is not None:
            return self._respond(mark_cached(cached_page, artist))

        with telemetry.track_step("fetch_songs"):
            payload = await self.client.list_songs(artist.id, page, per_page)
            songs_page = format_songs_page(payload)

        response = build_response(artist, songs_page, page, per_page, fetched_at=self.clock())
        await self.cache.write_page(artist.id, page, per_page, response)
        return self._respond(response)

    def _respond(self, response: ArtistSongsResponse) -> ArtistSongsResponse:
        self.log.info(
            f"Lookup for artist {response.artist.id} page {response.pagination.page}: "
            f"{response.outcome} ({len(response.songs)} songs)"
        )
        return response
