"""Models for the artist songs lookup contract."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel

from genius.models import Artist, Song


class LookupOutcome(StrEnum):
    FRESH = "fresh"
    CACHED = "cached"
    STALE = "stale"


class Pagination(BaseModel):
    page: int
    per_page: int
    has_next: bool = False


class ResponseMeta(BaseModel):
    """Freshness metadata.

    ``stale`` is only ever true together with ``cached`` and
    ``api_unavailable``; a fresh fetch has all three false.
    """

    fetched_at: datetime
    cached: bool = False
    stale: bool = False
    api_unavailable: bool = False


class ArtistSongsResponse(BaseModel):
    """Response for an artist songs lookup; also the page-tier cache value."""

    artist: Artist
    songs: list[Song] = []
    pagination: Pagination
    meta: ResponseMeta

    @property
    def outcome(self) -> LookupOutcome:
        if self.meta.stale:
            return LookupOutcome.STALE
        if self.meta.cached:
            return LookupOutcome.CACHED
        return LookupOutcome.FRESH


class ErrorResponse(BaseModel):
    """Body returned for every failed lookup."""

    error: str
