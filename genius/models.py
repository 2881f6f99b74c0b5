"""Pydantic models for Genius artists, songs and song pages."""

from pydantic import BaseModel


class Artist(BaseModel):
    """A canonical Genius artist. The id is the identity; the name is for display."""

    id: int
    name: str


class Song(BaseModel):
    """A single song as returned to callers."""

    id: int
    title: str
    url: str
    release_date: str | None = None


class SongPage(BaseModel):
    """One page of an artist's songs in upstream popularity order."""

    songs: list[Song] = []
    has_next: bool = False


class NameToIdEntry(BaseModel):
    """Mapping-tier cache value: normalized artist name to canonical identity."""

    artist_id: int
    artist_name: str
