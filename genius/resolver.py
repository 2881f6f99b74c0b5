"""Resolve a free-text artist name to a canonical Genius artist."""

import logging
from typing import Any

from core.exceptions import ArtistNotFoundError, UpstreamFormatError
from core.matching import names_match
from genius.client import GeniusClient
from genius.models import Artist

logger = logging.getLogger(__name__)


def extract_primary_artists(payload: dict[str, Any]) -> list[dict[str, Any]]:
    """Pull ``result.primary_artist`` out of every search hit, in ranking order."""
    response = payload.get("response")
    if not isinstance(response, dict):
        return []
    hits = response.get("hits") or []
    artists = []
    for hit in hits:
        result = hit.get("result") if isinstance(hit, dict) else None
        primary = result.get("primary_artist") if isinstance(result, dict) else None
        artists.append(primary if isinstance(primary, dict) else {})
    return artists


class ArtistResolver:
    """Turns a name into an Artist using the Genius search endpoint.

    Prefers a hit whose primary artist name equals the input (ignoring case),
    otherwise trusts Genius's own ranking and takes the first hit. Does not
    cache anything.
    """

    def __init__(self, client: GeniusClient):
        self.client = client

    async def resolve(self, name: str) -> Artist:
        """Resolve a name to its canonical artist.

        Raises:
            ArtistNotFoundError: If the search returns no hits
            UpstreamFormatError: If the selected hit has no usable artist
        """
        payload = await self.client.search(name.strip())
        candidates = extract_primary_artists(payload)

        if not candidates:
            raise ArtistNotFoundError(f"Artist '{name.strip()}' not found")

        chosen = next(
            (c for c in candidates if names_match(c.get("name"), name)),
            candidates[0],
        )

        artist_id = chosen.get("id")
        artist_name = chosen.get("name")
        if not isinstance(artist_id, int) or isinstance(artist_id, bool) or not artist_name:
            logger.error(f"Search hit for '{name}' has no usable primary artist: {chosen}")
            raise UpstreamFormatError("Invalid response from Genius API")

        logger.debug(f"Resolved '{name}' to artist {artist_id} ({artist_name})")
        return Artist(id=artist_id, name=artist_name)
