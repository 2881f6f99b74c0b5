"""Two-tier result cache for artist lookups.

Tiers:
- mapping tier: normalized artist name -> NameToIdEntry (long TTL, identity is stable)
- page tier: (artist id, page, per_page) -> ArtistSongsResponse (short TTL)

Page keys are partitioned by canonical artist id, never by the typed name, so
two artists sharing a display name never share cached pages.

Every public method is advisory: store failures and undecodable payloads are
logged and reported as a miss (or a no-op for writes). Internally reads
produce a CacheHit / CacheMiss / CacheFault outcome so the distinction stays
observable below the public surface.
"""

import logging
import time
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

from cache.store import CacheStore
from core.sentry import add_genius_breadcrumb
from core.telemetry import record_cache_error, record_cache_hit, record_cache_miss, record_cache_time
from genius.models import NameToIdEntry
from lookup.models import ArtistSongsResponse

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

MAPPING_TIER = "mapping"
PAGE_TIER = "page"


@dataclass(frozen=True)
class CacheHit(Generic[T]):
    value: T


@dataclass(frozen=True)
class CacheMiss:
    pass


@dataclass(frozen=True)
class CacheFault:
    error: Exception


CacheOutcome = CacheHit[T] | CacheMiss | CacheFault


class ResultCacheManager:
    """Owns cache keys, serialization and failure absorption for both tiers."""

    def __init__(
        self,
        store: CacheStore,
        version: str = "v1",
        mapping_ttl: int = 86400,
        page_ttl: int = 3600,
    ):
        """Initialize the manager.

        Args:
            store: Key-value store holding the serialized entries
            version: Cache format version prefixed to every key
            mapping_ttl: TTL in seconds for name-to-id entries
            page_ttl: TTL in seconds for song page entries
        """
        self.store = store
        self.version = version
        self.mapping_ttl = mapping_ttl
        self.page_ttl = page_ttl

    def mapping_key(self, normalized_name: str) -> str:
        return f"{self.version}:name_to_id:{normalized_name}"

    def page_key(self, artist_id: int, page: int, per_page: int) -> str:
        return f"{self.version}:artist:id:{artist_id}:p{page}:pp{per_page}"

    async def read_mapping(self, normalized_name: str) -> NameToIdEntry | None:
        """Read the canonical identity cached for a normalized name."""
        outcome = await self._read(self.mapping_key(normalized_name), NameToIdEntry)
        return self._collapse(outcome, MAPPING_TIER)

    async def write_mapping(self, normalized_name: str, entry: NameToIdEntry) -> None:
        """Cache the canonical identity for a normalized name."""
        await self._write(self.mapping_key(normalized_name), entry, self.mapping_ttl)

    async def read_page(
        self, artist_id: int, page: int, per_page: int
    ) -> ArtistSongsResponse | None:
        """Read a cached song page exactly as it was written."""
        outcome = await self._read(self.page_key(artist_id, page, per_page), ArtistSongsResponse)
        return self._collapse(outcome, PAGE_TIER)

    async def write_page(
        self, artist_id: int, page: int, per_page: int, entry: ArtistSongsResponse
    ) -> None:
        """Cache a full song page response, including its freshness metadata."""
        await self._write(self.page_key(artist_id, page, per_page), entry, self.page_ttl)

    async def _read(self, key: str, model: type[T]) -> CacheOutcome:
        """Read and decode a key without absorbing failures."""
        start = time.perf_counter()
        try:
            raw = await self.store.read(key)
        except Exception as e:  # store outage of any kind is a miss
            return CacheFault(e)
        finally:
            record_cache_time((time.perf_counter() - start) * 1000)

        if raw is None:
            return CacheMiss()

        try:
            return CacheHit(model.model_validate_json(raw))
        except ValidationError as e:
            return CacheFault(e)

    def _collapse(self, outcome: CacheOutcome, tier: str):
        """Turn an outcome into a value or None, logging faults."""
        if isinstance(outcome, CacheHit):
            logger.debug(f"Cache hit ({tier} tier)")
            record_cache_hit(tier)
            return outcome.value

        if isinstance(outcome, CacheFault):
            logger.warning(f"Cache read error ({tier} tier): {outcome.error}")
            record_cache_error()
            add_genius_breadcrumb("cache_read_error", {"tier": tier}, level="warning")
        else:
            logger.debug(f"Cache miss ({tier} tier)")
        record_cache_miss(tier)
        return None

    async def _write(self, key: str, entry: BaseModel, ttl: int) -> bool:
        """Serialize and store an entry; returns False if the store failed."""
        start = time.perf_counter()
        try:
            await self.store.write(key, entry.model_dump_json().encode(), ttl)
            return True
        except Exception as e:
            logger.warning(f"Failed to cache {key}: {e}")
            record_cache_error()
            add_genius_breadcrumb("cache_write_error", {"key": key}, level="warning")
            return False
        finally:
            record_cache_time((time.perf_counter() - start) * 1000)
