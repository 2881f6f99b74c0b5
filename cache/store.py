"""Key-value cache stores with per-entry TTL.

A store is a dumb byte container: ``read(key) -> bytes | None`` and
``write(key, value, ttl)``. Both may raise CacheUnavailableError; deciding
what a failure means is left to the cache manager.
"""

import logging
import time
from collections.abc import Callable
from typing import Protocol

from cachetools import TLRUCache  # type: ignore[import-untyped]

from core.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    async def read(self, key: str) -> bytes | None: ...

    async def write(self, key: str, value: bytes, ttl: int) -> None: ...

    async def is_available(self) -> bool: ...

    async def close(self) -> None: ...


def _entry_expiry(_key: str, value: tuple[bytes, int], now: float) -> float:
    """TLRU time-to-use: each entry carries its own TTL."""
    return now + value[1]


class MemoryCacheStore:
    """In-process store backed by a size-bounded TLRU cache.

    Entries expire individually after the TTL passed to ``write``; the least
    recently used entry is evicted first when ``maxsize`` is reached.
    """

    def __init__(self, maxsize: int = 1000, timer: Callable[[], float] = time.monotonic):
        self._cache = TLRUCache(maxsize=maxsize, ttu=_entry_expiry, timer=timer)

    async def read(self, key: str) -> bytes | None:
        try:
            entry = self._cache.get(key)
        except Exception as e:
            raise CacheUnavailableError(f"Cache read failed: {e}") from e
        return entry[0] if entry is not None else None

    async def write(self, key: str, value: bytes, ttl: int) -> None:
        if ttl <= 0:
            return
        try:
            self._cache[key] = (value, ttl)
        except Exception as e:
            raise CacheUnavailableError(f"Cache write failed: {e}") from e

    async def is_available(self) -> bool:
        return True

    async def close(self) -> None:
        self._cache.clear()
