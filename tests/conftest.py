"""Shared test fixtures for pytest."""

from unittest.mock import AsyncMock

import pytest

from cache.manager import ResultCacheManager
from cache.store import MemoryCacheStore
from genius.client import GeniusClient
from tests.factories import make_search_payload, make_songs_payload


class FakeClock:
    """Settable time source for both the TLRU store and ``fetched_at`` stamps."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def memory_store(fake_clock):
    """In-memory cache store driven by a fake clock."""
    return MemoryCacheStore(maxsize=100, timer=fake_clock)


@pytest.fixture
def cache_manager(memory_store):
    """Cache manager over the in-memory store with default TTLs."""
    return ResultCacheManager(memory_store)


@pytest.fixture
def mock_genius_client():
    """Create a mock Genius client answering for Kendrick Lamar."""
    client = AsyncMock(spec=GeniusClient)
    client.search = AsyncMock(return_value=make_search_payload((1421, "Kendrick Lamar")))
    client.list_songs = AsyncMock(return_value=make_songs_payload(count=10, next_page=2))
    client.check_api = AsyncMock(return_value=True)
    return client


@pytest.fixture
def mock_cache_store():
    """Create a mock cache store that always misses."""
    store = AsyncMock()
    store.read = AsyncMock(return_value=None)
    store.write = AsyncMock()
    store.is_available = AsyncMock(return_value=True)
    store.close = AsyncMock()
    return store
