"""Integration test fixtures.

Provides a real GeniusClient talking to an in-process fake of the Genius API
(via httpx.MockTransport), a real in-memory cache store, and the FastAPI app
wired to a LookupService built from them.
"""

import httpx
import pytest
import pytest_asyncio

from cache.manager import ResultCacheManager
from cache.store import MemoryCacheStore
from config.settings import Settings
from genius.client import GeniusClient
from genius.ratelimit import reset_rate_limiting
from lookup.orchestrator import LookupService
from tests.factories import make_raw_song

# ---------------------------------------------------------------------------
# Fake Genius API
# ---------------------------------------------------------------------------

ARTISTS = {
    1421: "Kendrick Lamar",
    130: "Drake",
    2: "Drake Bell",
}

SONGS = {
    1421: [
        make_raw_song(90478, "HUMBLE."),
        make_raw_song(3039923, "DNA."),
        make_raw_song(81159, "Alright"),
    ],
    130: [make_raw_song(2400, "Hotline Bling")],
    2: [make_raw_song(11, "Found a Way")],
}


class FakeGenius:
    """Answers /search and /artists/{id}/songs from the tables above.

    ``search_index`` maps a case-folded query to the artist ids of its hits,
    in ranking order. Set ``down`` to make every request fail with a 503.
    """

    def __init__(self):
        self.search_index = {
            "kendrick lamar": [1421],
            "drake": [2, 130],
        }
        self.down = False
        self.requests: list[httpx.Request] = []

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            return httpx.Response(503, json={"meta": {"status": 503}})

        if request.url.path == "/search":
            ids = self.search_index.get(request.url.params["q"].casefold(), [])
            hits = [
                {"type": "song", "result": {"primary_artist": {"id": i, "name": ARTISTS[i]}}}
                for i in ids
            ]
            return httpx.Response(200, json={"response": {"hits": hits}})

        parts = request.url.path.strip("/").split("/")
        if len(parts) == 3 and parts[0] == "artists" and parts[2] == "songs":
            songs = SONGS.get(int(parts[1]), [])
            page = int(request.url.params["page"])
            per_page = int(request.url.params["per_page"])
            chunk = songs[(page - 1) * per_page : page * per_page]
            next_page = page + 1 if page * per_page < len(songs) else None
            return httpx.Response(200, json={"response": {"songs": chunk, "next_page": next_page}})

        return httpx.Response(404, json={"meta": {"status": 404}})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_state():
    """Clear outbound limiters and inbound client budgets between tests."""
    from main import throttle

    throttle.reset()
    yield
    reset_rate_limiting()
    throttle.reset()


@pytest.fixture
def fake_genius():
    return FakeGenius()


@pytest_asyncio.fixture
async def genius_client(fake_genius):
    """Real GeniusClient whose requests never leave the process."""
    client = GeniusClient(
        "test-token",
        retry_interval=0,
        transport=httpx.MockTransport(fake_genius),
    )
    yield client
    await client.close()


@pytest.fixture
def cache_store():
    return MemoryCacheStore(maxsize=100)


@pytest.fixture
def lookup_service(genius_client, cache_store):
    return LookupService(genius_client, ResultCacheManager(cache_store))


@pytest.fixture
def test_settings():
    """Settings with no real tokens, telemetry disabled."""
    return Settings(
        genius_api_token="test-token",
        database_url_cache=None,
        sentry_dsn=None,
        posthog_api_key=None,
        enable_telemetry=False,
    )


@pytest_asyncio.fixture
async def app_client(lookup_service, genius_client, cache_store, test_settings):
    """httpx AsyncClient against the app with real lookup services."""
    from httpx import ASGITransport, AsyncClient

    from config.settings import get_settings
    from core.dependencies import (
        get_cache_store,
        get_genius_client,
        get_lookup_service,
        get_posthog_client,
    )
    from main import app

    app.dependency_overrides[get_lookup_service] = lambda: lookup_service
    app.dependency_overrides[get_genius_client] = lambda: genius_client
    app.dependency_overrides[get_cache_store] = lambda: cache_store
    app.dependency_overrides[get_posthog_client] = lambda: None
    app.dependency_overrides[get_settings] = lambda: test_settings

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
