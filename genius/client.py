"""Genius API client with timeouts, outbound rate limiting and retry."""

import asyncio
import logging
import time
from typing import Any

import httpx

from config.settings import Settings
from core.exceptions import (
    UpstreamAuthError,
    UpstreamClientError,
    UpstreamFormatError,
    UpstreamThrottledError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from core.sentry import add_genius_breadcrumb
from core.telemetry import record_api_call, record_api_time
from genius.ratelimit import get_rate_limiter, get_semaphore

logger = logging.getLogger(__name__)

GENIUS_API_BASE = "https://api.genius.com"
SONG_SORT_ORDER = "popularity"

# Only failures that never produced a response are worth retrying.
RETRYABLE_ERRORS = (httpx.TimeoutException, httpx.NetworkError)


class GeniusClient:
    """Thin client for the two Genius endpoints the lookup needs.

    Returns raw JSON payloads and translates every failure into a typed
    upstream error. The underlying httpx client is created once, here, and
    shared by every request made through this instance.
    """

    def __init__(
        self,
        token: str,
        base_url: str = GENIUS_API_BASE,
        timeout: float = 10.0,
        connect_timeout: float = 5.0,
        max_retries: int = 3,
        retry_interval: float = 0.5,
        backoff_factor: float = 2.0,
        rate_limit: int = 300,
        max_concurrent: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            token: Genius API bearer token
            base_url: Genius API base URL
            timeout: Per-request timeout in seconds
            connect_timeout: Connection-open timeout in seconds
            max_retries: Retries after the first attempt on timeouts/connection failures
            retry_interval: Delay before the first retry in seconds
            backoff_factor: Multiplier applied to the delay after each retry
            rate_limit: Max requests per minute
            max_concurrent: Max in-flight requests
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self.backoff_factor = backoff_factor
        self.rate_limit = rate_limit
        self.max_concurrent = max_concurrent
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "User-Agent": "ArtistSongLookupService/1.0",
            },
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeniusClient":
        """Build a client from application settings."""
        return cls(
            token=settings.genius_api_token or "",
            base_url=settings.genius_api_base_url,
            timeout=settings.genius_timeout,
            connect_timeout=settings.genius_connect_timeout,
            max_retries=settings.genius_max_retries,
            retry_interval=settings.genius_retry_interval,
            backoff_factor=settings.genius_backoff_factor,
            rate_limit=settings.genius_rate_limit,
            max_concurrent=settings.genius_max_concurrent,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def check_api(self) -> bool:
        """Check Genius API connectivity and credentials."""
        try:
            resp = await self._client.get("/search", params={"q": "genius"})
            return bool(resp.status_code == 200)
        except httpx.HTTPError:
            return False

    async def search(self, name: str) -> dict[str, Any]:
        """Search Genius for a free-text name.

        Args:
            name: Artist name as typed by the caller

        Returns:
            Raw search payload (``response.hits[]``)
        """
        return await self._get_json("search", "/search", {"q": name})

    async def list_songs(self, artist_id: int, page: int, per_page: int) -> dict[str, Any]:
        """List one page of an artist's songs, most popular first.

        Args:
            artist_id: Canonical Genius artist id
            page: 1-based page number
            per_page: Page size

        Returns:
            Raw songs payload (``response.songs[]`` and ``response.next_page``)
        """
        return await self._get_json(
            "list_songs",
            f"/artists/{artist_id}/songs",
            {"per_page": per_page, "page": page, "sort": SONG_SORT_ORDER},
        )

    async def _get_json(self, operation: str, path: str, params: dict) -> dict[str, Any]:
        """GET a path under the rate limiter and decode its JSON body."""
        add_genius_breadcrumb(operation, {"path": path, **params})

        async with get_semaphore(self.max_concurrent):
            response = await self._get_with_retry(path, params)

        return self._decode(response)

    async def _get_with_retry(self, path: str, params: dict) -> httpx.Response:
        """Send a GET, retrying timeouts and connection failures with backoff.

        HTTP error responses are returned as-is; they are never retried.
        """
        rate_limiter = get_rate_limiter(self.rate_limit)
        delay = self.retry_interval
        attempt = 0

        while True:
            await rate_limiter.acquire()
            start = time.perf_counter()
            try:
                response = await self._client.get(path, params=params)
            except RETRYABLE_ERRORS as e:
                record_api_time((time.perf_counter() - start) * 1000)
                if attempt < self.max_retries:
                    attempt += 1
                    logger.warning(
                        f"Genius request {path} failed ({type(e).__name__}), retrying in "
                        f"{delay}s (attempt {attempt + 1}/{self.max_retries + 1})"
                    )
                    await asyncio.sleep(delay)
                    delay *= self.backoff_factor
                    continue

                logger.error(f"Genius request {path} failed after {attempt + 1} attempts: {e!r}")
                add_genius_breadcrumb("retries_exhausted", {"path": path}, level="error")
                # A connection that never opened is a connection failure, not a slow answer.
                if isinstance(e, httpx.TimeoutException) and not isinstance(
                    e, httpx.ConnectTimeout
                ):
                    raise UpstreamTimeoutError(
                        f"Request timed out after {self.timeout:g} seconds"
                    ) from e
                raise UpstreamUnavailableError("Unable to connect to Genius API") from e
            except httpx.RequestError as e:
                logger.error(f"Genius request {path} failed: {e!r}")
                raise UpstreamUnavailableError("Unable to connect to Genius API") from e

            record_api_time((time.perf_counter() - start) * 1000)
            record_api_call()
            return response

    def _decode(self, response: httpx.Response) -> dict[str, Any]:
        """Map the HTTP status to a typed error, or return the JSON object body."""
        status = response.status_code

        if status == 401:
            raise UpstreamAuthError("Invalid API credentials")
        if status == 429:
            logger.warning("Genius API rate limit exceeded")
            raise UpstreamThrottledError("Rate limit exceeded")
        if status >= 500:
            logger.error(f"Genius server error: {status}")
            raise UpstreamUnavailableError("Genius API temporarily unavailable")
        if not response.is_success:
            logger.warning(f"Genius API request failed: {status}")
            raise UpstreamClientError(status)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Failed to parse Genius API response: {e}")
            raise UpstreamFormatError("Invalid response from Genius API") from e

        if not isinstance(data, dict):
            logger.error(f"Unexpected Genius API payload type: {type(data).__name__}")
            raise UpstreamFormatError("Invalid response from Genius API")

        return data
