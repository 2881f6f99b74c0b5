"""Outbound rate limiting for Genius API requests.

Implements:
- Semaphore for concurrent request limiting
- Token bucket rate limiter for requests per minute
- Reset function for testing
"""

import asyncio
import logging

from aiolimiter import AsyncLimiter

logger = logging.getLogger(__name__)

# Lazily-initialized rate limiting primitives, stored per event loop
_rate_limiters: dict[asyncio.AbstractEventLoop, AsyncLimiter] = {}
_semaphores: dict[asyncio.AbstractEventLoop, asyncio.Semaphore] = {}


def get_rate_limiter(requests_per_minute: int) -> AsyncLimiter:
    """Get or create the rate limiter for the current event loop.

    Args:
        requests_per_minute: Limit used when the limiter is first created

    Returns:
        AsyncLimiter configured for requests per minute
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return AsyncLimiter(requests_per_minute, 60)

    if loop not in _rate_limiters:
        _rate_limiters[loop] = AsyncLimiter(requests_per_minute, 60)
        logger.debug(f"Created Genius rate limiter: {requests_per_minute} req/min")
    return _rate_limiters[loop]


def get_semaphore(max_concurrent: int) -> asyncio.Semaphore:
    """Get or create the concurrency semaphore for the current event loop.

    Args:
        max_concurrent: Limit used when the semaphore is first created

    Returns:
        asyncio.Semaphore for limiting concurrent requests
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.Semaphore(max_concurrent)

    if loop not in _semaphores:
        _semaphores[loop] = asyncio.Semaphore(max_concurrent)
        logger.debug(f"Created Genius semaphore: {max_concurrent} concurrent")
    return _semaphores[loop]


def reset_rate_limiting() -> None:
    """Reset rate limiting state for testing."""
    _rate_limiters.clear()
    _semaphores.clear()
    logger.debug("Reset rate limiting state")
