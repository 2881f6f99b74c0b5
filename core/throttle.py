"""Per-client inbound throttling.

Each (rule, client IP) pair gets its own leaky-bucket limiter. Requests that
would have to wait for capacity are rejected instead of queued, so an
abusive client gets a 429 immediately and never reaches the lookup core.
"""

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass

from aiolimiter import AsyncLimiter
from cachetools import TTLCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

THROTTLE_PERIOD = 60
THROTTLED_MESSAGE = "Rate limit exceeded. Please try again later."


@dataclass(frozen=True)
class ThrottleRule:
    """Allow ``limit`` requests per ``period`` seconds for paths matching ``pattern``."""

    name: str
    pattern: re.Pattern
    limit: int
    period: int = THROTTLE_PERIOD

    def applies_to(self, path: str) -> bool:
        return bool(self.pattern.match(path))


def default_rules(api_limit: int, search_limit: int) -> list[ThrottleRule]:
    """All API requests, plus a stricter budget for the song search endpoint."""
    return [
        ThrottleRule("api requests per ip", re.compile(r"^/api/"), api_limit),
        ThrottleRule(
            "song searches per ip", re.compile(r"^/api/v1/artists/.+/songs"), search_limit
        ),
    ]


class ClientThrottle:
    """Tracks limiters for recently seen clients in a bounded cache."""

    def __init__(
        self,
        rules: list[ThrottleRule],
        max_clients: int = 10000,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.rules = rules
        # Entries expire a couple of periods after the client's last request;
        # by then an idle client's bucket has fully drained anyway.
        self._limiters: TTLCache = TTLCache(
            maxsize=max_clients,
            ttl=max((r.period for r in rules), default=THROTTLE_PERIOD) * 2,
            timer=timer,
        )

    def _limiter(self, rule: ThrottleRule, client: str) -> AsyncLimiter:
        key = (rule.name, client)
        limiter = self._limiters.get(key)
        if limiter is None:
            limiter = AsyncLimiter(rule.limit, rule.period)
        # Re-inserting restarts the TTL, so a busy client never gets a fresh bucket.
        self._limiters[key] = limiter
        return limiter

    async def allow(self, client: str, path: str) -> bool:
        """Consume one unit from every rule matching the path.

        Returns:
            False (consuming nothing) if any matching rule is out of capacity
        """
        limiters = [self._limiter(rule, client) for rule in self.rules if rule.applies_to(path)]
        if not all(limiter.has_capacity() for limiter in limiters):
            logger.warning(f"Throttled {client} on {path}")
            return False

        for limiter in limiters:
            await limiter.acquire()
        return True

    def reset(self) -> None:
        """Forget all client budgets (used by tests)."""
        self._limiters.clear()
