"""PostgreSQL cache store shared by every instance of the service.

Entries live in a single key/value table with an absolute expiry time.
Expired rows are never returned and are replaced by the next write to the
same key.
"""

import logging

from core.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)

CACHE_TABLE_DDL = """
    CREATE TABLE IF NOT EXISTS lookup_cache (
        key TEXT PRIMARY KEY,
        value BYTEA NOT NULL,
        expires_at TIMESTAMPTZ NOT NULL
    )
"""


class PostgresCacheStore:
    """Cache store over an asyncpg connection pool."""

    def __init__(self, pool):
        """Initialize the store with a connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    async def ensure_schema(self) -> None:
        """Create the cache table if it does not exist yet.

        Raises:
            CacheUnavailableError: If database is unreachable
        """
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(CACHE_TABLE_DDL)
        except Exception as e:
            logger.error(f"Cache schema setup failed: {e}")
            raise CacheUnavailableError(f"Cache schema setup failed: {e}") from e

    async def is_available(self) -> bool:
        """Check if the cache database is available."""
        try:
            result = await self.pool.fetchval("SELECT 1")
            return bool(result == 1)
        except Exception as e:
            logger.warning(f"Cache health check failed: {e}")
            return False

    async def read(self, key: str) -> bytes | None:
        """Read an unexpired value.

        Raises:
            CacheUnavailableError: If database is unreachable
        """
        try:
            value = await self.pool.fetchval(
                "SELECT value FROM lookup_cache WHERE key = $1 AND expires_at > now()",
                key,
            )
        except Exception as e:
            raise CacheUnavailableError(f"Cache read failed: {e}") from e
        return bytes(value) if value is not None else None

    async def write(self, key: str, value: bytes, ttl: int) -> None:
        """Insert or replace a value expiring ``ttl`` seconds from now.

        Raises:
            CacheUnavailableError: If database is unreachable
        """
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO lookup_cache (key, value, expires_at)
                    VALUES ($1, $2, now() + make_interval(secs => $3))
                    ON CONFLICT (key) DO UPDATE
                    SET value = EXCLUDED.value, expires_at = EXCLUDED.expires_at
                    """,
                    key,
                    value,
                    float(ttl),
                )
        except Exception as e:
            raise CacheUnavailableError(f"Cache write failed: {e}") from e

    async def close(self) -> None:
        """Close the connection pool."""
        await self.pool.close()
