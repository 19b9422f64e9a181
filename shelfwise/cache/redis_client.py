"""Redis-backed cache for computed engine results.

The client is built explicitly and handed to whoever needs it; there is
no process-wide instance.
"""

import redis.asyncio as redis
import structlog

from shelfwise.config import Settings, get_settings

logger = structlog.get_logger(__name__)


def create_redis_client(settings: Settings | None = None) -> redis.Redis:
    """Create an async Redis client with its own connection pool.

    Connects lazily on first command.
    """
    settings = settings or get_settings()
    pool = redis.ConnectionPool.from_url(
        str(settings.redis_url),
        encoding="utf-8",
        decode_responses=True,
        max_connections=10,
    )
    return redis.Redis(connection_pool=pool)


class CacheService:
    """Best-effort key/value cache; every failure degrades to a miss."""

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    async def get(self, key: str) -> str | None:
        """Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        try:
            return await self.redis.get(key)
        except Exception as e:
            logger.warning("cache_get_error", key=key, error=str(e))
            return None

    async def set(
        self,
        key: str,
        value: str,
        ttl: int = 300,
    ) -> bool:
        """Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds (default 5 minutes)

        Returns:
            True if successful, False otherwise
        """
        try:
            await self.redis.setex(key, ttl, value)
            return True
        except Exception as e:
            logger.warning("cache_set_error", key=key, error=str(e))
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern.

        Args:
            pattern: Key pattern (e.g., "trending:*")

        Returns:
            Number of keys deleted
        """
        try:
            keys = []
            async for key in self.redis.scan_iter(match=pattern):
                keys.append(key)

            if keys:
                return await self.redis.delete(*keys)
            return 0
        except Exception as e:
            logger.warning("cache_delete_pattern_error", pattern=pattern, error=str(e))
            return 0

    async def close(self) -> None:
        """Close the underlying client and its pool."""
        await self.redis.aclose()
        logger.info("redis_disconnected")
