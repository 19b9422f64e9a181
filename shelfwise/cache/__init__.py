"""Cache package for Redis-based caching."""

from shelfwise.cache.redis_client import CacheService, create_redis_client

__all__ = ["CacheService", "create_redis_client"]
