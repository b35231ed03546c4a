"""
Factory for creating cache instances.
"""

from typing import Optional

from loguru import logger

from shortlink.cache.strategies import InMemoryURLCache, NullURLCache, RedisURLCache, URLCache
from shortlink.core.config import CacheBackendType, Settings
from shortlink.core.redis import RedisClientManager


def create_cache(settings: Settings, redis_manager: Optional[RedisClientManager] = None) -> URLCache:
    """
    Build the cache backend selected by ``CACHE_BACKEND``.

    The Redis backend is returned even when Redis is down at startup;
    lookups then fail with CacheError and the service reads the database.

    Args:
        settings: Application settings
        redis_manager: Shared Redis client manager, required for the Redis backend

    Returns:
        A URLCache implementation
    """
    if not settings.CACHE_ENABLED:
        logger.info("Cache disabled, using null cache")
        return NullURLCache()

    backend = settings.CACHE_BACKEND
    if backend == CacheBackendType.REDIS:
        if redis_manager is None:
            raise ValueError("Redis cache backend requires a RedisClientManager")
        logger.info("Using Redis cache", uri=settings.REDIS_URI)
        return RedisURLCache(redis_manager.get_client(), key_prefix=settings.CACHE_KEY_PREFIX)
    if backend == CacheBackendType.MEMORY:
        logger.info("Using in-memory cache")
        return InMemoryURLCache()
    if backend == CacheBackendType.NULL:
        logger.info("Using null cache")
        return NullURLCache()

    raise ValueError(f"Unknown cache backend: {backend}")
