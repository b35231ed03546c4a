"""Cache backends for short link lookups."""

from shortlink.cache.factory import create_cache
from shortlink.cache.strategies import (
    CacheError,
    InMemoryURLCache,
    NullURLCache,
    RedisURLCache,
    URLCache,
)

__all__ = [
    "create_cache",
    "CacheError",
    "InMemoryURLCache",
    "NullURLCache",
    "RedisURLCache",
    "URLCache",
]
