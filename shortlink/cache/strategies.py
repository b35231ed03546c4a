"""
Cache strategies for short link lookups.

The service layer talks to the ``URLCache`` interface only, so the Redis
backend can be swapped for the in-memory or null backends in tests and in
environments without Redis.
"""

import json
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Dict, Optional, Tuple

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from shortlink.models.url import CachedURL


class CacheError(Exception):
    """Raised when the cache backend cannot serve a request."""
    pass


def _ttl_seconds(ttl: timedelta) -> int:
    """Whole seconds for an expiry, never below one."""
    return max(1, int(ttl.total_seconds()))


class URLCache(ABC):
    """
    Abstract base class for short link caches.

    Entries are the ``CachedURL`` projection of a record and carry their own
    TTL. A miss never means that the link does not exist.
    """

    @abstractmethod
    async def get(self, slug: str) -> Optional[CachedURL]:
        """
        Get a cached link.

        Returns:
            The cached projection or None on a miss

        Raises:
            CacheError: If the backend is unavailable
        """

    @abstractmethod
    async def set(self, slug: str, cached: CachedURL, ttl: timedelta) -> None:
        """
        Store a link projection that expires after ``ttl``.

        Raises:
            CacheError: If the backend is unavailable
        """

    @abstractmethod
    async def delete(self, slug: str) -> None:
        """
        Drop a cached link.

        Raises:
            CacheError: If the backend is unavailable
        """

    async def close(self) -> None:
        """Release backend resources."""


class RedisURLCache(URLCache):
    """Redis cache storing JSON payloads under ``url:{slug}``."""

    def __init__(self, redis_client: Redis, key_prefix: str = "url:"):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def cache_key(self, slug: str) -> str:
        return f"{self.key_prefix}{slug}"

    async def get(self, slug: str) -> Optional[CachedURL]:
        try:
            value = await self.redis.get(self.cache_key(slug))
        except (RedisError, OSError) as e:
            raise CacheError(f"getting from redis: {e}") from e

        if value is None:
            return None

        try:
            return CachedURL.model_validate_json(value)
        except ValidationError as e:
            raise CacheError(f"decoding cached url: {e}") from e

    async def set(self, slug: str, cached: CachedURL, ttl: timedelta) -> None:
        try:
            await self.redis.set(
                self.cache_key(slug),
                cached.model_dump_json(exclude_none=True),
                ex=_ttl_seconds(ttl),
            )
        except (RedisError, OSError) as e:
            raise CacheError(f"setting in redis: {e}") from e

    async def delete(self, slug: str) -> None:
        try:
            await self.redis.delete(self.cache_key(slug))
        except (RedisError, OSError) as e:
            raise CacheError(f"deleting from redis: {e}") from e


class InMemoryURLCache(URLCache):
    """
    In-process cache with per-entry expiry.

    Entries are stored as JSON strings, like in Redis. An expired entry is
    dropped when it is read, and writes sweep out all expired entries each
    time the map has doubled since the last sweep.
    """

    MIN_PURGE_SIZE = 1024

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._purge_at = self.MIN_PURGE_SIZE

    async def get(self, slug: str) -> Optional[CachedURL]:
        entry = self._entries.get(slug)
        if entry is None:
            return None
        value, deadline = entry
        if self._clock() >= deadline:
            del self._entries[slug]
            return None
        return CachedURL(**json.loads(value))

    async def set(self, slug: str, cached: CachedURL, ttl: timedelta) -> None:
        deadline = self._clock() + _ttl_seconds(ttl)
        self._entries[slug] = (cached.model_dump_json(), deadline)
        if len(self._entries) >= self._purge_at:
            self.purge_expired()

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [slug for slug, (_, deadline) in self._entries.items() if now >= deadline]
        for slug in expired:
            del self._entries[slug]
        self._purge_at = max(self.MIN_PURGE_SIZE, 2 * len(self._entries))
        return len(expired)

    async def delete(self, slug: str) -> None:
        self._entries.pop(slug, None)

    def __contains__(self, slug: str) -> bool:
        entry = self._entries.get(slug)
        return entry is not None and self._clock() < entry[1]

    def __len__(self) -> int:
        return len(self._entries)


class NullURLCache(URLCache):
    """Cache that stores nothing; every lookup goes to the database."""

    async def get(self, slug: str) -> Optional[CachedURL]:
        return None

    async def set(self, slug: str, cached: CachedURL, ttl: timedelta) -> None:
        return None

    async def delete(self, slug: str) -> None:
        return None
