"""Rate limiting backends with Redis failover to memory."""

import asyncio
from typing import Optional

from loguru import logger
from ratelimit import Rule
from ratelimit.backends.base import BaseBackend
from ratelimit.backends.redis import RedisBackend
from ratelimit.backends.simple import MemoryBackend
from redis.asyncio import StrictRedis
from redis.exceptions import RedisError

from shortlink.core.config import Settings, settings as default_settings


class ResilientRateLimitBackend(BaseBackend):
    """Rate limit backend using Redis while it is reachable, memory otherwise.

    Counters in the memory backend are per process, so limits are only
    approximate across replicas while Redis is down.
    """

    def __init__(self, redis_uri: str, settings: Optional[Settings] = None, use_redis: bool = True):
        settings = settings or default_settings
        self.redis_uri = redis_uri
        self.use_redis = use_redis
        self.redis_client: Optional[StrictRedis] = None
        self.redis_backend: Optional[RedisBackend] = None
        self.memory_backend = MemoryBackend()
        self.using_redis = False
        self.last_redis_check = 0.0
        self.redis_check_interval = settings.RATE_LIMIT_REDIS_CHECK_INTERVAL
        self.redis_errors = 0
        self.max_redis_errors = settings.RATE_LIMIT_REDIS_MAX_ERRORS
        # Only guards backend switching
        self._state_lock = asyncio.Lock()

    @property
    def backend_name(self) -> str:
        return "redis" if self.using_redis else "memory"

    async def initialize(self) -> bool:
        """Connect to Redis, or stay on the memory backend.

        Returns:
            bool: True if the Redis backend is in use
        """
        if not self.use_redis:
            logger.info("Rate limiting uses the in-memory backend")
            return False

        async with self._state_lock:
            return await self._connect()

    async def _connect(self) -> bool:
        try:
            logger.info("Connecting to Redis rate limiting backend", uri=self.redis_uri)
            if self.redis_client is None:
                self.redis_client = StrictRedis.from_url(self.redis_uri)
            await self.redis_client.ping()
        except (RedisError, OSError) as e:
            logger.warning("Redis connection failed, using memory backend", error=str(e))
            self.using_redis = False
            return False

        if self.redis_backend is None:
            self.redis_backend = RedisBackend(self.redis_client)
        self.using_redis = True
        self.redis_errors = 0
        logger.info("Redis rate limiting backend initialized successfully")
        return True

    async def check_redis_health(self) -> bool:
        """Re-check Redis at most once per interval and switch backends if needed.

        Returns:
            bool: True if the Redis backend is in use
        """
        if not self.use_redis:
            return False

        current_time = asyncio.get_running_loop().time()
        if current_time - self.last_redis_check < self.redis_check_interval:
            return self.using_redis

        async with self._state_lock:
            # Another task may have checked while we waited
            if current_time - self.last_redis_check < self.redis_check_interval:
                return self.using_redis
            self.last_redis_check = current_time

            if self.using_redis and self.redis_client is not None:
                try:
                    await self.redis_client.ping()
                    return True
                except (RedisError, OSError) as e:
                    logger.warning("Redis connection lost, switching to memory backend", error=str(e))
                    self.using_redis = False
                    return False

            logger.info("Attempting to reconnect to Redis")
            return await self._connect()

    async def _handle_redis_error(self, e: Exception) -> None:
        async with self._state_lock:
            self.redis_errors += 1
            if self.redis_errors >= self.max_redis_errors:
                logger.warning(
                    "Redis error threshold reached, switching to memory backend",
                    errors=self.redis_errors,
                    max_errors=self.max_redis_errors,
                )
                self.using_redis = False
            else:
                logger.warning(
                    "Redis operation failed",
                    error=str(e),
                    errors=f"{self.redis_errors}/{self.max_redis_errors}",
                )

    async def _with_fallback(self, redis_func, memory_func):
        """Run ``redis_func``, or ``memory_func`` when Redis is unavailable or fails."""
        await self.check_redis_health()

        if self.using_redis and self.redis_backend is not None:
            try:
                return await redis_func()
            except (RedisError, OSError) as e:
                await self._handle_redis_error(e)
                return await memory_func()
        return await memory_func()

    async def retry_after(self, path: str, user: str, rule: Rule) -> int:
        """Seconds the user must wait, or 0 if the request is allowed."""
        result = await self._with_fallback(
            lambda: self.redis_backend.retry_after(path, user, rule),
            lambda: self.memory_backend.retry_after(path, user, rule),
        )

        if result:
            logger.info(
                "Rate limit exceeded",
                user=user,
                zone=path,
                retry_seconds=result,
                backend=self.backend_name,
            )
        return result

    async def close(self) -> None:
        """Close the Redis connection if one was opened."""
        async with self._state_lock:
            if self.redis_client is not None:
                try:
                    await self.redis_client.aclose()
                    logger.info("Redis rate limiting connection closed")
                except (RedisError, OSError) as e:
                    logger.error("Error closing Redis connection", error=str(e))
                self.redis_client = None
                self.redis_backend = None
            self.using_redis = False
