"""
Redis client management module.

This module provides a Redis client manager with connection pooling
and bounded socket timeouts for async Redis operations.
"""

from typing import Optional

import redis.asyncio as redis
from loguru import logger
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from shortlink.core.config import Settings


class RedisClientManager:
    """
    Async Redis client manager with connection pooling.

    One instance is created by the application factory and shared by the
    cache and the health checks.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._connection_pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None

    def _initialize(self) -> None:
        """Create the connection pool."""
        self._connection_pool = redis.ConnectionPool.from_url(
            self.settings.REDIS_URI,
            max_connections=self.settings.REDIS_MAX_CONNECTIONS,
            socket_timeout=self.settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=self.settings.REDIS_SOCKET_TIMEOUT,
            decode_responses=True,
        )
        logger.debug("Redis connection pool created", uri=self.settings.REDIS_URI)

    def get_client(self) -> redis.Redis:
        """
        Get a Redis client instance from the connection pool.

        Returns:
            redis.Redis: Redis client instance
        """
        if self._client is None:
            if self._connection_pool is None:
                self._initialize()
            self._client = redis.Redis(connection_pool=self._connection_pool)
        return self._client

    async def ping(self) -> bool:
        """
        Test the Redis connection with a ping command.

        Returns:
            bool: True if successful, False otherwise
        """
        try:
            return bool(await self.get_client().ping())
        except (RedisError, OSError) as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the Redis client and connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

        if self._connection_pool is not None:
            await self._connection_pool.disconnect()
            self._connection_pool = None

        logger.debug("Redis connections closed")
