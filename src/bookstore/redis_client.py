"""
Centralized Redis Client Management.

Provides singleton Redis client with connection pooling for the session store.
"""

from collections.abc import AsyncGenerator
from typing import Any

import structlog
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from bookstore.settings import settings

logger = structlog.get_logger(__name__)

type RedisClientType = Redis


class RedisClientManager:
    """
    Singleton Redis client manager with connection pooling.

    Features:
    - Connection pooling for performance
    - Health checking
    - Graceful shutdown
    """

    _instance: "RedisClientManager | None" = None
    _pool: ConnectionPool | None = None
    _client: RedisClientType | None = None

    def __new__(cls) -> "RedisClientManager":
        """Ensure singleton instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(
        self,
        url: str | None = None,
        max_connections: int | None = None,
        socket_timeout: float | None = None,
        socket_connect_timeout: float | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize Redis connection pool.

        Args:
            url: Redis URL (defaults to settings.redis.session_url)
            max_connections: Maximum pool connections
            socket_timeout: Socket timeout in seconds
            socket_connect_timeout: Socket connect timeout in seconds
            **kwargs: Additional Redis connection parameters
        """
        if self._pool is not None:
            logger.warning("redis.already_initialized")
            return

        url = url or settings.redis.session_url

        try:
            self._pool = ConnectionPool.from_url(
                url,
                decode_responses=True,
                max_connections=max_connections or settings.redis.max_connections,
                socket_timeout=socket_timeout or settings.redis.socket_timeout,
                socket_connect_timeout=socket_connect_timeout
                or settings.redis.socket_connect_timeout,
                **kwargs,
            )
            self._client = Redis(connection_pool=self._pool)

            # Test connection
            await self._client.ping()

            logger.info("redis.initialized", max_connections=self._pool.max_connections)

        except RedisError as e:
            logger.error("redis.initialization_failed", error=str(e))
            await self.close()
            raise

    async def close(self) -> None:
        """Close Redis connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None

        if self._pool:
            await self._pool.disconnect()
            self._pool = None

        logger.info("redis.closed")

    def get_client(self) -> RedisClientType:
        """
        Get Redis client instance.

        Raises:
            RuntimeError: If client not initialized
        """
        if self._client is None:
            raise RuntimeError("Redis client not initialized. Call initialize() first.")
        return self._client

    async def health_check(self) -> dict[str, Any]:
        """Perform Redis health check."""
        if self._client is None:
            return {
                "status": "unhealthy",
                "message": "Redis client not initialized",
            }

        try:
            await self._client.ping()
            return {"status": "healthy"}
        except RedisError as e:
            logger.error("redis.health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e),
            }


# Global Redis client manager instance
redis_manager = RedisClientManager()


async def get_redis_client() -> AsyncGenerator[RedisClientType]:
    """FastAPI dependency for Redis client."""
    yield redis_manager.get_client()


async def init_redis() -> None:
    """
    Initialize Redis client on application startup.

    Should be called in FastAPI lifespan.
    """
    try:
        await redis_manager.initialize()
        logger.info("redis.startup_complete")
    except Exception as e:
        logger.error("redis.startup_failed", error=str(e))
        raise RuntimeError("Redis initialization failed") from e


async def shutdown_redis() -> None:
    """Close Redis connections on application shutdown."""
    await redis_manager.close()
    logger.info("redis.shutdown_complete")
