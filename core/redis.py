"""
Redis connection management.

Provides an async Redis client with connection pooling. The client is owned
by whoever creates it (the application lifespan in production) rather than
stored in module state.
"""

import logging
import time
from typing import Optional

from redis.asyncio import Redis, ConnectionPool

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


async def create_redis(settings: Optional[Settings] = None) -> Redis:
    """
    Create a pooled Redis client and verify the connection.

    Should be called during application startup.
    """
    settings = settings or get_settings()

    pool = ConnectionPool.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        decode_responses=True,
    )
    client = Redis(connection_pool=pool)

    try:
        await client.ping()
        logger.info("Redis connection established successfully")
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")
        await pool.disconnect()
        raise

    return client


async def close_redis(client: Optional[Redis]) -> None:
    """
    Close a Redis client and its connection pool.

    Should be called during application shutdown.
    """
    if client is None:
        return
    await client.aclose()
    await client.connection_pool.disconnect()
    logger.info("Redis connection closed")


class RedisHealthCheck:
    """Redis health check utility."""

    @staticmethod
    async def check(client: Optional[Redis]) -> dict:
        """
        Check Redis health status.

        Returns:
            Dictionary with health status and latency
        """
        if client is None:
            return {
                "status": "not_initialized",
                "latency_ms": None,
            }

        try:
            start = time.perf_counter()
            await client.ping()
            latency_ms = (time.perf_counter() - start) * 1000

            info = await client.info("server")

            return {
                "status": "healthy",
                "latency_ms": round(latency_ms, 2),
                "version": info.get("redis_version", "unknown"),
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "error": str(e),
                "latency_ms": None,
            }
