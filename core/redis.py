"""
Redis client for rate limit windows.

Request timestamps live in Redis so that every API process sees the same
window. The timestamps come from each process's own clock, which is why the
health check also reports how far this process drifts from the Redis server.
"""

import logging
import time
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import get_settings

logger = logging.getLogger(__name__)

_client: Optional[Redis] = None


async def init_redis(redis_url: Optional[str] = None) -> Redis:
    """
    Connect to Redis during application startup.

    Raises:
        RedisError: If the server is unreachable. Requests cannot be rate
            limited without it, so startup should fail.
    """
    global _client

    settings = get_settings()
    client = Redis.from_url(
        redis_url or settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        decode_responses=True,
    )

    try:
        await client.ping()
    except RedisError as e:
        logger.error(f"Failed to connect to Redis: {e}")
        await client.aclose()
        raise

    _client = client
    logger.info("Redis connection established")
    return _client


async def close_redis() -> None:
    """Close the client and its pool (application shutdown)."""
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("Redis connection closed")


async def get_redis() -> Redis:
    """
    FastAPI dependency returning the shared client.

    Raises:
        RuntimeError: If init_redis() has not run
    """
    if _client is None:
        raise RuntimeError("Redis is not initialized. Call init_redis() first.")
    return _client


async def check_redis() -> dict:
    """
    Ping Redis and measure clock drift against the server.

    Returns:
        ``status`` plus ``latency_ms`` and ``clock_skew_ms`` when reachable
    """
    if _client is None:
        return {"status": "not_initialized"}

    try:
        start = time.time()
        seconds, micros = await _client.time()
        end = time.time()
    except RedisError as e:
        return {"status": "unhealthy", "error": str(e)}

    midpoint = (start + end) / 2
    server_now = seconds + micros / 1_000_000
    return {
        "status": "healthy",
        "latency_ms": round((end - start) * 1000, 2),
        "clock_skew_ms": round((midpoint - server_now) * 1000, 2),
    }
