"""Redis store handle for the ranking sorted sets.

Handles:
- Opening a client from settings and validating connectivity
- Closing it again

The handle is owned by whoever opened it (API lifespan, scripts, tests) and is
passed explicitly into RankingAggregator. There is no module-level client.

Timeouts live on the client (socket_timeout / socket_connect_timeout). The
ranking services add no retry or timeout policy of their own.
"""

import logging

import redis.asyncio as redis

from leaderboard.settings import get_settings

logger = logging.getLogger("uvicorn.error")


async def create_redis(url: str | None = None) -> redis.Redis:
    """Open a Redis client and ping it.

    Args:
        url: Redis URL. Defaults to settings.redis_url.

    Returns:
        Connected client with decoded (str) responses.
    """
    settings = get_settings()
    client = redis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=settings.redis_socket_timeout,
        socket_timeout=settings.redis_socket_timeout,
    )
    try:
        # Validate connectivity early (especially for `rediss://` in production).
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    logger.info("Redis connected")
    return client


async def close_redis(client: redis.Redis | None) -> None:
    """Close a Redis client opened by create_redis()."""
    if client is not None:
        await client.aclose()
        logger.info("Redis connection closed")
