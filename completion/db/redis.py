"""Redis connection management.

Mirrors engine.py: with REDIS_URL set a shared client is created, without
it ``redis_pool`` is None and the task queue falls back to memory.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from completion.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Verify the connection on startup and close the pool on shutdown.

    An unreachable Redis is logged but does not stop the app; enqueueing
    notifications will fail and be counted instead.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured, task queue is in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
