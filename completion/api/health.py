"""Liveness and readiness endpoints.

/health reports per-dependency status and always answers 200; the body's
``status`` says whether the service is degraded.  /ready answers 503 when
a configured database cannot be reached, taking the instance out of the
load balancer without restarting it.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from completion.db.engine import engine
from completion.db.redis import redis_pool
from completion.services.task_queue import COURSE_COMPLETED_QUEUE, task_queue

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _database_ok() -> bool:
    if engine is None:
        return True
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database health check failed")
        return False
    return True


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except Exception:
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    if engine is not None:
        if await _database_ok():
            checks["database"] = "ok"
        else:
            checks["database"] = "degraded"
            overall = "degraded"
    else:
        checks["database"] = "not_configured"

    queues: dict[str, int] = {}
    if checks["redis"] != "degraded":
        queues[COURSE_COMPLETED_QUEUE] = await task_queue.queue_length(
            COURSE_COMPLETED_QUEUE
        )

    return {"status": overall, "checks": checks, "queues": queues}


@router.get("/ready")
async def ready() -> Response:
    if not await _database_ok():
        return Response(status_code=503)
    return Response(status_code=200)
