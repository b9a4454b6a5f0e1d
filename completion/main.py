from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from completion.api.completions import enrolments_router
from completion.api.completions import router as completions_router
from completion.api.health import router as health_router
from completion.api.metrics_endpoint import router as metrics_router
from completion.api.reports import router as reports_router
from completion.core.config import SETTINGS
from completion.core.logging import setup_logging
from completion.db.engine import lifespan_db
from completion.db.redis import lifespan_redis
from completion.middleware.metrics import MetricsMiddleware
from completion.middleware.request_context import RequestContextMiddleware

setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # nested so shutdown runs in reverse order
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="course-completion",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# last added runs first: RequestContext → Metrics → route
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(completions_router)
app.include_router(enrolments_router)
app.include_router(reports_router)

logger.info(
    "course-completion started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
