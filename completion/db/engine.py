"""Async SQLAlchemy engine and session factory.

With DATABASE_URL set, this module provides an asyncpg-backed engine, a
session factory for request-scoped sessions and a lifespan hook.  Without
it, every export is None and the API wires in-memory repositories.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from completion.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all table models."""


if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,
        pool_size=5,
        max_overflow=10,
    )
    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
else:
    engine = None
    async_session_factory = None


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """One unit of work: commits on success, rolls back on exception."""
    if async_session_factory is None:
        raise RuntimeError(
            "DATABASE_URL is not configured, cannot create database session"
        )
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def lifespan_db():
    if engine is None:
        logger.info("No DATABASE_URL configured, using in-memory repositories")
        yield
        return

    logger.info("Database engine created: %s", engine.url)
    yield
    await engine.dispose()
    logger.info("Database engine disposed")
