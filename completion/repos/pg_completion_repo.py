"""PostgreSQL implementation of CompletionRepo."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from completion.db.tables import CourseCompletionRow
from completion.models.completion import CompletionRecord

logger = logging.getLogger(__name__)


class PgCompletionRepo:
    """Satisfies the CompletionRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: int, course_id: int) -> CompletionRecord | None:
        stmt = select(CourseCompletionRow).where(
            CourseCompletionRow.user_id == user_id,
            CourseCompletionRow.course_id == course_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_record(row)

    async def insert(self, record: CompletionRecord) -> bool:
        row = CourseCompletionRow(
            user_id=record.user_id,
            course_id=record.course_id,
            time_enrolled=record.time_enrolled or 0,
            time_started=record.time_started,
            time_completed=record.time_completed,
            reaggregate=record.reaggregate,
            version=0,
        )
        try:
            # savepoint so a duplicate pair doesn't poison the request session
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError:
            logger.warning(
                "Completion record already exists user=%s course=%s",
                record.user_id,
                record.course_id,
            )
            return False
        record.id = row.id
        record.version = 0
        return True

    async def update(self, record: CompletionRecord) -> bool:
        stmt = (
            update(CourseCompletionRow)
            .where(
                CourseCompletionRow.id == record.id,
                CourseCompletionRow.version == record.version,
            )
            .values(
                time_enrolled=record.time_enrolled or 0,
                time_started=record.time_started,
                time_completed=record.time_completed,
                reaggregate=record.reaggregate,
                version=record.version + 1,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return False
        record.version += 1
        return True

    async def user_ids_for_course(self, course_id: int) -> set[int]:
        stmt = select(CourseCompletionRow.user_id).where(
            CourseCompletionRow.course_id == course_id
        )
        return set((await self._session.execute(stmt)).scalars().all())

    async def list_pending(self, now: int, limit: int) -> list[CompletionRecord]:
        stmt = (
            select(CourseCompletionRow)
            .where(
                CourseCompletionRow.reaggregate > 0,
                CourseCompletionRow.reaggregate <= now,
            )
            .order_by(CourseCompletionRow.reaggregate, CourseCompletionRow.id)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_record(r) for r in rows]


def _row_to_record(row: CourseCompletionRow) -> CompletionRecord:
    return CompletionRecord(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        time_enrolled=row.time_enrolled or None,
        time_started=row.time_started or 0,
        time_completed=row.time_completed or None,
        reaggregate=row.reaggregate or 0,
        version=row.version,
    )
