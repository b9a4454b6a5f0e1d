"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from completion.db.tables import AggregationMethodRow, CourseRow
from completion.models.completion import AggregationMethod
from completion.models.course import Course


class PgCourseRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, course_id: int) -> Course | None:
        # the overall method is the aggregation row with no criterion type
        stmt = (
            select(CourseRow, AggregationMethodRow.method)
            .outerjoin(
                AggregationMethodRow,
                and_(
                    AggregationMethodRow.course_id == CourseRow.id,
                    AggregationMethodRow.criterion_type.is_(None),
                ),
            )
            .where(CourseRow.id == course_id)
        )
        result = (await self._session.execute(stmt)).first()
        if result is None:
            return None
        row, method = result
        return Course(
            id=row.id,
            fullname=row.fullname,
            enable_completion=row.enable_completion,
            completion_start_on_enrol=row.completion_start_on_enrol,
            aggregation_method=method or AggregationMethod.ALL,
        )
