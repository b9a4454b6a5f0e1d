"""PostgreSQL implementation of CriteriaRepo."""

from __future__ import annotations

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from completion.db.tables import (
    AggregationMethodRow,
    CompletionCriteriaRow,
    CriteriaCompletionRow,
)
from completion.models.completion import CriterionCompletion


class PgCriteriaRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def completions_for_user(
        self, user_id: int, course_id: int
    ) -> list[CriterionCompletion]:
        cr = CompletionCriteriaRow
        co = CriteriaCompletionRow
        agg = AggregationMethodRow
        stmt = (
            select(
                cr.id,
                cr.criterion_type,
                agg.method,
                co.time_completed,
                func.coalesce(cr.module_instance, cr.course_instance),
                cr.title,
            )
            .outerjoin(co, and_(co.criteria_id == cr.id, co.user_id == user_id))
            .outerjoin(
                agg,
                and_(
                    agg.criterion_type == cr.criterion_type,
                    agg.course_id == cr.course_id,
                ),
            )
            .where(cr.course_id == course_id)
            .order_by(cr.id)
        )
        rows = (await self._session.execute(stmt)).all()
        return [
            CriterionCompletion(
                criterion_id=criterion_id,
                criterion_type=criterion_type,
                aggregation_method=method,
                time_completed=time_completed or None,
                instance_id=instance_id,
                title=title or "",
            )
            for criterion_id, criterion_type, method, time_completed, instance_id, title in rows
        ]
