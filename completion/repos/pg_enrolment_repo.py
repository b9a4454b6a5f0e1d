"""PostgreSQL implementation of EnrolmentRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from completion.db.tables import EnrolRow, UserEnrolmentRow
from completion.models.course import EnrolmentWindow

_ENROL_INSTANCE_ENABLED = 0
_ENROL_USER_ACTIVE = 0


class PgEnrolmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _windows_stmt(self):
        return select(
            UserEnrolmentRow.user_id,
            EnrolRow.course_id,
            UserEnrolmentRow.time_start,
            UserEnrolmentRow.time_end,
            UserEnrolmentRow.status,
            EnrolRow.status,
        ).join(EnrolRow, EnrolRow.id == UserEnrolmentRow.enrol_id)

    async def windows_for_user(
        self, user_id: int, course_id: int
    ) -> list[EnrolmentWindow]:
        stmt = (
            self._windows_stmt()
            .where(
                UserEnrolmentRow.user_id == user_id,
                EnrolRow.course_id == course_id,
            )
            .order_by(UserEnrolmentRow.time_start)
        )
        rows = (await self._session.execute(stmt)).all()
        return [_to_window(r) for r in rows]

    async def windows_for_course(self, course_id: int) -> list[EnrolmentWindow]:
        stmt = (
            self._windows_stmt()
            .where(EnrolRow.course_id == course_id)
            .order_by(UserEnrolmentRow.user_id, UserEnrolmentRow.time_start)
        )
        rows = (await self._session.execute(stmt)).all()
        return [_to_window(r) for r in rows]

    async def course_ids_for_user(self, user_id: int) -> list[int]:
        stmt = (
            select(EnrolRow.course_id)
            .join(UserEnrolmentRow, EnrolRow.id == UserEnrolmentRow.enrol_id)
            .where(UserEnrolmentRow.user_id == user_id)
            .distinct()
            .order_by(EnrolRow.course_id)
        )
        return list((await self._session.execute(stmt)).scalars().all())


def _to_window(row) -> EnrolmentWindow:
    user_id, course_id, time_start, time_end, ue_status, e_status = row
    return EnrolmentWindow(
        user_id=user_id,
        course_id=course_id,
        time_start=time_start or 0,
        time_end=time_end or 0,
        user_active=ue_status == _ENROL_USER_ACTIVE,
        instance_enabled=e_status == _ENROL_INSTANCE_ENABLED,
    )
