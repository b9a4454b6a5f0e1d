"""Repository and service wiring for the API and the worker.

Each request (or worker task) runs in one unit of work.  With
DATABASE_URL configured that is one session, committed on success and
rolled back on error; otherwise the module-level in-memory repositories
below are shared by everyone and tests seed and reset them directly.

Completion events raised during the unit of work are buffered and handed
to ``notifier`` only after the commit succeeded.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from completion.db.engine import async_session_factory, session_scope
from completion.repos.completion_repo import CompletionRepo, InMemoryCompletionRepo
from completion.repos.course_repo import CourseRepo, InMemoryCourseRepo
from completion.repos.criteria_repo import CriteriaRepo, InMemoryCriteriaRepo
from completion.repos.enrolment_repo import EnrolmentRepo, InMemoryEnrolmentRepo
from completion.repos.pg_completion_repo import PgCompletionRepo
from completion.repos.pg_course_repo import PgCourseRepo
from completion.repos.pg_criteria_repo import PgCriteriaRepo
from completion.repos.pg_enrolment_repo import PgEnrolmentRepo
from completion.services.completion_service import CompletionService
from completion.services.notifications import (
    Notifier,
    PendingNotifier,
    TaskQueueNotifier,
)
from completion.services.report import CompletionReportService
from completion.services.task_queue import task_queue

logger = logging.getLogger(__name__)

completion_repo = InMemoryCompletionRepo()
course_repo = InMemoryCourseRepo()
enrolment_repo = InMemoryEnrolmentRepo()
criteria_repo = InMemoryCriteriaRepo()

notifier: Notifier = TaskQueueNotifier(task_queue)


@dataclass(frozen=True, slots=True)
class Repos:
    completions: CompletionRepo
    courses: CourseRepo
    enrolments: EnrolmentRepo
    criteria: CriteriaRepo


@dataclass(frozen=True, slots=True)
class UnitOfWork:
    repos: Repos
    pending: PendingNotifier

    def completion_service(self) -> CompletionService:
        """A fresh service (and settings cache) bound to this unit of work."""
        return CompletionService(
            completions=self.repos.completions,
            courses=self.repos.courses,
            enrolments=self.repos.enrolments,
            criteria=self.repos.criteria,
            notifier=self.pending,
        )


def get_repos(session: AsyncSession | None) -> Repos:
    if session is None:
        return Repos(
            completions=completion_repo,
            courses=course_repo,
            enrolments=enrolment_repo,
            criteria=criteria_repo,
        )
    return Repos(
        completions=PgCompletionRepo(session),
        courses=PgCourseRepo(session),
        enrolments=PgEnrolmentRepo(session),
        criteria=PgCriteriaRepo(session),
    )


@asynccontextmanager
async def open_unit_of_work() -> AsyncIterator[UnitOfWork]:
    pending = PendingNotifier()
    try:
        if async_session_factory is None:
            yield UnitOfWork(repos=get_repos(None), pending=pending)
        else:
            async with session_scope() as session:
                yield UnitOfWork(repos=get_repos(session), pending=pending)
    except Exception:
        if pending.events:
            logger.warning(
                "Dropped %d course_completed event(s) from a failed unit of work",
                len(pending.events),
            )
        pending.discard()
        raise
    await pending.flush(notifier)


async def get_unit_of_work() -> AsyncGenerator[UnitOfWork, None]:
    async with open_unit_of_work() as uow:
        yield uow


UoW = Annotated[UnitOfWork, Depends(get_unit_of_work)]


def get_completion_service(uow: UoW) -> CompletionService:
    return uow.completion_service()


def get_report_service(uow: UoW) -> CompletionReportService:
    return CompletionReportService(
        completions=uow.repos.completions,
        courses=uow.repos.courses,
        enrolments=uow.repos.enrolments,
        criteria=uow.repos.criteria,
    )
