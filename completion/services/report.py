"""Per-user completion status report.

Groups the courses a user is actively enrolled in by status and lists the criteria
for each one.  Activity and prerequisite criteria are collapsed into a
single "n of m" row each; prerequisites go first, activities last.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from completion.models.completion import (
    CompletionRecord,
    CriterionCompletion,
    CriterionType,
)
from completion.models.course import Course
from completion.repos.completion_repo import CompletionRepo
from completion.repos.course_repo import CourseRepo
from completion.repos.criteria_repo import CriteriaRepo
from completion.repos.enrolment_repo import EnrolmentRepo
from completion.services.completion_service import Clock, _now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CriteriaRow:
    title: str
    status: str
    complete: bool


@dataclass(frozen=True, slots=True)
class CourseReport:
    course_id: int
    course_name: str
    rows: list[CriteriaRow]
    time_completed: int | None = None


@dataclass(slots=True)
class UserCompletionReport:
    user_id: int
    complete: list[CourseReport] = field(default_factory=list)
    inprogress: list[CourseReport] = field(default_factory=list)
    notyetstarted: list[CourseReport] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.complete or self.inprogress or self.notyetstarted)


class CompletionReportService:
    def __init__(
        self,
        *,
        completions: CompletionRepo,
        courses: CourseRepo,
        enrolments: EnrolmentRepo,
        criteria: CriteriaRepo,
        clock: Clock = _now,
    ) -> None:
        self._completions = completions
        self._courses = courses
        self._enrolments = enrolments
        self._criteria = criteria
        self._clock = clock

    async def _tracked_courses(
        self, user_id: int, course_id: int | None
    ) -> list[Course]:
        if course_id is not None:
            course_ids = [course_id]
        else:
            course_ids = await self._enrolments.course_ids_for_user(user_id)

        now = self._clock()
        tracked: list[Course] = []
        for cid in course_ids:
            course = await self._courses.get(cid)
            if course is None or not course.enable_completion:
                continue
            windows = await self._enrolments.windows_for_user(user_id, cid)
            if not any(w.is_active(now) for w in windows):
                continue
            tracked.append(course)
        return tracked

    async def build(
        self, user_id: int, course_id: int | None = None
    ) -> UserCompletionReport:
        report = UserCompletionReport(user_id=user_id)

        for course in await self._tracked_courses(user_id, course_id):
            record = await self._completions.get(user_id, course.id)
            if record is None:
                record = CompletionRecord(user_id=user_id, course_id=course.id)
            completions = await self._criteria.completions_for_user(
                user_id, course.id
            )

            rows: list[CriteriaRow] = []
            # keyed by instance so a repeated activity or course counts once
            activities: dict[object, bool] = {}
            prerequisites: dict[object, bool] = {}
            for completion in completions:
                if completion.criterion_type == CriterionType.ACTIVITY:
                    activities[_instance_key(completion)] = completion.is_complete
                elif completion.criterion_type == CriterionType.COURSE:
                    prerequisites[_instance_key(completion)] = completion.is_complete
                else:
                    rows.append(
                        CriteriaRow(
                            title=completion.title,
                            status="Yes" if completion.is_complete else "No",
                            complete=completion.is_complete,
                        )
                    )

            if activities:
                rows.append(
                    _summary_row("Activities completed", list(activities.values()))
                )
            if prerequisites:
                rows.insert(
                    0,
                    _summary_row(
                        "Dependencies completed", list(prerequisites.values())
                    ),
                )

            entry = CourseReport(
                course_id=course.id,
                course_name=course.fullname,
                rows=rows,
                time_completed=record.time_completed,
            )

            any_criteria_complete = any(c.is_complete for c in completions)
            if record.is_complete:
                report.complete.append(entry)
            elif not any_criteria_complete and not record.time_started:
                report.notyetstarted.append(entry)
            else:
                report.inprogress.append(entry)

        if report.is_empty:
            logger.info(
                "No completion data accessible user=%s course=%s",
                user_id,
                course_id,
            )
        return report


def _summary_row(title: str, flags: list[bool]) -> CriteriaRow:
    done = sum(flags)
    return CriteriaRow(
        title=title,
        status=f"{done} of {len(flags)}",
        complete=done == len(flags),
    )


def _instance_key(completion: CriterionCompletion) -> object:
    if completion.instance_id is not None:
        return completion.instance_id
    return ("criterion", completion.criterion_id)
