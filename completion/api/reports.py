"""User completion report endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from completion.api.dependencies import get_report_service
from completion.services.report import CompletionReportService, CourseReport

router = APIRouter(prefix="/v1/reports/completion", tags=["reports"])


class CriteriaRowOut(BaseModel):
    title: str
    status: str
    complete: bool


class CourseReportOut(BaseModel):
    course_id: int
    course_name: str
    rows: list[CriteriaRowOut]
    time_completed: int | None = None


class UserReportOut(BaseModel):
    user_id: int
    complete: list[CourseReportOut]
    inprogress: list[CourseReportOut]
    notyetstarted: list[CourseReportOut]


def _course_out(entry: CourseReport) -> CourseReportOut:
    return CourseReportOut(
        course_id=entry.course_id,
        course_name=entry.course_name,
        rows=[
            CriteriaRowOut(title=r.title, status=r.status, complete=r.complete)
            for r in entry.rows
        ],
        time_completed=entry.time_completed,
    )


@router.get("/users/{user_id}", response_model=UserReportOut)
async def user_completion_report(
    user_id: int,
    service: Annotated[CompletionReportService, Depends(get_report_service)],
    course_id: int | None = None,
) -> UserReportOut:
    report = await service.build(user_id, course_id)
    if report.is_empty:
        detail = (
            "no completion information accessible for this course"
            if course_id is not None
            else "no completion information accessible for any course"
        )
        raise HTTPException(status_code=404, detail=detail)

    return UserReportOut(
        user_id=report.user_id,
        complete=[_course_out(e) for e in report.complete],
        inprogress=[_course_out(e) for e in report.inprogress],
        notyetstarted=[_course_out(e) for e in report.notyetstarted],
    )
