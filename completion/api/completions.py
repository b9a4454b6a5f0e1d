"""Course completion endpoints.

Each POST runs one record operation and returns the resulting record.
An operation that could not be persisted answers 409 so the caller can
reload and retry; this service never retries on its own.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from completion.api.dependencies import get_completion_service
from completion.models.completion import CompletionRecord
from completion.models.course import EnrolmentStarted
from completion.services.completion_service import AggregateResult, CompletionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/completions", tags=["completions"])
enrolments_router = APIRouter(prefix="/v1/enrolments", tags=["enrolments"])

Service = Annotated[CompletionService, Depends(get_completion_service)]


class CompletionOut(BaseModel):
    id: int | None
    user_id: int
    course_id: int
    time_enrolled: int | None
    time_started: int
    time_completed: int | None
    reaggregate: int
    is_complete: bool

    @staticmethod
    def from_record(record: CompletionRecord) -> CompletionOut:
        return CompletionOut(
            id=record.id,
            user_id=record.user_id,
            course_id=record.course_id,
            time_enrolled=record.time_enrolled,
            time_started=record.time_started,
            time_completed=record.time_completed,
            reaggregate=record.reaggregate,
            is_complete=record.is_complete,
        )


class MarkIn(BaseModel):
    time: int | None = None


class AggregateOut(BaseModel):
    result: str
    completion: CompletionOut


class BulkStartOut(BaseModel):
    course_id: int
    created: int


class ReaggregatePendingOut(BaseModel):
    processed: int


class EnrolmentStartedIn(BaseModel):
    user_id: int
    course_id: int
    time_start: int


class EnrolmentStartedOut(BaseModel):
    handled: bool


def _conflict(action: str, record: CompletionRecord) -> HTTPException:
    logger.warning(
        "Completion %s failed user=%s course=%s",
        action,
        record.user_id,
        record.course_id,
        extra={"user_id": record.user_id, "course_id": record.course_id},
    )
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=f"completion record could not be saved ({action})",
    )


@router.get("/{course_id}/users/{user_id}", response_model=CompletionOut)
async def get_completion(course_id: int, user_id: int, service: Service) -> CompletionOut:
    record = await service.load(user_id, course_id)
    if record.is_new:
        raise HTTPException(status_code=404, detail="completion record not found")
    return CompletionOut.from_record(record)


@router.post("/{course_id}/users/{user_id}/enrolled", response_model=CompletionOut)
async def mark_enrolled(
    course_id: int, user_id: int, body: MarkIn, service: Service
) -> CompletionOut:
    record = await service.load(user_id, course_id)
    if not await service.mark_enrolled(record, body.time):
        raise _conflict("mark_enrolled", record)
    return CompletionOut.from_record(record)


@router.post("/{course_id}/users/{user_id}/in-progress", response_model=CompletionOut)
async def mark_in_progress(
    course_id: int, user_id: int, body: MarkIn, service: Service
) -> CompletionOut:
    record = await service.load(user_id, course_id)
    if not await service.mark_in_progress(record, body.time):
        raise _conflict("mark_in_progress", record)
    return CompletionOut.from_record(record)


@router.post("/{course_id}/users/{user_id}/complete", response_model=CompletionOut)
async def mark_complete(
    course_id: int, user_id: int, body: MarkIn, service: Service
) -> CompletionOut:
    record = await service.load(user_id, course_id)
    if not await service.mark_complete(record, body.time):
        raise _conflict("mark_complete", record)
    return CompletionOut.from_record(record)


@router.post("/{course_id}/users/{user_id}/aggregate", response_model=AggregateOut)
async def aggregate(course_id: int, user_id: int, service: Service) -> AggregateOut:
    record = await service.load(user_id, course_id)
    result = await service.aggregate(record)
    if result is AggregateResult.FAILED:
        raise _conflict("aggregate", record)
    return AggregateOut(result=result.value, completion=CompletionOut.from_record(record))


@router.post("/{course_id}/users/{user_id}/reaggregate", response_model=CompletionOut)
async def flag_for_reaggregation(
    course_id: int, user_id: int, body: MarkIn, service: Service
) -> CompletionOut:
    record = await service.load(user_id, course_id)
    if not await service.flag_for_reaggregation(record, body.time):
        raise _conflict("flag_for_reaggregation", record)
    return CompletionOut.from_record(record)


@router.post("/{course_id}/start-bulk", response_model=BulkStartOut)
async def start_users_bulk(course_id: int, service: Service) -> BulkStartOut:
    created = await service.start_users_bulk(course_id)
    return BulkStartOut(course_id=course_id, created=created)


@router.post("/reaggregate-pending", response_model=ReaggregatePendingOut)
async def reaggregate_pending(
    service: Service, limit: Annotated[int | None, Query(ge=1)] = None
) -> ReaggregatePendingOut:
    processed = await service.run_pending_reaggregation(limit)
    return ReaggregatePendingOut(processed=processed)


@enrolments_router.post("/started", response_model=EnrolmentStartedOut)
async def enrolment_started(
    event: EnrolmentStartedIn, service: Service
) -> EnrolmentStartedOut:
    handled = await service.start_user(
        EnrolmentStarted(
            user_id=event.user_id,
            course_id=event.course_id,
            time_start=event.time_start,
        )
    )
    return EnrolmentStartedOut(handled=handled)
