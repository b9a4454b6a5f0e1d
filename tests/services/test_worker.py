from __future__ import annotations

import asyncio
import logging

import pytest

from completion.api import dependencies
from completion.models.completion import CompletionRecord, CriterionType
from completion.services.completion_service import CompletionService
from completion.services.notifications import RecordingNotifier
from completion.services.task_queue import (
    COURSE_COMPLETED_QUEUE,
    REAGGREGATION_QUEUE,
    InMemoryTaskQueue,
    task_queue,
)
from completion.worker import (
    HANDLERS,
    ReaggregationScheduler,
    handle_course_completed,
    handle_reaggregation,
)
from tests.conftest import NOW, seed_course


def test_handlers_registered_for_each_queue() -> None:
    assert set(HANDLERS) == {COURSE_COMPLETED_QUEUE, REAGGREGATION_QUEUE}


def test_course_completed_handler_logs(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="worker"):
        asyncio.run(
            handle_course_completed({"user_id": 7, "course_id": 10, "time_completed": 5})
        )
    assert "Course completed user=7 course=10" in caplog.text


def test_reaggregation_handler_processes_due_records() -> None:
    seed_course(10, user_ids=(7,))
    dependencies.criteria_repo.add_criterion(1, 10, CriterionType.SELF)
    dependencies.criteria_repo.complete_criterion(7, 1, NOW - 30)

    service = CompletionService(
        completions=dependencies.completion_repo,
        courses=dependencies.course_repo,
        enrolments=dependencies.enrolment_repo,
        criteria=dependencies.criteria_repo,
        notifier=RecordingNotifier(),
    )
    record = asyncio.run(service.load(7, 10))
    asyncio.run(service.flag_for_reaggregation(record, NOW))

    asyncio.run(handle_reaggregation({"limit": 10}))

    stored = asyncio.run(dependencies.completion_repo.get(7, 10))
    assert stored.reaggregate == 0
    assert stored.time_completed == NOW - 30


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_scheduler_enqueues_once_per_interval() -> None:
    queue = InMemoryTaskQueue()
    clock = _Clock()
    scheduler = ReaggregationScheduler(queue, interval=60, batch_size=25, clock=clock)

    assert asyncio.run(scheduler.tick()) is True
    assert asyncio.run(scheduler.tick()) is False
    clock.now += 59
    assert asyncio.run(scheduler.tick()) is False
    clock.now += 1
    assert asyncio.run(scheduler.tick()) is True

    assert asyncio.run(queue.queue_length(REAGGREGATION_QUEUE)) == 2
    task = asyncio.run(queue.dequeue(REAGGREGATION_QUEUE))
    assert task.payload == {"limit": 25}


def test_scheduler_disabled_with_zero_interval() -> None:
    queue = InMemoryTaskQueue()
    scheduler = ReaggregationScheduler(queue, interval=0, batch_size=25, clock=_Clock())

    assert asyncio.run(scheduler.tick()) is False
    assert asyncio.run(queue.queue_length(REAGGREGATION_QUEUE)) == 0


def test_reaggregation_handler_sends_completion_event() -> None:
    seed_course(10, user_ids=(7,))
    dependencies.criteria_repo.add_criterion(1, 10, CriterionType.SELF)
    dependencies.criteria_repo.complete_criterion(7, 1, NOW - 30)
    asyncio.run(
        dependencies.completion_repo.insert(
            CompletionRecord(user_id=7, course_id=10, time_enrolled=NOW, reaggregate=NOW)
        )
    )

    asyncio.run(handle_reaggregation({}))

    assert asyncio.run(task_queue.queue_length(COURSE_COMPLETED_QUEUE)) == 1
