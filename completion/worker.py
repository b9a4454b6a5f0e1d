"""Background worker process.

RUN:  python -m completion.worker

Same image as the API, different command.  Polls each registered queue
in turn and hands the task payload to its handler:

  course_completed  follow-up for a completion (certificates, messages)
  reaggregation     recompute records whose reaggregate flag is due

The worker is also the producer for the reaggregation queue: every
REAGGREGATION_INTERVAL seconds it enqueues one pass of
REAGGREGATION_BATCH_SIZE records, the way a cron task would.  With more
than one worker each schedules its own passes; they only ever pick up
records that are still flagged.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from typing import Any

from completion.api.dependencies import open_unit_of_work
from completion.core.config import SETTINGS
from completion.core.logging import setup_logging
from completion.services.task_queue import (
    COURSE_COMPLETED_QUEUE,
    REAGGREGATION_QUEUE,
    TaskQueue,
    task_queue,
)

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("worker")

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(COURSE_COMPLETED_QUEUE)
async def handle_course_completed(payload: dict) -> None:
    logger.info(
        "Course completed user=%s course=%s at=%s",
        payload.get("user_id"),
        payload.get("course_id"),
        payload.get("time_completed"),
        extra={"user_id": payload.get("user_id"), "course_id": payload.get("course_id")},
    )


@register_handler(REAGGREGATION_QUEUE)
async def handle_reaggregation(payload: dict) -> None:
    limit = int(payload.get("limit") or SETTINGS.reaggregation_batch_size)
    async with open_unit_of_work() as uow:
        service = uow.completion_service()
        processed = await service.run_pending_reaggregation(limit)
    logger.info("Reaggregation pass processed=%d", processed)


class ReaggregationScheduler:
    """Enqueues a reaggregation pass at most once per ``interval`` seconds."""

    def __init__(
        self,
        queue: TaskQueue,
        *,
        interval: int,
        batch_size: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._queue = queue
        self._interval = interval
        self._batch_size = batch_size
        self._clock = clock
        self._next_due = clock()

    async def tick(self) -> bool:
        if self._interval <= 0 or self._clock() < self._next_due:
            return False
        await self._queue.enqueue(REAGGREGATION_QUEUE, {"limit": self._batch_size})
        self._next_due = self._clock() + self._interval
        return True


async def run_worker() -> None:
    queues = list(HANDLERS.keys())
    scheduler = ReaggregationScheduler(
        task_queue,
        interval=SETTINGS.reaggregation_interval,
        batch_size=SETTINGS.reaggregation_batch_size,
    )
    logger.info(
        "Worker started, listening on queues: %s (reaggregation every %ss)",
        queues,
        SETTINGS.reaggregation_interval or "-",
    )

    while True:
        try:
            await scheduler.tick()
        except Exception:
            logger.exception("Could not schedule reaggregation pass")

        for queue_name in queues:
            task = await task_queue.dequeue(
                queue_name, timeout=SETTINGS.worker_poll_timeout
            )
            if task is None:
                continue

            handler = HANDLERS[queue_name]
            try:
                await handler(task.payload)
                logger.info("Task %s on [%s] completed", task.id, queue_name)
            except Exception:
                # at-most-once: a failed task is logged, not requeued
                logger.exception("Task %s on [%s] failed", task.id, queue_name)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
