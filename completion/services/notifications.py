"""Course-completed notification port.

The completion service calls ``course_completed`` once per
incomplete-to-complete transition.  Delivery is fire-and-forget: a
notifier that cannot hand the event off logs and counts the failure
rather than failing the completion that has already been committed.
Request and worker code notify into a PendingNotifier and flush it only
once their unit of work has committed.
"""

from __future__ import annotations

import logging
from typing import Protocol

from completion.core.metrics import NOTIFICATION_FAILURES
from completion.models.completion import CourseCompletedEvent
from completion.services.task_queue import COURSE_COMPLETED_QUEUE, TaskQueue

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def course_completed(self, event: CourseCompletedEvent) -> None: ...


class TaskQueueNotifier:
    """Enqueues a ``course_completed`` task for the worker."""

    def __init__(self, queue: TaskQueue) -> None:
        self._queue = queue

    async def course_completed(self, event: CourseCompletedEvent) -> None:
        payload = {
            "user_id": event.user_id,
            "course_id": event.course_id,
            "time_completed": event.time_completed,
        }
        try:
            task = await self._queue.enqueue(COURSE_COMPLETED_QUEUE, payload)
        except Exception:
            NOTIFICATION_FAILURES.inc()
            logger.exception(
                "Could not enqueue course_completed user=%s course=%s",
                event.user_id,
                event.course_id,
                extra={"user_id": event.user_id, "course_id": event.course_id},
            )
            return
        logger.info(
            "Queued course_completed task=%s user=%s course=%s",
            task.id,
            event.user_id,
            event.course_id,
            extra={"task_id": task.id, "queue": COURSE_COMPLETED_QUEUE},
        )


class RecordingNotifier:
    """Keeps events in a list; used by tests and dry runs."""

    def __init__(self) -> None:
        self.events: list[CourseCompletedEvent] = []

    async def course_completed(self, event: CourseCompletedEvent) -> None:
        self.events.append(event)


class PendingNotifier:
    """Holds events until the unit of work that produced them has committed.

    The service notifies into this buffer; ``flush`` hands the events to
    the real notifier and is only called after a successful commit, so a
    rolled-back completion never announces itself.
    """

    def __init__(self) -> None:
        self.events: list[CourseCompletedEvent] = []

    async def course_completed(self, event: CourseCompletedEvent) -> None:
        self.events.append(event)

    async def flush(self, notifier: Notifier) -> int:
        events, self.events = self.events, []
        for event in events:
            await notifier.course_completed(event)
        return len(events)

    def discard(self) -> None:
        self.events.clear()
