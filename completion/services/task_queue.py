"""Background task queue on Redis lists.

Producers LPUSH a JSON task onto ``tasks:<queue>``; the worker BRPOPs
from the other end, so each queue is FIFO.  Delivery is at-most-once: a
task popped by a worker that then crashes is gone.  Without REDIS_URL
the in-memory queue stands in (tests, local runs).
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from completion.core.metrics import QUEUE_DEPTH
from completion.db.redis import redis_pool

COURSE_COMPLETED_QUEUE = "course_completed"
REAGGREGATION_QUEUE = "reaggregation"


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    queue: str
    payload: dict


@runtime_checkable
class TaskQueue(Protocol):
    async def enqueue(self, queue: str, payload: dict) -> Task: ...
    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None: ...
    async def queue_length(self, queue: str) -> int: ...


class InMemoryTaskQueue:
    def __init__(self) -> None:
        self._queues: dict[str, list[Task]] = {}

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        tasks = self._queues.setdefault(queue, [])
        tasks.append(task)
        QUEUE_DEPTH.labels(queue_name=queue).set(len(tasks))
        return task

    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None:
        tasks = self._queues.get(queue, [])
        if not tasks:
            return None
        task = tasks.pop(0)
        QUEUE_DEPTH.labels(queue_name=queue).set(len(tasks))
        return task

    async def queue_length(self, queue: str) -> int:
        return len(self._queues.get(queue, []))


class RedisTaskQueue:
    _PREFIX = "tasks:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        task_json = json.dumps(
            {"id": task.id, "queue": task.queue, "payload": task.payload}
        )
        depth = await self._redis.lpush(f"{self._PREFIX}{queue}", task_json)
        QUEUE_DEPTH.labels(queue_name=queue).set(depth)
        return task

    async def dequeue(self, queue: str, timeout: int = 5) -> Task | None:
        result = await self._redis.brpop(f"{self._PREFIX}{queue}", timeout=timeout)
        if result is None:
            return None
        _, task_json = result
        return Task(**json.loads(task_json))

    async def queue_length(self, queue: str) -> int:
        return await self._redis.llen(f"{self._PREFIX}{queue}")


if redis_pool is not None:
    task_queue: TaskQueue = RedisTaskQueue(redis_pool)
else:
    task_queue = InMemoryTaskQueue()
