from __future__ import annotations

from dataclasses import replace
from itertools import count
from typing import Protocol

from completion.models.completion import CompletionRecord


class CompletionRepo(Protocol):
    async def get(self, user_id: int, course_id: int) -> CompletionRecord | None: ...
    async def insert(self, record: CompletionRecord) -> bool: ...
    async def update(self, record: CompletionRecord) -> bool: ...
    async def user_ids_for_course(self, course_id: int) -> set[int]: ...
    async def list_pending(self, now: int, limit: int) -> list[CompletionRecord]: ...


class InMemoryCompletionRepo:
    """Stores copies so callers' in-place edits only land through update()."""

    def __init__(self) -> None:
        self._store: dict[tuple[int, int], CompletionRecord] = {}
        self._ids = count(1)

    async def get(self, user_id: int, course_id: int) -> CompletionRecord | None:
        stored = self._store.get((user_id, course_id))
        return replace(stored) if stored is not None else None

    async def insert(self, record: CompletionRecord) -> bool:
        key = (record.user_id, record.course_id)
        if record.id is not None or key in self._store:
            return False
        record.id = next(self._ids)
        record.version = 0
        self._store[key] = replace(record)
        return True

    async def update(self, record: CompletionRecord) -> bool:
        stored = self._store.get((record.user_id, record.course_id))
        if stored is None or stored.id != record.id:
            return False
        if stored.version != record.version:
            return False
        record.version += 1
        self._store[(record.user_id, record.course_id)] = replace(record)
        return True

    async def user_ids_for_course(self, course_id: int) -> set[int]:
        return {u for (u, c) in self._store if c == course_id}

    async def list_pending(self, now: int, limit: int) -> list[CompletionRecord]:
        pending = sorted(
            (r for r in self._store.values() if 0 < r.reaggregate <= now),
            key=lambda r: (r.reaggregate, r.id),
        )
        return [replace(r) for r in pending[:limit]]
