from __future__ import annotations

from typing import Protocol

from completion.models.course import EnrolmentWindow


class EnrolmentRepo(Protocol):
    async def windows_for_user(
        self, user_id: int, course_id: int
    ) -> list[EnrolmentWindow]: ...
    async def windows_for_course(self, course_id: int) -> list[EnrolmentWindow]: ...
    async def course_ids_for_user(self, user_id: int) -> list[int]: ...


class InMemoryEnrolmentRepo:
    def __init__(self) -> None:
        self._windows: list[EnrolmentWindow] = []

    def add(self, window: EnrolmentWindow) -> None:
        self._windows.append(window)

    async def windows_for_user(
        self, user_id: int, course_id: int
    ) -> list[EnrolmentWindow]:
        return [
            w
            for w in self._windows
            if w.user_id == user_id and w.course_id == course_id
        ]

    async def windows_for_course(self, course_id: int) -> list[EnrolmentWindow]:
        return [w for w in self._windows if w.course_id == course_id]

    async def course_ids_for_user(self, user_id: int) -> list[int]:
        seen: dict[int, None] = {}
        for w in self._windows:
            if w.user_id == user_id:
                seen.setdefault(w.course_id)
        return list(seen)
