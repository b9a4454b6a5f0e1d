from __future__ import annotations

from typing import Protocol

from completion.models.course import Course


class CourseRepo(Protocol):
    async def get(self, course_id: int) -> Course | None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._by_id: dict[int, Course] = {}

    async def get(self, course_id: int) -> Course | None:
        return self._by_id.get(course_id)

    def add(self, course: Course) -> None:
        self._by_id[course.id] = course
