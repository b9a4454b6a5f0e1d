from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from completion.models.completion import CriterionCompletion


class CriteriaRepo(Protocol):
    async def completions_for_user(
        self, user_id: int, course_id: int
    ) -> list[CriterionCompletion]:
        """Every criterion of the course, with the user's completion time
        (None when not complete) and the method configured for its type."""
        ...


@dataclass(frozen=True, slots=True)
class _Criterion:
    id: int
    course_id: int
    criterion_type: int
    instance_id: int | None
    title: str


class InMemoryCriteriaRepo:
    def __init__(self) -> None:
        self._criteria: dict[int, _Criterion] = {}
        self._methods: dict[tuple[int, int], int] = {}
        self._completed: dict[tuple[int, int], int] = {}

    def add_criterion(
        self,
        criterion_id: int,
        course_id: int,
        criterion_type: int,
        *,
        instance_id: int | None = None,
        title: str = "",
    ) -> None:
        self._criteria[criterion_id] = _Criterion(
            id=criterion_id,
            course_id=course_id,
            criterion_type=criterion_type,
            instance_id=instance_id,
            title=title,
        )

    def set_method(self, course_id: int, criterion_type: int, method: int) -> None:
        self._methods[(course_id, criterion_type)] = method

    def complete_criterion(
        self, user_id: int, criterion_id: int, time_completed: int
    ) -> None:
        self._completed[(user_id, criterion_id)] = time_completed

    async def completions_for_user(
        self, user_id: int, course_id: int
    ) -> list[CriterionCompletion]:
        return [
            CriterionCompletion(
                criterion_id=c.id,
                criterion_type=c.criterion_type,
                aggregation_method=self._methods.get((course_id, c.criterion_type)),
                time_completed=self._completed.get((user_id, c.id)),
                instance_id=c.instance_id,
                title=c.title,
            )
            for c in sorted(self._criteria.values(), key=lambda c: c.id)
            if c.course_id == course_id
        ]
