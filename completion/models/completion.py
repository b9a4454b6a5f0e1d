from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class CriterionType(IntEnum):
    """Criterion types.  Values match the stored ``criterion_type`` column."""

    SELF = 1
    DATE = 2
    UNENROL = 3
    ACTIVITY = 4
    DURATION = 5
    GRADE = 6
    ROLE = 7
    COURSE = 8  # prerequisite course


class AggregationMethod(IntEnum):
    ALL = 1
    ANY = 2


@dataclass(slots=True)
class CompletionRecord:
    """One user's completion state in one course.

    Mutable on purpose: the service marks fields in place and then
    persists the record through a CompletionRepo.  ``time_started`` and
    ``reaggregate`` use 0 for "not set"; ``time_enrolled`` and
    ``time_completed`` use None.
    """

    user_id: int
    course_id: int
    id: int | None = None
    time_enrolled: int | None = None
    time_started: int = 0
    time_completed: int | None = None
    reaggregate: int = 0
    version: int = 0

    @property
    def is_complete(self) -> bool:
        return bool(self.time_completed)

    @property
    def is_new(self) -> bool:
        return self.id is None


@dataclass(frozen=True, slots=True)
class CriterionCompletion:
    """A configured criterion joined with the user's completion of it."""

    criterion_id: int
    criterion_type: int
    aggregation_method: int | None = None  # per-type method, None if unset
    time_completed: int | None = None
    instance_id: int | None = None  # activity or prerequisite course id
    title: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.time_completed)


@dataclass(frozen=True, slots=True)
class CourseCompletedEvent:
    user_id: int
    course_id: int
    time_completed: int
