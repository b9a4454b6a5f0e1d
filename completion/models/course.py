from __future__ import annotations

from dataclasses import dataclass

from completion.models.completion import AggregationMethod


@dataclass(frozen=True, slots=True)
class Course:
    id: int
    fullname: str
    enable_completion: bool = False
    completion_start_on_enrol: bool = False
    aggregation_method: int = AggregationMethod.ALL


@dataclass(frozen=True, slots=True)
class CourseSettings:
    """The per-course values aggregation needs, cached per request."""

    enabled: bool
    aggregation_method: int
    start_on_enrol: bool

    @staticmethod
    def from_course(course: Course) -> CourseSettings:
        return CourseSettings(
            enabled=course.enable_completion,
            aggregation_method=course.aggregation_method,
            start_on_enrol=course.completion_start_on_enrol,
        )


@dataclass(frozen=True, slots=True)
class EnrolmentWindow:
    """A user's enrolment in a course through one enrolment instance.

    ``time_end`` of 0 means open ended.
    """

    user_id: int
    course_id: int
    time_start: int = 0
    time_end: int = 0
    user_active: bool = True
    instance_enabled: bool = True

    def is_active(self, now: int) -> bool:
        return (
            self.user_active
            and self.instance_enabled
            and (self.time_end == 0 or self.time_end > now)
        )

    def is_current(self, now: int) -> bool:
        return self.is_active(now) and self.time_start < now


@dataclass(frozen=True, slots=True)
class EnrolmentStarted:
    """Payload of the "user enrolment started" event."""

    user_id: int
    course_id: int
    time_start: int
