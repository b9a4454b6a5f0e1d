from __future__ import annotations

import sys
from itertools import count
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import completion` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from completion.api import dependencies  # noqa: E402
from completion.main import app  # noqa: E402
from completion.models.completion import AggregationMethod  # noqa: E402
from completion.models.course import Course, EnrolmentWindow  # noqa: E402
from completion.repos.completion_repo import InMemoryCompletionRepo  # noqa: E402
from completion.repos.course_repo import InMemoryCourseRepo  # noqa: E402
from completion.repos.criteria_repo import InMemoryCriteriaRepo  # noqa: E402
from completion.repos.enrolment_repo import InMemoryEnrolmentRepo  # noqa: E402
from completion.services.completion_service import CompletionService  # noqa: E402
from completion.services.notifications import RecordingNotifier  # noqa: E402
from completion.services.task_queue import task_queue  # noqa: E402

NOW = 1_700_000_000


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Clear the shared in-memory repositories between tests."""
    dependencies.completion_repo._store.clear()
    dependencies.completion_repo._ids = count(1)
    dependencies.course_repo._by_id.clear()
    dependencies.enrolment_repo._windows.clear()
    dependencies.criteria_repo._criteria.clear()
    dependencies.criteria_repo._methods.clear()
    dependencies.criteria_repo._completed.clear()


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    """Clear task queues between tests."""
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Service-level fixtures (fresh repos, fixed clock)
# ---------------------------------------------------------------------------


class Env:
    """Fresh in-memory repos plus a service wired to them."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now
        self.completions = InMemoryCompletionRepo()
        self.courses = InMemoryCourseRepo()
        self.enrolments = InMemoryEnrolmentRepo()
        self.criteria = InMemoryCriteriaRepo()
        self.notifier = RecordingNotifier()

    def service(self) -> CompletionService:
        return CompletionService(
            completions=self.completions,
            courses=self.courses,
            enrolments=self.enrolments,
            criteria=self.criteria,
            notifier=self.notifier,
            clock=lambda: self.now,
        )


@pytest.fixture
def env() -> Env:
    return Env()


def make_course(
    course_id: int = 10,
    *,
    enabled: bool = True,
    start_on_enrol: bool = True,
    method: int = AggregationMethod.ALL,
    fullname: str = "Test course",
) -> Course:
    return Course(
        id=course_id,
        fullname=fullname,
        enable_completion=enabled,
        completion_start_on_enrol=start_on_enrol,
        aggregation_method=method,
    )


def seed_course(
    course_id: int = 10, *, user_ids: tuple[int, ...] = (), **kwargs
) -> Course:
    """Add a course (and enrolments) to the API's shared in-memory repos."""
    course = make_course(course_id, **kwargs)
    dependencies.course_repo.add(course)
    for user_id in user_ids:
        dependencies.enrolment_repo.add(
            EnrolmentWindow(user_id=user_id, course_id=course_id, time_start=NOW - 100)
        )
    return course
