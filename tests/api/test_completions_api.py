from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from completion.api import dependencies
from completion.models.completion import AggregationMethod, CriterionType
from completion.services.task_queue import COURSE_COMPLETED_QUEUE, task_queue
from tests.conftest import NOW, seed_course

USER = 7
COURSE = 10
BASE = f"/v1/completions/{COURSE}/users/{USER}"


def test_get_unknown_completion_returns_404(client: TestClient) -> None:
    resp = client.get(BASE)
    assert resp.status_code == 404


def test_mark_enrolled_creates_record(client: TestClient) -> None:
    seed_course(COURSE, user_ids=(USER,))

    resp = client.post(f"{BASE}/enrolled", json={"time": 1000})
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] is not None
    assert body["time_enrolled"] == 1000
    assert body["is_complete"] is False

    resp = client.get(BASE)
    assert resp.status_code == 200
    assert resp.json()["time_enrolled"] == 1000


def test_mark_in_progress_sets_start(client: TestClient) -> None:
    seed_course(COURSE, user_ids=(USER,))

    resp = client.post(f"{BASE}/in-progress", json={"time": 2000})
    assert resp.status_code == 200
    assert resp.json()["time_started"] == 2000


def test_mark_complete_then_repeat_keeps_first_time(client: TestClient) -> None:
    seed_course(COURSE, user_ids=(USER,))

    first = client.post(f"{BASE}/complete", json={"time": 3000})
    second = client.post(f"{BASE}/complete", json={"time": 9000})

    assert first.status_code == 200
    assert first.json()["time_completed"] == 3000
    assert second.json()["time_completed"] == 3000
    assert asyncio.run(task_queue.queue_length(COURSE_COMPLETED_QUEUE)) == 1


def test_aggregate_reports_result(client: TestClient) -> None:
    seed_course(COURSE, user_ids=(USER,))
    criteria = dependencies.criteria_repo
    criteria.add_criterion(1, COURSE, CriterionType.ACTIVITY, instance_id=11)
    criteria.add_criterion(2, COURSE, CriterionType.ACTIVITY, instance_id=12)
    criteria.set_method(COURSE, CriterionType.ACTIVITY, AggregationMethod.ANY)

    resp = client.post(f"{BASE}/aggregate")
    assert resp.status_code == 200
    assert resp.json()["result"] == "incomplete"

    criteria.complete_criterion(USER, 2, NOW - 5)
    resp = client.post(f"{BASE}/aggregate")
    body = resp.json()
    assert body["result"] == "complete"
    assert body["completion"]["time_completed"] == NOW - 5

    resp = client.post(f"{BASE}/aggregate")
    assert resp.json()["result"] == "already_complete"


def test_aggregate_disabled_course_is_not_applicable(client: TestClient) -> None:
    seed_course(COURSE, user_ids=(USER,), enabled=False)

    resp = client.post(f"{BASE}/aggregate")
    assert resp.status_code == 200
    assert resp.json()["result"] == "not_applicable"
    assert client.get(BASE).status_code == 404


def test_flag_and_run_pending_reaggregation(client: TestClient) -> None:
    seed_course(COURSE, user_ids=(USER,))
    dependencies.criteria_repo.add_criterion(1, COURSE, CriterionType.SELF)
    dependencies.criteria_repo.complete_criterion(USER, 1, NOW - 50)

    resp = client.post(f"{BASE}/reaggregate", json={"time": NOW - 10})
    assert resp.status_code == 200
    assert resp.json()["reaggregate"] == NOW - 10

    resp = client.post("/v1/completions/reaggregate-pending")
    assert resp.status_code == 200
    assert resp.json() == {"processed": 1}

    body = client.get(BASE).json()
    assert body["reaggregate"] == 0
    assert body["time_completed"] == NOW - 50


def test_start_bulk_is_idempotent(client: TestClient) -> None:
    seed_course(COURSE, user_ids=(1, 2, 3))

    first = client.post(f"/v1/completions/{COURSE}/start-bulk")
    second = client.post(f"/v1/completions/{COURSE}/start-bulk")

    assert first.json() == {"course_id": COURSE, "created": 3}
    assert second.json() == {"course_id": COURSE, "created": 0}


def test_enrolment_started_event(client: TestClient) -> None:
    seed_course(COURSE, user_ids=(USER,))

    resp = client.post(
        "/v1/enrolments/started",
        json={"user_id": USER, "course_id": COURSE, "time_start": NOW - 100},
    )
    assert resp.status_code == 200
    assert resp.json() == {"handled": True}

    body = client.get(BASE).json()
    assert body["time_started"] == NOW - 100
    assert body["time_enrolled"] == NOW - 100


def test_enrolment_started_for_course_not_tracking_enrolment(
    client: TestClient,
) -> None:
    seed_course(COURSE, user_ids=(USER,), start_on_enrol=False)

    resp = client.post(
        "/v1/enrolments/started",
        json={"user_id": USER, "course_id": COURSE, "time_start": NOW},
    )
    assert resp.json() == {"handled": False}


def test_enrolment_started_rejects_bad_payload(client: TestClient) -> None:
    resp = client.post("/v1/enrolments/started", json={"user_id": USER})
    assert resp.status_code == 422
