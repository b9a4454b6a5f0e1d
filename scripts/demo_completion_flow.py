"""Demo: enrol a learner, complete criteria and read the report.

Uses the in-memory repositories through FastAPI TestClient.

Run with:
    python scripts/demo_completion_flow.py
"""

from __future__ import annotations

import time

from fastapi.testclient import TestClient

from completion.api import dependencies
from completion.main import app
from completion.models.completion import AggregationMethod, CriterionType
from completion.models.course import Course, EnrolmentWindow

COURSE_ID = 101
USER_ID = 7


def main() -> None:
    client = TestClient(app)
    now = int(time.time())

    # ── Seed data ───────────────────────────────────────────────────
    dependencies.course_repo.add(
        Course(
            id=COURSE_ID,
            fullname="Intro to Statistics",
            enable_completion=True,
            completion_start_on_enrol=True,
            aggregation_method=AggregationMethod.ALL,
        )
    )
    dependencies.enrolment_repo.add(
        EnrolmentWindow(user_id=USER_ID, course_id=COURSE_ID, time_start=now - 3600)
    )
    criteria = dependencies.criteria_repo
    criteria.add_criterion(1, COURSE_ID, CriterionType.ACTIVITY, instance_id=11)
    criteria.add_criterion(2, COURSE_ID, CriterionType.ACTIVITY, instance_id=12)
    criteria.add_criterion(3, COURSE_ID, CriterionType.SELF, title="Self completion")
    criteria.set_method(COURSE_ID, CriterionType.ACTIVITY, AggregationMethod.ANY)

    # ── Step 1: enrolment started ───────────────────────────────────
    r = client.post(
        "/v1/enrolments/started",
        json={"user_id": USER_ID, "course_id": COURSE_ID, "time_start": now - 3600},
    )
    print(f"1. POST /v1/enrolments/started → {r.status_code}  {r.json()}")

    base = f"/v1/completions/{COURSE_ID}/users/{USER_ID}"

    # ── Step 2: one activity done, self completion pending ──────────
    criteria.complete_criterion(USER_ID, 1, now - 600)
    r = client.post(f"{base}/aggregate")
    print(f"2. POST aggregate              → {r.status_code}  {r.json()['result']}")

    # ── Step 3: self completion done ────────────────────────────────
    criteria.complete_criterion(USER_ID, 3, now - 60)
    r = client.post(f"{base}/aggregate")
    body = r.json()
    print(
        f"3. POST aggregate              → {r.status_code}  {body['result']}  "
        f"time_completed={body['completion']['time_completed']}"
    )

    # ── Step 4: report ──────────────────────────────────────────────
    r = client.get(f"/v1/reports/completion/users/{USER_ID}")
    for entry in r.json()["complete"]:
        print(f"4. report: {entry['course_name']}")
        for row in entry["rows"]:
            print(f"     {row['title']:<24} {row['status']}")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
