from __future__ import annotations

import asyncio

from completion.models.completion import CompletionRecord, CriterionType
from completion.models.course import EnrolmentWindow
from completion.services.report import CompletionReportService
from tests.conftest import NOW, Env, make_course

USER = 7


def _report_service(env: Env) -> CompletionReportService:
    return CompletionReportService(
        completions=env.completions,
        courses=env.courses,
        enrolments=env.enrolments,
        criteria=env.criteria,
        clock=lambda: env.now,
    )


def _enrol(env: Env, course_id: int, user_id: int = USER) -> None:
    env.enrolments.add(EnrolmentWindow(user_id, course_id, time_start=NOW - 100))


def _seed_mixed_criteria(env: Env, course_id: int) -> None:
    crit = env.criteria
    crit.add_criterion(1, course_id, CriterionType.ACTIVITY, instance_id=11)
    crit.add_criterion(2, course_id, CriterionType.COURSE, instance_id=20)
    crit.add_criterion(3, course_id, CriterionType.ACTIVITY, instance_id=12)
    crit.add_criterion(4, course_id, CriterionType.SELF, title="Self completion")
    crit.add_criterion(5, course_id, CriterionType.ACTIVITY, instance_id=13)
    crit.add_criterion(6, course_id, CriterionType.COURSE, instance_id=21)
    crit.complete_criterion(USER, 1, NOW - 50)
    crit.complete_criterion(USER, 3, NOW - 40)
    crit.complete_criterion(USER, 6, NOW - 30)


def test_rows_collapse_activities_and_prerequisites() -> None:
    env = Env()
    env.courses.add(make_course(10, fullname="Statistics"))
    _enrol(env, 10)
    _seed_mixed_criteria(env, 10)

    report = asyncio.run(_report_service(env).build(USER, 10))

    assert len(report.inprogress) == 1
    entry = report.inprogress[0]
    assert entry.course_name == "Statistics"
    assert [(r.title, r.status) for r in entry.rows] == [
        ("Dependencies completed", "1 of 2"),
        ("Self completion", "No"),
        ("Activities completed", "2 of 3"),
    ]
    assert [r.complete for r in entry.rows] == [False, False, False]


def test_courses_are_grouped_by_status() -> None:
    env = Env()
    for course_id, name in ((1, "Done"), (2, "Going"), (3, "Fresh"), (4, "Started")):
        env.courses.add(make_course(course_id, fullname=name))
        _enrol(env, course_id)
        env.criteria.add_criterion(
            course_id * 10, course_id, CriterionType.SELF, title="Self"
        )

    asyncio.run(
        env.completions.insert(
            CompletionRecord(
                user_id=USER,
                course_id=1,
                time_enrolled=NOW - 100,
                time_started=NOW - 90,
                time_completed=NOW - 10,
            )
        )
    )
    env.criteria.complete_criterion(USER, 10, NOW - 10)
    env.criteria.complete_criterion(USER, 20, NOW - 20)
    asyncio.run(
        env.completions.insert(
            CompletionRecord(
                user_id=USER, course_id=4, time_enrolled=NOW - 100, time_started=NOW
            )
        )
    )

    report = asyncio.run(_report_service(env).build(USER))

    assert [c.course_name for c in report.complete] == ["Done"]
    assert report.complete[0].time_completed == NOW - 10
    assert report.complete[0].rows[0].status == "Yes"
    assert sorted(c.course_name for c in report.inprogress) == ["Going", "Started"]
    assert [c.course_name for c in report.notyetstarted] == ["Fresh"]


def test_disabled_and_unenrolled_courses_are_left_out() -> None:
    env = Env()
    env.courses.add(make_course(1, enabled=False))
    _enrol(env, 1)
    env.courses.add(make_course(2))

    service = _report_service(env)

    assert asyncio.run(service.build(USER)).is_empty
    assert asyncio.run(service.build(USER, 1)).is_empty
    assert asyncio.run(service.build(USER, 2)).is_empty


def test_course_filter_limits_report_to_one_course() -> None:
    env = Env()
    for course_id in (1, 2):
        env.courses.add(make_course(course_id, fullname=f"C{course_id}"))
        _enrol(env, course_id)

    report = asyncio.run(_report_service(env).build(USER, 2))

    assert [c.course_id for c in report.notyetstarted] == [2]


def test_all_activities_done_row_is_complete() -> None:
    env = Env()
    env.courses.add(make_course(10))
    _enrol(env, 10)
    env.criteria.add_criterion(1, 10, CriterionType.ACTIVITY, instance_id=11)
    env.criteria.complete_criterion(USER, 1, NOW - 5)

    report = asyncio.run(_report_service(env).build(USER, 10))

    row = report.inprogress[0].rows[0]
    assert (row.title, row.status, row.complete) == ("Activities completed", "1 of 1", True)


def test_suspended_and_expired_enrolments_are_left_out() -> None:
    env = Env()
    env.courses.add(make_course(10))
    env.courses.add(make_course(11))
    env.courses.add(make_course(12))
    env.enrolments.add(EnrolmentWindow(USER, 10, time_start=NOW - 100, user_active=False))
    env.enrolments.add(EnrolmentWindow(USER, 11, time_start=NOW - 100, time_end=NOW - 10))
    env.enrolments.add(
        EnrolmentWindow(USER, 12, time_start=NOW - 100, instance_enabled=False)
    )

    service = _report_service(env)

    assert asyncio.run(service.build(USER)).is_empty
    for course_id in (10, 11, 12):
        assert asyncio.run(service.build(USER, course_id)).is_empty


def test_one_active_enrolment_is_enough() -> None:
    env = Env()
    env.courses.add(make_course(10))
    env.enrolments.add(EnrolmentWindow(USER, 10, time_start=NOW - 100, user_active=False))
    env.enrolments.add(EnrolmentWindow(USER, 10, time_start=NOW - 50, time_end=NOW + 50))

    report = asyncio.run(_report_service(env).build(USER))

    assert [c.course_id for c in report.notyetstarted] == [10]


def test_repeated_instance_counts_once() -> None:
    env = Env()
    env.courses.add(make_course(10))
    _enrol(env, 10)
    crit = env.criteria
    crit.add_criterion(1, 10, CriterionType.ACTIVITY, instance_id=11)
    crit.add_criterion(2, 10, CriterionType.ACTIVITY, instance_id=11)
    crit.add_criterion(3, 10, CriterionType.ACTIVITY, instance_id=12)
    crit.add_criterion(4, 10, CriterionType.COURSE, instance_id=20)
    crit.add_criterion(5, 10, CriterionType.COURSE, instance_id=20)
    crit.complete_criterion(USER, 1, NOW - 5)
    crit.complete_criterion(USER, 2, NOW - 5)

    report = asyncio.run(_report_service(env).build(USER, 10))

    assert [(r.title, r.status) for r in report.inprogress[0].rows] == [
        ("Dependencies completed", "0 of 1"),
        ("Activities completed", "1 of 2"),
    ]
