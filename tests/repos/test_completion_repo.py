from __future__ import annotations

import asyncio

from completion.models.completion import CompletionRecord
from completion.repos.completion_repo import InMemoryCompletionRepo


def _record(user_id: int = 1, course_id: int = 10, **kwargs) -> CompletionRecord:
    return CompletionRecord(user_id=user_id, course_id=course_id, **kwargs)


def test_insert_assigns_id_and_rejects_duplicates() -> None:
    repo = InMemoryCompletionRepo()
    first = _record()
    assert asyncio.run(repo.insert(first)) is True
    assert first.id == 1

    assert asyncio.run(repo.insert(_record())) is False
    assert asyncio.run(repo.insert(first)) is False


def test_get_returns_a_copy() -> None:
    repo = InMemoryCompletionRepo()
    asyncio.run(repo.insert(_record(time_started=5)))

    loaded = asyncio.run(repo.get(1, 10))
    loaded.time_started = 99

    assert asyncio.run(repo.get(1, 10)).time_started == 5


def test_update_bumps_version_and_rejects_stale_copy() -> None:
    repo = InMemoryCompletionRepo()
    asyncio.run(repo.insert(_record()))
    a = asyncio.run(repo.get(1, 10))
    b = asyncio.run(repo.get(1, 10))

    a.time_started = 100
    assert asyncio.run(repo.update(a)) is True
    assert a.version == 1

    b.time_started = 200
    assert asyncio.run(repo.update(b)) is False
    assert asyncio.run(repo.get(1, 10)).time_started == 100


def test_update_of_unsaved_record_fails() -> None:
    repo = InMemoryCompletionRepo()
    assert asyncio.run(repo.update(_record(id=5))) is False


def test_user_ids_for_course() -> None:
    repo = InMemoryCompletionRepo()
    for user_id, course_id in ((1, 10), (2, 10), (3, 11)):
        asyncio.run(repo.insert(_record(user_id, course_id)))
    assert asyncio.run(repo.user_ids_for_course(10)) == {1, 2}


def test_list_pending_orders_by_flag_time_and_limits() -> None:
    repo = InMemoryCompletionRepo()
    asyncio.run(repo.insert(_record(1, reaggregate=30)))
    asyncio.run(repo.insert(_record(2, reaggregate=10)))
    asyncio.run(repo.insert(_record(3, reaggregate=0)))
    asyncio.run(repo.insert(_record(4, reaggregate=500)))

    pending = asyncio.run(repo.list_pending(now=100, limit=10))
    assert [r.user_id for r in pending] == [2, 1]

    pending = asyncio.run(repo.list_pending(now=100, limit=1))
    assert [r.user_id for r in pending] == [2]
