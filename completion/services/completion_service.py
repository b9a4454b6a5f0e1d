"""Course completion record operations.

The service owns the read-modify-write cycle for ``CompletionRecord``:
it marks fields in place, aggregates the user's criteria, persists
through the CompletionRepo and notifies on the first transition to
complete.  Expected outcomes (no record, completion disabled, no
criteria) are results, not exceptions.  Persistence failures come back
as ``False`` / ``AggregateResult.FAILED`` and are not retried here.

One service instance serves one request: it carries a CourseSettingsCache
that lives exactly as long as the service.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Iterable
from enum import Enum

from completion.core.config import SETTINGS
from completion.core.metrics import AGGREGATIONS, COURSE_COMPLETIONS, RECORDS_CREATED
from completion.models.completion import CompletionRecord, CourseCompletedEvent
from completion.models.course import CourseSettings, EnrolmentStarted, EnrolmentWindow
from completion.repos.completion_repo import CompletionRepo
from completion.repos.course_repo import CourseRepo
from completion.repos.criteria_repo import CriteriaRepo
from completion.repos.enrolment_repo import EnrolmentRepo
from completion.services.aggregation import aggregate_criteria
from completion.services.notifications import Notifier

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


class AggregateResult(Enum):
    NOT_APPLICABLE = "not_applicable"  # completion disabled or unknown course
    NO_CRITERIA = "no_criteria"
    INCOMPLETE = "incomplete"
    COMPLETE = "complete"
    ALREADY_COMPLETE = "already_complete"
    FAILED = "failed"  # the record could not be saved

    @property
    def ok(self) -> bool:
        return self not in (AggregateResult.FAILED, AggregateResult.NOT_APPLICABLE)


class CourseSettingsCache:
    """Per-request cache of course completion settings.

    Unknown courses are cached as None too, so a missing course costs one
    lookup per request.
    """

    def __init__(self, courses: CourseRepo) -> None:
        self._courses = courses
        self._by_course: dict[int, CourseSettings | None] = {}

    async def get(self, course_id: int) -> CourseSettings | None:
        if course_id not in self._by_course:
            course = await self._courses.get(course_id)
            self._by_course[course_id] = (
                CourseSettings.from_course(course) if course is not None else None
            )
        return self._by_course[course_id]

    def clear(self) -> None:
        self._by_course.clear()


def earliest_current_start(windows: Iterable[EnrolmentWindow], now: int) -> int | None:
    """Earliest start among enrolments that are active and already begun."""
    starts = [w.time_start for w in windows if w.is_current(now)]
    return min(starts) if starts else None


class CompletionService:
    def __init__(
        self,
        *,
        completions: CompletionRepo,
        courses: CourseRepo,
        enrolments: EnrolmentRepo,
        criteria: CriteriaRepo,
        notifier: Notifier,
        clock: Clock = _now,
    ) -> None:
        self._completions = completions
        self._enrolments = enrolments
        self._criteria = criteria
        self._notifier = notifier
        self._clock = clock
        self.settings = CourseSettingsCache(courses)

    # ------------------------------------------------------------------
    # Loading and saving
    # ------------------------------------------------------------------

    async def load(self, user_id: int, course_id: int) -> CompletionRecord:
        """Return the stored record, or a new unsaved one."""
        record = await self._completions.get(user_id, course_id)
        if record is None:
            record = CompletionRecord(user_id=user_id, course_id=course_id)
        return record

    async def _save(self, record: CompletionRecord) -> bool:
        if not record.is_new:
            ok = await self._completions.update(record)
            if not ok:
                logger.warning(
                    "Completion update rejected id=%s user=%s course=%s version=%s",
                    record.id,
                    record.user_id,
                    record.course_id,
                    record.version,
                )
            return ok

        if not record.time_enrolled:
            windows = await self._enrolments.windows_for_user(
                record.user_id, record.course_id
            )
            now = self._clock()
            record.time_enrolled = earliest_current_start(windows, now) or now

        ok = await self._completions.insert(record)
        if ok:
            RECORDS_CREATED.labels(source="single").inc()
            logger.debug(
                "Created completion id=%s user=%s course=%s",
                record.id,
                record.user_id,
                record.course_id,
            )
        return ok

    # ------------------------------------------------------------------
    # Record transitions
    # ------------------------------------------------------------------

    async def mark_enrolled(
        self, record: CompletionRecord, time: int | None = None
    ) -> bool:
        if not record.time_enrolled:
            record.time_enrolled = time if time is not None else self._clock()
        return await self._aggregate_or_save(record)

    async def mark_in_progress(
        self, record: CompletionRecord, time: int | None = None
    ) -> bool:
        if not record.time_started:
            record.time_started = time or self._clock()
        return await self._aggregate_or_save(record)

    async def mark_complete(
        self, record: CompletionRecord, time: int | None = None
    ) -> bool:
        """Mark the course complete.  Never changes an existing completion time."""
        if record.is_complete:
            return True

        previous = (record.time_started, record.time_completed)
        time_complete = time or self._clock()
        if not record.time_started:
            record.time_started = time_complete
        record.time_completed = max(time_complete, record.time_started)

        if not await self._save(record):
            record.time_started, record.time_completed = previous
            return False

        COURSE_COMPLETIONS.inc()
        logger.info(
            "Course completed user=%s course=%s at=%s",
            record.user_id,
            record.course_id,
            record.time_completed,
            extra={"user_id": record.user_id, "course_id": record.course_id},
        )
        await self._notifier.course_completed(
            CourseCompletedEvent(
                user_id=record.user_id,
                course_id=record.course_id,
                time_completed=record.time_completed,
            )
        )
        return True

    async def aggregate(self, record: CompletionRecord) -> AggregateResult:
        result = await self._aggregate(record)
        AGGREGATIONS.labels(result=result.value).inc()
        return result

    async def _aggregate(self, record: CompletionRecord) -> AggregateResult:
        if record.is_complete:
            record.reaggregate = 0
            if not await self._save(record):
                return AggregateResult.FAILED
            return AggregateResult.ALREADY_COMPLETE

        settings = await self.settings.get(record.course_id)
        if settings is None or not settings.enabled:
            return AggregateResult.NOT_APPLICABLE

        completions = await self._criteria.completions_for_user(
            record.user_id, record.course_id
        )
        record.reaggregate = 0

        if not completions:
            if not await self._save(record):
                return AggregateResult.FAILED
            return AggregateResult.NO_CRITERIA

        outcome = aggregate_criteria(completions, settings.aggregation_method)
        logger.debug(
            "Aggregated user=%s course=%s criteria=%d status=%s",
            record.user_id,
            record.course_id,
            len(completions),
            outcome.status.value,
        )

        if outcome.complete:
            if not await self.mark_complete(record, outcome.time_completed):
                return AggregateResult.FAILED
            return AggregateResult.COMPLETE

        record.time_completed = None
        if not await self._save(record):
            return AggregateResult.FAILED
        return AggregateResult.INCOMPLETE

    async def _aggregate_or_save(self, record: CompletionRecord) -> bool:
        result = await self.aggregate(record)
        if result is AggregateResult.NOT_APPLICABLE:
            return await self._save(record)
        return result.ok

    # ------------------------------------------------------------------
    # Reaggregation
    # ------------------------------------------------------------------

    async def flag_for_reaggregation(
        self, record: CompletionRecord, time: int | None = None
    ) -> bool:
        record.reaggregate = time or self._clock()
        return await self._save(record)

    async def run_pending_reaggregation(self, limit: int | None = None) -> int:
        """Aggregate records whose reaggregate flag is due; returns how many
        were processed successfully."""
        if limit is None:
            limit = SETTINGS.reaggregation_batch_size
        records = await self._completions.list_pending(self._clock(), limit)
        processed = 0
        for record in records:
            result = await self.aggregate(record)
            if result is AggregateResult.NOT_APPLICABLE:
                record.reaggregate = 0
                ok = await self._save(record)
            else:
                ok = result.ok
            if ok:
                processed += 1
        if records:
            logger.info(
                "Reaggregated %d of %d pending completion records",
                processed,
                len(records),
            )
        return processed

    # ------------------------------------------------------------------
    # Enrolment start
    # ------------------------------------------------------------------

    async def start_user(self, event: EnrolmentStarted) -> bool:
        """Handle a "user enrolment started" event.

        Returns True for an unknown course so the event dispatcher does not
        retry, and False when the course does not track completion from
        enrolment.
        """
        settings = await self.settings.get(event.course_id)
        if settings is None:
            logger.warning(
                "Could not load course id %s for enrolment start",
                event.course_id,
                extra={"user_id": event.user_id, "course_id": event.course_id},
            )
            return True

        if not settings.enabled or not settings.start_on_enrol:
            return False

        record = await self.load(event.user_id, event.course_id)
        if not record.time_enrolled:
            record.time_enrolled = event.time_start
        return await self.mark_in_progress(record, event.time_start)

    async def start_users_bulk(self, course_id: int) -> int:
        """Create records for enrolled users of a course that have none.

        Returns the number of records created.  Users who already have a
        record are skipped, so running this twice creates nothing new.
        """
        settings = await self.settings.get(course_id)
        if settings is None:
            logger.warning("Could not load course id %s for bulk start", course_id)
            return 0
        if not settings.enabled:
            return 0

        now = self._clock()
        starts: dict[int, list[int]] = {}
        for window in await self._enrolments.windows_for_course(course_id):
            if window.is_active(now):
                starts.setdefault(window.user_id, []).append(window.time_start)

        existing = await self._completions.user_ids_for_course(course_id)
        created = 0
        for user_id in sorted(starts.keys() - existing):
            record = CompletionRecord(
                user_id=user_id,
                course_id=course_id,
                time_enrolled=min(starts[user_id]) or now,
                time_started=now if settings.start_on_enrol else 0,
                reaggregate=0,
            )
            if await self._completions.insert(record):
                created += 1

        if created:
            RECORDS_CREATED.labels(source="bulk").inc(created)
        logger.info(
            "Bulk start course=%s created=%d skipped=%d",
            course_id,
            created,
            len(starts) - created,
            extra={"course_id": course_id},
        )
        return created
