"""Criteria aggregation.

Course completion is decided by folding each criterion's complete/not
complete flag into a three-valued accumulator:

  UNSET  no input seen yet
  TRUE   inputs so far satisfy the method
  FALSE  inputs so far fail the method

Activity, prerequisite-course and role criteria each fold into their own
bucket using the method configured for that criterion type.  Every other
criterion folds straight into the overall accumulator with the course's
overall method.  The buckets are then folded into the overall result in
the order role, activity, prerequisite.  A bucket that saw no input stays
UNSET and is skipped, so an empty bucket never turns an ALL into FALSE.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from completion.models.completion import (
    AggregationMethod,
    CriterionCompletion,
    CriterionType,
)


class AggregationState(Enum):
    UNSET = "unset"
    TRUE = "true"
    FALSE = "false"

    def __bool__(self) -> bool:
        return self is AggregationState.TRUE


def fold(method: int | None, value: bool, state: AggregationState) -> AggregationState:
    """Fold one boolean into ``state`` according to ``method``.

    An unknown or missing method leaves the state unchanged.
    """
    if method == AggregationMethod.ALL:
        if value and state is not AggregationState.FALSE:
            return AggregationState.TRUE
        return AggregationState.FALSE

    if method == AggregationMethod.ANY:
        if value:
            return AggregationState.TRUE
        if state is AggregationState.UNSET:
            return AggregationState.FALSE
        return state

    return state


def fold_all(
    method: int | None,
    values: Iterable[bool],
    state: AggregationState = AggregationState.UNSET,
) -> AggregationState:
    for value in values:
        state = fold(method, value, state)
    return state


@dataclass(frozen=True, slots=True)
class AggregationOutcome:
    status: AggregationState
    time_completed: int | None  # latest completion among completed criteria

    @property
    def complete(self) -> bool:
        return self.status is AggregationState.TRUE


_BUCKETED = (CriterionType.ROLE, CriterionType.ACTIVITY, CriterionType.COURSE)


def aggregate_criteria(
    completions: Iterable[CriterionCompletion], overall_method: int | None
) -> AggregationOutcome:
    buckets = {t: AggregationState.UNSET for t in _BUCKETED}
    overall = AggregationState.UNSET
    latest: int | None = None

    for completion in completions:
        if completion.time_completed:
            latest = max(latest or 0, completion.time_completed)

        if completion.criterion_type in buckets:
            buckets[completion.criterion_type] = fold(
                completion.aggregation_method,
                completion.is_complete,
                buckets[completion.criterion_type],
            )
        else:
            overall = fold(overall_method, completion.is_complete, overall)

    for criterion_type in _BUCKETED:
        bucket = buckets[criterion_type]
        if bucket is AggregationState.UNSET:
            continue
        overall = fold(overall_method, bool(bucket), overall)

    return AggregationOutcome(status=overall, time_completed=latest)
