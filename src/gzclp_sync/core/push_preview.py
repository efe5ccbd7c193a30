"""
Push preview: diff local progression against the routines stored in Hevy.

Remote routines are read concurrently (reads have no side effects); the
resulting preview carries a push/pull/skip action per exercise that the
user can change before reconciling.
"""

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Protocol

from ..io.hevy_client import HevyNotFoundError
from .config import DAYS, WEIGHT_EPSILON
from .models import (
    Day,
    DayDiff,
    ExerciseConfig,
    ExerciseDiff,
    ProgressionKey,
    ProgressionState,
    PushPreview,
    Routine,
    RoutineExercise,
    SyncAction,
)
from .roles import exercises_for_day, progression_key

logger = logging.getLogger(__name__)

FETCH_WORKERS = 4


class RoutineReader(Protocol):
    def get_routine(self, routine_id: str) -> Routine: ...


@dataclass
class RemoteRoutineState:
    """What Hevy currently holds for one day; weights by exercise template id."""

    routine_id: str | None = None
    title: str | None = None
    weights: dict[str, float] = field(default_factory=dict)

    @property
    def exists(self) -> bool:
        return self.routine_id is not None


def routine_exercise_weight(exercise: RoutineExercise) -> float | None:
    """Working weight of a routine exercise: its heaviest set."""
    weights = [s.weight_kg for s in exercise.sets if s.weight_kg is not None]
    return max(weights) if weights else None


def routine_state(routine: Routine) -> RemoteRoutineState:
    weights = {}
    for exercise in routine.exercises:
        weight = routine_exercise_weight(exercise)
        if weight is not None:
            weights[exercise.exercise_template_id] = weight
    return RemoteRoutineState(routine_id=routine.id, title=routine.title, weights=weights)


def fetch_routine_state(client: RoutineReader, routine_id: str | None) -> RemoteRoutineState:
    """
    Read one routine.

    A missing id or a routine Hevy no longer has counts as absent; every
    other error propagates.
    """
    if not routine_id:
        return RemoteRoutineState()
    try:
        routine = client.get_routine(routine_id)
    except HevyNotFoundError:
        logger.warning("Routine %s not found in Hevy, treating as absent", routine_id)
        return RemoteRoutineState()
    return routine_state(routine)


def fetch_remote_state(
    client: RoutineReader,
    routine_ids: Mapping[str, str],
) -> dict[Day, RemoteRoutineState]:
    """Read the routines of all four days concurrently."""
    with ThreadPoolExecutor(max_workers=FETCH_WORKERS) as pool:
        futures = {day: pool.submit(fetch_routine_state, client, routine_ids.get(day)) for day in DAYS}
        return {day: future.result() for day, future in futures.items()}


def _default_action(is_changed: bool) -> SyncAction:
    return "push" if is_changed else "skip"


def _build_day_diff(
    day: Day,
    remote: RemoteRoutineState,
    exercises: Mapping[str, ExerciseConfig],
    progression: Mapping[ProgressionKey, ProgressionState],
    t3_schedule: Mapping[str, Sequence[str]],
) -> DayDiff:
    diffs = []
    for exercise, tier in exercises_for_day(exercises, day, t3_schedule):
        key = progression_key(exercise.id, exercise.role, tier)
        state = progression.get(key)
        if state is None:
            continue

        old_weight = remote.weights.get(exercise.template_id) if remote.exists else None
        new_weight = state.current_weight
        is_changed = old_weight is None or abs(new_weight - old_weight) > WEIGHT_EPSILON

        diffs.append(
            ExerciseDiff(
                exercise_id=exercise.id,
                name=exercise.name,
                tier=tier,
                progression_key=key,
                old_weight=old_weight,
                new_weight=new_weight,
                stage=state.stage,
                is_changed=is_changed,
                action=_default_action(is_changed),
            )
        )

    return DayDiff(
        day=day,
        routine_id=remote.routine_id,
        routine_name=remote.title or f"Day {day}",
        exercises=diffs,
    )


def _with_counts(days: list[DayDiff]) -> PushPreview:
    actions = [e.action for d in days for e in d.exercises]
    return PushPreview(
        days=days,
        total_changes=sum(d.change_count for d in days),
        push_count=actions.count("push"),
        pull_count=actions.count("pull"),
        skip_count=actions.count("skip"),
    )


def build_push_preview(
    remote_state: Mapping[Day, RemoteRoutineState],
    exercises: Mapping[str, ExerciseConfig],
    progression: Mapping[ProgressionKey, ProgressionState],
    t3_schedule: Mapping[str, Sequence[str]],
) -> PushPreview:
    """
    Build the preview for all four days.

    Changed exercises (or exercises with no remote routine) default to
    push, unchanged ones to skip. Pull is only ever chosen by the user.
    """
    days = [
        _build_day_diff(day, remote_state.get(day, RemoteRoutineState()), exercises, progression, t3_schedule)
        for day in DAYS
    ]
    return _with_counts(days)


def update_preview_action(
    preview: PushPreview,
    key: ProgressionKey,
    action: SyncAction,
) -> PushPreview:
    """Return a new preview with every diff for key set to action."""
    days = [
        replace(
            day,
            exercises=[
                replace(e, action=action) if e.progression_key == key else replace(e)
                for e in day.exercises
            ],
        )
        for day in preview.days
    ]
    return _with_counts(days)
