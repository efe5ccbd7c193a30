"""
Workout sync pipeline.

Turns a batch of fetched Hevy workouts into pending changes: sorts them,
drops the ones already processed or not belonging to the program, detects
each workout's day from its routine id and runs the analyzer and generator.
"""

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .config import DEFAULT_WORKOUTS_PER_WEEK, NEXT_DAY
from .models import (
    Day,
    ExerciseConfig,
    PendingChange,
    ProgressionKey,
    ProgressionState,
    Unit,
    Workout,
    WorkoutAnalysisResult,
)
from .pending_changes import create_pending_changes_from_analysis
from .workout_analysis import (
    analyze_workout,
    deduplicate_discrepancies,
    find_day_by_routine_id,
    sort_workouts_chronologically,
)

logger = logging.getLogger(__name__)


@dataclass
class WorkoutSyncResult:
    """Everything one sync pass produced."""

    pending_changes: list[PendingChange] = field(default_factory=list)
    analysis_results: list[WorkoutAnalysisResult] = field(default_factory=list)
    discrepancies: list[WorkoutAnalysisResult] = field(default_factory=list)
    processed_workout_ids: list[str] = field(default_factory=list)
    skipped_workout_ids: list[str] = field(default_factory=list)
    last_day: Day | None = None


def next_day(day: Day) -> Day:
    """Next day in the A1 -> B1 -> A2 -> B2 rotation."""
    return NEXT_DAY[day]


def process_workouts(
    workouts: Sequence[Workout],
    exercises: Mapping[str, ExerciseConfig],
    progression: Mapping[ProgressionKey, ProgressionState],
    routine_ids: Mapping[str, str],
    unit: Unit,
    processed_ids: Sequence[str] = (),
    increments: dict[str, float] | None = None,
) -> WorkoutSyncResult:
    """
    Analyze new workouts and generate pending changes.

    Args:
        workouts: Fetched workouts in any order
        exercises: Configured exercises by id
        progression: Stored progression state
        routine_ids: Day -> Hevy routine id of the program
        unit: Display unit
        processed_ids: Workout ids already turned into changes
        increments: Optional increment override

    Returns:
        WorkoutSyncResult; workouts whose routine is not part of the
        program are listed as skipped and are not marked processed
    """
    result = WorkoutSyncResult()
    seen = set(processed_ids)

    for workout in sort_workouts_chronologically(workouts):
        if workout.id in seen:
            continue

        day = find_day_by_routine_id(workout.routine_id, routine_ids)
        if day is None:
            logger.debug("Workout %s (%s) is not a program routine", workout.id, workout.title)
            result.skipped_workout_ids.append(workout.id)
            continue

        analysis = analyze_workout(workout, exercises, progression, day)
        result.analysis_results.extend(analysis)
        result.processed_workout_ids.append(workout.id)
        result.last_day = day
        seen.add(workout.id)

    result.pending_changes = create_pending_changes_from_analysis(
        result.analysis_results, exercises, progression, unit, increments
    )
    result.discrepancies = deduplicate_discrepancies(result.analysis_results)

    logger.info(
        "Processed %d workouts: %d changes, %d discrepancies, %d skipped",
        len(result.processed_workout_ids),
        len(result.pending_changes),
        len(result.discrepancies),
        len(result.skipped_workout_ids),
    )
    return result


def matching_workouts(workouts: Sequence[Workout], routine_ids: Mapping[str, str]) -> list[Workout]:
    """Workouts performed from one of the program's routines."""
    valid = {rid for rid in routine_ids.values() if rid}
    return [w for w in workouts if w.routine_id in valid]


def weeks_on_program(
    workouts: Sequence[Workout],
    routine_ids: Mapping[str, str],
    workouts_per_week: int = DEFAULT_WORKOUTS_PER_WEEK,
) -> int:
    """Completed program weeks: matching workouts divided by weekly frequency."""
    return math.floor(len(matching_workouts(workouts, routine_ids)) / workouts_per_week)


def program_start_from_workouts(
    workouts: Sequence[Workout],
    routine_ids: Mapping[str, str],
    workouts_per_week: int = DEFAULT_WORKOUTS_PER_WEEK,
    now: datetime | None = None,
) -> str:
    """Back-calculate the program creation timestamp from logged workouts."""
    now = now or datetime.now(timezone.utc)
    weeks = weeks_on_program(workouts, routine_ids, workouts_per_week)
    return (now - timedelta(weeks=weeks)).isoformat()
