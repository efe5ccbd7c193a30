"""
Pending changes: generation, review edits, application and history.

A pending change wraps one progression calculation into a reviewable
proposal. Nothing here mutates its inputs; every function returns new
dicts and records.
"""

import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime, timezone

from .models import (
    Day,
    ExerciseConfig,
    ExerciseHistory,
    HistoryEntry,
    PendingChange,
    ProgressionKey,
    ProgressionResult,
    ProgressionState,
    Tier,
    Unit,
    WeightDiscrepancy,
    WorkoutAnalysisResult,
)
from .progression import calculate_progression, required_sets
from .roles import is_main_lift, muscle_group_for_role, progression_key
from .units import format_weight

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def display_name(exercise: ExerciseConfig, tier: Tier) -> str:
    """Main lifts are shown with their tier, e.g. "T1 Squat"."""
    if is_main_lift(exercise.role) and tier in ("T1", "T2"):
        return f"{tier} {exercise.name}"
    return exercise.name


def create_pending_change(
    exercise: ExerciseConfig,
    state: ProgressionState,
    result: ProgressionResult,
    workout_id: str,
    workout_date: str,
    tier: Tier,
    day: Day | None = None,
    discrepancy: WeightDiscrepancy | None = None,
    sets_completed: int | None = None,
    sets_target: int | None = None,
    new_pr: bool = False,
    new_amrap_record: int | None = None,
) -> PendingChange:
    """
    Build a PendingChange from a progression result and its provenance.

    Args:
        exercise: Configured exercise
        state: Stored progression state (its weight is shown as current)
        result: Calculator output
        workout_id: Workout that triggered the change
        workout_date: ISO start time of that workout
        tier: Tier the exercise was trained at
        day: GZCLP day of the workout
        discrepancy: Stored vs. lifted weight, when they differ

    Returns:
        New PendingChange with a fresh id
    """
    return PendingChange(
        id=uuid.uuid4().hex,
        progression_key=progression_key(exercise.id, exercise.role, tier),
        exercise_id=exercise.id,
        exercise_name=display_name(exercise, tier),
        tier=tier,
        type=result.type,
        current_weight=state.current_weight,
        current_stage=state.stage,
        new_weight=result.new_weight,
        new_stage=result.new_stage,
        new_scheme=result.new_scheme,
        reason=result.reason,
        workout_id=workout_id,
        workout_date=workout_date,
        created_at=_now_iso(),
        success=result.success,
        day=day,
        discrepancy=discrepancy,
        amrap_reps=result.amrap_reps,
        sets_completed=sets_completed,
        sets_target=sets_target,
        new_pr=new_pr,
        new_amrap_record=new_amrap_record,
    )


def create_pending_changes_from_analysis(
    results: Iterable[WorkoutAnalysisResult],
    exercises: Mapping[str, ExerciseConfig],
    progression: Mapping[ProgressionKey, ProgressionState],
    unit: Unit,
    increments: dict[str, float] | None = None,
) -> list[PendingChange]:
    """
    Turn analysis results into pending changes.

    Results are dropped when the exercise is not configured or has no role,
    when no progression state exists for its key (logged), and when the
    outcome is a plain repeat. With a discrepancy the weight actually lifted
    drives the calculation.
    """
    changes: list[PendingChange] = []

    for result in results:
        exercise = exercises.get(result.exercise_id)
        if exercise is None or exercise.role is None:
            continue

        tier = result.tier
        key = progression_key(result.exercise_id, exercise.role, tier)
        stored = progression.get(key)
        if stored is None:
            logger.warning(
                'Skipping "%s" (%s): no progression state for key "%s"',
                exercise.name,
                tier,
                key,
            )
            continue

        reps = result.reps
        if result.weight is None:
            logger.warning(
                'No weight logged for "%s" (%s) in workout %s, counting it as a failure',
                exercise.name,
                tier,
                result.workout_id,
            )
            lifted = stored.current_weight
            reps = []
        elif result.discrepancy:
            lifted = result.discrepancy.actual_weight
        else:
            lifted = result.weight
        calc_state = replace(stored, current_weight=lifted)
        outcome = calculate_progression(
            tier,
            calc_state,
            reps,
            muscle_group_for_role(exercise.role),
            unit,
            increments,
        )
        if outcome.type == "repeat":
            continue

        new_pr = outcome.amrap_reps is not None and outcome.amrap_reps > stored.amrap_record
        change = create_pending_change(
            exercise,
            stored,
            outcome,
            result.workout_id,
            result.workout_date,
            tier,
            day=result.day,
            discrepancy=result.discrepancy,
            sets_completed=len(result.reps),
            sets_target=required_sets(tier, stored.stage),
            new_pr=new_pr,
            new_amrap_record=outcome.amrap_reps if new_pr else None,
        )
        logger.debug(
            'Created %s change for "%s" (%s) key=%s workout=%s',
            change.type,
            exercise.name,
            tier,
            key,
            result.workout_id,
        )
        changes.append(change)

    return changes


def apply_pending_change(
    progression: Mapping[ProgressionKey, ProgressionState],
    change: PendingChange,
) -> dict[ProgressionKey, ProgressionState]:
    """
    Merge one change into the progression store.

    base_weight moves only on deload. Unknown keys leave the store as is.
    """
    current = progression.get(change.progression_key)
    if current is None:
        return dict(progression)

    updated = replace(
        current,
        current_weight=change.new_weight,
        stage=change.new_stage,
        last_workout_id=change.workout_id,
        last_workout_date=change.workout_date,
    )
    if change.type == "deload":
        updated = replace(updated, base_weight=change.new_weight)
    if change.new_amrap_record is not None and change.new_amrap_record > current.amrap_record:
        updated = replace(
            updated,
            amrap_record=change.new_amrap_record,
            amrap_record_date=change.workout_date,
            amrap_record_workout_id=change.workout_id,
        )

    merged = dict(progression)
    merged[change.progression_key] = updated
    return merged


def apply_all_pending_changes(
    progression: Mapping[ProgressionKey, ProgressionState],
    changes: Sequence[PendingChange],
) -> dict[ProgressionKey, ProgressionState]:
    """Apply changes in the given order; the caller orders them chronologically."""
    result = dict(progression)
    for change in changes:
        result = apply_pending_change(result, change)
    return result


def modify_pending_change_weight(
    change: PendingChange,
    new_weight: float,
    unit: Unit = "kg",
) -> PendingChange:
    """Copy of a change with a user-chosen weight (kg)."""
    return replace(
        change,
        new_weight=new_weight,
        reason=(
            f"Modified by user: {format_weight(change.current_weight, unit)} -> "
            f"{format_weight(new_weight, unit)} "
            f"(original suggestion: {format_weight(change.new_weight, unit)})"
        ),
    )


def sort_changes_chronologically(changes: Sequence[PendingChange]) -> list[PendingChange]:
    return sorted(changes, key=lambda c: c.workout_date)


# =============================================================================
# HISTORY
# =============================================================================


def history_entry_from_change(change: PendingChange) -> HistoryEntry:
    """History records the state the workout was performed at."""
    return HistoryEntry(
        date=change.workout_date,
        workout_id=change.workout_id,
        weight=change.current_weight,
        stage=change.current_stage,
        tier=change.tier,
        success=change.success,
        change_type=change.type,
        amrap_reps=change.amrap_reps,
    )


def record_progression_history(
    history: Mapping[ProgressionKey, ExerciseHistory],
    change: PendingChange,
    exercises: Mapping[str, ExerciseConfig],
) -> dict[ProgressionKey, ExerciseHistory]:
    """
    Append a change to the history of its progression key.

    A workout is recorded at most once per key; entries stay sorted by date.
    """
    key = change.progression_key
    existing = history.get(key)
    if existing is not None and any(e.workout_id == change.workout_id for e in existing.entries):
        return dict(history)

    entry = history_entry_from_change(change)
    if existing is not None:
        updated = replace(
            existing,
            entries=sorted([*existing.entries, entry], key=lambda e: e.date),
        )
    else:
        exercise = exercises.get(change.exercise_id)
        updated = ExerciseHistory(
            progression_key=key,
            exercise_name=exercise.name if exercise else change.exercise_name,
            tier=change.tier,
            role=exercise.role if exercise else None,
            entries=[entry],
        )

    merged = dict(history)
    merged[key] = updated
    return merged


def record_multiple_changes(
    history: Mapping[ProgressionKey, ExerciseHistory],
    changes: Iterable[PendingChange],
    exercises: Mapping[str, ExerciseConfig],
) -> dict[ProgressionKey, ExerciseHistory]:
    result = dict(history)
    for change in changes:
        result = record_progression_history(result, change, exercises)
    return result
