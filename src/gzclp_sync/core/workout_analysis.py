"""
Workout analysis.

Matches logged Hevy workouts to configured exercises and extracts the reps
and working weight that drive progression.
"""

import logging
from collections.abc import Mapping, Sequence

from .models import (
    Day,
    ExerciseConfig,
    ProgressionKey,
    ProgressionState,
    Role,
    Tier,
    WeightDiscrepancy,
    Workout,
    WorkoutAnalysisResult,
    WorkoutExercise,
    WorkoutSet,
)
from .roles import is_main_lift, is_progressed_role, progression_key, tier_for_day
from .units import weights_equal

logger = logging.getLogger(__name__)


def match_workout_to_exercises(
    workout: Workout,
    exercises: Mapping[str, ExerciseConfig],
) -> list[tuple[ExerciseConfig, WorkoutExercise]]:
    """Pair each workout exercise with the configured exercise sharing its template id."""
    by_template = {ex.template_id: ex for ex in exercises.values()}
    matches = []
    for workout_exercise in workout.exercises:
        config = by_template.get(workout_exercise.exercise_template_id)
        if config is not None:
            matches.append((config, workout_exercise))
    return matches


def extract_reps(sets: Sequence[WorkoutSet]) -> list[int]:
    """Reps of normal and dropset sets in order; missing reps count as a failed set."""
    return [s.reps or 0 for s in sets if s.type in ("normal", "dropset")]


def extract_working_weight(sets: Sequence[WorkoutSet]) -> float | None:
    """Weight of the first normal set that has one, None when no set does."""
    for s in sets:
        if s.type == "normal" and s.weight_kg is not None:
            return s.weight_kg
    return None


def derive_tier(role: Role, day: Day | None) -> Tier | None:
    """
    Tier for an analyzed exercise.

    Main lifts without a known day return None: guessing T1 vs T2 would
    corrupt stage state. A main lift logged on a day where it is neither
    T1 nor T2 is treated as an accessory.
    """
    if not is_main_lift(role):
        return "T3"
    if day is None:
        return None
    return tier_for_day(role, day) or "T3"


def analyze_workout(
    workout: Workout,
    exercises: Mapping[str, ExerciseConfig],
    progression: Mapping[ProgressionKey, ProgressionState],
    day: Day | None = None,
) -> list[WorkoutAnalysisResult]:
    """
    Extract progression data for every configured exercise in a workout.

    Args:
        workout: Logged Hevy workout
        exercises: Configured exercises by id
        progression: Stored progression state by key
        day: GZCLP day the workout belongs to, if known

    Returns:
        One result per matched, progressed exercise, in workout order
    """
    results: list[WorkoutAnalysisResult] = []

    for config, workout_exercise in match_workout_to_exercises(workout, exercises):
        if not is_progressed_role(config.role):
            continue

        tier = derive_tier(config.role, day)  # type: ignore[arg-type]
        if tier is None:
            logger.debug(
                "Skipping %s in workout %s: day unknown for main lift",
                config.name,
                workout.id,
            )
            continue

        reps = extract_reps(workout_exercise.sets)
        weight = extract_working_weight(workout_exercise.sets)

        key = progression_key(config.id, config.role, tier)
        stored = progression.get(key)
        discrepancy = None
        if (
            stored is not None
            and weight is not None
            and not weights_equal(stored.current_weight, weight)
        ):
            discrepancy = WeightDiscrepancy(
                stored_weight=stored.current_weight, actual_weight=weight
            )

        results.append(
            WorkoutAnalysisResult(
                exercise_id=config.id,
                exercise_name=config.name,
                tier=tier,
                reps=reps,
                weight=weight,
                workout_id=workout.id,
                workout_date=workout.start_time,
                day=day,
                discrepancy=discrepancy,
            )
        )

    return results


def sort_workouts_chronologically(workouts: Sequence[Workout]) -> list[Workout]:
    """Oldest first. Hevy timestamps are ISO-8601 UTC, so they sort as text."""
    return sorted(workouts, key=lambda w: w.start_time)


def filter_new_workouts(
    workouts: Sequence[Workout],
    last_processed_id: str | None,
) -> list[Workout]:
    """
    Workouts after the last processed one.

    Expects chronological order. If the id is unknown every workout is
    returned.
    """
    if not last_processed_id:
        return list(workouts)
    for index, workout in enumerate(workouts):
        if workout.id == last_processed_id:
            return list(workouts[index + 1 :])
    return list(workouts)


def deduplicate_discrepancies(
    results: Sequence[WorkoutAnalysisResult],
) -> list[WorkoutAnalysisResult]:
    """Keep the most recent discrepant result per exercise and tier."""
    latest: dict[tuple[str, str], WorkoutAnalysisResult] = {}
    for result in results:
        if result.discrepancy is None:
            continue
        key = (result.exercise_id, result.tier)
        existing = latest.get(key)
        if existing is None or result.workout_date > existing.workout_date:
            latest[key] = result
    return list(latest.values())


def find_day_by_routine_id(
    routine_id: str | None,
    routine_ids: Mapping[str, str],
) -> Day | None:
    """Which GZCLP day a routine id belongs to, if any."""
    if not routine_id:
        return None
    for day, rid in routine_ids.items():
        if rid == routine_id:
            return day  # type: ignore[return-value]
    return None
