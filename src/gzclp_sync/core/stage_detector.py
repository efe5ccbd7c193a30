"""
Stage detection from set patterns.

Infers a tier's current stage from the sets of a routine or logged workout,
used to bootstrap progression state when importing an existing program.
"""

from collections.abc import Sequence
from typing import Protocol

from .config import T3_SCHEME
from .models import StageDetectionResult, Tier, Workout, WorkoutSet
from .progression import scheme_for

# (expected set count, expected reps) -> stage, checked in order
T1_PATTERNS: tuple[tuple[int, int, int], ...] = (
    (5, 3, 0),
    (6, 2, 1),
    (10, 1, 2),
)

T2_PATTERNS: tuple[tuple[int, int, int], ...] = (
    (3, 10, 0),
    (3, 8, 1),
    (3, 6, 2),
)


class _SetLike(Protocol):
    type: str
    reps: int | None
    weight_kg: float | None


def _normal_sets(sets: Sequence[_SetLike]) -> list[_SetLike]:
    return [s for s in sets if s.type == "normal"]


def modal_reps(reps: Sequence[int | None]) -> int:
    """
    Most frequent rep count; ties go to the value seen first.

    Missing reps count as 0.
    """
    counts: dict[int, int] = {}
    for r in reps:
        value = r or 0
        counts[value] = counts.get(value, 0) + 1

    best, best_count = 0, 0
    for value, count in counts.items():
        if count > best_count:
            best, best_count = value, count
    return best


def detect_stage(sets: Sequence[_SetLike], tier: Tier) -> StageDetectionResult | None:
    """
    Detect the stage of a tier from its sets.

    Args:
        sets: Routine or workout sets (only "normal" sets are considered)
        tier: T1, T2 or T3

    Returns:
        Detection result with confidence "high", or None when no normal
        sets exist or the pattern matches no stage (manual input needed)
    """
    normal = _normal_sets(sets)
    if not normal:
        return None

    if tier == "T3":
        return StageDetectionResult(
            stage=0, confidence="high", set_count=len(normal), rep_scheme=T3_SCHEME
        )

    set_count = len(normal)
    reps = modal_reps([s.reps for s in normal])
    patterns = T1_PATTERNS if tier == "T1" else T2_PATTERNS

    for expected_sets, expected_reps, stage in patterns:
        if set_count == expected_sets and reps == expected_reps:
            return StageDetectionResult(
                stage=stage,
                confidence="high",
                set_count=set_count,
                rep_scheme=scheme_for(tier, stage),
            )
    return None


def manual_stage_result(stage: int, set_count: int, tier: Tier) -> StageDetectionResult:
    """Build a detection result for a stage the user picked by hand."""
    if stage not in (0, 1, 2):
        raise ValueError(f"stage must be 0, 1 or 2, got {stage}")
    return StageDetectionResult(
        stage=stage,
        confidence="manual",
        set_count=set_count,
        rep_scheme=scheme_for(tier, stage),
    )


def extract_weight(sets: Sequence[_SetLike]) -> float | None:
    """Heaviest weight among normal sets; missing weights are ignored, not zero."""
    weights = [s.weight_kg for s in _normal_sets(sets) if s.weight_kg is not None]
    return max(weights) if weights else None


def detect_stage_from_workout_history(
    workouts: Sequence[Workout],
    template_id: str,
    tier: Tier,
) -> StageDetectionResult | None:
    """
    Detect a stage from the most recent workout containing the template.

    Args:
        workouts: Logged workouts in any order
        template_id: Hevy exercise template id
        tier: Tier to detect

    Returns:
        Detection result for the latest occurrence, or None
    """
    sets = latest_exercise_sets(workouts, template_id)
    if sets is None:
        return None
    return detect_stage(sets, tier)


def latest_exercise_sets(workouts: Sequence[Workout], template_id: str) -> list[WorkoutSet] | None:
    """Sets of the most recent logged occurrence of a template, if any."""
    for workout in sorted(workouts, key=lambda w: w.start_time, reverse=True):
        for exercise in workout.exercises:
            if exercise.exercise_template_id == template_id:
                return list(exercise.sets)
    return None


def count_normal_sets(sets: Sequence[_SetLike]) -> int:
    return len(_normal_sets(sets))
