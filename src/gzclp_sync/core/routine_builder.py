"""
Hevy routine payloads.

Builds the JSON bodies sent to the routines endpoints from local
progression: one routine per GZCLP day with the T1, T2 and scheduled T3
exercises, the set scheme of their current stage and per-tier rest timers.
"""

from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any

from .models import (
    Day,
    ExerciseConfig,
    ProgressionKey,
    ProgressionState,
    Tier,
    Unit,
    UserSettings,
)
from .progression import required_sets, target_reps
from .roles import exercises_for_day, progression_key
from .units import format_weight


def routine_title(day: Day) -> str:
    return f"GZCLP {day}"


def set_scheme(tier: Tier, stage: int) -> tuple[int, int]:
    """(sets, reps) prescribed for a tier at a stage."""
    return required_sets(tier, stage), target_reps(tier, stage)


def build_routine_exercise(
    exercise: ExerciseConfig,
    tier: Tier,
    weight_kg: float,
    stage: int,
    settings: UserSettings,
) -> dict[str, Any]:
    """One exercise entry of a routine payload."""
    sets, reps = set_scheme(tier, stage)
    return {
        "exercise_template_id": exercise.template_id,
        "rest_seconds": settings.rest_timers.get(tier),
        "sets": [
            {"type": "normal", "weight_kg": round(weight_kg, 2), "reps": reps}
            for _ in range(sets)
        ],
    }


def build_day_exercises(
    day: Day,
    exercises: Mapping[str, ExerciseConfig],
    progression: Mapping[ProgressionKey, ProgressionState],
    settings: UserSettings,
    t3_schedule: Mapping[str, Sequence[str]],
    weight_overrides: Mapping[ProgressionKey, float] | None = None,
) -> list[dict[str, Any]]:
    """
    Routine exercises for a day.

    Exercises without progression state are left out. weight_overrides
    replaces the local weight for selected keys (used for skipped or
    pulled exercises when a routine is created).
    """
    overrides = weight_overrides or {}
    entries = []
    for exercise, tier in exercises_for_day(exercises, day, t3_schedule):
        key = progression_key(exercise.id, exercise.role, tier)
        state = progression.get(key)
        if state is None:
            continue
        weight = overrides.get(key, state.current_weight)
        entries.append(build_routine_exercise(exercise, tier, weight, state.stage, settings))
    return entries


def build_routine_payload(
    title: str,
    routine_exercises: list[dict[str, Any]],
    notes: str | None = None,
    folder_id: int | None = None,
    include_folder: bool = True,
) -> dict[str, Any]:
    """
    Wrap exercises into a create/update request body.

    Update requests must not carry folder_id, so pass include_folder=False.
    """
    routine: dict[str, Any] = {"title": title}
    if include_folder:
        routine["folder_id"] = folder_id
    if notes:
        routine["notes"] = notes
    routine["exercises"] = routine_exercises
    return {"routine": routine}


def format_weight_change(name: str, old_weight: float | None, new_weight: float, unit: Unit) -> str:
    """E.g. "Squat: 60kg → 62.5kg", or "(new)" when there was no old weight."""
    old = format_weight(old_weight, unit) if old_weight is not None else "(new)"
    return f"{name}: {old} → {format_weight(new_weight, unit)}"


def generate_routine_notes(
    updates: Sequence[tuple[str, float | None, float]],
    unit: Unit,
    today: date | None = None,
) -> str:
    """
    Notes describing a routine update.

    Args:
        updates: (exercise name, old weight, new weight) in kg
        unit: Display unit
        today: Date stamped in the header, defaults to today

    Returns:
        Notes text, empty when there are no updates
    """
    if not updates:
        return ""
    today = today or date.today()
    lines = [f"Updated: {today.isoformat()}", "", "Changes:"]
    lines.extend(f"- {format_weight_change(*u, unit)}" for u in updates)
    return "\n".join(lines)
