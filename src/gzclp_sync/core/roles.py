"""
Role lookups: tier derivation, muscle groups and progression keys.

The tier of an exercise is a pure function of (role, day); nothing in the
program stores it.
"""

from collections.abc import Mapping, Sequence

from .config import (
    ALL_ROLES,
    LOWER_BODY_ROLES,
    MAIN_LIFT_ROLES,
    ROLE_DISPLAY_NAMES,
    T1_MAPPING,
    T2_MAPPING,
)
from .models import (
    AccessoryKey,
    Day,
    ExerciseConfig,
    MainLiftKey,
    MuscleGroup,
    ProgressionKey,
    Role,
    Tier,
)

# (role, day) -> tier for the main lifts; built once from the day mappings.
_MAIN_LIFT_TIERS: dict[tuple[Role, Day], Tier] = {
    **{(role, day): "T1" for day, role in T1_MAPPING.items()},
    **{(role, day): "T2" for day, role in T2_MAPPING.items()},
}


def is_main_lift(role: Role | None) -> bool:
    return role in MAIN_LIFT_ROLES


def is_valid_role(role: str) -> bool:
    return role in ALL_ROLES


def is_progressed_role(role: Role | None) -> bool:
    """Warmup and cooldown exercises are tracked but never progressed."""
    return role is not None and role not in ("warmup", "cooldown")


def role_display_name(role: Role) -> str:
    return ROLE_DISPLAY_NAMES[role]


def tier_for_day(role: Role, day: Day) -> Tier | None:
    """
    Derive the tier an exercise plays on a given day.

    Args:
        role: Exercise role
        day: GZCLP day

    Returns:
        "T1"/"T2" for a main lift scheduled on that day, "T3" for the t3
        role, None for main lifts not trained that day and for warmup or
        cooldown exercises.
    """
    if role == "t3":
        return "T3"
    if role in MAIN_LIFT_ROLES:
        return _MAIN_LIFT_TIERS.get((role, day))
    return None


def main_lifts_for_day(day: Day) -> tuple[Role, Role]:
    """Return (T1 role, T2 role) for a day."""
    return T1_MAPPING[day], T2_MAPPING[day]


def muscle_group_for_role(role: Role | None) -> MuscleGroup:
    if role in LOWER_BODY_ROLES:
        return "lower"
    return "upper"


def progression_key(exercise_id: str, role: Role | None, tier: Tier) -> ProgressionKey:
    """
    Build the progression key for an exercise.

    Main lifts in T1/T2 share state by role and tier, so swapping the
    exercise assigned to a role keeps its progression. Everything else is
    keyed by its own exercise id.
    """
    if role in MAIN_LIFT_ROLES and tier in ("T1", "T2"):
        return MainLiftKey(role=role, tier=tier)  # type: ignore[arg-type]
    return AccessoryKey(exercise_id=exercise_id)


def parse_progression_key(text: str) -> ProgressionKey:
    """
    Parse the string form of a progression key.

    "squat-T1" becomes MainLiftKey; anything else is an exercise id.
    """
    role, sep, tier = text.rpartition("-")
    if sep and role in MAIN_LIFT_ROLES and tier in ("T1", "T2"):
        return MainLiftKey(role=role, tier=tier)  # type: ignore[arg-type]
    return AccessoryKey(exercise_id=text)


def exercises_for_day(
    exercises: Mapping[str, ExerciseConfig],
    day: Day,
    t3_schedule: Mapping[str, Sequence[str]],
) -> list[tuple[ExerciseConfig, Tier]]:
    """
    Exercises trained on a day, in routine order: T1, T2, then scheduled T3s.

    T3s follow the order of the day's schedule; unknown ids are ignored.
    """
    t1_role, t2_role = main_lifts_for_day(day)
    t1 = next((ex for ex in exercises.values() if ex.role == t1_role), None)
    t2 = next((ex for ex in exercises.values() if ex.role == t2_role), None)

    result: list[tuple[ExerciseConfig, Tier]] = []
    if t1 is not None:
        result.append((t1, "T1"))
    if t2 is not None:
        result.append((t2, "T2"))
    for exercise_id in t3_schedule.get(day, ()):
        exercise = exercises.get(exercise_id)
        if exercise is not None and exercise.role == "t3":
            result.append((exercise, "T3"))
    return result
