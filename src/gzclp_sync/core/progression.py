"""
GZCLP progression rules.

Pure per-tier state machine computing the next weight and stage from the
reps logged in a workout:

- T1: 5x3+ -> 6x2+ -> 10x1+ -> deload to 85%, AMRAP record tracked
- T2: 3x10 -> 3x8 -> 3x6 -> deload to 85%
- T3: 3x15+, progress when the final AMRAP set reaches 25, never deloads

Weights enter and leave in kilograms.
"""

from .config import (
    MAX_STAGE,
    T1_STAGES,
    T2_STAGES,
    T3_REQUIRED_SETS,
    T3_SCHEME,
    T3_SUCCESS_THRESHOLD,
    T3_TARGET_REPS,
)
from .models import MuscleGroup, ProgressionResult, ProgressionState, Tier, Unit
from .units import calculate_deload, format_weight, get_increment_kg


def required_sets(tier: Tier, stage: int) -> int:
    """Number of sets the scheme prescribes for a tier and stage."""
    if tier == "T1":
        return T1_STAGES[stage][0]
    if tier == "T2":
        return T2_STAGES[stage][0]
    return T3_REQUIRED_SETS


def target_reps(tier: Tier, stage: int) -> int:
    """Minimum reps per prescribed set (T3: the non-AMRAP sets)."""
    if tier == "T1":
        return T1_STAGES[stage][1]
    if tier == "T2":
        return T2_STAGES[stage][1]
    return T3_TARGET_REPS


def scheme_for(tier: Tier, stage: int) -> str:
    if tier == "T1":
        return T1_STAGES[stage][2]
    if tier == "T2":
        return T2_STAGES[stage][2]
    return T3_SCHEME


def _meets_scheme(reps: list[int], sets: int, target: int) -> bool:
    if len(reps) < sets:
        return False
    return all(r >= target for r in reps[:sets])


def is_t1_success(reps: list[int], stage: int) -> bool:
    """All prescribed T1 sets (at least the required count) hit target reps."""
    sets, target, _ = T1_STAGES[stage]
    return _meets_scheme(reps, sets, target)


def is_t2_success(reps: list[int], stage: int) -> bool:
    sets, target, _ = T2_STAGES[stage]
    return _meets_scheme(reps, sets, target)


def is_t3_success(reps: list[int]) -> bool:
    """Final AMRAP set reaches 25 reps with the full 3 sets logged."""
    if len(reps) < T3_REQUIRED_SETS:
        return False
    return reps[-1] >= T3_SUCCESS_THRESHOLD


def _calculate_main_tier(
    stages: dict[int, tuple[int, int, str]],
    success: bool,
    state: ProgressionState,
    increment: float,
    unit: Unit,
    amrap_reps: int | None,
    new_record: int | None,
) -> ProgressionResult:
    weight = state.current_weight
    scheme = stages[state.stage][2]
    at = format_weight(weight, unit)

    if success:
        return ProgressionResult(
            type="progress",
            new_weight=weight + increment,
            new_stage=state.stage,
            new_scheme=scheme,
            reason=f"Completed {scheme} at {at}. Adding {format_weight(increment, unit)}.",
            success=True,
            amrap_reps=amrap_reps,
            new_amrap_record=new_record,
        )

    if state.stage < MAX_STAGE:
        next_scheme = stages[state.stage + 1][2]
        return ProgressionResult(
            type="stage_change",
            new_weight=weight,
            new_stage=state.stage + 1,
            new_scheme=next_scheme,
            reason=f"Failed to complete {scheme} at {at}. Moving to {next_scheme}.",
            success=False,
            amrap_reps=amrap_reps,
            new_amrap_record=new_record,
        )

    deload = calculate_deload(weight, unit)
    restart = stages[0][2]
    return ProgressionResult(
        type="deload",
        new_weight=deload,
        new_stage=0,
        new_scheme=restart,
        reason=(
            f"Failed {scheme} at {at}. Deloading to {format_weight(deload, unit)} "
            f"and restarting at {restart}."
        ),
        success=False,
        amrap_reps=amrap_reps,
        new_base_weight=deload,
        new_amrap_record=new_record,
    )


def calculate_t1(
    state: ProgressionState,
    reps: list[int],
    muscle_group: MuscleGroup,
    unit: Unit,
    increments: dict[str, float] | None = None,
) -> ProgressionResult:
    """
    T1 progression.

    The AMRAP set is the last prescribed set; its reps are reported even
    when the workout failed, and the record only ever grows.
    """
    sets = T1_STAGES[state.stage][0]
    amrap_reps = reps[sets - 1] if len(reps) >= sets else 0
    return _calculate_main_tier(
        T1_STAGES,
        is_t1_success(reps, state.stage),
        state,
        get_increment_kg(muscle_group, unit, increments),
        unit,
        amrap_reps,
        max(state.amrap_record, amrap_reps),
    )


def calculate_t2(
    state: ProgressionState,
    reps: list[int],
    muscle_group: MuscleGroup,
    unit: Unit,
    increments: dict[str, float] | None = None,
) -> ProgressionResult:
    """T2 progression; no AMRAP tracking."""
    return _calculate_main_tier(
        T2_STAGES,
        is_t2_success(reps, state.stage),
        state,
        get_increment_kg(muscle_group, unit, increments),
        unit,
        None,
        None,
    )


def calculate_t3(
    state: ProgressionState,
    reps: list[int],
    muscle_group: MuscleGroup,
    unit: Unit,
    increments: dict[str, float] | None = None,
) -> ProgressionResult:
    """T3 progression. Failure repeats the same weight; there is no deload."""
    amrap_reps = reps[-1] if reps else 0
    weight = state.current_weight
    at = format_weight(weight, unit)

    if is_t3_success(reps):
        increment = get_increment_kg(muscle_group, unit, increments)
        return ProgressionResult(
            type="progress",
            new_weight=weight + increment,
            new_stage=0,
            new_scheme=T3_SCHEME,
            reason=(
                f"Hit {amrap_reps} reps on AMRAP set ({T3_SUCCESS_THRESHOLD}+ required) "
                f"at {at}. Adding {format_weight(increment, unit)}."
            ),
            success=True,
            amrap_reps=amrap_reps,
            new_amrap_record=max(state.amrap_record, amrap_reps),
        )

    if len(reps) < T3_REQUIRED_SETS:
        reason = (
            f"Logged {len(reps)} of {T3_REQUIRED_SETS} sets at {at}. "
            "Repeat same weight."
        )
    else:
        reason = (
            f"Hit {amrap_reps} reps on AMRAP set (need {T3_SUCCESS_THRESHOLD}+) "
            f"at {at}. Repeat same weight."
        )
    return ProgressionResult(
        type="repeat",
        new_weight=weight,
        new_stage=0,
        new_scheme=T3_SCHEME,
        reason=reason,
        success=False,
        amrap_reps=amrap_reps,
        new_amrap_record=max(state.amrap_record, amrap_reps),
    )


def calculate_progression(
    tier: Tier,
    state: ProgressionState,
    reps: list[int],
    muscle_group: MuscleGroup,
    unit: Unit,
    increments: dict[str, float] | None = None,
) -> ProgressionResult:
    """
    Calculate the next progression step for any tier.

    Args:
        tier: T1, T2 or T3
        state: Current progression state (weight in kg)
        reps: Reps per logged set, in order; missing reps must already be 0
        muscle_group: Selects the upper/lower increment
        unit: Display unit (increment system and deload rounding)
        increments: Optional increment override in the display unit

    Returns:
        ProgressionResult with the new weight in kg
    """
    if tier == "T1":
        return calculate_t1(state, reps, muscle_group, unit, increments)
    if tier == "T2":
        return calculate_t2(state, reps, muscle_group, unit, increments)
    return calculate_t3(state, reps, muscle_group, unit, increments)
