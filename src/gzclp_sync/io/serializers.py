"""
JSON serialization for program state and Hevy API records.

Handles conversion between dataclasses and JSON-compatible dicts. Progression
keys become strings on disk and key objects in memory.
"""

from typing import Any

from ..core.config import DAYS
from ..core.models import (
    ExerciseConfig,
    ExerciseHistory,
    HistoryEntry,
    PendingChange,
    ProgramInfo,
    ProgramState,
    ProgressionKey,
    ProgressionState,
    Routine,
    RoutineExercise,
    RoutineSet,
    UserSettings,
    WeightDiscrepancy,
    Workout,
    WorkoutExercise,
    WorkoutSet,
)
from ..core.roles import is_valid_role, parse_progression_key


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def _require(data: dict[str, Any], field_name: str, where: str) -> Any:
    if field_name not in data or data[field_name] is None:
        raise ValidationError(f"{where}: missing required field '{field_name}'")
    return data[field_name]


def _optional_float(value: Any) -> float | None:
    return float(value) if value is not None else None


def _optional_int(value: Any) -> int | None:
    return int(value) if value is not None else None


# =============================================================================
# HEVY RECORDS
# =============================================================================


def dict_to_workout(data: dict[str, Any]) -> Workout:
    """
    Convert a Hevy workout JSON object to a Workout.

    Missing reps and weights stay None; they are interpreted by the analyzer.

    Raises:
        ValidationError: If the workout id is missing
    """
    exercises = []
    for ex in data.get("exercises") or []:
        sets = [
            WorkoutSet(
                type=s.get("type") or "normal",
                weight_kg=_optional_float(s.get("weight_kg")),
                reps=_optional_int(s.get("reps")),
            )
            for s in ex.get("sets") or []
        ]
        exercises.append(
            WorkoutExercise(
                exercise_template_id=str(ex.get("exercise_template_id", "")),
                title=ex.get("title") or "",
                sets=sets,
            )
        )
    return Workout(
        id=str(_require(data, "id", "workout")),
        title=data.get("title") or "",
        start_time=data.get("start_time") or "",
        end_time=data.get("end_time") or "",
        routine_id=data.get("routine_id"),
        exercises=exercises,
    )


def dict_to_routine(data: dict[str, Any]) -> Routine:
    """
    Convert a Hevy routine JSON object to a Routine.

    Raises:
        ValidationError: If the routine id is missing
    """
    exercises = []
    for ex in data.get("exercises") or []:
        sets = [
            RoutineSet(
                type=s.get("type") or "normal",
                weight_kg=_optional_float(s.get("weight_kg")),
                reps=_optional_int(s.get("reps")),
            )
            for s in ex.get("sets") or []
        ]
        exercises.append(
            RoutineExercise(
                exercise_template_id=str(ex.get("exercise_template_id", "")),
                title=ex.get("title") or "",
                rest_seconds=_optional_int(ex.get("rest_seconds")),
                notes=ex.get("notes"),
                sets=sets,
            )
        )
    return Routine(
        id=str(_require(data, "id", "routine")),
        title=data.get("title") or "",
        folder_id=_optional_int(data.get("folder_id")),
        notes=data.get("notes"),
        exercises=exercises,
    )


# =============================================================================
# PROGRAM STATE
# =============================================================================


def exercise_config_to_dict(exercise: ExerciseConfig) -> dict[str, Any]:
    return {
        "id": exercise.id,
        "template_id": exercise.template_id,
        "name": exercise.name,
        "role": exercise.role,
    }


def dict_to_exercise_config(data: dict[str, Any]) -> ExerciseConfig:
    """
    Convert dict to ExerciseConfig.

    Raises:
        ValidationError: If required fields are missing or the role is unknown
    """
    role = data.get("role")
    if role is not None and not is_valid_role(role):
        raise ValidationError(f"Invalid role: {role!r}")
    try:
        return ExerciseConfig(
            id=str(_require(data, "id", "exercise")),
            template_id=str(_require(data, "template_id", "exercise")),
            name=data.get("name") or "",
            role=role,
        )
    except ValueError as e:
        raise ValidationError(str(e)) from e


def progression_state_to_dict(state: ProgressionState) -> dict[str, Any]:
    return {
        "exercise_id": state.exercise_id,
        "current_weight": state.current_weight,
        "stage": state.stage,
        "base_weight": state.base_weight,
        "last_workout_id": state.last_workout_id,
        "last_workout_date": state.last_workout_date,
        "amrap_record": state.amrap_record,
        "amrap_record_date": state.amrap_record_date,
        "amrap_record_workout_id": state.amrap_record_workout_id,
    }


def dict_to_progression_state(data: dict[str, Any]) -> ProgressionState:
    """
    Convert dict to ProgressionState.

    Raises:
        ValidationError: If data is invalid
    """
    try:
        return ProgressionState(
            exercise_id=str(_require(data, "exercise_id", "progression")),
            current_weight=float(_require(data, "current_weight", "progression")),
            stage=int(data.get("stage", 0)),
            base_weight=_optional_float(data.get("base_weight")),
            last_workout_id=data.get("last_workout_id"),
            last_workout_date=data.get("last_workout_date"),
            amrap_record=int(data.get("amrap_record", 0)),
            amrap_record_date=data.get("amrap_record_date"),
            amrap_record_workout_id=data.get("amrap_record_workout_id"),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid progression state: {e}") from e


def progression_to_dict(progression: dict[ProgressionKey, ProgressionState]) -> dict[str, Any]:
    return {str(key): progression_state_to_dict(state) for key, state in progression.items()}


def dict_to_progression(data: dict[str, Any]) -> dict[ProgressionKey, ProgressionState]:
    return {parse_progression_key(key): dict_to_progression_state(value) for key, value in data.items()}


def pending_change_to_dict(change: PendingChange) -> dict[str, Any]:
    discrepancy = None
    if change.discrepancy is not None:
        discrepancy = {
            "stored_weight": change.discrepancy.stored_weight,
            "actual_weight": change.discrepancy.actual_weight,
        }
    return {
        "id": change.id,
        "progression_key": str(change.progression_key),
        "exercise_id": change.exercise_id,
        "exercise_name": change.exercise_name,
        "tier": change.tier,
        "type": change.type,
        "current_weight": change.current_weight,
        "current_stage": change.current_stage,
        "new_weight": change.new_weight,
        "new_stage": change.new_stage,
        "new_scheme": change.new_scheme,
        "reason": change.reason,
        "workout_id": change.workout_id,
        "workout_date": change.workout_date,
        "created_at": change.created_at,
        "success": change.success,
        "day": change.day,
        "discrepancy": discrepancy,
        "amrap_reps": change.amrap_reps,
        "sets_completed": change.sets_completed,
        "sets_target": change.sets_target,
        "new_pr": change.new_pr,
        "new_amrap_record": change.new_amrap_record,
    }


def dict_to_pending_change(data: dict[str, Any]) -> PendingChange:
    """
    Convert dict to PendingChange.

    Raises:
        ValidationError: If required fields are missing
    """
    where = "pending change"
    raw_discrepancy = data.get("discrepancy")
    discrepancy = None
    if raw_discrepancy:
        discrepancy = WeightDiscrepancy(
            stored_weight=float(raw_discrepancy["stored_weight"]),
            actual_weight=float(raw_discrepancy["actual_weight"]),
        )
    try:
        return PendingChange(
            id=str(_require(data, "id", where)),
            progression_key=parse_progression_key(str(_require(data, "progression_key", where))),
            exercise_id=str(_require(data, "exercise_id", where)),
            exercise_name=data.get("exercise_name") or "",
            tier=_require(data, "tier", where),
            type=_require(data, "type", where),
            current_weight=float(_require(data, "current_weight", where)),
            current_stage=int(data.get("current_stage", 0)),
            new_weight=float(_require(data, "new_weight", where)),
            new_stage=int(data.get("new_stage", 0)),
            new_scheme=data.get("new_scheme") or "",
            reason=data.get("reason") or "",
            workout_id=str(_require(data, "workout_id", where)),
            workout_date=str(_require(data, "workout_date", where)),
            created_at=data.get("created_at") or "",
            success=bool(data.get("success", False)),
            day=data.get("day"),
            discrepancy=discrepancy,
            amrap_reps=_optional_int(data.get("amrap_reps")),
            sets_completed=_optional_int(data.get("sets_completed")),
            sets_target=_optional_int(data.get("sets_target")),
            new_pr=bool(data.get("new_pr", False)),
            new_amrap_record=_optional_int(data.get("new_amrap_record")),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid pending change: {e}") from e


def settings_to_dict(settings: UserSettings) -> dict[str, Any]:
    return {
        "unit": settings.unit,
        "increments": settings.increments,
        "rest_timers": dict(settings.rest_timers),
    }


def dict_to_settings(data: dict[str, Any]) -> UserSettings:
    defaults = UserSettings()
    try:
        return UserSettings(
            unit=data.get("unit", defaults.unit),
            increments=data.get("increments"),
            rest_timers={**defaults.rest_timers, **(data.get("rest_timers") or {})},
        )
    except ValueError as e:
        raise ValidationError(str(e)) from e


def program_info_to_dict(program: ProgramInfo) -> dict[str, Any]:
    return {
        "name": program.name,
        "created_at": program.created_at,
        "current_day": program.current_day,
        "workouts_per_week": program.workouts_per_week,
        "routine_ids": dict(program.routine_ids),
    }


def dict_to_program_info(data: dict[str, Any]) -> ProgramInfo:
    routine_ids = {day: rid for day, rid in (data.get("routine_ids") or {}).items() if rid}
    unknown = set(routine_ids) - set(DAYS)
    if unknown:
        raise ValidationError(f"Unknown days in routine_ids: {sorted(unknown)}")
    try:
        return ProgramInfo(
            name=data.get("name") or "GZCLP",
            created_at=data.get("created_at") or "",
            current_day=data.get("current_day") or "A1",
            workouts_per_week=int(data.get("workouts_per_week", 3)),
            routine_ids=routine_ids,
        )
    except ValueError as e:
        raise ValidationError(str(e)) from e


def program_state_to_dict(state: ProgramState) -> dict[str, Any]:
    return {
        "version": state.version,
        "program": program_info_to_dict(state.program),
        "settings": settings_to_dict(state.settings),
        "exercises": {eid: exercise_config_to_dict(ex) for eid, ex in state.exercises.items()},
        "progression": progression_to_dict(state.progression),
        "pending_changes": [pending_change_to_dict(c) for c in state.pending_changes],
        "t3_schedule": {day: list(ids) for day, ids in state.t3_schedule.items()},
        "processed_workout_ids": list(state.processed_workout_ids),
        "last_sync": state.last_sync,
    }


def dict_to_program_state(data: dict[str, Any]) -> ProgramState:
    """
    Convert a (migrated) state dict to ProgramState.

    Raises:
        ValidationError: If any part of the state is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid state: expected an object")
    return ProgramState(
        version=str(data.get("version", "")),
        program=dict_to_program_info(data.get("program") or {}),
        settings=dict_to_settings(data.get("settings") or {}),
        exercises={
            eid: dict_to_exercise_config(ex) for eid, ex in (data.get("exercises") or {}).items()
        },
        progression=dict_to_progression(data.get("progression") or {}),
        pending_changes=[dict_to_pending_change(c) for c in data.get("pending_changes") or []],
        t3_schedule={day: list(ids) for day, ids in (data.get("t3_schedule") or {}).items()},
        processed_workout_ids=list(data.get("processed_workout_ids") or []),
        last_sync=data.get("last_sync"),
    )


# =============================================================================
# HISTORY
# =============================================================================


def history_entry_to_dict(entry: HistoryEntry) -> dict[str, Any]:
    return {
        "date": entry.date,
        "workout_id": entry.workout_id,
        "weight": entry.weight,
        "stage": entry.stage,
        "tier": entry.tier,
        "success": entry.success,
        "change_type": entry.change_type,
        "amrap_reps": entry.amrap_reps,
    }


def dict_to_history_entry(data: dict[str, Any]) -> HistoryEntry:
    where = "history entry"
    try:
        return HistoryEntry(
            date=str(_require(data, "date", where)),
            workout_id=str(_require(data, "workout_id", where)),
            weight=float(_require(data, "weight", where)),
            stage=int(data.get("stage", 0)),
            tier=_require(data, "tier", where),
            success=bool(data.get("success", False)),
            change_type=_require(data, "change_type", where),
            amrap_reps=_optional_int(data.get("amrap_reps")),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid history entry: {e}") from e


def history_to_dict(history: dict[ProgressionKey, ExerciseHistory]) -> dict[str, Any]:
    return {
        str(key): {
            "exercise_name": h.exercise_name,
            "tier": h.tier,
            "role": h.role,
            "entries": [history_entry_to_dict(e) for e in h.entries],
        }
        for key, h in history.items()
    }


def dict_to_history(data: dict[str, Any]) -> dict[ProgressionKey, ExerciseHistory]:
    history = {}
    for raw_key, value in data.items():
        key = parse_progression_key(raw_key)
        history[key] = ExerciseHistory(
            progression_key=key,
            exercise_name=value.get("exercise_name") or raw_key,
            tier=value.get("tier") or "T3",
            role=value.get("role"),
            entries=[dict_to_history_entry(e) for e in value.get("entries") or []],
        )
    return history
