"""Analysis commands: predict, detect-stage."""

from dataclasses import replace
from typing import Annotated, Optional

import typer

from ...core.models import MainLiftKey, ProgramState, ProgressionKey, Tier
from ...core.prediction import PredictionInput, predict_progression
from ...core.roles import muscle_group_for_role, parse_progression_key
from ...core.stage_detector import (
    count_normal_sets,
    detect_stage_from_workout_history,
    latest_exercise_sets,
    manual_stage_result,
)
from ...io.config_loader import load_prediction_config, load_sync_pages
from ...io.hevy_client import HevyCancelledError, HevyClientError
from .. import views
from ..app import StatePathOption, app, get_client, get_store, load_state


def _tier_of(key: ProgressionKey) -> Tier:
    return key.tier if isinstance(key, MainLiftKey) else "T3"


def _resolve_key(state: ProgramState, text: str) -> ProgressionKey:
    key = parse_progression_key(text)
    if key not in state.progression:
        views.print_error(f"No progression for '{text}'")
        raise typer.Exit(1)
    return key


@app.command()
def predict(
    key: Annotated[
        Optional[str],
        typer.Argument(help="Progression key, e.g. squat-T1 (default: every key)"),
    ] = None,
    horizon: Annotated[
        Optional[int],
        typer.Option("--horizon", min=0, help="Workouts to simulate"),
    ] = None,
    assume_success: Annotated[
        bool,
        typer.Option("--assume-success", help="Ignore history and assume every workout succeeds"),
    ] = False,
    state_path: StatePathOption = None,
) -> None:
    """Forecast weights and deloads from recorded history."""
    store = get_store(state_path)
    state = load_state(store)
    history = store.load_history()

    config = load_prediction_config()
    if horizon is not None:
        config = replace(config, horizon=horizon)
    if assume_success:
        config = replace(config, assume_success=True)

    keys = [_resolve_key(state, key)] if key else sorted(state.progression, key=str)
    if not keys:
        views.print_info("No exercises configured.")
        return

    for k in keys:
        progress = state.progression[k]
        exercise = state.exercises.get(progress.exercise_id)
        result = predict_progression(
            PredictionInput(
                progression_key=k,
                current_weight=progress.current_weight,
                current_stage=progress.stage,
                tier=_tier_of(k),
                muscle_group=muscle_group_for_role(exercise.role if exercise else None),
                unit=state.settings.unit,
                history=history[k].entries if k in history else [],
                workouts_per_week=state.program.workouts_per_week,
            ),
            config,
        )
        views.print_prediction(str(k), result, state.settings.unit, history.get(k))


@app.command("detect-stage")
def detect_stage(
    key: Annotated[str, typer.Argument(help="Progression key, e.g. bench-T2")],
    apply_stage: Annotated[
        bool,
        typer.Option("--apply", help="Store the detected stage"),
    ] = False,
    manual_stage: Annotated[
        Optional[int],
        typer.Option("--stage", min=1, max=3, help="Stage (1-3) to use when no set pattern matches"),
    ] = None,
    state_path: StatePathOption = None,
) -> None:
    """
    Infer the current stage from the latest Hevy workout with the exercise.

    When the logged sets match no known scheme, --stage supplies the stage
    by hand.
    """
    store = get_store(state_path)
    state = load_state(store)
    progression_key = _resolve_key(state, key)
    progress = state.progression[progression_key]
    exercise = state.exercises.get(progress.exercise_id)
    if exercise is None:
        views.print_error(f"Exercise '{progress.exercise_id}' is not configured")
        raise typer.Exit(1)

    client = get_client()
    try:
        workouts = client.list_workouts(max_pages=load_sync_pages())
    except HevyCancelledError:
        views.print_info("Cancelled.")
        raise typer.Exit(0)
    except HevyClientError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    tier = _tier_of(progression_key)
    result = detect_stage_from_workout_history(workouts, exercise.template_id, tier)
    if result is None and manual_stage is not None:
        sets = latest_exercise_sets(workouts, exercise.template_id) or []
        result = manual_stage_result(manual_stage - 1, count_normal_sets(sets), tier)
    views.print_stage_detection(result, f"{exercise.name} ({key})")
    if result is None:
        views.print_info("Pass --stage N to set the stage by hand.")

    if apply_stage and result is not None:
        state.progression[progression_key] = replace(progress, stage=result.stage)
        store.save(state)
        views.print_success(f"Stored stage {result.stage + 1} for {key}")
