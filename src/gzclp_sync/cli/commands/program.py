"""Program setup commands: init, add-exercise, status."""

from datetime import datetime, timezone
from typing import Annotated, Optional

import typer

from ...core.config import CURRENT_STATE_VERSION, DAYS
from ...core.models import ExerciseConfig, ProgramInfo, ProgramState, ProgressionState, UserSettings
from ...core.roles import is_main_lift, is_progressed_role, is_valid_role, progression_key
from ...core.units import format_weight, to_kg
from .. import views
from ..app import StatePathOption, app, get_store, load_state


@app.command()
def init(
    state_path: StatePathOption = None,
    unit: Annotated[
        str,
        typer.Option("--unit", "-u", help="Display unit: kg or lbs"),
    ] = "kg",
    workouts_per_week: Annotated[
        int,
        typer.Option("--workouts-per-week", "-w", help="Training days per week"),
    ] = 3,
    name: Annotated[
        str,
        typer.Option("--name", "-n", help="Program name"),
    ] = "GZCLP",
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing program without prompting"),
    ] = False,
) -> None:
    """
    Create an empty program.

    Add exercises with 'add-exercise', then run 'push' to create the four
    day routines in Hevy.
    """
    store = get_store(state_path)

    if store.exists() and not force:
        if not views.confirm_action(f"A program already exists at {store.state_path}. Overwrite?"):
            views.print_info("Cancelled.")
            raise typer.Exit(0)

    try:
        state = ProgramState(
            version=CURRENT_STATE_VERSION,
            program=ProgramInfo(
                name=name,
                created_at=datetime.now(timezone.utc).isoformat(),
                workouts_per_week=workouts_per_week,
            ),
            settings=UserSettings(unit=unit),  # type: ignore[arg-type]
        )
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    store.save(state)
    views.print_success(f"Created program '{name}' at {store.state_path}")


@app.command("add-exercise")
def add_exercise(
    exercise_id: Annotated[str, typer.Argument(help="Local exercise id, e.g. squat or lat-pulldown")],
    template_id: Annotated[
        str,
        typer.Option("--template-id", "-t", help="Hevy exercise template id"),
    ],
    weight: Annotated[
        float,
        typer.Option("--weight", "-w", help="Starting weight (T1 weight for main lifts), in your unit"),
    ],
    name: Annotated[
        Optional[str],
        typer.Option("--name", "-n", help="Display name (default: exercise id)"),
    ] = None,
    role: Annotated[
        Optional[str],
        typer.Option("--role", "-r", help="squat | bench | ohp | deadlift | t3 | warmup | cooldown"),
    ] = None,
    t2_weight: Annotated[
        Optional[float],
        typer.Option("--t2-weight", help="Starting T2 weight for a main lift (default: --weight)"),
    ] = None,
    stage: Annotated[
        int,
        typer.Option("--stage", "-s", help="Starting stage: 1, 2 or 3"),
    ] = 1,
    days: Annotated[
        Optional[list[str]],
        typer.Option("--day", "-d", help="Day(s) a T3 is trained on: A1, B1, A2, B2"),
    ] = None,
    state_path: StatePathOption = None,
) -> None:
    """
    Add an exercise and its starting progression.

    A main lift gets a T1 and a T2 progression; a T3 gets its own and is
    scheduled on the given days. Warmup and cooldown exercises are tracked
    but never progressed.
    """
    store = get_store(state_path)
    state = load_state(store)
    unit = state.settings.unit

    if role is not None and not is_valid_role(role):
        views.print_error(f"Unknown role: {role}")
        raise typer.Exit(1)
    if exercise_id in state.exercises:
        views.print_error(f"Exercise '{exercise_id}' already exists")
        raise typer.Exit(1)
    if is_main_lift(role) and any(e.role == role for e in state.exercises.values()):
        views.print_error(f"A {role} exercise is already configured")
        raise typer.Exit(1)
    if days and role != "t3":
        views.print_error("--day only applies to T3 exercises")
        raise typer.Exit(1)
    bad_days = [d for d in days or () if d not in DAYS]
    if bad_days:
        views.print_error(f"Unknown day(s): {', '.join(bad_days)}")
        raise typer.Exit(1)

    try:
        exercise = ExerciseConfig(
            id=exercise_id,
            template_id=template_id,
            name=name or exercise_id,
            role=role,  # type: ignore[arg-type]
        )
        created: list[tuple[str, ProgressionState]] = []
        if is_main_lift(role):
            for tier, start in (("T1", weight), ("T2", t2_weight if t2_weight is not None else weight)):
                created.append((tier, ProgressionState(exercise_id, to_kg(start, unit), stage - 1)))
        elif is_progressed_role(role):
            created.append(("T3", ProgressionState(exercise_id, to_kg(weight, unit), stage - 1)))
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    state.exercises[exercise_id] = exercise
    for tier, progress in created:
        key = progression_key(exercise_id, role, tier)  # type: ignore[arg-type]
        state.progression[key] = progress
        views.print_info(f"{key}: {format_weight(progress.current_weight, unit)}")
    for day in days or ():
        scheduled = state.t3_schedule.setdefault(day, [])
        if exercise_id not in scheduled:
            scheduled.append(exercise_id)

    store.save(state)
    views.print_success(f"Added {exercise.name}")


@app.command()
def status(
    state_path: StatePathOption = None,
) -> None:
    """Show progression for every exercise and the next day's routine."""
    store = get_store(state_path)
    state = load_state(store)

    views.print_status(state)
    views.console.print()
    views.print_day(state, state.program.current_day)
