"""
CLI view formatters using Rich for pretty console output.

Handles table formatting of program state, pending changes, the push
preview, sync results and predictions.
"""

from rich.console import Console
from rich.table import Table

from ..core.config import DAYS
from ..core.models import (
    ExerciseHistory,
    PendingChange,
    ProgramState,
    PushPreview,
    StageDetectionResult,
    SyncResult,
    Unit,
)
from ..core.prediction import PredictionResult
from ..core.progression import scheme_for
from ..core.roles import exercises_for_day, progression_key, role_display_name
from ..core.units import format_weight

console = Console()

_CHANGE_STYLES = {
    "progress": "green",
    "stage_change": "yellow",
    "deload": "red",
    "repeat": "dim",
}

_ACTION_STYLES = {
    "push": "green",
    "pull": "cyan",
    "skip": "dim",
}


def format_status_table(state: ProgramState) -> Table:
    """Exercise / tier / weight / scheme table for every configured key."""
    unit = state.settings.unit
    table = Table(title=f"{state.program.name} (next day: {state.program.current_day})")

    table.add_column("Key", style="cyan")
    table.add_column("Exercise")
    table.add_column("Role")
    table.add_column("Weight", justify="right")
    table.add_column("Scheme", justify="center")
    table.add_column("AMRAP PR", justify="right")

    for key, progress in sorted(state.progression.items(), key=lambda kv: str(kv[0])):
        exercise = state.exercises.get(progress.exercise_id)
        name = exercise.name if exercise else progress.exercise_id
        role = role_display_name(exercise.role) if exercise and exercise.role else "-"
        tier = getattr(key, "tier", "T3")
        table.add_row(
            str(key),
            name,
            role,
            format_weight(progress.current_weight, unit),
            scheme_for(tier, progress.stage),
            str(progress.amrap_record) if progress.amrap_record else "-",
        )

    return table


def print_status(state: ProgramState) -> None:
    console.print(format_status_table(state))

    program = state.program
    if state.pending_changes:
        console.print(f"[yellow]{len(state.pending_changes)} pending change(s), run 'review'[/yellow]")
    if state.last_sync:
        console.print(f"[dim]Last sync: {state.last_sync[:16]}[/dim]")
    missing = [d for d in DAYS if d not in program.routine_ids]
    if missing:
        console.print(f"[dim]No Hevy routine yet for: {', '.join(missing)}[/dim]")


def print_day(state: ProgramState, day: str) -> None:
    """List the exercises of one day in routine order."""
    unit = state.settings.unit
    table = Table(title=f"Day {day}")
    table.add_column("Tier", style="cyan")
    table.add_column("Exercise")
    table.add_column("Weight", justify="right")
    table.add_column("Scheme", justify="center")

    for exercise, tier in exercises_for_day(state.exercises, day, state.t3_schedule):
        progress = state.progression.get(progression_key(exercise.id, exercise.role, tier))
        if progress is None:
            continue
        table.add_row(
            tier,
            exercise.name,
            format_weight(progress.current_weight, unit),
            scheme_for(tier, progress.stage),
        )
    console.print(table)


def format_pending_table(changes: list[PendingChange], unit: Unit) -> Table:
    """
    Format pending changes as a Rich table.

    Args:
        changes: Pending changes in display order
        unit: Display unit

    Returns:
        Rich Table object
    """
    table = Table(title="Pending Changes")

    table.add_column("#", justify="right", style="dim")
    table.add_column("Date", style="cyan")
    table.add_column("Exercise")
    table.add_column("Change", justify="center")
    table.add_column("Weight", justify="right")
    table.add_column("Scheme", justify="center")
    table.add_column("Reason")

    for i, change in enumerate(changes, 1):
        style = _CHANGE_STYLES.get(change.type, "white")
        weight = (
            f"{format_weight(change.current_weight, unit)} → "
            f"{format_weight(change.new_weight, unit)}"
        )
        reason = change.reason
        if change.new_pr:
            reason += " [bold magenta]PR![/bold magenta]"
        if change.discrepancy is not None:
            reason += (
                f" [yellow](lifted {format_weight(change.discrepancy.actual_weight, unit)})[/yellow]"
            )
        table.add_row(
            str(i),
            change.workout_date[:10],
            change.exercise_name,
            f"[{style}]{change.type}[/{style}]",
            weight,
            change.new_scheme,
            reason,
        )

    return table


def print_pending_changes(changes: list[PendingChange], unit: Unit) -> None:
    if not changes:
        print_info("No pending changes.")
        return
    console.print(format_pending_table(changes, unit))


def print_push_preview(preview: PushPreview, unit: Unit) -> None:
    """One table per day, with the action chosen for each exercise."""
    for day in preview.days:
        title = f"{day.day}: {day.routine_name}"
        if day.routine_id is None:
            title += " [dim](new routine)[/dim]"
        table = Table(title=title)
        table.add_column("Key", style="cyan")
        table.add_column("Exercise")
        table.add_column("Hevy", justify="right")
        table.add_column("Local", justify="right")
        table.add_column("Action", justify="center")

        for diff in day.exercises:
            style = _ACTION_STYLES[diff.action]
            local = format_weight(diff.new_weight, unit)
            if diff.is_changed:
                local = f"[bold]{local}[/bold]"
            table.add_row(
                str(diff.progression_key),
                diff.name,
                format_weight(diff.old_weight, unit),
                local,
                f"[{style}]{diff.action}[/{style}]",
            )
        console.print(table)

    console.print(
        f"{preview.total_changes} changed: "
        f"[green]{preview.push_count} push[/green], "
        f"[cyan]{preview.pull_count} pull[/cyan], "
        f"[dim]{preview.skip_count} skip[/dim]"
    )


def print_sync_result(result: SyncResult) -> None:
    if result.created_days:
        print_success(f"Created routines: {', '.join(result.created_days)}")
    if result.updated_days:
        print_success(f"Updated routines: {', '.join(result.updated_days)}")
    if result.pull_updates:
        print_info(f"Pulled {len(result.pull_updates)} weight(s) from Hevy")
    for error in result.errors:
        print_error(f"{error.day}: {error.message}")
    if result.cancelled:
        print_info("Sync cancelled. Run push again to finish the remaining days.")
    elif result.success and not (result.created_days or result.updated_days or result.pull_updates):
        print_info("Nothing to sync.")


def print_prediction(
    key: str,
    prediction: PredictionResult,
    unit: Unit,
    history: ExerciseHistory | None = None,
) -> None:
    """Forecast table for one progression key."""
    samples = len(history.entries) if history else 0
    table = Table(title=f"Forecast for {key} ({samples} recorded workouts)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Date", style="cyan")
    table.add_column("Weight", justify="right")
    table.add_column("Stage", justify="center")
    table.add_column("Confidence", justify="right")
    table.add_column("", justify="left")

    for point in prediction.predictions:
        marker = ""
        if point.is_deload:
            marker = "[red]deload[/red]"
        elif point.is_stage_change:
            marker = "[yellow]stage change[/yellow]"
        table.add_row(
            str(point.workout_number),
            point.date[:10],
            format_weight(point.weight, unit),
            str(point.stage + 1),
            f"{point.confidence:.0%}",
            marker,
        )

    console.print(table)
    if prediction.weeks_to_deload is not None:
        console.print(f"First deload in about {prediction.weeks_to_deload:.1f} weeks")
    else:
        console.print("[green]No deload expected in this window[/green]")


def print_stage_detection(result: StageDetectionResult | None, name: str) -> None:
    if result is None:
        print_warning(f"Could not detect a stage for {name}")
        return
    console.print(
        f"{name}: stage [bold]{result.stage + 1}[/bold] "
        f"({result.rep_scheme}, {result.set_count} sets, confidence {result.confidence})"
    )


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def confirm_action(message: str) -> bool:
    """
    Prompt user for confirmation.

    Args:
        message: Confirmation message

    Returns:
        True if confirmed, False otherwise
    """
    response = console.input(f"{message} [y/N]: ")
    return response.lower() in ("y", "yes")
