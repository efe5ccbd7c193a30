"""Hevy sync commands: sync, review, apply, reject, push."""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Annotated, Optional

import typer

from ...core.models import PendingChange, PushPreview, SyncAction
from ...core.pending_changes import (
    apply_all_pending_changes,
    modify_pending_change_weight,
    record_multiple_changes,
    sort_changes_chronologically,
)
from ...core.push_preview import build_push_preview, fetch_remote_state, update_preview_action
from ...core.reconciler import apply_pull_updates, sync_routines
from ...core.roles import parse_progression_key
from ...core.units import format_weight, to_kg
from ...core.workout_sync import next_day, process_workouts
from ...io.config_loader import load_sync_pages
from ...io.hevy_client import HevyCancelledError, HevyClientError
from .. import views
from ..app import StatePathOption, app, get_client, get_store, load_state


def _select_changes(
    changes: list[PendingChange],
    numbers: list[int] | None,
    select_all: bool,
) -> list[PendingChange]:
    """Resolve 1-based review numbers (or --all) into changes."""
    if select_all:
        return list(changes)
    if not numbers:
        views.print_error("Give change numbers from 'review' or use --all")
        raise typer.Exit(1)
    bad = [n for n in numbers if n < 1 or n > len(changes)]
    if bad:
        views.print_error(f"Change numbers must be between 1 and {len(changes)}")
        raise typer.Exit(1)
    return [changes[n - 1] for n in dict.fromkeys(numbers)]


@app.command()
def sync(
    state_path: StatePathOption = None,
    pages: Annotated[
        Optional[int],
        typer.Option("--pages", help="Workout pages to fetch (default from config, 0 = all)"),
    ] = None,
) -> None:
    """
    Fetch new Hevy workouts and turn them into pending changes.

    Only workouts started from one of the program's routines count. The
    next day advances past the last workout found.
    """
    store = get_store(state_path)
    state = load_state(store)
    client = get_client()

    max_pages = load_sync_pages() if pages is None else (pages or None)
    try:
        workouts = client.list_workouts(max_pages=max_pages)
    except HevyCancelledError:
        views.print_info("Cancelled.")
        raise typer.Exit(0)
    except HevyClientError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    result = process_workouts(
        workouts,
        state.exercises,
        state.progression,
        state.program.routine_ids,
        state.settings.unit,
        processed_ids=state.processed_workout_ids,
        increments=state.settings.increments,
    )

    state.pending_changes = sort_changes_chronologically(state.pending_changes + result.pending_changes)
    state.processed_workout_ids.extend(result.processed_workout_ids)
    if result.last_day is not None:
        state.program.current_day = next_day(result.last_day)
    state.last_sync = datetime.now(timezone.utc).isoformat()
    store.save(state)

    unit = state.settings.unit
    for found in result.discrepancies:
        views.print_warning(
            f"{found.exercise_name} ({found.tier}): stored "
            f"{format_weight(found.discrepancy.stored_weight, unit)}, lifted "
            f"{format_weight(found.discrepancy.actual_weight, unit)}"
        )
    views.print_success(
        f"{len(result.processed_workout_ids)} new workout(s), "
        f"{len(result.pending_changes)} new change(s). Next day: {state.program.current_day}"
    )
    if result.pending_changes:
        views.print_pending_changes(state.pending_changes, unit)


@app.command()
def review(
    state_path: StatePathOption = None,
) -> None:
    """List pending changes with the numbers used by 'apply' and 'reject'."""
    store = get_store(state_path)
    state = load_state(store)
    views.print_pending_changes(state.pending_changes, state.settings.unit)


@app.command()
def apply(
    numbers: Annotated[
        Optional[list[int]],
        typer.Argument(help="Change numbers from 'review'"),
    ] = None,
    select_all: Annotated[
        bool,
        typer.Option("--all", "-a", help="Apply every pending change"),
    ] = False,
    weight: Annotated[
        Optional[float],
        typer.Option("--weight", "-w", help="Override the new weight of a single change, in your unit"),
    ] = None,
    state_path: StatePathOption = None,
) -> None:
    """
    Accept pending changes into the local progression.

    Changes are applied oldest first and recorded in the history. Run
    'push' afterwards to update the routines in Hevy.
    """
    store = get_store(state_path)
    state = load_state(store)
    unit = state.settings.unit

    selected = _select_changes(state.pending_changes, numbers, select_all)
    if weight is not None:
        if len(selected) != 1:
            views.print_error("--weight needs exactly one change")
            raise typer.Exit(1)
        modified = modify_pending_change_weight(selected[0], to_kg(weight, unit), unit)
        state.pending_changes = [modified if c.id == modified.id else c for c in state.pending_changes]
        selected = [modified]

    ordered = sort_changes_chronologically(selected)
    state.progression = apply_all_pending_changes(state.progression, ordered)
    history = record_multiple_changes(store.load_history(), ordered, state.exercises)

    applied = {c.id for c in ordered}
    state.pending_changes = [c for c in state.pending_changes if c.id not in applied]
    store.save(state)
    store.save_history(history)

    for change in ordered:
        views.print_success(
            f"{change.exercise_name}: {format_weight(change.new_weight, unit)} {change.new_scheme}"
        )


@app.command()
def reject(
    numbers: Annotated[
        Optional[list[int]],
        typer.Argument(help="Change numbers from 'review'"),
    ] = None,
    select_all: Annotated[
        bool,
        typer.Option("--all", "-a", help="Reject every pending change"),
    ] = False,
    state_path: StatePathOption = None,
) -> None:
    """Discard pending changes; their workouts are not analyzed again."""
    store = get_store(state_path)
    state = load_state(store)

    selected = {c.id for c in _select_changes(state.pending_changes, numbers, select_all)}
    state.pending_changes = [c for c in state.pending_changes if c.id not in selected]
    store.save(state)
    views.print_success(f"Rejected {len(selected)} change(s)")


def _apply_overrides(preview: PushPreview, overrides: dict[SyncAction, list[str]]) -> PushPreview:
    known = {str(e.progression_key) for d in preview.days for e in d.exercises}
    for action, keys in overrides.items():
        for text in keys:
            if text not in known:
                views.print_error(f"Unknown key '{text}'. Keys are listed in the preview.")
                raise typer.Exit(1)
            preview = update_preview_action(preview, parse_progression_key(text), action)
    return preview


@app.command()
def push(
    pull: Annotated[
        Optional[list[str]],
        typer.Option("--pull", help="Adopt the Hevy weight for this key (e.g. squat-T1)"),
    ] = None,
    skip: Annotated[
        Optional[list[str]],
        typer.Option("--skip", help="Leave this key unchanged on both sides"),
    ] = None,
    force_push: Annotated[
        Optional[list[str]],
        typer.Option("--push", help="Send the local weight for this key"),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Don't ask for confirmation"),
    ] = False,
    state_path: StatePathOption = None,
) -> None:
    """
    Compare local weights with the Hevy routines and reconcile them.

    By default changed weights are pushed and the rest is skipped. Days
    without a routine in Hevy get one created.
    """
    store = get_store(state_path)
    state = load_state(store)
    client = get_client()
    unit = state.settings.unit

    try:
        remote = fetch_remote_state(client, state.program.routine_ids)
    except HevyCancelledError:
        views.print_info("Cancelled.")
        raise typer.Exit(0)
    except HevyClientError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    preview = build_push_preview(remote, state.exercises, state.progression, state.t3_schedule)
    preview = _apply_overrides(
        preview,
        {"pull": pull or [], "skip": skip or [], "push": force_push or []},
    )
    views.print_push_preview(preview, unit)

    all_exist = all(r.exists for r in remote.values())
    if all_exist and preview.push_count == 0 and preview.pull_count == 0:
        views.print_info("Hevy routines are up to date.")
        raise typer.Exit(0)

    if not yes and not views.confirm_action("Apply these changes to Hevy?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    try:
        result = sync_routines(
            client,
            preview,
            remote,
            state.exercises,
            state.progression,
            state.settings,
            state.t3_schedule,
        )
    except HevyClientError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    state.progression = apply_pull_updates(state.progression, result.pull_updates)
    state.program = replace(state.program, routine_ids={**state.program.routine_ids, **result.routine_ids})
    store.save(state)

    views.print_sync_result(result)
    if not result.success:
        raise typer.Exit(1)
