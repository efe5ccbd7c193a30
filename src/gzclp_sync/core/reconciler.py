"""
Routine reconciliation: apply a reviewed push preview to Hevy.

Days are written one after another. A failure on one day is recorded and
the remaining days still run. Cancellation stops the loop, and the result
still carries the ids of routines written before it.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any, Protocol

from ..io.hevy_client import HevyCancelledError, HevyClientError
from .config import DAYS
from .models import (
    DayDiff,
    DaySyncError,
    ExerciseConfig,
    ExerciseDiff,
    ProgressionKey,
    ProgressionState,
    PullUpdate,
    PushPreview,
    Routine,
    SyncResult,
    UserSettings,
)
from .push_preview import RemoteRoutineState
from .routine_builder import (
    build_day_exercises,
    build_routine_payload,
    generate_routine_notes,
    routine_title,
)

logger = logging.getLogger(__name__)


class RoutineWriter(Protocol):
    def create_routine(self, payload: dict) -> Routine: ...

    def update_routine(self, routine_id: str, payload: dict) -> Routine: ...


def _kept_remote_weights(day: DayDiff) -> dict[ProgressionKey, float]:
    """Weights to send for exercises the user chose not to push."""
    overrides = {}
    for diff in day.exercises:
        if diff.action != "push" and diff.old_weight is not None:
            overrides[diff.progression_key] = diff.old_weight
    return overrides


def _pull_updates(day: DayDiff) -> list[PullUpdate]:
    return [
        PullUpdate(progression_key=d.progression_key, weight=d.old_weight)
        for d in day.exercises
        if d.action == "pull" and d.old_weight is not None
    ]


def sync_routines(
    client: RoutineWriter,
    preview: PushPreview,
    remote_state: Mapping[str, RemoteRoutineState],
    exercises: Mapping[str, ExerciseConfig],
    progression: Mapping[ProgressionKey, ProgressionState],
    settings: UserSettings,
    t3_schedule: Mapping[str, Sequence[str]],
) -> SyncResult:
    """
    Create or update the four day routines according to the preview.

    A day without a routine in Hevy is created with every exercise. A day
    whose routine exists is only rewritten when at least one exercise is
    pushed; its title is preserved and the notes list the pushed changes.
    Skipped and pulled exercises keep the weight Hevy already has.

    Args:
        client: Hevy client
        preview: Reviewed preview
        remote_state: Remote routines the preview was built from
        exercises: Exercise configs by id
        progression: Local progression by key
        settings: User settings (unit and rest timers)
        t3_schedule: T3 exercise ids by day

    Returns:
        SyncResult with routine ids for every day that has one. When the
        client is cancelled, the loop stops and the partial result is
        returned with cancelled set.
    """
    result = SyncResult()
    days = {d.day: d for d in preview.days}

    for day in DAYS:
        diff = days.get(day)
        remote = remote_state.get(day, RemoteRoutineState())
        if diff is None:
            if remote.routine_id:
                result.routine_ids[day] = remote.routine_id
            continue

        routine_exercises = build_day_exercises(
            day,
            exercises,
            progression,
            settings,
            t3_schedule,
            weight_overrides=_kept_remote_weights(diff),
        )

        try:
            if not remote.exists:
                payload = build_routine_payload(routine_title(day), routine_exercises)
                created = client.create_routine(payload)
                result.routine_ids[day] = created.id
                result.created_days.append(day)
                logger.info("Created routine %s for day %s", created.id, day)
            else:
                result.routine_ids[day] = remote.routine_id
                pushed = [e for e in diff.exercises if e.action == "push"]
                if pushed:
                    _update_day(client, day, diff, remote, routine_exercises, pushed, settings)
                    result.updated_days.append(day)
        except HevyCancelledError:
            logger.warning("Sync cancelled at day %s", day)
            result.cancelled = True
            break
        except HevyClientError as e:
            logger.warning("Syncing day %s failed: %s", day, e)
            result.errors.append(DaySyncError(day=day, message=str(e)))

        result.pull_updates.extend(_pull_updates(diff))

    return result


def _update_day(
    client: RoutineWriter,
    day: str,
    diff: DayDiff,
    remote: RemoteRoutineState,
    routine_exercises: list[dict[str, Any]],
    pushed: list[ExerciseDiff],
    settings: UserSettings,
) -> None:
    """Rewrite an existing routine, keeping its title."""
    notes = generate_routine_notes(
        [(e.name, e.old_weight, e.new_weight) for e in pushed],
        settings.unit,
    )
    payload = build_routine_payload(
        remote.title or diff.routine_name,
        routine_exercises,
        notes=notes,
        include_folder=False,
    )
    client.update_routine(remote.routine_id, payload)
    logger.info("Updated routine %s for day %s (%d changes)", remote.routine_id, day, len(pushed))


def apply_pull_updates(
    progression: Mapping[ProgressionKey, ProgressionState],
    pulls: Sequence[PullUpdate],
) -> dict[ProgressionKey, ProgressionState]:
    """
    Adopt the weights pulled from Hevy.

    Only current_weight changes; stage and records stay local. Keys with no
    local state are ignored.
    """
    updated = dict(progression)
    for pull in pulls:
        state = updated.get(pull.progression_key)
        if state is None:
            logger.warning("Ignoring pull for unknown key %s", pull.progression_key)
            continue
        updated[pull.progression_key] = replace(state, current_weight=pull.weight)
    return updated
