"""
State schema migrations.

Persisted state carries a semantic version. Older states are migrated one
registered version at a time; states written by a newer release are used
as they are, with a warning, since downgrading is not supported.
"""

import warnings
from collections.abc import Callable
from typing import Any

from .config import CURRENT_STATE_VERSION

StateDict = dict[str, Any]
Migration = Callable[[StateDict], StateDict]

DEFAULT_STORED_VERSION = "1.0.0"


def _to_2_0_0(state: StateDict) -> StateDict:
    """2.0.0 introduced the per-day T3 schedule and kept pending changes on disk."""
    migrated = dict(state)
    migrated.setdefault("t3_schedule", {})
    migrated.setdefault("pending_changes", [])
    return migrated


def _to_2_1_0(state: StateDict) -> StateDict:
    """2.1.0 tracks processed workouts; seed them from each key's last workout."""
    migrated = dict(state)
    if not migrated.get("processed_workout_ids"):
        seen: list[str] = []
        for entry in (migrated.get("progression") or {}).values():
            workout_id = entry.get("last_workout_id") if isinstance(entry, dict) else None
            if workout_id and workout_id not in seen:
                seen.append(workout_id)
        migrated["processed_workout_ids"] = seen
    return migrated


# Keyed by the version each migration produces.
MIGRATIONS: dict[str, Migration] = {
    "1.0.0": lambda state: state,
    "2.0.0": _to_2_0_0,
    "2.1.0": _to_2_1_0,
}


def parse_version(version: str) -> tuple[int, int, int]:
    """'2.1.0' -> (2, 1, 0); missing or non-numeric parts count as 0."""
    parts = []
    for piece in version.split(".")[:3]:
        try:
            parts.append(int(piece))
        except ValueError:
            parts.append(0)
    while len(parts) < 3:
        parts.append(0)
    return parts[0], parts[1], parts[2]


def compare_versions(a: str, b: str) -> int:
    """-1, 0 or 1 as a is older than, equal to or newer than b."""
    pa, pb = parse_version(a), parse_version(b)
    return (pa > pb) - (pa < pb)


def needs_migration(state: Any) -> bool:
    if not isinstance(state, dict):
        return False
    version = state.get("version")
    if not version:
        return True
    return compare_versions(version, CURRENT_STATE_VERSION) < 0


def migrate_state(state: Any) -> StateDict:
    """
    Bring a raw state dict up to the current schema version.

    Args:
        state: Decoded JSON state

    Returns:
        Migrated dict with version set to the current version (or the
        untouched dict when it is newer than this release)

    Raises:
        TypeError: If state is not a dict
    """
    if not isinstance(state, dict):
        raise TypeError("Invalid state: expected an object")

    stored = state.get("version") or DEFAULT_STORED_VERSION

    if stored == CURRENT_STATE_VERSION:
        return state

    if compare_versions(stored, CURRENT_STATE_VERSION) > 0:
        warnings.warn(
            f"State version {stored} is newer than supported {CURRENT_STATE_VERSION}; using as-is",
            stacklevel=2,
        )
        return state

    migrated = dict(state)
    for version in sorted(MIGRATIONS, key=parse_version):
        if compare_versions(version, stored) <= 0:
            continue
        if compare_versions(version, CURRENT_STATE_VERSION) > 0:
            break
        migrated = MIGRATIONS[version](migrated)

    migrated["version"] = CURRENT_STATE_VERSION
    return migrated
