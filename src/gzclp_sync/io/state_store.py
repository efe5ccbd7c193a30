"""
JSON-based storage for program state and progression history.

The state file holds the whole program (settings, exercises, progression,
pending changes); a sibling history.json holds the per-key history used
for charts and predictions.
"""

import json
import logging
from pathlib import Path

from ..core.migrations import migrate_state
from ..core.models import (
    ExerciseHistory,
    PendingChange,
    ProgramState,
    ProgressionKey,
    ProgressionState,
)
from .serializers import (
    ValidationError,
    dict_to_history,
    dict_to_program_state,
    history_to_dict,
    program_state_to_dict,
)

logger = logging.getLogger(__name__)


class StateStore:
    """
    Manages the program state stored as JSON.

    Loading always runs schema migrations; saving writes the current
    schema.
    """

    def __init__(self, state_path: str | Path):
        """
        Initialize the state store.

        Args:
            state_path: Path to the JSON state file
        """
        self.state_path = Path(state_path)
        self.history_path = self.state_path.parent / "history.json"

    def exists(self) -> bool:
        """Check if the state file exists."""
        return self.state_path.exists()

    def _read_json(self, path: Path) -> dict:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Corrupt JSON in {path}: {e}") from e

    def _write_json(self, path: Path, data: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def load(self) -> ProgramState:
        """
        Load and migrate the program state.

        Returns:
            ProgramState

        Raises:
            FileNotFoundError: If the state file doesn't exist
            ValidationError: If the file is corrupt or invalid
        """
        if not self.state_path.exists():
            raise FileNotFoundError(f"State file not found: {self.state_path}")

        raw = self._read_json(self.state_path)
        try:
            migrated = migrate_state(raw)
        except TypeError as e:
            raise ValidationError(str(e)) from e
        if migrated.get("version") != raw.get("version"):
            logger.info("Migrated state from %s to %s", raw.get("version"), migrated["version"])
        return dict_to_program_state(migrated)

    def save(self, state: ProgramState) -> None:
        """Write the full program state."""
        self._write_json(self.state_path, program_state_to_dict(state))

    def save_progression(self, progression: dict[ProgressionKey, ProgressionState]) -> None:
        state = self.load()
        state.progression = dict(progression)
        self.save(state)

    def save_pending_changes(self, changes: list[PendingChange]) -> None:
        state = self.load()
        state.pending_changes = list(changes)
        self.save(state)

    def load_history(self) -> dict[ProgressionKey, ExerciseHistory]:
        """
        Load progression history.

        Returns:
            History by progression key; empty when no history was recorded
        """
        if not self.history_path.exists():
            return {}
        return dict_to_history(self._read_json(self.history_path))

    def save_history(self, history: dict[ProgressionKey, ExerciseHistory]) -> None:
        self._write_json(self.history_path, history_to_dict(history))


def get_default_state_path() -> Path:
    """Default state file: ~/.gzclp-sync/state.json."""
    return Path.home() / ".gzclp-sync" / "state.json"
