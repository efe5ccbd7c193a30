"""Tests for pending-change generation, application and history recording."""

from dataclasses import replace

import pytest

from gzclp_sync.core.models import (
    AccessoryKey,
    ExerciseConfig,
    ExerciseHistory,
    HistoryEntry,
    MainLiftKey,
    ProgressionState,
    WeightDiscrepancy,
    WorkoutAnalysisResult,
)
from gzclp_sync.core.pending_changes import (
    apply_all_pending_changes,
    apply_pending_change,
    create_pending_changes_from_analysis,
    display_name,
    modify_pending_change_weight,
    record_multiple_changes,
    record_progression_history,
    sort_changes_chronologically,
)

SQUAT_T1 = MainLiftKey("squat", "T1")

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _exercises() -> dict[str, ExerciseConfig]:
    return {
        "squat": ExerciseConfig("squat", "tpl-squat", "Squat", "squat"),
        "lat": ExerciseConfig("lat", "tpl-lat", "Lat Pulldown", "t3"),
    }


def _progression(stage: int = 0, amrap_record: int = 0) -> dict:
    return {
        SQUAT_T1: ProgressionState("squat", 100.0, stage, amrap_record=amrap_record),
        AccessoryKey("lat"): ProgressionState("lat", 30.0, 0),
    }


def _result(
    exercise_id: str = "squat",
    tier: str = "T1",
    reps: list[int] | None = None,
    weight: float | None = 100.0,
    workout_id: str = "w1",
    date: str = "2026-01-05T10:00:00Z",
    discrepancy: WeightDiscrepancy | None = None,
) -> WorkoutAnalysisResult:
    return WorkoutAnalysisResult(
        exercise_id=exercise_id,
        exercise_name=exercise_id.title(),
        tier=tier,
        reps=reps if reps is not None else [3, 3, 3, 3, 6],
        weight=weight,
        workout_id=workout_id,
        workout_date=date,
        day="A1",
        discrepancy=discrepancy,
    )


def _changes(results, stage: int = 0, amrap_record: int = 0):
    return create_pending_changes_from_analysis(
        results, _exercises(), _progression(stage, amrap_record), "kg"
    )


# ===========================================================================
# Generation
# ===========================================================================


class TestCreatePendingChanges:
    def test_progress_change(self):
        [change] = _changes([_result()])
        assert change.progression_key == SQUAT_T1
        assert change.exercise_name == "T1 Squat"
        assert change.type == "progress"
        assert change.current_weight == pytest.approx(100.0)
        assert change.new_weight == pytest.approx(105.0)
        assert change.success
        assert change.day == "A1"
        assert change.sets_completed == 5
        assert change.sets_target == 5
        assert change.amrap_reps == 6

    def test_ids_are_unique(self):
        first, second = _changes([_result(workout_id="w1"), _result(workout_id="w2")])
        assert first.id != second.id

    def test_new_amrap_pr(self):
        [change] = _changes([_result()], amrap_record=5)
        assert change.new_pr
        assert change.new_amrap_record == 6

    def test_no_pr_when_record_not_beaten(self):
        [change] = _changes([_result()], amrap_record=6)
        assert not change.new_pr
        assert change.new_amrap_record is None

    def test_repeat_yields_no_change(self):
        assert _changes([_result("lat", "T3", [15, 15, 20], 30.0)]) == []

    def test_missing_progression_key_is_skipped(self, caplog):
        # Squat as T2 has no stored state in this program
        with caplog.at_level("WARNING"):
            assert _changes([_result(tier="T2", reps=[10, 10, 10])]) == []
        assert "squat-T2" in caplog.text

    def test_unknown_exercise_is_skipped(self):
        assert _changes([_result("deadlift")]) == []

    def test_discrepancy_uses_lifted_weight(self):
        gap = WeightDiscrepancy(stored_weight=100.0, actual_weight=95.0)
        [change] = _changes([_result(weight=95.0, discrepancy=gap)])
        assert change.current_weight == pytest.approx(100.0)
        assert change.new_weight == pytest.approx(100.0)
        assert change.discrepancy == gap

    def test_missing_weight_counts_as_failure(self, caplog):
        with caplog.at_level("WARNING"):
            [change] = _changes([_result(weight=None)])
        assert change.type == "stage_change"
        assert change.new_weight == pytest.approx(100.0)
        assert change.new_stage == 1
        assert not change.success
        assert "No weight logged" in caplog.text

    def test_missing_weight_on_t3_repeats(self):
        assert _changes([_result("lat", "T3", [15, 15, 30], weight=None)]) == []

    def test_display_name(self):
        exercises = _exercises()
        assert display_name(exercises["squat"], "T2") == "T2 Squat"
        assert display_name(exercises["lat"], "T3") == "Lat Pulldown"


# ===========================================================================
# Application
# ===========================================================================


class TestApplyPendingChange:
    def test_progress_updates_weight_and_last_workout(self):
        [change] = _changes([_result()])
        updated = apply_pending_change(_progression(), change)[SQUAT_T1]
        assert updated.current_weight == pytest.approx(105.0)
        assert updated.base_weight == pytest.approx(100.0)
        assert updated.last_workout_id == "w1"
        assert updated.last_workout_date == "2026-01-05T10:00:00Z"
        assert updated.amrap_record == 6
        assert updated.amrap_record_workout_id == "w1"

    def test_input_is_not_mutated(self):
        progression = _progression()
        [change] = _changes([_result()])
        apply_pending_change(progression, change)
        assert progression[SQUAT_T1].current_weight == pytest.approx(100.0)

    def test_deload_moves_base_weight(self):
        [change] = _changes([_result(reps=[1] * 9)], stage=2)
        assert change.type == "deload"
        updated = apply_pending_change(_progression(stage=2), change)[SQUAT_T1]
        assert updated.current_weight == pytest.approx(85.0)
        assert updated.base_weight == pytest.approx(85.0)
        assert updated.stage == 0

    def test_unknown_key_leaves_store_unchanged(self):
        [change] = _changes([_result()])
        progression = {AccessoryKey("lat"): ProgressionState("lat", 30.0)}
        assert apply_pending_change(progression, change) == progression

    def test_apply_all_in_order(self):
        first, second = _changes([
            _result(workout_id="w1", date="2026-01-05T10:00:00Z"),
            _result(workout_id="w2", date="2026-01-12T10:00:00Z"),
        ])
        # Both were computed from 100 kg; the later one wins
        result = apply_all_pending_changes(_progression(), [first, second])
        assert result[SQUAT_T1].last_workout_id == "w2"

    def _chained(self, stage, amrap_record, first_reps, second_reps):
        """Change A from the stored state, then B computed from A's result."""
        start = _progression(stage, amrap_record)
        [a] = create_pending_changes_from_analysis([_result(reps=first_reps)], _exercises(), start, "kg")
        after_a = apply_pending_change(start, a)
        [b] = create_pending_changes_from_analysis(
            [_result(reps=second_reps, weight=a.new_weight, workout_id="w2", date="2026-01-12T10:00:00Z")],
            _exercises(),
            after_a,
            "kg",
        )
        return start, a, b

    def test_chained_progress_equals_single_change(self):
        start, a, b = self._chained(0, 0, [3, 3, 3, 3, 5], [3, 3, 3, 3, 8])
        assert (a.type, b.type) == ("progress", "progress")

        both = apply_all_pending_changes(start, [a, b])[SQUAT_T1]
        single = replace(b, current_weight=a.current_weight, current_stage=a.current_stage)
        direct = apply_pending_change(start, single)[SQUAT_T1]

        assert both == direct
        assert both.current_weight == pytest.approx(110.0)
        assert both.stage == 0
        assert both.base_weight == pytest.approx(100.0)
        assert both.amrap_record == 8

    def test_chained_deload_equals_single_change(self):
        start, a, b = self._chained(2, 10, [1] * 9 + [4], [1] * 5)
        assert (a.type, b.type) == ("progress", "deload")

        both = apply_all_pending_changes(start, [a, b])[SQUAT_T1]
        single = replace(b, current_weight=a.current_weight, current_stage=a.current_stage)
        direct = apply_pending_change(start, single)[SQUAT_T1]

        assert both == direct
        assert both.current_weight == pytest.approx(90.0)
        assert both.stage == 0
        assert both.base_weight == pytest.approx(90.0)
        assert both.amrap_record == 10

    def test_sort_chronologically(self):
        late, early = _changes([
            _result(workout_id="w2", date="2026-01-12T10:00:00Z"),
            _result(workout_id="w1", date="2026-01-05T10:00:00Z"),
        ])
        assert [c.workout_id for c in sort_changes_chronologically([late, early])] == ["w1", "w2"]

    def test_modify_weight(self):
        [change] = _changes([_result()])
        modified = modify_pending_change_weight(change, 102.5)
        assert modified.new_weight == pytest.approx(102.5)
        assert modified.id == change.id
        assert "original suggestion: 105kg" in modified.reason
        assert change.new_weight == pytest.approx(105.0)


# ===========================================================================
# History
# ===========================================================================


class TestHistory:
    def test_first_entry_creates_history(self):
        [change] = _changes([_result()])
        history = record_progression_history({}, change, _exercises())
        entry_list = history[SQUAT_T1]
        assert entry_list.exercise_name == "Squat"
        assert entry_list.role == "squat"
        assert entry_list.entries == [
            HistoryEntry(
                date="2026-01-05T10:00:00Z",
                workout_id="w1",
                weight=100.0,
                stage=0,
                tier="T1",
                success=True,
                change_type="progress",
                amrap_reps=6,
            )
        ]

    def test_same_workout_recorded_once(self):
        [change] = _changes([_result()])
        history = record_progression_history({}, change, _exercises())
        again = record_progression_history(history, change, _exercises())
        assert len(again[SQUAT_T1].entries) == 1

    def test_entries_sorted_by_date(self):
        late, early = _changes([
            _result(workout_id="w2", date="2026-01-12T10:00:00Z"),
            _result(workout_id="w1", date="2026-01-05T10:00:00Z"),
        ])
        history = record_multiple_changes({}, [late, early], _exercises())
        assert [e.workout_id for e in history[SQUAT_T1].entries] == ["w1", "w2"]

    def test_existing_history_is_extended(self):
        existing = {
            SQUAT_T1: ExerciseHistory(SQUAT_T1, "Squat", "T1", "squat", entries=[]),
        }
        [change] = _changes([_result()])
        history = record_progression_history(existing, change, _exercises())
        assert len(history[SQUAT_T1].entries) == 1
        assert existing[SQUAT_T1].entries == []
