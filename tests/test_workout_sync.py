"""
Tests for workout analysis and the workout sync pipeline.

Program used throughout: squat and bench as main lifts, a lat pulldown T3
and a warmup, with routines r-a1 .. r-b2 for the four days.
"""

from datetime import datetime, timezone

import pytest

from gzclp_sync.core.models import (
    AccessoryKey,
    ExerciseConfig,
    MainLiftKey,
    ProgressionState,
    Workout,
    WorkoutExercise,
    WorkoutSet,
)
from gzclp_sync.core.workout_analysis import (
    analyze_workout,
    deduplicate_discrepancies,
    derive_tier,
    extract_reps,
    extract_working_weight,
    filter_new_workouts,
    find_day_by_routine_id,
    sort_workouts_chronologically,
)
from gzclp_sync.core.workout_sync import (
    matching_workouts,
    next_day,
    process_workouts,
    program_start_from_workouts,
    weeks_on_program,
)

ROUTINE_IDS = {"A1": "r-a1", "B1": "r-b1", "A2": "r-a2", "B2": "r-b2"}

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _exercises() -> dict[str, ExerciseConfig]:
    return {
        "squat": ExerciseConfig("squat", "tpl-squat", "Squat", "squat"),
        "bench": ExerciseConfig("bench", "tpl-bench", "Bench Press", "bench"),
        "lat": ExerciseConfig("lat", "tpl-lat", "Lat Pulldown", "t3"),
        "bike": ExerciseConfig("bike", "tpl-bike", "Bike", "warmup"),
    }


def _progression() -> dict:
    return {
        MainLiftKey("squat", "T1"): ProgressionState("squat", 100.0, 0),
        MainLiftKey("bench", "T2"): ProgressionState("bench", 40.0, 0),
        AccessoryKey("lat"): ProgressionState("lat", 30.0, 0),
    }


def _sets(reps: list[int | None], weight: float | None) -> list[WorkoutSet]:
    return [WorkoutSet(type="normal", weight_kg=weight, reps=r) for r in reps]


def _a1_workout(
    workout_id: str = "w1",
    start: str = "2026-01-05T10:00:00Z",
    squat_weight: float | None = 100.0,
    routine_id: str | None = "r-a1",
) -> Workout:
    return Workout(
        id=workout_id,
        title="GZCLP A1",
        start_time=start,
        routine_id=routine_id,
        exercises=[
            WorkoutExercise("tpl-bike", "Bike", _sets([None], None)),
            WorkoutExercise("tpl-squat", "Squat", _sets([3, 3, 3, 3, 5], squat_weight)),
            WorkoutExercise("tpl-bench", "Bench", _sets([10, 10, 10], 40.0)),
            WorkoutExercise("tpl-lat", "Lat", _sets([15, 15, 20], 30.0)),
            WorkoutExercise("tpl-unknown", "Curl", _sets([12, 12], 10.0)),
        ],
    )


# ===========================================================================
# workout_analysis.py
# ===========================================================================


class TestExtraction:
    def test_reps_include_dropsets_and_zero_missing(self):
        sets = [
            WorkoutSet(type="warmup", weight_kg=20.0, reps=10),
            WorkoutSet(type="normal", weight_kg=60.0, reps=3),
            WorkoutSet(type="normal", weight_kg=60.0, reps=None),
            WorkoutSet(type="dropset", weight_kg=50.0, reps=6),
            WorkoutSet(type="failure", weight_kg=60.0, reps=1),
        ]
        assert extract_reps(sets) == [3, 0, 6]

    def test_working_weight_is_first_normal_set(self):
        sets = [
            WorkoutSet(type="warmup", weight_kg=20.0, reps=10),
            WorkoutSet(type="normal", weight_kg=60.0, reps=3),
            WorkoutSet(type="normal", weight_kg=65.0, reps=3),
        ]
        assert extract_working_weight(sets) == pytest.approx(60.0)

    def test_working_weight_skips_sets_without_weight(self):
        sets = [WorkoutSet(type="normal", reps=5), WorkoutSet(type="normal", weight_kg=62.5, reps=5)]
        assert extract_working_weight(sets) == pytest.approx(62.5)

    def test_working_weight_missing(self):
        assert extract_working_weight([WorkoutSet(type="normal", reps=5)]) is None
        assert extract_working_weight([]) is None


class TestDeriveTier:
    def test_main_lift_on_its_days(self):
        assert derive_tier("squat", "A1") == "T1"
        assert derive_tier("squat", "A2") == "T2"
        assert derive_tier("deadlift", "B2") == "T1"
        assert derive_tier("ohp", "B2") == "T2"

    def test_main_lift_without_day_is_skipped(self):
        assert derive_tier("bench", None) is None

    def test_main_lift_off_schedule_is_t3(self):
        assert derive_tier("squat", "B1") == "T3"

    def test_accessory(self):
        assert derive_tier("t3", None) == "T3"
        assert derive_tier("t3", "A2") == "T3"


class TestAnalyzeWorkout:
    def test_known_day(self):
        results = analyze_workout(_a1_workout(), _exercises(), _progression(), "A1")
        assert [(r.exercise_id, r.tier) for r in results] == [
            ("squat", "T1"),
            ("bench", "T2"),
            ("lat", "T3"),
        ]
        squat = results[0]
        assert squat.reps == [3, 3, 3, 3, 5]
        assert squat.weight == pytest.approx(100.0)
        assert squat.workout_id == "w1"
        assert squat.day == "A1"
        assert squat.discrepancy is None

    def test_unknown_day_skips_main_lifts(self):
        results = analyze_workout(_a1_workout(), _exercises(), _progression())
        assert [r.exercise_id for r in results] == ["lat"]

    def test_weight_discrepancy(self):
        results = analyze_workout(_a1_workout(squat_weight=102.5), _exercises(), _progression(), "A1")
        squat = results[0]
        assert squat.discrepancy is not None
        assert squat.discrepancy.stored_weight == pytest.approx(100.0)
        assert squat.discrepancy.actual_weight == pytest.approx(102.5)

    def test_tiny_difference_is_not_a_discrepancy(self):
        results = analyze_workout(_a1_workout(squat_weight=100.005), _exercises(), _progression(), "A1")
        assert results[0].discrepancy is None

    def test_missing_weight_is_not_a_discrepancy(self):
        results = analyze_workout(_a1_workout(squat_weight=None), _exercises(), _progression(), "A1")
        assert results[0].weight is None
        assert results[0].discrepancy is None

    def test_exercise_without_role_is_skipped(self):
        exercises = _exercises()
        exercises["curl"] = ExerciseConfig("curl", "tpl-unknown", "Curl")
        results = analyze_workout(_a1_workout(), exercises, _progression(), "A1")
        assert "curl" not in [r.exercise_id for r in results]


class TestWorkoutOrdering:
    def test_sort_chronologically(self):
        late = _a1_workout("w2", "2026-01-07T10:00:00Z")
        early = _a1_workout("w1", "2026-01-05T10:00:00Z")
        assert [w.id for w in sort_workouts_chronologically([late, early])] == ["w1", "w2"]

    def test_filter_after_last_processed(self):
        workouts = [_a1_workout(f"w{i}", f"2026-01-0{i}T10:00:00Z") for i in (1, 2, 3)]
        assert [w.id for w in filter_new_workouts(workouts, "w2")] == ["w3"]
        assert len(filter_new_workouts(workouts, "unknown")) == 3
        assert len(filter_new_workouts(workouts, None)) == 3

    def test_deduplicate_keeps_latest_discrepancy(self):
        first = analyze_workout(
            _a1_workout("w1", "2026-01-05T10:00:00Z", squat_weight=102.5),
            _exercises(), _progression(), "A1",
        )
        second = analyze_workout(
            _a1_workout("w2", "2026-01-12T10:00:00Z", squat_weight=105.0),
            _exercises(), _progression(), "A1",
        )
        deduped = deduplicate_discrepancies(first + second)
        assert len(deduped) == 1
        assert deduped[0].workout_id == "w2"

    def test_find_day_by_routine_id(self):
        assert find_day_by_routine_id("r-b1", ROUTINE_IDS) == "B1"
        assert find_day_by_routine_id("r-other", ROUTINE_IDS) is None
        assert find_day_by_routine_id(None, ROUTINE_IDS) is None


# ===========================================================================
# workout_sync.py
# ===========================================================================


class TestNextDay:
    def test_rotation(self):
        assert [next_day(d) for d in ("A1", "B1", "A2", "B2")] == ["B1", "A2", "B2", "A1"]


class TestProcessWorkouts:
    def test_generates_changes_for_program_workouts(self):
        workouts = [
            _a1_workout("w1"),
            _a1_workout("w-free", "2026-01-06T10:00:00Z", routine_id="r-other"),
        ]
        result = process_workouts(workouts, _exercises(), _progression(), ROUTINE_IDS, "kg")

        assert result.processed_workout_ids == ["w1"]
        assert result.skipped_workout_ids == ["w-free"]
        assert result.last_day == "A1"
        # Squat and bench progress; the lat pulldown repeats and yields nothing
        assert [(str(c.progression_key), c.type) for c in result.pending_changes] == [
            ("squat-T1", "progress"),
            ("bench-T2", "progress"),
        ]
        assert result.pending_changes[0].new_weight == pytest.approx(105.0)

    def test_workout_without_weights_counts_as_failure(self):
        result = process_workouts([_a1_workout(squat_weight=None)], _exercises(), _progression(), ROUTINE_IDS, "kg")
        squat = result.pending_changes[0]
        assert str(squat.progression_key) == "squat-T1"
        assert squat.type == "stage_change"
        assert squat.new_weight == pytest.approx(100.0)
        assert squat.new_stage == 1
        assert not squat.success

    def test_already_processed_workouts_are_ignored(self):
        result = process_workouts(
            [_a1_workout("w1")], _exercises(), _progression(), ROUTINE_IDS, "kg",
            processed_ids=["w1"],
        )
        assert result.pending_changes == []
        assert result.processed_workout_ids == []
        assert result.last_day is None

    def test_last_day_follows_latest_workout(self):
        b1 = _a1_workout("w2", "2026-01-07T10:00:00Z", routine_id="r-b1")
        a1 = _a1_workout("w1", "2026-01-05T10:00:00Z")
        result = process_workouts([b1, a1], _exercises(), _progression(), ROUTINE_IDS, "kg")
        assert result.processed_workout_ids == ["w1", "w2"]
        assert result.last_day == "B1"

    def test_discrepancies_are_reported(self):
        result = process_workouts(
            [_a1_workout(squat_weight=102.5)], _exercises(), _progression(), ROUTINE_IDS, "kg"
        )
        assert len(result.discrepancies) == 1
        # The weight actually lifted drives the new weight
        assert result.pending_changes[0].new_weight == pytest.approx(107.5)
        assert result.pending_changes[0].current_weight == pytest.approx(100.0)


class TestWeeksOnProgram:
    def test_counts_only_program_workouts(self):
        workouts = [_a1_workout(f"w{i}") for i in range(7)]
        workouts.append(_a1_workout("free", routine_id=None))
        assert len(matching_workouts(workouts, ROUTINE_IDS)) == 7
        assert weeks_on_program(workouts, ROUTINE_IDS, 3) == 2

    def test_program_start(self):
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        workouts = [_a1_workout(f"w{i}") for i in range(6)]
        start = program_start_from_workouts(workouts, ROUTINE_IDS, 3, now=now)
        assert start == datetime(2026, 2, 15, tzinfo=timezone.utc).isoformat()
