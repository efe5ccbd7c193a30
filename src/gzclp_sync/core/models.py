"""
Data models for gzclp-sync.

All core dataclasses representing program configuration, progression state,
pending changes, remote Hevy records and sync structures.
Weights are always stored in kilograms.
"""

from dataclasses import dataclass, field
from typing import Literal, Union

Unit = Literal["kg", "lbs"]
Tier = Literal["T1", "T2", "T3"]
Day = Literal["A1", "B1", "A2", "B2"]
Role = Literal["squat", "bench", "ohp", "deadlift", "t3", "warmup", "cooldown"]
MainLiftRole = Literal["squat", "bench", "ohp", "deadlift"]
MuscleGroup = Literal["upper", "lower"]
ChangeType = Literal["progress", "stage_change", "deload", "repeat"]
SyncAction = Literal["push", "pull", "skip"]
SetType = Literal["normal", "warmup", "dropset", "failure"]
Confidence = Literal["high", "manual"]


# =============================================================================
# PROGRESSION KEYS
# =============================================================================


@dataclass(frozen=True)
class MainLiftKey:
    """Progression identity for a main lift in a given tier (e.g. squat-T1)."""

    role: MainLiftRole
    tier: Literal["T1", "T2"]

    def __str__(self) -> str:
        return f"{self.role}-{self.tier}"


@dataclass(frozen=True)
class AccessoryKey:
    """Progression identity for an accessory exercise: its own exercise id."""

    exercise_id: str

    def __str__(self) -> str:
        return self.exercise_id


ProgressionKey = Union[MainLiftKey, AccessoryKey]


# =============================================================================
# PROGRAM CONFIGURATION
# =============================================================================


@dataclass
class ExerciseConfig:
    """
    A configured exercise linked to a Hevy exercise template.

    The tier is never stored here; it is derived from role and day.
    """

    id: str
    template_id: str
    name: str
    role: Role | None = None

    def __post_init__(self) -> None:
        """Validate exercise config."""
        if not self.id:
            raise ValueError("exercise id must be non-empty")
        if not self.template_id:
            raise ValueError("template_id must be non-empty")


@dataclass
class UserSettings:
    """
    User preferences.

    increments, when given, override the default increments and are
    expressed in the display unit ({"upper": ..., "lower": ...}).
    """

    unit: Unit = "kg"
    increments: dict[str, float] | None = None
    rest_timers: dict[str, int] = field(
        default_factory=lambda: {"T1": 240, "T2": 150, "T3": 75}
    )

    def __post_init__(self) -> None:
        """Validate settings."""
        if self.unit not in ("kg", "lbs"):
            raise ValueError(f"unit must be 'kg' or 'lbs', got {self.unit!r}")
        for tier, seconds in self.rest_timers.items():
            if seconds < 0:
                raise ValueError(f"rest timer for {tier} must be non-negative")


@dataclass
class ProgramInfo:
    """Program metadata: current position in the rotation and routine ids."""

    name: str = "GZCLP"
    created_at: str = ""
    current_day: Day = "A1"
    workouts_per_week: int = 3
    routine_ids: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate program info."""
        if self.current_day not in ("A1", "B1", "A2", "B2"):
            raise ValueError(f"invalid current_day: {self.current_day!r}")
        if not 1 <= self.workouts_per_week <= 7:
            raise ValueError("workouts_per_week must be between 1 and 7")


# =============================================================================
# PROGRESSION STATE
# =============================================================================


@dataclass
class ProgressionState:
    """
    Numeric progression state stored under a progression key.

    base_weight changes only on deload.
    """

    exercise_id: str
    current_weight: float
    stage: int = 0
    base_weight: float | None = None
    last_workout_id: str | None = None
    last_workout_date: str | None = None
    amrap_record: int = 0
    amrap_record_date: str | None = None
    amrap_record_workout_id: str | None = None

    def __post_init__(self) -> None:
        """Validate state and default base_weight to the starting weight."""
        if self.stage not in (0, 1, 2):
            raise ValueError(f"stage must be 0, 1 or 2, got {self.stage}")
        if self.current_weight < 0:
            raise ValueError("current_weight must be non-negative")
        if self.amrap_record < 0:
            raise ValueError("amrap_record must be non-negative")
        if self.base_weight is None:
            self.base_weight = self.current_weight


@dataclass
class WeightDiscrepancy:
    """Stored weight vs. the weight actually lifted in a workout."""

    stored_weight: float
    actual_weight: float


@dataclass
class ProgressionResult:
    """Outcome of one progression calculation."""

    type: ChangeType
    new_weight: float
    new_stage: int
    new_scheme: str
    reason: str
    success: bool
    amrap_reps: int | None = None
    new_base_weight: float | None = None
    new_amrap_record: int | None = None


@dataclass
class PendingChange:
    """
    A proposed progression transition awaiting user review.

    current_weight is the stored weight (for display); new_weight was
    computed from the weight actually lifted.
    """

    id: str
    progression_key: ProgressionKey
    exercise_id: str
    exercise_name: str
    tier: Tier
    type: ChangeType
    current_weight: float
    current_stage: int
    new_weight: float
    new_stage: int
    new_scheme: str
    reason: str
    workout_id: str
    workout_date: str
    created_at: str
    success: bool = False
    day: Day | None = None
    discrepancy: WeightDiscrepancy | None = None
    amrap_reps: int | None = None
    sets_completed: int | None = None
    sets_target: int | None = None
    new_pr: bool = False
    new_amrap_record: int | None = None


@dataclass
class HistoryEntry:
    """One recorded progression outcome for a progression key."""

    date: str
    workout_id: str
    weight: float
    stage: int
    tier: Tier
    success: bool
    change_type: ChangeType
    amrap_reps: int | None = None


@dataclass
class ExerciseHistory:
    """Chronologically ordered history for one progression key."""

    progression_key: ProgressionKey
    exercise_name: str
    tier: Tier
    role: Role | None = None
    entries: list[HistoryEntry] = field(default_factory=list)


# =============================================================================
# REMOTE (HEVY) RECORDS
# =============================================================================


@dataclass
class WorkoutSet:
    """A logged set. reps and weight_kg may be missing in Hevy data."""

    type: SetType = "normal"
    weight_kg: float | None = None
    reps: int | None = None


@dataclass
class WorkoutExercise:
    """An exercise within a logged workout."""

    exercise_template_id: str
    title: str = ""
    sets: list[WorkoutSet] = field(default_factory=list)


@dataclass
class Workout:
    """A logged Hevy workout."""

    id: str
    title: str
    start_time: str
    end_time: str = ""
    routine_id: str | None = None
    exercises: list[WorkoutExercise] = field(default_factory=list)


@dataclass
class RoutineSet:
    """A prescribed set in a Hevy routine."""

    type: SetType = "normal"
    weight_kg: float | None = None
    reps: int | None = None


@dataclass
class RoutineExercise:
    """An exercise prescribed in a Hevy routine."""

    exercise_template_id: str
    title: str = ""
    rest_seconds: int | None = None
    notes: str | None = None
    sets: list[RoutineSet] = field(default_factory=list)


@dataclass
class Routine:
    """A Hevy routine."""

    id: str
    title: str
    folder_id: int | None = None
    notes: str | None = None
    exercises: list[RoutineExercise] = field(default_factory=list)


# =============================================================================
# ANALYSIS, PREVIEW & SYNC STRUCTURES
# =============================================================================


@dataclass
class WorkoutAnalysisResult:
    """Per-exercise extraction from one workout."""

    exercise_id: str
    exercise_name: str
    tier: Tier
    reps: list[int]
    weight: float | None
    workout_id: str
    workout_date: str
    day: Day | None = None
    discrepancy: WeightDiscrepancy | None = None


@dataclass
class StageDetectionResult:
    """Stage inferred from a set pattern."""

    stage: int
    confidence: Confidence
    set_count: int
    rep_scheme: str


@dataclass
class ExerciseDiff:
    """Local vs. remote weight for one exercise on one day."""

    exercise_id: str
    name: str
    tier: Tier
    progression_key: ProgressionKey
    old_weight: float | None
    new_weight: float
    stage: int
    is_changed: bool
    action: SyncAction


@dataclass
class DayDiff:
    """All exercise diffs for one GZCLP day."""

    day: Day
    routine_id: str | None
    routine_name: str
    exercises: list[ExerciseDiff] = field(default_factory=list)

    @property
    def change_count(self) -> int:
        return sum(1 for e in self.exercises if e.is_changed)


@dataclass
class PushPreview:
    """Reconciliation plan across all four days."""

    days: list[DayDiff]
    total_changes: int
    push_count: int
    pull_count: int
    skip_count: int


@dataclass
class PullUpdate:
    """A remote weight the caller should merge into local progression."""

    progression_key: ProgressionKey
    weight: float


@dataclass
class DaySyncError:
    """A failure while writing one day's routine."""

    day: Day
    message: str


@dataclass
class SyncResult:
    """Outcome of a reconciliation run."""

    routine_ids: dict[str, str] = field(default_factory=dict)
    pull_updates: list[PullUpdate] = field(default_factory=list)
    created_days: list[Day] = field(default_factory=list)
    updated_days: list[Day] = field(default_factory=list)
    errors: list[DaySyncError] = field(default_factory=list)
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return not self.errors


# =============================================================================
# PERSISTED ROOT
# =============================================================================


@dataclass
class ProgramState:
    """
    The full persisted program state.

    progression is keyed by ProgressionKey objects; string keys exist only
    in the serialized form.
    """

    version: str
    program: ProgramInfo
    settings: UserSettings
    exercises: dict[str, ExerciseConfig] = field(default_factory=dict)
    progression: dict[ProgressionKey, ProgressionState] = field(default_factory=dict)
    pending_changes: list[PendingChange] = field(default_factory=list)
    t3_schedule: dict[str, list[str]] = field(default_factory=dict)
    processed_workout_ids: list[str] = field(default_factory=list)
    last_sync: str | None = None
