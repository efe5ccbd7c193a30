"""
Progression prediction.

Deterministically simulates future workouts from historical failure
statistics. Each simulated workout runs through the real progression rules,
so deloads and stage changes land exactly where the program would put
them. The same input always yields the same forecast.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .config import (
    CONFIDENCE_BY_HISTORY,
    CONFIDENCE_DECAY,
    DEFAULT_FAILURE_RATE,
    DEFAULT_WORKOUTS_PER_WEEK,
    MAX_ADJUSTED_FAILURE_RATE,
    MIN_CONFIDENCE,
    PREDICTION_HORIZON,
    STAGE_FAILURE_MULTIPLIERS,
    T3_SUCCESS_THRESHOLD,
    WORKOUTS_PER_STAGE,
)
from .models import HistoryEntry, MuscleGroup, ProgressionKey, ProgressionState, Tier, Unit
from .progression import calculate_progression, required_sets, target_reps


@dataclass
class PredictionConfig:
    """Simulation parameters."""

    horizon: int = PREDICTION_HORIZON
    workouts_per_stage: int = WORKOUTS_PER_STAGE
    min_confidence: float = MIN_CONFIDENCE
    confidence_decay: float = CONFIDENCE_DECAY
    assume_success: bool = False

    def __post_init__(self) -> None:
        if self.horizon < 0:
            raise ValueError("horizon must be non-negative")
        if not 0 <= self.min_confidence <= 1:
            raise ValueError("min_confidence must be within [0, 1]")


@dataclass
class PredictionInput:
    progression_key: ProgressionKey
    current_weight: float
    current_stage: int
    tier: Tier
    muscle_group: MuscleGroup
    unit: Unit
    history: list[HistoryEntry] = field(default_factory=list)
    workouts_per_week: int = DEFAULT_WORKOUTS_PER_WEEK


@dataclass
class PredictionPoint:
    """One simulated future workout."""

    date: str
    workout_number: int
    weight: float
    stage: int
    confidence: float
    is_deload: bool
    is_stage_change: bool


@dataclass
class PredictionResult:
    predictions: list[PredictionPoint]
    overall_confidence: float
    weeks_to_deload: float | None


@dataclass
class HistoricalMetrics:
    failure_rate: float
    avg_workouts_per_stage: float
    deload_frequency: float
    sample_size: int


def calculate_historical_metrics(
    history: list[HistoryEntry],
    default_workouts_per_stage: float = WORKOUTS_PER_STAGE,
) -> HistoricalMetrics:
    """
    Failure rate, deload frequency and average workouts spent per stage.

    Empty history falls back to a 30% failure rate and the default stage
    length.
    """
    if not history:
        return HistoricalMetrics(
            failure_rate=DEFAULT_FAILURE_RATE,
            avg_workouts_per_stage=default_workouts_per_stage,
            deload_frequency=0.0,
            sample_size=0,
        )

    n = len(history)
    failure_rate = sum(1 for h in history if not h.success) / n
    deload_frequency = sum(1 for h in history if h.change_type == "deload") / n

    # Spans: start -> first stage change, then between consecutive stage changes
    indices = [i for i, h in enumerate(history) if h.change_type == "stage_change"]
    spans: list[int] = []
    if indices and indices[0] > 0:
        spans.append(indices[0] + 1)
    spans.extend(b - a for a, b in zip(indices, indices[1:]))
    avg = sum(spans) / len(spans) if spans else default_workouts_per_stage

    return HistoricalMetrics(
        failure_rate=failure_rate,
        avg_workouts_per_stage=avg,
        deload_frequency=deload_frequency,
        sample_size=n,
    )


def initial_confidence(history_length: int) -> float:
    for minimum, confidence in CONFIDENCE_BY_HISTORY:
        if history_length >= minimum:
            return confidence
    return CONFIDENCE_BY_HISTORY[-1][1]


def step_confidence(initial: float, step: int, config: PredictionConfig) -> float:
    return max(initial * (1 - config.confidence_decay * step), config.min_confidence)


def should_succeed(
    failure_rate: float,
    stage: int,
    index: int,
    assume_success: bool = False,
) -> bool:
    """
    Deterministic outcome of simulated workout number index (0-based).

    The stage scales the failure rate (x1, x1.5, x2, capped at 0.8) and the
    workout fails on every round(1/rate)-th step.
    """
    if assume_success:
        return True
    adjusted = min(failure_rate * STAGE_FAILURE_MULTIPLIERS[stage], MAX_ADJUSTED_FAILURE_RATE)
    if adjusted <= 0:
        return True
    fail_every = int(1 / adjusted + 0.5)  # halves round up
    return (index + 1) % fail_every != 0


def synthesize_reps(tier: Tier, stage: int, success: bool) -> list[int]:
    """Reps that the progression rules judge as a success or a failure."""
    sets = required_sets(tier, stage)
    if tier == "T3":
        final = T3_SUCCESS_THRESHOLD if success else T3_SUCCESS_THRESHOLD - 1
        return [target_reps(tier, stage)] * (sets - 1) + [final]
    target = target_reps(tier, stage)
    if success:
        return [target] * sets
    return [target] * (sets - 1) + [target - 1]


def estimate_workout_date(
    workout_number: int,
    workouts_per_week: int,
    base_date: datetime | None = None,
) -> str:
    """ISO timestamp of a future workout, spreading workouts evenly over the week."""
    base = base_date or datetime.now(timezone.utc)
    return (base + timedelta(days=workout_number * 7 / workouts_per_week)).isoformat()


def predict_progression(
    data: PredictionInput,
    config: PredictionConfig | None = None,
    base_date: datetime | None = None,
) -> PredictionResult:
    """
    Simulate the next config.horizon workouts.

    Args:
        data: Current state, tier and history of one progression key
        config: Simulation parameters
        base_date: Date the forecast starts from, defaults to now

    Returns:
        PredictionResult; weeks_to_deload is None when no deload falls
        inside the horizon
    """
    config = config or PredictionConfig()
    metrics = calculate_historical_metrics(data.history, config.workouts_per_stage)
    initial = initial_confidence(len(data.history))
    base = base_date or datetime.now(timezone.utc)

    state = ProgressionState(
        exercise_id=str(data.progression_key),
        current_weight=data.current_weight,
        stage=data.current_stage,
    )
    predictions: list[PredictionPoint] = []
    first_deload: int | None = None

    for i in range(config.horizon):
        success = should_succeed(metrics.failure_rate, state.stage, i, config.assume_success)
        outcome = calculate_progression(
            data.tier,
            state,
            synthesize_reps(data.tier, state.stage, success),
            data.muscle_group,
            data.unit,
        )
        if outcome.type == "deload" and first_deload is None:
            first_deload = i

        predictions.append(
            PredictionPoint(
                date=estimate_workout_date(i + 1, data.workouts_per_week, base),
                workout_number=i + 1,
                weight=outcome.new_weight,
                stage=outcome.new_stage,
                confidence=step_confidence(initial, i, config),
                is_deload=outcome.type == "deload",
                is_stage_change=outcome.type == "stage_change",
            )
        )
        state = ProgressionState(
            exercise_id=state.exercise_id,
            current_weight=outcome.new_weight,
            stage=outcome.new_stage,
        )

    weeks_to_deload = None
    if first_deload is not None:
        weeks_to_deload = (first_deload + 1) / data.workouts_per_week

    return PredictionResult(
        predictions=predictions,
        overall_confidence=initial,
        weeks_to_deload=weeks_to_deload,
    )
