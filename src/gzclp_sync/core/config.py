"""
Configuration constants for the GZCLP progression model.

All fixed program parameters are centralized here: tier schemes, stage
tables, increments, rounding steps and the day rotation.
"""

from typing import Final

from .models import Day, Role, Tier, Unit

# =============================================================================
# UNITS & TOLERANCES
# =============================================================================

LBS_TO_KG: Final[float] = 1 / 2.20462
KG_TO_LBS: Final[float] = 2.20462

WEIGHT_EPSILON: Final[float] = 0.01  # Tolerance for every weight comparison

# =============================================================================
# DAYS & ROTATION
# =============================================================================

DAYS: Final[tuple[Day, ...]] = ("A1", "B1", "A2", "B2")

NEXT_DAY: Final[dict[Day, Day]] = {
    "A1": "B1",
    "B1": "A2",
    "A2": "B2",
    "B2": "A1",
}

T1_MAPPING: Final[dict[Day, Role]] = {
    "A1": "squat",
    "B1": "ohp",
    "A2": "bench",
    "B2": "deadlift",
}

T2_MAPPING: Final[dict[Day, Role]] = {
    "A1": "bench",
    "B1": "deadlift",
    "A2": "squat",
    "B2": "ohp",
}

# =============================================================================
# ROLES
# =============================================================================

MAIN_LIFT_ROLES: Final[tuple[Role, ...]] = ("squat", "bench", "ohp", "deadlift")
ACCESSORY_ROLES: Final[tuple[Role, ...]] = ("t3", "warmup", "cooldown")
ALL_ROLES: Final[tuple[Role, ...]] = MAIN_LIFT_ROLES + ACCESSORY_ROLES

LOWER_BODY_ROLES: Final[frozenset[Role]] = frozenset({"squat", "deadlift"})

ROLE_DISPLAY_NAMES: Final[dict[Role, str]] = {
    "squat": "Squat",
    "bench": "Bench Press",
    "ohp": "Overhead Press",
    "deadlift": "Deadlift",
    "t3": "T3 Accessory",
    "warmup": "Warmup",
    "cooldown": "Cooldown",
}

# =============================================================================
# TIER SCHEMES (stage -> required sets / target reps)
# =============================================================================

T1_STAGES: Final[dict[int, tuple[int, int, str]]] = {
    0: (5, 3, "5x3+"),
    1: (6, 2, "6x2+"),
    2: (10, 1, "10x1+"),
}

T2_STAGES: Final[dict[int, tuple[int, int, str]]] = {
    0: (3, 10, "3x10"),
    1: (3, 8, "3x8"),
    2: (3, 6, "3x6"),
}

T3_SCHEME: Final[str] = "3x15+"
T3_REQUIRED_SETS: Final[int] = 3
T3_TARGET_REPS: Final[int] = 15
T3_SUCCESS_THRESHOLD: Final[int] = 25  # Final AMRAP set must reach this

MAX_STAGE: Final[int] = 2

# =============================================================================
# INCREMENTS & DELOAD
# =============================================================================

# Increments are stored in the user's unit; converted to kg at use.
DEFAULT_INCREMENTS: Final[dict[Unit, dict[str, float]]] = {
    "kg": {"upper": 2.5, "lower": 5.0},
    "lbs": {"upper": 5.0, "lower": 10.0},
}

WEIGHT_ROUNDING: Final[dict[Unit, float]] = {
    "kg": 2.5,
    "lbs": 5.0,
}

DELOAD_FACTOR: Final[float] = 0.85
BAR_WEIGHT_KG: Final[float] = 20.0  # Deload floor for both unit systems

# =============================================================================
# PREDICTION
# =============================================================================

PREDICTION_HORIZON: Final[int] = 12
WORKOUTS_PER_STAGE: Final[int] = 8
MIN_CONFIDENCE: Final[float] = 0.1
CONFIDENCE_DECAY: Final[float] = 0.02
DEFAULT_FAILURE_RATE: Final[float] = 0.3
MAX_ADJUSTED_FAILURE_RATE: Final[float] = 0.8
STAGE_FAILURE_MULTIPLIERS: Final[tuple[float, ...]] = (1.0, 1.5, 2.0)

# (minimum history length, initial confidence), checked top to bottom
CONFIDENCE_BY_HISTORY: Final[tuple[tuple[int, float], ...]] = (
    (30, 0.85),
    (15, 0.7),
    (5, 0.5),
    (0, 0.3),
)

DEFAULT_WORKOUTS_PER_WEEK: Final[int] = 3

# =============================================================================
# STATE SCHEMA
# =============================================================================

CURRENT_STATE_VERSION: Final[str] = "2.1.0"
