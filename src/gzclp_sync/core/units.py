"""
Weight unit handling.

Weights are kilograms everywhere inside the program; the display unit only
picks the increment system, the deload rounding step and how numbers are
printed.
"""

from .config import (
    BAR_WEIGHT_KG,
    DEFAULT_INCREMENTS,
    DELOAD_FACTOR,
    KG_TO_LBS,
    LBS_TO_KG,
    WEIGHT_EPSILON,
    WEIGHT_ROUNDING,
)
from .models import MuscleGroup, Unit


def to_kg(weight: float, unit: Unit) -> float:
    return weight * LBS_TO_KG if unit == "lbs" else weight


def from_kg(weight_kg: float, unit: Unit) -> float:
    return weight_kg * KG_TO_LBS if unit == "lbs" else weight_kg


def round_to_step(value: float, step: float) -> float:
    """Round to the nearest multiple of step (halves round up)."""
    return int(value / step + 0.5) * step


def weights_equal(a: float | None, b: float | None) -> bool:
    """Compare two weights within the shared tolerance; None only equals None."""
    if a is None or b is None:
        return a is None and b is None
    return abs(a - b) <= WEIGHT_EPSILON


def get_increment_kg(
    muscle_group: MuscleGroup,
    unit: Unit,
    increments: dict[str, float] | None = None,
) -> float:
    """
    Weight increment in kg for one successful workout.

    Args:
        muscle_group: "upper" or "lower"
        unit: Display unit selecting the increment system
        increments: Optional per-user override in the display unit

    Returns:
        Increment converted to kilograms
    """
    table = increments or DEFAULT_INCREMENTS[unit]
    return to_kg(table[muscle_group], unit)


def calculate_deload(weight_kg: float, unit: Unit) -> float:
    """
    Deload weight: 85% rounded to the unit's plate step, never below the bar.

    For lbs users the rounding happens in pounds so the result lands on a
    loadable weight.
    """
    step = WEIGHT_ROUNDING[unit]
    reduced = from_kg(weight_kg * DELOAD_FACTOR, unit)
    rounded = to_kg(round_to_step(reduced, step), unit)
    return max(rounded, BAR_WEIGHT_KG)


def format_weight(weight_kg: float | None, unit: Unit) -> str:
    """Render a kg weight in the display unit, e.g. '62.5kg' or '135lbs'."""
    if weight_kg is None:
        return "-"
    value = from_kg(weight_kg, unit)
    step = WEIGHT_ROUNDING[unit] / 10
    value = round(round_to_step(value, step), 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text}{unit}"
