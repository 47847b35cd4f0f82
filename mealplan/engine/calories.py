"""
Calorie arithmetic shared by plan generation and meal swaps.

Splits a daily budget into slot targets and converts a slot target into
whole recipe portions.
"""
import math
from typing import Dict, Tuple

from mealplan.models.schemas import MealSlot, SLOT_ORDER


# Share of the daily budget assigned to each slot
SLOT_CALORIE_SPLIT: Dict[MealSlot, float] = {
    MealSlot.BREAKFAST: 0.25,
    MealSlot.LUNCH: 0.35,
    MealSlot.DINNER: 0.35,
    MealSlot.SNACK: 0.05,
}


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from zero for positive values.

    Python's round() uses banker's rounding (round(2.5) == 2), which would
    make targets like 0.05 * 2010 = 100.5 land on 100 instead of 101.

    Examples:
        100.5 -> 101
        700.4999 -> 700
    """
    return int(math.floor(value + 0.5))


def distribute_calories(daily_calories: int) -> Dict[MealSlot, int]:
    """
    Split a daily calorie budget into per-slot targets.

    Each slot is rounded independently, so the targets may differ from
    the budget by up to the number of slots.

    Args:
        daily_calories: Positive daily calorie budget

    Returns:
        Mapping of every slot to its integer calorie target

    Example:
        distribute_calories(2000) ->
            {breakfast: 500, lunch: 700, dinner: 700, snack: 100}
    """
    return {
        slot: round_half_up(daily_calories * SLOT_CALORIE_SPLIT[slot])
        for slot in SLOT_ORDER
    }


def calorie_band(target_calories: int, tolerance: float) -> Tuple[int, int]:
    """Inclusive (min, max) calories within ±tolerance of the target."""
    return (
        round_half_up(target_calories * (1 - tolerance)),
        round_half_up(target_calories * (1 + tolerance)),
    )


def portion_multiplier_for(target_calories: int, calories_per_portion: float) -> int:
    """Whole number of portions that best matches the target (at least one)."""
    return max(1, round_half_up(target_calories / calories_per_portion))


def planned_calories(calories_per_portion: float, portion_multiplier: int) -> int:
    return round_half_up(calories_per_portion * portion_multiplier)
