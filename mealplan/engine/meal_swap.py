"""
Meal swap rules: validating a substitute recipe and computing the updates.
"""
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from mealplan.config import settings
from mealplan.engine.calories import calorie_band, planned_calories, portion_multiplier_for
from mealplan.errors import SwapRejectedError, SwapRejectionReason
from mealplan.models.schemas import MealSlot, Recipe, SwapQuote


def validate_swap(
    slot: MealSlot,
    target_calories: int,
    candidate: Recipe,
    tolerance: Optional[float] = None,
) -> SwapQuote:
    """
    Check a candidate recipe against a meal's slot and calorie target.

    Rules, checked in order:
    1. the candidate must be eligible for the meal's slot
    2. the recomputed portion multiplier must not exceed the recipe's portions
    3. the recomputed calories must lie within ±tolerance of the slot target

    Args:
        slot: Slot of the meal being swapped
        target_calories: The slot target stored for the meal's plan day
        candidate: Proposed recipe
        tolerance: Relative calorie tolerance (default from settings, not escalated)

    Returns:
        SwapQuote with the new portion multiplier and planned calories

    Raises:
        SwapRejectedError: With the reason of the first failed rule
    """
    if tolerance is None:
        tolerance = settings.swap_calorie_tolerance

    if slot not in candidate.eligible_slots:
        available = ", ".join(s.value for s in candidate.eligible_slots)
        raise SwapRejectedError(
            SwapRejectionReason.SLOT_MISMATCH,
            f"Recipe \"{candidate.name}\" is not available for {slot.value} slot. "
            f"Available slots: {available}",
            details={"slot": slot.value, "eligible_slots": [s.value for s in candidate.eligible_slots]},
        )

    multiplier = portion_multiplier_for(target_calories, candidate.calories_per_portion)
    if multiplier > candidate.portions:
        raise SwapRejectedError(
            SwapRejectionReason.PORTION_EXCEEDED,
            f"Recipe requires {multiplier} portions but only {candidate.portions} portions "
            f"are available (target {target_calories} kcal, "
            f"{candidate.calories_per_portion:g} kcal per portion)",
            details={"portion_multiplier": multiplier, "portions": candidate.portions},
        )

    calories = planned_calories(candidate.calories_per_portion, multiplier)
    calorie_min, calorie_max = calorie_band(target_calories, tolerance)
    if not calorie_min <= calories <= calorie_max:
        raise SwapRejectedError(
            SwapRejectionReason.CALORIE_OUT_OF_RANGE,
            f"Recipe calories ({calories} kcal) are outside the acceptable range "
            f"({calorie_min}-{calorie_max} kcal) for target of {target_calories} kcal",
            details={
                "calories_planned": calories,
                "calorie_min": calorie_min,
                "calorie_max": calorie_max,
                "target_calories": target_calories,
            },
        )

    return SwapQuote(
        recipe_id=candidate.id,
        portion_multiplier=multiplier,
        calories_planned=calories,
        target_calories=target_calories,
    )


def build_swap_updates(
    members: Iterable[Any],
    candidate: Recipe,
    quote: SwapQuote,
) -> Dict[UUID, Dict[str, Any]]:
    """
    Field updates for every meal affected by a swap.

    members is the swapped meal alone, or every meal of its multi-portion
    group. All members receive the same recipe, multiplier and calories;
    only cooked (non-leftover) members carry portions_to_cook.
    """
    updates = {}
    for meal in members:
        updates[meal.id] = {
            "recipe_id": candidate.id,
            "portion_multiplier": quote.portion_multiplier,
            "calories_planned": quote.calories_planned,
            "portions_to_cook": None if meal.is_leftover else candidate.portions,
        }
    return updates
