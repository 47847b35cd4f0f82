"""
"Cook once, eat twice" pairing of lunch and dinner recipes.
"""
import logging
import uuid
from typing import Callable, List, Set, Tuple

from mealplan.engine.calories import planned_calories, portion_multiplier_for
from mealplan.models.schemas import MULTI_PORTION_SLOTS, MealDraft, MealSlot, Recipe

logger = logging.getLogger(__name__)

# (day_index, slot) pairs already taken by a leftover meal
FilledSlots = Set[Tuple[int, MealSlot]]


class MultiPortionPlanner:
    """Decide whether a selected recipe becomes a cook-day/leftover-day pair."""

    def __init__(self, group_id_factory: Callable[[], uuid.UUID] = uuid.uuid4):
        self.group_id_factory = group_id_factory

    def is_eligible(
        self,
        day_index: int,
        slot: MealSlot,
        recipe: Recipe,
        day_count: int,
        filled: FilledSlots,
    ) -> bool:
        """
        A pair is created only when all hold:
        - slot is lunch or dinner
        - the recipe yields at least two portions
        - there is a next day in the plan
        - the same slot on the next day is still free
        """
        return (
            slot in MULTI_PORTION_SLOTS
            and recipe.portions >= 2
            and day_index + 1 < day_count
            and (day_index + 1, slot) not in filled
        )

    def plan_meals(
        self,
        day_index: int,
        slot: MealSlot,
        recipe: Recipe,
        target_calories: int,
        day_count: int,
        filled: FilledSlots,
    ) -> List[MealDraft]:
        """
        Build the meal draft(s) for one selected recipe.

        Marks the next day's slot as filled when a pair is created.

        Returns:
            One draft for a single meal, or two (cook day first) for a pair
        """
        multiplier = portion_multiplier_for(target_calories, recipe.calories_per_portion)
        if multiplier > recipe.portions:
            logger.debug(
                f"'{recipe.name}': portion_multiplier {multiplier} exceeds "
                f"{recipe.portions} portions, capping"
            )
            multiplier = recipe.portions
        calories = planned_calories(recipe.calories_per_portion, multiplier)

        if not self.is_eligible(day_index, slot, recipe, day_count, filled):
            return [
                MealDraft(
                    day_index=day_index,
                    slot=slot,
                    recipe_id=recipe.id,
                    portion_multiplier=multiplier,
                    calories_planned=calories,
                    portions_to_cook=recipe.portions,
                )
            ]

        group_id = self.group_id_factory()
        filled.add((day_index + 1, slot))
        logger.debug(
            f"Multi-portion {slot.value}: '{recipe.name}' days {day_index}-{day_index + 1}, "
            f"portion_multiplier={multiplier}, calories={calories}, portions_to_cook={recipe.portions}"
        )

        cook_day = MealDraft(
            day_index=day_index,
            slot=slot,
            recipe_id=recipe.id,
            portion_multiplier=multiplier,
            calories_planned=calories,
            is_leftover=False,
            multi_portion_group_id=group_id,
            portions_to_cook=recipe.portions,
        )
        leftover_day = MealDraft(
            day_index=day_index + 1,
            slot=slot,
            recipe_id=recipe.id,
            portion_multiplier=multiplier,
            calories_planned=calories,
            is_leftover=True,
            multi_portion_group_id=group_id,
            portions_to_cook=None,
        )
        return [cook_day, leftover_day]
