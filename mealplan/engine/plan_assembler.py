"""
Meal plan assembler.

Fills every slot of every day of a new plan, pairing lunches and dinners
across consecutive days where possible. Works entirely in memory; the
caller persists the resulting draft in one transaction.
"""
import logging
from datetime import date, timedelta
from typing import List, Optional, Set
from uuid import UUID

from mealplan.engine.calories import distribute_calories
from mealplan.engine.multi_portion import FilledSlots, MultiPortionPlanner
from mealplan.engine.recipe_selector import RecipeSelector
from mealplan.errors import AllocationExhaustedError
from mealplan.models.schemas import SLOT_ORDER, MealDraft, PlanDayDraft, PlanDraft

logger = logging.getLogger(__name__)


def calculate_end_date(start_date: date, plan_length_days: int) -> date:
    """Last day of a plan, inclusive."""
    return start_date + timedelta(days=plan_length_days - 1)


def generate_plan_dates(start_date: date, plan_length_days: int) -> List[date]:
    """Every calendar day of the plan, in order."""
    return [start_date + timedelta(days=offset) for offset in range(plan_length_days)]


class PlanAssembler:
    """Build the full meal grid for a new plan."""

    def __init__(
        self,
        selector: RecipeSelector,
        multi_portion_planner: Optional[MultiPortionPlanner] = None,
    ):
        self.selector = selector
        self.multi_portion_planner = multi_portion_planner or MultiPortionPlanner()

    def assemble(
        self,
        start_date: date,
        plan_length_days: int,
        daily_calories: int,
    ) -> PlanDraft:
        """
        Generate a plan draft.

        Args:
            start_date: First day of the plan
            plan_length_days: Number of days (at least 1)
            daily_calories: Daily calorie budget

        Returns:
            PlanDraft with one meal per slot per day

        Raises:
            AllocationExhaustedError: Some day/slot has no recipe at any level
        """
        end_date = calculate_end_date(start_date, plan_length_days)
        dates = generate_plan_dates(start_date, plan_length_days)
        slot_targets = distribute_calories(daily_calories)

        days = [
            PlanDayDraft(day_index=i, date=d, slot_targets=dict(slot_targets))
            for i, d in enumerate(dates)
        ]

        meals: List[MealDraft] = []
        used_recipe_ids: Set[UUID] = set()
        filled: FilledSlots = set()

        for day_index in range(plan_length_days):
            for slot in SLOT_ORDER:
                if (day_index, slot) in filled:
                    continue

                target = slot_targets[slot]
                try:
                    recipe = self.selector.select(slot, target, used_recipe_ids)
                except AllocationExhaustedError as e:
                    raise AllocationExhaustedError(
                        slot=slot.value, target_calories=target, day_index=day_index
                    ) from e

                used_recipe_ids.add(recipe.id)
                meals.extend(
                    self.multi_portion_planner.plan_meals(
                        day_index=day_index,
                        slot=slot,
                        recipe=recipe,
                        target_calories=target,
                        day_count=plan_length_days,
                        filled=filled,
                    )
                )

        logger.info(
            f"Assembled {plan_length_days}-day plan ({start_date} to {end_date}): "
            f"{len(meals)} meals, {len(used_recipe_ids)} distinct recipes, "
            f"{len(filled)} leftover meals"
        )

        return PlanDraft(
            start_date=start_date,
            end_date=end_date,
            daily_calories=daily_calories,
            days=days,
            meals=meals,
        )
