"""
Meal service: swapping recipes, tracking meal status and suggesting alternatives.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from mealplan.config import settings
from mealplan.db.models import PlanMeal
from mealplan.engine.calories import calorie_band, round_half_up
from mealplan.engine.lifecycle import transition_meal_status
from mealplan.engine.meal_swap import build_swap_updates, validate_swap
from mealplan.errors import (
    DatabaseIntegrityError,
    ForbiddenError,
    MealNotFoundError,
    PlanNotActiveError,
)
from mealplan.models.schemas import MealStatus, PlanState, Recipe
from mealplan.services.plan_repository import PlanRepository
from mealplan.services.recipe_service import RecipeService, SqlRecipeCatalog

logger = logging.getLogger(__name__)


class MealService:
    """Service for changes to individual plan meals."""

    def __init__(self, db: Session):
        self.db = db
        self.repository = PlanRepository(db)
        self.recipes = RecipeService(db)
        self.catalog = SqlRecipeCatalog(db)

    def _get_owned_meal(self, meal_id: UUID, owner_id: UUID) -> PlanMeal:
        meal = self.repository.get_meal(meal_id)
        if meal is None:
            raise MealNotFoundError(str(meal_id))
        if meal.plan.owner_id != owner_id:
            raise ForbiddenError("meal", str(meal_id))
        return meal

    def _require_active_plan(self, meal: PlanMeal) -> None:
        if meal.plan.state != PlanState.ACTIVE:
            raise PlanNotActiveError(str(meal.plan_id), meal.plan.state.value)

    def swap_meal(self, meal_id: UUID, new_recipe_id: UUID, owner_id: UUID) -> List[PlanMeal]:
        """
        Replace the recipe of a meal, and of its multi-portion partner if any.

        The candidate is validated against the stored slot target of the
        meal's day. Either every affected meal is updated or none is.

        Args:
            meal_id: Meal being swapped
            new_recipe_id: Replacement recipe
            owner_id: Caller; must own the meal's plan

        Returns:
            Updated meals, cook day first

        Raises:
            MealNotFoundError / RecipeNotFoundError: Unknown meal or recipe
            ForbiddenError: Meal belongs to another owner
            PlanNotActiveError: Plan is archived or cancelled
            SwapRejectedError: Slot, portion or calorie rule failed
            ConcurrentModificationError: A group member changed mid-swap
        """
        meal = self._get_owned_meal(meal_id, owner_id)
        self._require_active_plan(meal)

        candidate = self.recipes.get_recipe(new_recipe_id)

        target = self.repository.get_slot_target(meal.plan_day_id, meal.slot)
        if target is None:
            raise DatabaseIntegrityError(
                "plan_day_slot_targets",
                details={"plan_day_id": str(meal.plan_day_id), "slot": meal.slot.value},
            )

        quote = validate_swap(meal.slot, target, candidate)

        if meal.multi_portion_group_id is None:
            members = [meal]
        else:
            members = self.repository.get_group_members(meal.multi_portion_group_id)
            if len(members) != 2:
                logger.warning(
                    f"Multi-portion group {meal.multi_portion_group_id} has "
                    f"{len(members)} members, expected 2"
                )

        updated = self.repository.update_meals(build_swap_updates(members, candidate, quote))

        logger.info(
            f"Swapped meal {meal_id} to recipe {candidate.id} "
            f"(x{quote.portion_multiplier}, {quote.calories_planned} kcal, "
            f"{len(updated)} meal(s) updated)"
        )
        return updated

    def update_meal_status(self, meal_id: UUID, owner_id: UUID, new_status: MealStatus) -> PlanMeal:
        """
        Mark a meal as planned, completed or skipped.

        Raises:
            MealNotFoundError: Meal does not exist
            ForbiddenError: Meal belongs to another owner
            PlanNotActiveError: Plan is archived or cancelled
            InvalidStatusTransitionError: completed <-> skipped directly
        """
        meal = self._get_owned_meal(meal_id, owner_id)
        self._require_active_plan(meal)

        target = transition_meal_status(str(meal_id), meal.status, new_status)
        if target == meal.status:
            return meal

        old_status = meal.status
        [meal] = self.repository.update_meals({meal.id: {"status": target}})
        logger.info(f"Meal {meal_id} status {old_status.value} -> {target.value}")
        return meal

    def get_alternatives(
        self,
        meal_id: UUID,
        owner_id: UUID,
        limit: Optional[int] = None,
    ) -> List[Recipe]:
        """
        Recipes that could replace a meal.

        Candidates share the meal's slot, are active, and have a per-portion
        calorie count within the swap tolerance of the meal's current
        per-portion calories. The current recipe is excluded.
        """
        if limit is None:
            limit = settings.alternatives_default_limit
        limit = max(1, min(limit, settings.alternatives_max_limit))

        meal = self._get_owned_meal(meal_id, owner_id)

        per_portion = round_half_up(meal.calories_planned / meal.portion_multiplier)
        calorie_min, calorie_max = calorie_band(per_portion, settings.swap_calorie_tolerance)

        candidates = self.catalog.find_recipes(
            meal.slot, calorie_min, calorie_max, exclude_ids={meal.recipe_id}
        )
        return candidates[:limit]
