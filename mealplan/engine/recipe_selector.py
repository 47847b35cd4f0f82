"""
Recipe selection with escalating calorie tolerance.
"""
import logging
import random
from typing import List, Optional, Sequence, Set
from uuid import UUID

from mealplan.config import settings
from mealplan.engine.calories import calorie_band
from mealplan.engine.catalog import RecipeCatalog
from mealplan.errors import AllocationExhaustedError
from mealplan.models.schemas import MealSlot, Recipe

logger = logging.getLogger(__name__)


class RecipeSelector:
    """
    Pick one recipe for a slot, widening the calorie band when needed.

    Search levels, stopping at the first non-empty candidate set:
    1. narrowest tolerance, excluding recipes already used in the plan
    2. each wider tolerance in turn, still excluding used recipes
    3. widest tolerance with repeats allowed

    The pick is uniform over the candidates of the level that produced them.
    """

    def __init__(
        self,
        catalog: RecipeCatalog,
        rng: Optional[random.Random] = None,
        tolerances: Optional[Sequence[float]] = None,
    ):
        """
        Args:
            catalog: Source of candidate recipes
            rng: Random source; pass a seeded instance for reproducible plans
            tolerances: Escalating relative tolerances (default from settings)
        """
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.tolerances = list(tolerances or settings.plan_generation_tolerances)

    def candidates(
        self,
        slot: MealSlot,
        target_calories: int,
        used_recipe_ids: Set[UUID],
    ) -> List[Recipe]:
        """Return the candidate set of the first level that has any."""
        for tolerance in self.tolerances:
            calorie_min, calorie_max = calorie_band(target_calories, tolerance)
            found = self.catalog.find_recipes(slot, calorie_min, calorie_max, used_recipe_ids)
            if found:
                logger.debug(
                    f"{slot.value}: {len(found)} candidates at ±{tolerance:.0%} "
                    f"({calorie_min}-{calorie_max} kcal, excluding {len(used_recipe_ids)} used)"
                )
                return found
            logger.debug(f"{slot.value}: no unused recipes at ±{tolerance:.0%}, widening")

        # Last resort: allow recipes already used elsewhere in the plan
        widest = self.tolerances[-1]
        calorie_min, calorie_max = calorie_band(target_calories, widest)
        found = self.catalog.find_recipes(slot, calorie_min, calorie_max, set())
        if found:
            logger.info(
                f"{slot.value}: allowing repeated recipes at ±{widest:.0%} "
                f"({len(found)} candidates)"
            )
        return found

    def select(
        self,
        slot: MealSlot,
        target_calories: int,
        used_recipe_ids: Optional[Set[UUID]] = None,
    ) -> Recipe:
        """
        Select a recipe for the slot.

        Raises:
            AllocationExhaustedError: No recipe fits at any level
        """
        found = self.candidates(slot, target_calories, used_recipe_ids or set())
        if not found:
            logger.warning(f"No recipes available for {slot.value} (target {target_calories} kcal)")
            raise AllocationExhaustedError(slot=slot.value, target_calories=target_calories)

        # Sort so a seeded rng gives the same pick regardless of query order
        ordered = sorted(found, key=lambda r: str(r.id))
        return self.rng.choice(ordered)
