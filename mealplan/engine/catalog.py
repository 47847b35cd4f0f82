"""
Recipe catalog interface used by the planning engine.

The engine only needs one query: recipes for a slot whose per-portion
calories fall inside a band, minus the ones already used. Storage-backed
and in-memory catalogs both implement this protocol.
"""
from typing import Iterable, List, Optional, Protocol, Set
from uuid import UUID

from mealplan.models.schemas import MealSlot, Recipe


class RecipeCatalog(Protocol):
    """
    Protocol for recipe lookups during plan generation.

    Implementations must return only active recipes eligible for the slot,
    with calories_per_portion in [calorie_min, calorie_max] inclusive, and
    none whose id is in exclude_ids.
    """

    def find_recipes(
        self,
        slot: MealSlot,
        calorie_min: int,
        calorie_max: int,
        exclude_ids: Optional[Set[UUID]] = None,
    ) -> List[Recipe]:
        ...


class StaticRecipeCatalog:
    """Catalog over a fixed list of recipes, indexed by slot."""

    def __init__(self, recipes: Iterable[Recipe]):
        self.recipes = list(recipes)
        self.recipes_by_slot = {slot: [] for slot in MealSlot}
        for recipe in self.recipes:
            for slot in recipe.eligible_slots:
                self.recipes_by_slot[slot].append(recipe)

    def find_recipes(
        self,
        slot: MealSlot,
        calorie_min: int,
        calorie_max: int,
        exclude_ids: Optional[Set[UUID]] = None,
    ) -> List[Recipe]:
        exclude_ids = exclude_ids or set()
        return [
            r for r in self.recipes_by_slot.get(slot, [])
            if r.is_active
            and calorie_min <= r.calories_per_portion <= calorie_max
            and r.id not in exclude_ids
        ]
