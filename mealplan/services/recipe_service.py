"""
Recipe catalogue access backed by the database.
"""
import logging
from typing import List, Optional, Set
from uuid import UUID

from sqlalchemy.orm import Session

from mealplan.db.models import Recipe as DBRecipe, RecipeSlot
from mealplan.errors import RecipeNotFoundError
from mealplan.models.schemas import (
    MealSlot, PaginationMeta, Recipe, RecipeDTO, RecipesListResponse, SearchRecipesQuery
)

logger = logging.getLogger(__name__)


def db_recipe_to_schema(db_recipe: DBRecipe) -> Recipe:
    """Convert database Recipe to Pydantic schema."""
    return Recipe(
        id=db_recipe.id,
        name=db_recipe.name,
        slug=db_recipe.slug,
        calories_per_portion=db_recipe.calories_per_portion,
        portions=db_recipe.portions,
        eligible_slots=db_recipe.eligible_slots,
        is_active=db_recipe.is_active,
        prep_minutes=db_recipe.prep_minutes,
        cook_minutes=db_recipe.cook_minutes,
        image_url=db_recipe.image_url,
        source_url=db_recipe.source_url,
        ingredients=db_recipe.ingredients or [],
    )


class SqlRecipeCatalog:
    """RecipeCatalog implementation over the recipes and recipe_slots tables."""

    def __init__(self, db: Session):
        self.db = db

    def find_recipes(
        self,
        slot: MealSlot,
        calorie_min: int,
        calorie_max: int,
        exclude_ids: Optional[Set[UUID]] = None,
    ) -> List[Recipe]:
        query = (
            self.db.query(DBRecipe)
            .join(RecipeSlot, RecipeSlot.recipe_id == DBRecipe.id)
            .filter(
                RecipeSlot.slot == slot,
                DBRecipe.is_active.is_(True),
                DBRecipe.calories_per_portion >= calorie_min,
                DBRecipe.calories_per_portion <= calorie_max,
            )
        )
        if exclude_ids:
            query = query.filter(DBRecipe.id.notin_(list(exclude_ids)))

        return [db_recipe_to_schema(r) for r in query.order_by(DBRecipe.id).all()]


class RecipeService:
    """
    Service for recipe catalogue lookups.

    The planning core only reads recipes; ingestion happens through the CLI.
    """

    def __init__(self, db: Session):
        """
        Initialize the recipe service.

        Args:
            db: SQLAlchemy database session.
        """
        self.db = db

    def get_recipe(self, recipe_id: UUID) -> Recipe:
        """
        Get an active recipe by ID.

        Raises:
            RecipeNotFoundError: Recipe does not exist or is inactive
        """
        db_recipe = (
            self.db.query(DBRecipe)
            .filter(DBRecipe.id == recipe_id, DBRecipe.is_active.is_(True))
            .first()
        )
        if db_recipe is None:
            raise RecipeNotFoundError(str(recipe_id))
        return db_recipe_to_schema(db_recipe)

    def search_recipes(self, params: SearchRecipesQuery) -> RecipesListResponse:
        """
        Search active recipes by slot, per-portion calorie range and name.

        Args:
            params: Filters and pagination

        Returns:
            Page of recipes ordered by name, with pagination metadata
        """
        query = self.db.query(DBRecipe).filter(DBRecipe.is_active.is_(True))

        if params.slot:
            query = query.filter(DBRecipe.slots.any(RecipeSlot.slot == params.slot))
        if params.min_calories is not None:
            query = query.filter(DBRecipe.calories_per_portion >= params.min_calories)
        if params.max_calories is not None:
            query = query.filter(DBRecipe.calories_per_portion <= params.max_calories)
        if params.search:
            query = query.filter(DBRecipe.name.ilike(f"%{params.search}%"))

        total = query.count()
        rows = (
            query.order_by(DBRecipe.name, DBRecipe.id)
            .offset(params.offset)
            .limit(params.limit)
            .all()
        )

        return RecipesListResponse(
            data=[RecipeDTO.from_recipe(db_recipe_to_schema(r)) for r in rows],
            pagination=PaginationMeta(
                total=total,
                limit=params.limit,
                offset=params.offset,
                has_more=params.offset + params.limit < total,
            ),
        )
