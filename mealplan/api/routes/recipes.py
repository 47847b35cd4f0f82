"""
Recipe catalogue API routes.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mealplan.api.dependencies import get_current_owner_id
from mealplan.api.errors import database_error, to_http_exception
from mealplan.config import settings
from mealplan.db.database import get_db
from mealplan.errors import MealPlanError, ValidationError
from mealplan.models.schemas import (
    MealSlot,
    RecipeDetailsDTO,
    RecipesListResponse,
    SearchRecipesQuery,
    parse_command,
)
from mealplan.services.recipe_service import RecipeService

router = APIRouter(prefix="/api/recipes", tags=["recipes"])


@router.get("", response_model=RecipesListResponse)
async def list_recipes(
    slot: Optional[MealSlot] = Query(None, description="Filter by meal slot"),
    min_calories: Optional[int] = Query(None, gt=0, description="Minimum kcal per portion"),
    max_calories: Optional[int] = Query(None, gt=0, description="Maximum kcal per portion"),
    search: Optional[str] = Query(None, description="Case-insensitive name search"),
    limit: int = Query(
        default=settings.pagination_recipes_default_limit,
        ge=1,
        le=settings.pagination_recipes_max_limit,
    ),
    offset: int = Query(0, ge=0),
    owner_id: UUID = Depends(get_current_owner_id),
    db: Session = Depends(get_db),
):
    """
    Search the recipe catalogue.
    """
    try:
        params = parse_command(
            SearchRecipesQuery,
            slot=slot,
            min_calories=min_calories,
            max_calories=max_calories,
            search=search,
            limit=limit,
            offset=offset,
        )
        return RecipeService(db).search_recipes(params)
    except ValidationError as e:
        raise to_http_exception(e)
    except SQLAlchemyError as e:
        raise database_error(e, "searching recipes")


@router.get("/{recipe_id}", response_model=RecipeDetailsDTO)
async def get_recipe(
    recipe_id: UUID,
    owner_id: UUID = Depends(get_current_owner_id),
    db: Session = Depends(get_db),
):
    """
    Get a specific recipe by ID.
    """
    try:
        recipe = RecipeService(db).get_recipe(recipe_id)
        return RecipeDetailsDTO.from_recipe(recipe)
    except MealPlanError as e:
        raise to_http_exception(e)
    except SQLAlchemyError as e:
        raise database_error(e, "loading recipe")
