"""
Plan meal API routes: swaps, status updates and alternatives.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mealplan.api.dependencies import get_current_owner_id
from mealplan.api.errors import database_error, to_http_exception
from mealplan.config import settings
from mealplan.db.database import get_db
from mealplan.errors import MealPlanError, SwapRejectedError
from mealplan.models.schemas import (
    AlternativesResponse,
    MealDTO,
    RecipeDTO,
    SwapMealCommand,
    SwapMealResponse,
    UpdateMealStatusCommand,
)
from mealplan.services.meal_service import MealService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plan-meals", tags=["plan-meals"])


@router.patch("/{meal_id}", response_model=MealDTO)
async def update_meal_status(
    meal_id: UUID,
    request: UpdateMealStatusCommand,
    owner_id: UUID = Depends(get_current_owner_id),
    db: Session = Depends(get_db),
):
    """
    Mark a meal as planned, completed or skipped.
    """
    service = MealService(db)
    try:
        meal = service.update_meal_status(meal_id, owner_id, request.status)
        return MealDTO.model_validate(meal)
    except MealPlanError as e:
        raise to_http_exception(e)
    except SQLAlchemyError as e:
        raise database_error(e, "updating meal status")


@router.post("/{meal_id}/swap", response_model=SwapMealResponse)
async def swap_meal(
    meal_id: UUID,
    request: SwapMealCommand,
    owner_id: UUID = Depends(get_current_owner_id),
    db: Session = Depends(get_db),
):
    """
    Replace a meal's recipe.

    If the meal is part of a cook-once-eat-twice pair, both meals change.
    """
    service = MealService(db)
    try:
        meals = service.swap_meal(meal_id, request.new_recipe_id, owner_id)
        return SwapMealResponse(updated_meals=[MealDTO.model_validate(m) for m in meals])
    except SwapRejectedError as e:
        logger.info(f"Swap of meal {meal_id} rejected: {e.reason.value}")
        raise to_http_exception(e)
    except MealPlanError as e:
        raise to_http_exception(e)
    except SQLAlchemyError as e:
        raise database_error(e, "swapping meal")


@router.get("/{meal_id}/alternatives", response_model=AlternativesResponse)
async def get_alternatives(
    meal_id: UUID,
    limit: int = Query(
        default=settings.alternatives_default_limit,
        ge=1,
        le=settings.alternatives_max_limit,
    ),
    owner_id: UUID = Depends(get_current_owner_id),
    db: Session = Depends(get_db),
):
    """
    Suggest recipes that could replace a meal.
    """
    service = MealService(db)
    try:
        recipes = service.get_alternatives(meal_id, owner_id, limit=limit)
        return AlternativesResponse(data=[RecipeDTO.from_recipe(r) for r in recipes])
    except MealPlanError as e:
        raise to_http_exception(e)
    except SQLAlchemyError as e:
        raise database_error(e, "finding alternatives")
