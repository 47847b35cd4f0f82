"""
Meal plan API routes.
"""
import logging
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mealplan.api.dependencies import get_current_owner_id
from mealplan.api.errors import database_error, to_http_exception
from mealplan.config import settings
from mealplan.db.database import get_db
from mealplan.errors import AllocationExhaustedError, MealPlanError
from mealplan.models.schemas import (
    CreatePlanCommand,
    ListPlansQuery,
    PlanDayViewDTO,
    PlanDetailsDTO,
    PlanDTO,
    PlansListResponse,
    PlanState,
    UpdatePlanStateCommand,
)
from mealplan.services.plan_service import PlanService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plans", tags=["meal-plans"])


@router.post("/generate", response_model=PlanDTO, status_code=status.HTTP_201_CREATED)
async def generate_plan(
    request: CreatePlanCommand,
    owner_id: UUID = Depends(get_current_owner_id),
    db: Session = Depends(get_db),
):
    """
    Generate a new meal plan.

    Fills every breakfast, lunch, dinner and snack of every day. Fails
    without saving anything if some slot cannot be filled.
    """
    service = PlanService(db)
    try:
        plan = service.create_plan(owner_id, request)
        return PlanDTO.model_validate(plan)
    except AllocationExhaustedError as e:
        logger.warning(f"Plan generation exhausted recipes: {e.details}")
        raise to_http_exception(e)
    except MealPlanError as e:
        raise to_http_exception(e)
    except SQLAlchemyError as e:
        raise database_error(e, "generating meal plan")


@router.get("", response_model=PlansListResponse)
async def list_plans(
    state: Optional[PlanState] = Query(None, description="Filter by plan state"),
    limit: int = Query(
        default=settings.pagination_plans_default_limit,
        ge=1,
        le=settings.pagination_plans_max_limit,
    ),
    offset: int = Query(0, ge=0),
    owner_id: UUID = Depends(get_current_owner_id),
    db: Session = Depends(get_db),
):
    """
    List the caller's plans, newest first.
    """
    service = PlanService(db)
    try:
        return service.list_plans(owner_id, ListPlansQuery(state=state, limit=limit, offset=offset))
    except SQLAlchemyError as e:
        raise database_error(e, "listing meal plans")


@router.get("/{plan_id}", response_model=PlanDetailsDTO)
async def get_plan(
    plan_id: UUID,
    owner_id: UUID = Depends(get_current_owner_id),
    db: Session = Depends(get_db),
):
    """
    Get a plan with all of its days, slot targets and meals.
    """
    service = PlanService(db)
    try:
        return service.get_plan_details(plan_id, owner_id)
    except MealPlanError as e:
        raise to_http_exception(e)
    except SQLAlchemyError as e:
        raise database_error(e, "loading meal plan")


@router.patch("/{plan_id}", response_model=PlanDTO)
async def update_plan_state(
    plan_id: UUID,
    request: UpdatePlanStateCommand,
    owner_id: UUID = Depends(get_current_owner_id),
    db: Session = Depends(get_db),
):
    """
    Archive or cancel a plan.

    Archiving requires most meals to be completed.
    """
    service = PlanService(db)
    try:
        plan = service.update_plan_state(plan_id, owner_id, request.state)
        return PlanDTO.model_validate(plan)
    except MealPlanError as e:
        raise to_http_exception(e)
    except SQLAlchemyError as e:
        raise database_error(e, "updating plan state")


@router.get("/{plan_id}/days/{day}", response_model=PlanDayViewDTO)
async def get_plan_day(
    plan_id: UUID,
    day: date,
    owner_id: UUID = Depends(get_current_owner_id),
    db: Session = Depends(get_db),
):
    """
    Get the meals planned for one day.
    """
    service = PlanService(db)
    try:
        return service.get_plan_day(plan_id, day, owner_id)
    except MealPlanError as e:
        raise to_http_exception(e)
    except SQLAlchemyError as e:
        raise database_error(e, "loading plan day")
