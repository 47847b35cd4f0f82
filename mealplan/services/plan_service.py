"""
Plan service: generation, lifecycle and read views.
"""
import logging
import random
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from mealplan.db.models import Plan, PlanDay, PlanMeal
from mealplan.engine.lifecycle import transition_plan
from mealplan.engine.plan_assembler import PlanAssembler
from mealplan.engine.recipe_selector import RecipeSelector
from mealplan.errors import (
    ActivePlanExistsError,
    ForbiddenError,
    PlanDayNotFoundError,
    PlanNotFoundError,
)
from mealplan.models.schemas import (
    MULTI_PORTION_SLOTS,
    SLOT_ORDER,
    CreatePlanCommand,
    DayMealDTO,
    ListPlansQuery,
    MealDTO,
    PaginationMeta,
    PlanDayDetailDTO,
    PlanDayViewDTO,
    PlanDetailsDTO,
    PlanDTO,
    PlanMealDetailDTO,
    PlanState,
    PlansListResponse,
    RecipeSummaryDTO,
    SlotTargetDTO,
)
from mealplan.services.plan_repository import PlanRepository
from mealplan.services.recipe_service import SqlRecipeCatalog, db_recipe_to_schema

logger = logging.getLogger(__name__)


def _slot_sort_key(item) -> int:
    return SLOT_ORDER.index(item.slot)


def _slot_targets(plan_day: PlanDay):
    return [
        SlotTargetDTO(slot=t.slot, calories_target=t.calories_target)
        for t in sorted(plan_day.slot_targets, key=_slot_sort_key)
    ]


def _recipe_summary(meal: PlanMeal) -> RecipeSummaryDTO:
    recipe = db_recipe_to_schema(meal.recipe)
    return RecipeSummaryDTO(
        id=recipe.id,
        name=recipe.name,
        image_url=recipe.image_url,
        time_minutes=recipe.time_minutes,
        source_url=recipe.source_url,
        eligible_slots=recipe.eligible_slots,
    )


def _day_meal(meal: PlanMeal) -> DayMealDTO:
    """Flatten a meal and its recipe into the shape the day view renders."""
    recipe = db_recipe_to_schema(meal.recipe)
    in_group = meal.multi_portion_group_id is not None and meal.slot in MULTI_PORTION_SLOTS
    return DayMealDTO(
        id=meal.id,
        status=meal.status,
        slot=meal.slot,
        recipe_id=recipe.id,
        name=recipe.name,
        image_url=recipe.image_url,
        time_minutes=recipe.time_minutes,
        calories_planned=meal.calories_planned,
        portion_multiplier=meal.portion_multiplier,
        portions_to_cook=meal.portions_to_cook,
        servings=meal.portions_to_cook or meal.portion_multiplier,
        source_url=recipe.source_url,
        ingredients=recipe.ingredients,
        is_multi_portion_cook_day=in_group and not meal.is_leftover,
        is_multi_portion_leftover_day=in_group and meal.is_leftover,
    )


class PlanService:
    """Service for creating plans and managing their lifecycle."""

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        """
        Initialize the plan service.

        Args:
            db: SQLAlchemy database session.
            rng: Random source for recipe selection. Pass a seeded
                random.Random for reproducible plans.
        """
        self.db = db
        self.repository = PlanRepository(db)
        self.catalog = SqlRecipeCatalog(db)
        self.rng = rng

    def _get_owned_plan(self, plan_id: UUID, owner_id: UUID, lock: bool = False) -> Plan:
        plan = self.repository.get_plan(plan_id, lock=lock)
        if plan is None:
            raise PlanNotFoundError(str(plan_id))
        if plan.owner_id != owner_id:
            raise ForbiddenError("plan", str(plan_id))
        return plan

    def create_plan(self, owner_id: UUID, command: CreatePlanCommand) -> Plan:
        """
        Generate and persist a new active plan.

        Nothing is written unless every day and slot was filled.

        Args:
            owner_id: Plan owner
            command: Validated generation parameters

        Returns:
            The persisted plan

        Raises:
            ActivePlanExistsError: Owner already has an active plan
            AllocationExhaustedError: No recipe fits some day/slot
        """
        # Cheap check before running selection; repeated inside the insert transaction
        if self.repository.has_active_plan(owner_id):
            raise ActivePlanExistsError(str(owner_id))

        assembler = PlanAssembler(RecipeSelector(self.catalog, rng=self.rng))
        draft = assembler.assemble(
            start_date=command.start_date,
            plan_length_days=command.plan_length_days,
            daily_calories=command.daily_calories,
        )

        plan = self.repository.persist_plan_atomically(owner_id, draft)
        logger.info(
            f"Created plan {plan.id} for owner {owner_id}: {command.plan_length_days} days "
            f"at {command.daily_calories} kcal starting {command.start_date}"
        )
        return plan

    def update_plan_state(self, plan_id: UUID, owner_id: UUID, new_state: PlanState) -> Plan:
        """
        Move a plan to a new lifecycle state.

        Raises:
            PlanNotFoundError: Plan does not exist
            ForbiddenError: Plan belongs to another owner
            InvalidStateTransitionError: Transition not allowed from current state
            ArchivalThresholdError: Archiving before enough meals are completed
        """
        plan = self._get_owned_plan(plan_id, owner_id, lock=True)

        stats = None
        if new_state == PlanState.ARCHIVED:
            stats = self.repository.count_meals_by_status(plan.id)

        old_state = plan.state
        try:
            target = transition_plan(plan.state, new_state, stats)
        except Exception:
            # Release the row lock taken above
            self.db.rollback()
            raise

        plan = self.repository.save_plan_state(plan, target)
        logger.info(f"Plan {plan_id} moved from {old_state.value} to {target.value}")
        return plan

    def get_plan_details(self, plan_id: UUID, owner_id: UUID) -> PlanDetailsDTO:
        """Plan with every day, its slot targets and its meals."""
        plan = self._get_owned_plan(plan_id, owner_id)

        days = []
        for plan_day in plan.days:
            meals = sorted(plan_day.meals, key=_slot_sort_key)
            days.append(
                PlanDayDetailDTO(
                    id=plan_day.id,
                    date=plan_day.date,
                    meals=[
                        PlanMealDetailDTO(
                            **MealDTO.model_validate(meal).model_dump(),
                            recipe=_recipe_summary(meal),
                        )
                        for meal in meals
                    ],
                    slot_targets=_slot_targets(plan_day),
                )
            )

        return PlanDetailsDTO(
            **PlanDTO.model_validate(plan).model_dump(),
            days=days,
        )

    def list_plans(self, owner_id: UUID, query: ListPlansQuery) -> PlansListResponse:
        plans, total = self.repository.list_plans(
            owner_id, state=query.state, limit=query.limit, offset=query.offset
        )
        return PlansListResponse(
            data=[PlanDTO.model_validate(p) for p in plans],
            pagination=PaginationMeta(
                total=total,
                limit=query.limit,
                offset=query.offset,
                has_more=query.offset + query.limit < total,
            ),
            has_active_plan=self.repository.has_active_plan(owner_id),
        )

    def get_plan_day(self, plan_id: UUID, day: date, owner_id: UUID) -> PlanDayViewDTO:
        """
        Meals and slot targets of a single plan day.

        Raises:
            PlanNotFoundError: Plan does not exist
            ForbiddenError: Plan belongs to another owner
            PlanDayNotFoundError: Date is outside the plan
        """
        plan = self._get_owned_plan(plan_id, owner_id)

        plan_day = self.repository.get_plan_day(plan.id, day)
        if plan_day is None:
            raise PlanDayNotFoundError(str(plan_id), day.isoformat())

        return PlanDayViewDTO(
            date=plan_day.date,
            plan_id=plan.id,
            plan_start_date=plan.start_date,
            plan_end_date=plan.end_date,
            meals=[_day_meal(m) for m in sorted(plan_day.meals, key=_slot_sort_key)],
            slot_targets=_slot_targets(plan_day),
        )
