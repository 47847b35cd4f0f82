"""
Persistence for plans and meals.

Every write here is a single unit of work: it either commits completely
or rolls back and re-raises, so readers never see a partial plan or a
multi-portion group with only one member updated.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from mealplan.db.models import Plan, PlanDay, PlanDaySlotTarget, PlanMeal
from mealplan.errors import (
    ActivePlanExistsError,
    ConcurrentModificationError,
    DatabaseIntegrityError,
)
from mealplan.models.schemas import (
    MealCompletionStats, MealSlot, MealStatus, PlanDraft, PlanState
)

logger = logging.getLogger(__name__)


class PlanRepository:
    """SQLAlchemy-backed storage for the planning core."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    def has_active_plan(self, owner_id: UUID) -> bool:
        return (
            self.db.query(Plan.id)
            .filter(Plan.owner_id == owner_id, Plan.state == PlanState.ACTIVE)
            .first()
            is not None
        )

    def get_plan(self, plan_id: UUID, lock: bool = False) -> Optional[Plan]:
        query = self.db.query(Plan).filter(Plan.id == plan_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def list_plans(
        self,
        owner_id: UUID,
        state: Optional[PlanState] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Plan], int]:
        """Owner's plans, newest first, with the unpaginated total."""
        query = self.db.query(Plan).filter(Plan.owner_id == owner_id)
        if state is not None:
            query = query.filter(Plan.state == state)

        total = query.count()
        plans = (
            query.order_by(Plan.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return plans, total

    def persist_plan_atomically(self, owner_id: UUID, draft: PlanDraft) -> Plan:
        """
        Insert a plan with its days, slot targets and meals in one transaction.

        The active-plan check is repeated inside the transaction; a concurrent
        insert that slips past it is stopped by the partial unique index.

        Raises:
            ActivePlanExistsError: Owner already has an active plan
            DatabaseIntegrityError: Any other constraint violation
        """
        try:
            if self.has_active_plan(owner_id):
                raise ActivePlanExistsError(str(owner_id))

            plan = Plan(
                owner_id=owner_id,
                state=PlanState.ACTIVE,
                start_date=draft.start_date,
                end_date=draft.end_date,
                daily_calories=draft.daily_calories,
            )
            self.db.add(plan)

            day_rows = []
            for day in draft.days:
                day_row = PlanDay(plan=plan, date=day.date)
                for slot, calories_target in day.slot_targets.items():
                    day_row.slot_targets.append(
                        PlanDaySlotTarget(slot=slot, calories_target=calories_target)
                    )
                self.db.add(day_row)
                day_rows.append(day_row)

            for meal in draft.meals:
                self.db.add(
                    PlanMeal(
                        plan=plan,
                        plan_day=day_rows[meal.day_index],
                        slot=meal.slot,
                        status=MealStatus.PLANNED,
                        recipe_id=meal.recipe_id,
                        portion_multiplier=meal.portion_multiplier,
                        calories_planned=meal.calories_planned,
                        is_leftover=meal.is_leftover,
                        multi_portion_group_id=meal.multi_portion_group_id,
                        portions_to_cook=meal.portions_to_cook,
                    )
                )

            self.db.flush()
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if self.has_active_plan(owner_id):
                raise ActivePlanExistsError(str(owner_id)) from e
            logger.error(f"Integrity error while persisting plan for owner {owner_id}: {e.orig}")
            raise DatabaseIntegrityError(
                "plan generation",
                details={"owner_id": str(owner_id), "error_type": type(e.orig).__name__},
            ) from e
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(plan)
        logger.info(
            f"Persisted plan {plan.id} for owner {owner_id}: "
            f"{len(draft.days)} days, {len(draft.meals)} meals"
        )
        return plan

    def save_plan_state(self, plan: Plan, state: PlanState) -> Plan:
        try:
            plan.state = state
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(plan)
        return plan

    # ------------------------------------------------------------------
    # Plan days and slot targets
    # ------------------------------------------------------------------

    def get_plan_day(self, plan_id: UUID, day: date) -> Optional[PlanDay]:
        return (
            self.db.query(PlanDay)
            .filter(PlanDay.plan_id == plan_id, PlanDay.date == day)
            .first()
        )

    def get_slot_target(self, plan_day_id: UUID, slot: MealSlot) -> Optional[int]:
        """Calorie target of one slot on one plan day."""
        target = (
            self.db.query(PlanDaySlotTarget.calories_target)
            .filter(
                PlanDaySlotTarget.plan_day_id == plan_day_id,
                PlanDaySlotTarget.slot == slot,
            )
            .first()
        )
        return target[0] if target else None

    # ------------------------------------------------------------------
    # Meals
    # ------------------------------------------------------------------

    def get_meal(self, meal_id: UUID) -> Optional[PlanMeal]:
        return self.db.query(PlanMeal).filter(PlanMeal.id == meal_id).first()

    def get_group_members(self, group_id: UUID) -> List[PlanMeal]:
        """All meals of a multi-portion group, cook day first."""
        return (
            self.db.query(PlanMeal)
            .filter(PlanMeal.multi_portion_group_id == group_id)
            .order_by(PlanMeal.is_leftover)
            .all()
        )

    def count_meals_by_status(self, plan_id: UUID) -> MealCompletionStats:
        rows = (
            self.db.query(PlanMeal.status, func.count(PlanMeal.id))
            .filter(PlanMeal.plan_id == plan_id)
            .group_by(PlanMeal.status)
            .all()
        )
        counts = {status: count for status, count in rows}
        return MealCompletionStats(
            total=sum(counts.values()),
            completed=counts.get(MealStatus.COMPLETED, 0),
        )

    def update_meals(self, updates: Dict[UUID, Dict[str, Any]]) -> List[PlanMeal]:
        """
        Apply field updates to several meals as one unit.

        Rows are locked for the duration of the transaction and each UPDATE
        is checked against the version the caller loaded, so a concurrent
        change to any member aborts the whole batch.

        Args:
            updates: Mapping of meal ID to the fields to set on it

        Returns:
            The updated meals, cook day first

        Raises:
            ConcurrentModificationError: A member vanished or changed concurrently
        """
        meal_ids = list(updates)
        try:
            meals = (
                self.db.query(PlanMeal)
                .filter(PlanMeal.id.in_(meal_ids))
                .with_for_update()
                .all()
            )
            if len(meals) != len(meal_ids):
                raise ConcurrentModificationError("meal", [str(i) for i in meal_ids])

            for meal in meals:
                self._apply_fields(meal, updates[meal.id])

            self.db.flush()
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            logger.warning(f"Concurrent modification of meals {meal_ids}")
            raise ConcurrentModificationError("meal", [str(i) for i in meal_ids]) from e
        except Exception:
            self.db.rollback()
            raise

        for meal in meals:
            self.db.refresh(meal)
        return sorted(meals, key=lambda m: m.is_leftover)

    def _apply_fields(self, meal: PlanMeal, fields: Dict[str, Any]) -> None:
        for name, value in fields.items():
            setattr(meal, name, value)
