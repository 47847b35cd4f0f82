"""
Tests for MealService: swaps, status updates and alternatives.
"""
from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import update

from mealplan.db.models import PlanMeal
from mealplan.errors import (
    ConcurrentModificationError,
    ForbiddenError,
    InvalidStatusTransitionError,
    MealNotFoundError,
    PlanNotActiveError,
    RecipeNotFoundError,
    SwapRejectedError,
    SwapRejectionReason,
)
from mealplan.models.schemas import (
    MealDraft, MealSlot, MealStatus, PlanDayDraft, PlanDraft, PlanState
)
from mealplan.services.meal_service import MealService
from mealplan.services.plan_repository import PlanRepository
from mealplan.services.plan_service import PlanService


@pytest.fixture
def group_plan(db_session, recipe_factory, owner_id, start_date):
    """
    Two-day plan whose lunches form one multi-portion group.

    Lunch target is 600 kcal; the cooked recipe is 300 kcal per portion,
    so both meals plan 2 portions at 600 kcal.
    """
    old = recipe_factory("Rice Bowl", 300, [MealSlot.LUNCH], portions=4)
    group_id = uuid4()
    targets = {
        MealSlot.BREAKFAST: 429,
        MealSlot.LUNCH: 600,
        MealSlot.DINNER: 600,
        MealSlot.SNACK: 86,
    }
    draft = PlanDraft(
        start_date=start_date,
        end_date=start_date + timedelta(days=1),
        daily_calories=1714,
        days=[
            PlanDayDraft(day_index=0, date=start_date, slot_targets=targets),
            PlanDayDraft(day_index=1, date=start_date + timedelta(days=1), slot_targets=targets),
        ],
        meals=[
            MealDraft(
                day_index=0, slot=MealSlot.LUNCH, recipe_id=old.id, portion_multiplier=2,
                calories_planned=600, is_leftover=False, multi_portion_group_id=group_id,
                portions_to_cook=4,
            ),
            MealDraft(
                day_index=1, slot=MealSlot.LUNCH, recipe_id=old.id, portion_multiplier=2,
                calories_planned=600, is_leftover=True, multi_portion_group_id=group_id,
                portions_to_cook=None,
            ),
        ],
    )
    plan = PlanRepository(db_session).persist_plan_atomically(owner_id, draft)
    cook, leftover = sorted(plan.meals, key=lambda m: m.is_leftover)
    return {"plan": plan, "old": old, "cook": cook, "leftover": leftover, "group_id": group_id}


def reload(db_session, meal_id):
    db_session.expire_all()
    return db_session.get(PlanMeal, meal_id)


class TestSwapMeal:
    def test_swap_updates_whole_group(self, db_session, group_plan, recipe_factory, owner_id):
        new = recipe_factory("Pasta", 310, [MealSlot.LUNCH], portions=4)

        updated = MealService(db_session).swap_meal(group_plan["leftover"].id, new.id, owner_id)

        assert len(updated) == 2
        cook = reload(db_session, group_plan["cook"].id)
        leftover = reload(db_session, group_plan["leftover"].id)
        for meal in (cook, leftover):
            assert meal.recipe_id == new.id
            assert meal.portion_multiplier == 2
            assert meal.calories_planned == 620
            assert meal.multi_portion_group_id == group_plan["group_id"]
            assert meal.version == 2
        assert cook.portions_to_cook == 4
        assert leftover.portions_to_cook is None
        assert not cook.is_leftover and leftover.is_leftover

    def test_rejected_swap_changes_nothing(self, db_session, group_plan, recipe_factory, owner_id):
        breakfast_only = recipe_factory("Granola", 600, [MealSlot.BREAKFAST])

        with pytest.raises(SwapRejectedError) as exc_info:
            MealService(db_session).swap_meal(group_plan["cook"].id, breakfast_only.id, owner_id)

        assert exc_info.value.reason == SwapRejectionReason.SLOT_MISMATCH
        for key in ("cook", "leftover"):
            meal = reload(db_session, group_plan[key].id)
            assert meal.recipe_id == group_plan["old"].id
            assert meal.calories_planned == 600
            assert meal.version == 1

    def test_portion_exceeded(self, db_session, group_plan, recipe_factory, owner_id):
        small = recipe_factory("Dumplings", 150, [MealSlot.LUNCH], portions=2)

        with pytest.raises(SwapRejectedError) as exc_info:
            MealService(db_session).swap_meal(group_plan["cook"].id, small.id, owner_id)

        assert exc_info.value.reason == SwapRejectionReason.PORTION_EXCEEDED

    def test_calorie_out_of_range(self, db_session, group_plan, recipe_factory, owner_id):
        # One portion of 800 kcal vs a 600 kcal target (max 720)
        heavy = recipe_factory("Lasagne", 800, [MealSlot.LUNCH], portions=1)

        with pytest.raises(SwapRejectedError) as exc_info:
            MealService(db_session).swap_meal(group_plan["cook"].id, heavy.id, owner_id)

        assert exc_info.value.reason == SwapRejectionReason.CALORIE_OUT_OF_RANGE

    def test_failure_mid_update_leaves_group_intact(
        self, db_session, group_plan, recipe_factory, owner_id, monkeypatch
    ):
        new = recipe_factory("Pasta", 310, [MealSlot.LUNCH], portions=4)
        original_apply = PlanRepository._apply_fields
        calls = {"n": 0}

        def failing_apply(self, meal, fields):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("storage went away")
            original_apply(self, meal, fields)

        monkeypatch.setattr(PlanRepository, "_apply_fields", failing_apply)

        with pytest.raises(RuntimeError):
            MealService(db_session).swap_meal(group_plan["cook"].id, new.id, owner_id)

        assert calls["n"] == 2
        for key in ("cook", "leftover"):
            meal = reload(db_session, group_plan[key].id)
            assert meal.recipe_id == group_plan["old"].id
            assert meal.portion_multiplier == 2
            assert meal.version == 1

    def test_concurrent_change_aborts_batch(self, db_session, group_plan, recipe_factory):
        new = recipe_factory("Pasta", 310, [MealSlot.LUNCH], portions=4)
        repository = PlanRepository(db_session)
        members = repository.get_group_members(group_plan["group_id"])
        leftover = next(m for m in members if m.is_leftover)

        # Another writer bumps the leftover's version behind the session's back
        db_session.execute(
            update(PlanMeal)
            .where(PlanMeal.id == leftover.id)
            .values(version=PlanMeal.version + 1)
            .execution_options(synchronize_session=False)
        )

        updates = {m.id: {"recipe_id": new.id} for m in members}
        with pytest.raises(ConcurrentModificationError) as exc_info:
            repository.update_meals(updates)

        assert exc_info.value.status_code == 409
        cook = reload(db_session, group_plan["cook"].id)
        assert cook.recipe_id == group_plan["old"].id

    def test_swap_in_generated_plan(self, db_session, active_plan, standard_catalog, owner_id):
        lunch = next(
            m for m in active_plan.meals
            if m.slot == MealSlot.LUNCH and m.multi_portion_group_id and not m.is_leftover
        )
        alternative = (
            standard_catalog["lunch_alt"]
            if lunch.recipe_id == standard_catalog["lunch"].id
            else standard_catalog["lunch"]
        )

        updated = MealService(db_session).swap_meal(lunch.id, alternative.id, owner_id)

        assert {m.recipe_id for m in updated} == {alternative.id}
        assert {m.multi_portion_group_id for m in updated} == {lunch.multi_portion_group_id}

    def test_unknown_meal(self, db_session, group_plan, owner_id):
        with pytest.raises(MealNotFoundError):
            MealService(db_session).swap_meal(uuid4(), group_plan["old"].id, owner_id)

    def test_unknown_recipe(self, db_session, group_plan, owner_id):
        with pytest.raises(RecipeNotFoundError):
            MealService(db_session).swap_meal(group_plan["cook"].id, uuid4(), owner_id)

    def test_inactive_recipe(self, db_session, group_plan, recipe_factory, owner_id):
        retired = recipe_factory("Retired", 300, [MealSlot.LUNCH], portions=4, is_active=False)
        with pytest.raises(RecipeNotFoundError):
            MealService(db_session).swap_meal(group_plan["cook"].id, retired.id, owner_id)

    def test_other_owner(self, db_session, group_plan, other_owner_id):
        with pytest.raises(ForbiddenError):
            MealService(db_session).swap_meal(group_plan["cook"].id, group_plan["old"].id, other_owner_id)

    def test_cancelled_plan(self, db_session, group_plan, recipe_factory, owner_id):
        new = recipe_factory("Pasta", 310, [MealSlot.LUNCH], portions=4)
        PlanService(db_session).update_plan_state(group_plan["plan"].id, owner_id, PlanState.CANCELLED)

        with pytest.raises(PlanNotActiveError):
            MealService(db_session).swap_meal(group_plan["cook"].id, new.id, owner_id)


class TestUpdateMealStatus:
    def test_complete_and_revert(self, db_session, group_plan, owner_id):
        service = MealService(db_session)
        meal_id = group_plan["cook"].id

        meal = service.update_meal_status(meal_id, owner_id, MealStatus.COMPLETED)
        assert meal.status == MealStatus.COMPLETED
        assert meal.version == 2

        meal = service.update_meal_status(meal_id, owner_id, MealStatus.PLANNED)
        assert meal.status == MealStatus.PLANNED

    def test_status_does_not_touch_partner(self, db_session, group_plan, owner_id):
        MealService(db_session).update_meal_status(group_plan["cook"].id, owner_id, MealStatus.SKIPPED)
        assert reload(db_session, group_plan["leftover"].id).status == MealStatus.PLANNED

    def test_same_status_is_noop(self, db_session, group_plan, owner_id):
        meal = MealService(db_session).update_meal_status(
            group_plan["cook"].id, owner_id, MealStatus.PLANNED
        )
        assert meal.version == 1

    def test_completed_to_skipped_rejected(self, db_session, group_plan, owner_id):
        service = MealService(db_session)
        service.update_meal_status(group_plan["cook"].id, owner_id, MealStatus.COMPLETED)

        with pytest.raises(InvalidStatusTransitionError):
            service.update_meal_status(group_plan["cook"].id, owner_id, MealStatus.SKIPPED)

    def test_archived_plan(self, db_session, group_plan, owner_id):
        service = MealService(db_session)
        for key in ("cook", "leftover"):
            service.update_meal_status(group_plan[key].id, owner_id, MealStatus.COMPLETED)
        PlanService(db_session).update_plan_state(group_plan["plan"].id, owner_id, PlanState.ARCHIVED)

        with pytest.raises(PlanNotActiveError):
            service.update_meal_status(group_plan["cook"].id, owner_id, MealStatus.PLANNED)

    def test_other_owner(self, db_session, group_plan, other_owner_id):
        with pytest.raises(ForbiddenError):
            MealService(db_session).update_meal_status(
                group_plan["cook"].id, other_owner_id, MealStatus.COMPLETED
            )


class TestAlternatives:
    def test_same_slot_within_band(self, db_session, group_plan, recipe_factory, owner_id):
        # Current meal: 600 kcal over 2 portions -> 300 kcal per portion, band 240-360
        close = recipe_factory("Pasta", 310, [MealSlot.LUNCH], portions=4)
        edge = recipe_factory("Wrap", 360, [MealSlot.LUNCH])
        recipe_factory("Too big", 400, [MealSlot.LUNCH])
        recipe_factory("Dinner only", 300, [MealSlot.DINNER])
        recipe_factory("Retired", 300, [MealSlot.LUNCH], is_active=False)

        recipes = MealService(db_session).get_alternatives(group_plan["cook"].id, owner_id, limit=10)

        assert {r.id for r in recipes} == {close.id, edge.id}

    def test_excludes_current_recipe(self, db_session, group_plan, owner_id):
        recipes = MealService(db_session).get_alternatives(group_plan["cook"].id, owner_id)
        assert group_plan["old"].id not in {r.id for r in recipes}

    def test_default_limit(self, db_session, group_plan, recipe_factory, owner_id):
        for i in range(5):
            recipe_factory(f"Bowl {i}", 300 + i, [MealSlot.LUNCH])

        recipes = MealService(db_session).get_alternatives(group_plan["cook"].id, owner_id)
        assert len(recipes) == 3

    def test_other_owner(self, db_session, group_plan, other_owner_id):
        with pytest.raises(ForbiddenError):
            MealService(db_session).get_alternatives(group_plan["cook"].id, other_owner_id)
