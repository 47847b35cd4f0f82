"""
Tests for swap validation rules and swap update computation.
"""
from types import SimpleNamespace
from uuid import uuid4

import pytest

from mealplan.engine.meal_swap import build_swap_updates, validate_swap
from mealplan.errors import ErrorCode, SwapRejectedError, SwapRejectionReason
from mealplan.models.schemas import MealSlot
from mealplan.tests.factories import make_recipe_schema


class TestValidateSwap:
    def test_accepts_and_quotes(self):
        candidate = make_recipe_schema("Pasta", 310, [MealSlot.LUNCH], portions=4)

        quote = validate_swap(MealSlot.LUNCH, 600, candidate)

        assert quote.recipe_id == candidate.id
        assert quote.portion_multiplier == 2
        assert quote.calories_planned == 620
        assert quote.target_calories == 600

    def test_slot_mismatch(self):
        candidate = make_recipe_schema("Granola", 600, [MealSlot.BREAKFAST])

        with pytest.raises(SwapRejectedError) as exc_info:
            validate_swap(MealSlot.DINNER, 600, candidate)

        error = exc_info.value
        assert error.reason == SwapRejectionReason.SLOT_MISMATCH
        assert error.error_code == ErrorCode.SWAP_SLOT_MISMATCH
        assert error.status_code == 422
        assert "breakfast" in error.message

    def test_portion_exceeded(self):
        # 600 / 150 = 4 portions needed, recipe yields 2
        candidate = make_recipe_schema("Salad", 150, [MealSlot.LUNCH], portions=2)

        with pytest.raises(SwapRejectedError) as exc_info:
            validate_swap(MealSlot.LUNCH, 600, candidate)

        error = exc_info.value
        assert error.reason == SwapRejectionReason.PORTION_EXCEEDED
        assert error.details["portion_multiplier"] == 4
        assert error.details["portions"] == 2

    def test_calorie_out_of_range(self):
        # 1 portion of 900 kcal vs 600 target: 50% over
        candidate = make_recipe_schema("Lasagne", 900, [MealSlot.LUNCH])

        with pytest.raises(SwapRejectedError) as exc_info:
            validate_swap(MealSlot.LUNCH, 600, candidate)

        error = exc_info.value
        assert error.reason == SwapRejectionReason.CALORIE_OUT_OF_RANGE
        assert error.details["calorie_min"] == 480
        assert error.details["calorie_max"] == 720

    def test_slot_checked_before_portions(self):
        candidate = make_recipe_schema("Tiny", 50, [MealSlot.SNACK], portions=1)

        with pytest.raises(SwapRejectedError) as exc_info:
            validate_swap(MealSlot.LUNCH, 600, candidate)

        assert exc_info.value.reason == SwapRejectionReason.SLOT_MISMATCH

    def test_portions_checked_before_calories(self):
        candidate = make_recipe_schema("Tiny", 50, [MealSlot.LUNCH], portions=1)

        with pytest.raises(SwapRejectedError) as exc_info:
            validate_swap(MealSlot.LUNCH, 600, candidate)

        assert exc_info.value.reason == SwapRejectionReason.PORTION_EXCEEDED

    @pytest.mark.parametrize("calories_per_portion", [480, 720])
    def test_band_is_inclusive(self, calories_per_portion):
        candidate = make_recipe_schema("Edge", calories_per_portion, [MealSlot.LUNCH])
        quote = validate_swap(MealSlot.LUNCH, 600, candidate)
        assert quote.calories_planned == calories_per_portion

    def test_tolerance_is_not_escalated(self):
        # 30% over would pass generation fallback but not a swap
        candidate = make_recipe_schema("Big", 780, [MealSlot.LUNCH])
        with pytest.raises(SwapRejectedError):
            validate_swap(MealSlot.LUNCH, 600, candidate)


class TestBuildSwapUpdates:
    def test_group_members_share_values(self):
        candidate = make_recipe_schema("Pasta", 310, [MealSlot.LUNCH], portions=4)
        quote = validate_swap(MealSlot.LUNCH, 600, candidate)
        cook = SimpleNamespace(id=uuid4(), is_leftover=False)
        leftover = SimpleNamespace(id=uuid4(), is_leftover=True)

        updates = build_swap_updates([cook, leftover], candidate, quote)

        assert updates[cook.id] == {
            "recipe_id": candidate.id,
            "portion_multiplier": 2,
            "calories_planned": 620,
            "portions_to_cook": 4,
        }
        assert updates[leftover.id]["portions_to_cook"] is None
        for field in ("recipe_id", "portion_multiplier", "calories_planned"):
            assert updates[cook.id][field] == updates[leftover.id][field]

    def test_single_meal(self):
        candidate = make_recipe_schema("Soup", 600, [MealSlot.DINNER], portions=3)
        quote = validate_swap(MealSlot.DINNER, 600, candidate)
        meal = SimpleNamespace(id=uuid4(), is_leftover=False)

        updates = build_swap_updates([meal], candidate, quote)

        assert list(updates) == [meal.id]
        assert updates[meal.id]["portions_to_cook"] == 3
