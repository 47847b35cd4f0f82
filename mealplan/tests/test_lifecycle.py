"""
Tests for the plan lifecycle and meal status state machines.
"""
import pytest

from mealplan.engine.lifecycle import (
    can_archive,
    can_transition,
    transition_meal_status,
    transition_plan,
)
from mealplan.errors import (
    ArchivalThresholdError,
    ErrorCode,
    InvalidStateTransitionError,
    InvalidStatusTransitionError,
)
from mealplan.models.schemas import MealCompletionStats, MealStatus, PlanState


class TestPlanTransitions:
    def test_cancel_always_allowed_from_active(self):
        stats = MealCompletionStats(total=28, completed=0)
        assert transition_plan(PlanState.ACTIVE, PlanState.CANCELLED, stats) == PlanState.CANCELLED

    def test_archive_at_threshold(self):
        stats = MealCompletionStats(total=10, completed=9)
        assert transition_plan(PlanState.ACTIVE, PlanState.ARCHIVED, stats) == PlanState.ARCHIVED

    def test_archive_below_threshold(self):
        stats = MealCompletionStats(total=10, completed=8)

        with pytest.raises(ArchivalThresholdError) as exc_info:
            transition_plan(PlanState.ACTIVE, PlanState.ARCHIVED, stats)

        error = exc_info.value
        assert error.error_code == ErrorCode.PLAN_ARCHIVE_THRESHOLD_NOT_MET
        assert error.details["completed"] == 8
        assert error.details["total"] == 10

    def test_archive_without_meals_rejected(self):
        with pytest.raises(ArchivalThresholdError):
            transition_plan(PlanState.ACTIVE, PlanState.ARCHIVED, MealCompletionStats())

    def test_custom_threshold(self):
        stats = MealCompletionStats(total=10, completed=5)
        assert transition_plan(PlanState.ACTIVE, PlanState.ARCHIVED, stats, threshold=0.5)

    @pytest.mark.parametrize("current,target", [
        (PlanState.ARCHIVED, PlanState.ACTIVE),
        (PlanState.ARCHIVED, PlanState.CANCELLED),
        (PlanState.CANCELLED, PlanState.ACTIVE),
        (PlanState.CANCELLED, PlanState.ARCHIVED),
        (PlanState.ACTIVE, PlanState.ACTIVE),
    ])
    def test_invalid_transitions(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            transition_plan(current, target, MealCompletionStats(total=1, completed=1))
        assert exc_info.value.status_code == 409

    def test_can_archive(self):
        assert can_archive(MealCompletionStats(total=28, completed=26), 0.9)
        assert not can_archive(MealCompletionStats(total=28, completed=25), 0.9)


class TestMealStatusTransitions:
    @pytest.mark.parametrize("current,target", [
        (MealStatus.PLANNED, MealStatus.COMPLETED),
        (MealStatus.PLANNED, MealStatus.SKIPPED),
        (MealStatus.COMPLETED, MealStatus.PLANNED),
        (MealStatus.SKIPPED, MealStatus.PLANNED),
        (MealStatus.COMPLETED, MealStatus.COMPLETED),
    ])
    def test_allowed(self, current, target):
        assert transition_meal_status("meal-1", current, target) == target

    @pytest.mark.parametrize("current,target", [
        (MealStatus.COMPLETED, MealStatus.SKIPPED),
        (MealStatus.SKIPPED, MealStatus.COMPLETED),
    ])
    def test_rejected(self, current, target):
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            transition_meal_status("meal-1", current, target)
        assert exc_info.value.details["meal_id"] == "meal-1"
