"""
Plan lifecycle and meal status state machines.
"""
from typing import Dict, FrozenSet, Optional

from mealplan.config import settings
from mealplan.errors import (
    ArchivalThresholdError,
    InvalidStateTransitionError,
    InvalidStatusTransitionError,
)
from mealplan.models.schemas import MealCompletionStats, MealStatus, PlanState


# Archived and cancelled are terminal
PLAN_TRANSITIONS: Dict[PlanState, FrozenSet[PlanState]] = {
    PlanState.ACTIVE: frozenset({PlanState.ARCHIVED, PlanState.CANCELLED}),
    PlanState.ARCHIVED: frozenset(),
    PlanState.CANCELLED: frozenset(),
}

MEAL_STATUS_TRANSITIONS: Dict[MealStatus, FrozenSet[MealStatus]] = {
    MealStatus.PLANNED: frozenset({MealStatus.COMPLETED, MealStatus.SKIPPED}),
    MealStatus.COMPLETED: frozenset({MealStatus.PLANNED}),
    MealStatus.SKIPPED: frozenset({MealStatus.PLANNED}),
}


def can_transition(current: PlanState, target: PlanState) -> bool:
    return target in PLAN_TRANSITIONS[current]


def can_archive(stats: MealCompletionStats, threshold: Optional[float] = None) -> bool:
    """True once the completed share of meals reaches the threshold."""
    if threshold is None:
        threshold = settings.plan_archive_completion_threshold
    return stats.total > 0 and stats.completion_ratio >= threshold


def transition_plan(
    current: PlanState,
    target: PlanState,
    stats: Optional[MealCompletionStats] = None,
    threshold: Optional[float] = None,
) -> PlanState:
    """
    Validate a plan state change and return the new state.

    Args:
        current: State the plan is in
        target: Requested state
        stats: Meal counts, required when archiving
        threshold: Completed fraction required to archive (default from settings)

    Raises:
        InvalidStateTransitionError: The transition is not defined
        ArchivalThresholdError: Archiving with too few completed meals
    """
    if not can_transition(current, target):
        raise InvalidStateTransitionError(current.value, target.value)

    if target == PlanState.ARCHIVED:
        if threshold is None:
            threshold = settings.plan_archive_completion_threshold
        stats = stats or MealCompletionStats()
        if not can_archive(stats, threshold):
            raise ArchivalThresholdError(stats.completed, stats.total, threshold)

    return target


def transition_meal_status(meal_id: str, current: MealStatus, target: MealStatus) -> MealStatus:
    """
    Validate a meal status change.

    Setting the current status again is allowed and changes nothing.

    Raises:
        InvalidStatusTransitionError: completed <-> skipped without going through planned
    """
    if current == target or target in MEAL_STATUS_TRANSITIONS[current]:
        return target
    raise InvalidStatusTransitionError(meal_id, current.value, target.value)
