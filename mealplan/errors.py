"""
Custom exceptions and error codes for the meal planning core.

This module provides:
- Structured error codes for categorized error handling
- Custom exception classes for specific failure scenarios
- Error response schema for consistent API responses
"""
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """
    Application-wide error codes for categorized error handling.

    Format: CATEGORY_SPECIFIC_ERROR
    Categories:
    - PLAN_*: Meal plan related errors
    - MEAL_*: Plan meal related errors
    - SWAP_*: Meal swap rejections
    - RECIPE_*: Recipe related errors
    - AUTH_*: Authorization errors
    - VALIDATION_*: Input validation errors
    - DATABASE_*: Database operation errors
    """

    # Plan-related errors
    PLAN_NOT_FOUND = "PLAN_NOT_FOUND"
    PLAN_DAY_NOT_FOUND = "PLAN_DAY_NOT_FOUND"
    PLAN_ACTIVE_EXISTS = "PLAN_ACTIVE_EXISTS"
    PLAN_ALLOCATION_EXHAUSTED = "PLAN_ALLOCATION_EXHAUSTED"
    PLAN_INVALID_TRANSITION = "PLAN_INVALID_TRANSITION"
    PLAN_ARCHIVE_THRESHOLD_NOT_MET = "PLAN_ARCHIVE_THRESHOLD_NOT_MET"
    PLAN_NOT_ACTIVE = "PLAN_NOT_ACTIVE"

    # Meal-related errors
    MEAL_NOT_FOUND = "MEAL_NOT_FOUND"
    MEAL_INVALID_STATUS_TRANSITION = "MEAL_INVALID_STATUS_TRANSITION"
    MEAL_CONCURRENT_MODIFICATION = "MEAL_CONCURRENT_MODIFICATION"

    # Swap rejections (machine-checkable reason codes)
    SWAP_SLOT_MISMATCH = "SLOT_MISMATCH"
    SWAP_PORTION_EXCEEDED = "PORTION_EXCEEDED"
    SWAP_CALORIE_OUT_OF_RANGE = "CALORIE_OUT_OF_RANGE"

    # Recipe-related errors
    RECIPE_NOT_FOUND = "RECIPE_NOT_FOUND"

    # Authorization errors
    AUTH_FORBIDDEN = "AUTH_FORBIDDEN"

    # Validation errors
    VALIDATION_INVALID_INPUT = "VALIDATION_INVALID_INPUT"

    # Database errors
    DATABASE_QUERY_ERROR = "DATABASE_QUERY_ERROR"
    DATABASE_INTEGRITY_ERROR = "DATABASE_INTEGRITY_ERROR"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class SwapRejectionReason(str, Enum):
    """Reason a proposed recipe substitution was rejected."""
    SLOT_MISMATCH = "SLOT_MISMATCH"
    PORTION_EXCEEDED = "PORTION_EXCEEDED"
    CALORIE_OUT_OF_RANGE = "CALORIE_OUT_OF_RANGE"


class ErrorResponse(BaseModel):
    """Structured error response for API errors."""
    error_code: ErrorCode
    message: str
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(use_enum_values=True)


class MealPlanError(Exception):
    """
    Base exception for all meal planning errors.

    Provides structured error information for consistent error handling.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse for API output."""
        return ErrorResponse(
            error_code=self.error_code,
            message=self.message,
            details=self.details if self.details else None,
        )


# Error categories

class ValidationError(MealPlanError):
    """Raised when input is malformed or out of range."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_INVALID_INPUT,
            details=details,
            status_code=400,
        )


class NotFoundError(MealPlanError):
    """Base for missing plans, days, meals and recipes."""

    def __init__(self, message: str, error_code: ErrorCode, details: Dict[str, Any] = None):
        super().__init__(message=message, error_code=error_code, details=details, status_code=404)


class ForbiddenError(MealPlanError):
    """Raised when the caller does not own the requested resource."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            message=f"You do not have permission to access this {resource_type}",
            error_code=ErrorCode.AUTH_FORBIDDEN,
            details={"resource_type": resource_type, "resource_id": resource_id},
            status_code=403,
        )


class ConflictError(MealPlanError):
    """Base for operations that conflict with the current state."""

    def __init__(self, message: str, error_code: ErrorCode, details: Dict[str, Any] = None):
        super().__init__(message=message, error_code=error_code, details=details, status_code=409)


class BusinessRuleError(MealPlanError):
    """Base for well-formed requests rejected by a domain rule."""

    def __init__(self, message: str, error_code: ErrorCode, details: Dict[str, Any] = None):
        super().__init__(message=message, error_code=error_code, details=details, status_code=422)


# Not found

class PlanNotFoundError(NotFoundError):
    """Raised when a meal plan is not found."""

    def __init__(self, plan_id: str):
        super().__init__(
            message=f"Meal plan '{plan_id}' not found",
            error_code=ErrorCode.PLAN_NOT_FOUND,
            details={"plan_id": plan_id},
        )


class PlanDayNotFoundError(NotFoundError):
    """Raised when a date is not part of a plan."""

    def __init__(self, plan_id: str, date: str):
        super().__init__(
            message=f"Date {date} is not part of meal plan '{plan_id}'",
            error_code=ErrorCode.PLAN_DAY_NOT_FOUND,
            details={"plan_id": plan_id, "date": date},
        )


class MealNotFoundError(NotFoundError):
    """Raised when a plan meal is not found."""

    def __init__(self, meal_id: str):
        super().__init__(
            message=f"Meal '{meal_id}' not found",
            error_code=ErrorCode.MEAL_NOT_FOUND,
            details={"meal_id": meal_id},
        )


class RecipeNotFoundError(NotFoundError):
    """Raised when a recipe is not found or is inactive."""

    def __init__(self, recipe_id: str):
        super().__init__(
            message=f"Recipe '{recipe_id}' not found",
            error_code=ErrorCode.RECIPE_NOT_FOUND,
            details={"recipe_id": recipe_id},
        )


# Conflicts

class ActivePlanExistsError(ConflictError):
    """Raised when the owner already has an active plan."""

    def __init__(self, owner_id: str):
        super().__init__(
            message="User already has an active plan. Archive or cancel the existing plan first.",
            error_code=ErrorCode.PLAN_ACTIVE_EXISTS,
            details={"owner_id": owner_id},
        )


class ConcurrentModificationError(ConflictError):
    """Raised when rows changed underneath an update."""

    def __init__(self, resource_type: str, resource_ids: list):
        super().__init__(
            message=f"The {resource_type} was modified by another request. Please retry.",
            error_code=ErrorCode.MEAL_CONCURRENT_MODIFICATION,
            details={"resource_type": resource_type, "resource_ids": resource_ids},
        )


class InvalidStateTransitionError(ConflictError):
    """Raised for plan state transitions the lifecycle does not define."""

    def __init__(self, current_state: str, target_state: str):
        super().__init__(
            message=f"Cannot change plan state from '{current_state}' to '{target_state}'",
            error_code=ErrorCode.PLAN_INVALID_TRANSITION,
            details={"current_state": current_state, "target_state": target_state},
        )


class PlanNotActiveError(ConflictError):
    """Raised when meals of an archived or cancelled plan are modified."""

    def __init__(self, plan_id: str, state: str):
        super().__init__(
            message=f"Meal plan '{plan_id}' is {state}; only active plans can be changed",
            error_code=ErrorCode.PLAN_NOT_ACTIVE,
            details={"plan_id": plan_id, "state": state},
        )


# Business rules

class ArchivalThresholdError(BusinessRuleError):
    """Raised when too few meals are completed to archive a plan."""

    def __init__(self, completed: int, total: int, threshold: float):
        ratio = completed / total if total else 0.0
        super().__init__(
            message=(
                f"Plan can only be archived once at least {threshold:.0%} of meals are completed "
                f"({completed}/{total} completed)"
            ),
            error_code=ErrorCode.PLAN_ARCHIVE_THRESHOLD_NOT_MET,
            details={
                "completed": completed,
                "total": total,
                "completion_ratio": round(ratio, 4),
                "threshold": threshold,
            },
        )


class SwapRejectedError(BusinessRuleError):
    """Raised when a candidate recipe fails swap validation."""

    _CODES = {
        SwapRejectionReason.SLOT_MISMATCH: ErrorCode.SWAP_SLOT_MISMATCH,
        SwapRejectionReason.PORTION_EXCEEDED: ErrorCode.SWAP_PORTION_EXCEEDED,
        SwapRejectionReason.CALORIE_OUT_OF_RANGE: ErrorCode.SWAP_CALORIE_OUT_OF_RANGE,
    }

    def __init__(self, reason: SwapRejectionReason, message: str, details: Dict[str, Any] = None):
        self.reason = reason
        base_details = {"reason": reason.value}
        if details:
            base_details.update(details)
        super().__init__(
            message=message,
            error_code=self._CODES[reason],
            details=base_details,
        )


class InvalidStatusTransitionError(BusinessRuleError):
    """Raised for meal status changes outside the allowed toggles."""

    def __init__(self, meal_id: str, current_status: str, target_status: str):
        super().__init__(
            message=f"Cannot change meal status from '{current_status}' to '{target_status}'",
            error_code=ErrorCode.MEAL_INVALID_STATUS_TRANSITION,
            details={
                "meal_id": meal_id,
                "current_status": current_status,
                "target_status": target_status,
            },
        )


class AllocationExhaustedError(BusinessRuleError):
    """Raised when no recipe fits a slot at any fallback level."""

    def __init__(self, slot: str, target_calories: int, day_index: int = None):
        self.slot = slot
        self.target_calories = target_calories
        details = {"slot": slot, "target_calories": target_calories}
        message = f"No recipes available for slot '{slot}' with ~{target_calories} kcal"
        if day_index is not None:
            details["day_index"] = day_index
            message += f" (plan day {day_index + 1})"
        super().__init__(
            message=message,
            error_code=ErrorCode.PLAN_ALLOCATION_EXHAUSTED,
            details=details,
        )


# Database-related exceptions

class DatabaseIntegrityError(MealPlanError):
    """Raised when a database integrity constraint is violated."""

    def __init__(self, constraint: str, details: Dict[str, Any] = None):
        super().__init__(
            message=f"Database integrity error: {constraint}",
            error_code=ErrorCode.DATABASE_INTEGRITY_ERROR,
            details=details,
            status_code=500,
        )
