"""
Pydantic data models for the meal planning engine and its API.
"""
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from mealplan.config import settings
from mealplan.errors import ValidationError


class MealSlot(str, Enum):
    """Fixed daily meal categories, in plan order."""
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


# Order in which slots are filled for each day
SLOT_ORDER: List[MealSlot] = [MealSlot.BREAKFAST, MealSlot.LUNCH, MealSlot.DINNER, MealSlot.SNACK]

# Slots whose recipes may be cooked once and eaten on two consecutive days
MULTI_PORTION_SLOTS = frozenset({MealSlot.LUNCH, MealSlot.DINNER})


class MealStatus(str, Enum):
    """Status of a single planned meal."""
    PLANNED = "planned"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class PlanState(str, Enum):
    """Lifecycle state of a meal plan."""
    ACTIVE = "active"
    ARCHIVED = "archived"
    CANCELLED = "cancelled"


class Recipe(BaseModel):
    """Recipe as seen by the planning engine (read-only)."""
    id: UUID = Field(default_factory=uuid4, description="Unique recipe ID")
    name: str = Field(..., description="Recipe name")
    slug: Optional[str] = Field(None, description="URL-friendly identifier")
    calories_per_portion: float = Field(..., gt=0, description="Calories (kcal) in one portion")
    portions: int = Field(..., ge=1, description="Number of portions the recipe yields")
    eligible_slots: List[MealSlot] = Field(..., description="Slots this recipe may be assigned to")
    is_active: bool = True
    prep_minutes: Optional[int] = None
    cook_minutes: Optional[int] = None
    image_url: Optional[str] = None
    source_url: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": "550e8400-e29b-41d4-a716-446655440000",
                    "name": "Chicken Curry with Rice",
                    "slug": "chicken-curry-with-rice",
                    "calories_per_portion": 650,
                    "portions": 4,
                    "eligible_slots": ["lunch", "dinner"],
                    "prep_minutes": 15,
                    "cook_minutes": 30,
                }
            ]
        }
    }

    @field_validator("eligible_slots")
    @classmethod
    def eligible_slots_must_not_be_empty(cls, v: List[MealSlot]) -> List[MealSlot]:
        if not v:
            raise ValueError("Recipe must be eligible for at least one slot")
        return v

    @property
    def time_minutes(self) -> Optional[int]:
        """Total hands-on plus cooking time, if known."""
        total = (self.prep_minutes or 0) + (self.cook_minutes or 0)
        return total or None


# ============================================================================
# Engine drafts (in-memory plan before persistence)
# ============================================================================


class MealDraft(BaseModel):
    """A meal produced by the assembler, not yet persisted."""
    day_index: int = Field(..., ge=0)
    slot: MealSlot
    recipe_id: UUID
    portion_multiplier: int = Field(..., ge=1)
    calories_planned: int
    is_leftover: bool = False
    multi_portion_group_id: Optional[UUID] = None
    portions_to_cook: Optional[int] = None

    @model_validator(mode="after")
    def leftovers_are_not_cooked(self) -> "MealDraft":
        if self.is_leftover and self.portions_to_cook is not None:
            raise ValueError("Leftover meals must not carry portions_to_cook")
        if not self.is_leftover and self.portions_to_cook is None:
            raise ValueError("Cooked meals must carry portions_to_cook")
        return self


class PlanDayDraft(BaseModel):
    """One calendar day of a draft plan."""
    day_index: int
    date: date
    slot_targets: Dict[MealSlot, int]


class PlanDraft(BaseModel):
    """Complete meal grid for a new plan, ready to persist in one unit."""
    start_date: date
    end_date: date
    daily_calories: int
    days: List[PlanDayDraft]
    meals: List[MealDraft]


class SwapQuote(BaseModel):
    """Recomputed portioning for a validated swap candidate."""
    recipe_id: UUID
    portion_multiplier: int
    calories_planned: int
    target_calories: int


class MealCompletionStats(BaseModel):
    """Meal counts used by the archival gate."""
    total: int = 0
    completed: int = 0

    @property
    def completion_ratio(self) -> float:
        if self.total == 0:
            return 0.0
        return self.completed / self.total


# ============================================================================
# Commands
# ============================================================================


CommandT = TypeVar("CommandT", bound=BaseModel)


def parse_command(command_cls: Type[CommandT], **data: Any) -> CommandT:
    """
    Build a command model, converting pydantic errors into ValidationError.

    Library callers use this instead of constructing commands directly so
    that malformed input surfaces as the application's own error type.
    """
    try:
        return command_cls(**data)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError(
            f"Invalid {command_cls.__name__}: {errors[0]['message']}",
            details={"errors": errors},
        ) from e


class CreatePlanCommand(BaseModel):
    """Request to generate a new meal plan."""
    daily_calories: int = Field(
        ...,
        ge=settings.plan_min_daily_calories,
        le=settings.plan_max_daily_calories,
        description=f"Daily calorie budget ({settings.plan_min_daily_calories}-{settings.plan_max_daily_calories} kcal)",
    )
    plan_length_days: int = Field(
        ...,
        ge=1,
        le=settings.plan_max_days,
        description=f"Number of days (1-{settings.plan_max_days})",
    )
    start_date: date

    model_config = {
        "extra": "forbid",
        "json_schema_extra": {
            "examples": [
                {
                    "daily_calories": 2000,
                    "plan_length_days": 7,
                    "start_date": "2026-11-02",
                }
            ]
        },
    }

    @field_validator("start_date")
    @classmethod
    def start_date_in_future(cls, v: date) -> date:
        """Validate that start_date is tomorrow or later."""
        today = date.today()
        if v <= today:
            raise ValueError(f"start_date must be in the future (got {v}, today is {today})")
        return v


class UpdatePlanStateCommand(BaseModel):
    """Request to move a plan to a new lifecycle state."""
    state: PlanState

    model_config = {"extra": "forbid"}


class SwapMealCommand(BaseModel):
    """Request to replace a meal's recipe."""
    new_recipe_id: UUID

    model_config = {"extra": "forbid"}


class UpdateMealStatusCommand(BaseModel):
    """Request to mark a meal as planned, completed or skipped."""
    status: MealStatus

    model_config = {"extra": "forbid"}


class ListPlansQuery(BaseModel):
    """Filters and pagination for listing plans."""
    state: Optional[PlanState] = None
    limit: int = Field(default=settings.pagination_plans_default_limit, ge=1, le=settings.pagination_plans_max_limit)
    offset: int = Field(default=0, ge=0)


class SearchRecipesQuery(BaseModel):
    """Filters and pagination for the recipe catalogue."""
    slot: Optional[MealSlot] = None
    min_calories: Optional[int] = Field(default=None, gt=0)
    max_calories: Optional[int] = Field(default=None, gt=0)
    search: Optional[str] = Field(default=None, min_length=1, max_length=255)
    limit: int = Field(default=settings.pagination_recipes_default_limit, ge=1, le=settings.pagination_recipes_max_limit)
    offset: int = Field(default=0, ge=0)

    @field_validator("search")
    @classmethod
    def strip_search(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("search must not be blank")
        return v

    @model_validator(mode="after")
    def calorie_range_ordered(self) -> "SearchRecipesQuery":
        if self.min_calories and self.max_calories and self.min_calories > self.max_calories:
            raise ValueError("min_calories must be less than or equal to max_calories")
        return self


# ============================================================================
# Response DTOs
# ============================================================================


class PlanDTO(BaseModel):
    """Plan metadata."""
    id: UUID
    owner_id: UUID
    state: PlanState
    start_date: date
    end_date: date
    daily_calories: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MealDTO(BaseModel):
    """A persisted plan meal."""
    id: UUID
    plan_id: UUID
    plan_day_id: UUID
    slot: MealSlot
    status: MealStatus
    recipe_id: UUID
    portion_multiplier: int
    calories_planned: int
    is_leftover: bool
    multi_portion_group_id: Optional[UUID] = None
    portions_to_cook: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class RecipeSummaryDTO(BaseModel):
    """Recipe fields shown alongside a meal."""
    id: UUID
    name: str
    image_url: Optional[str] = None
    time_minutes: Optional[int] = None
    source_url: Optional[str] = None
    eligible_slots: List[MealSlot]


class PlanMealDetailDTO(MealDTO):
    """Meal with its recipe summary."""
    recipe: RecipeSummaryDTO


class SlotTargetDTO(BaseModel):
    slot: MealSlot
    calories_target: int


class PlanDayDetailDTO(BaseModel):
    """A plan day with meals and slot targets."""
    id: UUID
    date: date
    meals: List[PlanMealDetailDTO]
    slot_targets: List[SlotTargetDTO]


class PlanDetailsDTO(PlanDTO):
    """Plan with all of its days."""
    days: List[PlanDayDetailDTO]


class DayMealDTO(BaseModel):
    """Meal as shown on a single-day view."""
    id: UUID
    status: MealStatus
    slot: MealSlot
    recipe_id: UUID
    name: str
    image_url: Optional[str] = None
    time_minutes: Optional[int] = None
    calories_planned: int
    portion_multiplier: int
    portions_to_cook: Optional[int] = None
    servings: int
    source_url: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)
    is_multi_portion_cook_day: bool
    is_multi_portion_leftover_day: bool


class PlanDayViewDTO(BaseModel):
    """Single-day view of a plan."""
    date: date
    plan_id: UUID
    plan_start_date: date
    plan_end_date: date
    meals: List[DayMealDTO]
    slot_targets: List[SlotTargetDTO]


class PaginationMeta(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class PlansListResponse(BaseModel):
    data: List[PlanDTO]
    pagination: PaginationMeta
    has_active_plan: bool


class RecipeDTO(BaseModel):
    """Catalogue entry."""
    id: UUID
    slug: Optional[str] = None
    name: str
    eligible_slots: List[MealSlot]
    calories_per_portion: float
    portions: int
    time_minutes: Optional[int] = None
    image_url: Optional[str] = None
    source_url: Optional[str] = None

    @classmethod
    def from_recipe(cls, recipe: Recipe) -> "RecipeDTO":
        return cls(
            id=recipe.id,
            slug=recipe.slug,
            name=recipe.name,
            eligible_slots=recipe.eligible_slots,
            calories_per_portion=recipe.calories_per_portion,
            portions=recipe.portions,
            time_minutes=recipe.time_minutes,
            image_url=recipe.image_url,
            source_url=recipe.source_url,
        )


class RecipeDetailsDTO(RecipeDTO):
    ingredients: List[str] = Field(default_factory=list)

    @classmethod
    def from_recipe(cls, recipe: Recipe) -> "RecipeDetailsDTO":
        base = RecipeDTO.from_recipe(recipe).model_dump()
        return cls(**base, ingredients=recipe.ingredients)


class RecipesListResponse(BaseModel):
    data: List[RecipeDTO]
    pagination: PaginationMeta


class SwapMealResponse(BaseModel):
    """Meals updated by a swap (one, or both members of a group)."""
    updated_meals: List[MealDTO]


class AlternativesResponse(BaseModel):
    data: List[RecipeDTO]
