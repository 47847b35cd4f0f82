"""
SQLAlchemy ORM models for the meal planning database.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Date, Boolean, JSON,
    ForeignKey, Enum as SQLEnum, Index, UniqueConstraint, Uuid, text
)
from sqlalchemy.orm import relationship
import uuid

from mealplan.db.database import Base
from mealplan.models.schemas import MealSlot, MealStatus, PlanState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Recipe(Base):
    """Catalogue recipe. Read-only to the planning core."""
    __tablename__ = "recipes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug = Column(String(255), unique=True, nullable=True)
    name = Column(String(255), nullable=False, index=True)
    calories_per_portion = Column(Float, nullable=False, index=True)
    portions = Column(Integer, default=1, nullable=False)
    prep_minutes = Column(Integer, nullable=True)
    cook_minutes = Column(Integer, nullable=True)
    image_url = Column(String(1024), nullable=True)
    source_url = Column(String(1024), nullable=True)
    ingredients = Column(JSON, nullable=False, default=list)  # List[str]
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    slots = relationship("RecipeSlot", back_populates="recipe", cascade="all, delete-orphan", lazy="selectin")

    @property
    def eligible_slots(self) -> list:
        return [s.slot for s in self.slots]


class RecipeSlot(Base):
    """Slot a recipe may be assigned to (one row per recipe/slot pair)."""
    __tablename__ = "recipe_slots"
    __table_args__ = (
        UniqueConstraint("recipe_id", "slot", name="uq_recipe_slots_recipe_id_slot"),
        Index("ix_recipe_slots_slot", "slot"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipe_id = Column(Uuid(as_uuid=True), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    slot = Column(SQLEnum(MealSlot), nullable=False)

    # Relationships
    recipe = relationship("Recipe", back_populates="slots")


class Plan(Base):
    """A user's multi-day meal plan."""
    __tablename__ = "plans"
    __table_args__ = (
        # Composite index for listing an owner's plans ordered by creation date
        Index("ix_plans_owner_id_created_at", "owner_id", "created_at"),
        # At most one active plan per owner, even under concurrent generation
        Index(
            "uq_plans_owner_id_active",
            "owner_id",
            unique=True,
            postgresql_where=text("state = 'ACTIVE'"),
            sqlite_where=text("state = 'ACTIVE'"),
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    state = Column(SQLEnum(PlanState), default=PlanState.ACTIVE, nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    daily_calories = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    days = relationship("PlanDay", back_populates="plan", order_by="PlanDay.date", cascade="all, delete-orphan")
    meals = relationship("PlanMeal", back_populates="plan", cascade="all, delete-orphan")


class PlanDay(Base):
    """One calendar day of a plan. Immutable after generation."""
    __tablename__ = "plan_days"
    __table_args__ = (
        UniqueConstraint("plan_id", "date", name="uq_plan_days_plan_id_date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("plans.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    plan = relationship("Plan", back_populates="days")
    slot_targets = relationship("PlanDaySlotTarget", back_populates="plan_day", cascade="all, delete-orphan")
    meals = relationship("PlanMeal", back_populates="plan_day")


class PlanDaySlotTarget(Base):
    """Calorie target for one slot of one plan day."""
    __tablename__ = "plan_day_slot_targets"
    __table_args__ = (
        UniqueConstraint("plan_day_id", "slot", name="uq_plan_day_slot_targets_day_slot"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    plan_day_id = Column(Uuid(as_uuid=True), ForeignKey("plan_days.id"), nullable=False, index=True)
    slot = Column(SQLEnum(MealSlot), nullable=False)
    calories_target = Column(Integer, nullable=False)

    # Relationships
    plan_day = relationship("PlanDay", back_populates="slot_targets")


class PlanMeal(Base):
    """A recipe assigned to one slot of one plan day."""
    __tablename__ = "plan_meals"
    __table_args__ = (
        UniqueConstraint("plan_day_id", "slot", name="uq_plan_meals_day_slot"),
        Index("ix_plan_meals_multi_portion_group_id", "multi_portion_group_id"),
        Index("ix_plan_meals_plan_id_status", "plan_id", "status"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("plans.id"), nullable=False, index=True)
    plan_day_id = Column(Uuid(as_uuid=True), ForeignKey("plan_days.id"), nullable=False, index=True)
    slot = Column(SQLEnum(MealSlot), nullable=False)
    status = Column(SQLEnum(MealStatus), default=MealStatus.PLANNED, nullable=False)
    recipe_id = Column(Uuid(as_uuid=True), ForeignKey("recipes.id"), nullable=False)
    portion_multiplier = Column(Integer, nullable=False)
    calories_planned = Column(Integer, nullable=False)
    is_leftover = Column(Boolean, default=False, nullable=False)
    multi_portion_group_id = Column(Uuid(as_uuid=True), nullable=True)
    portions_to_cook = Column(Integer, nullable=True)  # NULL on leftover days
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Optimistic locking: every UPDATE checks and bumps the version
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    plan = relationship("Plan", back_populates="meals")
    plan_day = relationship("PlanDay", back_populates="meals")
    recipe = relationship("Recipe")
