"""
Shared pytest fixtures for MealPlan tests.

This module provides common fixtures for:
- Database sessions (fresh in-memory SQLite per test)
- Owner identity and JWT auth headers
- FastAPI test client
- Factory functions for recipes and plans
"""
import os
import random
import pytest
from datetime import date, timedelta
from typing import Callable, Dict, Generator, Iterable, Optional
from uuid import UUID, uuid4

# Set test environment variables BEFORE importing app modules
# This ensures Settings loads in debug/test mode
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from mealplan.db.database import Base, get_db
from mealplan.db.models import Plan, Recipe, RecipeSlot
from mealplan.auth.jwt import create_access_token
from mealplan.models.schemas import CreatePlanCommand, MealSlot
from mealplan.main import app


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database for testing.

    Each test function gets a fresh database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db_session) -> Generator[TestClient, None, None]:
    """Create FastAPI test client with database dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Session cleanup handled by db_session fixture

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ============================================================================
# Identity Fixtures
# ============================================================================

@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def auth_headers(owner_id) -> Dict[str, str]:
    """Bearer auth headers for the default owner."""
    token = create_access_token(owner_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(other_owner_id) -> Dict[str, str]:
    token = create_access_token(other_owner_id)
    return {"Authorization": f"Bearer {token}"}


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def recipe_factory(db_session) -> Callable[..., Recipe]:
    """Factory that persists recipes with their slot rows."""
    counter = {"n": 0}

    def _create(
        name: Optional[str] = None,
        calories_per_portion: float = 500,
        slots: Iterable[MealSlot] = (MealSlot.LUNCH,),
        portions: int = 1,
        is_active: bool = True,
        **kwargs,
    ) -> Recipe:
        counter["n"] += 1
        name = name or f"Recipe {counter['n']}"
        recipe = Recipe(
            name=name,
            slug=f"recipe-{counter['n']}-{uuid4().hex[:8]}",
            calories_per_portion=calories_per_portion,
            portions=portions,
            is_active=is_active,
            ingredients=kwargs.pop("ingredients", ["1 cup water"]),
            slots=[RecipeSlot(slot=s) for s in slots],
            **kwargs,
        )
        db_session.add(recipe)
        db_session.commit()
        db_session.refresh(recipe)
        return recipe

    return _create


@pytest.fixture
def standard_catalog(recipe_factory) -> Dict[str, Recipe]:
    """
    Catalogue that can fill every slot of a 2000 kcal plan.

    Targets at 2000 kcal: breakfast 500, lunch 700, dinner 700, snack 100.
    Lunch and dinner recipes yield 4 portions so they pair across days.
    """
    return {
        "breakfast": recipe_factory("Porridge", 500, [MealSlot.BREAKFAST]),
        "breakfast_alt": recipe_factory("Omelette", 480, [MealSlot.BREAKFAST]),
        "lunch": recipe_factory("Chicken Curry", 700, [MealSlot.LUNCH], portions=4),
        "lunch_alt": recipe_factory("Lentil Soup", 680, [MealSlot.LUNCH], portions=4),
        "dinner": recipe_factory("Salmon Bake", 700, [MealSlot.DINNER], portions=4),
        "dinner_alt": recipe_factory("Beef Stew", 720, [MealSlot.DINNER], portions=4),
        "snack": recipe_factory("Apple", 100, [MealSlot.SNACK]),
    }


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def start_date() -> date:
    return date.today() + timedelta(days=1)


@pytest.fixture
def create_plan_command(start_date) -> Callable[..., CreatePlanCommand]:
    def _create(daily_calories: int = 2000, plan_length_days: int = 7, start: Optional[date] = None):
        return CreatePlanCommand(
            daily_calories=daily_calories,
            plan_length_days=plan_length_days,
            start_date=start or start_date,
        )
    return _create


@pytest.fixture
def active_plan(db_session, standard_catalog, owner_id, create_plan_command, seeded_rng) -> Plan:
    """A generated 7-day, 2000 kcal active plan for the default owner."""
    from mealplan.services.plan_service import PlanService

    return PlanService(db_session, rng=seeded_rng).create_plan(owner_id, create_plan_command())
