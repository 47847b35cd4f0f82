"""
MealPlan FastAPI application.

Main application entry point with route registration and CORS.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from mealplan.config import settings
from mealplan.api.routes import plans, plan_meals, recipes
from mealplan.db.database import SessionLocal
from sqlalchemy import text

# Configure logging with configurable level
_log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(
    level=_log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    yield
    logger.info("Shutting down application...")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Calorie-targeted meal plan generation API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(plans.router)
app.include_router(plan_meals.router)
app.include_router(recipes.router)


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint with database connectivity test."""
    db_status = "healthy"
    db_error = None

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "unhealthy"
        db_error = str(e)
    finally:
        db.close()

    response = {
        "status": db_status,
        "version": settings.app_version,
        "database": db_status,
    }

    if db_error:
        response["database_error"] = db_error

    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mealplan.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
