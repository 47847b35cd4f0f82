"""
CLI for database setup, recipe loading and calorie target previews.
"""
import click
from pathlib import Path

from mealplan.config import settings
from mealplan.db.database import SessionLocal, create_tables
from mealplan.db.seed import load_recipes_from_json, seed_recipes
from mealplan.engine.calories import calorie_band, distribute_calories
from mealplan.models.schemas import SLOT_ORDER


@click.group()
def cli():
    """MealPlan - calorie-targeted meal planning"""


@cli.command("init-db")
def init_db():
    """Create all database tables."""
    create_tables()
    click.echo("✓ Database tables created")


@cli.command("load-recipes")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def load_recipes(path: Path):
    """Load a recipe catalogue JSON file."""
    recipes_data = load_recipes_from_json(path)
    click.echo(f"📖 Read {len(recipes_data)} recipes from {path}")

    db = SessionLocal()
    try:
        added = seed_recipes(db, recipes_data)
    finally:
        db.close()

    click.echo(f"✓ Added {added} recipes ({len(recipes_data) - added} skipped)")


@cli.command("preview-targets")
@click.option("--daily-calories", type=click.IntRange(
    settings.plan_min_daily_calories, settings.plan_max_daily_calories
), required=True, help="Daily calorie budget")
def preview_targets(daily_calories: int):
    """Show per-slot calorie targets and selection bands."""
    targets = distribute_calories(daily_calories)

    click.echo(f"\nDAILY BUDGET: {daily_calories} kcal")
    click.echo("=" * 60)
    for slot in SLOT_ORDER:
        target = targets[slot]
        bands = ", ".join(
            f"±{int(tol * 100)}%: {lo}-{hi}"
            for tol in settings.plan_generation_tolerances
            for lo, hi in [calorie_band(target, tol)]
        )
        click.echo(f"  {slot.value.upper():10} {target:5} kcal   ({bands})")
    click.echo(f"\n  Total: {sum(targets.values())} kcal")


if __name__ == "__main__":
    cli()
