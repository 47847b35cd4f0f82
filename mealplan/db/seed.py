"""
Load recipe catalogue data into the database.

The input is a JSON list of recipe objects:

    {
        "name": "Chicken Curry with Rice",
        "portions": 4,
        "calories_per_portion": "650 kcal",
        "meal_slot": ["lunch", "dinner"],
        "prep_time": "PT15M",
        "cook_time": "PT1H",
        "img": "https://...",
        "url": "https://...",
        "ingredients": ["..."]
    }
"""
import json
import logging
import re
import unicodedata
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from mealplan.db.models import Recipe, RecipeSlot
from mealplan.models.schemas import MealSlot

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?")
_NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")


def parse_duration(value: Optional[str]) -> Optional[int]:
    """Minutes in an ISO 8601 duration such as PT15M or PT1H30M."""
    if not value:
        return None
    match = _DURATION_RE.match(value)
    if not match or not any(match.groups()):
        return None
    hours, minutes = match.groups()
    return int(hours or 0) * 60 + int(minutes or 0)


def parse_calories(value: Any) -> Optional[float]:
    """Numeric calories from a number or a string like "306.8 kcal"."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER_RE.search(str(value))
    return float(match.group(1)) if match else None


def slugify(name: str) -> str:
    """URL-friendly slug, accents stripped, at most 100 characters."""
    normalized = unicodedata.normalize("NFKD", name)
    ascii_name = "".join(c for c in normalized if not unicodedata.combining(c))
    slug = re.sub(r"[^\w\s-]", "", ascii_name.lower()).strip()
    slug = re.sub(r"[\s_]+", "-", slug)
    return re.sub(r"-+", "-", slug)[:100]


def load_recipes_from_json(path: Path) -> List[Dict[str, Any]]:
    """Load recipe objects from a JSON file (a list, or {"recipes": [...]})."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data["recipes"]
    return data


def recipe_from_dict(data: Dict[str, Any]) -> Optional[Recipe]:
    """
    Build a Recipe row from one catalogue entry.

    Returns None for entries that cannot be planned with: no positive
    calorie count or no valid slot.
    """
    name = data["name"]
    calories = parse_calories(data.get("calories_per_portion"))
    if not calories or calories <= 0:
        logger.warning(f"Skipping recipe {name!r}: missing calories")
        return None

    slots = []
    for raw_slot in data.get("meal_slot") or []:
        try:
            slot = MealSlot(str(raw_slot).lower())
        except ValueError:
            logger.warning(f"Recipe {name!r}: ignoring unknown slot {raw_slot!r}")
            continue
        if slot not in slots:
            slots.append(slot)
    if not slots:
        logger.warning(f"Skipping recipe {name!r}: no eligible slots")
        return None

    return Recipe(
        slug=data.get("slug") or slugify(name),
        name=name,
        calories_per_portion=calories,
        portions=int(data.get("portions") or 1),
        prep_minutes=parse_duration(data.get("prep_time")),
        cook_minutes=parse_duration(data.get("cook_time")),
        image_url=data.get("img"),
        source_url=data.get("url"),
        ingredients=data.get("ingredients") or [],
        is_active=data.get("is_active", True),
        slots=[RecipeSlot(slot=s) for s in slots],
    )


def seed_recipes(db: Session, recipes_data: List[Dict[str, Any]]) -> int:
    """
    Insert recipes, skipping slugs already present.

    Returns:
        Number of recipes added.
    """
    existing = {slug for (slug,) in db.query(Recipe.slug).all()}
    added = 0

    try:
        for entry in recipes_data:
            recipe = recipe_from_dict(entry)
            if recipe is None:
                continue
            if recipe.slug in existing:
                logger.debug(f"Recipe {recipe.slug} already loaded")
                continue
            db.add(recipe)
            existing.add(recipe.slug)
            added += 1
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Loaded {added} of {len(recipes_data)} recipes")
    return added
