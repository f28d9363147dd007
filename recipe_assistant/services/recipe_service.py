"""
Recipe Service - read access to recipes for the assistant.

The assistant only ever needs `get_recipe(id)`, returning the frozen
domain Recipe. Anything with that method can stand in (tests use a dict
backed store), which is what the RecipeStore protocol describes.
"""

import logging
from typing import Optional, Protocol

from sqlalchemy.orm import joinedload, sessionmaker

from recipe_assistant.database import SessionLocal
from recipe_assistant.exceptions import RecipeNotFoundError
from recipe_assistant.models import entities
from recipe_assistant.models.recipes import IngredientLine, InstructionStep, Recipe

logger = logging.getLogger(__name__)


class RecipeStore(Protocol):
    def get_recipe(self, recipe_id: int) -> Recipe:
        """Return the recipe or raise RecipeNotFoundError."""
        ...


def to_domain(recipe: entities.Recipe) -> Recipe:
    """Convert a fully loaded ORM recipe into the assistant's Recipe."""
    ingredients = tuple(
        IngredientLine(
            name=ri.ingredient.Name,
            quantity=ri.Quantity,
            unit=ri.unit.UnitName if ri.unit else None,
            notes=ri.Notes,
            optional=bool(ri.IsOptional),
        )
        for ri in sorted(recipe.ingredients, key=lambda x: x.OrderIndex)
    )
    steps = tuple(
        InstructionStep(text=s.Description, duration_seconds=s.DurationSeconds)
        for s in sorted(recipe.steps, key=lambda x: x.OrderIndex)
    )
    tags = tuple(t.strip() for t in (recipe.Tags or "").split(",") if t.strip())
    return Recipe(
        id=recipe.RecipeId,
        title=recipe.Name,
        steps=steps,
        ingredients=ingredients,
        servings=recipe.Servings or 4,
        category=recipe.Category,
        difficulty=recipe.Difficulty,
        prep_time=recipe.PrepTime,
        cook_time=recipe.CookTime,
        tags=tags,
    )


class RecipeService:
    """Loads recipes from the database with all relationships."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or SessionLocal

    def find_recipe(self, recipe_id: int) -> Optional[Recipe]:
        db = self.session_factory()
        try:
            recipe = db.query(entities.Recipe).options(
                joinedload(entities.Recipe.ingredients).joinedload(entities.RecipeIngredient.ingredient),
                joinedload(entities.Recipe.ingredients).joinedload(entities.RecipeIngredient.unit),
                joinedload(entities.Recipe.steps)
            ).filter(entities.Recipe.RecipeId == recipe_id).first()
            return to_domain(recipe) if recipe else None
        finally:
            db.close()

    def get_recipe(self, recipe_id: int) -> Recipe:
        """Get full recipe by ID. Raises RecipeNotFoundError."""
        recipe = self.find_recipe(recipe_id)
        if recipe is None:
            logger.warning(f"Recipe {recipe_id} not found")
            raise RecipeNotFoundError(recipe_id)
        return recipe
