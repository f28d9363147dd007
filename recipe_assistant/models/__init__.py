"""
Models Package

- entities.py: SQLAlchemy ORM models for recipes and saved workstates
- recipes.py: read-only recipe domain objects handed to the assistant
- intents.py / workstate.py: the assistant's session model
- schemas.py: Pydantic request/response schemas for the API
"""

from recipe_assistant.models.entities import (
    Recipe,
    Ingredient,
    UnitOfMeasure,
    RecipeIngredient,
    Step,
    CookingWorkstateRecord,
)

__all__ = [
    "Recipe",
    "Ingredient",
    "UnitOfMeasure",
    "RecipeIngredient",
    "Step",
    "CookingWorkstateRecord",
]
