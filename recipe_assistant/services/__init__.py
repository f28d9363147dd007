"""
Services layer - business logic, no HTTP dependencies.
"""

from recipe_assistant.services.recipe_service import RecipeService, RecipeStore
from recipe_assistant.services.cooking_service import CookingService, SessionOutcome

__all__ = [
    "RecipeService",
    "RecipeStore",
    "CookingService",
    "SessionOutcome",
]
