"""
Shared FastAPI dependencies.

The cooking service holds live sessions in memory, so one instance is
shared by every request. Tests swap it out through
`app.dependency_overrides[get_cooking_service]`.
"""

from functools import lru_cache

from recipe_assistant.config import get_settings
from recipe_assistant.models.repositories import WorkstateRepository
from recipe_assistant.services.assistant import AssistantEngine, get_knowledge_base
from recipe_assistant.services.cooking_service import CookingService
from recipe_assistant.services.recipe_service import RecipeService


@lru_cache
def get_cooking_service() -> CookingService:
    settings = get_settings()
    engine = AssistantEngine(
        recipes=RecipeService(),
        knowledge_base=get_knowledge_base(settings.knowledge_base_path),
        default_step_seconds=settings.default_step_seconds,
    )
    return CookingService(engine, WorkstateRepository())
