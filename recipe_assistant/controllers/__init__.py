"""
Controllers Package - The 'C' in MVC

Each controller is a FastAPI APIRouter for one feature area. They
validate input with the Pydantic schemas, call into the services and
shape the response; no cooking logic lives here.
"""

from recipe_assistant.controllers.recipes import router as recipes_router
from recipe_assistant.controllers.cooking import router as cooking_router

__all__ = ["recipes_router", "cooking_router"]
