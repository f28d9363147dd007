"""
Shared fixtures: a fixed clock, in-memory recipes and stores.

Nothing here touches the configured database; SQL tests build their own
in-memory SQLite engine.
"""

from datetime import datetime, timedelta, timezone

import pytest

from recipe_assistant.exceptions import RecipeNotFoundError
from recipe_assistant.models.recipes import IngredientLine, InstructionStep, Recipe
from recipe_assistant.models.repositories import InMemoryWorkstateRepository
from recipe_assistant.models.workstate import CookingWorkstate
from recipe_assistant.services.assistant.engine import AssistantEngine
from recipe_assistant.services.assistant.knowledge_base import DEFAULT_DATA_PATH, KnowledgeBase
from recipe_assistant.services.cooking_service import CookingService

START = datetime(2024, 5, 1, 18, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


class DictRecipeStore:
    def __init__(self, *recipes: Recipe):
        self.recipes = {r.id: r for r in recipes}

    def get_recipe(self, recipe_id: int) -> Recipe:
        if recipe_id not in self.recipes:
            raise RecipeNotFoundError(recipe_id)
        return self.recipes[recipe_id]


PANCAKES = Recipe(
    id=1,
    title="Pancakes",
    servings=4,
    category="Breakfast",
    difficulty="easy",
    steps=(
        InstructionStep("Whisk the flour, sugar and baking powder together."),
        InstructionStep("Fold in the eggs and milk until just combined."),
        InstructionStep("Cook on a hot griddle for 3 minutes per side.", duration_seconds=180),
        InstructionStep("Serve warm with butter."),
    ),
    ingredients=(
        IngredientLine("flour", 2, "cups"),
        IngredientLine("eggs", 2),
        IngredientLine("milk", 1.5, "cups"),
        IngredientLine("sugar", 0.25, "cup"),
        IngredientLine("peanut butter", 2, "tbsp", optional=True),
        IngredientLine("salt"),
    ),
)

TOAST = Recipe(
    id=2,
    title="Toast",
    servings=1,
    steps=(InstructionStep("Toast the bread."),),
    ingredients=(IngredientLine("bread", 1, "slice"),),
)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(scope="session")
def knowledge_base():
    return KnowledgeBase.from_file(DEFAULT_DATA_PATH)


@pytest.fixture
def recipes():
    return DictRecipeStore(PANCAKES, TOAST)


@pytest.fixture
def engine(recipes, knowledge_base, clock):
    return AssistantEngine(recipes, knowledge_base, clock=clock, default_step_seconds=120)


@pytest.fixture
def workstate(clock):
    """A session cooking Pancakes, on step 1."""
    ws = CookingWorkstate()
    ws.start_session(PANCAKES.id, PANCAKES.step_count, now=clock())
    return ws


@pytest.fixture
def store():
    return InMemoryWorkstateRepository()


@pytest.fixture
def service(engine, store):
    return CookingService(engine, store)
