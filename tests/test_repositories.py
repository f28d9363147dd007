"""SQL-backed stores against an in-memory SQLite database."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from recipe_assistant.database import Base
from recipe_assistant.exceptions import PersistenceError, RecipeNotFoundError
from recipe_assistant.models import entities
from recipe_assistant.models.repositories import WorkstateRepository
from recipe_assistant.models.workstate import CookingWorkstate
from recipe_assistant.services.recipe_service import RecipeService


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def saved_recipe_id(session_factory):
    db = session_factory()
    recipe = entities.Recipe(Name="Scrambled Eggs", Servings=2, Difficulty="easy", Tags="quick, breakfast")
    db.add(recipe)
    db.flush()
    eggs = entities.Ingredient(Name="eggs")
    butter = entities.Ingredient(Name="butter")
    tbsp = entities.UnitOfMeasure(UnitName="tbsp")
    db.add_all([eggs, butter, tbsp])
    db.flush()
    db.add_all([
        entities.RecipeIngredient(RecipeId=recipe.RecipeId, IngredientId=butter.IngredientId,
                                  UnitId=tbsp.UnitId, Quantity=1, OrderIndex=2),
        entities.RecipeIngredient(RecipeId=recipe.RecipeId, IngredientId=eggs.IngredientId,
                                  Quantity=3, OrderIndex=1),
        entities.Step(RecipeId=recipe.RecipeId, Description="Stir gently.", DurationSeconds=90, OrderIndex=2),
        entities.Step(RecipeId=recipe.RecipeId, Description="Whisk the eggs.", OrderIndex=1),
    ])
    db.commit()
    recipe_id = recipe.RecipeId
    db.close()
    return recipe_id


# ============================================
# Recipes
# ============================================

def test_get_recipe_builds_ordered_domain_recipe(session_factory, saved_recipe_id):
    recipe = RecipeService(session_factory).get_recipe(saved_recipe_id)
    assert recipe.title == "Scrambled Eggs"
    assert recipe.servings == 2
    assert recipe.tags == ("quick", "breakfast")
    assert [s.text for s in recipe.steps] == ["Whisk the eggs.", "Stir gently."]
    assert recipe.steps[1].duration_seconds == 90
    assert [(i.name, i.quantity, i.unit) for i in recipe.ingredients] == [
        ("eggs", 3, None),
        ("butter", 1, "tbsp"),
    ]


def test_get_missing_recipe(session_factory):
    with pytest.raises(RecipeNotFoundError):
        RecipeService(session_factory).get_recipe(404)


# ============================================
# Workstates
# ============================================

def test_workstate_save_load_clear(session_factory, clock):
    repo = WorkstateRepository(session_factory)
    assert repo.load("m1") is None

    ws = CookingWorkstate()
    ws.start_session(7, 5, now=clock())
    ws.start_timer(300, "rice", clock())
    repo.save("m1", ws)
    assert repo.load("m1").to_json() == ws.to_json()

    ws.advance_step(clock())
    repo.save("m1", ws)
    assert repo.load("m1").step_index == 1

    assert repo.clear("m1") is True
    assert repo.load("m1") is None
    assert repo.clear("m1") is False


def test_workstates_are_keyed_by_member(session_factory, clock):
    repo = WorkstateRepository(session_factory)
    first, second = CookingWorkstate(), CookingWorkstate()
    first.start_session(1, 3, now=clock())
    second.start_session(2, 3, now=clock())
    repo.save("a", first)
    repo.save("b", second)
    assert repo.load("a").active_recipe_id == 1
    assert repo.load("b").active_recipe_id == 2


def test_corrupt_payload_raises_persistence_error(session_factory):
    db = session_factory()
    db.add(entities.CookingWorkstateRecord(SessionKey="m1", Payload="[]"))
    db.commit()
    db.close()
    with pytest.raises(PersistenceError):
        WorkstateRepository(session_factory).load("m1")


def test_database_failure_raises_persistence_error(clock):
    engine = create_engine("sqlite://", poolclass=StaticPool)
    repo = WorkstateRepository(sessionmaker(bind=engine))  # tables never created
    ws = CookingWorkstate()
    ws.start_session(1, 1, now=clock())
    with pytest.raises(PersistenceError):
        repo.save("m1", ws)
    with pytest.raises(PersistenceError):
        repo.load("m1")
