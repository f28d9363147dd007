"""
Recipes Controller

CRUD for the recipes the assistant can walk through:
- Listing recipes with filtering
- Getting recipe details
- Creating recipes with ingredients, steps and step durations
- Deleting recipes

Ingredients and units are normalized on creation, so "butter" or
"cup" is stored once and shared by every recipe that uses it.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from recipe_assistant.database import get_db
from recipe_assistant.models import (
    Ingredient,
    Recipe,
    RecipeIngredient,
    Step,
    UnitOfMeasure,
)
from recipe_assistant.models.schemas import (
    IngredientResponse,
    RecipeCreate,
    RecipeDetail,
    RecipeSummary,
    StepResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])


def _tags(recipe: Recipe) -> list[str]:
    return [t.strip() for t in (recipe.Tags or "").split(",") if t.strip()]


def _detail(recipe: Recipe) -> RecipeDetail:
    ingredients = [
        IngredientResponse(
            order_index=ri.OrderIndex,
            name=ri.ingredient.Name,
            quantity=ri.Quantity,
            unit=ri.unit.UnitName if ri.unit else None,
            notes=ri.Notes,
            optional=bool(ri.IsOptional),
        )
        for ri in sorted(recipe.ingredients, key=lambda x: x.OrderIndex)
    ]
    steps = [
        StepResponse(
            step_id=s.StepId,
            order_index=s.OrderIndex,
            description=s.Description,
            duration_seconds=s.DurationSeconds,
        )
        for s in recipe.steps
    ]
    return RecipeDetail(
        recipe_id=recipe.RecipeId,
        name=recipe.Name,
        description=recipe.Description,
        category=recipe.Category,
        difficulty=recipe.Difficulty,
        prep_time=recipe.PrepTime,
        cook_time=recipe.CookTime,
        servings=recipe.Servings,
        tags=_tags(recipe),
        created_date=recipe.CreatedDate,
        ingredients=ingredients,
        steps=steps,
    )


@router.get("", response_model=list[RecipeSummary])
def list_recipes(
    skip: int = 0,
    limit: int = 50,
    category: str | None = None,
    difficulty: str | None = None,
    db: Session = Depends(get_db)
):
    """
    List recipes with optional filtering.

    Query Parameters:
    - skip: Number of recipes to skip (pagination)
    - limit: Maximum recipes to return (default 50)
    - category: Filter by category (exact match)
    - difficulty: Filter by difficulty (exact match)
    """
    query = select(Recipe)

    if category:
        query = query.where(Recipe.Category == category)
    if difficulty:
        query = query.where(Recipe.Difficulty == difficulty)

    query = query.order_by(Recipe.RecipeId).offset(skip).limit(limit)
    recipes = db.scalars(query).all()

    return [
        RecipeSummary(
            recipe_id=r.RecipeId,
            name=r.Name,
            description=r.Description,
            category=r.Category,
            difficulty=r.Difficulty,
            prep_time=r.PrepTime,
            cook_time=r.CookTime,
            servings=r.Servings,
            created_date=r.CreatedDate
        )
        for r in recipes
    ]


@router.get("/{recipe_id}", response_model=RecipeDetail)
def get_recipe(recipe_id: int, db: Session = Depends(get_db)):
    """Get a single recipe with ordered ingredients and steps."""
    recipe = db.get(Recipe, recipe_id)
    if not recipe:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return _detail(recipe)


@router.post("", response_model=RecipeDetail, status_code=201)
def create_recipe(recipe_data: RecipeCreate, db: Session = Depends(get_db)):
    """
    Create a new recipe with ingredients and steps.

    1. Creates the Recipe record
    2. Finds or creates each Ingredient and UnitOfMeasure, then links
       them through RecipeIngredient with quantity and order
    3. Creates Step records in input order
    """
    recipe = Recipe(
        Name=recipe_data.name,
        Description=recipe_data.description,
        Category=recipe_data.category,
        Difficulty=recipe_data.difficulty,
        PrepTime=recipe_data.prep_time,
        CookTime=recipe_data.cook_time,
        Servings=recipe_data.servings,
        Tags=",".join(recipe_data.tags) or None,
    )
    db.add(recipe)
    db.flush()  # Get the RecipeId before adding related records

    for idx, ing_data in enumerate(recipe_data.ingredients, start=1):
        name = ing_data.name.strip().lower()
        ingredient = db.scalar(select(Ingredient).where(Ingredient.Name == name))
        if not ingredient:
            ingredient = Ingredient(Name=name)
            db.add(ingredient)
            db.flush()

        unit = None
        if ing_data.unit:
            unit = db.scalar(
                select(UnitOfMeasure).where(UnitOfMeasure.UnitName == ing_data.unit)
            )
            if not unit:
                unit = UnitOfMeasure(UnitName=ing_data.unit)
                db.add(unit)
                db.flush()

        db.add(RecipeIngredient(
            RecipeId=recipe.RecipeId,
            IngredientId=ingredient.IngredientId,
            UnitId=unit.UnitId if unit else None,
            Quantity=ing_data.quantity,
            Notes=ing_data.notes,
            IsOptional=ing_data.optional,
            OrderIndex=idx
        ))

    for idx, step_data in enumerate(recipe_data.steps, start=1):
        db.add(Step(
            RecipeId=recipe.RecipeId,
            Description=step_data.description,
            DurationSeconds=step_data.duration_seconds,
            OrderIndex=idx
        ))

    db.commit()
    db.refresh(recipe)
    logger.info(f"Created recipe {recipe.RecipeId} ({recipe.Name})")

    return _detail(recipe)


@router.delete("/{recipe_id}", status_code=204)
def delete_recipe(recipe_id: int, db: Session = Depends(get_db)):
    """
    Delete a recipe.

    Cascade delete removes its RecipeIngredients and Steps; shared
    Ingredient and UnitOfMeasure rows stay.
    """
    recipe = db.get(Recipe, recipe_id)
    if not recipe:
        raise HTTPException(status_code=404, detail="Recipe not found")

    db.delete(recipe)
    db.commit()
    logger.info(f"Deleted recipe {recipe_id}")
