"""
SQLAlchemy ORM Entity Models

These models represent the database tables behind the recipe store and
the workstate store.

Table Relationships:
    Recipe (1) ──────┬──> (*) RecipeIngredient ──> (1) Ingredient
                     │                          └──> (1) UnitOfMeasure
                     └──> (*) Step

    CookingWorkstateRecord   one row per member, JSON payload
"""

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from recipe_assistant.database import Base


class Recipe(Base):
    """
    Recipe metadata and the central entity in the domain model.

    Ingredients hang off it through RecipeIngredient, steps directly.
    """
    __tablename__ = "Recipes"

    RecipeId = Column(Integer, primary_key=True, autoincrement=True)
    Name = Column(String(200), nullable=False)
    Description = Column(Text, nullable=True)
    Category = Column(String(100), nullable=True)     # e.g., "Dinner", "Dessert"
    Difficulty = Column(String(50), nullable=True)    # e.g., "easy", "medium", "hard"
    PrepTime = Column(Integer, nullable=True)         # Minutes
    CookTime = Column(Integer, nullable=True)         # Minutes
    Servings = Column(Integer, nullable=True)
    Tags = Column(String(500), nullable=True)         # Comma separated
    CreatedDate = Column(DateTime, nullable=False, server_default=func.now())

    ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.OrderIndex"
    )
    steps = relationship(
        "Step",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="Step.OrderIndex"
    )


class Ingredient(Base):
    """Normalized ingredient names, shared across recipes."""
    __tablename__ = "Ingredients"

    IngredientId = Column(Integer, primary_key=True, autoincrement=True)
    Name = Column(String(100), nullable=False, unique=True)


class UnitOfMeasure(Base):
    """Normalized units of measurement ("cup", "tbsp", "g")."""
    __tablename__ = "UnitsOfMeasure"

    UnitId = Column(Integer, primary_key=True, autoincrement=True)
    UnitName = Column(String(50), nullable=False, unique=True)


class RecipeIngredient(Base):
    """
    Junction table linking recipes to ingredients with quantities.

    Quantity is numeric so scaling can multiply it; NULL means "to taste".
    """
    __tablename__ = "RecipeIngredients"

    RecipeIngredientId = Column(Integer, primary_key=True, autoincrement=True)
    RecipeId = Column(
        Integer,
        ForeignKey("Recipes.RecipeId", ondelete="CASCADE"),
        nullable=False
    )
    IngredientId = Column(
        Integer,
        ForeignKey("Ingredients.IngredientId"),
        nullable=False
    )
    UnitId = Column(
        Integer,
        ForeignKey("UnitsOfMeasure.UnitId"),
        nullable=True
    )
    Quantity = Column(Float, nullable=True)
    Notes = Column(String(200), nullable=True)
    IsOptional = Column(Boolean, nullable=False, default=False)
    OrderIndex = Column(Integer, nullable=False)

    recipe = relationship("Recipe", back_populates="ingredients")
    ingredient = relationship("Ingredient")
    unit = relationship("UnitOfMeasure")


class Step(Base):
    """Ordered recipe instructions, optionally with a duration to time."""
    __tablename__ = "Steps"

    StepId = Column(Integer, primary_key=True, autoincrement=True)
    RecipeId = Column(
        Integer,
        ForeignKey("Recipes.RecipeId", ondelete="CASCADE"),
        nullable=False
    )
    Description = Column(Text, nullable=False)
    DurationSeconds = Column(Integer, nullable=True)
    OrderIndex = Column(Integer, nullable=False)

    recipe = relationship("Recipe", back_populates="steps")


class CookingWorkstateRecord(Base):
    """
    Persisted cooking session, keyed by member id.

    The payload is the workstate serialized as JSON, so schema changes to
    the workstate never need a migration here.
    """
    __tablename__ = "CookingWorkstates"

    SessionKey = Column(String(100), primary_key=True)
    Payload = Column(Text, nullable=False)
    UpdatedAt = Column(DateTime, nullable=False, server_default=func.now())
