"""
Pydantic Schemas (Data Transfer Objects)

These schemas define the structure of data flowing in and out of the API.

Naming Convention:
- *Input: Data received from clients (create/update operations)
- *Response: Data returned to clients
- *Create: Specific input for creating new resources
- *Summary: Condensed view for list endpoints
- *Detail: Full view for single-resource endpoints

The assistant's own models (CookingWorkstate, Intent) are never exposed
directly; responses are built from them so the API contract can stay
put while the session model changes.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from recipe_assistant.models.workstate import CookingConstraints, SkillLevel


# ============================================
# Ingredient Schemas
# ============================================

class IngredientInput(BaseModel):
    """
    Ingredient data when creating a recipe.

    Quantity is numeric so it can be scaled; leave it out for
    "to taste" items. The unit is optional ("2 eggs").
    """
    name: str = Field(..., max_length=100, description="Name of the ingredient")
    quantity: float | None = Field(None, ge=0, description="Amount needed (e.g., 2, 0.5)")
    unit: str | None = Field(None, max_length=50, description="Unit of measure (e.g., 'cup', 'tbsp')")
    notes: str | None = Field(None, max_length=200, description="Preparation notes (e.g., 'softened')")
    optional: bool = False


class IngredientResponse(BaseModel):
    order_index: int
    name: str
    quantity: float | None
    unit: str | None
    notes: str | None = None
    optional: bool = False

    class Config:
        from_attributes = True


# ============================================
# Step Schemas
# ============================================

class StepInput(BaseModel):
    """Order is the position in the list."""
    description: str = Field(..., description="The step instruction text")
    duration_seconds: int | None = Field(None, gt=0, description="Time the step takes, if it should be timed")


class StepResponse(BaseModel):
    step_id: int
    order_index: int
    description: str
    duration_seconds: int | None = None

    class Config:
        from_attributes = True


# ============================================
# Recipe Schemas
# ============================================

class RecipeCreate(BaseModel):
    """Request body for creating a new recipe."""
    name: str = Field(..., max_length=200, description="Recipe title")
    description: str | None = Field(None, description="Brief description of the dish")
    category: str | None = Field(None, max_length=100, description="Meal category")
    difficulty: str | None = Field(None, max_length=50, description="easy, medium or hard")
    prep_time: int | None = Field(None, ge=0, description="Prep time in minutes")
    cook_time: int | None = Field(None, ge=0, description="Cook time in minutes")
    servings: int | None = Field(None, ge=1, description="Number of servings")
    tags: list[str] = Field(default_factory=list)
    ingredients: list[IngredientInput] = Field(..., description="List of ingredients")
    steps: list[StepInput] = Field(..., description="Ordered preparation steps")


class RecipeSummary(BaseModel):
    """Condensed recipe view for list endpoints."""
    recipe_id: int
    name: str
    description: str | None
    category: str | None
    difficulty: str | None
    prep_time: int | None
    cook_time: int | None
    servings: int | None
    created_date: datetime

    class Config:
        from_attributes = True


class RecipeDetail(BaseModel):
    """Complete recipe with all ingredients and steps."""
    recipe_id: int
    name: str
    description: str | None
    category: str | None
    difficulty: str | None
    prep_time: int | None
    cook_time: int | None
    servings: int | None
    tags: list[str]
    created_date: datetime
    ingredients: list[IngredientResponse]
    steps: list[StepResponse]

    class Config:
        from_attributes = True


# ============================================
# Cooking Session Schemas
# ============================================

class ConstraintsInput(BaseModel):
    """Dietary constraints supplied when a session starts."""
    dietary: list[str] = Field(default_factory=list, description="Tags like 'vegetarian'")
    allergies: list[str] = Field(default_factory=list, description="Ingredients to avoid")
    time_budget_minutes: int | None = Field(None, gt=0)
    skill_level: SkillLevel = SkillLevel.INTERMEDIATE

    def to_constraints(self) -> CookingConstraints:
        return CookingConstraints(
            dietary=frozenset(d.lower() for d in self.dietary),
            allergies=frozenset(a.lower() for a in self.allergies),
            time_budget_minutes=self.time_budget_minutes,
            skill_level=self.skill_level,
        )


class CookingSessionStart(BaseModel):
    """Request to start a cooking session for a member."""
    member_id: str = Field(..., min_length=1, max_length=100)
    recipe_id: int = Field(..., description="ID of the recipe to cook")
    constraints: ConstraintsInput = Field(default_factory=ConstraintsInput)


class CookingMessage(BaseModel):
    """Transcribed utterance for the assistant."""
    text: str = Field(..., min_length=1, description="What the cook said")


class TimerInput(BaseModel):
    duration_seconds: float = Field(..., gt=0)
    label: str | None = Field(None, max_length=100)


class ScaleInput(BaseModel):
    factor: float = Field(..., description="Multiplier relative to the original recipe")


class TimerResponse(BaseModel):
    timer_id: str
    label: str
    duration_seconds: float
    remaining_seconds: float
    state: str
    step_index: int | None


class ConstraintsResponse(BaseModel):
    dietary: list[str]
    allergies: list[str]
    time_budget_minutes: int | None
    skill_level: str


class WorkstateResponse(BaseModel):
    """Snapshot of a member's cooking session."""
    member_id: str
    mode: str
    active_recipe_id: int | None
    recipe_name: str | None = None
    step_index: int
    step_count: int
    step_text: str | None = None
    completed_steps: list[int]
    timers: list[TimerResponse]
    scale_factor: float
    constraints: ConstraintsResponse
    last_intent: str | None
    started_at: datetime | None
    updated_at: datetime


class CookingResponse(BaseModel):
    """
    Response from the cooking assistant or an explicit command.

    `persisted` is False when the session could not be saved; `warning`
    then says so in words the UI can show.
    """
    text: str | None = None
    intent: str | None = None
    slots: dict[str, Any] = Field(default_factory=dict)
    action: str | None = None
    action_payload: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    completed: bool = False
    timer_id: str | None = None
    expired_timers: list[str] = Field(default_factory=list)
    persisted: bool = True
    warning: str | None = None
    state: WorkstateResponse
