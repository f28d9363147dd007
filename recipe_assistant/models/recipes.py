"""
Recipe Domain Objects

Read-only views of a recipe as the assistant sees it. They are built by
the recipe store from the ORM entities and never written back, so the
dataclasses are frozen.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class IngredientLine:
    """One ingredient with its original (unscaled) quantity."""
    name: str
    quantity: Optional[float] = None  # None for "to taste" items
    unit: Optional[str] = None
    notes: Optional[str] = None
    optional: bool = False


@dataclass(frozen=True)
class InstructionStep:
    """A single instruction, optionally carrying an embedded duration."""
    text: str
    duration_seconds: Optional[int] = None

    @property
    def has_timing(self) -> bool:
        return bool(self.duration_seconds and self.duration_seconds > 0)


@dataclass(frozen=True)
class Recipe:
    """A recipe the assistant can walk through."""
    id: int
    title: str
    steps: tuple[InstructionStep, ...] = ()
    ingredients: tuple[IngredientLine, ...] = ()
    servings: int = 4
    category: Optional[str] = None
    difficulty: Optional[str] = None
    prep_time: Optional[int] = None  # Minutes
    cook_time: Optional[int] = None  # Minutes
    tags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def total_time(self) -> int:
        """Prep plus cook time in minutes (0 when unknown)."""
        return (self.prep_time or 0) + (self.cook_time or 0)

    def step(self, index: int) -> Optional[InstructionStep]:
        """Get the step at a 0-based index, or None when out of range."""
        if 0 <= index < len(self.steps):
            return self.steps[index]
        return None
