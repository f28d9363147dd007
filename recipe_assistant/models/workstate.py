"""
Cooking Workstate - the persisted record of an in-progress cooking session.

The workstate is a Pydantic model so it serializes straight to the JSON
blob kept by the workstate store. All mutations go through methods that
enforce the session invariants:

- step_index is meaningful only while a recipe is active, and stays
  within [0, step_count - 1]
- mode is COOKING or PAUSED only while a recipe is active
- scale_factor is strictly positive and always relative to the
  original recipe quantities
- a new timer replaces an existing one with the same label

Every mutation takes the current time from the caller (so tests can
pin the clock) and stamps `updated_at`. Persisting after each mutation
is the session service's job.

Mode transitions:
    idle --start_session--> cooking
    cooking --pause--> paused --resume--> cooking
    cooking | paused --end_session--> idle
"""

import re
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from recipe_assistant.exceptions import (
    InvalidScaleError,
    NoActiveSessionError,
    StepOutOfRangeError,
    TimerNotFoundError,
)
from recipe_assistant.models.intents import Intent


def utc_now() -> datetime:
    """Default clock for workstate mutations."""
    return datetime.now(timezone.utc)


class SessionMode(str, Enum):
    IDLE = "idle"
    COOKING = "cooking"
    PAUSED = "paused"


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    EXPIRED = "expired"


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class CookingConstraints(BaseModel):
    """Dietary constraints for a session. Replaced wholesale, never edited."""
    model_config = ConfigDict(frozen=True)

    dietary: frozenset[str] = Field(default_factory=frozenset, description="Tags like 'vegetarian'")
    allergies: frozenset[str] = Field(default_factory=frozenset, description="Ingredient names to avoid")
    time_budget_minutes: Optional[int] = Field(None, gt=0)
    skill_level: SkillLevel = SkillLevel.INTERMEDIATE

    def with_dietary(self, tag: str) -> "CookingConstraints":
        return self.model_copy(update={"dietary": self.dietary | {tag.lower()}})

    def with_allergy(self, ingredient: str) -> "CookingConstraints":
        return self.model_copy(update={"allergies": self.allergies | {ingredient.lower()}})

    def with_time_budget(self, minutes: int) -> "CookingConstraints":
        return self.model_copy(update={"time_budget_minutes": minutes})

    def with_skill_level(self, level: SkillLevel) -> "CookingConstraints":
        return self.model_copy(update={"skill_level": level})

    def allergen_in(self, text: str) -> Optional[str]:
        """
        Return the first allergen mentioned in `text`, if any.

        A plural allergen also matches its singular ("peanuts" flags
        "peanut butter").
        """
        lowered = text.lower()
        for allergen in sorted(self.allergies):
            forms = {allergen}
            if len(allergen) > 3 and allergen.endswith("s") and not allergen.endswith("ss"):
                forms.add(allergen[:-1])
            if any(re.search(rf"\b{re.escape(form)}", lowered) for form in forms):
                return allergen
        return None


class CookingTimer(BaseModel):
    """
    A countdown timer.

    Remaining time is always derived from the absolute start timestamp,
    never from a decremented counter, so it stays right across app
    suspension and irregular polling.
    """
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:8])
    label: str
    duration: float = Field(..., gt=0, description="Seconds")
    started_at: Optional[datetime] = None
    paused_remaining: Optional[float] = None
    state: TimerState = TimerState.IDLE
    step_index: Optional[int] = None

    def start(self, now: datetime):
        self.started_at = now
        self.paused_remaining = None
        self.state = TimerState.RUNNING

    def remaining(self, now: datetime) -> float:
        """Seconds left, computed from the start timestamp."""
        if self.state == TimerState.EXPIRED:
            return 0.0
        if self.state == TimerState.PAUSED and self.paused_remaining is not None:
            return self.paused_remaining
        if self.started_at is None:
            return self.duration
        elapsed = (now - self.started_at).total_seconds()
        return max(0.0, self.duration - elapsed)

    def ends_at(self) -> Optional[datetime]:
        if self.state != TimerState.RUNNING or self.started_at is None:
            return None
        return self.started_at + timedelta(seconds=self.duration)

    def pause(self, now: datetime):
        if self.state != TimerState.RUNNING:
            return
        self.paused_remaining = self.remaining(now)
        self.state = TimerState.PAUSED

    def resume(self, now: datetime):
        if self.state != TimerState.PAUSED:
            return
        remaining = self.paused_remaining if self.paused_remaining is not None else self.duration
        # Shift the start so that duration - elapsed == remaining
        self.started_at = now - timedelta(seconds=self.duration - remaining)
        self.paused_remaining = None
        self.state = TimerState.RUNNING

    def check_expired(self, now: datetime) -> bool:
        """Move a running timer to EXPIRED once its end time has passed."""
        if self.state == TimerState.RUNNING and self.remaining(now) <= 0:
            self.state = TimerState.EXPIRED
            return True
        return False

    @property
    def is_active(self) -> bool:
        return self.state in (TimerState.RUNNING, TimerState.PAUSED)


class CookingWorkstate(BaseModel):
    """Session-scoped state for one member's cooking session."""

    active_recipe_id: Optional[int] = None
    step_index: int = 0
    step_count: int = 0
    completed_steps: list[int] = Field(default_factory=list)
    timers: list[CookingTimer] = Field(default_factory=list)
    scale_factor: float = 1.0
    constraints: CookingConstraints = Field(default_factory=CookingConstraints)
    last_intent: Optional[Intent] = None
    mode: SessionMode = SessionMode.IDLE
    started_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=utc_now)

    # ============================================
    # Accessors
    # ============================================

    @property
    def has_active_session(self) -> bool:
        return self.active_recipe_id is not None and self.mode != SessionMode.IDLE

    @property
    def is_last_step(self) -> bool:
        return self.has_active_session and self.step_index >= self.step_count - 1

    @property
    def active_timers(self) -> list[CookingTimer]:
        return [t for t in self.timers if t.is_active]

    def find_timer(self, label: Optional[str] = None) -> Optional[CookingTimer]:
        """
        Find an active timer by label, or the most recent active one.
        """
        candidates = self.active_timers
        if label:
            wanted = label.lower()
            candidates = [t for t in candidates if t.label.lower() == wanted]
        return candidates[-1] if candidates else None

    def _touch(self, now: datetime):
        self.updated_at = now

    def _require_session(self, operation: str):
        if not self.has_active_session:
            raise NoActiveSessionError(operation)

    # ============================================
    # Session lifecycle
    # ============================================

    def start_session(
        self,
        recipe_id: int,
        step_count: int,
        constraints: Optional[CookingConstraints] = None,
        now: Optional[datetime] = None,
    ):
        """Begin cooking a recipe, discarding any previous session."""
        now = now or utc_now()
        self.active_recipe_id = recipe_id
        self.step_index = 0
        self.step_count = max(step_count, 0)
        self.completed_steps = []
        self.timers = []
        self.scale_factor = 1.0
        self.constraints = constraints or CookingConstraints()
        self.last_intent = None
        self.mode = SessionMode.COOKING
        self.started_at = now
        self._touch(now)

    def end_session(self, now: Optional[datetime] = None):
        """Return to idle. Allowed from any mode."""
        now = now or utc_now()
        self.active_recipe_id = None
        self.step_index = 0
        self.step_count = 0
        self.completed_steps = []
        self.timers = []
        self.scale_factor = 1.0
        self.constraints = CookingConstraints()
        self.last_intent = None
        self.mode = SessionMode.IDLE
        self.started_at = None
        self._touch(now)

    def pause(self, now: Optional[datetime] = None):
        now = now or utc_now()
        self._require_session("pause")
        if self.mode == SessionMode.PAUSED:
            return
        for timer in self.timers:
            timer.pause(now)
        self.mode = SessionMode.PAUSED
        self._touch(now)

    def resume(self, now: Optional[datetime] = None):
        now = now or utc_now()
        self._require_session("resume")
        if self.mode == SessionMode.COOKING:
            return
        for timer in self.timers:
            timer.resume(now)
        self.mode = SessionMode.COOKING
        self._touch(now)

    # ============================================
    # Step navigation
    # ============================================

    def advance_step(self, now: Optional[datetime] = None) -> int:
        """
        Move to the next step and return the new index.

        Raises StepOutOfRangeError (with at_end=True) on the last step;
        the current step is still marked completed.
        """
        now = now or utc_now()
        self._require_session("advance_step")
        self._mark_completed(self.step_index)
        target = self.step_index + 1
        if target >= self.step_count:
            self._touch(now)
            raise StepOutOfRangeError(target, self.step_count)
        self.step_index = target
        self._touch(now)
        return self.step_index

    def previous_step(self, now: Optional[datetime] = None) -> int:
        now = now or utc_now()
        self._require_session("previous_step")
        if self.step_index <= 0:
            raise StepOutOfRangeError(-1, self.step_count)
        self.step_index -= 1
        self._touch(now)
        return self.step_index

    def go_to_step(self, index: int, now: Optional[datetime] = None) -> int:
        now = now or utc_now()
        self._require_session("go_to_step")
        if not 0 <= index < self.step_count:
            raise StepOutOfRangeError(index, self.step_count)
        self.step_index = index
        self._touch(now)
        return self.step_index

    def _mark_completed(self, index: int):
        if index not in self.completed_steps:
            self.completed_steps.append(index)
            self.completed_steps.sort()

    # ============================================
    # Timers
    # ============================================

    def start_timer(
        self,
        duration: float,
        label: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Start a timer and return its id. Same label replaces the old timer."""
        now = now or utc_now()
        self._require_session("start_timer")
        label = (label or f"Step {self.step_index + 1}").strip()
        self.timers = [t for t in self.timers if t.label.lower() != label.lower()]
        timer = CookingTimer(label=label, duration=duration, step_index=self.step_index)
        timer.start(now)
        if self.mode == SessionMode.PAUSED:
            timer.pause(now)
        self.timers.append(timer)
        self._touch(now)
        return timer.id

    def cancel_timer(self, timer_id: str, now: Optional[datetime] = None) -> CookingTimer:
        now = now or utc_now()
        self._require_session("cancel_timer")
        for timer in self.timers:
            if timer.id == timer_id:
                self.timers.remove(timer)
                self._touch(now)
                return timer
        raise TimerNotFoundError(timer_id)

    def cancel_all_timers(self, now: Optional[datetime] = None) -> int:
        now = now or utc_now()
        self._require_session("cancel_all_timers")
        count = len(self.timers)
        self.timers = []
        self._touch(now)
        return count

    def tick(self, now: Optional[datetime] = None) -> list[CookingTimer]:
        """
        Expire every running timer whose end time has passed.

        Returns the timers that expired on this call.
        """
        now = now or utc_now()
        self._require_session("tick")
        expired = [t for t in self.timers if t.check_expired(now)]
        if expired:
            self._touch(now)
        return expired

    # ============================================
    # Scaling and constraints
    # ============================================

    def apply_scale(self, factor: float, now: Optional[datetime] = None) -> float:
        """Set the scale factor relative to the original recipe."""
        now = now or utc_now()
        self._require_session("apply_scale")
        if factor is None or factor <= 0:
            raise InvalidScaleError(factor)
        self.scale_factor = float(factor)
        self._touch(now)
        return self.scale_factor

    def scaled_quantity(self, quantity: Optional[float]) -> Optional[float]:
        """Scale an original recipe quantity. Never applied to a scaled value."""
        if quantity is None:
            return None
        return quantity * self.scale_factor

    def set_constraints(self, constraints: CookingConstraints, now: Optional[datetime] = None):
        now = now or utc_now()
        self._require_session("set_constraints")
        self.constraints = constraints
        self._touch(now)

    def remember_intent(self, intent: Intent, now: Optional[datetime] = None):
        """Keep the last classified intent for follow-up resolution."""
        now = now or utc_now()
        self._require_session("remember_intent")
        self.last_intent = intent
        self._touch(now)

    # ============================================
    # Serialization
    # ============================================

    @classmethod
    def from_json(cls, json_str: str) -> "CookingWorkstate":
        """Parse a stored workstate. Raises ValueError on corrupt data."""
        return cls.model_validate_json(json_str)

    def to_json(self) -> str:
        return self.model_dump_json()
