"""
Intent - the structured reading of one utterance.

Intents are produced per utterance and thrown away, except for the most
recent one which the workstate keeps so a follow-up like "ten minutes"
can complete an earlier "start a timer".
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


SlotValue = Union[bool, int, float, str]


class IntentKind(str, Enum):
    # Navigation
    NAVIGATE_NEXT = "navigate_next"
    NAVIGATE_PREVIOUS = "navigate_previous"
    NAVIGATE_TO_STEP = "navigate_to_step"
    REPEAT_STEP = "repeat_step"
    PREVIEW_NEXT = "preview_next"
    # Timers
    START_TIMER = "start_timer"
    CHECK_TIMER = "check_timer"
    CANCEL_TIMER = "cancel_timer"
    # Session control
    PAUSE_SESSION = "pause_session"
    RESUME_SESSION = "resume_session"
    END_SESSION = "end_session"
    # Knowledge and recipe adjustments
    SUBSTITUTE = "substitute"
    EXPLAIN_TECHNIQUE = "explain_technique"
    SCALE_RECIPE = "scale_recipe"
    SET_CONSTRAINT = "set_constraint"
    # Information
    LIST_INGREDIENTS = "list_ingredients"
    HOW_LONG_LEFT = "how_long_left"
    HELP = "help"
    UNKNOWN = "unknown"


class Intent(BaseModel):
    """
    An intent kind plus the slots extracted for it.

    Slot names used by the classifier:
        index       0-based step for NAVIGATE_TO_STEP, or "last"
        duration    seconds for START_TIMER
        label       timer label for the timer intents
        all         True when CANCEL_TIMER targets every timer
        ingredient  SUBSTITUTE target
        term        EXPLAIN_TECHNIQUE target
        factor      SCALE_RECIPE multiplier
        servings    SCALE_RECIPE target servings (engine converts to a factor)
        kind/value  SET_CONSTRAINT payload
    """
    model_config = ConfigDict(frozen=True)

    kind: IntentKind
    slots: dict[str, SlotValue] = Field(default_factory=dict)
    text: str = ""

    def slot(self, name: str, default: Any = None) -> Any:
        return self.slots.get(name, default)

    def has_slot(self, name: str) -> bool:
        return name in self.slots

    @property
    def is_unknown(self) -> bool:
        return self.kind == IntentKind.UNKNOWN

    def __str__(self) -> str:
        if not self.slots:
            return self.kind.value
        slots = ", ".join(f"{k}={v!r}" for k, v in self.slots.items())
        return f"{self.kind.value}({slots})"


def unknown(text: str) -> Intent:
    """The catch-all intent, keeping the original text for the fallback reply."""
    return Intent(kind=IntentKind.UNKNOWN, text=text)


def awaiting_slot(intent: Optional[Intent]) -> Optional[str]:
    """
    Name of the slot a previous intent was missing, if any.

    Only these intents can be completed by a follow-up utterance.
    """
    if intent is None:
        return None
    required = {
        IntentKind.START_TIMER: "duration",
        IntentKind.NAVIGATE_TO_STEP: "index",
        IntentKind.SUBSTITUTE: "ingredient",
        IntentKind.EXPLAIN_TECHNIQUE: "term",
    }
    slot = required.get(intent.kind)
    if slot and not intent.has_slot(slot):
        return slot
    return None
