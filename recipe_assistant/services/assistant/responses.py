"""
Response formatting - turns numbers and recipe parts into speakable text.

Everything here is plain string building; the engine decides what to
say and these helpers decide how it reads out loud.
"""

from typing import Optional

from recipe_assistant.models.recipes import IngredientLine, Recipe
from recipe_assistant.models.workstate import CookingTimer

HELP_TEXT = (
    "I can help you cook! Try saying: "
    "\"next step\" or \"go back\", "
    "\"go to step 3\", "
    "\"set a timer for 5 minutes\", "
    "\"how much time is left\", "
    "\"what can I use instead of eggs\", "
    "\"what does fold mean\", "
    "\"double the recipe\", "
    "\"what ingredients do I need\", "
    "or \"I'm allergic to peanuts\"."
)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def format_duration(seconds: float) -> str:
    """
    Speakable duration: "45 seconds", "5 minutes", "1 hour 30 minutes".

    Seconds are only mentioned under ten minutes, where they matter.
    """
    total = max(0, int(round(seconds)))
    if total < 60:
        return _plural(total, "second")

    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(_plural(hours, "hour"))
    if minutes:
        parts.append(_plural(minutes, "minute"))
    if secs and not hours and minutes < 10:
        parts.append(_plural(secs, "second"))
    return " ".join(parts)


def format_clock(seconds: float) -> str:
    """Display duration as m:ss (or h:mm:ss)."""
    total = max(0, int(round(seconds)))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_quantity(quantity: float) -> str:
    """
    Kitchen-friendly number: 4 -> "4", 0.75 -> "3/4", 1.5 -> "1 1/2".

    Falls back to at most two decimals when no simple fraction fits.
    """
    whole = int(quantity)
    fraction = quantity - whole
    if fraction < 0.01:
        return str(whole)
    if fraction > 0.99:
        return str(whole + 1)

    for denominator in (2, 3, 4, 8):
        numerator = round(fraction * denominator)
        if 0 < numerator < denominator and abs(fraction - numerator / denominator) < 0.01:
            text = f"{numerator}/{denominator}"
            return f"{whole} {text}" if whole else text

    return f"{quantity:.2f}".rstrip("0").rstrip(".")


def format_ingredient(line: IngredientLine, scale_factor: float = 1.0) -> str:
    """
    One ingredient line, scaled from its original quantity.

    Example: IngredientLine("flour", 2, "cups") at 2x -> "4 cups flour"
    """
    if line.quantity is None:
        text = f"{line.name} ({line.unit})" if line.unit else f"{line.name} (to taste)"
    else:
        amount = format_quantity(line.quantity * scale_factor)
        text = f"{amount} {line.unit} {line.name}" if line.unit else f"{amount} {line.name}"

    if line.notes:
        text += f" ({line.notes})"
    if line.optional:
        text += " (optional)"
    return text


def format_ingredient_list(recipe: Recipe, scale_factor: float = 1.0) -> str:
    return ", ".join(format_ingredient(i, scale_factor) for i in recipe.ingredients)


def format_step(recipe: Recipe, index: int) -> str:
    step = recipe.step(index)
    if step is None:
        return "This recipe doesn't have any steps."
    return f"Step {index + 1}: {step.text}"


def format_timer(timer: CookingTimer, remaining: float) -> str:
    text = f"{timer.label}: {format_duration(remaining)}"
    if timer.paused_remaining is not None:
        text += " (paused)"
    return text


def format_factor(factor: float) -> str:
    return f"{format_quantity(factor)}x"


def describe_scale(factor: float) -> Optional[str]:
    """Spoken verb for the common multipliers."""
    return {
        0.5: "Halved",
        1.0: "Back to the original amounts",
        2.0: "Doubled",
        3.0: "Tripled",
        4.0: "Quadrupled",
    }.get(factor)
