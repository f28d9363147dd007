"""
Assistant Engine - turns one utterance into a reply.

    utterance -> IntentClassifier -> Intent -> handler -> AssistantReply

Each intent kind has exactly one handler in a dispatch table. A handler
may mutate the workstate it was given (step moves, timers, scaling,
constraints), look things up in the knowledge base, and fetch the recipe
from the recipe store for step text and ingredient lists.

The engine never raises for conditions a cook can cause by talking.
Boundary moves, lookup misses, idle sessions and bad scale factors all
come back as a spoken reply with `error` naming the condition:

    no_active_session   a session command while idle
    out_of_range        navigation past either end ("previous" on step 1)
    not_found           substitution, technique, timer or recipe miss
    invalid_scale       non-positive scale factor
    unclassified        no rule matched the utterance

Reaching past the last step is not an error: it is reported as recipe
completion with a RECIPE_COMPLETE action.

Persisting the mutated workstate is the caller's job (see
CookingService); `mutated` tells it whether there is anything to save.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from recipe_assistant.exceptions import (
    InvalidScaleError,
    NoActiveSessionError,
    RecipeNotFoundError,
    StepOutOfRangeError,
)
from recipe_assistant.models.intents import Intent, IntentKind
from recipe_assistant.models.recipes import Recipe
from recipe_assistant.models.workstate import (
    CookingConstraints,
    CookingWorkstate,
    SessionMode,
    SkillLevel,
    utc_now,
)
from recipe_assistant.services.assistant import responses
from recipe_assistant.services.assistant.classifier import ClassifierContext, IntentClassifier
from recipe_assistant.services.assistant.knowledge_base import KnowledgeBase

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    """Side effects the host should carry out (show a step, ring a timer...)."""
    SHOW_STEP = "show_step"
    RECIPE_COMPLETE = "recipe_complete"
    START_TIMER = "start_timer"
    CANCEL_TIMER = "cancel_timer"
    SCALE_RECIPE = "scale_recipe"
    UPDATE_CONSTRAINTS = "update_constraints"
    PAUSE_SESSION = "pause_session"
    RESUME_SESSION = "resume_session"
    END_SESSION = "end_session"


class AssistantAction(BaseModel):
    kind: ActionKind
    payload: dict[str, Any] = Field(default_factory=dict)


class AssistantReply(BaseModel):
    """What the engine says back, plus what it did."""
    text: str
    intent: Intent
    action: Optional[AssistantAction] = None
    mutated: bool = False
    error: Optional[str] = None


Handler = Callable[[Intent, CookingWorkstate, Recipe, datetime], AssistantReply]


def _reply(
    intent: Intent,
    text: str,
    action: Optional[ActionKind] = None,
    error: Optional[str] = None,
    **payload,
) -> AssistantReply:
    return AssistantReply(
        text=text,
        intent=intent,
        action=AssistantAction(kind=action, payload=payload) if action else None,
        error=error,
    )


class AssistantEngine:
    """
    Rule-based cooking assistant.

    Args:
        recipes: anything with get_recipe(recipe_id) -> Recipe
        knowledge_base: substitution and technique tables
        classifier: defaults to the standard rule set
        clock: returns the current time; tests pass a fixed clock
        default_step_seconds: time estimate for steps without a duration
    """

    def __init__(
        self,
        recipes,
        knowledge_base: KnowledgeBase,
        classifier: Optional[IntentClassifier] = None,
        clock: Callable[[], datetime] = utc_now,
        default_step_seconds: int = 120,
    ):
        self.recipes = recipes
        self.knowledge_base = knowledge_base
        self.classifier = classifier or IntentClassifier()
        self.clock = clock
        self.default_step_seconds = default_step_seconds

        self._handlers: dict[IntentKind, Handler] = {
            IntentKind.NAVIGATE_NEXT: self._next_step,
            IntentKind.NAVIGATE_PREVIOUS: self._previous_step,
            IntentKind.NAVIGATE_TO_STEP: self._go_to_step,
            IntentKind.REPEAT_STEP: self._repeat_step,
            IntentKind.PREVIEW_NEXT: self._preview_next,
            IntentKind.START_TIMER: self._start_timer,
            IntentKind.CHECK_TIMER: self._check_timer,
            IntentKind.CANCEL_TIMER: self._cancel_timer,
            IntentKind.PAUSE_SESSION: self._pause,
            IntentKind.RESUME_SESSION: self._resume,
            IntentKind.END_SESSION: self._end_session,
            IntentKind.SUBSTITUTE: self._substitute,
            IntentKind.EXPLAIN_TECHNIQUE: self._explain_technique,
            IntentKind.SCALE_RECIPE: self._scale,
            IntentKind.SET_CONSTRAINT: self._set_constraint,
            IntentKind.LIST_INGREDIENTS: self._list_ingredients,
            IntentKind.HOW_LONG_LEFT: self._how_long_left,
        }

    # ============================================
    # Entry point
    # ============================================

    def handle_utterance(self, text: str, workstate: CookingWorkstate) -> AssistantReply:
        """Classify one utterance and act on it against the given workstate."""
        intent = self.classifier.classify(text, ClassifierContext.from_workstate(workstate))
        logger.info(f"Utterance {text!r} -> {intent}")

        if intent.is_unknown:
            return _reply(
                intent,
                f"I'm not sure how to help with \"{text.strip()}\". "
                "Try saying \"help\" to hear what I can do.",
                error="unclassified",
            )

        if intent.kind == IntentKind.HELP:
            reply = _reply(intent, responses.HELP_TEXT)
            if workstate.has_active_session:
                workstate.remember_intent(intent, self.clock())
                reply.mutated = True
            return reply

        if not workstate.has_active_session:
            return self._no_session(intent)

        now = self.clock()
        try:
            recipe = self.recipes.get_recipe(workstate.active_recipe_id)
        except RecipeNotFoundError:
            logger.warning(f"Recipe {workstate.active_recipe_id} for the active session is gone")
            return _reply(
                intent,
                "I can't find the recipe for this session anymore. Try starting it again.",
                error="not_found",
            )

        handler = self._handlers[intent.kind]
        try:
            reply = handler(intent, workstate, recipe, now)
        except NoActiveSessionError:
            return self._no_session(intent)

        if workstate.has_active_session:
            workstate.remember_intent(intent, now)
            reply.mutated = True
        elif intent.kind == IntentKind.END_SESSION:
            reply.mutated = True
        return reply

    def introduce(self, recipe: Recipe, workstate: CookingWorkstate) -> str:
        """Opening line for a freshly started session."""
        if not recipe.steps:
            return f"Let's make {recipe.title}! This recipe doesn't have any steps yet."
        count = recipe.step_count
        return (
            f"Let's make {recipe.title}! There {'is' if count == 1 else 'are'} "
            f"{count} step{'s' if count != 1 else ''}. "
            + self._describe_step(recipe, workstate, 0)
        )

    def _no_session(self, intent: Intent) -> AssistantReply:
        return _reply(
            intent,
            "There's no cooking session going right now. Pick a recipe and start cooking first.",
            error="no_active_session",
        )

    # ============================================
    # Navigation
    # ============================================

    def _describe_step(self, recipe: Recipe, workstate: CookingWorkstate, index: int) -> str:
        """Step text plus timing, allergy and beginner hints."""
        text = responses.format_step(recipe, index)
        step = recipe.step(index)
        if step is None:
            return text

        if step.has_timing:
            text += (
                f" This takes about {responses.format_duration(step.duration_seconds)}."
                " Say \"start a timer\" when you're ready."
            )

        allergen = workstate.constraints.allergen_in(step.text)
        if allergen:
            text += f" Heads up: this step uses {allergen}, which you're avoiding."

        if workstate.constraints.skill_level == SkillLevel.BEGINNER:
            term = self.knowledge_base.find_term_in(step.text)
            if term:
                text += f" Say \"explain {term}\" if you're not sure how to do it."
        return text

    def _next_step(self, intent, workstate, recipe, now):
        try:
            index = workstate.advance_step(now)
        except StepOutOfRangeError:
            logger.info(f"Recipe {recipe.id} completed")
            return _reply(
                intent,
                f"That was the last step! Your {recipe.title} should be ready. Enjoy!",
                ActionKind.RECIPE_COMPLETE,
                recipe_id=recipe.id,
            )
        return _reply(
            intent,
            self._describe_step(recipe, workstate, index),
            ActionKind.SHOW_STEP,
            step_index=index,
        )

    def _previous_step(self, intent, workstate, recipe, now):
        try:
            index = workstate.previous_step(now)
        except StepOutOfRangeError:
            return _reply(
                intent,
                "You're already at the first step. " + responses.format_step(recipe, 0),
                error="out_of_range",
            )
        return _reply(
            intent,
            self._describe_step(recipe, workstate, index),
            ActionKind.SHOW_STEP,
            step_index=index,
        )

    def _go_to_step(self, intent, workstate, recipe, now):
        if not intent.has_slot("index"):
            return _reply(
                intent,
                f"Which step would you like to go to? This recipe has {recipe.step_count} steps.",
            )

        index = intent.slot("index")
        if index == "last":
            index = workstate.step_count - 1
        try:
            workstate.go_to_step(index, now)
        except StepOutOfRangeError:
            return _reply(
                intent,
                f"This recipe only has {recipe.step_count} steps.",
                error="out_of_range",
            )
        return _reply(
            intent,
            self._describe_step(recipe, workstate, index),
            ActionKind.SHOW_STEP,
            step_index=index,
        )

    def _repeat_step(self, intent, workstate, recipe, now):
        return _reply(
            intent,
            self._describe_step(recipe, workstate, workstate.step_index),
            ActionKind.SHOW_STEP,
            step_index=workstate.step_index,
        )

    def _preview_next(self, intent, workstate, recipe, now):
        upcoming = workstate.step_index + 1
        if recipe.step(upcoming) is None:
            return _reply(intent, "This is the last step. After this you're done!")
        return _reply(intent, f"Coming up next, {responses.format_step(recipe, upcoming)}")

    # ============================================
    # Timers
    # ============================================

    def _start_timer(self, intent, workstate, recipe, now):
        duration = intent.slot("duration")
        if not duration:
            step = recipe.step(workstate.step_index)
            if step is None or not step.has_timing:
                return _reply(intent, "How long should I set the timer for?")
            duration = step.duration_seconds

        label = intent.slot("label")
        replacing = label is not None and workstate.find_timer(label) is not None
        timer_id = workstate.start_timer(duration, label, now)
        timer = next(t for t in workstate.timers if t.id == timer_id)

        spoken = responses.format_duration(duration)
        if replacing:
            text = f"Restarted the {timer.label} timer for {spoken}."
        elif label:
            text = f"{timer.label.capitalize()} timer set for {spoken}."
        else:
            text = f"Timer set for {spoken}."
        if workstate.mode == SessionMode.PAUSED:
            text += " It will start counting when you resume."

        return _reply(
            intent,
            text,
            ActionKind.START_TIMER,
            timer_id=timer_id,
            label=timer.label,
            duration=duration,
        )

    def _check_timer(self, intent, workstate, recipe, now):
        expired = workstate.tick(now)
        done = ", ".join(t.label for t in expired)
        prefix = f"Your {done} timer is done! " if expired else ""

        label = intent.slot("label")
        if label:
            timer = workstate.find_timer(label)
            if timer is None:
                return _reply(
                    intent,
                    prefix + f"You don't have a {label} timer running.",
                    error=None if expired else "not_found",
                )
            text = f"{responses.format_duration(timer.remaining(now))} left on the {timer.label} timer."
            if timer.paused_remaining is not None:
                text += " It's paused."
            return _reply(intent, prefix + text)

        active = workstate.active_timers
        if not active:
            return _reply(intent, (prefix or "You don't have any timers running.").strip())
        if len(active) == 1:
            timer = active[0]
            text = f"{responses.format_duration(timer.remaining(now))} left on the {timer.label} timer."
            if timer.paused_remaining is not None:
                text += " It's paused."
            return _reply(intent, prefix + text)

        listed = "; ".join(responses.format_timer(t, t.remaining(now)) for t in active)
        return _reply(intent, prefix + f"You have {len(active)} timers: {listed}.")

    def _cancel_timer(self, intent, workstate, recipe, now):
        if intent.slot("all"):
            count = workstate.cancel_all_timers(now)
            if not count:
                return _reply(intent, "There are no timers to cancel.")
            return _reply(
                intent,
                f"Cancelled {'the timer' if count == 1 else f'all {count} timers'}.",
                ActionKind.CANCEL_TIMER,
                timer_ids=[],
                count=count,
            )

        label = intent.slot("label")
        timer = workstate.find_timer(label)
        if timer is None:
            if label:
                return _reply(intent, f"I couldn't find a {label} timer.", error="not_found")
            return _reply(intent, "There's no timer running to cancel.", error="not_found")

        workstate.cancel_timer(timer.id, now)
        return _reply(
            intent,
            f"Cancelled the {timer.label} timer.",
            ActionKind.CANCEL_TIMER,
            timer_ids=[timer.id],
            count=1,
        )

    # ============================================
    # Session control
    # ============================================

    def _pause(self, intent, workstate, recipe, now):
        if workstate.mode == SessionMode.PAUSED:
            return _reply(intent, "We're already paused. Say \"resume\" when you're ready.")
        workstate.pause(now)
        return _reply(
            intent,
            f"Paused on step {workstate.step_index + 1}. Say \"resume\" when you're ready.",
            ActionKind.PAUSE_SESSION,
        )

    def _resume(self, intent, workstate, recipe, now):
        if workstate.mode == SessionMode.COOKING:
            return _reply(intent, "We're still cooking. " + responses.format_step(recipe, workstate.step_index))
        workstate.resume(now)
        return _reply(
            intent,
            "Welcome back! " + self._describe_step(recipe, workstate, workstate.step_index),
            ActionKind.RESUME_SESSION,
            step_index=workstate.step_index,
        )

    def _end_session(self, intent, workstate, recipe, now):
        workstate.end_session(now)
        return _reply(
            intent,
            f"Okay, we're done with {recipe.title}. Happy cooking!",
            ActionKind.END_SESSION,
            recipe_id=recipe.id,
        )

    # ============================================
    # Knowledge base
    # ============================================

    def _substitute(self, intent, workstate, recipe, now):
        ingredient = intent.slot("ingredient")
        if not ingredient:
            return _reply(intent, "Which ingredient do you need a substitute for?")

        substitutes = self.knowledge_base.lookup_substitution(ingredient)
        if substitutes is None:
            return _reply(
                intent,
                f"Sorry, I don't have a substitution for {ingredient}. "
                "You could search online, or skip it if it's not essential.",
                error="not_found",
            )

        allowed = [s for s in substitutes if not workstate.constraints.allergen_in(s.name)]
        if not allowed:
            return _reply(
                intent,
                f"The substitutes I know for {ingredient} all contain something you're avoiding.",
            )

        options = []
        for sub in allowed:
            detail = sub.ratio or sub.notes
            options.append(f"{sub.name} ({detail})" if detail else sub.name)
        return _reply(intent, f"You can substitute {ingredient} with: {', or '.join(options)}.")

    def _explain_technique(self, intent, workstate, recipe, now):
        term = intent.slot("term")
        if not term:
            return _reply(intent, "Which technique should I explain?")

        info = self.knowledge_base.lookup_technique(term)
        if info is None:
            return _reply(
                intent,
                f"Sorry, I'm not sure what \"{term}\" means. "
                "A quick video search might show you how it's done.",
                error="not_found",
            )

        text = f"{info.term.capitalize()}: {info.definition}"
        if info.example:
            text += f" For example, {info.example}"
        return _reply(intent, text)

    # ============================================
    # Recipe adjustments
    # ============================================

    def _scale(self, intent, workstate, recipe, now):
        factor = intent.slot("factor")
        if factor is None and intent.has_slot("servings"):
            factor = intent.slot("servings") / recipe.servings if recipe.servings else None
        if factor is None:
            return _reply(
                intent,
                "How much should I scale it? For example, say \"double the recipe\".",
            )

        try:
            factor = workstate.apply_scale(factor, now)
        except InvalidScaleError:
            return _reply(
                intent,
                "I can only scale a recipe by a positive amount. The amounts are unchanged.",
                error="invalid_scale",
            )

        verb = responses.describe_scale(factor) or f"Scaled the recipe to {responses.format_factor(factor)}"
        servings = responses.format_quantity(recipe.servings * factor)
        text = f"{verb}. That makes {servings} servings."
        if recipe.ingredients:
            text += f" You'll need: {responses.format_ingredient_list(recipe, factor)}."
        return _reply(intent, text, ActionKind.SCALE_RECIPE, factor=factor)

    def _set_constraint(self, intent, workstate, recipe, now):
        kind = intent.slot("kind")
        value = intent.slot("value")
        if not kind or value is None:
            return _reply(
                intent,
                "What should I keep in mind? For example, say \"I'm allergic to peanuts\".",
            )

        constraints = workstate.constraints
        if kind == "allergy":
            constraints = constraints.with_allergy(str(value))
            text = f"Got it, I'll watch out for {value}."
            only_this = CookingConstraints(allergies=frozenset({str(value).lower()}))
            flagged = [i.name for i in recipe.ingredients if only_this.allergen_in(i.name)]
            if flagged:
                text += (
                    f" Heads up: this recipe uses {', '.join(flagged)}."
                    " Ask me for a substitute if you need one."
                )
        elif kind == "dietary":
            constraints = constraints.with_dietary(str(value))
            text = f"Got it, I'll keep in mind that you're eating {value}."
        elif kind == "time_budget":
            constraints = constraints.with_time_budget(int(value))
            text = f"Got it, you have {responses.format_duration(int(value) * 60)}."
            text += " " + self._budget_check(workstate, recipe, now, int(value))
        else:
            level = SkillLevel(value)
            constraints = constraints.with_skill_level(level)
            if level == SkillLevel.BEGINNER:
                text = "Got it, I'll point out techniques you can ask me about as we go."
            else:
                text = f"Got it, I'll keep things brief for an {level.value} cook."

        workstate.set_constraints(constraints, now)
        return _reply(
            intent,
            text.strip(),
            ActionKind.UPDATE_CONSTRAINTS,
            kind=kind,
            value=value,
        )

    # ============================================
    # Information
    # ============================================

    def _list_ingredients(self, intent, workstate, recipe, now):
        if not recipe.ingredients:
            return _reply(intent, f"{recipe.title} doesn't list any ingredients.")

        wanted = intent.slot("ingredient")
        if wanted:
            matches = [
                line for line in recipe.ingredients
                if wanted.lower() in line.name.lower() or line.name.lower() in wanted.lower()
            ]
            if not matches:
                return _reply(intent, f"This recipe doesn't call for {wanted}.", error="not_found")
            listed = ", ".join(responses.format_ingredient(m, workstate.scale_factor) for m in matches)
            return _reply(intent, f"You need {listed}.")

        text = (
            f"For {recipe.title} you'll need: "
            f"{responses.format_ingredient_list(recipe, workstate.scale_factor)}."
        )
        flagged = [
            line.name for line in recipe.ingredients
            if workstate.constraints.allergen_in(line.name)
        ]
        if flagged:
            text += f" Heads up: {', '.join(flagged)} may contain something you're avoiding."
        return _reply(intent, text)

    def _remaining_seconds(self, workstate: CookingWorkstate, recipe: Recipe) -> float:
        total = 0.0
        for index in range(workstate.step_index, recipe.step_count):
            if index in workstate.completed_steps:
                continue
            step = recipe.step(index)
            total += step.duration_seconds if step.has_timing else self.default_step_seconds
        return total

    def _budget_check(self, workstate, recipe, now, budget_minutes: int) -> str:
        elapsed = (now - workstate.started_at).total_seconds() if workstate.started_at else 0.0
        projected = elapsed + self._remaining_seconds(workstate, recipe)
        over = projected - budget_minutes * 60
        if over <= 0:
            return "You're on track to finish in time."
        return f"At this pace you'll run about {responses.format_duration(over)} over."

    def _how_long_left(self, intent, workstate, recipe, now):
        steps_left = recipe.step_count - workstate.step_index - 1
        if steps_left <= 0:
            return _reply(intent, "You're on the last step!")

        estimate = responses.format_duration(self._remaining_seconds(workstate, recipe))
        text = (
            f"You have {steps_left} more step{'s' if steps_left != 1 else ''} after this one, "
            f"about {estimate} including this step."
        )
        budget = workstate.constraints.time_budget_minutes
        if budget:
            text += " " + self._budget_check(workstate, recipe, now, budget)

        active = workstate.active_timers
        if active:
            soonest = min(active, key=lambda t: t.remaining(now))
            text += (
                f" Your {soonest.label} timer has "
                f"{responses.format_duration(soonest.remaining(now))} left."
            )
        return _reply(intent, text)
