"""
Intent Classifier - maps an utterance to a typed Intent.

Classification is an ordered list of rules. Each rule is a set of
trigger phrases, a slot extractor and the intent kind it produces. Rules
are checked in priority order and the first one with a trigger present
(whole words, case-insensitive) wins; its extractor then fills the
slots. A later rule never gets a second chance, even if the winning rule
could not extract anything useful - the engine asks a clarifying
question instead.

Priority order (also the order of RULES below):

    1. navigation      to-step, preview, next, previous, repeat
    2. timers          cancel, check, start
    3. session control pause, resume, end
    4. knowledge       substitute, explain technique
    5. scaling
    6. constraints
    7. information     ingredient list, time left, help
    8. follow-up       bare answers completing the previous intent
    9. unknown

So "next, set a timer for 2 minutes" is NAVIGATE_NEXT: navigation
outranks timers no matter which phrase is longer. Rules inside one
category are ordered by registration; that order is the tie-break.

The classifier is pure. The only context it reads is the previous
intent, and only once no rule has matched (step 8).
"""

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

from recipe_assistant.models.intents import Intent, IntentKind, awaiting_slot, unknown
from recipe_assistant.models.workstate import SkillLevel
from recipe_assistant.services.assistant.parsing import (
    NUMBER_PATTERN,
    ORDINALS,
    find_number,
    parse_duration,
    parse_number,
    parse_ordinal,
    strip_duration,
)

if TYPE_CHECKING:
    from recipe_assistant.models.workstate import CookingWorkstate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassifierContext:
    """Read-only snapshot of the workstate parts the classifier may use."""
    last_intent: Optional[Intent] = None
    step_index: int = 0
    step_count: int = 0

    @classmethod
    def from_workstate(cls, workstate: "CookingWorkstate") -> "ClassifierContext":
        return cls(
            last_intent=workstate.last_intent,
            step_index=workstate.step_index,
            step_count=workstate.step_count,
        )


Extractor = Callable[[str, ClassifierContext], dict]


@dataclass(frozen=True)
class Rule:
    """One classification rule: trigger phrases -> slot extractor -> kind."""
    kind: IntentKind
    category: str
    triggers: tuple[str, ...]
    extract: Extractor = field(default=lambda text, ctx: {})
    _regex: Optional[re.Pattern] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        pattern = "|".join(f"(?:{t})" for t in self.triggers)
        object.__setattr__(self, "_regex", re.compile(rf"(?<![\w'])(?:{pattern})(?![\w'])"))

    def matches(self, text: str) -> bool:
        return self._regex.search(text) is not None


# ============================================
# Text normalization
# ============================================

_CONTRACTIONS = {
    r"\bwhats\b": "what's",
    r"\bim\b": "i'm",
    r"\bdont\b": "don't",
    r"\bwhere's\b": "where is",
    r"\blets\b": "let's",
    r"\bive\b": "i've",
}


def normalize_utterance(text: str) -> str:
    """Lowercase, unify apostrophes, expand common STT spellings."""
    text = (text or "").lower().replace("’", "'").replace("‘", "'")
    for pattern, replacement in _CONTRACTIONS.items():
        text = re.sub(pattern, replacement, text)
    text = re.sub(r"\s+", " ", text).strip()
    return text.strip(" .!?")


def _clean_phrase(phrase: str) -> str:
    """Trim a captured noun phrase down to the thing being asked about."""
    phrase = re.split(r"[,;?!.]", phrase, maxsplit=1)[0]
    phrase = re.sub(
        r"\s+(?:what|which|can|could|should|would|do|please|any|instead|in this|for this|in the|for the)\b.*$",
        "",
        phrase,
    )
    phrase = re.sub(r"\s+(?:mean|means|is|are)$", "", phrase)
    phrase = re.sub(r"^(?:the|some|any|a|an|my|to|of)\s+", "", phrase.strip())
    return phrase.strip(" '\"")


def _first_group(patterns: tuple[str, ...], text: str) -> Optional[str]:
    for pattern in patterns:
        match = re.search(pattern, text)
        if match:
            value = _clean_phrase(match.group("x"))
            if value:
                return value
    return None


# ============================================
# Slot extractors
# ============================================

_NUMBER_NO_ARTICLE = NUMBER_PATTERN.replace("|an?)", ")")
_ORDINAL_WORDS = "|".join(ORDINALS)
_DURATION_UNITS = r"(?:seconds?|secs?|minutes?|mins?|hours?|hrs?)"
_DURATION_PHRASE = (
    rf"(?:(?:{NUMBER_PATTERN})(?:\s+and\s+a\s+half)?\s*{_DURATION_UNITS}(?:\s+and\s+a\s+half)?"
    r"|half\s+(?:an?\s+)?(?:hour|minute)|(?:a\s+)?quarter\s+(?:of\s+)?an?\s+hour)"
)

_LABEL_STOPWORDS = {
    "a", "an", "the", "my", "set", "start", "new", "another", "this", "that",
    "cancel", "stop", "clear", "check", "delete", "remove", "kill", "all",
    "every", "timer", "timers", "one", "each", "your", "of", "on", "for",
    "it", "me", "up", "kitchen", "cooking", "second", "minute", "hour",
    "is", "much", "long", "left", "how", "what", "off", "turn", "reset",
}


def extract_label(text: str) -> Optional[str]:
    """Find a timer label like "pasta" in "set a pasta timer for 8 minutes"."""
    remainder = strip_duration(text)
    patterns = (
        r"\b(?:called|named|labell?ed)\s+(?:the\s+)?(?P<label>[a-z]+(?:\s+[a-z]+)?)",
        r"\b(?:timer|alarm|reminder)\s+for\s+(?:the|my)\s+(?P<label>[a-z]+)",
        r"\bfor\s+(?:the|my)\s+(?P<label>[a-z]+)",
        r"\b(?P<label>[a-z]+)\s+timers?\b",
    )
    for pattern in patterns:
        for match in re.finditer(pattern, remainder):
            label = match.group("label").strip()
            first = label.split()[0]
            if first in _LABEL_STOPWORDS or first in ORDINALS or parse_number(first) is not None:
                continue
            return label
    return None


def _extract_step(text: str, ctx: ClassifierContext) -> dict:
    if re.search(r"\b(?:last|final)\s+step\b", text):
        return {"index": "last"}
    if re.search(r"\b(?:beginning|start over|first step)\b", text):
        return {"index": 0}

    match = re.search(rf"\b(?P<n>{_ORDINAL_WORDS}|\d+(?:st|nd|rd|th))\s+step\b", text)
    if match:
        return {"index": parse_ordinal(match.group("n")) - 1}

    match = re.search(rf"\b(?:step|number|to)\s+(?:number\s+)?(?P<n>{_NUMBER_NO_ARTICLE})\b", text)
    if match:
        value = parse_number(match.group("n"))
        if value is not None and value == int(value):
            return {"index": int(value) - 1}
    return {}


def _extract_start_timer(text: str, ctx: ClassifierContext) -> dict:
    slots = {}
    duration = parse_duration(text)
    if duration:
        slots["duration"] = duration
    label = extract_label(text)
    if label:
        slots["label"] = label
    return slots


def _extract_timer_ref(text: str, ctx: ClassifierContext) -> dict:
    if re.search(r"\b(?:all|every|both)\b", text) or re.search(r"\btimers\b", text):
        return {"all": True}
    label = extract_label(text)
    return {"label": label} if label else {}


def _extract_ingredient(text: str, ctx: ClassifierContext) -> dict:
    ingredient = _first_group(
        (
            r"\b(?:instead\s+of|in\s+place\s+of)\s+(?P<x>.+)",
            r"\b(?:substitutes?|substitution|replacements?|alternatives?|swaps?|subs?)\s+(?:for|to)\s+(?P<x>.+)",
            r"\b(?:substitute|replace|swap)\s+(?!for\b)(?P<x>.+?)(?:\s+with\b.*)?$",
            r"\b(?:don't|do not|didn't buy)\s+have\s+(?:any\s+)?(?P<x>.+)",
            r"\b(?:out|run out|ran out)\s+of\s+(?P<x>.+)",
        ),
        text,
    )
    return {"ingredient": ingredient} if ingredient else {}


def _extract_term(text: str, ctx: ClassifierContext) -> dict:
    term = _first_group(
        (
            r"\bwhat\s+(?:does|do)\s+(?:it\s+mean\s+to\s+)?(?P<x>.+?)(?:\s+mean)?$",
            r"\bwhat(?:'s|\s+is)\s+(?:a\s+|an\s+)?(?P<x>.+)",
            r"\bhow\s+(?:do|should|would)\s+(?:i|you|we)\s+(?P<x>.+)",
            r"\bhow\s+to\s+(?P<x>.+)",
            r"\b(?:explain|define)\s+(?:what\s+)?(?P<x>.+?)(?:\s+(?:means|is))?$",
            r"\b(?:meaning|definition)\s+of\s+(?P<x>.+)",
        ),
        text,
    )
    return {"term": term} if term else {}


def _extract_scale(text: str, ctx: ClassifierContext) -> dict:
    keywords = (
        (r"\bquadruple\b", 4.0),
        (r"\btriple\b", 3.0),
        (r"\bdouble\b", 2.0),
        (r"\b(?:halve|half\s+(?:the\s+)?(?:recipe|batch|it))\b", 0.5),
        (r"\b(?:original|normal|regular)\s+(?:size|amounts?|recipe|servings)\b|\breset\b", 1.0),
    )
    for pattern, factor in keywords:
        if re.search(pattern, text):
            return {"factor": factor}

    match = re.search(
        rf"\b(?P<n>{_NUMBER_NO_ARTICLE})\s+(?:servings?|people|portions|persons|guests)\b", text
    )
    if match:
        servings = parse_number(match.group("n"))
        if servings:
            return {"servings": int(servings)}

    match = re.search(
        rf"(?:\b(?P<a>{_NUMBER_NO_ARTICLE})\s*(?:x|times)\b|\b(?:by|x)\s*(?P<b>{_NUMBER_NO_ARTICLE})\b)", text
    )
    if match:
        factor = parse_number(match.group("a") or match.group("b"))
        if factor is not None:
            return {"factor": factor}
    return {}


_DIETARY_TAGS = (
    "vegan", "vegetarian", "pescatarian", "kosher", "halal", "keto", "paleo",
)
_SKILL_WORDS = {
    "beginner": SkillLevel.BEGINNER,
    "novice": SkillLevel.BEGINNER,
    "new to cooking": SkillLevel.BEGINNER,
    "first time": SkillLevel.BEGINNER,
    "intermediate": SkillLevel.INTERMEDIATE,
    "home cook": SkillLevel.INTERMEDIATE,
    "advanced": SkillLevel.ADVANCED,
    "experienced": SkillLevel.ADVANCED,
    "expert": SkillLevel.ADVANCED,
    "professional": SkillLevel.ADVANCED,
}


def _extract_constraint(text: str, ctx: ClassifierContext) -> dict:
    allergen = _first_group(
        (
            r"\ballergic\s+to\s+(?P<x>.+)",
            r"\b(?P<x>[a-z]+(?:\s+[a-z]+)?)\s+allerg(?:y|ies)\b",
            r"\ballerg(?:y|ies)\s+to\s+(?P<x>.+)",
        ),
        text,
    )
    if allergen:
        allergen = re.sub(r"^(?:i\s+have\s+(?:an?\s+)?|i'm\s+|have\s+(?:an?\s+)?)", "", allergen)
        return {"kind": "allergy", "value": allergen}

    for tag in _DIETARY_TAGS:
        if re.search(rf"\b{tag}\b", text):
            return {"kind": "dietary", "value": tag}
    match = re.search(r"\b(?P<x>[a-z]+)[- ]free\b", text)
    if match and match.group("x") not in ("hands", "stress"):
        return {"kind": "dietary", "value": f"{match.group('x')}-free"}

    if re.search(r"\b(?:only have|have only|got|time budget|need to (?:be done|finish) in)\b", text):
        duration = parse_duration(text)
        if duration:
            return {"kind": "time_budget", "value": max(1, round(duration / 60))}

    for phrase, level in _SKILL_WORDS.items():
        if re.search(rf"\b{phrase}\b", text):
            return {"kind": "skill_level", "value": level.value}
    return {}


def _extract_ingredient_filter(text: str, ctx: ClassifierContext) -> dict:
    match = re.search(
        r"\bhow\s+(?:much|many)\s+(?P<x>.+?)\s+(?:do|will|should|does)\s+(?:i|we|it|the recipe)\b", text
    )
    if match:
        ingredient = _clean_phrase(match.group("x"))
        if ingredient:
            return {"ingredient": ingredient}
    return {}


# ============================================
# Rules
# ============================================

RULES: tuple[Rule, ...] = (
    # 1. Navigation
    Rule(
        IntentKind.NAVIGATE_TO_STEP, "navigation",
        (
            rf"step\s+(?:number\s+)?{_NUMBER_NO_ARTICLE}",
            rf"(?:{_ORDINAL_WORDS}|\d+(?:st|nd|rd|th)|last|final)\s+step",
            rf"(?:go|jump|skip|move|take me)\s+(?:back\s+)?to\s+(?:step\s+)?(?:number\s+)?{_NUMBER_NO_ARTICLE}",
            r"(?:go|jump|skip|move)\s+(?:back\s+)?to\s+(?:a\s+|the\s+)?step",
            r"start over|back to the beginning",
        ),
        _extract_step,
    ),
    Rule(
        IntentKind.PREVIEW_NEXT, "navigation",
        (
            r"what(?:'s| is)\s+(?:the\s+)?next",
            r"what comes (?:next|after)",
            r"what(?:'s| is)\s+after",
            r"upcoming",
            r"coming up",
        ),
    ),
    Rule(
        IntentKind.NAVIGATE_NEXT, "navigation",
        (
            r"next",
            r"continue",
            r"go ahead",
            r"move on",
            r"keep going",
            r"(?:i'm|i am|all|we're) done(?! (?:cooking|with (?:the|this) recipe))",
            r"^done$",
            r"finished (?:this|that) step",
        ),
    ),
    Rule(
        IntentKind.NAVIGATE_PREVIOUS, "navigation",
        (
            r"previous",
            r"go back",
            r"back up",
            r"(?<!i'm )(?<!i am )(?<!we're )(?<!we are )back",
            r"step before",
            r"before that",
        ),
    ),
    Rule(
        IntentKind.REPEAT_STEP, "navigation",
        (
            r"repeat",
            r"again",
            r"say that",
            r"come again",
            r"pardon",
            r"what was that",
            r"current step",
            r"where (?:am i|are we|was i)",
            r"what step",
        ),
    ),
    # 2. Timers
    Rule(
        IntentKind.CANCEL_TIMER, "timers",
        (r"(?:cancel|stop|clear|delete|remove|kill|turn off|reset)\b.*\btimers?",),
        _extract_timer_ref,
    ),
    Rule(
        IntentKind.CHECK_TIMER, "timers",
        (
            r"(?:how|what)\b.*\btimers?",
            r"timers?\b.*\b(?:left|remaining|status)",
            r"check\b.*\btimers?",
            r"how much time(?:\s+is)?\s+left",
            r"time left on",
            r"is (?:the|my)\b.*\btimer\b.*\bdone",
        ),
        _extract_timer_ref,
    ),
    Rule(
        IntentKind.START_TIMER, "timers",
        (
            r"timers?",
            r"alarm",
            r"remind me",
            r"countdown",
            r"(?:set|make)\s+(?:it|one|that)\s+(?:for|to)",
            rf"^(?:(?:make|set|do)\s+it\s+)?(?:for\s+)?{_DURATION_PHRASE}(?:\s+(?:and\s+)?{_DURATION_PHRASE})*(?:\s+please)?$",
        ),
        _extract_start_timer,
    ),
    # 3. Session control
    Rule(
        IntentKind.PAUSE_SESSION, "session",
        (r"pause", r"hold on", r"hold up", r"wait", r"take a break", r"one moment"),
    ),
    Rule(
        IntentKind.RESUME_SESSION, "session",
        (
            r"resume",
            r"unpause",
            r"(?:i'm|i am|we're|we are) (?:ready|back)",
            r"pick up where",
        ),
    ),
    Rule(
        IntentKind.END_SESSION, "session",
        (
            r"(?:stop|end|finish|quit|exit|done)\s+(?:the\s+)?(?:cooking|session|recipe)",
            r"(?:i'm|i am|we're|we are|all) finished",
            r"done cooking",
        ),
    ),
    # 4. Knowledge
    Rule(
        IntentKind.SUBSTITUTE, "knowledge",
        (
            r"substitutes?",
            r"substitution",
            r"instead of",
            r"in place of",
            r"replacements?",
            r"replace",
            r"swap",
            r"alternatives?",
            r"(?:don't|do not)\s+have",
            r"(?:out|run out|ran out)\s+of",
        ),
        _extract_ingredient,
    ),
    Rule(
        IntentKind.EXPLAIN_TECHNIQUE, "knowledge",
        (
            r"what\s+(?:does|do)\b.*\bmean",
            r"what(?:'s|\s+is)\s+(?:a\s+|an\s+)?(?!(?:the|my|this|that|it|left|up|in)\b)[a-zé-]+(?:\s+[a-zé-]+)?$",
            r"explain",
            r"define",
            r"definition",
            r"meaning of",
            r"how\s+(?:do|should|would)\s+(?:i|you|we)",
            r"how to",
        ),
        _extract_term,
    ),
    # 5. Scaling
    Rule(
        IntentKind.SCALE_RECIPE, "scaling",
        (
            r"double",
            r"triple",
            r"quadruple",
            r"halve",
            r"half\s+(?:the\s+)?(?:recipe|batch|it)",
            r"scale",
            r"servings?",
            rf"(?:make|cook|serve|feed|for)\s+{_NUMBER_NO_ARTICLE}\s+(?:people|portions|persons|guests)",
            r"(?:original|normal|regular)\s+(?:size|amounts?|recipe|servings)",
        ),
        _extract_scale,
    ),
    # 6. Constraints
    Rule(
        IntentKind.SET_CONSTRAINT, "constraints",
        (
            r"allergic",
            r"allerg(?:y|ies)",
            r"(?:i'm|i am|we're|we are|i eat|keep it)\s+(?:a\s+)?(?:" + "|".join(_DIETARY_TAGS) + ")",
            r"[a-z]+[- ]free",
            r"only have",
            r"time budget",
            r"(?:i'm|i am)\s+(?:a\s+|an\s+)?(?:beginner|novice|intermediate|advanced|experienced|expert|professional|home cook)",
            r"new to cooking",
            r"first time (?:cooking|making)",
        ),
        _extract_constraint,
    ),
    # 7. Information
    Rule(
        IntentKind.LIST_INGREDIENTS, "information",
        (
            r"ingredients?",
            r"what (?:do|will) (?:i|we) need",
            r"shopping list",
            r"how (?:much|many)\b.*\b(?:need|use|add)",
        ),
        _extract_ingredient_filter,
    ),
    Rule(
        IntentKind.HOW_LONG_LEFT, "information",
        (
            r"how much longer",
            r"how long (?:left|until|till|is left|do we have)",
            r"time remaining",
            r"how many steps",
            r"steps left",
            r"almost done",
        ),
    ),
    Rule(
        IntentKind.HELP, "information",
        (r"help", r"what can you do", r"what can i say", r"commands", r"options"),
    ),
)


# ============================================
# Classifier
# ============================================

class IntentClassifier:
    """Ordered rule evaluation over a normalized utterance."""

    def __init__(self, rules: tuple[Rule, ...] = RULES):
        self.rules = rules

    def classify(self, utterance: str, context: Optional[ClassifierContext] = None) -> Intent:
        context = context or ClassifierContext()
        text = normalize_utterance(utterance)
        if not text:
            return unknown(utterance or "")

        for rule in self.rules:
            if rule.matches(text):
                slots = rule.extract(text, context)
                intent = Intent(kind=rule.kind, slots=slots, text=utterance)
                logger.debug(f"Classified {utterance!r} as {intent} ({rule.category} rule)")
                return intent

        follow_up = self._resolve_follow_up(text, utterance, context)
        if follow_up is not None:
            logger.debug(f"Resolved follow-up {utterance!r} as {follow_up}")
            return follow_up

        logger.debug(f"No rule matched {utterance!r}")
        return unknown(utterance)

    def _resolve_follow_up(
        self, text: str, utterance: str, context: ClassifierContext
    ) -> Optional[Intent]:
        """Complete the previous intent when it was waiting for a slot."""
        previous = context.last_intent
        missing = awaiting_slot(previous)
        if missing is None:
            return None

        slots = dict(previous.slots)
        if missing == "duration":
            duration = parse_duration(text)
            if duration is None:
                number = find_number(text) if re.fullmatch(rf"(?:for\s+)?{_NUMBER_NO_ARTICLE}", text) else None
                duration = number * 60 if number else None  # Bare numbers are minutes
            if not duration:
                return None
            slots["duration"] = duration

        elif missing == "index":
            ordinal = parse_ordinal(text)
            number = ordinal if ordinal is not None else find_number(text)
            if number is None or number != int(number):
                return None
            slots["index"] = int(number) - 1

        else:
            value = _clean_phrase(text)
            if not value or len(value.split()) > 4:
                return None
            slots[missing] = value

        return Intent(kind=previous.kind, slots=slots, text=utterance)


def classify(utterance: str, context: Optional[ClassifierContext] = None) -> Intent:
    """Classify with the default rule set."""
    return _default_classifier.classify(utterance, context)


_default_classifier = IntentClassifier()
