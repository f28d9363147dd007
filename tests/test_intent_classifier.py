import pytest

from recipe_assistant.models.intents import Intent, IntentKind
from recipe_assistant.services.assistant.classifier import (
    RULES,
    ClassifierContext,
    IntentClassifier,
    classify,
    normalize_utterance,
)


@pytest.mark.parametrize(
    "utterance, kind",
    [
        ("next", IntentKind.NAVIGATE_NEXT),
        ("Next step please", IntentKind.NAVIGATE_NEXT),
        ("ok I'm done", IntentKind.NAVIGATE_NEXT),
        ("go back", IntentKind.NAVIGATE_PREVIOUS),
        ("previous step", IntentKind.NAVIGATE_PREVIOUS),
        ("repeat that", IntentKind.REPEAT_STEP),
        ("what was that", IntentKind.REPEAT_STEP),
        ("whats next", IntentKind.PREVIEW_NEXT),
        ("pause", IntentKind.PAUSE_SESSION),
        ("resume", IntentKind.RESUME_SESSION),
        ("I'm back", IntentKind.RESUME_SESSION),
        ("back", IntentKind.NAVIGATE_PREVIOUS),
        ("I'm done cooking", IntentKind.END_SESSION),
        ("what ingredients do I need", IntentKind.LIST_INGREDIENTS),
        ("how much longer", IntentKind.HOW_LONG_LEFT),
        ("help", IntentKind.HELP),
    ],
)
def test_kind(utterance, kind):
    assert classify(utterance).kind == kind


# ============================================
# Navigation
# ============================================

@pytest.mark.parametrize(
    "utterance, index",
    [
        ("go to step 3", 2),
        ("Go to step three.", 2),
        ("jump to step five", 4),
        ("go to the third step", 2),
        ("take me to step 1", 0),
        ("go to the last step", "last"),
        ("go to step zero", -1),
        ("start over", 0),
    ],
)
def test_navigate_to_step_index_is_zero_based(utterance, index):
    intent = classify(utterance)
    assert intent.kind == IntentKind.NAVIGATE_TO_STEP
    assert intent.slot("index") == index


def test_navigation_outranks_timer():
    intent = classify("next, set a timer for 2 minutes")
    assert intent.kind == IntentKind.NAVIGATE_NEXT


def test_triggers_are_whole_words():
    assert classify("my nextdoor neighbor").kind == IntentKind.UNKNOWN


# ============================================
# Timers
# ============================================

def test_start_timer_duration():
    intent = classify("set a timer for 5 minutes")
    assert intent.kind == IntentKind.START_TIMER
    assert intent.slot("duration") == 300
    assert not intent.has_slot("label")


def test_start_timer_with_label():
    intent = classify("set a pasta timer for 8 minutes")
    assert intent.slots == {"duration": 480, "label": "pasta"}


def test_start_timer_without_duration():
    intent = classify("start a timer")
    assert intent.kind == IntentKind.START_TIMER
    assert intent.slots == {}


def test_check_timer_label():
    intent = classify("how much time is left on the pasta timer")
    assert intent.kind == IntentKind.CHECK_TIMER
    assert intent.slot("label") == "pasta"


def test_cancel_all_timers():
    intent = classify("cancel all timers")
    assert intent.kind == IntentKind.CANCEL_TIMER
    assert intent.slot("all") is True


def test_cancel_labelled_timer_is_not_end_session():
    intent = classify("stop the sauce timer")
    assert intent.kind == IntentKind.CANCEL_TIMER
    assert intent.slot("label") == "sauce"


# ============================================
# Knowledge, scaling, constraints
# ============================================

def test_substitute_for_eggs():
    intent = classify("substitute for eggs")
    assert intent.kind == IntentKind.SUBSTITUTE
    assert intent.slot("ingredient") == "eggs"


def test_substitute_instead_of():
    intent = classify("what can I use instead of butter?")
    assert intent.kind == IntentKind.SUBSTITUTE
    assert intent.slot("ingredient") == "butter"


def test_explain_technique():
    intent = classify("What does sauté mean?")
    assert intent.kind == IntentKind.EXPLAIN_TECHNIQUE
    assert intent.slot("term") == "sauté"


def test_double_the_recipe():
    intent = classify("double the recipe")
    assert intent.kind == IntentKind.SCALE_RECIPE
    assert intent.slot("factor") == 2.0


def test_scale_to_servings():
    intent = classify("make enough for 8 people")
    assert intent.kind == IntentKind.SCALE_RECIPE
    assert intent.slot("servings") == 8


def test_allergy_constraint():
    intent = classify("I'm allergic to peanuts")
    assert intent.kind == IntentKind.SET_CONSTRAINT
    assert intent.slots == {"kind": "allergy", "value": "peanuts"}


def test_time_budget_is_a_constraint_not_a_timer():
    intent = classify("I only have 30 minutes")
    assert intent.kind == IntentKind.SET_CONSTRAINT
    assert intent.slots == {"kind": "time_budget", "value": 30}


def test_skill_level_constraint():
    intent = classify("I'm a beginner")
    assert intent.slots == {"kind": "skill_level", "value": "beginner"}


def test_ingredient_quantity_question():
    intent = classify("how much flour do I need")
    assert intent.kind == IntentKind.LIST_INGREDIENTS
    assert intent.slot("ingredient") == "flour"


# ============================================
# Unknown, purity, follow-ups
# ============================================

def test_unknown_keeps_original_text():
    intent = classify("Blah blah blah")
    assert intent.kind == IntentKind.UNKNOWN
    assert intent.text == "Blah blah blah"
    assert classify("").kind == IntentKind.UNKNOWN


def test_same_input_same_intent():
    context = ClassifierContext(step_index=1, step_count=4)
    classifier = IntentClassifier()
    for utterance in ("go to step 3", "set a pasta timer for 8 minutes", "mumble"):
        assert classifier.classify(utterance, context) == classifier.classify(utterance, context)


def test_bare_number_completes_timer_as_minutes():
    context = ClassifierContext(last_intent=Intent(kind=IntentKind.START_TIMER))
    intent = classify("10", context)
    assert intent.kind == IntentKind.START_TIMER
    assert intent.slot("duration") == 600


def test_bare_duration_starts_timer():
    previous = Intent(kind=IntentKind.START_TIMER, slots={"label": "rice"})
    intent = classify("ten minutes", ClassifierContext(last_intent=previous))
    assert intent.kind == IntentKind.START_TIMER
    assert intent.slot("duration") == 600


def test_bare_word_completes_substitution():
    context = ClassifierContext(last_intent=Intent(kind=IntentKind.SUBSTITUTE))
    intent = classify("butter", context)
    assert intent.kind == IntentKind.SUBSTITUTE
    assert intent.slot("ingredient") == "butter"


def test_bare_number_completes_step_jump():
    context = ClassifierContext(last_intent=Intent(kind=IntentKind.NAVIGATE_TO_STEP))
    assert classify("4", context).slots == {"index": 3}


def test_no_follow_up_when_previous_intent_was_complete():
    previous = Intent(kind=IntentKind.START_TIMER, slots={"duration": 300})
    assert classify("10", ClassifierContext(last_intent=previous)).kind == IntentKind.UNKNOWN


def test_rule_categories_in_priority_order():
    order = ["navigation", "timers", "session", "knowledge", "scaling", "constraints", "information"]
    seen = []
    for rule in RULES:
        if rule.category not in seen:
            seen.append(rule.category)
    assert seen == order


def test_normalize_utterance():
    assert normalize_utterance("  Whats NEXT?! ") == "what's next"
    assert normalize_utterance("I’m done.") == "i'm done"
