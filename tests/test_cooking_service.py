import pytest

from recipe_assistant.exceptions import (
    InvalidScaleError,
    NoActiveSessionError,
    PersistenceError,
    RecipeNotFoundError,
    StepOutOfRangeError,
)
from recipe_assistant.models.repositories import InMemoryWorkstateRepository
from recipe_assistant.models.workstate import CookingConstraints, SessionMode
from recipe_assistant.services.cooking_service import PERSISTENCE_WARNING, CookingService

MEMBER = "member-1"


class FailingStore(InMemoryWorkstateRepository):
    """Store whose writes always fail."""

    def save(self, key, workstate):
        raise PersistenceError("disk full")

    def clear(self, key):
        raise PersistenceError("disk full")


def test_start_session_persists(service, store):
    outcome = service.start_session(MEMBER, 1)
    assert outcome.persisted
    assert outcome.text.startswith("Let's make Pancakes! There are 4 steps. Step 1:")
    assert store.load(MEMBER).active_recipe_id == 1


def test_start_unknown_recipe(service):
    with pytest.raises(RecipeNotFoundError):
        service.start_session(MEMBER, 99)


def test_every_utterance_is_written_through(service, store):
    service.start_session(MEMBER, 1)
    service.handle_utterance(MEMBER, "next")
    assert store.load(MEMBER).step_index == 1
    service.handle_utterance(MEMBER, "set a pasta timer for 8 minutes")
    assert store.load(MEMBER).timers[0].label == "pasta"


def test_session_resumes_from_store(engine, service, store):
    service.start_session(MEMBER, 1, CookingConstraints(allergies=frozenset({"peanuts"})))
    service.handle_utterance(MEMBER, "go to step 3")

    restarted = CookingService(engine, store)
    state = restarted.get_state(MEMBER).workstate
    assert state.step_index == 2
    assert state.constraints.allergies == {"peanuts"}


def test_follow_up_survives_restart(engine, service, store):
    service.start_session(MEMBER, 1)
    service.handle_utterance(MEMBER, "start a timer")

    restarted = CookingService(engine, store)
    outcome = restarted.handle_utterance(MEMBER, "10")
    assert outcome.timer_id is not None
    assert outcome.workstate.timers[0].duration == 600


def test_unknown_utterance_is_not_saved(service, store):
    service.start_session(MEMBER, 1)
    saved = store.load(MEMBER).to_json()
    outcome = service.handle_utterance(MEMBER, "blah blah")
    assert outcome.reply.error == "unclassified"
    assert store.load(MEMBER).to_json() == saved


def test_utterance_without_session(service):
    outcome = service.handle_utterance(MEMBER, "set timer for 5 minutes")
    assert outcome.reply.error == "no_active_session"
    assert outcome.workstate.timers == []


def test_end_session_clears_store(service, store):
    service.start_session(MEMBER, 1)
    outcome = service.end_session(MEMBER)
    assert outcome.workstate.mode == SessionMode.IDLE
    assert MEMBER not in store


def test_end_session_by_voice_clears_store(service, store):
    service.start_session(MEMBER, 1)
    service.handle_utterance(MEMBER, "I'm done cooking")
    assert MEMBER not in store


def test_explicit_navigation(service):
    service.start_session(MEMBER, 2)
    outcome = service.next_step(MEMBER)
    assert outcome.completed
    assert outcome.workstate.completed_steps == [0]

    service.start_session(MEMBER, 1)
    assert service.go_to_step(MEMBER, 2).workstate.step_index == 2
    assert service.previous_step(MEMBER).workstate.step_index == 1
    with pytest.raises(StepOutOfRangeError):
        service.go_to_step(MEMBER, 10)


def test_explicit_commands_need_a_session(service):
    with pytest.raises(NoActiveSessionError):
        service.start_timer(MEMBER, 60)
    with pytest.raises(NoActiveSessionError):
        service.next_step(MEMBER)


def test_tick_expires_and_persists(service, store, clock):
    service.start_session(MEMBER, 1)
    timer_id = service.start_timer(MEMBER, 60, "eggs").timer_id
    clock.advance(30)
    assert service.tick(MEMBER).expired == []
    clock.advance(31)
    outcome = service.tick(MEMBER)
    assert [t.id for t in outcome.expired] == [timer_id]
    assert store.load(MEMBER).timers[0].state.value == "expired"


def test_tick_when_idle_is_a_no_op(service):
    assert service.tick(MEMBER).expired == []


def test_scale_rejects_non_positive(service):
    service.start_session(MEMBER, 1)
    service.scale(MEMBER, 2)
    with pytest.raises(InvalidScaleError):
        service.scale(MEMBER, 0)
    assert service.get_state(MEMBER).workstate.scale_factor == 2


def test_pause_resume_and_constraints(service):
    service.start_session(MEMBER, 1)
    assert service.pause(MEMBER).workstate.mode == SessionMode.PAUSED
    assert service.resume(MEMBER).workstate.mode == SessionMode.COOKING
    outcome = service.set_constraints(MEMBER, CookingConstraints(time_budget_minutes=20))
    assert outcome.workstate.constraints.time_budget_minutes == 20


def test_persistence_failure_warns_but_session_continues(engine):
    service = CookingService(engine, FailingStore())
    outcome = service.start_session(MEMBER, 1)
    assert not outcome.persisted
    assert outcome.warning == PERSISTENCE_WARNING

    outcome = service.handle_utterance(MEMBER, "next")
    assert not outcome.persisted
    assert outcome.workstate.step_index == 1
    assert outcome.text.startswith("Step 2:")


def test_corrupt_saved_session_starts_fresh(engine, store):
    store._payloads[MEMBER] = "{not json"
    service = CookingService(engine, store)
    outcome = service.get_state(MEMBER)
    assert outcome.workstate.mode == SessionMode.IDLE
    assert outcome.warning is not None


def test_idle_lookups_are_not_cached(service):
    for i in range(50):
        service.get_state(f"reader-{i}")
        service.handle_utterance(f"talker-{i}", "what")
        service.tick(f"ticker-{i}")
    assert service._sessions == {}

    service.start_session(MEMBER, 1)
    assert list(service._sessions) == [MEMBER]
    service.end_session(MEMBER)
    assert service._sessions == {}
