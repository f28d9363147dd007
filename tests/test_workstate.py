from datetime import timedelta

import pytest

from recipe_assistant.exceptions import (
    InvalidScaleError,
    NoActiveSessionError,
    StepOutOfRangeError,
    TimerNotFoundError,
)
from recipe_assistant.models.intents import Intent, IntentKind
from recipe_assistant.models.workstate import (
    CookingConstraints,
    CookingWorkstate,
    SessionMode,
    SkillLevel,
    TimerState,
)


# ============================================
# Session lifecycle
# ============================================

def test_start_session(workstate, clock):
    assert workstate.mode == SessionMode.COOKING
    assert workstate.active_recipe_id == 1
    assert workstate.step_index == 0
    assert workstate.step_count == 4
    assert workstate.scale_factor == 1.0
    assert workstate.started_at == clock()


def test_idle_rejects_everything_but_start_and_end(clock):
    ws = CookingWorkstate()
    for operation in (
        lambda: ws.advance_step(clock()),
        lambda: ws.previous_step(clock()),
        lambda: ws.go_to_step(0, clock()),
        lambda: ws.start_timer(300, None, clock()),
        lambda: ws.cancel_all_timers(clock()),
        lambda: ws.tick(clock()),
        lambda: ws.apply_scale(2, clock()),
        lambda: ws.pause(clock()),
        lambda: ws.resume(clock()),
    ):
        with pytest.raises(NoActiveSessionError):
            operation()
    assert ws.timers == []
    ws.end_session(clock())
    assert ws.mode == SessionMode.IDLE


def test_end_session_resets(workstate, clock):
    workstate.start_timer(60, "eggs", clock())
    workstate.apply_scale(2, clock())
    workstate.end_session(clock())
    assert workstate.mode == SessionMode.IDLE
    assert workstate.active_recipe_id is None
    assert workstate.timers == []
    assert workstate.scale_factor == 1.0
    assert not workstate.has_active_session


def test_pause_and_resume_modes(workstate, clock):
    workstate.pause(clock())
    assert workstate.mode == SessionMode.PAUSED
    assert workstate.has_active_session
    workstate.resume(clock())
    assert workstate.mode == SessionMode.COOKING


def test_every_mutation_stamps_updated_at(workstate, clock):
    clock.advance(5)
    workstate.advance_step(clock())
    assert workstate.updated_at == clock()
    clock.advance(5)
    workstate.start_timer(60, None, clock())
    assert workstate.updated_at == clock()


# ============================================
# Navigation
# ============================================

@pytest.mark.parametrize("index", [0, 1, 2, 3])
def test_go_to_step_sets_exact_index(workstate, clock, index):
    assert workstate.go_to_step(index, clock()) == index
    assert workstate.step_index == index


@pytest.mark.parametrize("index", [-1, 4, 100])
def test_go_to_step_out_of_range_leaves_index(workstate, clock, index):
    workstate.go_to_step(1, clock())
    with pytest.raises(StepOutOfRangeError):
        workstate.go_to_step(index, clock())
    assert workstate.step_index == 1


def test_advance_at_last_step_is_a_completion_condition(workstate, clock):
    workstate.go_to_step(3, clock())
    with pytest.raises(StepOutOfRangeError) as exc:
        workstate.advance_step(clock())
    assert exc.value.at_end
    assert workstate.step_index == 3
    assert 3 in workstate.completed_steps


def test_advance_marks_completed(workstate, clock):
    workstate.advance_step(clock())
    workstate.advance_step(clock())
    assert workstate.step_index == 2
    assert workstate.completed_steps == [0, 1]


def test_previous_at_first_step(workstate, clock):
    with pytest.raises(StepOutOfRangeError) as exc:
        workstate.previous_step(clock())
    assert not exc.value.at_end
    assert workstate.step_index == 0


# ============================================
# Timers
# ============================================

def test_timer_remaining_is_computed_from_start(workstate, clock):
    timer_id = workstate.start_timer(300, "pasta", clock())
    for i in range(25):
        workstate.go_to_step(i % 4, clock())
    timer = workstate.find_timer("pasta")
    assert timer.id == timer_id
    assert timer.remaining(clock()) == pytest.approx(300)

    clock.advance(120)
    assert timer.remaining(clock()) == pytest.approx(180)


def test_same_label_replaces_timer(workstate, clock):
    first = workstate.start_timer(300, "Pasta", clock())
    workstate.start_timer(60, "sauce", clock())
    second = workstate.start_timer(480, "pasta", clock())
    assert first != second
    assert [t.label for t in workstate.timers] == ["sauce", "pasta"]
    assert workstate.find_timer("PASTA").duration == 480


def test_default_label_names_the_step(workstate, clock):
    workstate.go_to_step(2, clock())
    workstate.start_timer(180, None, clock())
    assert workstate.timers[0].label == "Step 3"
    assert workstate.timers[0].step_index == 2


def test_tick_expires_only_due_timers(workstate, clock):
    workstate.start_timer(60, "short", clock())
    workstate.start_timer(600, "long", clock())
    clock.advance(61)
    expired = workstate.tick(clock())
    assert [t.label for t in expired] == ["short"]
    assert workstate.find_timer("short") is None
    assert workstate.find_timer("long").state == TimerState.RUNNING
    assert workstate.tick(clock()) == []


def test_tick_after_suspension(workstate, clock):
    workstate.start_timer(60, None, clock())
    clock.advance(timedelta(hours=3).total_seconds())
    assert len(workstate.tick(clock())) == 1
    assert workstate.timers[0].remaining(clock()) == 0


def test_pause_freezes_timers(workstate, clock):
    workstate.start_timer(300, "pasta", clock())
    clock.advance(100)
    workstate.pause(clock())
    clock.advance(1000)
    timer = workstate.find_timer("pasta")
    assert timer.state == TimerState.PAUSED
    assert timer.remaining(clock()) == pytest.approx(200)
    assert workstate.tick(clock()) == []

    workstate.resume(clock())
    assert timer.remaining(clock()) == pytest.approx(200)
    clock.advance(50)
    assert timer.remaining(clock()) == pytest.approx(150)


def test_cancel_timer(workstate, clock):
    timer_id = workstate.start_timer(300, "pasta", clock())
    cancelled = workstate.cancel_timer(timer_id, clock())
    assert cancelled.label == "pasta"
    assert workstate.timers == []
    with pytest.raises(TimerNotFoundError):
        workstate.cancel_timer(timer_id, clock())


def test_cancel_all_timers(workstate, clock):
    workstate.start_timer(300, "a", clock())
    workstate.start_timer(300, "b", clock())
    assert workstate.cancel_all_timers(clock()) == 2
    assert workstate.active_timers == []


# ============================================
# Scaling and constraints
# ============================================

def test_scaling_is_not_cumulative(workstate, clock):
    workstate.apply_scale(2, clock())
    workstate.apply_scale(3, clock())
    assert workstate.scale_factor == 3
    assert workstate.scaled_quantity(2) == 6


@pytest.mark.parametrize("factor", [0, -1, -0.5])
def test_invalid_scale_leaves_state(workstate, clock, factor):
    workstate.apply_scale(2, clock())
    before = workstate.updated_at
    clock.advance(10)
    with pytest.raises(InvalidScaleError):
        workstate.apply_scale(factor, clock())
    assert workstate.scale_factor == 2
    assert workstate.updated_at == before


def test_scaled_quantity_to_taste():
    assert CookingWorkstate().scaled_quantity(None) is None


def test_constraints_are_replaced_not_edited(workstate, clock):
    original = workstate.constraints
    updated = original.with_allergy("Peanuts").with_skill_level(SkillLevel.BEGINNER)
    workstate.set_constraints(updated, clock())
    assert original.allergies == frozenset()
    assert workstate.constraints.allergies == {"peanuts"}
    assert workstate.constraints.allergen_in("2 tbsp peanut butter") == "peanuts"
    assert workstate.constraints.allergen_in("Crushed PEANUTS") == "peanuts"


def test_remember_intent(workstate, clock):
    intent = Intent(kind=IntentKind.START_TIMER)
    workstate.remember_intent(intent, clock())
    assert workstate.last_intent == intent


# ============================================
# Serialization
# ============================================

def test_json_round_trip_keeps_timers_and_constraints(workstate, clock):
    workstate.set_constraints(
        CookingConstraints(allergies=frozenset({"peanuts"}), time_budget_minutes=45),
        clock(),
    )
    workstate.start_timer(300, "pasta", clock())
    workstate.remember_intent(Intent(kind=IntentKind.SUBSTITUTE, slots={"ingredient": "eggs"}), clock())

    restored = CookingWorkstate.from_json(workstate.to_json())
    assert restored == workstate
    assert restored.timers[0].remaining(clock()) == pytest.approx(300)


def test_from_json_rejects_garbage():
    with pytest.raises(ValueError):
        CookingWorkstate.from_json('{"step_index": "lots"}')
