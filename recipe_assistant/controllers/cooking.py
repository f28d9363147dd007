"""
Cooking Controller

Manages cooking sessions, one per member. A session is driven two ways:

- utterances: POST /cooking/sessions/{member_id}/message runs the text
  through the assistant engine and returns its reply
- explicit commands: next/previous/go-to buttons, timer taps, scaling,
  pause/resume, for hosts that have their own UI controls

Both paths go through CookingService, which persists the workstate
after every change. Hosts poll POST .../tick to expire timers.

Domain errors (no active session, step out of range, invalid scale,
unknown recipe or timer) are mapped to status codes in main.py.
"""

from fastapi import APIRouter, Depends

from recipe_assistant.dependencies import get_cooking_service
from recipe_assistant.exceptions import RecipeNotFoundError
from recipe_assistant.models.schemas import (
    ConstraintsInput,
    ConstraintsResponse,
    CookingMessage,
    CookingResponse,
    CookingSessionStart,
    ScaleInput,
    TimerInput,
    TimerResponse,
    WorkstateResponse,
)
from recipe_assistant.services.cooking_service import CookingService, SessionOutcome

router = APIRouter(prefix="/cooking", tags=["cooking"])


def _state(member_id: str, outcome: SessionOutcome, service: CookingService) -> WorkstateResponse:
    """Build the API view of a workstate, resolving the current step text."""
    workstate = outcome.workstate
    now = service.engine.clock()

    recipe_name = None
    step_text = None
    if workstate.active_recipe_id is not None:
        try:
            recipe = service.recipes.get_recipe(workstate.active_recipe_id)
        except RecipeNotFoundError:
            recipe = None
        if recipe is not None:
            recipe_name = recipe.title
            step = recipe.step(workstate.step_index)
            step_text = step.text if step else None

    constraints = workstate.constraints
    return WorkstateResponse(
        member_id=member_id,
        mode=workstate.mode.value,
        active_recipe_id=workstate.active_recipe_id,
        recipe_name=recipe_name,
        step_index=workstate.step_index,
        step_count=workstate.step_count,
        step_text=step_text,
        completed_steps=list(workstate.completed_steps),
        timers=[
            TimerResponse(
                timer_id=t.id,
                label=t.label,
                duration_seconds=t.duration,
                remaining_seconds=t.remaining(now),
                state=t.state.value,
                step_index=t.step_index,
            )
            for t in workstate.timers
        ],
        scale_factor=workstate.scale_factor,
        constraints=ConstraintsResponse(
            dietary=sorted(constraints.dietary),
            allergies=sorted(constraints.allergies),
            time_budget_minutes=constraints.time_budget_minutes,
            skill_level=constraints.skill_level.value,
        ),
        last_intent=workstate.last_intent.kind.value if workstate.last_intent else None,
        started_at=workstate.started_at,
        updated_at=workstate.updated_at,
    )


def _response(member_id: str, outcome: SessionOutcome, service: CookingService) -> CookingResponse:
    reply = outcome.reply
    return CookingResponse(
        text=outcome.text,
        intent=reply.intent.kind.value if reply else None,
        slots=dict(reply.intent.slots) if reply else {},
        action=reply.action.kind.value if reply and reply.action else None,
        action_payload=dict(reply.action.payload) if reply and reply.action else {},
        error=reply.error if reply else None,
        completed=outcome.completed,
        timer_id=outcome.timer_id,
        expired_timers=[t.label for t in outcome.expired],
        persisted=outcome.persisted,
        warning=outcome.warning,
        state=_state(member_id, outcome, service),
    )


# ============================================
# Session lifecycle
# ============================================

@router.post("/sessions", response_model=CookingResponse, status_code=201)
def start_cooking_session(
    request: CookingSessionStart,
    service: CookingService = Depends(get_cooking_service)
):
    """
    Start cooking a recipe.

    Replaces any session the member already had. The reply text
    introduces the recipe and reads out step 1.
    """
    outcome = service.start_session(
        request.member_id, request.recipe_id, request.constraints.to_constraints()
    )
    return _response(request.member_id, outcome, service)


@router.get("/sessions/{member_id}", response_model=CookingResponse)
def get_session(member_id: str, service: CookingService = Depends(get_cooking_service)):
    """Current workstate, resumed from storage if the process restarted."""
    return _response(member_id, service.get_state(member_id), service)


@router.delete("/sessions/{member_id}", response_model=CookingResponse)
def end_session(member_id: str, service: CookingService = Depends(get_cooking_service)):
    """End the session and clear it from storage."""
    return _response(member_id, service.end_session(member_id), service)


@router.post("/sessions/{member_id}/pause", response_model=CookingResponse)
def pause_session(member_id: str, service: CookingService = Depends(get_cooking_service)):
    return _response(member_id, service.pause(member_id), service)


@router.post("/sessions/{member_id}/resume", response_model=CookingResponse)
def resume_session(member_id: str, service: CookingService = Depends(get_cooking_service)):
    return _response(member_id, service.resume(member_id), service)


# ============================================
# Utterances
# ============================================

@router.post("/sessions/{member_id}/message", response_model=CookingResponse)
def send_message(
    member_id: str,
    message: CookingMessage,
    service: CookingService = Depends(get_cooking_service)
):
    """
    Send a transcribed utterance and get the assistant's reply.

    Conditions like "no active session" come back as a normal reply
    with `error` set, since they are meant to be spoken to the cook.
    """
    return _response(member_id, service.handle_utterance(member_id, message.text), service)


# ============================================
# Explicit commands
# ============================================

@router.post("/sessions/{member_id}/steps/next", response_model=CookingResponse)
def next_step(member_id: str, service: CookingService = Depends(get_cooking_service)):
    """Advance one step. On the last step this reports completed=true."""
    return _response(member_id, service.next_step(member_id), service)


@router.post("/sessions/{member_id}/steps/previous", response_model=CookingResponse)
def previous_step(member_id: str, service: CookingService = Depends(get_cooking_service)):
    return _response(member_id, service.previous_step(member_id), service)


@router.post("/sessions/{member_id}/steps/{index}", response_model=CookingResponse)
def go_to_step(member_id: str, index: int, service: CookingService = Depends(get_cooking_service)):
    """Jump to a 0-based step index."""
    return _response(member_id, service.go_to_step(member_id, index), service)


@router.post("/sessions/{member_id}/timers", response_model=CookingResponse, status_code=201)
def start_timer(
    member_id: str,
    timer: TimerInput,
    service: CookingService = Depends(get_cooking_service)
):
    """Start a timer. A running timer with the same label is replaced."""
    return _response(member_id, service.start_timer(member_id, timer.duration_seconds, timer.label), service)


@router.delete("/sessions/{member_id}/timers/{timer_id}", response_model=CookingResponse)
def cancel_timer(
    member_id: str,
    timer_id: str,
    service: CookingService = Depends(get_cooking_service)
):
    return _response(member_id, service.cancel_timer(member_id, timer_id), service)


@router.post("/sessions/{member_id}/tick", response_model=CookingResponse)
def tick(member_id: str, service: CookingService = Depends(get_cooking_service)):
    """Expire due timers; `expired_timers` lists the ones that just finished."""
    return _response(member_id, service.tick(member_id), service)


@router.post("/sessions/{member_id}/scale", response_model=CookingResponse)
def scale(
    member_id: str,
    request: ScaleInput,
    service: CookingService = Depends(get_cooking_service)
):
    """Scale relative to the original recipe. Non-positive factors are rejected."""
    return _response(member_id, service.scale(member_id, request.factor), service)


@router.put("/sessions/{member_id}/constraints", response_model=CookingResponse)
def set_constraints(
    member_id: str,
    request: ConstraintsInput,
    service: CookingService = Depends(get_cooking_service)
):
    """Replace the session's dietary, allergy, time budget and skill settings."""
    return _response(member_id, service.set_constraints(member_id, request.to_constraints()), service)
