"""
Cooking Service - owns live workstates and keeps them persisted.

Every change to a session, whether it comes from an utterance or from an
explicit command (a "Next" button, a timer tap), goes through here:

1. load the member's workstate (memory first, then the store)
2. apply the change
3. save it before returning (write-through, no batching)

Handling is strictly sequential: one lock around steps 1-3 means two
requests for the same member never interleave inside the engine.

If the store fails the in-memory session keeps going. The outcome comes
back with persisted=False and a warning so the UI can tell the cook that
progress might not survive a restart.
"""

import logging
import threading
from typing import Optional

from pydantic import BaseModel, Field

from recipe_assistant.exceptions import NoActiveSessionError, PersistenceError, StepOutOfRangeError
from recipe_assistant.models.repositories.workstate_repository import WorkstateStore
from recipe_assistant.models.workstate import CookingConstraints, CookingTimer, CookingWorkstate
from recipe_assistant.services.assistant.engine import AssistantEngine, AssistantReply, ActionKind

logger = logging.getLogger(__name__)

PERSISTENCE_WARNING = "Your progress couldn't be saved. You can keep cooking, but it may be lost if the app restarts."


class SessionOutcome(BaseModel):
    """Result of one call into the service."""
    workstate: CookingWorkstate
    text: Optional[str] = None
    reply: Optional[AssistantReply] = None
    completed: bool = False
    timer_id: Optional[str] = None
    expired: list[CookingTimer] = Field(default_factory=list)
    persisted: bool = True
    warning: Optional[str] = None


class CookingService:
    """Session coordinator sitting between the API and the assistant engine."""

    def __init__(self, engine: AssistantEngine, store: WorkstateStore):
        self.engine = engine
        self.store = store
        self._sessions: dict[str, CookingWorkstate] = {}
        self._lock = threading.Lock()

    @property
    def recipes(self):
        return self.engine.recipes

    def _now(self):
        return self.engine.clock()

    # ============================================
    # Load / save
    # ============================================

    def _load(self, member_id: str) -> tuple[CookingWorkstate, Optional[str]]:
        workstate = self._sessions.get(member_id)
        if workstate is not None:
            return workstate, None

        warning = None
        try:
            workstate = self.store.load(member_id)
        except PersistenceError as e:
            logger.error(f"Starting fresh for {member_id}, saved session unreadable: {e}")
            warning = "Your saved session couldn't be loaded, so we're starting fresh."
            workstate = None

        if workstate is None or not workstate.has_active_session:
            # Idle members are never cached
            return CookingWorkstate(), warning

        logger.info(f"Resumed saved session for {member_id} at step {workstate.step_index + 1}")
        self._sessions[member_id] = workstate
        return workstate, warning

    def _save(self, member_id: str, workstate: CookingWorkstate) -> Optional[str]:
        """Write through. Returns a warning when the store failed."""
        try:
            if workstate.has_active_session:
                self.store.save(member_id, workstate)
            else:
                self.store.clear(member_id)
        except PersistenceError as e:
            logger.error(f"Workstate for {member_id} not persisted: {e}")
            return PERSISTENCE_WARNING
        return None

    def _commit(self, member_id: str, workstate: CookingWorkstate, **fields) -> SessionOutcome:
        warning = self._save(member_id, workstate)
        if not workstate.has_active_session:
            self._sessions.pop(member_id, None)
        return SessionOutcome(
            workstate=workstate,
            persisted=warning is None,
            warning=warning,
            **fields,
        )

    # ============================================
    # Session lifecycle
    # ============================================

    def start_session(
        self,
        member_id: str,
        recipe_id: int,
        constraints: Optional[CookingConstraints] = None,
    ) -> SessionOutcome:
        """Start cooking a recipe. Replaces whatever session the member had."""
        recipe = self.recipes.get_recipe(recipe_id)
        with self._lock:
            workstate = CookingWorkstate()
            workstate.start_session(recipe.id, recipe.step_count, constraints, self._now())
            self._sessions[member_id] = workstate
            logger.info(f"Member {member_id} started cooking recipe {recipe.id} ({recipe.title})")
            return self._commit(member_id, workstate, text=self.engine.introduce(recipe, workstate))

    def end_session(self, member_id: str) -> SessionOutcome:
        with self._lock:
            workstate, _ = self._load(member_id)
            workstate.end_session(self._now())
            logger.info(f"Member {member_id} ended their cooking session")
            return self._commit(member_id, workstate, text="Cooking session ended.")

    def get_state(self, member_id: str) -> SessionOutcome:
        with self._lock:
            workstate, warning = self._load(member_id)
            return SessionOutcome(workstate=workstate, warning=warning)

    # ============================================
    # Utterances
    # ============================================

    def handle_utterance(self, member_id: str, text: str) -> SessionOutcome:
        """Run one utterance through the engine and persist the result."""
        with self._lock:
            workstate, load_warning = self._load(member_id)
            reply = self.engine.handle_utterance(text, workstate)

            if not reply.mutated:
                return SessionOutcome(
                    workstate=workstate, text=reply.text, reply=reply, warning=load_warning
                )

            completed = reply.action is not None and reply.action.kind == ActionKind.RECIPE_COMPLETE
            timer_id = None
            if reply.action is not None and reply.action.kind == ActionKind.START_TIMER:
                timer_id = reply.action.payload.get("timer_id")
            return self._commit(
                member_id,
                workstate,
                text=reply.text,
                reply=reply,
                completed=completed,
                timer_id=timer_id,
            )

    # ============================================
    # Explicit commands
    # ============================================

    def next_step(self, member_id: str) -> SessionOutcome:
        """Advance one step. Past the last step the recipe is reported complete."""
        with self._lock:
            workstate, _ = self._load(member_id)
            try:
                workstate.advance_step(self._now())
            except StepOutOfRangeError as e:
                if not e.at_end:
                    raise
                # The last step was still marked completed
                return self._commit(member_id, workstate, completed=True)
            return self._commit(member_id, workstate)

    def previous_step(self, member_id: str) -> SessionOutcome:
        with self._lock:
            workstate, _ = self._load(member_id)
            workstate.previous_step(self._now())
            return self._commit(member_id, workstate)

    def go_to_step(self, member_id: str, index: int) -> SessionOutcome:
        with self._lock:
            workstate, _ = self._load(member_id)
            workstate.go_to_step(index, self._now())
            return self._commit(member_id, workstate)

    def start_timer(self, member_id: str, duration: float, label: Optional[str] = None) -> SessionOutcome:
        with self._lock:
            workstate, _ = self._load(member_id)
            timer_id = workstate.start_timer(duration, label, self._now())
            return self._commit(member_id, workstate, timer_id=timer_id)

    def cancel_timer(self, member_id: str, timer_id: str) -> SessionOutcome:
        with self._lock:
            workstate, _ = self._load(member_id)
            workstate.cancel_timer(timer_id, self._now())
            return self._commit(member_id, workstate)

    def tick(self, member_id: str) -> SessionOutcome:
        """
        Expire due timers. Called by the host's poll loop.

        Idle members have nothing to tick, so this is a no-op for them
        rather than an error.
        """
        with self._lock:
            workstate, _ = self._load(member_id)
            try:
                expired = workstate.tick(self._now())
            except NoActiveSessionError:
                return SessionOutcome(workstate=workstate)
            if not expired:
                return SessionOutcome(workstate=workstate)
            logger.info(f"Timers expired for {member_id}: {', '.join(t.label for t in expired)}")
            return self._commit(member_id, workstate, expired=expired)

    def scale(self, member_id: str, factor: float) -> SessionOutcome:
        with self._lock:
            workstate, _ = self._load(member_id)
            workstate.apply_scale(factor, self._now())
            return self._commit(member_id, workstate)

    def set_constraints(self, member_id: str, constraints: CookingConstraints) -> SessionOutcome:
        with self._lock:
            workstate, _ = self._load(member_id)
            workstate.set_constraints(constraints, self._now())
            return self._commit(member_id, workstate)

    def pause(self, member_id: str) -> SessionOutcome:
        with self._lock:
            workstate, _ = self._load(member_id)
            workstate.pause(self._now())
            return self._commit(member_id, workstate)

    def resume(self, member_id: str) -> SessionOutcome:
        with self._lock:
            workstate, _ = self._load(member_id)
            workstate.resume(self._now())
            return self._commit(member_id, workstate)
