"""
Annotation Interaction State Machine

Drives the floating contextual bubble and the idea-list popup for one open
document:

    Idle -> Selecting -> Confirming -> AwaitingIdea -> Idle
    Idle -> ExistingSelected -> IdeaListOpen -> Idle

Transitions come from reader gestures and from the completion of persistence
calls. The machine holds a single state, not a queue: a selection that arrives
while an underline is being saved is ignored. Cancel, click-outside and
navigation bump an epoch so that results of requests already in flight still
update the store but no longer move the UI.
"""

import logging
from dataclasses import replace
from typing import Callable

from ..config import DEFAULT_DEBOUNCE_SECONDS
from ..errors import (
    AnchorNotFound,
    AnnotationError,
    AuthError,
    InvalidTransition,
    NetworkError,
    ValidationError,
)
from ..models.geometry import Point
from ..models.interaction import (
    IDLE,
    ActionResult,
    InteractionPhase,
    InteractionState,
)
from ..models.selections import TextSelection
from ..models.underlines import Idea, Underline
from .anchor_resolver import AnchorResolver
from .content_api_client import ContentApiClient
from .debouncer import Debouncer
from .highlight_renderer import HighlightRenderer
from .idea_thread_manager import IdeaThreadManager
from .meaning_service import MeaningService
from .underline_store import UnderlineStore

logger = logging.getLogger(__name__)

StateListener = Callable[[InteractionState], None]
ErrorListener = Callable[[AnnotationError], None]

# Errors the reader sees as a transient message; the rest stay silent
SURFACED_ERRORS = (ValidationError, NetworkError)


class AnnotationInteractionMachine:
    """Single-instance state holder for the annotation bubble and popup"""

    def __init__(
        self,
        client: ContentApiClient,
        resolver: AnchorResolver,
        store: UnderlineStore,
        ideas: IdeaThreadManager,
        renderer: HighlightRenderer | None = None,
        meaning: MeaningService | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self._client = client
        self.resolver = resolver
        self.store = store
        self.ideas = ideas
        self.renderer = renderer
        self.meaning = meaning

        self._state: InteractionState = IDLE
        self._listeners: list[StateListener] = []
        self._error_listeners: list[ErrorListener] = []
        self._epoch = 0
        self._create_in_flight = False
        self._selection_debouncer = Debouncer(debounce_seconds, self._settle_selection)

        store.add_listener(self._on_store_change)

    # ---------------------------------------------------------------------
    # State plumbing
    # ---------------------------------------------------------------------

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def phase(self) -> InteractionPhase:
        return self._state.phase

    @property
    def create_in_flight(self) -> bool:
        return self._create_in_flight

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    def _transition(self, state: InteractionState) -> None:
        if state == self._state:
            return
        logger.debug(f"Interaction {self._state.phase.value} -> {state.phase.value}")
        self._state = state
        for listener in self._listeners:
            listener(state)

    def _require(self, action: str, *phases: InteractionPhase) -> InteractionState:
        if self._state.phase not in phases:
            raise InvalidTransition(action, self._state.phase.value)
        return self._state

    def _reset(self) -> None:
        """Back to Idle; anything still in flight no longer drives the UI."""
        self._epoch += 1
        self._selection_debouncer.cancel()
        self._transition(IDLE)

    def _failure(self, error: AnnotationError) -> ActionResult:
        if isinstance(error, SURFACED_ERRORS):
            logger.warning(f"Annotation action failed: {error}")
            for listener in self._error_listeners:
                listener(error)
        else:
            logger.debug(f"Annotation action skipped: {error}")
        return ActionResult.failure(error)

    def _on_store_change(self, underlines: list[Underline]) -> None:
        underline_id = self._state.underline_id
        if underline_id is None:
            return
        current = next((u for u in underlines if u.id == underline_id), None)
        if current is None:
            # The bubble or popup points at an underline that no longer exists
            self._reset()
        elif self._state.idea_count is not None and current.idea_count != self._state.idea_count:
            self._transition(replace(self._state, idea_count=current.idea_count))

    # ---------------------------------------------------------------------
    # New selections
    # ---------------------------------------------------------------------

    def selection_changed(self, selection: TextSelection) -> None:
        """Raw selection-change event; acted on after the quiet period."""
        if not self._client.is_authenticated:
            logger.debug("Selection ignored: annotation requires a signed-in reader")
            return
        self._selection_debouncer.trigger(selection)

    async def settle_now(self) -> None:
        """The selection gesture ended; act on the last selection immediately."""
        await self._selection_debouncer.flush()

    def _settle_selection(self, selection: TextSelection) -> None:
        if self._create_in_flight:
            logger.debug("Selection ignored: an underline is being saved")
            return
        if self._state.phase not in (InteractionPhase.IDLE, InteractionPhase.CONFIRMING):
            logger.debug(f"Selection ignored while {self._state.phase.value}")
            return
        if not selection.text.strip():
            # Selection collapsed: the pending bubble goes away
            self._transition(IDLE)
            return

        try:
            anchor = self.resolver.resolve(selection)
        except AnchorNotFound as e:
            logger.debug(f"No anchor for selection: {e}")
            self._transition(IDLE)
            return

        self._transition(
            InteractionState(
                phase=InteractionPhase.SELECTING,
                text=anchor.text,
                address=anchor.address,
            )
        )
        self._transition(
            InteractionState(
                phase=InteractionPhase.CONFIRMING,
                text=anchor.text,
                address=anchor.address,
                context_text=anchor.context_text,
            )
        )

    async def confirm_underline(self) -> ActionResult[Underline]:
        """Bubble "Underline": persist the pending selection."""
        state = self._require("confirm an underline", InteractionPhase.CONFIRMING)
        if self._create_in_flight:
            raise InvalidTransition("confirm an underline", "saving")

        epoch = self._epoch
        self._create_in_flight = True
        try:
            underline = await self.store.create_underline(state.text, state.address)
        except AnnotationError as e:
            if epoch == self._epoch:
                self._reset()
            return self._failure(e)
        finally:
            self._create_in_flight = False

        if epoch != self._epoch:
            logger.debug(f"Underline {underline.id} saved after the bubble closed")
            return ActionResult.success(underline)

        self._transition(
            InteractionState(
                phase=InteractionPhase.AWAITING_IDEA,
                text=state.text,
                address=state.address,
                underline_id=underline.id,
                idea_count=underline.idea_count,
            )
        )
        return ActionResult.success(underline)

    async def save_idea(self, content: str) -> ActionResult[Idea]:
        """Bubble "Save": persist the idea draft, then close."""
        state = self._require("save an idea", InteractionPhase.AWAITING_IDEA)
        epoch = self._epoch
        try:
            idea = await self.ideas.create_idea(state.underline_id, content)
        except AnnotationError as e:
            return self._failure(e)

        if epoch == self._epoch:
            self._reset()
        return ActionResult.success(idea)

    def skip_idea(self) -> None:
        """Bubble "Skip": keep the underline, discard the draft."""
        self._require("skip the idea", InteractionPhase.AWAITING_IDEA)
        self._reset()

    # ---------------------------------------------------------------------
    # Existing underlines
    # ---------------------------------------------------------------------

    def tap_underline(self, underline_id: int) -> InteractionState:
        """A highlighted span was tapped; never goes back through Confirming."""
        underline = self.store.get(underline_id)
        if underline is None or not self._client.is_authenticated:
            return self._state

        self._epoch += 1
        self._selection_debouncer.cancel()
        self._transition(
            InteractionState(
                phase=InteractionPhase.EXISTING_SELECTED,
                text=underline.text,
                address=underline.address,
                underline_id=underline.id,
                idea_count=underline.idea_count,
                context_text=underline.text,
            )
        )
        return self._state

    def tap(self, point: Point) -> InteractionState:
        """Tap in document space: hit-test highlights, otherwise click-outside."""
        underline_id = self.renderer.hit_test(point) if self.renderer else None
        if underline_id is None:
            self.click_outside()
            return self._state
        return self.tap_underline(underline_id)

    def start_idea(self) -> None:
        """Existing-underline bubble "Add idea": switch to the idea input."""
        state = self._require("add an idea", InteractionPhase.EXISTING_SELECTED)
        self._transition(replace(state, phase=InteractionPhase.AWAITING_IDEA))

    async def view_ideas(self) -> ActionResult[list[Idea]]:
        """Existing-underline bubble "View ideas": open the idea popup."""
        state = self._require("view ideas", InteractionPhase.EXISTING_SELECTED)
        epoch = self._epoch
        try:
            ideas = await self.ideas.list_ideas(state.underline_id)
        except AnnotationError as e:
            return self._failure(e)

        if epoch == self._epoch:
            self._transition(
                replace(
                    state,
                    phase=InteractionPhase.IDEA_LIST_OPEN,
                    ideas=tuple(ideas),
                )
            )
        return ActionResult.success(ideas)

    async def add_idea(self, content: str) -> ActionResult[Idea]:
        """Idea popup: add an idea at the top of the thread."""
        state = self._require("add an idea", InteractionPhase.IDEA_LIST_OPEN)
        epoch = self._epoch
        try:
            idea = await self.ideas.create_idea(state.underline_id, content)
        except AnnotationError as e:
            return self._failure(e)

        if epoch == self._epoch:
            self._transition(replace(self._state, ideas=(idea,) + self._state.ideas))
        return ActionResult.success(idea)

    def _popup_idea(self, idea_id: int) -> Idea | None:
        return next((i for i in self._state.ideas if i.id == idea_id), None)

    async def edit_idea(self, idea_id: int, content: str) -> ActionResult[Idea]:
        """Idea popup: edit an idea in place."""
        state = self._require("edit an idea", InteractionPhase.IDEA_LIST_OPEN)
        if self._popup_idea(idea_id) is None:
            return self._failure(
                ValidationError(f"Idea {idea_id} is not on underline {state.underline_id}")
            )
        epoch = self._epoch
        try:
            idea = await self.ideas.update_idea(idea_id, content)
        except AnnotationError as e:
            return self._failure(e)

        if epoch == self._epoch:
            ideas = tuple(idea if i.id == idea_id else i for i in self._state.ideas)
            self._transition(replace(self._state, ideas=ideas))
        return ActionResult.success(idea)

    async def delete_idea(self, idea_id: int) -> ActionResult[None]:
        """Idea popup: delete one idea."""
        state = self._require("delete an idea", InteractionPhase.IDEA_LIST_OPEN)
        if self._popup_idea(idea_id) is None:
            # Only ideas shown in this popup may change this underline's count
            return self._failure(
                ValidationError(f"Idea {idea_id} is not on underline {state.underline_id}")
            )
        epoch = self._epoch
        try:
            await self.ideas.delete_idea(idea_id, state.underline_id)
        except AnnotationError as e:
            return self._failure(e)

        if epoch == self._epoch:
            ideas = tuple(i for i in self._state.ideas if i.id != idea_id)
            self._transition(replace(self._state, ideas=ideas))
        return ActionResult.success()

    async def delete_underline(self) -> ActionResult[None]:
        """
        Delete the selected underline (bubble or popup).

        On success the store change closes whatever references it. A failed delete
        from the bubble still closes the bubble; the popup stays open.
        """
        state = self._require(
            "delete the underline",
            InteractionPhase.EXISTING_SELECTED,
            InteractionPhase.IDEA_LIST_OPEN,
        )
        epoch = self._epoch
        try:
            await self.store.delete_underline(state.underline_id)
        except AnnotationError as e:
            if state.phase is InteractionPhase.EXISTING_SELECTED and epoch == self._epoch:
                self._reset()
            return self._failure(e)

        if epoch == self._epoch:
            self._reset()
        return ActionResult.success()

    async def remove_underline(self) -> ActionResult[None]:
        """Idea popup "Remove underline"."""
        self._require("remove the underline", InteractionPhase.IDEA_LIST_OPEN)
        return await self.delete_underline()

    async def request_meaning(self, target_language: str | None = None) -> ActionResult[str]:
        """Bubble "Meaning": close the bubble and explain the text."""
        state = self._require(
            "explain the selection",
            InteractionPhase.CONFIRMING,
            InteractionPhase.EXISTING_SELECTED,
        )
        if self.meaning is None:
            return self._failure(ValidationError("Meaning service is not configured"))
        if not self._client.is_authenticated:
            return self._failure(AuthError("Meaning requires a signed-in reader"))

        self._reset()
        try:
            meaning = await self.meaning.explain(
                state.text, state.context_text, target_language
            )
        except AnnotationError as e:
            return self._failure(e)
        return ActionResult.success(meaning)

    # ---------------------------------------------------------------------
    # Dismissal
    # ---------------------------------------------------------------------

    def close_popup(self) -> None:
        self._require("close the idea list", InteractionPhase.IDEA_LIST_OPEN)
        self._reset()

    def cancel(self) -> None:
        self._reset()

    def click_outside(self) -> None:
        self._reset()

    def navigate(self) -> None:
        """Document navigation: drop the bubble, popup and pending selection."""
        self._reset()
