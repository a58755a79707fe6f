"""
Interaction State Types

Process-local state of the floating annotation UI (contextual bubble and idea
list popup). Exactly one state is active per open document.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from ..errors import AnnotationError
from .addresses import PageOffset, ParagraphOffset, ReflowPosition
from .underlines import Idea

T = TypeVar("T")


class InteractionPhase(Enum):
    """Phases of the bubble / popup state machine"""

    IDLE = "idle"
    SELECTING = "selecting"  # anchor resolved, bubble not yet shown
    CONFIRMING = "confirming"  # bubble: Underline | Meaning | Cancel
    AWAITING_IDEA = "awaiting_idea"  # bubble: idea input, Save | Skip
    EXISTING_SELECTED = "existing_selected"  # bubble for a tapped underline
    IDEA_LIST_OPEN = "idea_list_open"  # popup with the idea thread


@dataclass(frozen=True)
class InteractionState:
    """Snapshot of the annotation UI; replaced wholesale on every transition"""

    phase: InteractionPhase = InteractionPhase.IDLE
    text: str | None = None
    address: ParagraphOffset | PageOffset | ReflowPosition | None = None
    underline_id: int | None = None
    idea_count: int | None = None
    ideas: tuple[Idea, ...] = ()
    context_text: str | None = None

    @property
    def bubble_visible(self) -> bool:
        return self.phase in (
            InteractionPhase.CONFIRMING,
            InteractionPhase.AWAITING_IDEA,
            InteractionPhase.EXISTING_SELECTED,
        )

    @property
    def popup_visible(self) -> bool:
        return self.phase is InteractionPhase.IDEA_LIST_OPEN

    def to_dict(self) -> dict[str, Any]:
        """Convert state to dictionary for API response."""
        return {
            "phase": self.phase.value,
            "text": self.text,
            "address": self.address.model_dump() if self.address else None,
            "underline_id": self.underline_id,
            "idea_count": self.idea_count,
            "ideas": [idea.model_dump() for idea in self.ideas],
            "bubble_visible": self.bubble_visible,
            "popup_visible": self.popup_visible,
        }


IDLE = InteractionState()


@dataclass
class ActionResult(Generic[T]):
    """Outcome of an asynchronous interaction action"""

    ok: bool
    value: T | None = None
    error: AnnotationError | None = field(default=None)

    @classmethod
    def success(cls, value: T | None = None) -> "ActionResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: AnnotationError) -> "ActionResult[T]":
        return cls(ok=False, error=error)

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error else None
