"""
Anchor Resolver Module

Turns an ephemeral text selection into a durable ``DocumentAddress``. Each
renderer family gets a strategy; all of them sit behind ``AnchorResolver`` so
the interaction layer never cares which reader is active.

Matching policy for offset-based modes is deliberately conservative: the
normalized selection must occur verbatim in the normalized container text, and
the **first** occurrence wins. A selection that cannot be matched produces no
anchor rather than a wrong one.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from ..errors import AnchorNotFound
from ..models.addresses import (
    PageOffset,
    ParagraphOffset,
    ReflowPosition,
    RendererMode,
)
from ..models.selections import (
    PageContainer,
    ParagraphContainer,
    ReflowContainer,
    TextSelection,
)
from ..models.underlines import Underline
from .text_normalization import normalize_whitespace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedAnchor:
    """Result of resolving a selection"""

    text: str  # normalized selected text, stored on the underline
    address: ParagraphOffset | PageOffset | ReflowPosition
    context_text: str  # full container text, used as meaning context


class AnchorStrategy(Protocol):
    def resolve(self, text: str, selection: TextSelection) -> ResolvedAnchor: ...


def find_first_match(container_text: str, selected_text: str) -> tuple[int, int]:
    """
    Locate the first occurrence of a selection inside its container.

    Both strings are whitespace-normalized before matching.

    Returns:
        tuple[int, int]: ``(start, end)`` bounds in the normalized container text

    Raises:
        AnchorNotFound: If the selection does not occur in the container
    """
    normalized_container = normalize_whitespace(container_text)
    normalized_selection = normalize_whitespace(selected_text)

    if not normalized_selection:
        raise AnchorNotFound("Empty selection")

    start = normalized_container.find(normalized_selection)
    if start == -1:
        raise AnchorNotFound("Selected text not found in its container")
    return start, start + len(normalized_selection)


class ParagraphOffsetStrategy:
    """Paragraph + character offset anchors for reflow-to-text readers"""

    def resolve(self, text: str, selection: TextSelection) -> ResolvedAnchor:
        container = selection.container
        if not isinstance(container, ParagraphContainer):
            raise AnchorNotFound("Selection is not inside a paragraph")

        start, end = find_first_match(container.text, text)
        address = ParagraphOffset(
            chapter_index=container.chapter_index,
            paragraph_index=container.paragraph_index,
            start_offset=start,
            end_offset=end,
        )
        return ResolvedAnchor(
            text=normalize_whitespace(text),
            address=address,
            context_text=container.text.strip(),
        )


class PageOffsetStrategy:
    """Page + character offset anchors for fixed-layout text layers"""

    def resolve(self, text: str, selection: TextSelection) -> ResolvedAnchor:
        container = selection.container
        if not isinstance(container, PageContainer):
            raise AnchorNotFound("Selection is not inside a page text layer")

        page_text = container.full_text
        start, end = find_first_match(page_text, text)
        address = PageOffset(
            page_number=container.page_number,
            start_offset=start,
            end_offset=end,
        )
        return ResolvedAnchor(
            text=normalize_whitespace(text),
            address=address,
            context_text=page_text.strip(),
        )


class ReflowPositionStrategy:
    """Opaque renderer range ids; no text matching happens here"""

    def resolve(self, text: str, selection: TextSelection) -> ResolvedAnchor:
        container = selection.container
        if not isinstance(container, ReflowContainer) or not container.range_id:
            raise AnchorNotFound("Renderer did not supply a range id")

        return ResolvedAnchor(
            text=normalize_whitespace(text),
            address=ReflowPosition(range_id=container.range_id),
            context_text=container.context_text.strip(),
        )


class AnchorResolver:
    """
    Resolve selections for the active renderer mode.

    Resolution is pure: resolving the same selection against an unchanged
    container always yields the same address.
    """

    _STRATEGIES: dict[RendererMode, AnchorStrategy] = {
        RendererMode.PARAGRAPH: ParagraphOffsetStrategy(),
        RendererMode.PAGE: PageOffsetStrategy(),
        RendererMode.REFLOW: ReflowPositionStrategy(),
    }

    def __init__(self, mode: RendererMode):
        self.mode = RendererMode(mode)
        self._strategy = self._STRATEGIES[self.mode]

    def resolve(self, selection: TextSelection) -> ResolvedAnchor:
        """
        Compute the anchor for a selection.

        Args:
            selection: Raw selection plus its container

        Returns:
            ResolvedAnchor: Normalized text, address and container context

        Raises:
            AnchorNotFound: Empty selection, container of another renderer family,
                            or text not present in the container
        """
        text = selection.text.strip()
        if not text:
            raise AnchorNotFound("Empty selection")

        anchor = self._strategy.resolve(text, selection)
        logger.debug(f"Resolved {self.mode.value} anchor: {anchor.address.model_dump()}")
        return anchor

    @staticmethod
    def verify(underline: Underline, container_text: str) -> bool:
        """
        Check that an offset anchor still denotes the underline's text.

        Reflow anchors are opaque and always pass.
        """
        address = underline.address
        if isinstance(address, ReflowPosition):
            return True
        normalized = normalize_whitespace(container_text)
        return normalized[address.start_offset : address.end_offset] == underline.text
