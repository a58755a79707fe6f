"""
Highlight Renderer Module

Computes overlay geometry for the underlines that fall inside the currently
rendered region. Geometry is recomputed from scratch on every navigation,
resize, font/theme change and store update; it is never persisted and the
renderer never writes to the underline collection.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from ..models.addresses import PageOffset, ParagraphOffset, ReflowPosition
from ..models.geometry import (
    ChapterView,
    HighlightGeometry,
    PageView,
    Point,
    ReflowRangeQuery,
    Rect,
    TextRun,
)
from ..models.underlines import Underline
from .anchor_resolver import AnchorResolver
from .text_normalization import normalize_whitespace, normalized_run_spans

logger = logging.getLogger(__name__)

GeometryListener = Callable[[list[HighlightGeometry]], None]


@dataclass(frozen=True)
class TextSegment:
    """A slice of a normalized paragraph, plain or underlined"""

    text: str
    underline_id: int | None = None
    badge_label: str | None = None

    @property
    def underlined(self) -> bool:
        return self.underline_id is not None


def rects_for_range(runs: list[TextRun], start: int, end: int) -> list[Rect]:
    """
    Collect the boxes of every run intersecting ``[start, end)``.

    Run intervals are measured in the normalized concatenation of all runs,
    the same coordinate space the anchor offsets were taken in.
    """
    spans = normalized_run_spans([run.text for run in runs])
    return [
        run.rect
        for run, (run_start, run_end) in zip(runs, spans)
        if run_end > start and run_start < end
    ]


def badge_point(rects: list[Rect]) -> Point:
    """Badge anchor at the trailing edge of the last rectangle."""
    last = rects[-1]
    return Point(x=last.right, y=last.bottom)


def split_into_segments(text: str, underlines: list[Underline]) -> list[TextSegment]:
    """
    Split a normalized paragraph into plain and underlined segments.

    Underlined segments carry their badge label: the idea count, or ``+`` when
    there are no ideas yet. Overlapping underlines are clipped so every character
    appears exactly once.

    Args:
        text: Normalized paragraph text
        underlines: Underlines of this paragraph (paragraph addresses only)

    Returns:
        list[TextSegment]: Segments in reading order
    """
    anchored = sorted(
        (u for u in underlines if isinstance(u.address, ParagraphOffset)),
        key=lambda u: u.address.start_offset,
    )
    segments: list[TextSegment] = []
    last_index = 0

    for underline in anchored:
        start = max(underline.address.start_offset, last_index)
        end = min(underline.address.end_offset, len(text))
        if end <= start:
            continue
        if start > last_index:
            segments.append(TextSegment(text=text[last_index:start]))
        segments.append(
            TextSegment(
                text=text[start:end],
                underline_id=underline.id,
                badge_label=str(underline.idea_count) if underline.idea_count > 0 else "+",
            )
        )
        last_index = end

    if last_index < len(text):
        segments.append(TextSegment(text=text[last_index:]))
    return segments


class HighlightRenderer:
    """
    Derive ``HighlightGeometry`` from the latest underlines and view window.

    Recomputation is idempotent and safe to run redundantly.
    """

    def __init__(self):
        self._view: PageView | ChapterView | ReflowRangeQuery | None = None
        self._underlines: list[Underline] = []
        self._geometry: list[HighlightGeometry] = []
        self._listeners: list[GeometryListener] = []

    @property
    def view(self):
        return self._view

    @property
    def geometry(self) -> list[HighlightGeometry]:
        return list(self._geometry)

    def add_listener(self, listener: GeometryListener) -> None:
        self._listeners.append(listener)

    def set_view(self, view) -> list[HighlightGeometry]:
        """Navigation, resize or font/theme change: swap the view and repaint."""
        self._view = view
        return self.recompute()

    def set_underlines(self, underlines: list[Underline]) -> list[HighlightGeometry]:
        """Store change notification: take the new snapshot and repaint."""
        self._underlines = list(underlines)
        return self.recompute()

    def clear(self) -> None:
        self._view = None
        self._underlines = []
        self._geometry = []

    def recompute(self) -> list[HighlightGeometry]:
        self._geometry = self.compute(self._underlines, self._view)
        for listener in self._listeners:
            listener(self.geometry)
        return self.geometry

    def compute(self, underlines: list[Underline], view) -> list[HighlightGeometry]:
        """
        Compute geometry for every underline visible in ``view``.

        Underlines outside the view (other page, other chapter, unresolved reflow
        range) produce no geometry and no error.
        """
        if view is None:
            return []

        geometry = []
        for underline in underlines:
            rects = self._rects_for(underline, view)
            if rects:
                geometry.append(
                    HighlightGeometry(
                        underline_id=underline.id,
                        rects=rects,
                        badge=badge_point(rects),
                        idea_count=underline.idea_count,
                    )
                )
        return geometry

    def _rects_for(self, underline: Underline, view) -> list[Rect]:
        address = underline.address

        if isinstance(address, PageOffset):
            if not isinstance(view, PageView) or view.page_number != address.page_number:
                return []
            return self._offset_rects(underline, view.runs)

        if isinstance(address, ParagraphOffset):
            if (
                not isinstance(view, ChapterView)
                or view.chapter_index != address.chapter_index
            ):
                return []
            runs = view.runs_for(address.paragraph_index)
            if not runs:
                return []
            return self._offset_rects(underline, runs)

        if isinstance(address, ReflowPosition):
            if not isinstance(view, ReflowRangeQuery):
                return []
            try:
                rects = view.rects_for(address.range_id)
            except Exception as e:
                # Renderer could not re-resolve the range in this view
                logger.debug(f"Range {address.range_id} not resolvable: {e}")
                return []
            return list(rects or [])

        return []

    def _offset_rects(self, underline: Underline, runs: list[TextRun]) -> list[Rect]:
        address = underline.address
        if not AnchorResolver.verify(underline, "".join(run.text for run in runs)):
            logger.warning(
                f"Underline {underline.id} text no longer matches its anchor; "
                f"painting offsets as stored"
            )
        return rects_for_range(runs, address.start_offset, address.end_offset)

    def segments_for(self, paragraph_index: int) -> list[TextSegment] | None:
        """
        Split a visible paragraph of the current chapter into display segments.

        Returns:
            list[TextSegment] | None: Segments of the normalized paragraph text, or
            None when the view is not a chapter or the paragraph is not visible
        """
        if not isinstance(self._view, ChapterView):
            return None
        runs = self._view.runs_for(paragraph_index)
        if runs is None:
            return None

        text = normalize_whitespace("".join(run.text for run in runs))
        paragraph_underlines = [
            u
            for u in self._underlines
            if isinstance(u.address, ParagraphOffset)
            and u.address.chapter_index == self._view.chapter_index
            and u.address.paragraph_index == paragraph_index
        ]
        return split_into_segments(text, paragraph_underlines)

    def hit_test(self, point: Point) -> int | None:
        """Return the underline whose painted rects contain ``point``, if any."""
        for item in reversed(self._geometry):
            if any(rect.contains(point) for rect in item.rects):
                return item.underline_id
        return None
