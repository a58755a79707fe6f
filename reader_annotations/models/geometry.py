"""
Highlight Geometry Models

Screen-space types exchanged with renderers. Geometry is always derived from the
current view window and never persisted.
"""

from typing import Annotated, Literal, Protocol, Union, runtime_checkable

from pydantic import BaseModel, Field


class Point(BaseModel):
    x: float
    y: float


class Rect(BaseModel):
    """Axis-aligned box in container coordinates"""

    x: float
    y: float
    width: float = Field(ge=0)
    height: float = Field(ge=0)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, point: Point) -> bool:
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom


class TextRun(BaseModel):
    """One rendered text span and its bounding box, in run order"""

    text: str
    rect: Rect


class HighlightGeometry(BaseModel):
    """Overlay for one underline inside the visible region"""

    underline_id: int
    rects: list[Rect]
    badge: Point
    idea_count: int = 0


class ParagraphRuns(BaseModel):
    paragraph_index: int = Field(ge=0)
    runs: list[TextRun] = Field(default_factory=list)


class PageView(BaseModel):
    """Visible fixed-layout page"""

    kind: Literal["page"] = "page"
    page_number: int = Field(ge=1)
    runs: list[TextRun] = Field(default_factory=list)


class ChapterView(BaseModel):
    """Visible paragraphs of one reflowed-to-text chapter"""

    kind: Literal["chapter"] = "chapter"
    chapter_index: int = Field(default=0, ge=0)
    paragraphs: list[ParagraphRuns] = Field(default_factory=list)

    def runs_for(self, paragraph_index: int) -> list[TextRun] | None:
        for paragraph in self.paragraphs:
            if paragraph.paragraph_index == paragraph_index:
                return paragraph.runs
        return None


class ReflowView(BaseModel):
    """
    Snapshot of a reflowable renderer's range-to-rectangle answers.

    Shells that cannot be called back (e.g. over HTTP) resolve the ids they know
    about and ship the rectangles; ids missing from the map are off-screen.
    """

    kind: Literal["reflow"] = "reflow"
    range_rects: dict[str, list[Rect]] = Field(default_factory=dict)

    def rects_for(self, range_id: str) -> list[Rect] | None:
        return self.range_rects.get(range_id)


@runtime_checkable
class ReflowRangeQuery(Protocol):
    """Live reflowable renderer able to map a range id to client rects"""

    def rects_for(self, range_id: str) -> list[Rect] | None: ...


ViewWindow = Annotated[
    Union[PageView, ChapterView, ReflowView],
    Field(discriminator="kind"),
]
