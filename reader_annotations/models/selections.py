"""
Text Selection Models

What a renderer reports when the reader selects text: the raw selected string
plus the nearest structural container it was found in.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class ParagraphContainer(BaseModel):
    """Paragraph element of a reflow-to-text renderer"""

    kind: Literal["paragraph"] = "paragraph"
    chapter_index: int = Field(default=0, ge=0)
    paragraph_index: int = Field(ge=0)
    text: str

    @property
    def full_text(self) -> str:
        return self.text


class PageContainer(BaseModel):
    """Text layer of a fixed-layout page, as its runs in order"""

    kind: Literal["page"] = "page"
    page_number: int = Field(ge=1)
    runs: list[str] = Field(default_factory=list)

    @property
    def full_text(self) -> str:
        return "".join(self.runs)


class ReflowContainer(BaseModel):
    """Reflowable renderer selection; the range id is renderer-native"""

    kind: Literal["reflow"] = "reflow"
    range_id: str | None = None
    context_text: str = ""

    @property
    def full_text(self) -> str:
        return self.context_text


SelectionContainer = Annotated[
    Union[ParagraphContainer, PageContainer, ReflowContainer],
    Field(discriminator="kind"),
]


class TextSelection(BaseModel):
    """A live selection as reported by the renderer"""

    text: str
    container: SelectionContainer
