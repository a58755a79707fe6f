"""
Document Address Models

Pydantic models describing where an underline lives inside a document. One
variant exists per renderer family; all three share a single tagged union so the
rest of the engine never branches on renderer-specific record shapes.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class RendererMode(str, Enum):
    """Active renderer family; selects the anchor strategy"""

    PARAGRAPH = "paragraph"  # EPUB-as-text, scanned note pages
    PAGE = "page"  # fixed-layout PDF text layers
    REFLOW = "reflow"  # reflowable renderers with native range ids


class DocumentKind(str, Enum):
    """Content API collection a document belongs to"""

    DOCUMENT = "document"
    EBOOK = "ebook"
    MAGAZINE = "magazine"
    NOTE = "note"

    @property
    def collection(self) -> str:
        return f"{self.value}s"

    @property
    def underline_prefix(self) -> str:
        if self is DocumentKind.DOCUMENT:
            return "underlines"
        return f"{self.value}-underlines"

    @property
    def idea_prefix(self) -> str:
        if self is DocumentKind.DOCUMENT:
            return "ideas"
        return f"{self.value}-ideas"


class DocumentRef(BaseModel):
    """Identity of an open document"""

    kind: DocumentKind = DocumentKind.DOCUMENT
    document_id: int


class ParagraphOffset(BaseModel):
    """Offsets against the whitespace-normalized text of one paragraph"""

    kind: Literal["paragraph"] = "paragraph"
    chapter_index: int = Field(default=0, ge=0)
    paragraph_index: int = Field(ge=0)
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)

    @property
    def sort_key(self) -> tuple:
        return (self.chapter_index, self.paragraph_index, self.start_offset)


class PageOffset(BaseModel):
    """Offsets against the normalized concatenation of a page's text runs"""

    kind: Literal["page"] = "page"
    page_number: int = Field(ge=1)
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)

    @property
    def sort_key(self) -> tuple:
        return (self.page_number, self.start_offset)


class ReflowPosition(BaseModel):
    """Opaque renderer-owned range locator (CFI-like)"""

    kind: Literal["reflow"] = "reflow"
    range_id: str = Field(min_length=1)

    @property
    def sort_key(self) -> tuple:
        # Reflow positions are opaque; creation order is kept by the store
        return ()


DocumentAddress = Annotated[
    Union[ParagraphOffset, PageOffset, ReflowPosition],
    Field(discriminator="kind"),
]

OffsetAddress = Union[ParagraphOffset, PageOffset]

MODE_FOR_ADDRESS_KIND = {
    "paragraph": RendererMode.PARAGRAPH,
    "page": RendererMode.PAGE,
    "reflow": RendererMode.REFLOW,
}


def address_to_payload(address: ParagraphOffset | PageOffset | ReflowPosition) -> dict:
    """Flatten an address into the Content API underline fields."""
    if isinstance(address, ReflowPosition):
        return {"cfi_range": address.range_id}

    payload = {
        "start_offset": address.start_offset,
        "end_offset": address.end_offset,
    }
    if isinstance(address, PageOffset):
        payload["page_number"] = address.page_number
    else:
        payload["chapter_index"] = address.chapter_index
        payload["paragraph_index"] = address.paragraph_index
    return payload


def address_from_row(row: dict) -> ParagraphOffset | PageOffset | ReflowPosition:
    """
    Rebuild an address from a Content API underline row.

    Rows carry whichever locator the creating reader used: a ``cfi_range`` for
    reflowable readers, a ``page_number`` for page readers, paragraph indexes otherwise.
    """
    if row.get("cfi_range"):
        return ReflowPosition(range_id=row["cfi_range"])
    if row.get("page_number") is not None:
        return PageOffset(
            page_number=row["page_number"],
            start_offset=row.get("start_offset") or 0,
            end_offset=row.get("end_offset") or 0,
        )
    return ParagraphOffset(
        chapter_index=row.get("chapter_index") or 0,
        paragraph_index=row.get("paragraph_index") or 0,
        start_offset=row.get("start_offset") or 0,
        end_offset=row.get("end_offset") or 0,
    )
