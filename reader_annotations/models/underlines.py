"""
Underline and Idea Models

Pydantic models for persisted annotations. Rows coming back from the Content
API are flat (snake_case locator columns); ``from_api`` folds them into the
tagged ``DocumentAddress`` union.
"""

from typing import Any

from pydantic import BaseModel, Field

from .addresses import DocumentAddress, address_from_row


class Underline(BaseModel):
    """A persisted user underline bound to an anchor"""

    id: int
    document_id: int
    text: str
    address: DocumentAddress
    idea_count: int = Field(default=0, ge=0)
    created_at: str | None = None

    @property
    def sort_key(self) -> tuple:
        return (self.address.sort_key, self.id)

    @classmethod
    def from_api(cls, row: dict[str, Any], document_id: int) -> "Underline":
        return cls(
            id=row["id"],
            document_id=document_id,
            text=row.get("text") or "",
            address=address_from_row(row),
            idea_count=max(0, int(row.get("idea_count") or 0)),
            created_at=row.get("created_at"),
        )


class Idea(BaseModel):
    """A free-text note attached to an underline"""

    id: int
    underline_id: int
    content: str
    created_at: str | None = None

    @classmethod
    def from_api(cls, row: dict[str, Any], underline_id: int | None = None) -> "Idea":
        return cls(
            id=row["id"],
            underline_id=row.get("underline_id") or underline_id,
            content=row.get("content") or "",
            created_at=row.get("created_at"),
        )
