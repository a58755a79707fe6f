"""
Underline Store Module

Ordered collection of the signed-in reader's underlines for one open document.
The store is the only writer of that collection: every mutation goes through
its methods and is applied locally only after the Content API confirms it, so a
failed request never leaves a dangling or missing underline behind.
"""

import logging
from bisect import insort
from typing import Callable

from ..config import MAX_UNDERLINE_TEXT_LENGTH
from ..errors import AuthError, ValidationError
from ..models.addresses import (
    DocumentRef,
    PageOffset,
    ParagraphOffset,
    ReflowPosition,
    address_to_payload,
)
from ..models.underlines import Underline
from .content_api_client import ContentApiClient

logger = logging.getLogger(__name__)

StoreListener = Callable[[list[Underline]], None]


class UnderlineStore:
    """
    Per-document underline collection backed by the Content API.

    Underlines are kept in address order (chapter/paragraph/offset or
    page/offset); reflow anchors keep creation order. Listeners receive a fresh
    snapshot after every change and must not mutate it.
    """

    def __init__(
        self,
        client: ContentApiClient,
        document: DocumentRef,
        max_text_length: int = MAX_UNDERLINE_TEXT_LENGTH,
    ):
        """
        Initialize the store.

        Args:
            client (ContentApiClient): Authenticated Content API client
            document (DocumentRef): The open document this store is bound to
            max_text_length (int): Longest underline text accepted
        """
        self._client = client
        self.document = document
        self.max_text_length = max_text_length
        self._underlines: list[Underline] = []
        self._listeners: list[StoreListener] = []
        self._closed = False

    # ---------------------------------------------------------------------
    # Read access
    # ---------------------------------------------------------------------

    @property
    def underlines(self) -> list[Underline]:
        return list(self._underlines)

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, underline_id: int) -> Underline | None:
        for underline in self._underlines:
            if underline.id == underline_id:
                return underline
        return None

    def add_listener(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        snapshot = self.underlines
        for listener in self._listeners:
            listener(snapshot)

    def _underlines_path(self) -> str:
        return f"{self.document.kind.collection}/{self.document.document_id}/underlines"

    def _underline_path(self, underline_id: int) -> str:
        return f"{self.document.kind.underline_prefix}/{underline_id}"

    # ---------------------------------------------------------------------
    # CRUD
    # ---------------------------------------------------------------------

    def validate(
        self, text: str, address: ParagraphOffset | PageOffset | ReflowPosition
    ) -> None:
        """
        Reject an underline before it reaches the network.

        Raises:
            ValidationError: Empty or too long text, or inverted offset bounds
        """
        if not text or not text.strip():
            raise ValidationError("Underline text is required")
        if len(text) > self.max_text_length:
            raise ValidationError(
                f"Underline text exceeds {self.max_text_length} characters"
            )
        if not isinstance(address, ReflowPosition):
            if address.end_offset <= address.start_offset:
                raise ValidationError(
                    f"Invalid offsets: end ({address.end_offset}) must be greater "
                    f"than start ({address.start_offset})"
                )

    async def create_underline(
        self, text: str, address: ParagraphOffset | PageOffset | ReflowPosition
    ) -> Underline:
        """
        Persist a new underline and add it to the collection.

        Args:
            text (str): The exact normalized text the address denotes
            address: Where the text lives in the document

        Returns:
            Underline: The stored record, with ``idea_count`` 0

        Raises:
            ValidationError: Input rejected locally; nothing was sent
            AuthError: No credential
            NetworkError: The Content API call failed; the collection is unchanged
        """
        self.validate(text, address)

        payload = {"text": text, **address_to_payload(address)}
        row = await self._client.post(self._underlines_path(), payload)
        # The API echoes its flat row; the address we sent is authoritative
        underline = Underline(
            id=row["id"],
            document_id=self.document.document_id,
            text=row.get("text") or text,
            address=address,
            idea_count=0,
            created_at=row.get("created_at"),
        )

        if self._closed:
            logger.info(
                f"Dropping underline {underline.id} created after document "
                f"{self.document.document_id} was closed"
            )
            return underline

        insort(self._underlines, underline, key=lambda u: u.sort_key)
        logger.info(
            f"Saved underline {underline.id} for {self.document.kind.value} "
            f"{self.document.document_id}"
        )
        self._notify()
        return underline

    async def list_underlines(self) -> list[Underline]:
        """
        Fetch the reader's underlines for this document and replace the collection.

        Returns:
            list[Underline]: Underlines in address order; empty when signed out

        Raises:
            NetworkError: The Content API call failed; the collection is unchanged
        """
        if self._closed:
            return []
        try:
            rows = await self._client.get(self._underlines_path())
        except AuthError:
            logger.debug("No credential, underlines disabled")
            return []

        underlines = [
            Underline.from_api(row, self.document.document_id) for row in rows or []
        ]
        if self._closed:
            return []

        self._underlines = sorted(underlines, key=lambda u: u.sort_key)
        logger.info(
            f"Loaded {len(self._underlines)} underlines for "
            f"{self.document.kind.value} {self.document.document_id}"
        )
        self._notify()
        return self.underlines

    async def delete_underline(self, underline_id: int) -> None:
        """
        Delete an underline; its ideas are removed server-side.

        Raises:
            AuthError: No credential
            NetworkError: The Content API call failed; the underline stays in place
        """
        await self._client.delete(self._underline_path(underline_id))

        if self._closed:
            return
        before = len(self._underlines)
        self._underlines = [u for u in self._underlines if u.id != underline_id]
        if len(self._underlines) != before:
            logger.info(f"Deleted underline {underline_id}")
            self._notify()

    def bump_idea_count(self, underline_id: int, delta: int) -> Underline | None:
        """
        Adjust an underline's idea count locally after idea CRUD succeeded.

        The count never drops below zero.

        Returns:
            Underline | None: The updated record, or None if it is not in the collection
        """
        for index, underline in enumerate(self._underlines):
            if underline.id == underline_id:
                updated = underline.model_copy(
                    update={"idea_count": max(0, underline.idea_count + delta)}
                )
                self._underlines[index] = updated
                self._notify()
                return updated
        logger.debug(f"Idea count bump for unknown underline {underline_id}")
        return None

    def close(self) -> None:
        """Stop applying results; late responses are dropped from now on."""
        self._closed = True
        self._underlines = []
        self._listeners.clear()
