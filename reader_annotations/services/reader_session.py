"""
Reader Session Module

Explicitly owned wiring of the annotation engine for one open document: Content
API client, underline store, idea manager, highlight renderer, selection
debouncer and interaction machine. Sessions are created and closed by their
owner; nothing here is a process-wide singleton.
"""

import logging
import uuid
from datetime import datetime

import httpx

from ..config import AnnotationSettings
from ..models.addresses import DocumentRef, RendererMode
from ..models.geometry import HighlightGeometry
from ..models.underlines import Underline
from .anchor_resolver import AnchorResolver
from .content_api_client import ContentApiClient
from .highlight_renderer import HighlightRenderer, TextSegment
from .idea_thread_manager import IdeaThreadManager
from .interaction_machine import AnnotationInteractionMachine
from .meaning_service import MeaningService
from .underline_store import UnderlineStore

logger = logging.getLogger(__name__)


class ReaderSession:
    """Annotation engine instance bound to one open document"""

    def __init__(
        self,
        settings: AnnotationSettings,
        document: DocumentRef,
        mode: RendererMode,
        token: str | None = None,
        meaning: MeaningService | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        session_id: str | None = None,
    ):
        """
        Wire the engine for a document.

        Args:
            settings: Engine settings
            document: The document being read
            mode: Renderer family of the active reader
            token: Bearer credential; None disables annotation silently
            meaning: Optional explanation service for the "Meaning" action
            transport: Optional httpx transport for the Content API client
            session_id: Explicit id, generated if omitted
        """
        self.session_id = session_id or str(uuid.uuid4())
        self.document = document
        self.mode = RendererMode(mode)
        self.created_at = datetime.now()
        self._closed = False

        self.client = ContentApiClient(
            settings.api_base_url,
            token=token,
            timeout=settings.request_timeout,
            transport=transport,
        )
        self.store = UnderlineStore(
            self.client, document, max_text_length=settings.max_text_length
        )
        self.ideas = IdeaThreadManager(
            self.client, self.store, max_content_length=settings.max_idea_length
        )
        self.renderer = HighlightRenderer()
        self.machine = AnnotationInteractionMachine(
            self.client,
            AnchorResolver(self.mode),
            self.store,
            self.ideas,
            renderer=self.renderer,
            meaning=meaning,
            debounce_seconds=settings.debounce_seconds,
        )
        # Store changes (create, delete, count bumps) repaint the highlights
        self.store.add_listener(self.renderer.set_underlines)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def underlines(self) -> list[Underline]:
        return self.store.underlines

    @property
    def geometry(self) -> list[HighlightGeometry]:
        return self.renderer.geometry

    async def open(self) -> list[Underline]:
        """Load the reader's underlines for the document."""
        underlines = await self.store.list_underlines()
        logger.info(
            f"Opened session {self.session_id} for {self.document.kind.value} "
            f"{self.document.document_id} ({self.mode.value}, {len(underlines)} underlines)"
        )
        return underlines

    def navigate(self, view) -> list[HighlightGeometry]:
        """Page/chapter navigation, resize or font change: reset UI and repaint."""
        self.machine.navigate()
        return self.renderer.set_view(view)

    def update_view(self, view) -> list[HighlightGeometry]:
        """Repaint for a new view without touching the interaction state."""
        return self.renderer.set_view(view)

    def paragraph_segments(self, paragraph_index: int) -> list[TextSegment] | None:
        """Plain and underlined segments of a visible paragraph, with badge labels."""
        return self.renderer.segments_for(paragraph_index)

    async def close(self) -> None:
        """Cancel timers, drop late results and release the HTTP client."""
        if self._closed:
            return
        self._closed = True
        self.machine.navigate()
        self.store.close()
        self.renderer.clear()
        await self.client.aclose()
        logger.info(f"Closed session {self.session_id}")
