"""
Session Registry

Tracks the open annotation sessions of the HTTP service so reader shells can
address them by id. The registry is owned by the application (``app.state``)
and passed to routes explicitly.
"""

import logging
from datetime import datetime, timedelta

import httpx

from ..config import AnnotationSettings
from ..models.addresses import DocumentRef, RendererMode
from .meaning_service import MeaningService
from .reader_session import ReaderSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Open, look up and close reader sessions"""

    def __init__(
        self,
        settings: AnnotationSettings,
        meaning: MeaningService | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        max_session_age: timedelta = timedelta(hours=12),
    ):
        self.settings = settings
        self.meaning = meaning
        self._transport = transport
        self._max_session_age = max_session_age
        self._sessions: dict[str, ReaderSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def open_session(
        self, document: DocumentRef, mode: RendererMode, token: str | None = None
    ) -> ReaderSession:
        """
        Create a session and load its underlines.

        Returns:
            ReaderSession: The registered session
        """
        session = ReaderSession(
            self.settings,
            document,
            mode,
            token=token,
            meaning=self.meaning,
            transport=self._transport,
        )
        self._sessions[session.session_id] = session
        try:
            await session.open()
        except Exception:
            await self.close_session(session.session_id)
            raise
        return session

    def get(self, session_id: str) -> ReaderSession | None:
        return self._sessions.get(session_id)

    async def close_session(self, session_id: str) -> bool:
        """
        Close and forget a session.

        Returns:
            True if the session existed, False otherwise
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            logger.warning(f"Session {session_id} not found for closing")
            return False
        await session.close()
        return True

    async def cleanup_stale_sessions(self) -> int:
        """
        Close sessions older than the maximum age (abandoned reader tabs).

        Returns:
            Number of sessions closed
        """
        now = datetime.now()
        stale = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.created_at > self._max_session_age
        ]
        for session_id in stale:
            await self.close_session(session_id)

        if stale:
            logger.info(f"Cleaned up {len(stale)} stale sessions")
        return len(stale)

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close_session(session_id)
