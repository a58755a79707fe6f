import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel

from ..errors import InvalidTransition, NetworkError
from ..models.addresses import DocumentKind, DocumentRef, RendererMode
from ..models.geometry import HighlightGeometry, Point, ViewWindow
from ..models.interaction import ActionResult
from ..models.selections import TextSelection
from ..models.underlines import Underline
from ..services.reader_session import ReaderSession
from ..services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sessions", tags=["annotations"])


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.session_registry


# Helper function to get a session by ID or raise 404
def get_session_or_404(
    session_id: str, registry: SessionRegistry = Depends(get_registry)
) -> ReaderSession:
    """
    Look up an open session, or raise HTTPException(404) if it is not open.

    Args:
        session_id: The session ID returned when the document was opened

    Returns:
        The open ReaderSession

    Raises:
        HTTPException: 404 if the session is unknown or closed
    """
    session = registry.get(session_id)
    if session is None or session.closed:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class OpenSessionRequest(BaseModel):
    document_id: int
    kind: DocumentKind = DocumentKind.DOCUMENT
    mode: RendererMode


class SessionResponse(BaseModel):
    session_id: str
    document: DocumentRef
    mode: RendererMode
    underlines: list[Underline]
    state: dict[str, Any]


class SelectionRequest(TextSelection):
    settle_now: bool = False  # gesture ended (mouseup / touchend)


class TapRequest(BaseModel):
    underline_id: int | None = None
    x: float | None = None
    y: float | None = None


class IdeaContentRequest(BaseModel):
    content: str


class MeaningRequest(BaseModel):
    target_language: str | None = None


class ViewRequest(BaseModel):
    view: ViewWindow
    navigate: bool = True


def _action_response(session: ReaderSession, result: ActionResult) -> dict[str, Any]:
    value = result.value
    if isinstance(value, BaseModel):
        value = value.model_dump()
    elif isinstance(value, list):
        value = [v.model_dump() if isinstance(v, BaseModel) else v for v in value]
    return {
        "ok": result.ok,
        "error": result.error_message,
        "value": value,
        "state": session.machine.state.to_dict(),
    }


def _conflict(e: InvalidTransition) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


@router.post("", response_model=SessionResponse)
async def open_session(
    payload: OpenSessionRequest,
    authorization: str | None = Header(default=None),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    """Open a document for annotation and load the reader's underlines."""
    document = DocumentRef(kind=payload.kind, document_id=payload.document_id)
    try:
        session = await registry.open_session(
            document, payload.mode, token=bearer_token(authorization)
        )
    except NetworkError as e:
        logger.error(f"Error opening {document.kind.value} {document.document_id}: {e}")
        raise HTTPException(status_code=502, detail=f"Error loading underlines: {e}")

    return SessionResponse(
        session_id=session.session_id,
        document=document,
        mode=session.mode,
        underlines=session.underlines,
        state=session.machine.state.to_dict(),
    )


@router.delete("/{session_id}")
async def close_session(
    session_id: str, registry: SessionRegistry = Depends(get_registry)
) -> dict[str, str]:
    if not await registry.close_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"message": "Session closed"}


@router.get("/{session_id}/state")
async def get_state(session: ReaderSession = Depends(get_session_or_404)) -> dict[str, Any]:
    return session.machine.state.to_dict()


@router.get("/{session_id}/underlines", response_model=list[Underline])
async def list_underlines(
    session: ReaderSession = Depends(get_session_or_404),
) -> list[Underline]:
    return session.underlines


@router.put("/{session_id}/view", response_model=list[HighlightGeometry])
async def update_view(
    payload: ViewRequest, session: ReaderSession = Depends(get_session_or_404)
) -> list[HighlightGeometry]:
    """Report the visible region; navigation also resets the bubble and popup."""
    if payload.navigate:
        return session.navigate(payload.view)
    return session.update_view(payload.view)


@router.get("/{session_id}/highlights", response_model=list[HighlightGeometry])
async def get_highlights(
    session: ReaderSession = Depends(get_session_or_404),
) -> list[HighlightGeometry]:
    return session.geometry


@router.get("/{session_id}/paragraphs/{paragraph_index}/segments")
async def get_paragraph_segments(
    paragraph_index: int, session: ReaderSession = Depends(get_session_or_404)
) -> list[dict[str, Any]]:
    """Underlined and plain segments of a visible paragraph, for text-rendering shells."""
    segments = session.paragraph_segments(paragraph_index)
    if segments is None:
        raise HTTPException(status_code=404, detail="Paragraph is not in the current view")
    return [
        {
            "text": segment.text,
            "underline_id": segment.underline_id,
            "badge_label": segment.badge_label,
        }
        for segment in segments
    ]


@router.post("/{session_id}/selection")
async def selection_changed(
    payload: SelectionRequest, session: ReaderSession = Depends(get_session_or_404)
) -> dict[str, Any]:
    """Selection-change event; debounced unless the gesture has ended."""
    selection = TextSelection(text=payload.text, container=payload.container)
    session.machine.selection_changed(selection)
    if payload.settle_now:
        await session.machine.settle_now()
    return session.machine.state.to_dict()


@router.post("/{session_id}/tap")
async def tap(
    payload: TapRequest, session: ReaderSession = Depends(get_session_or_404)
) -> dict[str, Any]:
    if payload.underline_id is not None:
        session.machine.tap_underline(payload.underline_id)
    elif payload.x is not None and payload.y is not None:
        session.machine.tap(Point(x=payload.x, y=payload.y))
    else:
        raise HTTPException(status_code=400, detail="Either underline_id or x/y is required")
    return session.machine.state.to_dict()


@router.post("/{session_id}/confirm")
async def confirm_underline(
    session: ReaderSession = Depends(get_session_or_404),
) -> dict[str, Any]:
    try:
        result = await session.machine.confirm_underline()
    except InvalidTransition as e:
        raise _conflict(e)
    return _action_response(session, result)


@router.post("/{session_id}/idea")
async def save_idea(
    payload: IdeaContentRequest, session: ReaderSession = Depends(get_session_or_404)
) -> dict[str, Any]:
    try:
        result = await session.machine.save_idea(payload.content)
    except InvalidTransition as e:
        raise _conflict(e)
    return _action_response(session, result)


@router.post("/{session_id}/idea/start")
async def start_idea(session: ReaderSession = Depends(get_session_or_404)) -> dict[str, Any]:
    try:
        session.machine.start_idea()
    except InvalidTransition as e:
        raise _conflict(e)
    return session.machine.state.to_dict()


@router.post("/{session_id}/idea/skip")
async def skip_idea(session: ReaderSession = Depends(get_session_or_404)) -> dict[str, Any]:
    try:
        session.machine.skip_idea()
    except InvalidTransition as e:
        raise _conflict(e)
    return session.machine.state.to_dict()


@router.post("/{session_id}/cancel")
async def cancel(session: ReaderSession = Depends(get_session_or_404)) -> dict[str, Any]:
    session.machine.cancel()
    return session.machine.state.to_dict()


@router.post("/{session_id}/click-outside")
async def click_outside(
    session: ReaderSession = Depends(get_session_or_404),
) -> dict[str, Any]:
    session.machine.click_outside()
    return session.machine.state.to_dict()


@router.post("/{session_id}/ideas/view")
async def view_ideas(session: ReaderSession = Depends(get_session_or_404)) -> dict[str, Any]:
    try:
        result = await session.machine.view_ideas()
    except InvalidTransition as e:
        raise _conflict(e)
    return _action_response(session, result)


@router.post("/{session_id}/ideas/close")
async def close_popup(session: ReaderSession = Depends(get_session_or_404)) -> dict[str, Any]:
    try:
        session.machine.close_popup()
    except InvalidTransition as e:
        raise _conflict(e)
    return session.machine.state.to_dict()


@router.post("/{session_id}/ideas")
async def add_idea(
    payload: IdeaContentRequest, session: ReaderSession = Depends(get_session_or_404)
) -> dict[str, Any]:
    try:
        result = await session.machine.add_idea(payload.content)
    except InvalidTransition as e:
        raise _conflict(e)
    return _action_response(session, result)


@router.patch("/{session_id}/ideas/{idea_id}")
async def edit_idea(
    idea_id: int,
    payload: IdeaContentRequest,
    session: ReaderSession = Depends(get_session_or_404),
) -> dict[str, Any]:
    try:
        result = await session.machine.edit_idea(idea_id, payload.content)
    except InvalidTransition as e:
        raise _conflict(e)
    return _action_response(session, result)


@router.delete("/{session_id}/ideas/{idea_id}")
async def delete_idea(
    idea_id: int, session: ReaderSession = Depends(get_session_or_404)
) -> dict[str, Any]:
    try:
        result = await session.machine.delete_idea(idea_id)
    except InvalidTransition as e:
        raise _conflict(e)
    return _action_response(session, result)


@router.delete("/{session_id}/underline")
async def delete_underline(
    session: ReaderSession = Depends(get_session_or_404),
) -> dict[str, Any]:
    """Delete the underline selected in the bubble or shown in the idea popup."""
    try:
        result = await session.machine.delete_underline()
    except InvalidTransition as e:
        raise _conflict(e)
    return _action_response(session, result)


@router.post("/{session_id}/meaning")
async def request_meaning(
    payload: MeaningRequest, session: ReaderSession = Depends(get_session_or_404)
) -> dict[str, Any]:
    try:
        result = await session.machine.request_meaning(payload.target_language)
    except InvalidTransition as e:
        raise _conflict(e)
    return _action_response(session, result)
