"""
Services Package

This package contains the annotation engine services: anchor resolution,
underline and idea persistence through the Content API, highlight geometry,
the interaction state machine and the per-document session that wires them.
"""

from .anchor_resolver import AnchorResolver, ResolvedAnchor
from .content_api_client import ContentApiClient
from .debouncer import Debouncer
from .highlight_renderer import HighlightRenderer, split_into_segments
from .idea_thread_manager import IdeaThreadManager
from .interaction_machine import AnnotationInteractionMachine
from .meaning_service import MeaningService
from .reader_session import ReaderSession
from .session_registry import SessionRegistry
from .underline_store import UnderlineStore

__all__ = [
    "AnchorResolver",
    "ResolvedAnchor",
    "ContentApiClient",
    "Debouncer",
    "HighlightRenderer",
    "split_into_segments",
    "IdeaThreadManager",
    "AnnotationInteractionMachine",
    "MeaningService",
    "ReaderSession",
    "SessionRegistry",
    "UnderlineStore",
]
