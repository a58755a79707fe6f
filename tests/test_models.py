"""
Unit tests for the address, underline and interaction models.
"""

import pytest
from pydantic import TypeAdapter

from reader_annotations.errors import NetworkError
from reader_annotations.models.addresses import (
    DocumentAddress,
    DocumentKind,
    PageOffset,
    ParagraphOffset,
    ReflowPosition,
    address_from_row,
    address_to_payload,
)
from reader_annotations.models.geometry import ChapterView, PageView, ViewWindow
from reader_annotations.models.interaction import (
    IDLE,
    ActionResult,
    InteractionPhase,
    InteractionState,
)
from reader_annotations.models.underlines import Idea, Underline


class TestDocumentKind:
    @pytest.mark.parametrize(
        "kind, collection, underline_prefix, idea_prefix",
        [
            (DocumentKind.DOCUMENT, "documents", "underlines", "ideas"),
            (DocumentKind.EBOOK, "ebooks", "ebook-underlines", "ebook-ideas"),
            (DocumentKind.MAGAZINE, "magazines", "magazine-underlines", "magazine-ideas"),
            (DocumentKind.NOTE, "notes", "note-underlines", "note-ideas"),
        ],
    )
    def test_route_names(self, kind, collection, underline_prefix, idea_prefix):
        assert kind.collection == collection
        assert kind.underline_prefix == underline_prefix
        assert kind.idea_prefix == idea_prefix


class TestAddressPayloads:
    def test_paragraph_payload(self):
        address = ParagraphOffset(
            chapter_index=2, paragraph_index=5, start_offset=3, end_offset=9
        )

        payload = address_to_payload(address)

        assert payload == {
            "start_offset": 3,
            "end_offset": 9,
            "chapter_index": 2,
            "paragraph_index": 5,
        }
        assert address_from_row(payload) == address

    def test_page_payload(self):
        address = PageOffset(page_number=7, start_offset=0, end_offset=4)

        assert address_from_row(address_to_payload(address)) == address

    def test_reflow_payload(self):
        address = ReflowPosition(range_id="epubcfi(/6/2!/4/1:0)")

        assert address_to_payload(address) == {"cfi_range": "epubcfi(/6/2!/4/1:0)"}
        assert address_from_row({"cfi_range": "epubcfi(/6/2!/4/1:0)"}) == address

    def test_tagged_union_parses_by_kind(self):
        adapter = TypeAdapter(DocumentAddress)

        parsed = adapter.validate_python(
            {"kind": "page", "page_number": 1, "start_offset": 0, "end_offset": 3}
        )

        assert isinstance(parsed, PageOffset)

    def test_view_window_parses_by_kind(self):
        adapter = TypeAdapter(ViewWindow)

        assert isinstance(adapter.validate_python({"kind": "page", "page_number": 2}), PageView)
        assert isinstance(adapter.validate_python({"kind": "chapter"}), ChapterView)


class TestUnderlineRows:
    def test_from_api_row(self):
        underline = Underline.from_api(
            {
                "id": 4,
                "text": "gravity",
                "page_number": 3,
                "start_offset": 10,
                "end_offset": 17,
                "idea_count": 2,
                "created_at": "2024-01-01T00:00:00",
            },
            document_id=8,
        )

        assert underline.document_id == 8
        assert underline.address == PageOffset(page_number=3, start_offset=10, end_offset=17)
        assert underline.idea_count == 2

    def test_negative_idea_count_clamped(self):
        underline = Underline.from_api(
            {"id": 1, "text": "x", "cfi_range": "cfi", "idea_count": -3}, document_id=1
        )

        assert underline.idea_count == 0

    def test_idea_from_api_falls_back_to_owner(self):
        idea = Idea.from_api({"id": 3, "content": "note"}, underline_id=9)

        assert idea.underline_id == 9


class TestInteractionState:
    def test_idle_hides_everything(self):
        assert IDLE.phase is InteractionPhase.IDLE
        assert not IDLE.bubble_visible
        assert not IDLE.popup_visible

    def test_to_dict(self):
        state = InteractionState(
            phase=InteractionPhase.IDEA_LIST_OPEN,
            text="gravity",
            address=ParagraphOffset(paragraph_index=0, start_offset=0, end_offset=7),
            underline_id=1,
            idea_count=1,
            ideas=(Idea(id=2, underline_id=1, content="note"),),
        )

        data = state.to_dict()

        assert data["phase"] == "idea_list_open"
        assert data["popup_visible"] is True
        assert data["bubble_visible"] is False
        assert data["address"]["kind"] == "paragraph"
        assert data["ideas"][0]["content"] == "note"

    def test_action_result(self):
        ok = ActionResult.success(5)
        failed = ActionResult.failure(NetworkError("boom"))

        assert ok.ok and ok.value == 5 and ok.error_message is None
        assert not failed.ok and failed.error_message == "boom"
