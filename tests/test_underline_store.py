"""
Unit tests for UnderlineStore.

Tests cover:
- Create, list and delete against the Content API
- Local validation before any request
- Failed requests leave the collection unchanged
- Address ordering and listener snapshots
- Signed-out readers and closed documents
"""

import pytest

from reader_annotations.errors import NetworkError, NotFoundError, ValidationError
from reader_annotations.models.addresses import (
    DocumentKind,
    DocumentRef,
    PageOffset,
    ParagraphOffset,
    ReflowPosition,
)
from reader_annotations.services.underline_store import UnderlineStore


def paragraph(start, end, paragraph_index=0, chapter_index=0):
    return ParagraphOffset(
        chapter_index=chapter_index,
        paragraph_index=paragraph_index,
        start_offset=start,
        end_offset=end,
    )


@pytest.mark.asyncio
async def test_create_underline_persists_and_adds(store, fake_api):
    underline = await store.create_underline("gravity", paragraph(0, 7, paragraph_index=3))

    assert underline.idea_count == 0
    assert underline.document_id == 1
    assert store.underlines == [underline]

    row = fake_api.underlines[underline.id]
    assert row["text"] == "gravity"
    assert row["paragraph_index"] == 3
    assert (row["start_offset"], row["end_offset"]) == (0, 7)
    assert fake_api.requests == [("POST", "documents/1/underlines")]


@pytest.mark.asyncio
async def test_reflow_underline_uses_kind_routes(fake_api, client):
    store = UnderlineStore(client, DocumentRef(kind=DocumentKind.EBOOK, document_id=9))

    underline = await store.create_underline("gravity", ReflowPosition(range_id="cfi-1"))
    await store.delete_underline(underline.id)

    assert fake_api.requests == [
        ("POST", "ebooks/9/underlines"),
        ("DELETE", f"ebook-underlines/{underline.id}"),
    ]


@pytest.mark.asyncio
async def test_underlines_kept_in_address_order(store):
    later = await store.create_underline("is weak", paragraph(29, 36))
    first = await store.create_underline("gravity", paragraph(0, 7))
    next_paragraph = await store.create_underline("light", paragraph(0, 5, paragraph_index=1))

    assert [u.id for u in store.underlines] == [first.id, later.id, next_paragraph.id]


@pytest.mark.asyncio
async def test_page_underlines_ordered_by_page_then_offset(fake_api, client):
    store = UnderlineStore(client, DocumentRef(kind=DocumentKind.MAGAZINE, document_id=2))

    page_two = await store.create_underline("b", PageOffset(page_number=2, start_offset=0, end_offset=1))
    page_one_late = await store.create_underline("c", PageOffset(page_number=1, start_offset=9, end_offset=10))
    page_one = await store.create_underline("a", PageOffset(page_number=1, start_offset=0, end_offset=1))

    assert [u.id for u in store.underlines] == [page_one.id, page_one_late.id, page_two.id]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "text, address",
    [
        ("", paragraph(0, 7)),
        ("   ", paragraph(0, 7)),
        ("gravity", paragraph(7, 7)),
        ("gravity", paragraph(7, 3)),
        ("x" * 5001, paragraph(0, 5001)),
    ],
)
async def test_invalid_underline_rejected_without_request(store, fake_api, text, address):
    with pytest.raises(ValidationError):
        await store.create_underline(text, address)

    assert fake_api.requests == []
    assert store.underlines == []


@pytest.mark.asyncio
async def test_failed_create_leaves_collection_unchanged(store, fake_api):
    fake_api.fail_status = 500

    with pytest.raises(NetworkError) as exc_info:
        await store.create_underline("gravity", paragraph(0, 7))

    assert exc_info.value.status_code == 500
    assert store.underlines == []


@pytest.mark.asyncio
async def test_delete_removes_only_after_success(store, fake_api):
    underline = await store.create_underline("gravity", paragraph(0, 7))

    fake_api.fail_status = 503
    with pytest.raises(NetworkError):
        await store.delete_underline(underline.id)
    assert store.get(underline.id) is not None

    fake_api.fail_status = None
    await store.delete_underline(underline.id)
    assert store.get(underline.id) is None
    assert underline.id not in fake_api.underlines


@pytest.mark.asyncio
async def test_delete_unknown_underline_reports_not_found(store):
    with pytest.raises(NotFoundError):
        await store.delete_underline(404)


@pytest.mark.asyncio
async def test_list_underlines_loads_sorted_rows(store, fake_api):
    late = fake_api.add_underline(
        "documents", 1, text="is weak", paragraph_index=0, start_offset=29, end_offset=36
    )
    early = fake_api.add_underline(
        "documents", 1, text="gravity", paragraph_index=0, start_offset=0, end_offset=7
    )
    fake_api.add_underline(
        "documents", 2, text="other", paragraph_index=0, start_offset=0, end_offset=5
    )
    fake_api.add_idea(early["id"], "Mass curves spacetime")

    underlines = await store.list_underlines()

    assert [u.id for u in underlines] == [early["id"], late["id"]]
    assert underlines[0].idea_count == 1
    assert underlines[0].address == paragraph(0, 7)


@pytest.mark.asyncio
async def test_list_underlines_signed_out_is_empty(anonymous_client, document, fake_api):
    store = UnderlineStore(anonymous_client, document)

    assert await store.list_underlines() == []
    assert fake_api.requests == []


@pytest.mark.asyncio
async def test_listeners_receive_snapshots(store):
    snapshots = []
    store.add_listener(snapshots.append)

    underline = await store.create_underline("gravity", paragraph(0, 7))
    store.bump_idea_count(underline.id, +1)
    await store.delete_underline(underline.id)

    assert [len(s) for s in snapshots] == [1, 1, 0]
    assert snapshots[1][0].idea_count == 1


@pytest.mark.asyncio
async def test_bump_idea_count_never_negative(store):
    underline = await store.create_underline("gravity", paragraph(0, 7))

    updated = store.bump_idea_count(underline.id, -1)

    assert updated.idea_count == 0
    assert store.bump_idea_count(999, +1) is None


@pytest.mark.asyncio
async def test_result_arriving_after_close_is_dropped(store, fake_api):
    store.close()

    underline = await store.create_underline("gravity", paragraph(0, 7))

    assert underline.id in fake_api.underlines
    assert store.underlines == []
    assert await store.list_underlines() == []
