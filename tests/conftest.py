"""
Shared fixtures: an in-memory Content API mounted on ``httpx.MockTransport``.
"""

import asyncio
import json
from datetime import datetime

import httpx
import pytest

from reader_annotations.config import AnnotationSettings
from reader_annotations.models.addresses import DocumentKind, DocumentRef
from reader_annotations.services.content_api_client import ContentApiClient
from reader_annotations.services.idea_thread_manager import IdeaThreadManager
from reader_annotations.services.underline_store import UnderlineStore

API_BASE_URL = "http://content.test/api"
TOKEN = "reader-token"


class FakeContentApi:
    """
    Minimal stand-in for the Content API underline and idea routes.

    Set ``fail_status`` to make every request fail with that status, or call
    ``hold()`` to park requests until ``release()``.
    """

    def __init__(self):
        self.underlines: dict[int, dict] = {}
        self.ideas: dict[int, dict] = {}
        self.requests: list[tuple[str, str]] = []
        self.fail_status: int | None = None
        self._next_id = 1
        self._gate: asyncio.Event | None = None
        self.arrived: asyncio.Event | None = None

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def hold(self) -> None:
        self._gate = asyncio.Event()
        self.arrived = asyncio.Event()

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()

    def _new_id(self) -> int:
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def _now(self) -> str:
        return datetime.now().isoformat()

    def add_underline(self, collection: str, document_id: int, **fields) -> dict:
        """Seed a stored underline row."""
        row = {
            "id": self._new_id(),
            "collection": collection,
            "document_id": document_id,
            "created_at": self._now(),
            **fields,
        }
        self.underlines[row["id"]] = row
        return row

    def add_idea(self, underline_id: int, content: str) -> dict:
        row = {
            "id": self._new_id(),
            "underline_id": underline_id,
            "content": content,
            "created_at": self._now(),
        }
        self.ideas[row["id"]] = row
        return row

    def _underline_row(self, row: dict) -> dict:
        idea_count = sum(1 for i in self.ideas.values() if i["underline_id"] == row["id"])
        return {
            key: value
            for key, value in {**row, "idea_count": idea_count}.items()
            if key != "collection"
        }

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api/")
        self.requests.append((request.method, path))

        if self._gate is not None:
            self.arrived.set()
            await self._gate.wait()

        if request.headers.get("Authorization") != f"Bearer {TOKEN}":
            return httpx.Response(401, json={"error": "Unauthorized"})
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, json={"error": "Failure"})

        body = json.loads(request.content) if request.content else {}
        segments = path.split("/")

        # {collection}/{id}/underlines
        if len(segments) == 3 and segments[2] == "underlines":
            collection, document_id = segments[0], int(segments[1])
            if request.method == "GET":
                rows = [
                    self._underline_row(row)
                    for row in self.underlines.values()
                    if row["collection"] == collection and row["document_id"] == document_id
                ]
                return httpx.Response(200, json=rows)
            if request.method == "POST":
                row = self.add_underline(collection, document_id, **body)
                return httpx.Response(201, json=self._underline_row(row))

        # {prefix}/{id}/ideas
        if len(segments) == 3 and segments[2] == "ideas":
            underline_id = int(segments[1])
            if underline_id not in self.underlines:
                return httpx.Response(404, json={"error": "Underline not found"})
            if request.method == "GET":
                rows = sorted(
                    (i for i in self.ideas.values() if i["underline_id"] == underline_id),
                    key=lambda i: i["id"],
                    reverse=True,
                )
                return httpx.Response(200, json=rows)
            if request.method == "POST":
                return httpx.Response(201, json=self.add_idea(underline_id, body["content"]))

        if len(segments) == 2 and segments[0].endswith("underlines"):
            underline_id = int(segments[1])
            if request.method == "DELETE":
                if self.underlines.pop(underline_id, None) is None:
                    return httpx.Response(404, json={"error": "Underline not found"})
                self.ideas = {
                    k: v for k, v in self.ideas.items() if v["underline_id"] != underline_id
                }
                return httpx.Response(204)

        if len(segments) == 2 and segments[0].endswith("ideas"):
            idea_id = int(segments[1])
            if idea_id not in self.ideas:
                return httpx.Response(404, json={"error": "Idea not found"})
            if request.method == "PATCH":
                self.ideas[idea_id]["content"] = body["content"]
                return httpx.Response(200, json=self.ideas[idea_id])
            if request.method == "DELETE":
                del self.ideas[idea_id]
                return httpx.Response(204)

        return httpx.Response(404, json={"error": "No such route"})


@pytest.fixture
def fake_api():
    return FakeContentApi()


@pytest.fixture
def settings():
    return AnnotationSettings(api_base_url=API_BASE_URL, debounce_seconds=0.01)


@pytest.fixture
def document():
    return DocumentRef(kind=DocumentKind.DOCUMENT, document_id=1)


@pytest.fixture
def client(fake_api):
    return ContentApiClient(API_BASE_URL, token=TOKEN, transport=fake_api.transport)


@pytest.fixture
def anonymous_client(fake_api):
    return ContentApiClient(API_BASE_URL, token=None, transport=fake_api.transport)


@pytest.fixture
def store(client, document):
    return UnderlineStore(client, document)


@pytest.fixture
def ideas(client, store):
    return IdeaThreadManager(client, store)
