"""
Unit tests for MeaningService (LLM client mocked).
"""

from unittest.mock import AsyncMock, Mock

import pytest
from openai import OpenAIError

from reader_annotations.config import AnnotationSettings
from reader_annotations.errors import NetworkError, ValidationError
from reader_annotations.services.meaning_service import MeaningService


def mock_llm(content="  The force that attracts masses.  "):
    client = Mock()
    response = Mock()
    response.choices = [Mock(message=Mock(content=content))]
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


@pytest.fixture
def settings():
    return AnnotationSettings(meaning_model="local-model", target_language="en")


@pytest.mark.asyncio
async def test_explain_returns_stripped_answer(settings):
    client = mock_llm()
    service = MeaningService(settings, client=client)

    meaning = await service.explain("gravity", "gravity bends light.")

    assert meaning == "The force that attracts masses."
    kwargs = client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "local-model"
    assert "English" in kwargs["messages"][0]["content"]
    assert "gravity bends light." in kwargs["messages"][1]["content"]


@pytest.mark.asyncio
async def test_explain_uses_requested_language(settings):
    client = mock_llm()
    service = MeaningService(settings, client=client)

    await service.explain("gravity", target_language="zh")

    messages = client.chat.completions.create.await_args.kwargs["messages"]
    assert "Chinese" in messages[0]["content"]
    # Without a paragraph the selection is its own context
    assert messages[1]["content"] == "Paragraph:\ngravity\n\nSelected text:\ngravity"


@pytest.mark.asyncio
async def test_empty_selection_rejected(settings):
    client = mock_llm()
    service = MeaningService(settings, client=client)

    with pytest.raises(ValidationError):
        await service.explain("   ")
    client.chat.completions.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_llm_failure_becomes_network_error(settings):
    client = mock_llm()
    client.chat.completions.create.side_effect = OpenAIError("connection refused")
    service = MeaningService(settings, client=client)

    with pytest.raises(NetworkError):
        await service.explain("gravity")


@pytest.mark.asyncio
async def test_empty_answer_is_empty_string(settings):
    service = MeaningService(settings, client=mock_llm(content=None))

    assert await service.explain("gravity") == ""
