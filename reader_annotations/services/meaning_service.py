"""
Meaning Service

Explains a selected word or phrase in the context of its paragraph using an
OpenAI-compatible chat endpoint (LM Studio by default). The explanation is
informational only and never becomes part of an underline.
"""

import logging

from openai import AsyncOpenAI, OpenAIError

from ..config import AnnotationSettings
from ..errors import NetworkError, ValidationError

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {
    "en": "English",
    "zh": "Chinese",
}

SYSTEM_PROMPT = (
    "You are a reading assistant. Explain the meaning of the selected text as it "
    "is used in the given paragraph. Answer in {language}, in two or three short "
    "sentences, without repeating the paragraph."
)


class MeaningService:
    def __init__(self, settings: AnnotationSettings, client: AsyncOpenAI | None = None):
        self.model = settings.meaning_model
        self.default_language = settings.target_language
        self.client = client or AsyncOpenAI(
            base_url=settings.meaning_base_url, api_key=settings.meaning_api_key
        )

    def build_messages(
        self, text: str, paragraph: str, target_language: str
    ) -> list[dict[str, str]]:
        language = LANGUAGE_NAMES.get(target_language, target_language)
        return [
            {"role": "system", "content": SYSTEM_PROMPT.format(language=language)},
            {
                "role": "user",
                "content": f"Paragraph:\n{paragraph}\n\nSelected text:\n{text}",
            },
        ]

    async def explain(
        self, text: str, paragraph: str | None = None, target_language: str | None = None
    ) -> str:
        """
        Explain ``text`` as used in ``paragraph``.

        Args:
            text: Selected text
            paragraph: Surrounding paragraph; falls back to the text itself
            target_language: Answer language code, defaults to the configured one

        Returns:
            str: Free-text explanation

        Raises:
            ValidationError: Empty selection
            NetworkError: The LLM endpoint failed
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Nothing selected to explain")

        messages = self.build_messages(
            text,
            (paragraph or "").strip() or text,
            target_language or self.default_language,
        )
        try:
            response = await self.client.chat.completions.create(
                model=self.model, messages=messages
            )
        except OpenAIError as e:
            logger.error(f"Meaning request failed: {e}")
            raise NetworkError(f"Meaning request failed: {e}") from e

        meaning = (response.choices[0].message.content or "").strip()
        logger.info(f"Explained selection of {len(text)} characters")
        return meaning
