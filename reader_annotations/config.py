"""
Annotation Engine Configuration

Settings are read through pydantic-settings with module-level defaults. Every
field can be overridden through a ``READER_ANNOTATIONS_<FIELD>`` environment
variable; consumers call ``get_settings()`` for a cached instance, tests build
``AnnotationSettings`` directly.
"""

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ENV_PREFIX = "READER_ANNOTATIONS_"

# Content API defaults
DEFAULT_API_BASE_URL = "http://localhost:3000/api"
DEFAULT_REQUEST_TIMEOUT = 30.0

# Selection settling window used by all reader variants
DEFAULT_DEBOUNCE_SECONDS = 0.3

# Limits enforced by the Content API; checked locally before any request
MAX_UNDERLINE_TEXT_LENGTH = 5000
MAX_IDEA_CONTENT_LENGTH = 10000

# Meaning service defaults (LM Studio compatible endpoint)
DEFAULT_MEANING_BASE_URL = "http://localhost:1234/v1"
DEFAULT_MEANING_API_KEY = "not-needed"
DEFAULT_MEANING_MODEL = ""
DEFAULT_TARGET_LANGUAGE = "en"


class AnnotationSettings(BaseSettings):
    """Runtime settings for one engine process"""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore")

    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    debounce_seconds: float = Field(default=DEFAULT_DEBOUNCE_SECONDS, ge=0)
    max_text_length: int = Field(default=MAX_UNDERLINE_TEXT_LENGTH, gt=0)
    max_idea_length: int = Field(default=MAX_IDEA_CONTENT_LENGTH, gt=0)

    meaning_base_url: str = DEFAULT_MEANING_BASE_URL
    meaning_api_key: str = DEFAULT_MEANING_API_KEY
    meaning_model: str = DEFAULT_MEANING_MODEL
    target_language: str = DEFAULT_TARGET_LANGUAGE


@lru_cache
def get_settings() -> AnnotationSettings:
    """Return the process-wide settings, read once from the environment."""
    settings = AnnotationSettings()
    logger.info(f"Loaded settings, Content API at {settings.api_base_url}")
    return settings
