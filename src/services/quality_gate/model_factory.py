"""Model construction for the listing generator.

``LLM_PROVIDER`` picks the backend. Azure OpenAI is used only when its
endpoint, key and API version are all set; otherwise Gemini is used and must
have an API key. Image requests go to the multimodal model.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic_ai.models import Model
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider

from core.config import Settings, get_settings


if TYPE_CHECKING:
    from httpx import AsyncClient

logger = logging.getLogger(__name__)


class ModelConfigurationError(ValueError):
    """No usable generative provider is configured."""


def _azure_configured(settings: Settings) -> bool:
    if settings.LLM_PROVIDER != "azure_openai":
        return False
    if (
        settings.AZURE_OPENAI_ENDPOINT
        and settings.AZURE_OPENAI_API_KEY
        and settings.AZURE_OPENAI_API_VERSION
    ):
        return True
    logger.warning(
        "LLM_PROVIDER=azure_openai but credentials missing, falling back to Gemini"
    )
    return False


def _azure_model(
    settings: Settings, deployment: str, http_client: AsyncClient | None
) -> Model:
    from openai import AsyncAzureOpenAI

    # A trailing slash produces //openai/... paths that Azure answers with 404
    client = AsyncAzureOpenAI(
        azure_endpoint=(settings.AZURE_OPENAI_ENDPOINT or "").rstrip("/"),
        api_key=settings.AZURE_OPENAI_API_KEY,
        api_version=settings.AZURE_OPENAI_API_VERSION,
        http_client=http_client,
    )
    return OpenAIChatModel(deployment, provider=OpenAIProvider(openai_client=client))


def _gemini_model(
    settings: Settings, model_name: str, http_client: AsyncClient | None
) -> Model:
    if not settings.GEMINI_API_KEY:
        raise ModelConfigurationError(
            "No valid LLM provider configured. Either set Azure OpenAI "
            "credentials (AZURE_OPENAI_ENDPOINT + AZURE_OPENAI_API_KEY + "
            "AZURE_OPENAI_API_VERSION) or Gemini credentials (GEMINI_API_KEY)."
        )
    provider = GoogleProvider(api_key=settings.GEMINI_API_KEY, http_client=http_client)
    return GoogleModel(model_name, provider=provider)


def _build_model(model_name: str, http_client: AsyncClient | None) -> Model:
    settings = get_settings()
    if _azure_configured(settings):
        logger.info("Using Azure OpenAI deployment %s", model_name)
        return _azure_model(settings, model_name, http_client)
    logger.info("Using Gemini model %s", model_name)
    return _gemini_model(settings, model_name, http_client)


def get_text_model(http_client: AsyncClient | None = None) -> Model:
    """Model for text-only listing generation."""
    return _build_model(get_settings().TEXT_MODEL, http_client)


def get_multimodal_model(http_client: AsyncClient | None = None) -> Model:
    """Model for requests that carry a reference image."""
    return _build_model(get_settings().MULTIMODAL_MODEL, http_client)
