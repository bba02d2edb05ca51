"""pydantic-ai backed implementation of the `ListingGenerator` protocol."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from httpx import AsyncBaseTransport, AsyncClient, HTTPStatusError
from pydantic_ai import Agent
from pydantic_ai.messages import BinaryContent
from pydantic_ai.models import Model
from pydantic_ai.retries import AsyncTenacityTransport, RetryConfig, wait_retry_after
from pydantic_ai.settings import ModelSettings
from tenacity import retry_if_exception_type, stop_after_attempt, wait_exponential

from core.config import get_settings
from services.quality_gate.exceptions import ProviderError
from services.quality_gate.model_factory import get_multimodal_model, get_text_model
from services.quality_gate.models import GenerationRequest
from services.quality_gate.prompts import SYSTEM_PROMPT


logger = logging.getLogger(__name__)

# Status codes worth retrying inside one attempt, before the gate spends another
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})


def create_resilient_http_client(
    wrapped: AsyncBaseTransport | None = None,
) -> AsyncClient:
    """HTTP client that retries rate limits and gateway errors with backoff.

    A ``Retry-After`` header wins over the exponential fallback. ``wrapped`` is
    the transport that actually sends requests (httpx's default when None).
    """

    def should_retry_status(response: Any) -> None:
        if response.status_code in RETRYABLE_STATUS_CODES:
            response.raise_for_status()

    settings = get_settings()
    transport = AsyncTenacityTransport(
        config=RetryConfig(
            retry=retry_if_exception_type(HTTPStatusError),
            wait=wait_retry_after(
                fallback_strategy=wait_exponential(multiplier=2, min=1, max=30),
                max_wait=60,
            ),
            stop=stop_after_attempt(settings.GENERATION_HTTP_RETRIES),
            reraise=True,
        ),
        wrapped=wrapped,
        validate_response=should_retry_status,
    )
    return AsyncClient(transport=transport, timeout=settings.GENERATION_TIMEOUT)


def _create_text_model() -> Model:
    return get_text_model(http_client=create_resilient_http_client())


def _create_multimodal_model() -> Model:
    return get_multimodal_model(http_client=create_resilient_http_client())


class AgentListingGenerator:
    """Send a `GenerationRequest` to a pydantic-ai agent and return its raw text.

    The agent returns plain text; parsing and scoring are the quality gate's
    job, so no structured output is requested here. Agents are created on
    first use so importing this module never needs API keys.
    """

    def __init__(
        self,
        text_model: Model | Callable[[], Model] = _create_text_model,
        multimodal_model: Model | Callable[[], Model] = _create_multimodal_model,
        model_settings: ModelSettings | None = None,
    ) -> None:
        self._model_sources = {False: text_model, True: multimodal_model}
        self._agents: dict[bool, Agent[None, str]] = {}
        self._model_settings = model_settings

    def _settings(self) -> ModelSettings:
        if self._model_settings is None:
            settings = get_settings()
            self._model_settings = ModelSettings(
                temperature=settings.GENERATION_TEMPERATURE,
                max_tokens=settings.GENERATION_MAX_OUTPUT_TOKENS,
            )
        return self._model_settings

    def _agent(self, multimodal: bool) -> Agent[None, str]:
        agent = self._agents.get(multimodal)
        if agent is None:
            source = self._model_sources[multimodal]
            model = source if isinstance(source, Model) else source()
            agent = Agent(model, output_type=str, system_prompt=SYSTEM_PROMPT)
            self._agents[multimodal] = agent
        return agent

    async def generate(self, request: GenerationRequest) -> str:
        user_prompt: str | list[str | BinaryContent] = request.prompt
        if request.image_data is not None:
            user_prompt = [
                request.prompt,
                BinaryContent(
                    data=request.image_data,
                    media_type=request.image_media_type or "image/jpeg",
                ),
            ]

        try:
            agent = self._agent(request.is_multimodal)
            result = await agent.run(user_prompt, model_settings=self._settings())
        except ProviderError:
            raise
        except Exception as e:
            logger.warning(
                "Listing generation call failed for %s: %s",
                request.domain,
                e.__class__.__name__,
            )
            raise ProviderError(
                f"Generative provider call failed: {e.__class__.__name__}"
            ) from e

        output = result.output
        if not output or not output.strip():
            raise ProviderError("Generative provider returned an empty response")
        logger.debug("Generated %d characters for %s", len(output), request.domain)
        return output
