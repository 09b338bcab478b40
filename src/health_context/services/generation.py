"""Generation service client.

The engine only needs "given a prompt, return a text completion". The
protocol keeps retrieval code independent of the provider; the Gemini
implementation is what production wires in.
"""

from typing import Protocol, runtime_checkable

import httpx
import structlog
from google import genai
from google.genai import errors as genai_errors

from health_context.core.config import Settings, settings

logger = structlog.get_logger()


class GenerationServiceError(Exception):
    """The generation service could not produce a completion."""


@runtime_checkable
class GenerationClient(Protocol):
    """Anything that turns a prompt into text."""

    async def generate(self, prompt: str) -> str: ...


class GeminiGenerationClient:
    """GenerationClient backed by the google-genai async API."""

    def __init__(self, api_key: str, model: str) -> None:
        """Initialize client.

        Args:
            api_key: Gemini API key
            model: Model name, e.g. gemini-2.5-flash
        """
        self.model = model
        self._client = genai.Client(api_key=api_key)
        self.logger = logger.bind(service="generation", model=model)

    async def generate(self, prompt: str) -> str:
        """Send a prompt and return the completion text.

        Raises:
            GenerationServiceError: On API, transport or empty-response failures
        """
        self.logger.debug("Calling generation service", prompt_chars=len(prompt))
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
            )
        except genai_errors.APIError as e:
            raise GenerationServiceError(f"Generation API error {e.code}: {e.message}") from e
        except httpx.HTTPError as e:
            raise GenerationServiceError(f"Generation transport error: {e}") from e

        text = response.text
        if not text:
            raise GenerationServiceError("Generation service returned an empty response")
        return text


def create_generation_client(config: Settings = settings) -> GeminiGenerationClient:
    """Build the configured generation client.

    Raises:
        GenerationServiceError: If no API key is configured
    """
    if not config.has_generation_credentials():
        raise GenerationServiceError("GOOGLE_API_KEY must be set to call the generation service")
    return GeminiGenerationClient(api_key=config.google_api_key or "", model=config.generation_model)
