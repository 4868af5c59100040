"""Decision oracle transport.

OracleClient is the seam between the engine and whatever model produces
decisions. The adapter only needs "prompt in, JSON text out".
"""

import asyncio
from abc import ABC, abstractmethod

from google import genai
from google.genai import types

from trader.config import OracleSettings
from trader.exceptions import OracleError
from trader.logging import get_logger

logger = get_logger(__name__)


class OracleClient(ABC):
    """Abstract base class for decision oracle transports."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Send the prompt and return the raw response text.

        Raises:
            OracleError: On any transport or model failure.
        """
        ...


class GeminiOracleClient(OracleClient):
    """Gemini model client requesting JSON-only responses.

    Args:
        settings: API key, model name and timeout.
    """

    def __init__(self, settings: OracleSettings) -> None:
        self._settings = settings
        self._client = genai.Client(
            api_key=settings.api_key.get_secret_value(),
            http_options=types.HttpOptions(timeout=int(settings.timeout_seconds * 1000)),
        )
        self._config = types.GenerateContentConfig(response_mime_type="application/json")

    async def generate(self, prompt: str) -> str:
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._settings.model,
                    contents=prompt,
                    config=self._config,
                ),
                timeout=self._settings.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise OracleError(
                f"Oracle timed out after {self._settings.timeout_seconds}s"
            ) from e
        except Exception as e:
            raise OracleError(f"Oracle request failed: {e}") from e

        text = response.text
        if not text:
            raise OracleError("Oracle returned an empty response")
        return text
