"""Generative-AI relay used to answer free-text Telegram messages."""
import logging
from typing import Any

import httpx

from core.config import Settings
from services.exceptions import AIRelayError

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, I could not generate a response."


def extract_reply_text(data: Any) -> str | None:
    """Return candidates[0].content.parts[0].text from a Gemini response, if present."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text else None


class GeminiClient:
    """Minimal client for the Gemini generateContent endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str,
        api_base: str,
        temperature: float = 0.7,
        max_output_tokens: int = 1000,
        timeout: float = 10.0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiClient":
        """
        Build a client from settings.

        Raises:
            MissingConfigError: If GEMINI_API_KEY is not configured.
        """
        return cls(
            api_key=settings.require("gemini_api_key"),
            model=settings.gemini_model,
            api_base=settings.gemini_api_base,
            temperature=settings.ai_temperature,
            max_output_tokens=settings.ai_max_output_tokens,
            timeout=settings.http_timeout,
        )

    async def complete(self, prompt: str) -> str:
        """
        Send the prompt as the only content and return the first candidate's text.

        An empty or unexpectedly shaped response yields FALLBACK_REPLY.

        Raises:
            AIRelayError: If the request fails or returns a non-2xx status.
        """
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.api_base}/models/{self.model}:generateContent",
                    params={"key": self.api_key},
                    json=payload,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise AIRelayError(f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise AIRelayError(str(e) or type(e).__name__) from e

        try:
            data = response.json()
        except ValueError:
            logger.warning("Gemini returned a non-JSON body")
            return FALLBACK_REPLY

        text = extract_reply_text(data)
        if text is None:
            logger.warning("Unexpected Gemini response shape: %s", data)
            return FALLBACK_REPLY
        return text
