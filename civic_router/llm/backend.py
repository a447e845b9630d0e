import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from civic_router.exceptions import (
    APIKeyMissingError,
    RateLimitedError,
    ServiceUnavailableError,
    TransportError,
)

logger = logging.getLogger(__name__)

RETRYABLE_SERVER_CODES = frozenset({500, 502, 503, 504})


@dataclass
class Completion:
    """
    Vendor-neutral view of one model response.

    Attributes:
        text: Answer text (None when the model produced no content)
        finish_reason: Normalized upper-case reason, e.g. "STOP", "MAX_TOKENS", "SAFETY"
        block_reason: Set when the prompt itself was refused
    """
    text: Optional[str]
    finish_reason: Optional[str] = None
    block_reason: Optional[str] = None


class CompletionBackend(ABC):
    """Text completion with optional live web-search grounding."""

    @abstractmethod
    async def generate(self, prompt: str, use_search: bool) -> Completion:
        """
        Send one prompt and return the raw completion.

        Must raise RateLimitedError / ServiceUnavailableError for retryable
        transport failures and TransportError for everything else upstream.
        """
        pass


def _enum_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    name = getattr(value, "name", None)
    return str(name if name else value).upper()


def map_api_error(error: genai_errors.APIError) -> TransportError:
    """Classify an SDK error: 429 and 5xx are retryable, everything else is not."""
    code = getattr(error, "code", None)
    if code == 429:
        return RateLimitedError(f"Gemini rate limit: {error}")
    if code in RETRYABLE_SERVER_CODES:
        return ServiceUnavailableError(f"Gemini unavailable ({code}): {error}")
    return TransportError(f"Gemini API error ({code}): {error}", last_reason=f"http_{code}")


def extract_text_from_gemini_response(response: Any) -> Optional[str]:
    """
    Join the answer text parts of a Gemini response, skipping thought parts.

    Thinking models prepend thought parts (thought=True) that must never reach
    the JSON parser. Grounded answers can arrive split over several text parts,
    so the remaining parts are joined; if the model emitted two JSON objects
    back to back, the parser keeps only the first balanced block.

    Returns None when there is no candidate, no content, or no text part.
    """
    candidates = getattr(response, "candidates", None)
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    if content is None or not getattr(content, "parts", None):
        return None

    texts = []
    for part in content.parts:
        # thought can be True, False or None; only True marks a reasoning trace
        if getattr(part, "thought", False) is True:
            continue
        text = getattr(part, "text", None)
        if isinstance(text, str) and text.strip():
            texts.append(text)
    return "".join(texts) if texts else None


class GeminiBackend(CompletionBackend):
    """
    Gemini via the google-genai SDK (async surface).

    Search grounding attaches the GoogleSearch tool. response_schema is not
    used: Gemini rejects JSON mode combined with tools, so shape enforcement
    happens in the gateway instead.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_id: str = "gemini-2.0-flash",
        temperature: float = 0.3,
        max_output_tokens: int = 1024,
        client: Any = None,
    ):
        if client is None:
            if not api_key:
                raise APIKeyMissingError(
                    "GeminiBackend requires an API key. "
                    "Pass api_key or set GEMINI_API_KEY environment variable."
                )
            client = genai.Client(api_key=api_key)
        self.client = client
        self.model_id = model_id
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    @classmethod
    def from_config(cls, config: dict[str, Any], api_key: str | None = None, client: Any = None) -> "GeminiBackend":
        gemini_config = config.get("llm", {}).get("gemini", {})
        return cls(
            api_key=api_key,
            model_id=gemini_config.get("model", "gemini-2.0-flash"),
            temperature=gemini_config.get("temperature", 0.3),
            max_output_tokens=gemini_config.get("max_output_tokens", 1024),
            client=client,
        )

    def _build_config(self, use_search: bool) -> types.GenerateContentConfig:
        tools = [types.Tool(google_search=types.GoogleSearch())] if use_search else None
        return types.GenerateContentConfig(
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            tools=tools,
        )

    async def generate(self, prompt: str, use_search: bool) -> Completion:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_id,
                contents=prompt,
                config=self._build_config(use_search),
            )
        except genai_errors.APIError as e:
            raise map_api_error(e) from e
        except httpx.TransportError as e:
            raise ServiceUnavailableError(f"Gemini network error: {e}") from e

        block_reason = None
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None:
            block_reason = _enum_name(getattr(feedback, "block_reason", None))

        finish_reason = None
        candidates = getattr(response, "candidates", None)
        if candidates:
            finish_reason = _enum_name(getattr(candidates[0], "finish_reason", None))

        return Completion(
            text=extract_text_from_gemini_response(response),
            finish_reason=finish_reason,
            block_reason=block_reason,
        )
