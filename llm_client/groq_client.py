"""Groq API client (async, buffered and streaming chat completions)"""

import logging
import os
from typing import AsyncIterator, Optional, TypedDict

from .exceptions import RateLimitError, APIKeyError, LLMError, ModelError, StreamInterruptedError

logger = logging.getLogger(__name__)


class Message(TypedDict):
    """A role-tagged chat message"""
    role: str
    content: str


def _translate_error(e: Exception) -> LLMError:
    """Map a Groq SDK exception onto the client exception hierarchy"""
    import groq

    status_code = getattr(e, "status_code", None)
    if isinstance(e, (groq.AuthenticationError, groq.PermissionDeniedError)):
        return APIKeyError("Invalid API key", status_code=status_code)
    if isinstance(e, groq.RateLimitError):
        retry_after = 60
        header = e.response.headers.get("retry-after") if e.response is not None else None
        if header and header.isdigit():
            retry_after = int(header)
        return RateLimitError("API rate limit exceeded", retry_after=retry_after)
    return LLMError(f"Groq API error: {e}", status_code=status_code)


class GroqClient:
    """Client for Groq API

    Requests are issued once; failures are translated and raised, never retried.
    """

    DEFAULT_MODEL = "llama-3.3-70b-versatile"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """Initialize the Groq client

        Args:
            api_key: Groq API key. If not provided, reads from GROQ_API_KEY env var.
            model: Model identifier (defaults to DEFAULT_MODEL)

        Raises:
            APIKeyError: If no API key is provided or found in environment
        """
        self.api_key = api_key or os.getenv("GROQ_API_KEY")
        if not self.api_key:
            raise APIKeyError(
                "GROQ_API_KEY not found. Set it as an environment variable or pass it to the constructor."
            )
        self.model = model or self.DEFAULT_MODEL
        self._client = None

    def _get_client(self):
        """Lazy initialization of the async Groq client"""
        if self._client is None:
            from groq import AsyncGroq
            self._client = AsyncGroq(api_key=self.api_key)
        return self._client

    async def get_response(
        self,
        messages: list[Message],
        max_tokens: int = 200,
        temperature: Optional[float] = None,
        json_mode: bool = False,
    ) -> str:
        """Get one completed message from Groq API

        Args:
            messages: Ordered role-tagged messages
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature (provider default when None)
            json_mode: Ask the provider for a JSON object response

        Returns:
            Response text (empty string when the provider sent no content)

        Raises:
            APIKeyError: If the provider rejects the credential
            RateLimitError: If rate limited
            LLMError: For other API errors
        """
        client = self._get_client()
        kwargs = {}
        if temperature is not None:
            kwargs["temperature"] = temperature
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                stream=False,
                **kwargs,
            )
        except Exception as e:
            logger.error("Groq completion failed: %s", e)
            raise _translate_error(e) from e

        try:
            choices = response.choices
            if not choices:
                raise ModelError("Groq returned no choices")
            return choices[0].message.content or ""
        except AttributeError as e:
            raise ModelError(f"Malformed Groq response: {e}") from e

    async def stream_response(
        self,
        messages: list[Message],
        max_tokens: int = 200,
        temperature: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """Stream a completion as ordered text fragments

        Empty deltas are skipped; the concatenation of the yielded fragments
        is the completed text.

        Raises:
            APIKeyError: If the provider rejects the credential
            RateLimitError: If rate limited
            StreamInterruptedError: If the stream fails after fragments were yielded
            LLMError: For other API errors
        """
        client = self._get_client()
        kwargs = {}
        if temperature is not None:
            kwargs["temperature"] = temperature

        delivered = 0
        try:
            stream = await client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                stream=True,
                **kwargs,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                piece = chunk.choices[0].delta.content or ""
                if piece:
                    delivered += 1
                    yield piece
        except LLMError:
            raise
        except Exception as e:
            logger.error("Groq stream failed after %d fragments: %s", delivered, e)
            error = _translate_error(e)
            if delivered and not isinstance(error, APIKeyError):
                raise StreamInterruptedError(str(error), delivered, error.status_code) from e
            raise error from e
