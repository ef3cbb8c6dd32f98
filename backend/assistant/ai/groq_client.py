"""Minimal Groq chat-completions wrapper (OpenAI-compatible API).

One call is one HTTP round trip: no retries, no streaming. Failures are
mapped onto a small exception hierarchy so routers can degrade gracefully.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from assistant.ai.messages import ChatMessage

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEYS = {"your_groq_api_key_here"}


class GroqError(Exception):
    """Base exception for Groq client errors."""


class GroqConfigurationError(GroqError):
    """Raised at construction when no usable API key is configured."""


class GroqTransportError(GroqError):
    """Raised when the request never produced an HTTP response (network, timeout)."""


class GroqUpstreamError(GroqError):
    """Raised when Groq answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Groq API error ({status_code})")
        self.status_code = status_code
        self.body = body


class GroqDecodeError(GroqError):
    """Raised when a success response cannot be parsed."""


class GroqEmptyResponseError(GroqError):
    """Raised when a success response carries no completion choices."""


@dataclass(frozen=True)
class ChatOptions:
    """Per-call generation settings."""

    model: str
    temperature: float = 0.7
    max_tokens: int = 1024


class GroqClient:
    """Thin client for `POST /chat/completions`."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str = "https://api.groq.com/openai/v1",
        timeout_seconds: float = 30.0,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        key = (api_key or "").strip()
        if not key:
            raise GroqConfigurationError("GROQ_API_KEY is not set")
        if key in PLACEHOLDER_API_KEYS:
            raise GroqConfigurationError("GROQ_API_KEY still holds the example placeholder")

        self._api_key = key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.default_options = ChatOptions(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        self._transport = transport

    def __repr__(self) -> str:
        return f"GroqClient(model={self.default_options.model!r}, base_url={self.base_url!r})"

    @property
    def model(self) -> str:
        return self.default_options.model

    async def chat(
        self,
        messages: list[ChatMessage],
        options: ChatOptions | None = None,
    ) -> str:
        """Send the ordered message list and return the first choice's content."""
        opts = options or self.default_options
        body = {
            "model": opts.model,
            "messages": [message.to_payload() for message in messages],
            "temperature": opts.temperature,
            "max_tokens": opts.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=headers,
                    json=body,
                )
        except httpx.TimeoutException as exc:
            raise GroqTransportError(
                f"Groq request timed out after {self.timeout_seconds}s") from exc
        except httpx.DecodingError as exc:
            raise GroqDecodeError("Undecodable response body from Groq") from exc
        except httpx.RequestError as exc:
            raise GroqTransportError(f"Failed to send request: {type(exc).__name__}") from exc

        if not response.is_success:
            raise GroqUpstreamError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise GroqDecodeError("Invalid JSON from Groq") from exc

        return self._parse_response(payload)

    async def quick_chat(self, prompt: str) -> str:
        return await self.chat([ChatMessage.user(prompt)])

    async def chat_with_system(self, system: str, user: str) -> str:
        return await self.chat([ChatMessage.system(system), ChatMessage.user(user)])

    def _parse_response(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            raise GroqDecodeError("Groq response is not a JSON object")

        choices = payload.get("choices")
        if choices is None:
            raise GroqDecodeError("Groq response missing choices")
        if not isinstance(choices, list):
            raise GroqDecodeError("Groq choices is not a list")
        if not choices:
            raise GroqEmptyResponseError("No response from AI")

        try:
            content = choices[0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise GroqDecodeError("Groq choice has no message content") from exc

        if not isinstance(content, str):
            raise GroqDecodeError("Groq message content is not a string")
        if not content.strip():
            raise GroqEmptyResponseError("Empty completion from AI")

        logger.debug("Groq completion received", extra={"model": payload.get("model")})
        return content
