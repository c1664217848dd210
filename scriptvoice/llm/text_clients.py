"""Text-generation provider clients.

Responsibilities:
- Define the `TextGenerationClient` protocol consumed by planning and assembly.
- Provide requests-based Anthropic Messages and OpenAI chat-completions clients.
- Report content-policy refusals with `failure_kind="content_policy"`.
"""

from __future__ import annotations

from typing import Any, Protocol

from .http_client import ProviderError, ProviderHttpClient

DEFAULT_ANTHROPIC_MODEL = "claude-3-7-sonnet-20250219"
DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"


class TextGenerationClient(Protocol):
    """Protocol for single-prompt text-generation services."""

    def complete(self, prompt: str, *, max_tokens: int, temperature: float) -> str:
        """Return generated text for one user prompt."""


class AnthropicMessagesClient(ProviderHttpClient):
    """Minimal requests-based Anthropic Messages API client."""

    provider_label = "Anthropic"
    api_key_env_var = "ANTHROPIC_API_KEY"
    _API_VERSION = "2023-06-01"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str = DEFAULT_ANTHROPIC_MODEL,
        base_url: str = "https://api.anthropic.com/v1",
        timeout_seconds: float = 300.0,
    ) -> None:
        """Initialize Anthropic client settings."""

        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds)
        self.model = model

    def _auth_headers(self) -> dict[str, str]:
        """Return Anthropic authentication and version headers."""

        return {"x-api-key": self.api_key, "anthropic-version": self._API_VERSION}

    def complete(self, prompt: str, *, max_tokens: int, temperature: float) -> str:
        """Return the concatenated text blocks of one Messages API response."""

        self._require_api_key()
        payload = self._post_json(
            "/messages",
            {
                "model": self.model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "messages": [{"role": "user", "content": prompt}],
            },
        )
        return self._extract_text(payload)

    @staticmethod
    def _extract_text(payload: dict[str, Any]) -> str:
        """Extract text content from an Anthropic Messages JSON payload."""

        if payload.get("stop_reason") == "refusal":
            raise ProviderError(
                "Anthropic declined the request under its content filtering policy.",
                failure_kind="content_policy",
            )
        blocks = payload.get("content")
        if not isinstance(blocks, list) or not blocks:
            raise ProviderError("Anthropic response missing non-empty `content` list.")
        text = "".join(
            block["text"]
            for block in blocks
            if isinstance(block, dict)
            and block.get("type") == "text"
            and isinstance(block.get("text"), str)
        ).strip()
        if not text:
            raise ProviderError("Anthropic response text content is empty.")
        return text


class OpenAIChatClient(ProviderHttpClient):
    """Minimal requests-based OpenAI chat-completions client."""

    provider_label = "OpenAI"
    api_key_env_var = "OPENAI_API_KEY"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 300.0,
    ) -> None:
        """Initialize OpenAI client settings."""

        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds)
        self.model = model

    def complete(self, prompt: str, *, max_tokens: int, temperature: float) -> str:
        """Return the first assistant text response from a chat-completions request."""

        self._require_api_key()
        payload = self._post_json(
            "/chat/completions",
            {
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
        )
        return self._extract_message_text(payload)

    @staticmethod
    def _extract_message_text(payload: dict[str, Any]) -> str:
        """Extract first assistant message text from a chat-completions payload."""

        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ProviderError("OpenAI response missing non-empty `choices` list.")

        first_choice = choices[0]
        if not isinstance(first_choice, dict):
            raise ProviderError("OpenAI response `choices[0]` is malformed.")
        if first_choice.get("finish_reason") == "content_filter":
            raise ProviderError(
                "OpenAI blocked the response under its content filtering policy.",
                failure_kind="content_policy",
            )

        message = first_choice.get("message")
        if not isinstance(message, dict):
            raise ProviderError("OpenAI response missing `choices[0].message` object.")

        content = message.get("content")
        if isinstance(content, list):
            content = "".join(
                item["text"]
                for item in content
                if isinstance(item, dict)
                and item.get("type") == "text"
                and isinstance(item.get("text"), str)
            )
        normalized = content.strip() if isinstance(content, str) else ""
        if not normalized:
            raise ProviderError("OpenAI response message content is empty.")
        return normalized
