"""Provider factory helpers for text-generation and speech-synthesis stages.

Responsibilities:
- Resolve provider identifiers to concrete client implementations.
- Keep orchestration independent from concrete provider class construction.
"""

from __future__ import annotations

from .llm.text_clients import AnthropicMessagesClient, OpenAIChatClient, TextGenerationClient
from .tts.fish_audio_client import FishAudioSpeechClient, SpeechClient


class ProviderFactory:
    """Factory for provider-backed clients used by the workflow."""

    @staticmethod
    def create_text_client(
        provider_id: str,
        model: str,
        api_key: str | None = None,
    ) -> TextGenerationClient:
        """Create a text-generation client for a configured provider identifier."""

        if provider_id == "anthropic":
            return AnthropicMessagesClient(api_key=api_key, model=model)
        if provider_id == "openai":
            return OpenAIChatClient(api_key=api_key, model=model)
        raise ValueError(f"Unsupported text provider `{provider_id}`.")

    @staticmethod
    def create_speech_client(model: str, api_key: str | None = None) -> SpeechClient:
        """Create the Fish Audio speech client."""

        return FishAudioSpeechClient(api_key=api_key, model=model)
