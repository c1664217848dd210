"""Fish Audio text-to-speech HTTP client.

Responsibilities:
- Send one `/tts` request per text and stream the audio body back.
- Omit the voice reference when the default voice is requested.
"""

from __future__ import annotations

from typing import Any, Iterator, Protocol

import requests

from ..llm.http_client import ProviderHttpClient

DEFAULT_TTS_MODEL = "s1"
STREAM_CHUNK_BYTES = 8192


class SpeechClient(Protocol):
    """Protocol for streaming speech-synthesis services."""

    def stream_speech(
        self,
        text: str,
        *,
        reference_id: str | None,
        audio_format: str,
        mp3_bitrate: int,
        chunk_length: int,
        normalize: bool,
        latency: str,
    ) -> Iterator[bytes]:
        """Start synthesis and return an iterator over audio bytes."""


class FishAudioSpeechClient(ProviderHttpClient):
    """Minimal requests-based Fish Audio TTS client with streamed responses."""

    provider_label = "Fish Audio"
    api_key_env_var = "FISH_AUDIO_API_KEY"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str = DEFAULT_TTS_MODEL,
        base_url: str = "https://api.fish.audio/v1",
        timeout_seconds: float = 300.0,
    ) -> None:
        """Initialize Fish Audio client settings."""

        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds)
        self.model = model

    def stream_speech(
        self,
        text: str,
        *,
        reference_id: str | None,
        audio_format: str,
        mp3_bitrate: int,
        chunk_length: int,
        normalize: bool,
        latency: str,
    ) -> Iterator[bytes]:
        """Issue the TTS request and return a lazy iterator over the response body.

        HTTP and connection failures raise `ProviderError` before this returns;
        failures while reading the body surface from the iterator as
        `requests.RequestException`.
        """

        self._require_api_key()
        payload: dict[str, Any] = {
            "text": text.strip(),
            "chunk_length": chunk_length,
            "format": audio_format,
            "mp3_bitrate": mp3_bitrate,
            "normalize": normalize,
            "latency": latency,
            "references": [],
        }
        if reference_id and reference_id != "default":
            payload["reference_id"] = reference_id

        response = self._request(
            "/tts",
            payload,
            extra_headers={"model": self.model},
            stream=True,
        )
        return self._iter_body(response)

    @staticmethod
    def _iter_body(response: requests.Response) -> Iterator[bytes]:
        """Yield non-empty body chunks and always release the connection."""

        try:
            for chunk in response.iter_content(chunk_size=STREAM_CHUNK_BYTES):
                if chunk:
                    yield chunk
        finally:
            response.close()
