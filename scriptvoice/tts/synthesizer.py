"""Speech synthesis wrapper over a streaming TTS client.

Responsibilities:
- Translate audio options into one provider call per text.
- Map provider and stream failures to `SynthesisError` kinds
  (`http_error`, `network`, `generic`).
"""

from __future__ import annotations

from typing import Iterator

import requests

from ..errors import SynthesisError
from ..llm.http_client import ProviderError
from ..models.datatypes import AudioOptions
from .fish_audio_client import SpeechClient

_NETWORK_FAILURE_KINDS = frozenset({"timeout", "transport"})


def synthesis_error_from(exc: Exception) -> SynthesisError:
    """Map a provider or transport exception onto a `SynthesisError` kind."""

    if isinstance(exc, SynthesisError):
        return exc
    if isinstance(exc, ProviderError):
        if exc.status_code:
            return SynthesisError(
                f"Speech synthesis API error: {exc}",
                kind="http_error",
                status_code=exc.status_code,
                body=exc.body,
            )
        if exc.failure_kind in _NETWORK_FAILURE_KINDS:
            return SynthesisError(f"Network error: {exc}", kind="network")
        return SynthesisError(f"Speech synthesis failed: {exc}", kind="generic")
    if isinstance(exc, requests.RequestException | ConnectionError | TimeoutError):
        return SynthesisError(f"Network error: {exc}", kind="network")
    return SynthesisError(f"Speech synthesis failed: {exc}", kind="generic")


class SpeechSynthesizer:
    """Synthesize one text into a byte stream; no retries."""

    def __init__(self, client: SpeechClient) -> None:
        self.client = client

    def synthesize(self, text: str, options: AudioOptions) -> Iterator[bytes]:
        """Return a streamed audio body for `text`.

        Raises:
            SynthesisError: On request failure; iteration failures are raised the same way.
        """

        try:
            stream = self.client.stream_speech(
                text,
                reference_id=options.voice_reference,
                audio_format=options.format,
                mp3_bitrate=options.bitrate,
                chunk_length=options.chunk_length_hint,
                normalize=options.normalize,
                latency=options.latency,
            )
        except Exception as exc:
            raise synthesis_error_from(exc) from exc
        return self._guarded(stream)

    @staticmethod
    def _guarded(stream: Iterator[bytes]) -> Iterator[bytes]:
        """Re-raise failures during body iteration as `SynthesisError`."""

        try:
            yield from stream
        except Exception as exc:
            raise synthesis_error_from(exc) from exc
