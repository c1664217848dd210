"""Pydantic request bodies for the HTTP API.

Field names follow the camelCase wire format through aliases; range and
enumeration checks are left to the domain models so every validation failure
produces the same error envelope.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config import ScriptvoiceConfig
from ..models.datatypes import AudioOptions, ScriptPreview, ScriptRequest
from ..parsing import whole_number


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ScriptRequestBody(_Body):
    """Body for script, preview, and pipeline requests."""

    topic: str = ""
    duration: float = 3
    style: str = "educational"
    audience: str = "general"
    tone: str = "conversational"
    reference_file: Optional[str] = Field(default=None, alias="referenceFile")
    use_outline: bool = Field(default=False, alias="preview")
    stream: bool = False

    def to_request(self) -> ScriptRequest:
        """Return the domain request; whole-number durations become ints."""

        return ScriptRequest(
            topic=self.topic.strip(),
            duration_minutes=whole_number(self.duration),
            style=self.style,
            audience=self.audience,
            tone=self.tone,
            reference_file=self.reference_file,
        )


class AudioFields(_Body):
    """Audio options shared by audio and pipeline requests."""

    format: Optional[str] = None
    voice: Optional[str] = None
    chunk_size: Optional[int] = Field(default=None, alias="chunkSize")
    chunk_length: int = Field(default=200, alias="chunkLength")
    bitrate: Optional[int] = None
    latency: Optional[str] = None
    normalize: bool = True
    filename: Optional[str] = None

    def to_audio_options(self, config: ScriptvoiceConfig) -> AudioOptions:
        """Return audio options seeded from configuration defaults.

        Bitrates given in bits per second (for example `128000`) are converted to kbps.
        """

        bitrate = self.bitrate
        if bitrate is not None and bitrate >= 1000:
            bitrate //= 1000
        return config.default_audio_options(
            format=self.format,
            reference_voice_id=self.voice,
            chunk_size_chars=self.chunk_size,
            chunk_length_hint=self.chunk_length,
            bitrate=bitrate,
            latency=self.latency,
            normalize=self.normalize,
            filename=self.filename,
        )


class AudioRequestBody(AudioFields):
    """Body for `/api/generate-audio`."""

    text: Optional[str] = None
    file_path: Optional[str] = Field(default=None, alias="filePath")
    stream: bool = False


class PipelineRequestBody(ScriptRequestBody, AudioFields):
    """Body for `/api/script-to-audio`."""


class FromPreviewRequestBody(_Body):
    """Body for `/api/generate-from-preview`."""

    preview_data: Optional[dict[str, Any]] = Field(default=None, alias="previewData")
    options: dict[str, Any] = Field(default_factory=dict)
    stream: bool = False

    def to_preview(self) -> ScriptPreview:
        """Return the re-supplied preview."""

        return ScriptPreview.from_payload(self.preview_data or {})

    def to_request(self, preview: ScriptPreview) -> ScriptRequest | None:
        """Return override options merged over the preview's options, if any were sent."""

        if not self.options:
            return None
        base = preview.request
        duration = self.options.get("duration", preview.estimated_duration_minutes)
        return ScriptRequest(
            topic=preview.topic,
            duration_minutes=duration,
            style=self.options.get("style", base.style),
            audience=self.options.get("audience", base.audience),
            tone=self.options.get("tone", base.tone),
            reference_file=self.options.get("referenceFile", base.reference_file),
        )
