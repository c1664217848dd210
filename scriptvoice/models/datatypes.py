"""Core datatypes shared across Scriptvoice modules.

Responsibilities:
- Represent immutable records exchanged between generation and synthesis stages.
- Provide explicit typing plus JSON payload helpers for the HTTP and job layers.

Key types:
- `ScriptRequest`, `ChapterOutline`, `ScriptPreview`, `ValidationResult`,
  `ChapterResult`, `ChapterStat`, `GeneratedScript`, `AudioOptions`,
  `AudioChunk`, and `AudioResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping

from ..errors import ValidationError

WORDS_PER_MINUTE_TARGET = 200
"""Word rate used for every expected-length calculation during generation."""

WORDS_PER_MINUTE_SPOKEN = 150
"""Word rate used when estimating the spoken duration of finished text."""

MAX_TOPIC_CHARS = 500
MIN_DURATION_MINUTES = 1
MAX_DURATION_MINUTES = 180

SUPPORTED_STYLES = frozenset(
    {"engaging", "educational", "entertaining", "conversational", "documentary", "tutorial"}
)
SUPPORTED_AUDIENCES = frozenset(
    {"general", "children", "teens", "adults", "professionals", "technical", "seniors"}
)
SUPPORTED_TONES = frozenset(
    {
        "conversational",
        "formal",
        "casual",
        "friendly",
        "professional",
        "enthusiastic",
        "calm",
    }
)
SUPPORTED_AUDIO_FORMATS = frozenset({"mp3", "wav", "pcm", "opus"})
SUPPORTED_BITRATES = frozenset({64, 128, 192})
SUPPORTED_LATENCY_MODES = frozenset({"normal", "balanced"})


def _utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ScriptRequest:
    """Immutable input describing the script a caller wants.

    Attributes:
        topic: Subject of the script (at most 500 characters).
        duration_minutes: Target spoken duration, 1 to 180 minutes.
        style: Writing style token.
        audience: Target audience token.
        tone: Narration tone token.
        reference_file: Optional style-reference file name under the templates dir.
    """

    topic: str
    duration_minutes: int = 3
    style: str = "educational"
    audience: str = "general"
    tone: str = "conversational"
    reference_file: str | None = None

    def validate(self) -> None:
        """Validate request fields and raise `ValidationError` with field details."""

        details: list[dict[str, Any]] = []
        topic = self.topic if isinstance(self.topic, str) else ""
        if not topic.strip():
            details.append(
                {"field": "topic", "message": "Topic is required and must be a non-empty string"}
            )
        elif len(topic) > MAX_TOPIC_CHARS:
            details.append(
                {
                    "field": "topic",
                    "message": f"Topic must be at most {MAX_TOPIC_CHARS} characters",
                }
            )

        duration = self.duration_minutes
        if (
            isinstance(duration, bool)
            or not isinstance(duration, int | float)
            or not MIN_DURATION_MINUTES <= duration <= MAX_DURATION_MINUTES
        ):
            details.append(
                {
                    "field": "duration",
                    "message": (
                        f"Duration must be a number between {MIN_DURATION_MINUTES} "
                        f"and {MAX_DURATION_MINUTES} minutes"
                    ),
                }
            )

        for field_name, value, allowed in (
            ("style", self.style, SUPPORTED_STYLES),
            ("audience", self.audience, SUPPORTED_AUDIENCES),
            ("tone", self.tone, SUPPORTED_TONES),
        ):
            if value not in allowed:
                details.append(
                    {
                        "field": field_name,
                        "message": f"{field_name.capitalize()} must be one of: "
                        + ", ".join(sorted(allowed)),
                    }
                )

        if details:
            raise ValidationError("Request validation failed", details)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON payload shape used by the HTTP layer."""

        return {
            "topic": self.topic,
            "duration": self.duration_minutes,
            "style": self.style,
            "audience": self.audience,
            "tone": self.tone,
            "referenceFile": self.reference_file,
        }


@dataclass(frozen=True, slots=True)
class ChapterOutline:
    """One planned chapter of a script outline.

    Attributes:
        number: 1-based chapter number.
        title: Chapter title.
        description: Free-text synopsis joined from the outline lines.
    """

    number: int
    title: str
    description: str

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON payload shape for this chapter."""

        return {"number": self.number, "title": self.title, "description": self.description}


@dataclass(frozen=True, slots=True)
class ScriptPreview:
    """Outline produced by the chapter planner and consumed by the assembler.

    Attributes:
        topic: Requested topic.
        title: Script title reported by the model (defaults to the topic).
        chapters: Ordered chapter outlines.
        estimated_duration_minutes: Duration reported by the outline metadata.
        word_count_target: Word target reported by the outline metadata.
        raw_model_output: Unparsed model response.
        request: Request options the outline was generated with.
    """

    topic: str
    title: str
    chapters: tuple[ChapterOutline, ...]
    estimated_duration_minutes: int
    word_count_target: int
    raw_model_output: str
    request: ScriptRequest

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON payload shape for this preview."""

        return {
            "topic": self.topic,
            "title": self.title,
            "chapters": [chapter.to_payload() for chapter in self.chapters],
            "estimatedDuration": self.estimated_duration_minutes,
            "wordCountTarget": self.word_count_target,
            "rawContent": self.raw_model_output,
            "options": self.request.to_payload(),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ScriptPreview:
        """Rebuild a preview re-supplied by a client, raising `ValidationError` when malformed."""

        topic = payload.get("topic")
        if not isinstance(topic, str) or not topic.strip():
            raise ValidationError(
                "Preview data is invalid",
                [{"field": "previewData.topic", "message": "Topic is required"}],
            )
        raw_chapters = payload.get("chapters") or []
        if not isinstance(raw_chapters, list):
            raise ValidationError(
                "Preview data is invalid",
                [{"field": "previewData.chapters", "message": "Chapters must be a list"}],
            )

        chapters: list[ChapterOutline] = []
        for position, raw in enumerate(raw_chapters, start=1):
            if not isinstance(raw, Mapping):
                raise ValidationError(
                    "Preview data is invalid",
                    [
                        {
                            "field": f"previewData.chapters[{position - 1}]",
                            "message": "Chapter must be an object",
                        }
                    ],
                )
            chapters.append(
                ChapterOutline(
                    number=int(raw.get("number") or position),
                    title=str(raw.get("title") or "").strip(),
                    description=str(raw.get("description") or "").strip(),
                )
            )

        options = payload.get("options") or {}
        duration = payload.get("estimatedDuration", options.get("duration", 3))
        request = ScriptRequest(
            topic=topic,
            duration_minutes=duration,
            style=options.get("style", "educational"),
            audience=options.get("audience", "general"),
            tone=options.get("tone", "conversational"),
            reference_file=options.get("referenceFile"),
        )
        request.validate()
        return cls(
            topic=topic,
            title=str(payload.get("title") or topic)[:MAX_TOPIC_CHARS],
            chapters=tuple(chapters),
            estimated_duration_minutes=duration,
            word_count_target=int(
                payload.get("wordCountTarget") or duration * WORDS_PER_MINUTE_TARGET
            ),
            raw_model_output=str(payload.get("rawContent") or ""),
            request=request,
        )


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating one generated chapter text."""

    valid: bool
    word_count: int
    expected_word_count: int
    reason: str | None = None


class ChapterOutcome(str, Enum):
    """Tagged outcome of generating one chapter with retries."""

    ACCEPTED = "accepted"
    ACCEPTED_DEGRADED = "accepted_degraded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ChapterResult:
    """Result of the bounded retry loop for one chapter.

    Attributes:
        chapter: Outline entry the text was generated for.
        text: Accepted chapter text, empty when the outcome is `FAILED`.
        outcome: Accepted, accepted despite validation issues, or failed.
        attempts: Number of service calls made.
        validation: Validation of the accepted text, when any text was produced.
        reason: Validation or service failure reason for non-clean outcomes.
    """

    chapter: ChapterOutline
    text: str
    outcome: ChapterOutcome
    attempts: int
    validation: ValidationResult | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class ChapterStat:
    """Per-chapter statistics recorded on chapter-assembled scripts."""

    chapter_number: int
    title: str
    word_count: int
    expected_word_count: int
    passed_validation: bool
    outcome: ChapterOutcome
    reason: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON payload shape for this statistic row."""

        return {
            "chapterNumber": self.chapter_number,
            "title": self.title,
            "wordCount": self.word_count,
            "expectedWordCount": self.expected_word_count,
            "passedValidation": self.passed_validation,
            "outcome": self.outcome.value,
            "reason": self.reason,
        }


@dataclass(frozen=True, slots=True)
class GeneratedScript:
    """Final script text plus metadata, written once by the assembler.

    Attributes:
        topic: Requested topic.
        title: Script title.
        content: Full narration text.
        word_count: Whitespace-delimited word count.
        estimated_duration_minutes: `round(word_count / 150, 2)`.
        generation_path: `direct`, `outline`, or `chapters`.
        chapter_stats: Per-chapter statistics for chapter-assembled scripts.
        file_path: Storage location assigned once saved.
        generated_at: UTC creation timestamp.
    """

    topic: str
    title: str
    content: str
    word_count: int
    estimated_duration_minutes: float
    generation_path: str
    chapter_stats: tuple[ChapterStat, ...] | None = None
    file_path: Path | None = None
    generated_at: datetime = field(default_factory=_utc_now)

    @property
    def degraded(self) -> bool:
        """Return whether any chapter was accepted despite failing validation."""

        if not self.chapter_stats:
            return False
        return any(
            stat.outcome is ChapterOutcome.ACCEPTED_DEGRADED for stat in self.chapter_stats
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON payload shape for this script."""

        return {
            "topic": self.topic,
            "title": self.title,
            "content": self.content,
            "filePath": str(self.file_path) if self.file_path is not None else None,
            "wordCount": self.word_count,
            "estimatedDuration": self.estimated_duration_minutes,
            "generationPath": self.generation_path,
            "chapterStats": (
                [stat.to_payload() for stat in self.chapter_stats]
                if self.chapter_stats is not None
                else None
            ),
            "generatedAt": self.generated_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class AudioOptions:
    """Synthesis and output options for one audio pipeline run.

    Attributes:
        format: Output container format.
        chunk_size_chars: Scripts longer than this are split into chunks.
        reference_voice_id: Custom voice reference; `None` or `default` selects the default voice.
        bitrate: MP3 bitrate in kbps.
        chunk_length_hint: Provider-side synthesis chunk length hint (100 to 300).
        normalize: Whether the provider normalizes text before synthesis.
        latency: Provider latency mode.
        output_dir: Directory receiving the final artifact.
        filename: Optional output filename; an extension is added when missing.
    """

    format: str = "mp3"
    chunk_size_chars: int = 5000
    reference_voice_id: str | None = None
    bitrate: int = 128
    chunk_length_hint: int = 200
    normalize: bool = True
    latency: str = "normal"
    output_dir: Path = Path("output") / "audio"
    filename: str | None = None

    def validate(self) -> None:
        """Validate audio options and raise `ValidationError` with field details."""

        details: list[dict[str, Any]] = []
        if self.format not in SUPPORTED_AUDIO_FORMATS:
            details.append(
                {
                    "field": "format",
                    "message": f"Invalid format: {self.format}. Valid options: "
                    + ", ".join(sorted(SUPPORTED_AUDIO_FORMATS)),
                }
            )
        if self.bitrate not in SUPPORTED_BITRATES:
            details.append(
                {
                    "field": "bitrate",
                    "message": f"Invalid bitrate: {self.bitrate}. Valid options: "
                    + ", ".join(str(value) for value in sorted(SUPPORTED_BITRATES)),
                }
            )
        if self.latency not in SUPPORTED_LATENCY_MODES:
            details.append(
                {
                    "field": "latency",
                    "message": f"Invalid latency: {self.latency}. Valid options: "
                    + ", ".join(sorted(SUPPORTED_LATENCY_MODES)),
                }
            )
        if not 100 <= self.chunk_length_hint <= 300:
            details.append(
                {"field": "chunkLength", "message": "Chunk length must be between 100 and 300"}
            )
        if self.chunk_size_chars <= 0:
            details.append(
                {"field": "chunkSize", "message": "Chunk size must be a positive integer"}
            )
        if details:
            raise ValidationError("Audio options validation failed", details)

    @property
    def voice_reference(self) -> str | None:
        """Return the provider voice reference, mapping `default` to `None`."""

        if self.reference_voice_id is None:
            return None
        normalized = self.reference_voice_id.strip()
        if not normalized or normalized == "default":
            return None
        return normalized


@dataclass(slots=True)
class AudioChunk:
    """Transient per-chunk synthesis record that only lives during a pipeline run."""

    index: int
    source_text: str
    byte_stream: Iterable[bytes] | None = None
    temp_path: Path | None = None


@dataclass(frozen=True, slots=True)
class AudioResult:
    """Final concatenated audio artifact metadata.

    Attributes:
        output_path: Final audio file path.
        file_size_bytes: Size of the final file.
        estimated_duration_seconds: `word_count / 150 * 60`, rounded to 2 decimals.
        chunk_count: Number of synthesis calls made.
        format: Output container format.
        word_count: Word count of the synthesized source text.
        generated_at: UTC creation timestamp.
    """

    output_path: Path
    file_size_bytes: int
    estimated_duration_seconds: float
    chunk_count: int
    format: str
    word_count: int
    generated_at: datetime = field(default_factory=_utc_now)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON payload shape for this audio result."""

        return {
            "outputPath": str(self.output_path),
            "fileSize": self.file_size_bytes,
            "estimatedDuration": self.estimated_duration_seconds,
            "chunks": self.chunk_count,
            "wordCount": self.word_count,
            "format": self.format,
            "generatedAt": self.generated_at.isoformat(),
        }
