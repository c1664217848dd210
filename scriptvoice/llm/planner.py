"""Chapter planning for long-form scripts.

Responsibilities:
- Derive the chapter count from the target duration.
- Request one tagged outline from the text-generation service and parse it.
"""

from __future__ import annotations

import math
import re

from ..errors import GenerationError
from ..models.datatypes import (
    MAX_TOPIC_CHARS,
    WORDS_PER_MINUTE_TARGET,
    ChapterOutline,
    ScriptPreview,
    ScriptRequest,
)
from ..parsing import whole_number
from ..telemetry.logger import RunLogger
from .generation import GENERATION_TEMPERATURE, OUTLINE_MAX_TOKENS, generation_error_from
from .prompts import PromptLibrary
from .text_clients import TextGenerationClient

MIN_CHAPTERS = 3
MAX_CHAPTERS = 8

_CHAPTER_TAG = re.compile(r"^CHAPTER\s+(\d+)\s*:\s*(.+)$", re.IGNORECASE)
_TITLE_TAG = re.compile(r"^TITLE\s*:\s*(.*)$", re.IGNORECASE)
_DURATION_TAG = re.compile(r"^ESTIMATED_DURATION\s*:\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
_WORD_TARGET_TAG = re.compile(r"^WORD_COUNT_TARGET\s*:\s*(\d+)", re.IGNORECASE)
_METADATA_PREFIXES = ("ESTIMATED_DURATION", "WORD_COUNT_TARGET")
_DECORATION_CHARS = "#*_ "


def chapter_count(duration_minutes: float) -> int:
    """Return `clamp(ceil(duration / 2), 3, 8)`."""

    return max(MIN_CHAPTERS, min(MAX_CHAPTERS, math.ceil(duration_minutes / 2)))


def parse_outline(raw_output: str, request: ScriptRequest) -> ScriptPreview:
    """Parse tagged outline text into a `ScriptPreview`.

    Chapters are renumbered by position so numbering is contiguous from 1.
    Unmatched or malformed lines are skipped. A response without chapter tags
    yields a preview with zero chapters.
    """

    title = request.topic
    estimated_duration: int | float = request.duration_minutes
    word_count_target = int(request.duration_minutes * WORDS_PER_MINUTE_TARGET)
    chapters: list[tuple[str, list[str]]] = []
    collecting = False

    for raw_line in raw_output.splitlines():
        line = raw_line.strip().strip(_DECORATION_CHARS).strip()
        if not line:
            continue

        chapter_match = _CHAPTER_TAG.match(line)
        if chapter_match:
            chapter_title = chapter_match.group(2).strip().strip(_DECORATION_CHARS).strip()
            if chapter_title:
                chapters.append((chapter_title, []))
                collecting = True
            else:
                collecting = False
            continue

        title_match = _TITLE_TAG.match(line)
        if title_match:
            if title_match.group(1).strip():
                title = title_match.group(1).strip()
            collecting = False
            continue

        if line.upper().startswith(_METADATA_PREFIXES):
            duration_match = _DURATION_TAG.match(line)
            if duration_match:
                parsed = float(duration_match.group(1))
                estimated_duration = whole_number(parsed)
            target_match = _WORD_TARGET_TAG.match(line)
            if target_match:
                word_count_target = int(target_match.group(1))
            collecting = False
            continue

        if collecting and chapters:
            chapters[-1][1].append(line)

    return ScriptPreview(
        topic=request.topic,
        title=title[:MAX_TOPIC_CHARS],
        chapters=tuple(
            ChapterOutline(number=position, title=chapter_title, description=" ".join(lines))
            for position, (chapter_title, lines) in enumerate(chapters, start=1)
        ),
        estimated_duration_minutes=estimated_duration,
        word_count_target=word_count_target,
        raw_model_output=raw_output,
        request=request,
    )


class ChapterPlanner:
    """Produce a chapter outline with one text-generation call."""

    def __init__(
        self,
        client: TextGenerationClient,
        *,
        prompts: PromptLibrary | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        self.client = client
        self.prompts = prompts or PromptLibrary()
        self.run_logger = run_logger or RunLogger()

    def plan(self, request: ScriptRequest, reference_text: str | None = None) -> ScriptPreview:
        """Return a parsed outline for the request.

        Raises:
            GenerationError: If the service call fails or times out.
        """

        count = chapter_count(request.duration_minutes)
        self.run_logger.log_stage_start(
            "outline", chapters=count, duration_minutes=request.duration_minutes
        )
        prompt = self.prompts.outline_prompt(
            topic=request.topic,
            duration_minutes=request.duration_minutes,
            chapter_count=count,
            style=request.style,
            audience=request.audience,
            tone=request.tone,
            reference_text=reference_text,
        )
        try:
            raw_output = self.client.complete(
                prompt,
                max_tokens=OUTLINE_MAX_TOKENS,
                temperature=GENERATION_TEMPERATURE,
            )
        except GenerationError:
            raise
        except Exception as exc:
            self.run_logger.log_stage_failure("outline", type(exc).__name__)
            raise generation_error_from(exc, action="Outline generation") from exc

        preview = parse_outline(raw_output, request)
        self.run_logger.log_stage_complete("outline", chapters=len(preview.chapters))
        return preview
