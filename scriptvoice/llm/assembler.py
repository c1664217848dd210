"""Script assembly from outlines or single-shot prompts.

Responsibilities:
- Route requests between the single-call path and the chapter-by-chapter path.
- Generate chapters with bounded retries, exponential backoff, and validation.
- Concatenate, measure, and persist the final script text.

Key types:
- `ScriptAssembler`: orchestration over `ChapterPlanner`, `ContentValidator`, and a `ScriptStore`.
"""

from __future__ import annotations

import math
import time
from dataclasses import replace
from typing import Callable

from ..errors import GenerationError
from ..io.storage import ReferenceScriptLoader, ScriptStore
from ..jobs.progress import (
    NEVER_CANCEL,
    NULL_SINK,
    CancellationToken,
    ProgressEvent,
    ProgressSink,
    ScaledProgressSink,
)
from ..models.datatypes import (
    WORDS_PER_MINUTE_SPOKEN,
    WORDS_PER_MINUTE_TARGET,
    ChapterOutcome,
    ChapterOutline,
    ChapterResult,
    ChapterStat,
    GeneratedScript,
    ScriptPreview,
    ScriptRequest,
)
from ..parsing import count_words
from ..telemetry.logger import RunLogger
from ..text.validation import ContentValidator
from .generation import (
    CHAPTER_MAX_TOKENS,
    GENERATION_TEMPERATURE,
    full_script_max_tokens,
    generation_error_from,
)
from .planner import ChapterPlanner
from .prompts import PromptLibrary
from .text_clients import TextGenerationClient

LONG_FORM_THRESHOLD_MINUTES = 20
MAX_CHAPTER_ATTEMPTS = 3
BASE_BACKOFF_SECONDS = 1.0
PREVIOUS_EXCERPT_CHARS = 500
OUTLINE_PROGRESS = 5
CHAPTER_SEPARATOR = "\n\n"


def estimate_spoken_minutes(word_count: int) -> float:
    """Return `round(word_count / 150, 2)`."""

    return round(word_count / WORDS_PER_MINUTE_SPOKEN, 2)


def default_script_title(topic: str) -> str:
    """Return the title used for scripts generated without an outline."""

    return f"{topic[:1].upper()}{topic[1:]} - Audio Script"[:500]


class ScriptAssembler:
    """Generate complete scripts through the direct or chapter-based path."""

    def __init__(
        self,
        client: TextGenerationClient,
        store: ScriptStore,
        *,
        planner: ChapterPlanner | None = None,
        validator: ContentValidator | None = None,
        prompts: PromptLibrary | None = None,
        references: ReferenceScriptLoader | None = None,
        run_logger: RunLogger | None = None,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.store = store
        self.prompts = prompts or PromptLibrary()
        self.run_logger = run_logger or RunLogger()
        self.planner = planner or ChapterPlanner(
            client, prompts=self.prompts, run_logger=self.run_logger
        )
        self.validator = validator or ContentValidator()
        self.references = references
        self.sleeper = sleeper

    def generate_direct(
        self,
        request: ScriptRequest,
        *,
        sink: ProgressSink = NULL_SINK,
        cancel_token: CancellationToken = NEVER_CANCEL,
    ) -> GeneratedScript:
        """Generate a script without an approved outline.

        Durations of 20 minutes or more are planned first and assembled chapter by
        chapter; shorter durations use one full-script call.
        """

        request.validate()
        reference_text = self._load_reference(request)
        if request.duration_minutes >= LONG_FORM_THRESHOLD_MINUTES:
            sink.emit(
                ProgressEvent("outline", OUTLINE_PROGRESS, "Planning chapters for long-form script")
            )
            preview = self.planner.plan(request, reference_text)
            cancel_token.raise_if_cancelled()
            return self._generate_chapters(
                preview,
                request,
                reference_text,
                sink=ScaledProgressSink(sink, start=OUTLINE_PROGRESS, end=100),
                cancel_token=cancel_token,
            )

        sink.emit(ProgressEvent("generating", 50, "Generating full script"))
        prompt = self.prompts.direct_script_prompt(
            topic=request.topic,
            duration_minutes=request.duration_minutes,
            style=request.style,
            audience=request.audience,
            tone=request.tone,
            reference_text=reference_text,
        )
        content = self._complete(
            prompt,
            max_tokens=full_script_max_tokens(request.duration_minutes),
            action="Script generation",
        )
        return self._finish(
            topic=request.topic,
            title=default_script_title(request.topic),
            content=content,
            generation_path="direct",
            sink=sink,
        )

    def generate_from_preview(
        self,
        preview: ScriptPreview,
        request: ScriptRequest | None = None,
        *,
        sink: ProgressSink = NULL_SINK,
        cancel_token: CancellationToken = NEVER_CANCEL,
    ) -> GeneratedScript:
        """Generate a script that follows an approved outline.

        Without an explicit request, the preview's options are reused with the
        outline's estimated duration.

        Raises:
            GenerationError: If the preview has no chapters or a service call fails.
        """

        effective = request or replace(
            preview.request, duration_minutes=preview.estimated_duration_minutes
        )
        effective.validate()
        if not preview.chapters:
            self.run_logger.log_stage_failure("script", "EmptyOutline")
            raise GenerationError("No chapters found in preview data.")

        reference_text = self._load_reference(effective)
        if effective.duration_minutes >= LONG_FORM_THRESHOLD_MINUTES:
            return self._generate_chapters(
                preview, effective, reference_text, sink=sink, cancel_token=cancel_token
            )

        sink.emit(ProgressEvent("generating", 50, "Creating full script from chapter outline"))
        prompt = self.prompts.outline_script_prompt(
            preview=preview,
            duration_minutes=effective.duration_minutes,
            style=effective.style,
            audience=effective.audience,
            tone=effective.tone,
            reference_text=reference_text,
        )
        content = self._complete(
            prompt,
            max_tokens=full_script_max_tokens(effective.duration_minutes),
            action="Script generation from outline",
        )
        return self._finish(
            topic=preview.topic,
            title=preview.title,
            content=content,
            generation_path="outline",
            sink=sink,
        )

    def generate_chapter_with_retry(
        self,
        preview: ScriptPreview,
        chapter: ChapterOutline,
        *,
        request: ScriptRequest,
        chapter_position: int,
        chapter_duration_minutes: float,
        previous_excerpt: str = "",
        reference_text: str | None = None,
    ) -> ChapterResult:
        """Generate one chapter with up to three attempts.

        Validation failures and service errors both trigger a retry after a
        1s, then 2s backoff. After the last attempt the most recent text is
        accepted as degraded. `FAILED` means the final attempt raised, whatever
        earlier attempts produced.
        """

        prompt = self.prompts.chapter_prompt(
            preview=preview,
            chapter=chapter,
            chapter_position=chapter_position,
            chapter_total=len(preview.chapters),
            chapter_duration_minutes=chapter_duration_minutes,
            style=request.style,
            audience=request.audience,
            tone=request.tone,
            previous_excerpt=previous_excerpt,
            reference_text=reference_text,
        )

        last_text: str | None = None
        last_validation = None
        last_reason: str | None = None
        final_attempt_failed = False
        for attempt in range(1, MAX_CHAPTER_ATTEMPTS + 1):
            try:
                text = self.client.complete(
                    prompt,
                    max_tokens=CHAPTER_MAX_TOKENS,
                    temperature=GENERATION_TEMPERATURE,
                ).strip()
            except Exception as exc:
                final_attempt_failed = attempt == MAX_CHAPTER_ATTEMPTS
                last_reason = str(generation_error_from(exc, action=f"Chapter {chapter_position}"))
                self.run_logger.event(
                    "WARNING",
                    "chapter",
                    "service_error",
                    chapter=chapter_position,
                    attempt=attempt,
                    error_type=type(exc).__name__,
                )
            else:
                validation = self.validator.validate(text, chapter_duration_minutes, chapter)
                if validation.valid:
                    return ChapterResult(
                        chapter=chapter,
                        text=text,
                        outcome=ChapterOutcome.ACCEPTED,
                        attempts=attempt,
                        validation=validation,
                    )
                last_text, last_validation, last_reason = text, validation, validation.reason
                self.run_logger.event(
                    "WARNING",
                    "chapter",
                    "validation_failed",
                    chapter=chapter_position,
                    attempt=attempt,
                    words=validation.word_count,
                    expected=validation.expected_word_count,
                )

            if attempt < MAX_CHAPTER_ATTEMPTS:
                self.sleeper(BASE_BACKOFF_SECONDS * 2 ** (attempt - 1))

        if final_attempt_failed or last_text is None:
            return ChapterResult(
                chapter=chapter,
                text="",
                outcome=ChapterOutcome.FAILED,
                attempts=MAX_CHAPTER_ATTEMPTS,
                reason=last_reason,
            )
        self.run_logger.event(
            "WARNING", "chapter", "accepted_degraded", chapter=chapter_position
        )
        return ChapterResult(
            chapter=chapter,
            text=last_text,
            outcome=ChapterOutcome.ACCEPTED_DEGRADED,
            attempts=MAX_CHAPTER_ATTEMPTS,
            validation=last_validation,
            reason=last_reason,
        )

    def _generate_chapters(
        self,
        preview: ScriptPreview,
        request: ScriptRequest,
        reference_text: str | None,
        *,
        sink: ProgressSink,
        cancel_token: CancellationToken,
    ) -> GeneratedScript:
        """Generate every outline chapter in order and assemble the script."""

        if not preview.chapters:
            self.run_logger.log_stage_failure("script", "EmptyOutline")
            raise GenerationError("No chapters found in preview data.")

        total = len(preview.chapters)
        chapter_duration = math.ceil(request.duration_minutes / total)
        self.run_logger.log_stage_start(
            "chapters", chapters=total, chapter_minutes=chapter_duration
        )

        texts: list[str] = []
        stats: list[ChapterStat] = []
        for index, chapter in enumerate(preview.chapters):
            cancel_token.raise_if_cancelled()
            position = index + 1
            sink.emit(
                ProgressEvent(
                    "chapter_start",
                    round(index / total * 100),
                    f"Generating chapter {position}/{total}: {chapter.title}",
                    {"chapter": position, "totalChapters": total},
                )
            )
            result = self.generate_chapter_with_retry(
                preview,
                chapter,
                request=request,
                chapter_position=position,
                chapter_duration_minutes=chapter_duration,
                previous_excerpt=texts[-1][-PREVIOUS_EXCERPT_CHARS:] if texts else "",
                reference_text=reference_text,
            )
            if result.outcome is ChapterOutcome.FAILED:
                self.run_logger.log_stage_failure("chapters", "ChapterFailed", chapter=position)
                raise GenerationError(
                    f"Failed to generate chapter {position} after {result.attempts} "
                    f"attempts: {result.reason}",
                    content_policy="Content filtering blocked" in (result.reason or ""),
                )

            texts.append(result.text)
            word_count = count_words(result.text)
            stats.append(
                ChapterStat(
                    chapter_number=position,
                    title=chapter.title,
                    word_count=word_count,
                    expected_word_count=int(chapter_duration * WORDS_PER_MINUTE_TARGET),
                    passed_validation=result.outcome is ChapterOutcome.ACCEPTED,
                    outcome=result.outcome,
                    reason=result.reason,
                )
            )
            sink.emit(
                ProgressEvent(
                    "chapter_complete",
                    round(position / total * 100),
                    f"Generated chapter {position}/{total} ({word_count} words)",
                    {
                        "chapter": position,
                        "totalChapters": total,
                        "outcome": result.outcome.value,
                    },
                )
            )

        return self._finish(
            topic=preview.topic,
            title=preview.title,
            content=CHAPTER_SEPARATOR.join(texts),
            generation_path="chapters",
            chapter_stats=tuple(stats),
            sink=sink,
        )

    def _complete(self, prompt: str, *, max_tokens: int, action: str) -> str:
        """Run one full-script call and map failures to `GenerationError`."""

        try:
            text = self.client.complete(
                prompt, max_tokens=max_tokens, temperature=GENERATION_TEMPERATURE
            )
        except Exception as exc:
            self.run_logger.log_stage_failure("script", type(exc).__name__)
            raise generation_error_from(exc, action=action) from exc
        return text.strip()

    def _finish(
        self,
        *,
        topic: str,
        title: str,
        content: str,
        generation_path: str,
        sink: ProgressSink,
        chapter_stats: tuple[ChapterStat, ...] | None = None,
    ) -> GeneratedScript:
        """Measure, persist, and return the final script."""

        if not content.strip():
            raise GenerationError("Text generation returned an empty script.")
        word_count = count_words(content)
        file_path = self.store.save(content, topic=topic)
        script = GeneratedScript(
            topic=topic,
            title=title,
            content=content,
            word_count=word_count,
            estimated_duration_minutes=estimate_spoken_minutes(word_count),
            generation_path=generation_path,
            chapter_stats=chapter_stats,
            file_path=file_path,
        )
        self.run_logger.log_stage_complete(
            "script",
            path=generation_path,
            words=word_count,
            degraded=script.degraded,
        )
        sink.emit(ProgressEvent("script_saved", 100, f"Script saved: {file_path.name}"))
        return script

    def _load_reference(self, request: ScriptRequest) -> str | None:
        """Return style-reference text for the request when configured."""

        if self.references is None or not request.reference_file:
            return None
        return self.references.load(request.reference_file)
