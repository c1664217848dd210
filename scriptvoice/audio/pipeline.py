"""Chunked text-to-audio pipeline.

Responsibilities:
- Decide between single-call and chunked synthesis from the text length.
- Synthesize chunks strictly in order into per-chunk temp files.
- Concatenate the segments into one artifact and report progress events.
- Remove every temp and partial file when a run fails or is cancelled.

Key types:
- `AudioPipeline`: orchestrates `TextChunker`, `SpeechSynthesizer`, and an `AudioConcatenator`.
"""

from __future__ import annotations

import os
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable

from ..errors import SynthesisError, ValidationError
from ..io.storage import filename_timestamp
from ..jobs.progress import NEVER_CANCEL, NULL_SINK, CancellationToken, ProgressEvent, ProgressSink
from ..models.datatypes import WORDS_PER_MINUTE_SPOKEN, AudioChunk, AudioOptions, AudioResult
from ..parsing import count_words
from ..telemetry.logger import RunLogger
from ..text.chunking import DEFAULT_OVERLAP_CHARS, TextChunker
from ..text.slug import slugify_title
from ..tts.synthesizer import SpeechSynthesizer
from .concat import AudioConcatenator, FormatAwareConcatenator

GENERATION_PROGRESS_SHARE = 90
PREVIEW_CHARS = 100


def estimate_audio_seconds(text: str) -> float:
    """Return `word_count / 150 * 60` seconds, rounded to 2 decimals."""

    return round(count_words(text) / WORDS_PER_MINUTE_SPOKEN * 60, 2)


def _preview(text: str) -> str:
    """Return the first 100 characters of a chunk for progress payloads."""

    return text[:PREVIEW_CHARS] + ("..." if len(text) > PREVIEW_CHARS else "")


def _utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


class AudioPipeline:
    """Synthesize a script into one audio file with incremental progress."""

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        *,
        chunker: TextChunker | None = None,
        concatenator: AudioConcatenator | None = None,
        run_logger: RunLogger | None = None,
        clock: Callable[[], datetime] = _utc_now,
        token_factory: Callable[[], str] = lambda: secrets.token_hex(3),
    ) -> None:
        self.synthesizer = synthesizer
        self.chunker = chunker or TextChunker()
        self.concatenator = concatenator or FormatAwareConcatenator()
        self.run_logger = run_logger or RunLogger()
        self.clock = clock
        self.token_factory = token_factory

    def run(
        self,
        script_text: str,
        options: AudioOptions,
        *,
        source_name: str = "script",
        sink: ProgressSink = NULL_SINK,
        cancel_token: CancellationToken = NEVER_CANCEL,
    ) -> AudioResult:
        """Synthesize `script_text` and return the final artifact metadata.

        Raises:
            ValidationError: If options are invalid or the text is blank.
            SynthesisError: If any synthesis call fails; no output file is left behind.
            OperationCancelled: If the token is cancelled between chunks.
        """

        options.validate()
        if not script_text.strip():
            raise ValidationError(
                "Script text is empty",
                [{"field": "text", "message": "Text to synthesize must not be empty"}],
            )

        output_path = self._output_path(options, source_name)
        partial_path = output_path.with_name(f"{output_path.name}.partial")
        temp_paths: list[Path] = []
        self.run_logger.log_stage_start(
            "tts", chars=len(script_text), format=options.format, output=output_path.name
        )
        sink.emit(
            ProgressEvent(
                "start",
                0,
                "Starting audio generation...",
                {"textLength": len(script_text)},
            )
        )

        try:
            if len(script_text) <= options.chunk_size_chars:
                chunk_count = self._run_single(script_text, options, partial_path, sink)
            else:
                chunk_count = self._run_chunked(
                    script_text,
                    options,
                    output_path,
                    partial_path,
                    temp_paths,
                    sink,
                    cancel_token,
                )
            os.replace(partial_path, output_path)
        except Exception as exc:
            partial_path.unlink(missing_ok=True)
            self.run_logger.log_stage_failure("tts", type(exc).__name__)
            raise
        finally:
            for temp_path in temp_paths:
                temp_path.unlink(missing_ok=True)

        result = AudioResult(
            output_path=output_path,
            file_size_bytes=output_path.stat().st_size,
            estimated_duration_seconds=estimate_audio_seconds(script_text),
            chunk_count=chunk_count,
            format=options.format,
            word_count=count_words(script_text),
            generated_at=self.clock(),
        )
        self.run_logger.log_stage_complete(
            "tts", chunks=chunk_count, bytes=result.file_size_bytes
        )
        sink.emit(
            ProgressEvent(
                "complete",
                100,
                f"Audio generation complete! ({chunk_count} chunk{'s' if chunk_count != 1 else ''})",
                {"totalChunks": chunk_count},
            )
        )
        return result

    def _run_single(
        self,
        script_text: str,
        options: AudioOptions,
        partial_path: Path,
        sink: ProgressSink,
    ) -> int:
        """Synthesize the whole text with one call."""

        sink.emit(
            ProgressEvent(
                "processing",
                50,
                "Generating audio (1 chunk)...",
                {"totalChunks": 1, "chunkIndex": 0, "preview": _preview(script_text)},
            )
        )
        self._write_stream(self.synthesizer.synthesize(script_text, options), partial_path)
        return 1

    def _run_chunked(
        self,
        script_text: str,
        options: AudioOptions,
        output_path: Path,
        partial_path: Path,
        temp_paths: list[Path],
        sink: ProgressSink,
        cancel_token: CancellationToken,
    ) -> int:
        """Synthesize overlapping chunks in order and concatenate them."""

        chunks = [
            AudioChunk(index=index, source_text=text)
            for index, text in enumerate(
                self.chunker.split(script_text, options.chunk_size_chars, DEFAULT_OVERLAP_CHARS)
            )
        ]
        total = len(chunks)
        sink.emit(
            ProgressEvent(
                "chunks_created",
                0,
                f"Split text into {total} chunks",
                {
                    "totalChunks": total,
                    "chunks": [
                        {
                            "index": chunk.index,
                            "preview": _preview(chunk.source_text),
                            "length": len(chunk.source_text),
                        }
                        for chunk in chunks
                    ],
                },
            )
        )

        for chunk in chunks:
            cancel_token.raise_if_cancelled()
            sink.emit(
                ProgressEvent(
                    "chunk_start",
                    round(chunk.index / total * GENERATION_PROGRESS_SHARE),
                    f"Processing audio chunk {chunk.index + 1} of {total}",
                    {
                        "chunkIndex": chunk.index,
                        "totalChunks": total,
                        "chunkPreview": _preview(chunk.source_text),
                    },
                )
            )
            chunk.temp_path = output_path.with_name(
                f"{output_path.stem}_chunk_{chunk.index}.{options.format}"
            )
            temp_paths.append(chunk.temp_path)
            chunk.byte_stream = self.synthesizer.synthesize(chunk.source_text, options)
            self._write_stream(chunk.byte_stream, chunk.temp_path)
            self.run_logger.event(
                "INFO", "tts", "chunk_complete", chunk=chunk.index + 1, total=total
            )
            sink.emit(
                ProgressEvent(
                    "chunk_complete",
                    round((chunk.index + 1) / total * GENERATION_PROGRESS_SHARE),
                    f"Completed audio chunk {chunk.index + 1} of {total}",
                    {"chunkIndex": chunk.index, "totalChunks": total},
                )
            )

        cancel_token.raise_if_cancelled()
        sink.emit(
            ProgressEvent(
                "combining",
                GENERATION_PROGRESS_SHARE,
                f"Combining {total} audio segments into final file...",
            )
        )
        self.concatenator.concatenate(
            options.format, [chunk.temp_path for chunk in chunks if chunk.temp_path], partial_path
        )
        return total

    @staticmethod
    def _write_stream(stream: Iterable[bytes], path: Path) -> None:
        """Write a streamed body to `path`, rejecting empty responses."""

        path.parent.mkdir(parents=True, exist_ok=True)
        written = 0
        with path.open("wb") as handle:
            for block in stream:
                handle.write(block)
                written += len(block)
        if written == 0:
            raise SynthesisError("Speech synthesis returned an empty audio stream.", kind="generic")

    def _output_path(self, options: AudioOptions, source_name: str) -> Path:
        """Return the final output path for this run."""

        if options.filename:
            name = Path(options.filename).name
            if "." not in name:
                name = f"{name}.{options.format}"
            return options.output_dir / name
        stem = (
            f"{slugify_title(source_name, fallback='script')}_audio_"
            f"{filename_timestamp(self.clock())}_{self.token_factory()}"
        )
        return options.output_dir / f"{stem}.{options.format}"
