"""Concatenation of independently synthesized audio segments.

Responsibilities:
- Join ordered segment files into one output file per container format.
- Keep the joining strategy swappable behind `AudioConcatenator`.

Raw byte concatenation is only safe for frame-oriented streams such as MP3 or
headerless PCM; WAV segments are merged frame by frame instead.
"""

from __future__ import annotations

import shutil
import wave
from pathlib import Path
from typing import Protocol, Sequence


class AudioConcatenator(Protocol):
    """Protocol for joining ordered audio segment files."""

    def concatenate(self, audio_format: str, segments: Sequence[Path], output_path: Path) -> Path:
        """Join segments in order into `output_path` and return it."""


class RawByteConcatenator:
    """Append segment bytes in order without re-encoding."""

    def concatenate(self, audio_format: str, segments: Sequence[Path], output_path: Path) -> Path:
        """Write each segment's bytes to the output in order."""

        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("wb") as merged:
            for segment in segments:
                with segment.open("rb") as source:
                    shutil.copyfileobj(source, merged)
        return output_path


class WavFrameConcatenator:
    """Merge WAV segments into one WAV container with a single header."""

    def concatenate(self, audio_format: str, segments: Sequence[Path], output_path: Path) -> Path:
        """Merge WAV frames from each segment, requiring identical parameters."""

        if not segments:
            raise ValueError("No WAV segments to concatenate.")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        with wave.open(str(segments[0]), "rb") as first:
            channels = first.getnchannels()
            sample_width = first.getsampwidth()
            framerate = first.getframerate()

        with wave.open(str(output_path), "wb") as merged:
            merged.setnchannels(channels)
            merged.setsampwidth(sample_width)
            merged.setframerate(framerate)
            for segment in segments:
                with wave.open(str(segment), "rb") as chunk:
                    if (
                        chunk.getnchannels() != channels
                        or chunk.getsampwidth() != sample_width
                        or chunk.getframerate() != framerate
                    ):
                        raise ValueError(f"Incompatible WAV parameters for segment: {segment.name}")
                    merged.writeframes(chunk.readframes(chunk.getnframes()))
        return output_path


class FormatAwareConcatenator:
    """Dispatch to the frame merger for WAV and raw concatenation otherwise."""

    def __init__(
        self,
        *,
        raw: AudioConcatenator | None = None,
        wav: AudioConcatenator | None = None,
    ) -> None:
        self.raw = raw or RawByteConcatenator()
        self.wav = wav or WavFrameConcatenator()

    def concatenate(self, audio_format: str, segments: Sequence[Path], output_path: Path) -> Path:
        """Join segments with the strategy matching `audio_format`."""

        strategy = self.wav if audio_format == "wav" else self.raw
        return strategy.concatenate(audio_format, segments, output_path)
