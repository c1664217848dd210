"""Audio assembly stage: chunked synthesis pipeline and segment concatenation."""

from .concat import (
    AudioConcatenator,
    FormatAwareConcatenator,
    RawByteConcatenator,
    WavFrameConcatenator,
)
from .pipeline import AudioPipeline, estimate_audio_seconds

__all__ = [
    "AudioConcatenator",
    "AudioPipeline",
    "FormatAwareConcatenator",
    "RawByteConcatenator",
    "WavFrameConcatenator",
    "estimate_audio_seconds",
]
