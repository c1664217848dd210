"""Shared typed data models for Scriptvoice.

This package contains dataclasses used across generation, synthesis, job, and
HTTP modules to avoid cross-module coupling and circular imports.
"""

from .datatypes import (
    AudioChunk,
    AudioOptions,
    AudioResult,
    ChapterOutcome,
    ChapterOutline,
    ChapterResult,
    ChapterStat,
    GeneratedScript,
    ScriptPreview,
    ScriptRequest,
    ValidationResult,
)

__all__ = [
    "AudioChunk",
    "AudioOptions",
    "AudioResult",
    "ChapterOutcome",
    "ChapterOutline",
    "ChapterResult",
    "ChapterStat",
    "GeneratedScript",
    "ScriptPreview",
    "ScriptRequest",
    "ValidationResult",
]
