"""Domain exceptions for generation, synthesis, and CLI diagnostics.

Responsibilities:
- Give each failure family of the narration pipeline its own typed exception.
- Keep CLI-facing stage context (`stage`, `hint`) separate from domain errors.
"""

from __future__ import annotations

from typing import Any


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class ValidationError(ValueError):
    """Raised when caller input is malformed before any external call is made."""

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None) -> None:
        """Initialize validation error with optional per-field details."""

        super().__init__(message)
        self.message = message
        self.details = list(details or [])


class GenerationError(RuntimeError):
    """Raised when the text-generation service fails or returns unusable output."""

    def __init__(self, message: str, *, content_policy: bool = False) -> None:
        """Initialize generation error metadata."""

        super().__init__(message)
        self.message = message
        self.content_policy = content_policy


class SynthesisError(RuntimeError):
    """Raised when the speech-synthesis service fails.

    `kind` is one of `http_error` (upstream answered with an error status),
    `network` (connection, timeout, or broken stream), or `generic`.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str = "generic",
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        """Initialize synthesis error metadata."""

        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.body = body


class OperationCancelled(RuntimeError):
    """Raised when a cooperative cancellation token is triggered mid-run."""
