"""Structured run logging utilities.

Responsibilities:
- Install one plain-format `loguru` sink for CLI and server processes.
- Emit concise, deterministic phase-level events for generation, synthesis, and jobs.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger


def configure_logging(sink: TextIO | None = None, level: str = "INFO") -> None:
    """Replace loguru sinks with a single `{message}` sink at the given level."""

    logger.remove()
    logger.add(sink or sys.stderr, format="{message}", level=level.upper(), colorize=False)


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
        if context[key] is not None
    ]
    if not tokens:
        return ""
    return " " + " ".join(tokens)


class RunLogger:
    """Emit deterministic phase logs for pipeline and job activity."""

    def event(self, level: str, stage: str, event: str, **context: object) -> None:
        """Emit one structured runtime log line."""

        line = f"[phase] level={level} stage={stage} event={event}{_format_context(context)}"
        logger.log(level, line)

    def log_stage_start(self, stage: str, **context: object) -> None:
        """Emit a stage-start runtime event."""

        self.event("INFO", stage, "start", **context)

    def log_stage_complete(self, stage: str, **context: object) -> None:
        """Emit a stage-complete runtime event."""

        self.event("INFO", stage, "complete", **context)

    def log_stage_failure(self, stage: str, error_type: str, **context: object) -> None:
        """Emit a stage-failure runtime event without sensitive payload details."""

        self.event("ERROR", stage, "failure", error_type=error_type, **context)
