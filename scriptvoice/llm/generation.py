"""Shared generation constants and provider-to-domain error mapping."""

from __future__ import annotations

from ..errors import GenerationError
from .http_client import ProviderError, is_content_policy_message

GENERATION_TEMPERATURE = 0.7
OUTLINE_MAX_TOKENS = 4000
CHAPTER_MAX_TOKENS = 8000
FULL_SCRIPT_MIN_TOKENS = 4000
FULL_SCRIPT_MAX_TOKENS = 8000
TOKENS_PER_MINUTE = 200


def full_script_max_tokens(duration_minutes: float) -> int:
    """Return `min(8000, max(4000, duration * 200))` for single-call scripts."""

    scaled = int(duration_minutes * TOKENS_PER_MINUTE)
    return min(FULL_SCRIPT_MAX_TOKENS, max(FULL_SCRIPT_MIN_TOKENS, scaled))


def generation_error_from(exc: Exception, *, action: str) -> GenerationError:
    """Wrap a provider failure into `GenerationError`, flagging content-policy rejections."""

    message = str(exc)
    content_policy = (
        isinstance(exc, ProviderError) and exc.failure_kind == "content_policy"
    ) or is_content_policy_message(message)
    if content_policy:
        return GenerationError(
            "Content filtering blocked generation. Try rephrasing the topic or using "
            f"different language. Original error: {message}",
            content_policy=True,
        )
    return GenerationError(f"{action} failed: {message}")
