"""Deterministic slug helpers for filesystem-safe artifact names.

Responsibilities:
- Normalize free-form topics into stable ASCII slugs.
- Keep slug behavior locale-independent for reproducible filenames.
"""

from __future__ import annotations

import re
import unicodedata

_MAX_SLUG_CHARS = 50


def slugify_title(value: str, *, fallback: str = "script") -> str:
    """Return a filesystem-safe ASCII slug capped at 50 characters."""

    normalized = unicodedata.normalize("NFKD", value)
    ascii_only = normalized.encode("ascii", "ignore").decode("ascii")
    lowered = ascii_only.lower().strip()
    collapsed = re.sub(r"[^a-z0-9]+", "_", lowered)
    slug = collapsed.strip("_")[:_MAX_SLUG_CHARS].rstrip("_")
    return slug or fallback
