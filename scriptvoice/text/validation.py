"""Heuristic quality checks for generated chapter text.

Responsibilities:
- Compare generated chapter length against the duration-derived expectation.
- Reject placeholder output and text that ignores the chapter title.
"""

from __future__ import annotations

from ..models.datatypes import WORDS_PER_MINUTE_TARGET, ChapterOutline, ValidationResult
from ..parsing import count_words

_MIN_LENGTH_RATIO = 0.5
_MAX_LENGTH_RATIO = 2.0
_MIN_CONTENT_CHARS = 100
_MIN_KEYWORD_CHARS = 3
_PLACEHOLDER_TOKENS = ("[", "]", "TODO")
_KEYWORD_STRIP_CHARS = "\"'.,:;!?()-–"


class ContentValidator:
    """Score one generated chapter; the first failing rule decides the reason."""

    def validate(
        self,
        generated_text: str,
        expected_duration_minutes: float,
        chapter: ChapterOutline,
    ) -> ValidationResult:
        """Validate chapter text against length, placeholder, and topicality rules."""

        word_count = count_words(generated_text)
        expected = int(round(expected_duration_minutes * WORDS_PER_MINUTE_TARGET))
        minimum = expected * _MIN_LENGTH_RATIO
        maximum = expected * _MAX_LENGTH_RATIO

        def invalid(reason: str) -> ValidationResult:
            return ValidationResult(
                valid=False,
                word_count=word_count,
                expected_word_count=expected,
                reason=reason,
            )

        if word_count < minimum:
            return invalid(
                f"Too short: {word_count} words (expected ~{expected}, minimum {minimum:g})"
            )
        if word_count > maximum:
            return invalid(
                f"Too long: {word_count} words (expected ~{expected}, maximum {maximum:g})"
            )
        if len(generated_text.strip()) < _MIN_CONTENT_CHARS:
            return invalid(f"Content too short (less than {_MIN_CONTENT_CHARS} characters)")
        if any(token in generated_text for token in _PLACEHOLDER_TOKENS):
            return invalid("Content contains placeholder text or incomplete sections")
        if not self._mentions_title(generated_text, chapter.title):
            return invalid("Content appears off-topic: no chapter title keyword found")

        return ValidationResult(valid=True, word_count=word_count, expected_word_count=expected)

    @staticmethod
    def _mentions_title(text: str, title: str) -> bool:
        """Return whether text mentions any significant word of a multi-word title."""

        title_words = title.lower().split()
        if len(title_words) <= 1:
            return True
        keywords = [
            word.strip(_KEYWORD_STRIP_CHARS)
            for word in title_words
            if len(word.strip(_KEYWORD_STRIP_CHARS)) > _MIN_KEYWORD_CHARS
        ]
        if not keywords:
            return True
        lowered = text.lower()
        return any(keyword in lowered for keyword in keywords)
