"""Sentence-aligned text segmentation for speech synthesis.

Responsibilities:
- Split long scripts into bounded chunks on terminal punctuation boundaries.
- Seed each follow-up chunk with trailing words of the previous chunk for continuity.
"""

from __future__ import annotations

import re

DEFAULT_OVERLAP_CHARS = 200
"""Overlap budget used by the audio pipeline between consecutive chunks."""

_CHARS_PER_OVERLAP_WORD = 10


class TextChunker:
    """Create sentence-complete overlapping chunks from one script text."""

    _SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")

    def split(
        self,
        text: str,
        max_chunk_chars: int,
        overlap_chars: int = DEFAULT_OVERLAP_CHARS,
    ) -> list[str]:
        """Split text into ordered chunks of roughly `max_chunk_chars` characters.

        Args:
            text: Source script text.
            max_chunk_chars: Soft upper bound per chunk; a single longer sentence is kept whole.
            overlap_chars: Overlap budget, converted to `overlap_chars // 10` trailing words.

        Returns:
            Non-empty chunk strings in source order; empty only for blank input.
        """

        sentences = self.sentences(text)
        if not sentences:
            return []

        overlap_words = max(0, overlap_chars // _CHARS_PER_OVERLAP_WORD)
        chunks: list[str] = []
        current = ""
        for sentence in sentences:
            candidate = f"{current} {sentence}" if current else sentence
            if current and len(candidate) > max_chunk_chars:
                chunks.append(current)
                seed = self._trailing_words(current, overlap_words)
                current = f"{seed} {sentence}" if seed else sentence
                continue
            current = candidate

        if current:
            chunks.append(current)
        return chunks

    def sentences(self, text: str) -> list[str]:
        """Return stripped sentences split on `.`, `!`, or `?` followed by whitespace."""

        return [
            sentence.strip()
            for sentence in self._SENTENCE_BOUNDARY.split(text.strip())
            if sentence.strip()
        ]

    @staticmethod
    def _trailing_words(chunk: str, count: int) -> str:
        """Return the last `count` words of a closed chunk."""

        if count <= 0:
            return ""
        return " ".join(chunk.split()[-count:])
