"""Prompt template library for outline, full-script, and chapter generation.

Responsibilities:
- Centralize prompt construction for every text-generation call.
- Soften sensationalized wording before outlines are embedded in full-script prompts.
"""

from __future__ import annotations

import re

from ..models.datatypes import WORDS_PER_MINUTE_TARGET, ChapterOutline, ScriptPreview

_POLICY_SOFTENING_RULES: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(rf"\b({words})\b", re.IGNORECASE), replacement)
    for words, replacement in (
        ("controversy|scandal|feud|fight|battle|war", "situation"),
        ("attacked|slammed|destroyed|crushed", "responded to"),
        ("revenge|retaliation|payback", "response"),
        ("victim|victimized", "affected person"),
        ("explosive|shocking|devastating", "significant"),
        ("drama|dramatic", "notable"),
        ("betrayal|betrayed", "disappointment"),
        ("toxic|poisonous", "challenging"),
        ("hate|hatred|hated", "dislike"),
        ("enemy|enemies", "critics"),
    )
)

_PLAIN_OUTPUT_RULES = """CRITICAL: Generate ONLY pure script content as plain text. Do NOT include:
- Section headers, titles, or labels
- Audio cues like music or sound-effect markers, or pause markers
- Visual cues or stage directions
- Formatting markers or brackets
- Instructions, notes, or meta-commentary
- Chapter titles or divisions
- Hashtags, bullet points, or numbered lists"""

_AUDIO_FIRST_RULES = """AUDIO-FIRST REQUIREMENTS:
- This content will be consumed AUDIO-ONLY (listeners are not watching)
- Use descriptive language that creates vivid mental images
- Include storytelling elements, emotional hooks, and personal connections
- Use a conversational delivery with clear verbal transitions
- Employ analogies and metaphors to explain complex concepts"""


def soften_for_content_policy(text: str) -> str:
    """Replace sensationalized words that commonly trip content filters."""

    softened = text
    for pattern, replacement in _POLICY_SOFTENING_RULES:
        softened = pattern.sub(replacement, softened)
    return softened


def _reference_block(reference_text: str | None) -> str:
    """Return the optional style-guide block appended to prompts."""

    if not reference_text:
        return ""
    return (
        "REFERENCE SCRIPT STYLE:\n"
        "Use this reference script as a style guide for tone, structure, and "
        f"audio-optimized writing:\n\n{reference_text.strip()}\n"
    )


class PromptLibrary:
    """Build prompt strings for supported text-generation tasks."""

    def outline_prompt(
        self,
        *,
        topic: str,
        duration_minutes: float,
        chapter_count: int,
        style: str,
        audience: str,
        tone: str,
        reference_text: str | None = None,
    ) -> str:
        """Return the tagged chapter-outline prompt."""

        word_target = int(duration_minutes * WORDS_PER_MINUTE_TARGET)
        example_chapters = "\n\n".join(
            f"CHAPTER {number}: <chapter title>\n<2-3 sentence description of this chapter>"
            for number in range(1, min(chapter_count, 3) + 1)
        )
        return f"""You are a professional script writer creating a chapter outline for an AUDIO-ONLY script about "{topic}".

CREATE A CHAPTER OUTLINE with the following specifications:
- Duration: Approximately {duration_minutes:g} minutes total
- Style: {style}
- Target audience: {audience}
- Tone: {tone}
- Number of chapters: {chapter_count} chapters

{_reference_block(reference_text)}
FORMAT YOUR RESPONSE EXACTLY AS SHOWN BELOW, without markdown headers or other formatting:

TITLE: <main title for the script>

{example_chapters}

(continue this exact pattern for all {chapter_count} chapters)

ESTIMATED_DURATION: {duration_minutes:g}
WORD_COUNT_TARGET: {word_target}

Each chapter should have a compelling descriptive title, flow logically into the next
chapter, and be designed for audio-only consumption. Use "CHAPTER 1:", "CHAPTER 2:"
and so on exactly as shown."""

    def direct_script_prompt(
        self,
        *,
        topic: str,
        duration_minutes: float,
        style: str,
        audience: str,
        tone: str,
        reference_text: str | None = None,
    ) -> str:
        """Return the single-call full-script prompt used without an outline."""

        word_target = int(duration_minutes * WORDS_PER_MINUTE_TARGET)
        return f"""You are a professional script writer specializing in AUDIO-ONLY content. Create a complete script about "{topic}".

SCRIPT DETAILS:
- Duration: Approximately {duration_minutes:g} minutes (aim for {word_target} words, be comprehensive and detailed)
- Style: {style}
- Target audience: {audience}
- Tone: {tone}

{_AUDIO_FIRST_RULES}

{_reference_block(reference_text)}
{_PLAIN_OUTPUT_RULES}

Write ONLY the spoken words a narrator would read aloud, flowing naturally from beginning to end."""

    def outline_script_prompt(
        self,
        *,
        preview: ScriptPreview,
        duration_minutes: float,
        style: str,
        audience: str,
        tone: str,
        reference_text: str | None = None,
    ) -> str:
        """Return the single-call full-script prompt that follows an approved outline."""

        word_target = int(duration_minutes * WORDS_PER_MINUTE_TARGET)
        outline = "\n\n".join(
            f"CHAPTER {chapter.number}: {soften_for_content_policy(chapter.title)}\n"
            f"{soften_for_content_policy(chapter.description)}"
            for chapter in preview.chapters
        )
        return f"""You are a professional script writer creating an educational AUDIO narration.

SCRIPT DETAILS:
- Subject: {soften_for_content_policy(preview.topic)}
- Title: {soften_for_content_policy(preview.title)}
- Duration: Approximately {duration_minutes:g} minutes (aim for {word_target} words)
- Style: {style}
- Target audience: {audience}
- Tone: {tone}

APPROVED CHAPTER OUTLINE:
{outline}

Follow the approved chapter structure exactly with smooth transitions between chapters.
Use respectful, informative language and avoid sensationalized framing.

{_reference_block(reference_text)}
{_PLAIN_OUTPUT_RULES}

Write ONLY the spoken words a narrator would read aloud, from the first chapter through the last."""

    def chapter_prompt(
        self,
        *,
        preview: ScriptPreview,
        chapter: ChapterOutline,
        chapter_position: int,
        chapter_total: int,
        chapter_duration_minutes: float,
        style: str,
        audience: str,
        tone: str,
        previous_excerpt: str = "",
        reference_text: str | None = None,
    ) -> str:
        """Return the prompt for one chapter of a chapter-assembled script."""

        word_target = int(chapter_duration_minutes * WORDS_PER_MINUTE_TARGET)
        if chapter_position == 1:
            position_hint = (
                "This is the opening chapter. Start with a compelling hook that draws "
                "listeners in immediately."
            )
        elif chapter_position == chapter_total:
            position_hint = (
                "This is the final chapter. Build to a strong conclusion and wrap up all "
                "key points with a memorable ending."
            )
        else:
            position_hint = (
                f"This is chapter {chapter_position} of {chapter_total}. Continue naturally "
                "while covering this chapter's specific content."
            )
        continuity = ""
        if previous_excerpt:
            continuity = (
                f'PREVIOUS CHAPTER ENDING:\n"...{previous_excerpt}"\n\n'
                "Continue naturally from where the previous chapter left off.\n"
            )

        return f"""You are a professional script writer creating chapter {chapter_position} of {chapter_total} for an AUDIO-ONLY script.

SCRIPT DETAILS:
- Overall Topic: {preview.topic}
- Overall Title: {preview.title}
- Chapter Duration: Approximately {chapter_duration_minutes:g} minutes (aim for {word_target} words)
- Style: {style}
- Target audience: {audience}
- Tone: {tone}

CHAPTER {chapter_position} DETAILS:
- Title: {chapter.title}
- Content Focus: {chapter.description}

CHAPTER CONTEXT:
{position_hint}

{continuity}
{_AUDIO_FIRST_RULES}

{_reference_block(reference_text)}
{_PLAIN_OUTPUT_RULES}

Write ONLY the spoken words a narrator would read aloud for this chapter."""
