"""Unit tests for chapter counting, outline parsing, and planning calls."""

from __future__ import annotations

import pytest

from scriptvoice.errors import GenerationError
from scriptvoice.llm.http_client import ProviderError
from scriptvoice.llm.planner import ChapterPlanner, chapter_count, parse_outline
from scriptvoice.models.datatypes import ScriptRequest

_OUTLINE = """TITLE: Calm Mornings
ESTIMATED_DURATION: 6
WORD_COUNT_TARGET: 1200

CHAPTER 1: Arriving
Settle into the space.
Notice the breath.

**CHAPTER 2: Body Scan**
Move attention from head to toe.

CHAPTER 5: Closing
Return gently.
"""


@pytest.mark.parametrize(
    ("duration", "expected"),
    [(1, 3), (2, 3), (4, 3), (10, 5), (20, 8), (180, 8)],
)
def test_chapter_count_is_clamped_half_duration(duration: int, expected: int) -> None:
    """Chapter count should be `clamp(ceil(duration / 2), 3, 8)`."""

    assert chapter_count(duration) == expected


def test_parse_outline_reads_tags_and_renumbers_chapters() -> None:
    """Tagged outline output should map onto title, metadata, and contiguous chapters."""

    request = ScriptRequest(topic="morning meditation", duration_minutes=5)
    preview = parse_outline(_OUTLINE, request)

    assert preview.title == "Calm Mornings"
    assert preview.estimated_duration_minutes == 6
    assert preview.word_count_target == 1200
    assert [chapter.number for chapter in preview.chapters] == [1, 2, 3]
    assert [chapter.title for chapter in preview.chapters] == ["Arriving", "Body Scan", "Closing"]
    assert preview.chapters[0].description == "Settle into the space. Notice the breath."
    assert preview.raw_model_output == _OUTLINE
    assert preview.request is request


def test_parse_outline_without_tags_defaults_to_request_values() -> None:
    """Untagged output should yield zero chapters and request-derived metadata."""

    request = ScriptRequest(topic="tea", duration_minutes=4)
    preview = parse_outline("Here is some prose without any tags.", request)

    assert preview.chapters == ()
    assert preview.title == "tea"
    assert preview.estimated_duration_minutes == 4
    assert preview.word_count_target == 800


def test_planner_sends_one_outline_call(scripted_text_client) -> None:  # type: ignore[no-untyped-def]
    """Planning should issue one call with outline token and temperature settings."""

    client = scripted_text_client([_OUTLINE])
    preview = ChapterPlanner(client).plan(ScriptRequest(topic="morning meditation", duration_minutes=5))

    assert len(preview.chapters) == 3
    assert len(client.calls) == 1
    assert client.calls[0]["max_tokens"] == 4000
    assert client.calls[0]["temperature"] == 0.7
    assert "morning meditation" in str(client.calls[0]["prompt"])


def test_planner_maps_provider_failures_to_generation_error(scripted_text_client) -> None:  # type: ignore[no-untyped-def]
    """Content-policy provider failures should carry the rephrasing guidance."""

    client = scripted_text_client(
        [ProviderError("blocked under content filtering policy", failure_kind="content_policy")]
    )

    with pytest.raises(GenerationError) as exc_info:
        ChapterPlanner(client).plan(ScriptRequest(topic="history of warfare", duration_minutes=5))

    assert exc_info.value.content_policy is True
    assert "Try rephrasing the topic" in str(exc_info.value)
