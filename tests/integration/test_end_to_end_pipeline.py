"""End-to-end workflow runs over deterministic fake providers."""

from __future__ import annotations

from pathlib import Path

from scriptvoice.jobs.progress import ProgressEvent
from scriptvoice.llm.assembler import estimate_spoken_minutes
from scriptvoice.llm.planner import chapter_count
from scriptvoice.models.datatypes import WORDS_PER_MINUTE_TARGET, ScriptRequest

_SENTENCE = "Meditation helps calm the mind."


class _RecordingSink:
    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def emit(self, event: ProgressEvent) -> None:
        self.events.append(event)


def _meditation_script() -> str:
    return " ".join([_SENTENCE] * 120)


def _outline() -> str:
    return (
        "TITLE: Benefits of Meditation\n"
        "CHAPTER 1: Why Meditate\nThe case for a daily practice.\n"
        "CHAPTER 2: Calming the Mind\nAttention and breath.\n"
        "CHAPTER 3: Building the Habit\nSmall steps every day.\n"
    )


def test_meditation_topic_from_outline_to_single_chunk_audio(
    build_workflow, scripted_text_client, fake_speech_client, tmp_path: Path  # type: ignore[no-untyped-def]
) -> None:
    """A 3-minute topic should plan 3 chapters, write the script in one call, and synthesize one chunk."""

    request = ScriptRequest(topic="Benefits of meditation", duration_minutes=3)
    text_client = scripted_text_client([_outline(), _meditation_script()])
    speech_client = fake_speech_client()
    workflow = build_workflow(text_client, speech_client)

    preview = workflow.preview(request)
    script = workflow.generate_script(request)
    audio = workflow.generate_audio(
        options=workflow.config.default_audio_options(chunk_size_chars=4000),
        script_path=script.file_path,
    )

    assert chapter_count(3) == 3
    assert len(preview.chapters) == 3
    assert script.generation_path == "direct"
    assert len(text_client.calls) == 2
    assert script.word_count == 600
    assert script.estimated_duration_minutes == 4.0
    assert len(script.content) < 4000
    assert audio.chunk_count == 1
    assert len(speech_client.calls) == 1
    assert audio.output_path.parent == tmp_path / "output" / "audio"
    assert audio.output_path.name.startswith("benefits_of_meditation_")
    assert audio.estimated_duration_seconds == 240.0


def test_pipeline_progress_spans_script_then_audio(
    build_workflow, scripted_text_client, fake_speech_client  # type: ignore[no-untyped-def]
) -> None:
    """The full pipeline should report script progress up to 30 and audio up to 100."""

    sink = _RecordingSink()
    workflow = build_workflow(scripted_text_client([_meditation_script()]), fake_speech_client())

    result = workflow.script_to_audio(
        ScriptRequest(topic="Benefits of meditation", duration_minutes=3),
        workflow.config.default_audio_options(),
        sink=sink,
    )

    timeline = [(event.type, event.progress) for event in sink.events]
    assert timeline[:3] == [("pipeline_start", 0), ("script_generation", 5), ("generating", 17)]
    assert ("script_saved", 30) in timeline
    assert ("processing", 65) in timeline
    assert ("script_complete", 30) in timeline
    assert ("audio_start", 30) in timeline
    assert ("audio_progress", 30) in timeline
    assert ("audio_complete", 100) in timeline
    assert timeline[-1] == ("complete", 100)
    progresses = [progress for _type, progress in timeline if progress is not None]
    assert progresses == sorted(progresses)
    assert result.to_payload()["audio"]["chunks"] == 1
    assert result.script.file_path is not None and result.script.file_path.exists()


def test_spoken_and_target_word_rates_differ_by_fixed_ratio() -> None:
    """Script duration estimates use 150 wpm while chapter targets use 200 wpm."""

    minutes_spoken = estimate_spoken_minutes(600)
    minutes_at_target = 600 / WORDS_PER_MINUTE_TARGET

    assert minutes_spoken == 4.0
    assert minutes_at_target == 3.0
    assert round(minutes_spoken / minutes_at_target, 2) == 1.33
