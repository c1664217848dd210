"""Shared pytest fixtures for the Scriptvoice test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator

import pytest

from scriptvoice.audio.pipeline import AudioPipeline
from scriptvoice.config import ScriptvoiceConfig
from scriptvoice.io.storage import FileScriptStore
from scriptvoice.llm.assembler import ScriptAssembler
from scriptvoice.llm.planner import ChapterPlanner
from scriptvoice.tts.synthesizer import SpeechSynthesizer
from scriptvoice.workflow import ScriptvoiceWorkflow


def make_words(count: int, keyword: str = "topic") -> str:
    """Build deterministic prose of exactly `count` words, ending each sentence with a period."""

    words = [keyword] + [f"word{index}" for index in range(1, count)]
    sentences = [" ".join(words[start : start + 10]) + "." for start in range(0, count, 10)]
    return " ".join(sentences)


class ScriptedTextClient:
    """Text client returning queued responses; a callable decides when the queue is empty."""

    def __init__(
        self,
        responses: list[str | Exception] | None = None,
        *,
        default: Callable[[str], str] | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.default = default
        self.calls: list[dict[str, object]] = []

    def complete(self, prompt: str, *, max_tokens: int, temperature: float) -> str:
        self.calls.append({"prompt": prompt, "max_tokens": max_tokens, "temperature": temperature})
        if self.responses:
            response = self.responses.pop(0)
        elif self.default is not None:
            response = self.default(prompt)
        else:
            raise AssertionError("Unexpected text-generation call")
        if isinstance(response, Exception):
            raise response
        return response


class FakeSpeechClient:
    """Speech client yielding deterministic bytes; `fail_on_call` raises on that 1-based call."""

    def __init__(self, *, fail_on_call: int | None = None, error: Exception | None = None) -> None:
        self.fail_on_call = fail_on_call
        self.error = error or ConnectionError("connection reset")
        self.calls: list[dict[str, object]] = []

    def stream_speech(self, text: str, **kwargs: object) -> Iterator[bytes]:
        self.calls.append({"text": text, **kwargs})
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise self.error
        return iter([f"<audio {len(self.calls)}>".encode("utf-8"), b"|"])


@pytest.fixture
def scripted_text_client() -> type[ScriptedTextClient]:
    """Expose the scripted text client class."""

    return ScriptedTextClient


@pytest.fixture
def fake_speech_client() -> type[FakeSpeechClient]:
    """Expose the fake speech client class."""

    return FakeSpeechClient


@pytest.fixture
def words() -> Callable[..., str]:
    """Expose the deterministic prose builder."""

    return make_words


@pytest.fixture
def build_workflow(tmp_path: Path) -> Callable[..., ScriptvoiceWorkflow]:
    """Return a factory wiring a workflow around fake clients under `tmp_path`."""

    def _build(
        text_client: ScriptedTextClient,
        speech_client: FakeSpeechClient | None = None,
        **config_overrides: object,
    ) -> ScriptvoiceWorkflow:
        config = ScriptvoiceConfig(
            output_dir=tmp_path / "output",
            templates_dir=tmp_path / "templates",
            **config_overrides,
        )
        planner = ChapterPlanner(text_client)
        assembler = ScriptAssembler(
            text_client,
            FileScriptStore(config.output_dir),
            planner=planner,
            sleeper=lambda _seconds: None,
        )
        audio_pipeline = AudioPipeline(SpeechSynthesizer(speech_client or FakeSpeechClient()))
        return ScriptvoiceWorkflow(
            planner=planner,
            assembler=assembler,
            audio_pipeline=audio_pipeline,
            config=config,
        )

    return _build
