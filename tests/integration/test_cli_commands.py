"""Integration tests for CLI commands over fake providers and credential storage."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pytest import MonkeyPatch
from typer.testing import CliRunner

from scriptvoice.cli import app
from scriptvoice.credentials import CREDENTIAL_ACCOUNTS

_OUTLINE = (
    "TITLE: Mountain Weather\n"
    "CHAPTER 1: Rising Air\nHow slopes lift moist air.\n"
    "CHAPTER 2: Sudden Storms\nWhy afternoons turn violent.\n"
    "CHAPTER 3: Reading the Sky\nSigns every hiker should know.\n"
)


class InMemoryCredentialStore:
    """Simple in-memory credential store used for CLI tests."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values = dict(initial or {})

    def is_available(self) -> bool:
        return True

    def get_api_key(self, account: str) -> str | None:
        return self._values.get(account)

    def set_api_key(self, account: str, api_key: str) -> None:
        self._values[account] = api_key.strip()

    def clear_api_key(self, account: str) -> bool:
        return self._values.pop(account, None) is not None

    def load_all(self) -> dict[str, str]:
        return {account: self._values[account] for account in CREDENTIAL_ACCOUNTS if account in self._values}


def _install_workflow(monkeypatch: MonkeyPatch, workflow: Any, store: InMemoryCredentialStore | None = None) -> dict[str, Any]:
    """Route CLI workflow construction to a prepared workflow and capture its inputs."""

    captured: dict[str, Any] = {}

    def _fake_build(config: Any, sources: Any) -> Any:
        captured["config"] = config
        captured["sources"] = sources
        return workflow

    monkeypatch.setattr("scriptvoice.cli._build_workflow", _fake_build)
    monkeypatch.setattr(
        "scriptvoice.cli.create_credential_store", lambda: store or InMemoryCredentialStore()
    )
    return captured


def test_script_command_writes_script_and_reports_progress(
    monkeypatch: MonkeyPatch, build_workflow, scripted_text_client, words, tmp_path: Path  # type: ignore[no-untyped-def]
) -> None:
    """The script command should save the script and print a summary."""

    out_dir = tmp_path / "output"
    store = InMemoryCredentialStore({"text_api_key": "stored-key"})
    captured = _install_workflow(
        monkeypatch, build_workflow(scripted_text_client([words(450, keyword="mountain")])), store
    )

    result = CliRunner().invoke(
        app,
        ["script", "Mountain weather", "--duration", "3", "--out", str(out_dir), "--api-key", "cli-key"],
    )

    assert result.exit_code == 0, result.output
    assert "[progress] generating 50%" in result.output
    assert "Words: 450" in result.output
    assert "Generation path: direct" in result.output
    assert len(list((out_dir / "scripts").glob("mountain_weather_*.txt"))) == 1
    assert captured["config"].output_dir == out_dir
    assert captured["sources"].cli == {"text_api_key": "cli-key"}
    assert captured["sources"].secure == {"text_api_key": "stored-key"}


def test_script_command_reports_validation_errors(
    monkeypatch: MonkeyPatch, build_workflow, scripted_text_client, tmp_path: Path  # type: ignore[no-untyped-def]
) -> None:
    """Invalid requests should exit non-zero with field details."""

    _install_workflow(monkeypatch, build_workflow(scripted_text_client()))

    result = CliRunner().invoke(
        app, ["script", "Mountain weather", "--duration", "400", "--out", str(tmp_path / "output")]
    )

    assert result.exit_code == 1
    assert "script failed at stage `validation`" in result.output
    assert "  - duration:" in result.output


def test_preview_save_then_script_from_preview(
    monkeypatch: MonkeyPatch, build_workflow, scripted_text_client, words, tmp_path: Path  # type: ignore[no-untyped-def]
) -> None:
    """A saved preview should drive a later outline-based script run."""

    text_client = scripted_text_client([_OUTLINE, words(450, keyword="mountain")])
    _install_workflow(monkeypatch, build_workflow(text_client))
    preview_path = tmp_path / "previews" / "mountain.json"
    runner = CliRunner()

    preview_result = runner.invoke(app, ["preview", "Mountain weather", "--save", str(preview_path)])
    script_result = runner.invoke(
        app, ["script", "--from-preview", str(preview_path), "--out", str(tmp_path / "output")]
    )

    assert preview_result.exit_code == 0, preview_result.output
    assert "Title: Mountain Weather" in preview_result.output
    assert "2. Sudden Storms" in preview_result.output
    assert f"Preview: {preview_path}" in preview_result.output
    assert json.loads(preview_path.read_text(encoding="utf-8"))["chapters"][2]["title"] == "Reading the Sky"
    assert script_result.exit_code == 0, script_result.output
    assert "Title: Mountain Weather" in script_result.output
    assert "Generation path: outline" in script_result.output


def test_script_from_missing_preview_file_fails(
    monkeypatch: MonkeyPatch, build_workflow, scripted_text_client, tmp_path: Path  # type: ignore[no-untyped-def]
) -> None:
    """Unreadable preview files should be reported as an input-stage failure."""

    _install_workflow(monkeypatch, build_workflow(scripted_text_client()))

    result = CliRunner().invoke(app, ["script", "--from-preview", str(tmp_path / "absent.json")])

    assert result.exit_code == 1
    assert "script failed at stage `preview-input`" in result.output


def test_audio_command_synthesizes_inline_text(
    monkeypatch: MonkeyPatch, build_workflow, scripted_text_client, fake_speech_client, words, tmp_path: Path  # type: ignore[no-untyped-def]
) -> None:
    """Inline text should be synthesized into a file under the output audio directory."""

    speech_client = fake_speech_client()
    _install_workflow(monkeypatch, build_workflow(scripted_text_client(), speech_client))
    out_dir = tmp_path / "output"

    result = CliRunner().invoke(
        app,
        [
            "audio",
            "--text",
            words(300),
            "--format",
            "wav",
            "--filename",
            "session",
            "--out",
            str(out_dir),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Format: wav" in result.output
    assert "Chunks: 1" in result.output
    assert "Estimated duration (s): 120.0" in result.output
    assert (out_dir / "audio" / "session.wav").is_file()
    assert len(speech_client.calls) == 1


def test_audio_command_synthesizes_script_file(
    monkeypatch: MonkeyPatch, build_workflow, scripted_text_client, fake_speech_client, words, tmp_path: Path  # type: ignore[no-untyped-def]
) -> None:
    """A saved script file should be read and synthesized."""

    speech_client = fake_speech_client()
    _install_workflow(monkeypatch, build_workflow(scripted_text_client(), speech_client))
    script_file = tmp_path / "notes.txt"
    script_file.write_text(words(120), encoding="utf-8")

    result = CliRunner().invoke(app, ["audio", str(script_file), "--out", str(tmp_path / "output")])

    assert result.exit_code == 0, result.output
    assert speech_client.calls[0]["text"] == words(120)
    assert list((tmp_path / "output" / "audio").glob("notes_audio_*.mp3"))


def test_audio_command_requires_exactly_one_input(tmp_path: Path) -> None:
    """Missing or duplicated inputs should fail before any service is built."""

    runner = CliRunner()
    script_file = tmp_path / "notes.txt"
    script_file.write_text("hello there", encoding="utf-8")

    missing = runner.invoke(app, ["audio"])
    both = runner.invoke(app, ["audio", str(script_file), "--text", "hello"])

    for result in (missing, both):
        assert result.exit_code == 1
        assert "audio failed at stage `audio-input`" in result.output
        assert "Hint:" in result.output


def test_pipeline_command_prints_script_and_audio_summaries(
    monkeypatch: MonkeyPatch, build_workflow, scripted_text_client, fake_speech_client, words, tmp_path: Path  # type: ignore[no-untyped-def]
) -> None:
    """The pipeline command should report both phases and their outputs."""

    _install_workflow(
        monkeypatch,
        build_workflow(scripted_text_client([words(450, keyword="mountain")]), fake_speech_client()),
    )

    result = CliRunner().invoke(
        app, ["pipeline", "Mountain weather", "--out", str(tmp_path / "output")]
    )

    assert result.exit_code == 0, result.output
    assert "[progress] pipeline_start 0%" in result.output
    assert "[progress] script_complete 30%" in result.output
    assert "[progress] complete 100%" in result.output
    assert "Words: 450" in result.output
    assert "Chunks: 1" in result.output


def test_pipeline_command_reports_synthesis_failure(
    monkeypatch: MonkeyPatch, build_workflow, scripted_text_client, fake_speech_client, words, tmp_path: Path  # type: ignore[no-untyped-def]
) -> None:
    """Synthesis failures should be reported at the audio stage."""

    _install_workflow(
        monkeypatch,
        build_workflow(
            scripted_text_client([words(450, keyword="mountain")]),
            fake_speech_client(fail_on_call=1),
        ),
    )

    result = CliRunner().invoke(
        app, ["pipeline", "Mountain weather", "--out", str(tmp_path / "output")]
    )

    assert result.exit_code == 1
    assert "pipeline failed at stage `audio-synthesis`" in result.output
    assert list((tmp_path / "output" / "audio").glob("*")) == []


def test_voices_command_lists_catalogue(tmp_path: Path) -> None:
    """The voices command should print the catalogue and configured custom voice."""

    config_path = tmp_path / "scriptvoice.yaml"
    config_path.write_text("tts_voice: voice-ref-7\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["voices", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert "Custom voice: voice-ref-7" in result.output
    assert "Current model: s1" in result.output


def test_missing_config_file_is_reported(tmp_path: Path) -> None:
    """A missing config path should exit with a config-stage error and hint."""

    result = CliRunner().invoke(app, ["voices", "--config", str(tmp_path / "absent.yaml")])

    assert result.exit_code == 1
    assert "voices failed at stage `config`" in result.output
    assert "Config file not found" in result.output


def test_credentials_command_supports_set_clear_and_status(monkeypatch: MonkeyPatch) -> None:
    """Credentials command should support storing, clearing, and reporting API key status."""

    store = InMemoryCredentialStore()
    monkeypatch.setattr("scriptvoice.cli.create_credential_store", lambda: store)
    runner = CliRunner()

    set_result = runner.invoke(app, ["credentials", "--set", "fish-audio"], input="fish-key\n")
    assert set_result.exit_code == 0, set_result.output
    assert "fish-audio API key stored in secure credential storage." in set_result.output
    assert store.get_api_key("fish_audio_api_key") == "fish-key"

    status_result = runner.invoke(app, ["credentials"])
    assert status_result.exit_code == 0, status_result.output
    assert "Secure credential storage: available" in status_result.output
    assert "Stored text API key: not set" in status_result.output
    assert "Stored fish-audio API key: present" in status_result.output

    clear_result = runner.invoke(app, ["credentials", "--clear", "fish-audio"])
    assert clear_result.exit_code == 0, clear_result.output
    assert "Stored fish-audio API key cleared" in clear_result.output
    assert store.get_api_key("fish_audio_api_key") is None


def test_credentials_command_rejects_unknown_account(monkeypatch: MonkeyPatch) -> None:
    """Unknown credential names should fail with a hint."""

    monkeypatch.setattr("scriptvoice.cli.create_credential_store", InMemoryCredentialStore)

    result = CliRunner().invoke(app, ["credentials", "--set", "elevenlabs"])

    assert result.exit_code == 1
    assert "Unknown credential `elevenlabs`" in result.output
