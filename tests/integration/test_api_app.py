"""HTTP API tests over fake providers through the FastAPI test client."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from scriptvoice.api import create_app
from scriptvoice.errors import GenerationError

_SSE_HEADERS = {"Accept": "text/event-stream"}
_OUTLINE = (
    "TITLE: Deep Sea Creatures\n"
    "CHAPTER 1: The Twilight Zone\nLight fades below two hundred meters.\n"
    "CHAPTER 2: Living Lights\nBioluminescence as language.\n"
    "CHAPTER 3: The Abyss\nLife under crushing pressure.\n"
)


def _client(workflow: Any) -> TestClient:
    return TestClient(create_app(workflow, start_sweeper=False))


def _read_events(response: Any) -> list[dict[str, Any]]:
    events: list[dict[str, Any]] = []
    for line in response.iter_lines():
        if line.startswith("data: "):
            events.append(json.loads(line[len("data: ") :]))
    return events


@pytest.fixture
def script_text(words) -> str:  # type: ignore[no-untyped-def]
    return words(450, keyword="ocean")


def test_health_and_catalogue_describe_the_service(build_workflow, scripted_text_client) -> None:  # type: ignore[no-untyped-def]
    """Health should report service wiring and the catalogue should list every route."""

    client = _client(build_workflow(scripted_text_client()))

    health = client.get("/health").json()
    catalogue = client.get("/api").json()

    assert health["status"] == "ok"
    assert health["services"] == {"textGeneration": "anthropic", "speechSynthesis": "fish_audio:s1"}
    assert "POST /api/script-to-audio" in catalogue["endpoints"]
    assert "GET /api/job-status/{job_id}" in catalogue["endpoints"]


def test_generate_script_returns_json_envelope(
    build_workflow, scripted_text_client, script_text: str, tmp_path: Path  # type: ignore[no-untyped-def]
) -> None:
    """A JSON caller should get the saved script in a success envelope."""

    client = _client(build_workflow(scripted_text_client([script_text])))

    response = client.post("/api/generate-script", json={"topic": "Deep sea creatures", "duration": 3})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["wordCount"] == 450
    assert body["data"]["generationPath"] == "direct"
    saved = Path(body["data"]["filePath"])
    assert saved.parent == tmp_path / "output" / "scripts"
    assert saved.read_text(encoding="utf-8") == script_text


@pytest.mark.parametrize(
    ("payload", "field"),
    [
        ({"topic": "Deep sea creatures", "duration": 500}, "duration"),
        ({"topic": "   ", "duration": 3}, "topic"),
        ({"topic": "Deep sea creatures", "duration": "long"}, "duration"),
    ],
)
def test_generate_script_rejects_invalid_requests(
    build_workflow, scripted_text_client, payload: dict[str, Any], field: str  # type: ignore[no-untyped-def]
) -> None:
    """Invalid input should produce a 400 validation envelope before any service call."""

    text_client = scripted_text_client()
    client = _client(build_workflow(text_client))

    response = client.post("/api/generate-script", json=payload)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert field in [detail["field"] for detail in error["details"]]
    assert text_client.calls == []


def test_generation_failure_maps_to_bad_gateway(build_workflow, scripted_text_client) -> None:  # type: ignore[no-untyped-def]
    """Upstream text-generation failures should surface as 502 errors."""

    client = _client(
        build_workflow(scripted_text_client([GenerationError("Script generation failed: overloaded")]))
    )

    response = client.post("/api/generate-script", json={"topic": "Deep sea creatures"})

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "GENERATION_ERROR"


def test_preview_then_generate_from_preview(
    build_workflow, scripted_text_client, script_text: str  # type: ignore[no-untyped-def]
) -> None:
    """A returned preview should be accepted back to produce an outline-based script."""

    text_client = scripted_text_client([_OUTLINE, script_text])
    client = _client(build_workflow(text_client))

    preview = client.post(
        "/api/generate-preview", json={"topic": "Deep sea creatures", "duration": 3}
    ).json()["data"]
    script = client.post("/api/generate-from-preview", json={"previewData": preview}).json()["data"]

    assert [chapter["title"] for chapter in preview["chapters"]] == [
        "The Twilight Zone",
        "Living Lights",
        "The Abyss",
    ]
    assert script["title"] == "Deep Sea Creatures"
    assert script["generationPath"] == "outline"
    assert "Living Lights" in str(text_client.calls[1]["prompt"])


def test_generate_from_preview_requires_chapters(build_workflow, scripted_text_client) -> None:  # type: ignore[no-untyped-def]
    """A preview without chapters should be refused."""

    client = _client(build_workflow(scripted_text_client()))

    response = client.post(
        "/api/generate-from-preview",
        json={"previewData": {"topic": "Deep sea creatures", "title": "Deep", "chapters": []}},
    )

    assert response.status_code == 502
    assert response.json()["error"]["message"] == "No chapters found in preview data."


def test_generate_audio_streams_progress_and_records_job(
    build_workflow, scripted_text_client, fake_speech_client, script_text: str  # type: ignore[no-untyped-def]
) -> None:
    """SSE callers should get a job id first, progress frames, and the result last."""

    client = _client(build_workflow(scripted_text_client(), fake_speech_client()))

    with client.stream(
        "POST", "/api/generate-audio", json={"text": script_text}, headers=_SSE_HEADERS
    ) as response:
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = _read_events(response)

    job_id = events[0]["jobId"]
    assert events[0]["type"] == "starting"
    assert events[-1]["type"] == "complete"
    assert events[-1]["data"]["chunks"] == 1
    assert {event["jobId"] for event in events} == {job_id}
    assert "processing" in [event["type"] for event in events]

    status = client.get(f"/api/job-status/{job_id}").json()["data"]
    assert status["isComplete"] is True
    assert status["status"] == "complete"
    assert status["progress"] == 100
    assert status["result"]["chunks"] == 1


def test_generate_audio_stream_reports_synthesis_failure(
    build_workflow, scripted_text_client, fake_speech_client, script_text: str  # type: ignore[no-untyped-def]
) -> None:
    """A failed job should end its stream with an error frame and an error job record."""

    client = _client(build_workflow(scripted_text_client(), fake_speech_client(fail_on_call=1)))

    with client.stream(
        "POST", "/api/generate-audio?stream=true", json={"text": script_text}
    ) as response:
        events = _read_events(response)

    assert events[-1]["type"] == "error"
    status = client.get(f"/api/job-status/{events[0]['jobId']}").json()["data"]
    assert status["status"] == "error"
    assert status["isComplete"] is True
    assert status["error"]


def test_generate_audio_json_failure_maps_to_bad_gateway(
    build_workflow, scripted_text_client, fake_speech_client, script_text: str  # type: ignore[no-untyped-def]
) -> None:
    """Synchronous synthesis failures should surface as 502 errors."""

    client = _client(build_workflow(scripted_text_client(), fake_speech_client(fail_on_call=1)))

    response = client.post("/api/generate-audio", json={"text": script_text})

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "SYNTHESIS_ERROR"


def test_generate_audio_from_saved_script(
    build_workflow, scripted_text_client, fake_speech_client, script_text: str  # type: ignore[no-untyped-def]
) -> None:
    """Saved scripts should be accepted by absolute path or by bare file name."""

    speech_client = fake_speech_client()
    client = _client(build_workflow(scripted_text_client([script_text]), speech_client))
    saved = Path(
        client.post("/api/generate-script", json={"topic": "Deep sea creatures"}).json()["data"][
            "filePath"
        ]
    )

    by_path = client.post("/api/generate-audio", json={"filePath": str(saved), "format": "wav"})
    by_name = client.post("/api/generate-audio", json={"filePath": saved.name})

    assert by_path.status_code == 200
    assert by_path.json()["data"]["format"] == "wav"
    assert by_name.status_code == 200
    assert [call["text"] for call in speech_client.calls] == [script_text, script_text]


def test_generate_audio_refuses_paths_outside_scripts(
    build_workflow, scripted_text_client, tmp_path: Path  # type: ignore[no-untyped-def]
) -> None:
    """File paths outside the scripts directory should be denied."""

    secret = tmp_path / "secret.txt"
    secret.write_text("not a script", encoding="utf-8")
    client = _client(build_workflow(scripted_text_client()))

    response = client.post("/api/generate-audio", json={"filePath": str(secret)})

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ACCESS_DENIED"


def test_generate_audio_requires_text_or_file(build_workflow, scripted_text_client) -> None:  # type: ignore[no-untyped-def]
    """Requests with neither text nor a file path should fail validation."""

    client = _client(build_workflow(scripted_text_client()))

    missing = client.post("/api/generate-audio", json={"text": "  "})
    bad_format = client.post("/api/generate-audio", json={"text": "hello", "format": "flac"})

    assert missing.status_code == 400
    assert bad_format.status_code == 400
    assert bad_format.json()["error"]["details"][0]["field"] == "format"


def test_unknown_job_is_not_found(build_workflow, scripted_text_client) -> None:  # type: ignore[no-untyped-def]
    """Polling an unknown job id should return 404."""

    client = _client(build_workflow(scripted_text_client()))

    response = client.get("/api/job-status/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "JOB_NOT_FOUND"


def test_voices_lists_catalogue(build_workflow, scripted_text_client) -> None:  # type: ignore[no-untyped-def]
    """The voice catalogue should include the configured custom voice."""

    client = _client(build_workflow(scripted_text_client(), tts_voice="voice-ref-42"))

    data = client.get("/api/voices").json()["data"]

    assert data["defaultVoices"]
    assert data["customVoice"] == "voice-ref-42"


def test_file_listing_download_and_delete(
    build_workflow, scripted_text_client, script_text: str  # type: ignore[no-untyped-def]
) -> None:
    """Generated files should be listed, downloadable, and deletable by name."""

    client = _client(build_workflow(scripted_text_client([script_text])))
    name = Path(
        client.post("/api/generate-script", json={"topic": "Deep sea creatures"}).json()["data"][
            "filePath"
        ]
    ).name

    listing = client.get("/api/files").json()["data"]
    scripts_only = client.get("/api/files", params={"type": "scripts"}).json()["data"]
    download = client.get(f"/api/download/script/{name}")
    deleted = client.delete(f"/api/files/script/{name}")
    missing = client.get(f"/api/download/script/{name}")

    assert [row["name"] for row in listing["scripts"]] == [name]
    assert listing["audio"] == []
    assert set(scripts_only) == {"scripts"}
    assert download.status_code == 200
    assert download.text == script_text
    assert deleted.json()["data"] == {"deleted": name}
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "FILE_NOT_FOUND"


def test_file_routes_reject_unknown_types(build_workflow, scripted_text_client) -> None:  # type: ignore[no-untyped-def]
    """Unknown file types should be rejected with 400."""

    client = _client(build_workflow(scripted_text_client()))

    assert client.get("/api/files", params={"type": "video"}).status_code == 400
    assert client.get("/api/download/video/clip.mp4").status_code == 400
    assert client.delete("/api/files/video/clip.mp4").status_code == 400


def test_script_to_audio_streams_both_phases(
    build_workflow, scripted_text_client, fake_speech_client, script_text: str  # type: ignore[no-untyped-def]
) -> None:
    """The pipeline stream should report script then audio progress in order."""

    client = _client(build_workflow(scripted_text_client([script_text]), fake_speech_client()))

    with client.stream(
        "POST",
        "/api/script-to-audio",
        json={"topic": "Deep sea creatures", "duration": 3, "stream": True},
    ) as response:
        events = _read_events(response)

    types = [event["type"] for event in events]
    for expected in ("pipeline_start", "script_complete", "audio_start", "audio_complete"):
        assert expected in types
    assert types.index("script_complete") < types.index("audio_start")
    assert types[0] == "starting"
    assert types[-1] == "complete"
    result = events[-1]["data"]
    assert result["script"]["wordCount"] == 450
    assert result["audio"]["chunks"] == 1
    progresses = [event["progress"] for event in events if "progress" in event]
    assert progresses == sorted(progresses)
