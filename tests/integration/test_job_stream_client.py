"""Tests for the stream-then-poll HTTP job client."""

from __future__ import annotations

import json
from typing import Any, Iterator

import pytest
import requests

import scriptvoice
from scriptvoice.client import JobFailedError, JobStreamClient


def _frame(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}"


class _StreamResponse:
    def __init__(self, lines: list[str], *, drop_with: Exception | None = None) -> None:
        self.lines = lines
        self.drop_with = drop_with
        self.closed = False

    def raise_for_status(self) -> None:
        return None

    def iter_lines(self, decode_unicode: bool = False) -> Iterator[str]:
        yield from self.lines
        if self.drop_with is not None:
            raise self.drop_with

    def close(self) -> None:
        self.closed = True


class _JsonResponse:
    def __init__(self, status_code: int, payload: dict[str, Any]) -> None:
        self.status_code = status_code
        self.payload = payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self) -> dict[str, Any]:
        return self.payload


class _ManualClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _client(clock: _ManualClock, **kwargs: Any) -> JobStreamClient:
    return JobStreamClient(
        "http://localhost:3000/", sleeper=clock.sleep, clock=clock, **kwargs
    )


def test_run_returns_result_from_complete_frame(monkeypatch: pytest.MonkeyPatch) -> None:
    """The complete frame's data should be returned and every frame observed."""

    captured: dict[str, Any] = {}
    response = _StreamResponse(
        [
            _frame({"type": "starting", "progress": 0, "jobId": "job-1"}),
            ": keepalive",
            "",
            _frame({"type": "processing", "progress": 50, "jobId": "job-1"}),
            _frame({"type": "complete", "progress": 100, "jobId": "job-1", "data": {"chunks": 1}}),
        ]
    )

    def _fake_post(url: str, **kwargs: Any) -> _StreamResponse:
        captured["url"] = url
        captured.update(kwargs)
        return response

    monkeypatch.setattr("scriptvoice.client.requests.post", _fake_post)
    seen: list[str] = []

    result = _client(_ManualClock()).run(
        "/api/generate-audio", {"text": "hello"}, on_event=lambda event: seen.append(event["type"])
    )

    assert result == {"chunks": 1}
    assert seen == ["starting", "processing", "complete"]
    assert captured["url"] == "http://localhost:3000/api/generate-audio"
    assert captured["headers"] == {"Accept": "text/event-stream"}
    assert captured["stream"] is True
    assert response.closed is True


def test_run_raises_on_error_frame(monkeypatch: pytest.MonkeyPatch) -> None:
    """An error frame should raise with the job id attached."""

    response = _StreamResponse(
        [
            _frame({"type": "starting", "progress": 0, "jobId": "job-2"}),
            _frame({"type": "error", "message": "boom", "error": "Synthesis failed", "jobId": "job-2"}),
        ]
    )
    monkeypatch.setattr("scriptvoice.client.requests.post", lambda url, **kwargs: response)

    with pytest.raises(JobFailedError) as exc_info:
        _client(_ManualClock()).run("/api/generate-audio", {"text": "hello"})

    assert exc_info.value.job_id == "job-2"
    assert exc_info.value.message == "Synthesis failed"


def test_run_falls_back_to_polling_after_stream_drop(monkeypatch: pytest.MonkeyPatch) -> None:
    """A dropped stream should be recovered by polling job status until completion."""

    response = _StreamResponse(
        [_frame({"type": "starting", "progress": 0, "jobId": "job-3"})],
        drop_with=requests.ConnectionError("connection reset"),
    )
    statuses = iter(
        [
            _JsonResponse(200, {"success": True, "data": {"status": "generating", "isComplete": False}}),
            _JsonResponse(
                200,
                {
                    "success": True,
                    "data": {"status": "complete", "isComplete": True, "result": {"chunks": 3}},
                },
            ),
        ]
    )
    polled: list[str] = []

    def _fake_get(url: str, **kwargs: Any) -> _JsonResponse:
        polled.append(url)
        return next(statuses)

    monkeypatch.setattr("scriptvoice.client.requests.post", lambda url, **kwargs: response)
    monkeypatch.setattr("scriptvoice.client.requests.get", _fake_get)
    clock = _ManualClock()

    result = _client(clock).run("/api/script-to-audio", {"topic": "Tides"})

    assert result == {"chunks": 3}
    assert polled == ["http://localhost:3000/api/job-status/job-3"] * 2
    assert clock.sleeps == [2.0]


def test_run_reraises_when_no_job_id_was_received(monkeypatch: pytest.MonkeyPatch) -> None:
    """Connection failures before the first frame cannot be recovered."""

    def _refuse(url: str, **kwargs: Any) -> None:
        raise requests.ConnectionError("refused")

    monkeypatch.setattr("scriptvoice.client.requests.post", _refuse)

    with pytest.raises(requests.ConnectionError):
        _client(_ManualClock()).run("/api/generate-audio", {"text": "hello"})


def test_poll_reports_failed_and_unknown_jobs(monkeypatch: pytest.MonkeyPatch) -> None:
    """Error records should raise, and unknown ids should raise immediately."""

    responses = iter(
        [
            _JsonResponse(
                200, {"data": {"status": "error", "isComplete": True, "error": "quota exceeded"}}
            ),
            _JsonResponse(404, {"success": False}),
        ]
    )
    monkeypatch.setattr("scriptvoice.client.requests.get", lambda url, **kwargs: next(responses))
    client = _client(_ManualClock())

    with pytest.raises(JobFailedError, match="quota exceeded"):
        client.poll("job-4")
    with pytest.raises(JobFailedError, match="not found"):
        client.poll("job-5")


def test_poll_times_out(monkeypatch: pytest.MonkeyPatch) -> None:
    """Polling should stop with `TimeoutError` once the deadline passes."""

    monkeypatch.setattr(
        "scriptvoice.client.requests.get",
        lambda url, **kwargs: _JsonResponse(200, {"data": {"status": "generating", "isComplete": False}}),
    )
    clock = _ManualClock()

    with pytest.raises(TimeoutError):
        _client(clock, poll_interval=5.0, timeout_seconds=12).poll("job-6")

    assert clock.sleeps == [5.0, 5.0, 5.0]


def test_client_is_exported_from_package_root() -> None:
    """The stream client should be importable from the top-level package."""

    assert scriptvoice.JobStreamClient is JobStreamClient
    assert scriptvoice.JobFailedError is JobFailedError
    assert "JobStreamClient" in scriptvoice.__all__
