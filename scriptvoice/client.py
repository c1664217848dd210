"""HTTP client for streamed Scriptvoice jobs.

Responsibilities:
- Start a job with `Accept: text/event-stream` and read its SSE progress frames.
- Remember the job id from the first frame and return the final result.
- Fall back to polling `/api/job-status/{id}` when the stream drops.

Key types:
- `JobStreamClient`: stream-then-poll client for the long-running endpoints.
- `JobFailedError`: raised when a job ends in the error state.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Iterator

import requests

from .jobs.transport import SSE_MEDIA_TYPE

DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_TIMEOUT_SECONDS = 30 * 60
_CONNECT_TIMEOUT_SECONDS = 10.0


class JobFailedError(RuntimeError):
    """Raised when a streamed or polled job finishes with an error."""

    def __init__(self, message: str, *, job_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.job_id = job_id


class JobStreamClient:
    """Run long operations against the HTTP API and wait for their results."""

    def __init__(
        self,
        base_url: str,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        sleeper: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.timeout_seconds = timeout_seconds
        self.sleeper = sleeper
        self.clock = clock

    def run(
        self,
        endpoint_path: str,
        payload: dict[str, Any],
        *,
        on_event: Callable[[dict[str, Any]], None] | None = None,
    ) -> dict[str, Any]:
        """POST `payload` to a streaming endpoint and return the job result.

        Raises:
            JobFailedError: If the job reports an error.
            TimeoutError: If polling exceeds `timeout_seconds`.
            requests.RequestException: If the stream fails before any job id arrived.
        """

        started_at = self.clock()
        job_id: str | None = None
        try:
            response = requests.post(
                f"{self.base_url}{endpoint_path}",
                json=payload,
                headers={"Accept": SSE_MEDIA_TYPE},
                stream=True,
                timeout=(_CONNECT_TIMEOUT_SECONDS, None),
            )
            response.raise_for_status()
            try:
                for event in self._iter_events(response):
                    if job_id is None and event.get("jobId"):
                        job_id = str(event["jobId"])
                    if on_event is not None:
                        on_event(event)
                    event_type = event.get("type")
                    if event_type == "complete":
                        return dict(event.get("data") or {})
                    if event_type == "error":
                        raise JobFailedError(
                            str(event.get("error") or event.get("message") or "Unknown error"),
                            job_id=job_id,
                        )
            finally:
                response.close()
        except requests.RequestException:
            if job_id is None:
                raise

        if job_id is None:
            raise JobFailedError("Stream ended before a job id was received")
        return self.poll(job_id, started_at=started_at)

    def poll(self, job_id: str, *, started_at: float | None = None) -> dict[str, Any]:
        """Poll job status until it completes, fails, or times out."""

        deadline = (started_at if started_at is not None else self.clock()) + self.timeout_seconds
        while True:
            try:
                job = self.job_status(job_id)
            except requests.RequestException:
                job = {}
            if job.get("isComplete"):
                if job.get("status") == "error":
                    raise JobFailedError(str(job.get("error") or "Unknown error"), job_id=job_id)
                return dict(job.get("result") or {})
            if self.clock() >= deadline:
                raise TimeoutError(f"Job `{job_id}` did not finish within {self.timeout_seconds}s")
            self.sleeper(self.poll_interval)

    def job_status(self, job_id: str) -> dict[str, Any]:
        """Return the job-status payload for a job id."""

        response = requests.get(
            f"{self.base_url}/api/job-status/{job_id}", timeout=_CONNECT_TIMEOUT_SECONDS
        )
        if response.status_code == 404:
            raise JobFailedError(f"Job `{job_id}` not found", job_id=job_id)
        response.raise_for_status()
        return dict(response.json().get("data") or {})

    @staticmethod
    def _iter_events(response: requests.Response) -> Iterator[dict[str, Any]]:
        """Yield decoded `data:` frames; comments and blank lines are skipped."""

        for line in response.iter_lines(decode_unicode=True):
            if not line or not line.startswith("data:"):
                continue
            try:
                decoded = json.loads(line[len("data:"):].strip())
            except json.JSONDecodeError:
                continue
            if isinstance(decoded, dict):
                yield decoded
