"""Background execution of generation jobs.

Responsibilities:
- Run one unit of work per job on its own daemon thread.
- Mirror every progress event into the job record and an optional live channel.
- Turn the work's outcome into the terminal `complete` or `error` state.
"""

from __future__ import annotations

import threading
from typing import Any, Callable

from ..errors import GenerationError, OperationCancelled, SynthesisError, ValidationError
from ..telemetry.logger import RunLogger
from .models import STATUS_COMPLETE, STATUS_ERROR
from .progress import NEVER_CANCEL, CancellationToken, ProgressChannel, ProgressEvent, ProgressSink
from .tracker import JobTracker

JobWork = Callable[[ProgressSink, CancellationToken], dict[str, Any]]
"""Work callable receiving a progress sink and token, returning the result payload."""

_EXPECTED_FAILURES = (GenerationError, SynthesisError, ValidationError, OperationCancelled)


class JobProgressSink:
    """Write progress events to the job tracker and an optional channel.

    Producer events named `complete` or `error` are renamed to `finalizing`;
    only the runner records terminal states.
    """

    def __init__(
        self,
        tracker: JobTracker,
        job_id: str,
        channel: ProgressChannel | None = None,
    ) -> None:
        self.tracker = tracker
        self.job_id = job_id
        self.channel = channel

    def emit(self, event: ProgressEvent) -> None:
        """Record the event on the job and forward it to the live channel."""

        if event.type in (STATUS_COMPLETE, STATUS_ERROR):
            event = ProgressEvent("finalizing", event.progress, event.message, event.data)
        self.tracker.update_job(
            self.job_id,
            status=event.type,
            progress=event.progress,
            message=event.message,
        )
        if self.channel is not None:
            self.channel.emit(event)


class JobRunner:
    """Start jobs on daemon threads; the work outlives any client connection."""

    def __init__(self, tracker: JobTracker, run_logger: RunLogger | None = None) -> None:
        self.tracker = tracker
        self.run_logger = run_logger or RunLogger()

    def submit(
        self,
        kind: str,
        work: JobWork,
        *,
        channel: ProgressChannel | None = None,
        cancel_token: CancellationToken = NEVER_CANCEL,
    ) -> str:
        """Create a job, start its thread, and return the job id."""

        job_id = self.tracker.create_job(kind)
        thread = threading.Thread(
            target=self.execute,
            args=(job_id, work, channel, cancel_token),
            name=f"job-{job_id[:8]}",
            daemon=True,
        )
        thread.start()
        return job_id

    def execute(
        self,
        job_id: str,
        work: JobWork,
        channel: ProgressChannel | None = None,
        cancel_token: CancellationToken = NEVER_CANCEL,
    ) -> None:
        """Run work synchronously and record its terminal state."""

        sink = JobProgressSink(self.tracker, job_id, channel)
        try:
            try:
                result = work(sink, cancel_token)
            except _EXPECTED_FAILURES as exc:
                self._fail(job_id, str(exc), type(exc).__name__, channel)
            except Exception as exc:
                self.run_logger.event(
                    "ERROR", "jobs", "crashed", job=job_id, error_type=type(exc).__name__
                )
                self._fail(job_id, f"Internal error: {exc}", type(exc).__name__, channel)
            else:
                self.tracker.complete_job(job_id, result)
                if channel is not None:
                    channel.emit(
                        ProgressEvent("complete", 100, "Complete", {"data": result})
                    )
        finally:
            if channel is not None:
                channel.close()

    def _fail(
        self,
        job_id: str,
        message: str,
        error_type: str,
        channel: ProgressChannel | None,
    ) -> None:
        """Record the error state and publish the error event."""

        self.run_logger.log_stage_failure("jobs", error_type, job=job_id)
        self.tracker.fail_job(job_id, message)
        if channel is not None:
            channel.emit(ProgressEvent("error", None, message, {"error": message}))
