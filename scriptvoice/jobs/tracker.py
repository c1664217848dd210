"""In-memory job lifecycle tracking and periodic eviction.

Responsibilities:
- Create jobs and apply progress updates with monotonic progress.
- Freeze jobs once they reach `complete` or `error`.
- Evict jobs whose last update is older than the configured age.

Key types:
- `JobTracker`: lifecycle rules over a `JobStore`.
- `JobSweeper`: daemon thread calling `JobTracker.sweep` on an interval.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from ..telemetry.logger import RunLogger
from .models import (
    JOB_KINDS,
    STATUS_COMPLETE,
    STATUS_ERROR,
    STATUS_STARTING,
    Job,
)
from .store import InMemoryJobStore, JobStore

DEFAULT_MAX_AGE_SECONDS = 30 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


def _utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


class JobTracker:
    """Track background jobs; each job has a single writer."""

    def __init__(
        self,
        store: JobStore | None = None,
        *,
        max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
        run_logger: RunLogger | None = None,
    ) -> None:
        self.store = store if store is not None else InMemoryJobStore()
        self.max_age = timedelta(seconds=max_age_seconds)
        self.clock = clock
        self.id_factory = id_factory
        self.run_logger = run_logger or RunLogger()
        self._write_lock = threading.Lock()

    def create_job(self, kind: str) -> str:
        """Create a `starting` job and return its id."""

        if kind not in JOB_KINDS:
            raise ValueError(f"Unsupported job kind `{kind}`.")
        now = self.clock()
        job = Job(
            id=self.id_factory(),
            kind=kind,
            status=STATUS_STARTING,
            progress=0,
            created_at=now,
            last_update_at=now,
        )
        self.store.put(job)
        self.run_logger.event("INFO", "jobs", "created", job=job.id, kind=kind)
        return job.id

    def update_job(
        self,
        job_id: str,
        *,
        status: str,
        progress: int | None = None,
        message: str | None = None,
        result: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> Job | None:
        """Apply one update and return the stored snapshot.

        Returns `None` for unknown (or already evicted) jobs. Updates to a job in a
        terminal status are ignored and the frozen snapshot is returned.
        """

        with self._write_lock:
            current = self.store.get(job_id)
            if current is None:
                return None
            if current.is_complete:
                return current

            now = self.clock()
            next_progress = current.progress
            if progress is not None:
                bounded = min(100, max(0, int(progress)))
                next_progress = bounded if status == STATUS_ERROR else max(current.progress, bounded)
            if status == STATUS_COMPLETE:
                next_progress = 100

            updated = replace(
                current,
                status=status,
                progress=next_progress,
                last_update_at=now,
                message=message if message is not None else current.message,
                completed_at=now if status in (STATUS_COMPLETE, STATUS_ERROR) else None,
                result=(result if result is not None else {}) if status == STATUS_COMPLETE else None,
                error=(error or message or "Unknown error") if status == STATUS_ERROR else None,
            )
            self.store.put(updated)
        if updated.is_complete:
            self.run_logger.event("INFO", "jobs", status, job=job_id)
        return updated

    def complete_job(self, job_id: str, result: dict[str, Any]) -> Job | None:
        """Mark a job complete with its final result payload."""

        return self.update_job(
            job_id, status=STATUS_COMPLETE, progress=100, message="Complete", result=result
        )

    def fail_job(self, job_id: str, error: str) -> Job | None:
        """Mark a job failed with an error message."""

        return self.update_job(job_id, status=STATUS_ERROR, message=error, error=error)

    def get_job(self, job_id: str) -> Job | None:
        """Return the job snapshot, or `None` when unknown or evicted."""

        return self.store.get(job_id)

    def sweep(self, now: datetime | None = None) -> int:
        """Remove jobs whose last update is older than the max age; return the count."""

        moment = now or self.clock()
        removed = 0
        with self._write_lock:
            for job in self.store.snapshot():
                if moment - job.last_update_at > self.max_age and self.store.delete(job.id):
                    removed += 1
        if removed:
            self.run_logger.event("INFO", "jobs", "evicted", count=removed)
        return removed


class JobSweeper:
    """Background daemon thread that periodically evicts stale jobs."""

    def __init__(
        self,
        tracker: JobTracker,
        *,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self.tracker = tracker
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start the sweep loop if it is not already running."""

        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="job-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the loop to exit and wait for it."""

        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.tracker.sweep()
