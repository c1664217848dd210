"""Key-value storage behind the job tracker.

Responsibilities:
- Define the `JobStore` protocol so records can later live in a shared store.
- Provide the process-local `InMemoryJobStore` with atomic get/put/delete.
"""

from __future__ import annotations

import threading
from typing import Protocol

from .models import Job


class JobStore(Protocol):
    """Protocol for job record storage."""

    def get(self, job_id: str) -> Job | None:
        """Return one job record or `None`."""

    def put(self, job: Job) -> None:
        """Insert or replace one job record."""

    def delete(self, job_id: str) -> bool:
        """Delete one job record and return whether it existed."""

    def snapshot(self) -> list[Job]:
        """Return a point-in-time list of all job records."""


class InMemoryJobStore:
    """Dictionary-backed job store guarded by a lock."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def get(self, job_id: str) -> Job | None:
        """Return one job record or `None`."""

        with self._lock:
            return self._jobs.get(job_id)

    def put(self, job: Job) -> None:
        """Insert or replace one job record."""

        with self._lock:
            self._jobs[job.id] = job

    def delete(self, job_id: str) -> bool:
        """Delete one job record and return whether it existed."""

        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def snapshot(self) -> list[Job]:
        """Return a point-in-time list of all job records."""

        with self._lock:
            return list(self._jobs.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
