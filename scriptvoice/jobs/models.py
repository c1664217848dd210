"""Job records tracked while background generation runs.

Key types:
- `Job`: immutable snapshot replaced on every update.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

STATUS_STARTING = "starting"
STATUS_COMPLETE = "complete"
STATUS_ERROR = "error"
TERMINAL_STATUSES = frozenset({STATUS_COMPLETE, STATUS_ERROR})

JOB_KINDS = frozenset({"audio", "pipeline", "script"})


@dataclass(frozen=True, slots=True)
class Job:
    """Snapshot of one background job.

    Attributes:
        id: Opaque job identifier.
        kind: `audio`, `pipeline`, or `script`.
        status: `starting`, an in-progress event tag, `complete`, or `error`.
        progress: Percentage in `[0, 100]`; never decreases unless status is `error`.
        created_at: Creation time.
        last_update_at: Time of the latest accepted update.
        completed_at: Time the job reached a terminal status.
        message: Latest human-readable status line.
        result: Final JSON payload, present only when status is `complete`.
        error: Failure message, present only when status is `error`.
    """

    id: str
    kind: str
    status: str
    progress: int
    created_at: datetime
    last_update_at: datetime
    completed_at: datetime | None = None
    message: str | None = None
    result: dict[str, Any] | None = None
    error: str | None = None

    @property
    def is_complete(self) -> bool:
        """Return whether the job reached `complete` or `error`."""

        return self.status in TERMINAL_STATUSES

    def to_payload(self) -> dict[str, Any]:
        """Return the job-status poll payload."""

        payload: dict[str, Any] = {
            "id": self.id,
            "kind": self.kind,
            "status": self.status,
            "progress": self.progress,
            "message": self.message,
            "startTime": self.created_at.isoformat(),
            "lastUpdate": self.last_update_at.isoformat(),
            "isComplete": self.is_complete,
        }
        if self.completed_at is not None:
            payload["completedAt"] = self.completed_at.isoformat()
        if self.result is not None:
            payload["result"] = self.result
        if self.error is not None:
            payload["error"] = self.error
        return payload
