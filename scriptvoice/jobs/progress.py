"""Progress events, sinks, and cooperative cancellation.

Responsibilities:
- Carry typed progress events from generation and synthesis to job/transport layers.
- Decouple producers from consumers through a bounded, never-blocking channel.
- Offer an opt-in cancellation token that defaults to "never cancel".

Key types:
- `ProgressEvent`, `ProgressSink`, `ProgressChannel`, `ScaledProgressSink`,
  `CancellationToken`, and the shared `NEVER_CANCEL` token.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..errors import OperationCancelled


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """One progress notification emitted by a pipeline stage.

    Attributes:
        type: Event tag such as `chunk_start`, `combining`, or `complete`.
        progress: Optional percentage in `[0, 100]`.
        message: Optional human-readable status line.
        data: Extra JSON-serializable fields merged into the wire payload.
    """

    type: str
    progress: int | None = None
    message: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_payload(self, job_id: str | None = None) -> dict[str, Any]:
        """Return the wire payload for this event, tagged with an optional job id."""

        payload: dict[str, Any] = {"type": self.type}
        if self.progress is not None:
            payload["progress"] = self.progress
        if self.message is not None:
            payload["message"] = self.message
        payload.update(self.data)
        if job_id is not None:
            payload["jobId"] = job_id
        return payload


class ProgressSink(Protocol):
    """Protocol for anything that accepts progress events."""

    def emit(self, event: ProgressEvent) -> None:
        """Accept one progress event without blocking the producer."""


class NullProgressSink:
    """Sink that discards every event."""

    def emit(self, event: ProgressEvent) -> None:
        """Discard the event."""


NULL_SINK = NullProgressSink()


class ScaledProgressSink:
    """Forward events to an inner sink with progress remapped into a sub-range."""

    def __init__(
        self,
        inner: ProgressSink,
        *,
        start: int,
        end: int,
        renamed_types: dict[str, str] | None = None,
    ) -> None:
        """Initialize the target progress range and optional event-type renames."""

        self._inner = inner
        self._start = start
        self._end = end
        self._renamed_types = dict(renamed_types or {})

    def emit(self, event: ProgressEvent) -> None:
        """Rescale progress and forward the event."""

        progress = event.progress
        if progress is not None:
            bounded = min(100, max(0, progress))
            progress = self._start + round(bounded * (self._end - self._start) / 100)
        self._inner.emit(
            ProgressEvent(
                type=self._renamed_types.get(event.type, event.type),
                progress=progress,
                message=event.message,
                data=event.data,
            )
        )


class ProgressChannel:
    """Bounded in-memory channel drained by the streaming transport.

    Producers never block: when the channel is full the oldest pending event is
    discarded to make room. `close()` enqueues an end marker for the consumer.
    """

    _CLOSED = object()

    def __init__(self, max_pending: int = 256) -> None:
        """Initialize the channel capacity."""

        self._queue: queue.Queue[object] = queue.Queue(maxsize=max(1, max_pending))
        self._lock = threading.Lock()
        self._closed = False
        self.dropped_count = 0

    def emit(self, event: ProgressEvent) -> None:
        """Enqueue one event, dropping the oldest pending event when full."""

        with self._lock:
            if self._closed:
                return
            self._put_locked(event)

    def close(self) -> None:
        """Mark the channel finished; later `emit` calls are ignored."""

        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._put_locked(self._CLOSED)

    def _put_locked(self, item: object) -> None:
        """Put one item, evicting the oldest entry while the queue is full."""

        while True:
            try:
                self._queue.put_nowait(item)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                    self.dropped_count += 1
                except queue.Empty:
                    continue

    def get(self, timeout: float | None = None) -> ProgressEvent | None:
        """Return the next event, or `None` once the channel is closed and drained.

        Raises:
            queue.Empty: When `timeout` elapses without an event.
        """

        item = self._queue.get(timeout=timeout)
        if item is self._CLOSED:
            return None
        assert isinstance(item, ProgressEvent)
        return item


class CancellationToken:
    """Cooperative cancellation flag checked between pipeline steps."""

    def __init__(self) -> None:
        """Initialize an uncancelled token."""

        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""

        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        """Return whether cancellation was requested."""

        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise `OperationCancelled` when cancellation was requested."""

        if self.is_cancelled:
            raise OperationCancelled("Operation cancelled.")


class _NeverCancelToken(CancellationToken):
    """Token that ignores cancellation requests."""

    def cancel(self) -> None:
        """Ignore the request."""


NEVER_CANCEL: CancellationToken = _NeverCancelToken()
