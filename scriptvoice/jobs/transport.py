"""Server-Sent-Events framing for job progress streams.

Responsibilities:
- Encode event payloads as `data: <json>` frames.
- Drain a `ProgressChannel` into frames, with keepalive comments while idle.
"""

from __future__ import annotations

import json
import queue
from typing import Any, Iterator

from .progress import ProgressChannel, ProgressEvent

SSE_MEDIA_TYPE = "text/event-stream"
KEEPALIVE_FRAME = ": keepalive\n\n"


def encode_sse(payload: dict[str, Any]) -> str:
    """Return one SSE data frame for a JSON payload."""

    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def iter_job_stream(
    channel: ProgressChannel,
    job_id: str,
    *,
    keepalive_seconds: float = 15.0,
) -> Iterator[str]:
    """Yield SSE frames for a job until its channel closes.

    The first frame announces the job id so a disconnected client can poll.
    Closing this generator only stops delivery; the job keeps running.
    """

    yield encode_sse(ProgressEvent("starting", 0, "Job started").to_payload(job_id))
    while True:
        try:
            event = channel.get(timeout=keepalive_seconds)
        except queue.Empty:
            yield KEEPALIVE_FRAME
            continue
        if event is None:
            return
        yield encode_sse(event.to_payload(job_id))
