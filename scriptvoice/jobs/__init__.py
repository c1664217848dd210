"""Background jobs: records, tracking, progress delivery, and SSE framing."""

from .models import Job, TERMINAL_STATUSES
from .progress import (
    NEVER_CANCEL,
    NULL_SINK,
    CancellationToken,
    ProgressChannel,
    ProgressEvent,
    ProgressSink,
    ScaledProgressSink,
)
from .runner import JobProgressSink, JobRunner
from .store import InMemoryJobStore, JobStore
from .tracker import JobSweeper, JobTracker
from .transport import SSE_MEDIA_TYPE, encode_sse, iter_job_stream

__all__ = [
    "CancellationToken",
    "InMemoryJobStore",
    "Job",
    "JobProgressSink",
    "JobRunner",
    "JobStore",
    "JobSweeper",
    "JobTracker",
    "NEVER_CANCEL",
    "NULL_SINK",
    "ProgressChannel",
    "ProgressEvent",
    "ProgressSink",
    "SSE_MEDIA_TYPE",
    "ScaledProgressSink",
    "TERMINAL_STATUSES",
    "encode_sse",
    "iter_job_stream",
]
