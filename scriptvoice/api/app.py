"""FastAPI application factory for the narration service.

Responsibilities:
- Expose script, preview, audio, and pipeline operations as JSON or SSE endpoints.
- Run streamed operations as background jobs that outlive the client connection.
- Serve job status, the voice catalogue, and generated-file management.

Key entry points:
- `create_app`: build an app around a workflow and a job tracker.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Callable

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, StreamingResponse

from .. import __version__
from ..errors import ValidationError
from ..io.storage import GeneratedFileIndex
from ..jobs.progress import (
    NEVER_CANCEL,
    NULL_SINK,
    CancellationToken,
    ProgressChannel,
    ProgressSink,
)
from ..jobs.runner import JobRunner
from ..jobs.tracker import JobSweeper, JobTracker
from ..jobs.transport import SSE_MEDIA_TYPE, iter_job_stream
from ..parsing import parse_permissive_boolean
from ..telemetry.logger import RunLogger, configure_logging
from ..tts.voices import voice_catalogue_payload
from ..workflow import ScriptvoiceWorkflow
from .responses import error_response, install_exception_handlers, success
from .schemas import (
    AudioRequestBody,
    FromPreviewRequestBody,
    PipelineRequestBody,
    ScriptRequestBody,
)

_FILE_LIST_KINDS = {"all": ("script", "audio"), "scripts": ("script",), "audio": ("audio",)}
_STREAM_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}

ENDPOINT_CATALOGUE: dict[str, str] = {
    "GET /health": "Service health check",
    "GET /api": "This endpoint catalogue",
    "POST /api/generate-script": "Generate a narration script for a topic",
    "POST /api/generate-preview": "Generate a chapter outline for review",
    "POST /api/generate-from-preview": "Generate a script from an approved outline",
    "POST /api/generate-audio": "Synthesize audio from text or a saved script",
    "POST /api/script-to-audio": "Generate a script and synthesize it in one run",
    "GET /api/job-status/{job_id}": "Poll a background job",
    "GET /api/voices": "List available voices",
    "GET /api/files": "List generated files (?type=all|scripts|audio)",
    "GET /api/download/{type}/{filename}": "Download a generated file",
    "DELETE /api/files/{type}/{filename}": "Delete a generated file",
}

JobWork = Callable[[ProgressSink, CancellationToken], dict[str, Any]]


def _wants_stream(request: Request, body_stream: bool = False) -> bool:
    """Return whether the caller asked for an SSE progress stream."""

    if body_stream:
        return True
    if SSE_MEDIA_TYPE in request.headers.get("accept", ""):
        return True
    return parse_permissive_boolean(request.query_params.get("stream")) is True


def create_app(
    workflow: ScriptvoiceWorkflow,
    tracker: JobTracker | None = None,
    *,
    runner: JobRunner | None = None,
    start_sweeper: bool = True,
) -> FastAPI:
    """Build the FastAPI app around a workflow and job tracker."""

    config = workflow.config
    configure_logging(level=config.log_level)
    run_logger = RunLogger()
    job_tracker = tracker or JobTracker(
        max_age_seconds=config.job_max_age_seconds, run_logger=run_logger
    )
    job_runner = runner or JobRunner(job_tracker, run_logger)
    files = GeneratedFileIndex(config.output_dir)
    sweeper = JobSweeper(job_tracker, interval_seconds=config.job_sweep_interval_seconds)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if start_sweeper:
            sweeper.start()
        run_logger.log_stage_start("api", host=config.host, port=config.port)
        try:
            yield
        finally:
            sweeper.stop()
            run_logger.log_stage_complete("api")

    app = FastAPI(
        title="Scriptvoice",
        description="Topic-to-narration script generation and speech synthesis",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_exception_handlers(app, run_logger)
    app.state.tracker = job_tracker
    app.state.runner = job_runner
    app.state.workflow = workflow

    def respond(request: Request, body_stream: bool, kind: str, work: JobWork) -> Any:
        """Run `work` as a streamed job, or synchronously for JSON callers."""

        if not _wants_stream(request, body_stream):
            return success(work(NULL_SINK, NEVER_CANCEL))
        channel = ProgressChannel()
        job_id = job_runner.submit(kind, work, channel=channel)
        run_logger.event("INFO", "api", "stream_open", job=job_id, kind=kind)
        return StreamingResponse(
            iter_job_stream(channel, job_id),
            media_type=SSE_MEDIA_TYPE,
            headers=_STREAM_HEADERS,
        )

    def script_source(file_path: str | None) -> Path | None:
        """Confine a requested script path to the scripts output directory."""

        if not file_path:
            return None
        scripts_dir = files.directory_for("script").resolve()
        candidate = Path(file_path)
        if not candidate.is_absolute() and candidate.parent == Path("."):
            candidate = scripts_dir / candidate
        resolved = candidate.resolve()
        if not resolved.is_relative_to(scripts_dir):
            raise PermissionError("Access denied.")
        return resolved

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "services": {
                "textGeneration": config.text_provider,
                "speechSynthesis": f"fish_audio:{config.tts_model}",
            },
        }

    @app.get("/api")
    def catalogue() -> dict[str, Any]:
        return {"name": "Scriptvoice", "version": __version__, "endpoints": ENDPOINT_CATALOGUE}

    @app.post("/api/generate-script")
    def generate_script(body: ScriptRequestBody, request: Request) -> Any:
        script_request = body.to_request()
        script_request.validate()

        def work(sink: ProgressSink, token: CancellationToken) -> dict[str, Any]:
            script = workflow.generate_script(
                script_request, use_outline=body.use_outline, sink=sink, cancel_token=token
            )
            return script.to_payload()

        return respond(request, body.stream, "script", work)

    @app.post("/api/generate-preview")
    def generate_preview(body: ScriptRequestBody) -> dict[str, Any]:
        preview = workflow.preview(body.to_request())
        return success(preview.to_payload())

    @app.post("/api/generate-from-preview")
    def generate_from_preview(body: FromPreviewRequestBody, request: Request) -> Any:
        preview = body.to_preview()
        script_request = body.to_request(preview)
        if script_request is not None:
            script_request.validate()

        def work(sink: ProgressSink, token: CancellationToken) -> dict[str, Any]:
            script = workflow.generate_from_preview(
                preview, script_request, sink=sink, cancel_token=token
            )
            return script.to_payload()

        return respond(request, body.stream, "script", work)

    @app.post("/api/generate-audio")
    def generate_audio(body: AudioRequestBody, request: Request) -> Any:
        options = body.to_audio_options(config)
        options.validate()
        script_path = script_source(body.file_path)
        text = body.text if script_path is None else None
        if script_path is None and not (text or "").strip():
            raise ValidationError(
                "Either text or filePath is required",
                [{"field": "text", "message": "Provide text or a saved script filePath"}],
            )

        def work(sink: ProgressSink, token: CancellationToken) -> dict[str, Any]:
            audio = workflow.generate_audio(
                options=options,
                text=text,
                script_path=script_path,
                sink=sink,
                cancel_token=token,
            )
            return audio.to_payload()

        return respond(request, body.stream, "audio", work)

    @app.post("/api/script-to-audio")
    def script_to_audio(body: PipelineRequestBody, request: Request) -> Any:
        script_request = body.to_request()
        script_request.validate()
        options = body.to_audio_options(config)
        options.validate()

        def work(sink: ProgressSink, token: CancellationToken) -> dict[str, Any]:
            result = workflow.script_to_audio(
                script_request,
                options,
                use_outline=body.use_outline,
                sink=sink,
                cancel_token=token,
            )
            return result.to_payload()

        return respond(request, body.stream, "pipeline", work)

    @app.get("/api/job-status/{job_id}")
    def job_status(job_id: str) -> Any:
        job = job_tracker.get_job(job_id)
        if job is None:
            return error_response(404, "JOB_NOT_FOUND", f"Job `{job_id}` not found")
        return success(job.to_payload())

    @app.get("/api/voices")
    def voices() -> dict[str, Any]:
        return success(voice_catalogue_payload(config.tts_voice))

    @app.get("/api/files")
    def list_files(file_type: str = Query("all", alias="type")) -> Any:
        kinds = _FILE_LIST_KINDS.get(file_type)
        if kinds is None:
            return error_response(400, "INVALID_FILE_TYPE", "type must be all, scripts, or audio")
        payload: dict[str, Any] = {}
        for kind in kinds:
            payload[files.directory_for(kind).name] = [row.to_payload() for row in files.list(kind)]
        return success(payload)

    @app.get("/api/download/{file_type}/{filename}")
    def download(file_type: str, filename: str) -> Any:
        try:
            path = files.resolve(file_type, filename)
        except PermissionError:
            return error_response(403, "ACCESS_DENIED", "Access denied")
        except ValueError:
            return error_response(400, "INVALID_FILE_TYPE", "type must be script or audio")
        if not path.is_file():
            return error_response(404, "FILE_NOT_FOUND", f"File `{filename}` not found")
        return FileResponse(path, filename=path.name)

    @app.delete("/api/files/{file_type}/{filename}")
    def delete_file(file_type: str, filename: str) -> Any:
        try:
            deleted = files.delete(file_type, filename)
        except PermissionError:
            return error_response(403, "ACCESS_DENIED", "Access denied")
        except ValueError:
            return error_response(400, "INVALID_FILE_TYPE", "type must be script or audio")
        if not deleted:
            return error_response(404, "FILE_NOT_FOUND", f"File `{filename}` not found")
        run_logger.event("INFO", "api", "file_deleted", kind=file_type, name=filename)
        return success({"deleted": filename})

    return app

