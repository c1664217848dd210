"""Composition facade over script generation and audio synthesis.

Responsibilities:
- Wire planner, assembler, and audio pipeline from configuration.
- Expose the operations shared by the CLI and the HTTP layer.
- Run the full topic-to-audio pipeline with one progress scale from 0 to 100.

Key types:
- `ScriptvoiceWorkflow`: entry point for preview, script, audio, and pipeline runs.
- `PipelineResult`: script plus audio produced by one full pipeline run.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .audio.pipeline import AudioPipeline
from .config import RuntimeConfigSources, ScriptvoiceConfig
from .errors import ValidationError
from .io.storage import FileScriptStore, ReferenceScriptLoader
from .jobs.progress import (
    NEVER_CANCEL,
    NULL_SINK,
    CancellationToken,
    ProgressEvent,
    ProgressSink,
    ScaledProgressSink,
)
from .llm.assembler import OUTLINE_PROGRESS, ScriptAssembler
from .llm.planner import ChapterPlanner
from .models.datatypes import AudioOptions, AudioResult, GeneratedScript, ScriptPreview, ScriptRequest
from .provider_factory import ProviderFactory
from .telemetry.logger import RunLogger
from .tts.synthesizer import SpeechSynthesizer

SCRIPT_PROGRESS_START = 5
SCRIPT_PROGRESS_END = 30
AUDIO_PROGRESS_END = 100


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Script and audio artifacts of one topic-to-audio run."""

    script: GeneratedScript
    audio: AudioResult

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON payload shape for this pipeline result."""

        return {"script": self.script.to_payload(), "audio": self.audio.to_payload()}


class ScriptvoiceWorkflow:
    """Run previews, script generation, audio synthesis, and the full pipeline."""

    def __init__(
        self,
        *,
        planner: ChapterPlanner,
        assembler: ScriptAssembler,
        audio_pipeline: AudioPipeline,
        config: ScriptvoiceConfig | None = None,
        references: ReferenceScriptLoader | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        self.planner = planner
        self.assembler = assembler
        self.audio_pipeline = audio_pipeline
        self.config = config or ScriptvoiceConfig()
        self.references = references
        self.run_logger = run_logger or RunLogger()

    @classmethod
    def from_config(
        cls,
        config: ScriptvoiceConfig,
        sources: RuntimeConfigSources | None = None,
    ) -> ScriptvoiceWorkflow:
        """Build a workflow with provider clients resolved from configuration."""

        config.validate()
        run_logger = RunLogger()
        api_keys = config.resolve_api_keys(sources)
        text_client = ProviderFactory.create_text_client(
            config.text_provider, config.resolved_text_model, api_keys.text_api_key
        )
        speech_client = ProviderFactory.create_speech_client(
            config.tts_model, api_keys.fish_audio_api_key
        )
        references = ReferenceScriptLoader(config.templates_dir, run_logger)
        planner = ChapterPlanner(text_client, run_logger=run_logger)
        assembler = ScriptAssembler(
            text_client,
            FileScriptStore(config.output_dir),
            planner=planner,
            references=references,
            run_logger=run_logger,
        )
        audio_pipeline = AudioPipeline(SpeechSynthesizer(speech_client), run_logger=run_logger)
        return cls(
            planner=planner,
            assembler=assembler,
            audio_pipeline=audio_pipeline,
            config=config,
            references=references,
            run_logger=run_logger,
        )

    def preview(self, request: ScriptRequest) -> ScriptPreview:
        """Validate the request and return a chapter outline."""

        request.validate()
        reference_text = (
            self.references.load(request.reference_file) if self.references is not None else None
        )
        return self.planner.plan(request, reference_text)

    def generate_script(
        self,
        request: ScriptRequest,
        *,
        use_outline: bool = False,
        sink: ProgressSink = NULL_SINK,
        cancel_token: CancellationToken = NEVER_CANCEL,
    ) -> GeneratedScript:
        """Generate a script directly, or outline first when `use_outline` is set."""

        request.validate()
        if not use_outline:
            return self.assembler.generate_direct(request, sink=sink, cancel_token=cancel_token)
        sink.emit(ProgressEvent("outline", OUTLINE_PROGRESS, "Creating chapter outline"))
        preview = self.preview(request)
        cancel_token.raise_if_cancelled()
        return self.assembler.generate_from_preview(
            preview,
            request,
            sink=ScaledProgressSink(sink, start=OUTLINE_PROGRESS, end=100),
            cancel_token=cancel_token,
        )

    def generate_from_preview(
        self,
        preview: ScriptPreview,
        request: ScriptRequest | None = None,
        *,
        sink: ProgressSink = NULL_SINK,
        cancel_token: CancellationToken = NEVER_CANCEL,
    ) -> GeneratedScript:
        """Generate a script from an approved outline."""

        return self.assembler.generate_from_preview(
            preview, request, sink=sink, cancel_token=cancel_token
        )

    def generate_audio(
        self,
        *,
        options: AudioOptions,
        text: str | None = None,
        script_path: Path | None = None,
        sink: ProgressSink = NULL_SINK,
        cancel_token: CancellationToken = NEVER_CANCEL,
    ) -> AudioResult:
        """Synthesize inline text or a saved script file.

        Raises:
            ValidationError: If neither or both sources are given, or the file is unreadable.
        """

        if (text is None) == (script_path is None):
            raise ValidationError(
                "Either text or filePath is required",
                [{"field": "text", "message": "Provide exactly one of text or filePath"}],
            )
        source_name = "text"
        if script_path is not None:
            try:
                text = script_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise ValidationError(
                    "Script file could not be read",
                    [{"field": "filePath", "message": f"Unreadable script file: {script_path.name}"}],
                ) from exc
            source_name = script_path.stem
        assert text is not None
        return self.audio_pipeline.run(
            text, options, source_name=source_name, sink=sink, cancel_token=cancel_token
        )

    def script_to_audio(
        self,
        request: ScriptRequest,
        audio_options: AudioOptions,
        *,
        use_outline: bool = False,
        sink: ProgressSink = NULL_SINK,
        cancel_token: CancellationToken = NEVER_CANCEL,
    ) -> PipelineResult:
        """Generate a script for the topic, then synthesize it into audio.

        Script progress maps onto 5 to 30 and audio progress onto 30 to 100.
        """

        request.validate()
        audio_options.validate()
        self.run_logger.log_stage_start("pipeline", duration_minutes=request.duration_minutes)
        sink.emit(ProgressEvent("pipeline_start", 0, f"Starting pipeline for: {request.topic}"))
        sink.emit(
            ProgressEvent("script_generation", SCRIPT_PROGRESS_START, "Generating script...")
        )
        script = self.generate_script(
            request,
            use_outline=use_outline,
            sink=ScaledProgressSink(
                sink, start=SCRIPT_PROGRESS_START, end=SCRIPT_PROGRESS_END
            ),
            cancel_token=cancel_token,
        )
        sink.emit(
            ProgressEvent(
                "script_complete",
                SCRIPT_PROGRESS_END,
                f"Script generated ({script.word_count} words)",
                {"script": script.to_payload()},
            )
        )

        cancel_token.raise_if_cancelled()
        sink.emit(ProgressEvent("audio_start", SCRIPT_PROGRESS_END, "Starting audio generation..."))
        audio = self.audio_pipeline.run(
            script.content,
            audio_options,
            source_name=script.file_path.stem if script.file_path else request.topic,
            sink=ScaledProgressSink(
                sink,
                start=SCRIPT_PROGRESS_END,
                end=AUDIO_PROGRESS_END,
                renamed_types={"start": "audio_progress", "complete": "audio_complete"},
            ),
            cancel_token=cancel_token,
        )
        result = PipelineResult(script=script, audio=audio)
        self.run_logger.log_stage_complete("pipeline", chunks=audio.chunk_count)
        sink.emit(ProgressEvent("complete", 100, "Pipeline complete!"))
        return result
