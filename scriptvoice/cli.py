"""Command-line interface for Scriptvoice.

Responsibilities:
- Expose script, preview, audio, and pipeline commands over `ScriptvoiceWorkflow`.
- Resolve configuration from YAML, environment, keyring, and explicit options.
- Serve the HTTP API and manage stored credentials.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import json
import os
from dataclasses import replace
from pathlib import Path
from typing import Annotated, Optional

import typer
import uvicorn

from .api import create_app
from .cli_rendering import (
    ProgressPrinter,
    echo_audio_summary,
    echo_preview,
    echo_script_summary,
    exit_with_command_error,
)
from .config import ConfigLoader, RuntimeConfigSources, ScriptvoiceConfig
from .credentials import (
    FISH_AUDIO_API_KEY_ACCOUNT,
    TEXT_API_KEY_ACCOUNT,
    create_credential_store,
)
from .errors import PipelineStageError
from .models.datatypes import AudioOptions, ScriptPreview, ScriptRequest
from .parsing import normalize_optional_string, whole_number
from .telemetry.logger import configure_logging
from .tts.voices import voice_catalogue_payload
from .workflow import ScriptvoiceWorkflow

app = typer.Typer(
    name="scriptvoice",
    no_args_is_help=True,
    help="Scriptvoice CLI: topic to narration script to audio.",
)

_ACCOUNT_ALIASES = {
    "text": TEXT_API_KEY_ACCOUNT,
    "fish-audio": FISH_AUDIO_API_KEY_ACCOUNT,
}

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", help="Path to YAML config file with command defaults."),
]
OutOption = Annotated[
    Optional[Path],
    typer.Option("--out", help="Output root for `scripts/` and `audio/` (overrides config)."),
]
TextProviderOption = Annotated[
    Optional[str],
    typer.Option("--text-provider", help="Text provider id: `anthropic` or `openai`."),
]
TextModelOption = Annotated[
    Optional[str], typer.Option("--text-model", help="Text model id override.")
]
ApiKeyOption = Annotated[
    Optional[str],
    typer.Option("--api-key", help="Text provider API key override."),
]
FishApiKeyOption = Annotated[
    Optional[str],
    typer.Option("--fish-api-key", help="Fish Audio API key override."),
]
DurationOption = Annotated[
    float, typer.Option("--duration", help="Target duration in minutes (1 to 180).")
]
StyleOption = Annotated[str, typer.Option("--style", help="Narration style.")]
AudienceOption = Annotated[str, typer.Option("--audience", help="Target audience.")]
ToneOption = Annotated[str, typer.Option("--tone", help="Narration tone.")]
ReferenceOption = Annotated[
    Optional[str],
    typer.Option("--reference", help="Style reference script inside the templates directory."),
]
OutlineOption = Annotated[
    bool,
    typer.Option("--outline/--direct", help="Plan an outline before writing the script."),
]
FormatOption = Annotated[
    Optional[str], typer.Option("--format", help="Audio format: mp3, wav, pcm, or opus.")
]
VoiceOption = Annotated[
    Optional[str], typer.Option("--voice", help="Reference voice id; `default` for provider voice.")
]
BitrateOption = Annotated[
    Optional[int], typer.Option("--bitrate", help="MP3 bitrate in kbps: 64, 128, or 192.")
]
ChunkSizeOption = Annotated[
    Optional[int], typer.Option("--chunk-size", help="Synthesis chunk size in characters.")
]
LatencyOption = Annotated[
    Optional[str], typer.Option("--latency", help="Provider latency mode: normal or balanced.")
]
FilenameOption = Annotated[
    Optional[str], typer.Option("--filename", help="Output audio filename.")
]


def _load_config(config_path: Path | None, out: Path | None) -> ScriptvoiceConfig:
    """Load YAML or environment config and map failures to stage errors."""

    try:
        config = (
            ConfigLoader.from_yaml(config_path)
            if config_path is not None
            else ConfigLoader.from_env()
        )
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc
    if out is not None:
        config = replace(config, output_dir=out)
    return config


def _resolve_config(
    config_path: Path | None,
    out: Path | None,
    text_provider: str | None,
    text_model: str | None,
) -> ScriptvoiceConfig:
    """Apply explicit CLI overrides on top of the loaded configuration."""

    config = _load_config(config_path, out)
    overrides = {
        key: value
        for key, value in (("text_provider", text_provider), ("text_model", text_model))
        if normalize_optional_string(value) is not None
    }
    if overrides:
        config = replace(config, **overrides)
        try:
            config.validate()
        except ValueError as exc:
            raise PipelineStageError(
                stage="config", detail=str(exc), hint="Check `--text-provider`."
            ) from exc
    return config


def _runtime_sources(api_key: str | None, fish_api_key: str | None) -> RuntimeConfigSources:
    """Collect API keys from CLI options, secure storage, and the environment."""

    cli_values: dict[str, str] = {}
    for account, value in (
        (TEXT_API_KEY_ACCOUNT, api_key),
        (FISH_AUDIO_API_KEY_ACCOUNT, fish_api_key),
    ):
        normalized = normalize_optional_string(value)
        if normalized is not None:
            cli_values[account] = normalized
    credential_store = create_credential_store()
    secure_values = credential_store.load_all() if credential_store.is_available() else {}
    return RuntimeConfigSources(cli=cli_values, secure=secure_values, env=os.environ)


def _build_workflow(config: ScriptvoiceConfig, sources: RuntimeConfigSources) -> ScriptvoiceWorkflow:
    """Build the workflow used by every generation command."""

    configure_logging(level=config.log_level)
    return ScriptvoiceWorkflow.from_config(config, sources)


def _script_request(
    topic: str,
    duration: float,
    style: str,
    audience: str,
    tone: str,
    reference: str | None,
) -> ScriptRequest:
    return ScriptRequest(
        topic=topic.strip(),
        duration_minutes=whole_number(duration),
        style=style,
        audience=audience,
        tone=tone,
        reference_file=reference,
    )


def _audio_options(
    config: ScriptvoiceConfig,
    audio_format: str | None,
    voice: str | None,
    bitrate: int | None,
    chunk_size: int | None,
    latency: str | None,
    filename: str | None,
) -> AudioOptions:
    return config.default_audio_options(
        format=audio_format,
        reference_voice_id=voice,
        bitrate=bitrate,
        chunk_size_chars=chunk_size,
        latency=latency,
        filename=filename,
    )


@app.command("script")
def script_command(
    topic: Annotated[str, typer.Argument(help="Topic to write a narration script about.")] = "",
    duration: DurationOption = 3,
    style: StyleOption = "educational",
    audience: AudienceOption = "general",
    tone: ToneOption = "conversational",
    reference: ReferenceOption = None,
    outline: OutlineOption = False,
    from_preview: Annotated[
        Optional[Path],
        typer.Option("--from-preview", help="Generate from a saved preview JSON file."),
    ] = None,
    config_file: ConfigOption = None,
    out: OutOption = None,
    text_provider: TextProviderOption = None,
    text_model: TextModelOption = None,
    api_key: ApiKeyOption = None,
) -> None:
    """Generate a narration script and save it under `<out>/scripts`."""

    try:
        config = _resolve_config(config_file, out, text_provider, text_model)
        workflow = _build_workflow(config, _runtime_sources(api_key, None))
        if from_preview is not None:
            preview = _read_preview(from_preview)
            script = workflow.generate_from_preview(preview, sink=ProgressPrinter())
        else:
            request = _script_request(topic, duration, style, audience, tone, reference)
            script = workflow.generate_script(
                request, use_outline=outline, sink=ProgressPrinter()
            )
    except Exception as exc:
        exit_with_command_error("script", exc)

    echo_script_summary(script)


def _read_preview(path: Path) -> ScriptPreview:
    """Load a preview JSON file written by `preview --save`."""

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise PipelineStageError(
            stage="preview-input",
            detail=f"Could not read preview file `{path}`: {exc}",
            hint="Create one with `scriptvoice preview <topic> --save <path.json>`.",
        ) from exc
    return ScriptPreview.from_payload(payload)


@app.command("preview")
def preview_command(
    topic: Annotated[str, typer.Argument(help="Topic to outline.")],
    duration: DurationOption = 3,
    style: StyleOption = "educational",
    audience: AudienceOption = "general",
    tone: ToneOption = "conversational",
    reference: ReferenceOption = None,
    save: Annotated[
        Optional[Path],
        typer.Option("--save", help="Write the outline as JSON for `script --from-preview`."),
    ] = None,
    config_file: ConfigOption = None,
    text_provider: TextProviderOption = None,
    text_model: TextModelOption = None,
    api_key: ApiKeyOption = None,
) -> None:
    """Plan a chapter outline without writing the full script."""

    try:
        config = _resolve_config(config_file, None, text_provider, text_model)
        workflow = _build_workflow(config, _runtime_sources(api_key, None))
        preview = workflow.preview(
            _script_request(topic, duration, style, audience, tone, reference)
        )
        if save is not None:
            save.parent.mkdir(parents=True, exist_ok=True)
            save.write_text(
                json.dumps(preview.to_payload(), ensure_ascii=False, indent=2), encoding="utf-8"
            )
    except Exception as exc:
        exit_with_command_error("preview", exc)

    echo_preview(preview)
    if save is not None:
        typer.echo(f"Preview: {save}")


@app.command("audio")
def audio_command(
    script_file: Annotated[
        Optional[Path], typer.Argument(help="Saved script text file to synthesize.")
    ] = None,
    text: Annotated[
        Optional[str], typer.Option("--text", help="Inline text to synthesize.")
    ] = None,
    audio_format: FormatOption = None,
    voice: VoiceOption = None,
    bitrate: BitrateOption = None,
    chunk_size: ChunkSizeOption = None,
    latency: LatencyOption = None,
    filename: FilenameOption = None,
    config_file: ConfigOption = None,
    out: OutOption = None,
    fish_api_key: FishApiKeyOption = None,
) -> None:
    """Synthesize a script file or inline text into one audio file."""

    if (script_file is None) == (text is None):
        exit_with_command_error(
            "audio",
            PipelineStageError(
                stage="audio-input",
                detail="Provide exactly one input source: `<script.txt>` or `--text`.",
                hint="Use `scriptvoice audio --help` for usage examples.",
            ),
        )

    try:
        config = _resolve_config(config_file, out, None, None)
        workflow = _build_workflow(config, _runtime_sources(None, fish_api_key))
        options = _audio_options(config, audio_format, voice, bitrate, chunk_size, latency, filename)
        audio = workflow.generate_audio(
            options=options, text=text, script_path=script_file, sink=ProgressPrinter()
        )
    except Exception as exc:
        exit_with_command_error("audio", exc)

    echo_audio_summary(audio)


@app.command("pipeline")
def pipeline_command(
    topic: Annotated[str, typer.Argument(help="Topic to narrate.")],
    duration: DurationOption = 3,
    style: StyleOption = "educational",
    audience: AudienceOption = "general",
    tone: ToneOption = "conversational",
    reference: ReferenceOption = None,
    outline: OutlineOption = False,
    audio_format: FormatOption = None,
    voice: VoiceOption = None,
    bitrate: BitrateOption = None,
    chunk_size: ChunkSizeOption = None,
    latency: LatencyOption = None,
    filename: FilenameOption = None,
    config_file: ConfigOption = None,
    out: OutOption = None,
    text_provider: TextProviderOption = None,
    text_model: TextModelOption = None,
    api_key: ApiKeyOption = None,
    fish_api_key: FishApiKeyOption = None,
) -> None:
    """Generate a script for a topic and synthesize it in one run."""

    try:
        config = _resolve_config(config_file, out, text_provider, text_model)
        workflow = _build_workflow(config, _runtime_sources(api_key, fish_api_key))
        result = workflow.script_to_audio(
            _script_request(topic, duration, style, audience, tone, reference),
            _audio_options(config, audio_format, voice, bitrate, chunk_size, latency, filename),
            use_outline=outline,
            sink=ProgressPrinter(),
        )
    except Exception as exc:
        exit_with_command_error("pipeline", exc)

    echo_script_summary(result.script)
    echo_audio_summary(result.audio)


@app.command("serve")
def serve_command(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind host.")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="Bind port.")] = None,
    config_file: ConfigOption = None,
    out: OutOption = None,
    api_key: ApiKeyOption = None,
    fish_api_key: FishApiKeyOption = None,
) -> None:
    """Run the HTTP API with JSON and SSE endpoints."""

    try:
        config = _resolve_config(config_file, out, None, None)
        if host is not None or port is not None:
            config = replace(
                config,
                host=host if host is not None else config.host,
                port=port if port is not None else config.port,
            )
        workflow = _build_workflow(config, _runtime_sources(api_key, fish_api_key))
        api_app = create_app(workflow)
    except Exception as exc:
        exit_with_command_error("serve", exc)

    typer.echo(f"Serving on http://{config.host}:{config.port}")
    uvicorn.run(api_app, host=config.host, port=config.port, log_level="warning")


@app.command("voices")
def voices_command(
    config_file: ConfigOption = None,
) -> None:
    """List built-in voices and the configured custom voice."""

    try:
        config = _resolve_config(config_file, None, None, None)
    except Exception as exc:
        exit_with_command_error("voices", exc)

    payload = voice_catalogue_payload(config.tts_voice)
    for voice in payload["defaultVoices"]:
        typer.echo(f"{voice['id']}: {voice['name']} - {voice['description']}")
    typer.echo(f"Custom voice: {payload['customVoice'] or '(none)'}")
    typer.echo(f"Current model: {payload['currentModel']}")


@app.command("credentials")
def credentials_command(
    set_account: Annotated[
        Optional[str],
        typer.Option(
            "--set",
            help="Prompt for an API key (`text` or `fish-audio`) and store it securely.",
        ),
    ] = None,
    clear_account: Annotated[
        Optional[str],
        typer.Option("--clear", help="Clear a stored API key (`text` or `fish-audio`)."),
    ] = None,
) -> None:
    """Manage securely stored provider API keys."""

    if set_account is not None and clear_account is not None:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail="`--set` and `--clear` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )
    requested = set_account if set_account is not None else clear_account
    account = _ACCOUNT_ALIASES.get(requested or "", None)
    if requested is not None and account is None:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail=f"Unknown credential `{requested}`.",
                hint="Use `text` or `fish-audio`.",
            ),
        )

    credential_store = create_credential_store()
    if set_account is not None:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                f"{set_account} API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set`.",
                ),
            )
        try:
            credential_store.set_api_key(account, prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo(f"{set_account} API key stored in secure credential storage.")
        return

    if clear_account is not None:
        if credential_store.clear_api_key(account):
            typer.echo(f"Stored {clear_account} API key cleared from secure credential storage.")
        else:
            typer.echo(f"No stored {clear_account} API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    typer.echo(f"Secure credential storage: {availability}")
    for alias, account_name in _ACCOUNT_ALIASES.items():
        status = "present" if credential_store.get_api_key(account_name) is not None else "not set"
        typer.echo(f"Stored {alias} API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
