"""Configuration model and loaders for Scriptvoice.

Responsibilities:
- Define runtime configuration as a typed dataclass.
- Resolve provider API keys with deterministic source precedence.
- Provide loader entry points for file- and environment-based configuration.

Key types:
- `ScriptvoiceConfig`: normalized runtime settings for CLI and server processes.
- `RuntimeConfigSources`: optional value sources for API-key precedence resolution.
- `ResolvedApiKeys`: API keys resolved for one process.
- `ConfigLoader`: static construction helpers for `ScriptvoiceConfig`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from .llm.text_clients import DEFAULT_ANTHROPIC_MODEL, DEFAULT_OPENAI_MODEL
from .models.datatypes import (
    SUPPORTED_AUDIO_FORMATS,
    SUPPORTED_BITRATES,
    SUPPORTED_LATENCY_MODES,
    AudioOptions,
)
from .parsing import normalize_optional_string

_SUPPORTED_TEXT_PROVIDERS = frozenset({"anthropic", "openai"})
_DEFAULT_TEXT_MODELS = {"anthropic": DEFAULT_ANTHROPIC_MODEL, "openai": DEFAULT_OPENAI_MODEL}
_TEXT_KEY_ENV_VARS = {"anthropic": "ANTHROPIC_API_KEY", "openai": "OPENAI_API_KEY"}
_FISH_KEY_ENV_VAR = "FISH_AUDIO_API_KEY"
_ENV_PREFIX = "SCRIPTVOICE_"


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic API-key precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        secure: Values loaded from secure local credential storage.
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ResolvedApiKeys:
    """API keys resolved for one process; never persisted or logged."""

    text_api_key: str | None
    fish_audio_api_key: str | None


@dataclass(slots=True)
class ScriptvoiceConfig:
    """Runtime configuration for CLI commands and the HTTP server.

    Attributes:
        output_dir: Root for `scripts/` and `audio/` outputs.
        templates_dir: Directory holding style-reference scripts.
        text_provider: `anthropic` or `openai`.
        text_model: Text model id; defaults per provider when unset.
        tts_model: Speech model id sent as the `model` header.
        tts_voice: Default voice reference; `default` selects the provider voice.
        audio_format: Default output format.
        mp3_bitrate: Default MP3 bitrate in kbps.
        chunk_size_chars: Default chunking threshold for synthesis.
        latency: Default provider latency mode.
        anthropic_api_key: Optional Anthropic key from the config file.
        openai_api_key: Optional OpenAI key from the config file.
        fish_audio_api_key: Optional Fish Audio key from the config file.
        log_level: Loguru level name.
        job_max_age_seconds: Jobs idle longer than this are evicted.
        job_sweep_interval_seconds: Interval between eviction sweeps.
        host: HTTP bind host.
        port: HTTP bind port.
    """

    output_dir: Path = Path("output")
    templates_dir: Path = Path("templates")
    text_provider: str = "anthropic"
    text_model: str | None = None
    tts_model: str = "s1"
    tts_voice: str = "default"
    audio_format: str = "mp3"
    mp3_bitrate: int = 128
    chunk_size_chars: int = 5000
    latency: str = "normal"
    anthropic_api_key: str | None = None
    openai_api_key: str | None = None
    fish_audio_api_key: str | None = None
    log_level: str = "INFO"
    job_max_age_seconds: int = 1800
    job_sweep_interval_seconds: int = 60
    host: str = "127.0.0.1"
    port: int = 3000

    def validate(self) -> None:
        """Validate configuration values before any service is constructed."""

        if self.text_provider not in _SUPPORTED_TEXT_PROVIDERS:
            supported = ", ".join(sorted(_SUPPORTED_TEXT_PROVIDERS))
            raise ValueError(
                f"Unsupported `text_provider` value `{self.text_provider}`; supported: {supported}."
            )
        if self.audio_format not in SUPPORTED_AUDIO_FORMATS:
            supported = ", ".join(sorted(SUPPORTED_AUDIO_FORMATS))
            raise ValueError(
                f"Unsupported `audio_format` value `{self.audio_format}`; supported: {supported}."
            )
        if self.mp3_bitrate not in SUPPORTED_BITRATES:
            supported = ", ".join(str(value) for value in sorted(SUPPORTED_BITRATES))
            raise ValueError(
                f"Unsupported `mp3_bitrate` value `{self.mp3_bitrate}`; supported: {supported}."
            )
        if self.latency not in SUPPORTED_LATENCY_MODES:
            supported = ", ".join(sorted(SUPPORTED_LATENCY_MODES))
            raise ValueError(
                f"Unsupported `latency` value `{self.latency}`; supported: {supported}."
            )
        for name in (
            "chunk_size_chars",
            "job_max_age_seconds",
            "job_sweep_interval_seconds",
            "port",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"`{name}` must be a positive integer.")
        for name in ("tts_model", "tts_voice", "log_level", "host"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"`{name}` must be a non-empty string.")

    @property
    def resolved_text_model(self) -> str:
        """Return the configured text model or the provider default."""

        return self.text_model or _DEFAULT_TEXT_MODELS[self.text_provider]

    def resolve_api_keys(self, sources: RuntimeConfigSources | None = None) -> ResolvedApiKeys:
        """Resolve API keys with precedence `cli` > `secure` > `env` > config file."""

        resolved_sources = sources if sources is not None else RuntimeConfigSources()
        file_text_key = (
            self.anthropic_api_key if self.text_provider == "anthropic" else self.openai_api_key
        )
        return ResolvedApiKeys(
            text_api_key=self._resolve_optional(
                "text_api_key",
                _TEXT_KEY_ENV_VARS[self.text_provider],
                file_text_key,
                resolved_sources,
            ),
            fish_audio_api_key=self._resolve_optional(
                "fish_audio_api_key",
                _FISH_KEY_ENV_VAR,
                self.fish_audio_api_key,
                resolved_sources,
            ),
        )

    def default_audio_options(self, **overrides: Any) -> AudioOptions:
        """Return audio options seeded from configuration defaults."""

        values: dict[str, Any] = {
            "format": self.audio_format,
            "bitrate": self.mp3_bitrate,
            "chunk_size_chars": self.chunk_size_chars,
            "latency": self.latency,
            "reference_voice_id": self.tts_voice,
            "output_dir": self.output_dir / "audio",
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return AudioOptions(**values)

    @staticmethod
    def _resolve_optional(
        key: str,
        env_key: str,
        default_value: str | None,
        sources: RuntimeConfigSources,
    ) -> str | None:
        """Resolve an optional value from sources in deterministic order."""

        for mapping, lookup_key in (
            (sources.cli, key),
            (sources.secure, key),
            (sources.env, env_key),
        ):
            if lookup_key in mapping:
                value = normalize_optional_string(mapping.get(lookup_key))
                if value is not None:
                    return value
        return normalize_optional_string(default_value)


_PATH_FIELDS = frozenset({"output_dir", "templates_dir"})
_INT_FIELDS = frozenset(
    {"mp3_bitrate", "chunk_size_chars", "job_max_age_seconds", "job_sweep_interval_seconds", "port"}
)


class ConfigLoader:
    """Factory methods for creating `ScriptvoiceConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(item.name for item in fields(ScriptvoiceConfig))
    _API_KEY_ENV_VARS = {
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "OPENAI_API_KEY": "openai_api_key",
        "FISH_AUDIO_API_KEY": "fish_audio_api_key",
    }

    @staticmethod
    def from_yaml(path: Path) -> ScriptvoiceConfig:
        """Create a validated config from a YAML file."""

        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")

        source_label = f"YAML `{path}`"
        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            raise ValueError(f"{source_label} includes unsupported key(s): {', '.join(unknown)}.")
        return ConfigLoader._build(payload, source_label)

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> ScriptvoiceConfig:
        """Create a validated config from `SCRIPTVOICE_*` and provider key variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = {}
        for name in ConfigLoader._SUPPORTED_YAML_KEYS:
            env_key = f"{_ENV_PREFIX}{name.upper()}"
            if env_key in env_map:
                payload[name] = env_map[env_key]
        for env_key, name in ConfigLoader._API_KEY_ENV_VARS.items():
            if normalize_optional_string(env_map.get(env_key)) is not None:
                payload[name] = env_map[env_key]
        return ConfigLoader._build(payload, "environment")

    @staticmethod
    def _build(payload: Mapping[str, Any], source_label: str) -> ScriptvoiceConfig:
        """Build a validated config from a normalized mapping payload."""

        values: dict[str, Any] = {}
        for name, raw_value in payload.items():
            if name in _PATH_FIELDS:
                normalized = normalize_optional_string(raw_value)
                if normalized is not None:
                    values[name] = Path(normalized)
            elif name in _INT_FIELDS:
                parsed = ConfigLoader._positive_int(raw_value, name, source_label)
                if parsed is not None:
                    values[name] = parsed
            else:
                normalized = normalize_optional_string(raw_value)
                if normalized is not None:
                    values[name] = normalized
        config = ScriptvoiceConfig(**values)
        config.validate()
        return config

    @staticmethod
    def _positive_int(raw_value: object, key: str, source_label: str) -> int | None:
        """Parse a positive integer field; blank values fall back to defaults."""

        if isinstance(raw_value, bool):
            raise ValueError(f"{source_label} field `{key}` must be a positive integer.")
        if isinstance(raw_value, int):
            parsed = raw_value
        else:
            normalized = normalize_optional_string(raw_value)
            if normalized is None:
                return None
            try:
                parsed = int(normalized)
            except ValueError as exc:
                raise ValueError(
                    f"{source_label} field `{key}` must be a positive integer."
                ) from exc
        if parsed <= 0:
            raise ValueError(f"{source_label} field `{key}` must be a positive integer.")
        return parsed
