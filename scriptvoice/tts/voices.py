"""Static voice catalogue exposed to CLI and HTTP callers."""

from __future__ import annotations

from dataclasses import dataclass

from .fish_audio_client import DEFAULT_TTS_MODEL


@dataclass(frozen=True, slots=True)
class VoiceOption:
    """One selectable voice or model entry."""

    id: str
    name: str
    description: str

    def to_payload(self) -> dict[str, str]:
        """Return the JSON payload shape for this voice."""

        return {"id": self.id, "name": self.name, "description": self.description}


VOICE_CATALOGUE: tuple[VoiceOption, ...] = (
    VoiceOption("default", "Default Voice", "Provider default narration voice"),
    VoiceOption("speech-1.5", "Speech 1.5", "Stable multilingual speech model"),
    VoiceOption("speech-1.6", "Speech 1.6", "Improved prosody speech model"),
    VoiceOption("s1", "S1", "Latest expressive speech model"),
)


def voice_catalogue_payload(custom_voice_id: str | None = None) -> dict[str, object]:
    """Return the voices payload with the configured custom voice and current model."""

    return {
        "defaultVoices": [voice.to_payload() for voice in VOICE_CATALOGUE],
        "customVoice": custom_voice_id if custom_voice_id not in {None, "", "default"} else None,
        "currentModel": DEFAULT_TTS_MODEL,
    }
