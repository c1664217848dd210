"""Speech-synthesis stage: Fish Audio client, synthesizer wrapper, and voice catalogue."""

from .fish_audio_client import FishAudioSpeechClient, SpeechClient
from .synthesizer import SpeechSynthesizer
from .voices import VOICE_CATALOGUE, voice_catalogue_payload

__all__ = [
    "FishAudioSpeechClient",
    "SpeechClient",
    "SpeechSynthesizer",
    "VOICE_CATALOGUE",
    "voice_catalogue_payload",
]
