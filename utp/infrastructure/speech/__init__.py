"""speech backends"""

from .base import SpeechBackend, SynthesizedSpeech, VoiceConfig
from .http_backend import HttpSpeechBackend

__all__ = ["HttpSpeechBackend", "SpeechBackend", "SynthesizedSpeech", "VoiceConfig"]
