"""
Abstract base class for speech backends
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from utp.models.domain import WordTiming


@dataclass(frozen=True)
class VoiceConfig:
    """Voice parameters of a synthesis request"""
    language: str = "en-US"
    voice: Optional[str] = None
    speed: float = 1.0
    pitch: float = 0.0


@dataclass(frozen=True)
class SynthesizedSpeech:
    """Synthesized audio"""
    audio: bytes
    duration_ms: int
    format: str = "mp3"


class SpeechBackend(ABC):
    """Turns text into audio and per-word timings"""

    @abstractmethod
    async def synthesize(self, text: str, voice: VoiceConfig) -> SynthesizedSpeech:
        """
        Synthesize speech

        Raises:
            SpeechError: If the backend failed
        """

    @abstractmethod
    async def word_timings(self, text: str) -> List[WordTiming]:
        """
        Word-level timing of the synthesized text

        Raises:
            SpeechError: If the backend failed
        """

    async def close(self) -> None:
        """Release resources (optional)"""
        pass
