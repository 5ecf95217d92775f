"""Async HTTP client for a remote speech service."""
import base64
import binascii
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from utp.core.exceptions import SpeechError
from utp.core.logging import get_logger
from utp.infrastructure.speech.base import SpeechBackend, SynthesizedSpeech, VoiceConfig
from utp.models.domain import WordTiming

logger = get_logger(__name__)


class HttpSpeechBackend(SpeechBackend):
    """Client of the `/tts` and `/tts/timing` endpoints."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http: Optional[httpx.AsyncClient] = None

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client with connection pooling."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        http = await self._get_http()
        try:
            response = await http.post(f"{self.base_url}{path}", json=payload)
        except httpx.HTTPError as e:
            raise SpeechError(f"speech backend request failed: {e}", details={"path": path}) from e

        if response.status_code != 200:
            raise SpeechError(
                f"speech backend returned {response.status_code}",
                details={"path": path, "status_code": response.status_code},
            )
        try:
            return response.json()
        except ValueError as e:
            raise SpeechError(f"malformed speech payload: {e}", details={"path": path}) from e

    async def synthesize(self, text: str, voice: VoiceConfig) -> SynthesizedSpeech:
        data = await self._post(
            "/tts",
            {
                "text": text,
                "language": voice.language,
                "voice": voice.voice,
                "speed": voice.speed,
                "pitch": voice.pitch,
            },
        )
        try:
            audio = base64.b64decode(data["audio"])
        except (KeyError, binascii.Error) as e:
            raise SpeechError("speech backend returned no decodable audio") from e

        # duration is reported in seconds
        duration = data.get("duration") or 0.0
        logger.debug("speech synthesized", text_length=len(text), audio_bytes=len(audio))
        return SynthesizedSpeech(
            audio=audio,
            duration_ms=int(float(duration) * 1000),
            format=data.get("format", "mp3"),
        )

    async def word_timings(self, text: str) -> List[WordTiming]:
        data = await self._post("/tts/timing", {"text": text})
        try:
            timings = [
                WordTiming(
                    index=item["index"],
                    start_ms=item["startMs"],
                    end_ms=item["endMs"],
                    word=item.get("word"),
                )
                for item in data.get("timings", [])
            ]
        except (KeyError, TypeError, ValidationError) as e:
            raise SpeechError(f"malformed timing payload: {e}") from e

        logger.debug("word timings received", timings_count=len(timings))
        return timings

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http:
            await self._http.aclose()
            self._http = None
