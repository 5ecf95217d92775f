"""Async HTTP client for a remote recognition service."""
import time
from typing import Any, Dict, Optional

import httpx

from utp.core.exceptions import RecognitionError
from utp.core.logging import get_logger
from utp.infrastructure.recognition.base import (
    RecognitionBackend,
    RecognitionResult,
    RecognizedWord,
)
from utp.models.domain import Quad

logger = get_logger(__name__)

_QUAD_KEYS = ("x1", "y1", "x2", "y2", "x3", "y3", "x4", "y4")


class HttpRecognitionBackend(RecognitionBackend):
    """Posts images to `{base_url}/ocr` and parses the word/box payload."""

    name = "http"

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http: Optional[httpx.AsyncClient] = None

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client with connection pooling."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def recognize(self, image: bytes) -> RecognitionResult:
        start_time = time.time()
        http = await self._get_http()

        try:
            response = await http.post(
                f"{self.base_url}/ocr",
                files={"file": ("image", image, "application/octet-stream")},
            )
        except httpx.TimeoutException as e:
            raise RecognitionError("recognition backend timeout", details={"error": str(e)}) from e
        except httpx.HTTPError as e:
            raise RecognitionError(
                f"recognition backend unreachable: {e}", details={"error": str(e)}
            ) from e

        if response.status_code != 200:
            raise RecognitionError(
                f"recognition backend returned {response.status_code}",
                details={"status_code": response.status_code, "body": response.text[:500]},
            )

        try:
            result = self.parse_payload(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise RecognitionError(
                f"malformed recognition payload: {e}", details={"error": str(e)}
            ) from e

        logger.debug(
            "remote recognition completed",
            words_count=len(result.words),
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return result

    @staticmethod
    def parse_payload(payload: Dict[str, Any]) -> RecognitionResult:
        """Map the backend JSON (`text`, `words[].bbox`, `imageWidth`, `imageHeight`)."""
        words = []
        for item in payload.get("words") or []:
            box = item.get("bbox") or item.get("quad") or {}
            quad = Quad(**{key: float(box[key]) for key in _QUAD_KEYS})
            confidence = item.get("confidence")
            words.append(
                RecognizedWord(
                    text=str(item["text"]),
                    quad=quad,
                    confidence=float(confidence) if confidence is not None else None,
                )
            )

        return RecognitionResult(
            text=str(payload.get("text") or ""),
            words=words,
            image_width=int(payload.get("imageWidth") or 0),
            image_height=int(payload.get("imageHeight") or 0),
        )

    def is_available(self) -> bool:
        return bool(self.base_url)

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http:
            await self._http.aclose()
            self._http = None
