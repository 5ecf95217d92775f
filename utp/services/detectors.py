"""
Source detectors - one adapter per source kind

Every detector turns a DetectionContext into a TextDetectionResult and never
raises: backend and I/O failures come back as DetectionError.
"""
import asyncio
import time
from abc import ABC, abstractmethod
from itertools import islice
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx

from utp.core.enums import SourceType
from utp.core.exceptions import SourceFailureError
from utp.core.logging import get_logger
from utp.infrastructure.recognition.base import RecognitionBackend
from utp.models.config import TextDetectionConfig
from utp.models.domain import (
    AccessibilityNode,
    BoundingBox,
    DetectionContext,
    TextMetadata,
    Token,
    UniversalText,
)
from utp.models.results import (
    EMPTY,
    DetectionError,
    DetectionSuccess,
    TextDetectionResult,
)
from utp.utils.image_utils import validate_image_format, validate_image_size
from utp.utils.text_utils import is_punctuation_only, strip_markup, word_spans

logger = get_logger(__name__)


class SourceDetector(ABC):
    """
    Base class of all source detectors

    Subclasses implement _extract(); detect() times the call and turns any
    exception into a DetectionError.
    """

    source_type: SourceType

    @abstractmethod
    def is_applicable(self, context: DetectionContext, config: TextDetectionConfig) -> bool:
        """True if the source is enabled and the context carries its input"""

    @abstractmethod
    async def _extract(
        self, context: DetectionContext, config: TextDetectionConfig
    ) -> TextDetectionResult:
        """Source specific extraction, may raise"""

    async def detect(
        self, context: DetectionContext, config: TextDetectionConfig
    ) -> TextDetectionResult:
        """
        Run the detector

        Args:
            context: Inputs available for this attempt
            config: Detection settings

        Returns:
            DetectionSuccess, DetectionError or DetectionEmpty
        """
        start_time = time.time()
        source = self.source_type.value

        try:
            result = await self._extract(context, config)
        except Exception as e:
            logger.warning(
                "source detection failed",
                source=source,
                error=str(e),
                error_type=type(e).__name__,
            )
            return DetectionError(f"{source} detection failed: {e}", cause=e)

        duration_ms = int((time.time() - start_time) * 1000)

        if isinstance(result, DetectionSuccess):
            text = result.universal_text
            text = text.model_copy(
                update={
                    "metadata": text.metadata.model_copy(
                        update={"extraction_duration_ms": duration_ms}
                    )
                }
            )
            logger.info(
                "source detection completed",
                source=source,
                tokens_count=text.token_count,
                duration_ms=duration_ms,
            )
            return DetectionSuccess(text)

        logger.debug("source detection finished without text", source=source, result=type(result).__name__)
        return result

    async def close(self) -> None:
        """Release resources (optional)"""
        pass


def _proportional_boxes(words: Sequence[str], bounds: BoundingBox) -> List[BoundingBox]:
    """Split a node rectangle horizontally by each word's share of characters"""
    if len(words) == 1 or bounds.is_empty():
        return [bounds] * len(words)

    total_chars = max(1, sum(len(word) for word in words))
    boxes = []
    left = bounds.left
    for word in words:
        width = max(1, int(len(word) / total_chars * bounds.width))
        right = min(left + width, bounds.right)
        boxes.append(BoundingBox(left=left, top=bounds.top, right=right, bottom=bounds.bottom))
        left = right
    return boxes


class AccessibilityDetector(SourceDetector):
    """Reads on-screen text the host exposes through accessibility nodes"""

    source_type = SourceType.ACCESSIBILITY

    def __init__(self, max_tokens: int = 600):
        self.max_tokens = max_tokens

    def is_applicable(self, context: DetectionContext, config: TextDetectionConfig) -> bool:
        return config.enable_accessibility and context.accessibility_available

    @staticmethod
    def _iter_words(
        nodes: Iterable[AccessibilityNode],
    ) -> Iterator[Tuple[str, BoundingBox, bool]]:
        for node in nodes:
            # never read password fields
            if node.is_password:
                continue
            text = node.readable_text
            if text is None:
                continue
            for line in text.splitlines():
                words = [word for word in line.split() if not is_punctuation_only(word)]
                boxes = _proportional_boxes(words, node.bounds)
                for position, (word, box) in enumerate(zip(words, boxes)):
                    yield word, box, position == 0

    async def _extract(
        self, context: DetectionContext, config: TextDetectionConfig
    ) -> TextDetectionResult:
        if not context.accessibility_nodes:
            return EMPTY

        parts: List[str] = []
        tokens: List[Token] = []
        cursor = 0

        for word, box, starts_line in islice(
            self._iter_words(context.accessibility_nodes), self.max_tokens
        ):
            if cursor:
                parts.append("\n" if starts_line else " ")
                cursor += 1
            parts.append(word)
            tokens.append(
                Token(
                    text=word,
                    bounding_box=box,
                    confidence=1.0,
                    index=len(tokens),
                    source_type=self.source_type,
                    start_index=cursor,
                    end_index=cursor + len(word),
                )
            )
            cursor += len(word)

        if not tokens:
            return EMPTY

        return DetectionSuccess(
            UniversalText(
                raw_text="".join(parts),
                tokens=tuple(tokens),
                positions=tuple(token.bounding_box for token in tokens),
                source_type=self.source_type,
                metadata=TextMetadata(language=config.primary_language),
            )
        )


class OcrDetector(SourceDetector):
    """Recognizes the context image through the recognition backend"""

    source_type = SourceType.OCR

    def __init__(
        self,
        backend: RecognitionBackend,
        max_image_size_mb: int = 10,
        allowed_formats: Optional[Iterable[str]] = None,
    ):
        self.backend = backend
        self.max_image_size_mb = max_image_size_mb
        self.allowed_formats = list(allowed_formats) if allowed_formats else None

    def _image(self, context: DetectionContext) -> Optional[bytes]:
        return context.image

    def is_applicable(self, context: DetectionContext, config: TextDetectionConfig) -> bool:
        return config.enable_ocr and context.image is not None

    async def _extract(
        self, context: DetectionContext, config: TextDetectionConfig
    ) -> TextDetectionResult:
        image = self._image(context)
        if not image:
            return EMPTY

        validate_image_size(image, self.max_image_size_mb)
        validate_image_format(image, self.allowed_formats)

        recognition = await self.backend.recognize(image)

        # offsets refer to the words joined by single spaces, not the page layout
        parts: List[str] = []
        tokens: List[Token] = []
        cursor = 0
        for word in recognition.words:
            text = word.text.strip()
            if not text:
                continue
            if tokens:
                parts.append(" ")
                cursor += 1
            confidence = 1.0 if word.confidence is None else min(1.0, max(0.0, word.confidence))
            parts.append(text)
            tokens.append(
                Token(
                    text=text,
                    bounding_box=word.quad.to_bounding_box(),
                    confidence=confidence,
                    index=len(tokens),
                    source_type=self.source_type,
                    start_index=cursor,
                    end_index=cursor + len(text),
                )
            )
            cursor += len(text)

        if not tokens:
            return EMPTY

        mean_confidence = sum(token.confidence for token in tokens) / len(tokens)

        return DetectionSuccess(
            UniversalText(
                raw_text="".join(parts),
                tokens=tuple(tokens),
                positions=tuple(token.bounding_box for token in tokens),
                source_type=self.source_type,
                metadata=TextMetadata(
                    language=config.primary_language,
                    confidence=mean_confidence,
                ),
            )
        )


class ContinuousOcrDetector(OcrDetector):
    """Same recognition path as OcrDetector, fed with screen capture frames"""

    source_type = SourceType.CONTINUOUS_OCR

    def _image(self, context: DetectionContext) -> Optional[bytes]:
        return context.frame

    def is_applicable(self, context: DetectionContext, config: TextDetectionConfig) -> bool:
        return config.enable_continuous_ocr and context.frame is not None


def is_local_url(url: str) -> bool:
    """True for file:// URIs and bare filesystem paths"""
    return urlparse(url).scheme.lower() in ("file", "")


class WebDetector(SourceDetector):
    """
    Fetches a web page or local document and strips its markup

    Local documents are read only when allow_local_files is set, and only
    below local_root when one is given.
    """

    source_type = SourceType.WEB

    def __init__(
        self,
        timeout: float = 15.0,
        http: Optional[httpx.AsyncClient] = None,
        allow_local_files: bool = False,
        local_root: Optional[str] = None,
    ):
        self.timeout = timeout
        self._http = http
        self.allow_local_files = allow_local_files
        self.local_root = Path(local_root).resolve() if local_root else None

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client with connection pooling."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._http

    def is_applicable(self, context: DetectionContext, config: TextDetectionConfig) -> bool:
        return config.enable_web_fetch and bool(context.url)

    async def _fetch(self, url: str) -> str:
        parsed = urlparse(url)
        scheme = parsed.scheme.lower()

        if scheme in ("http", "https"):
            http = await self._get_http()
            response = await http.get(url)
            response.raise_for_status()
            return response.text

        if scheme == "file":
            path = Path(url2pathname(parsed.path))
        elif scheme == "":
            path = Path(url)
        else:
            raise SourceFailureError(f"unsupported url scheme: {scheme}", details={"url": url})

        return await asyncio.to_thread(self._read_local, path, url)

    def _read_local(self, path: Path, url: str) -> str:
        if not self.allow_local_files:
            raise SourceFailureError("local file access is disabled", details={"url": url})

        path = path.resolve()
        if self.local_root is not None and not path.is_relative_to(self.local_root):
            raise SourceFailureError(
                "path is outside the allowed local root",
                details={"url": url, "root": str(self.local_root)},
            )
        return path.read_text(encoding="utf-8", errors="replace")

    async def _extract(
        self, context: DetectionContext, config: TextDetectionConfig
    ) -> TextDetectionResult:
        document = await self._fetch(context.url)
        text, title = strip_markup(document)
        if not text:
            return EMPTY

        tokens = tuple(
            Token(
                text=word,
                confidence=1.0,
                index=index,
                source_type=self.source_type,
                start_index=start,
                end_index=end,
            )
            for index, (word, start, end) in enumerate(word_spans(text))
        )

        return DetectionSuccess(
            UniversalText(
                raw_text=text,
                tokens=tokens,
                source_type=self.source_type,
                metadata=TextMetadata(
                    title=title,
                    url=context.url,
                    language=config.primary_language,
                ),
            )
        )

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http:
            await self._http.aclose()
            self._http = None
