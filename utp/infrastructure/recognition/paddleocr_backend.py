"""
Local recognition backend wrapping PaddleOCR
"""
import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from paddleocr import PaddleOCR

from utp.infrastructure.recognition.base import (
    RecognitionBackend,
    RecognitionResult,
    RecognizedWord,
)
from utp.core.exceptions import RecognitionError, ConfigurationError
from utp.core.logging import get_logger
from utp.models.domain import Quad
from utp.utils.image_utils import bytes_to_numpy

logger = get_logger(__name__)


def split_line(text: str, bbox: List[List[float]], confidence: float) -> List[RecognizedWord]:
    """
    Split a recognized line into words

    PaddleOCR reports whole lines; every word gets a slice of the line box
    proportional to its share of the line characters.

    Args:
        text: Line text
        bbox: Line quadrilateral [[x1,y1], [x2,y2], [x3,y3], [x4,y4]]
        confidence: Line confidence, shared by all words

    Returns:
        Words in reading order
    """
    words = text.split()
    if not words:
        return []

    xs = [float(point[0]) for point in bbox]
    ys = [float(point[1]) for point in bbox]
    left, right = min(xs), max(xs)
    top, bottom = min(ys), max(ys)

    total_chars = sum(len(word) for word in words)
    width = right - left
    cursor = left
    result = []
    for word in words:
        word_right = min(right, cursor + width * len(word) / total_chars)
        result.append(
            RecognizedWord(
                text=word,
                quad=Quad(
                    x1=cursor, y1=top,
                    x2=word_right, y2=top,
                    x3=word_right, y3=bottom,
                    x4=cursor, y4=bottom,
                ),
                confidence=confidence,
            )
        )
        cursor = word_right
    return result


class PaddleRecognitionBackend(RecognitionBackend):
    """
    PaddleOCR wrapper - on-device recognition backend
    """

    name = "paddleocr"

    def __init__(
        self,
        use_angle_cls: bool = True,
        lang: str = 'en',
        use_gpu: bool = False,
        workers: int = 2
    ):
        """
        Configure the PaddleOCR backend

        Args:
            use_angle_cls: Use text angle classification
            lang: Recognition language ('en', 'ru', 'ch', ...)
            use_gpu: Use GPU
            workers: Thread pool size for blocking recognition calls
        """
        self.use_angle_cls = use_angle_cls
        self.lang = lang
        self.use_gpu = use_gpu
        self.ocr: Optional[PaddleOCR] = None
        self.executor = ThreadPoolExecutor(max_workers=workers)

        logger.info(
            "PaddleOCR backend configured",
            use_angle_cls=use_angle_cls,
            lang=lang,
            use_gpu=use_gpu
        )

    def initialize(self) -> None:
        """Initialize PaddleOCR"""
        try:
            logger.info("Initializing PaddleOCR...")

            self.ocr = PaddleOCR(
                use_angle_cls=self.use_angle_cls,
                lang=self.lang,
                use_gpu=self.use_gpu,
                show_log=False
            )

            logger.info("PaddleOCR initialized successfully")

        except Exception as e:
            logger.error("Failed to initialize PaddleOCR", error=str(e))
            raise ConfigurationError(
                f"Failed to initialize PaddleOCR: {str(e)}",
                details={"error": str(e)}
            )

    def _recognize_sync(self, image: bytes) -> RecognitionResult:
        image_array = bytes_to_numpy(image)
        height, width = image_array.shape[:2]

        result = self.ocr.ocr(image_array, cls=self.use_angle_cls)

        if not result or not result[0]:
            return RecognitionResult(text="", image_width=width, image_height=height)

        words: List[RecognizedWord] = []
        lines = []
        for line in result[0]:
            bbox = line[0]  # [[x1,y1], [x2,y2], [x3,y3], [x4,y4]]
            text = line[1][0]
            confidence = float(line[1][1])
            words.extend(split_line(text, bbox, confidence))
            lines.append(text)

        return RecognitionResult(
            text="\n".join(lines),
            words=words,
            image_width=width,
            image_height=height
        )

    async def recognize(self, image: bytes) -> RecognitionResult:
        """
        Recognize text through PaddleOCR in the thread pool

        Raises:
            RecognitionError: If PaddleOCR is not initialized or failed
        """
        if self.ocr is None:
            raise RecognitionError(
                "PaddleOCR not initialized. Call initialize() first."
            )

        start_time = time.time()
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(self.executor, self._recognize_sync, image)
        except Exception as e:
            logger.error("PaddleOCR recognition failed", error=str(e))
            raise RecognitionError(
                f"Failed to recognize text with PaddleOCR: {str(e)}",
                details={"error": str(e)}
            ) from e

        logger.info(
            "PaddleOCR recognition completed",
            words_count=len(result.words),
            processing_time_ms=int((time.time() - start_time) * 1000)
        )
        return result

    def is_available(self) -> bool:
        """True if the engine is initialized"""
        return self.ocr is not None

    async def close(self) -> None:
        """Release the engine and the thread pool"""
        if self.ocr is not None:
            logger.info("Cleaning up PaddleOCR resources")
            self.ocr = None
        self.executor.shutdown(wait=True)
