"""
Abstract base class for recognition backends
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from utp.models.domain import Quad


@dataclass
class RecognizedWord:
    """Recognized word with its quadrilateral"""
    text: str
    quad: Quad
    confidence: Optional[float] = None  # backends may omit it


@dataclass
class RecognitionResult:
    """Recognition output in backend order"""
    text: str
    words: List[RecognizedWord] = field(default_factory=list)
    image_width: int = 0
    image_height: int = 0


class RecognitionBackend(ABC):
    """
    Base class of every recognition backend
    Turns an encoded image into recognized words and boxes
    """

    name = "base"

    @abstractmethod
    async def recognize(self, image: bytes) -> RecognitionResult:
        """
        Recognize text in an image

        Args:
            image: Encoded image bytes (png, jpeg, webp)

        Returns:
            RecognitionResult with words in reading order

        Raises:
            RecognitionError: If the backend failed
        """

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check whether the backend can take requests

        Returns:
            True if the backend is ready
        """

    async def close(self) -> None:
        """Release resources (optional)"""
        pass
