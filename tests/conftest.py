"""Shared fixtures for the text pipeline tests."""

import io
from typing import Iterable, List, Optional, Sequence

import pytest
from PIL import Image

from utp.core.enums import SourceType
from utp.infrastructure.recognition.base import (
    RecognitionBackend,
    RecognitionResult,
    RecognizedWord,
)
from utp.models.domain import BoundingBox, Quad, Token, UniversalText


def make_text(
    words: Sequence[str],
    source_type: SourceType = SourceType.OCR,
    confidences: Optional[Sequence[float]] = None,
    boxes: Optional[Sequence[BoundingBox]] = None,
    separator: str = " ",
) -> UniversalText:
    """Build a valid UniversalText from words joined by a separator."""
    tokens: List[Token] = []
    cursor = 0
    for index, word in enumerate(words):
        if index:
            cursor += len(separator)
        tokens.append(
            Token(
                text=word,
                bounding_box=boxes[index] if boxes else BoundingBox(),
                confidence=confidences[index] if confidences else 1.0,
                index=index,
                source_type=source_type,
                start_index=cursor,
                end_index=cursor + len(word),
            )
        )
        cursor += len(word)

    return UniversalText(
        raw_text=separator.join(words),
        tokens=tuple(tokens),
        positions=tuple(token.bounding_box for token in tokens) if boxes else (),
        source_type=source_type,
    )


def make_png(width: int = 32, height: int = 16) -> bytes:
    """Small valid PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(255, 255, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


def word(text: str, x: float = 0.0, confidence: Optional[float] = None) -> RecognizedWord:
    """Recognized word with a 10px high quad starting at x."""
    return RecognizedWord(
        text=text,
        quad=Quad(x1=x, y1=0, x2=x + 40, y2=0, x3=x + 40, y3=10, x4=x, y4=10),
        confidence=confidence,
    )


class FakeRecognitionBackend(RecognitionBackend):
    """Recognition backend returning canned words."""

    name = "fake"

    def __init__(self, words: Iterable[RecognizedWord] = (), error: Optional[Exception] = None):
        self.words = list(words)
        self.error = error
        self.calls: List[bytes] = []

    async def recognize(self, image: bytes) -> RecognitionResult:
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return RecognitionResult(
            text=" ".join(w.text for w in self.words),
            words=self.words,
        )

    def is_available(self) -> bool:
        return True


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()
