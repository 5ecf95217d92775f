"""
Domain models - canonical text structures shared by every pipeline stage
"""
from datetime import datetime, timezone
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from utp.core.enums import SourceType
from utp.utils.text_utils import loosely_equal


class BoundingBox(BaseModel):
    """Screen-space rectangle, zero when the source has no geometry"""
    model_config = ConfigDict(frozen=True)

    left: int = Field(0, description="Left edge in pixels")
    top: int = Field(0, description="Top edge in pixels")
    right: int = Field(0, description="Right edge in pixels")
    bottom: int = Field(0, description="Bottom edge in pixels")

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def center(self) -> Tuple[int, int]:
        return (self.left + self.right) // 2, (self.top + self.bottom) // 2

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


class Quad(BaseModel):
    """Quadrilateral as reported by recognition backends (possibly rotated)"""
    model_config = ConfigDict(frozen=True)

    x1: float
    y1: float
    x2: float
    y2: float
    x3: float
    y3: float
    x4: float
    y4: float

    def to_bounding_box(self) -> BoundingBox:
        """Axis aligned box enclosing all four vertices"""
        xs = (self.x1, self.x2, self.x3, self.x4)
        ys = (self.y1, self.y2, self.y3, self.y4)
        return BoundingBox(
            left=int(min(xs)),
            top=int(min(ys)),
            right=int(round(max(xs))),
            bottom=int(round(max(ys))),
        )


class Token(BaseModel):
    """Atomic recognized unit, normally a word"""
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Token text")
    bounding_box: BoundingBox = Field(default_factory=BoundingBox, description="Position on screen")
    confidence: float = Field(1.0, ge=0.0, le=1.0, description="Extraction confidence")
    index: int = Field(..., ge=0, description="Position in the parent token sequence")
    source_type: SourceType = Field(..., description="Origin of the token")
    start_index: int = Field(-1, ge=-1, description="Inclusive offset into raw text, -1 if unknown")
    end_index: int = Field(-1, ge=-1, description="Exclusive offset into raw text, -1 if unknown")

    @model_validator(mode="after")
    def _check_offsets(self) -> "Token":
        if self.start_index == -1:
            if self.end_index != -1:
                raise ValueError("end_index must be -1 when start_index is unknown")
        elif self.end_index <= self.start_index:
            raise ValueError(
                f"token {self.index}: end_index {self.end_index} must be greater "
                f"than start_index {self.start_index}"
            )
        return self

    @property
    def has_offsets(self) -> bool:
        return self.start_index != -1


class TextMetadata(BaseModel):
    """Descriptive information about an extracted text"""
    model_config = ConfigDict(frozen=True)

    title: Optional[str] = Field(None, description="Document or page title")
    url: Optional[str] = Field(None, description="Source URL or URI")
    author: Optional[str] = Field(None, description="Author")
    language: str = Field("en", description="Language code")
    confidence: float = Field(1.0, ge=0.0, le=1.0, description="Overall confidence")
    page_number: Optional[int] = Field(None, ge=1, description="Page number")
    total_pages: Optional[int] = Field(None, ge=1, description="Total pages")
    extraction_duration_ms: int = Field(0, ge=0, description="Time spent extracting")


class UniversalText(BaseModel):
    """
    Canonical text representation produced and consumed by every stage.

    Immutable once constructed; validation enforces dense token indices,
    a positions list consistent with the tokens and offsets that re-slice
    the raw text to each token's text.
    """
    model_config = ConfigDict(frozen=True)

    raw_text: str = Field(..., description="Full text")
    tokens: Tuple[Token, ...] = Field(default=(), description="Tokens ordered by index")
    positions: Tuple[BoundingBox, ...] = Field(
        default=(),
        description="Token rectangles for consumers that do not need full tokens"
    )
    source_type: SourceType = Field(..., description="Origin of the text")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation time"
    )
    metadata: TextMetadata = Field(default_factory=TextMetadata, description="Metadata")

    @model_validator(mode="after")
    def _check_consistency(self) -> "UniversalText":
        if self.positions and len(self.positions) != len(self.tokens):
            raise ValueError(
                f"positions ({len(self.positions)}) must match tokens ({len(self.tokens)})"
            )

        text_length = len(self.raw_text)
        for expected_index, token in enumerate(self.tokens):
            if token.index != expected_index:
                raise ValueError(
                    f"token indices must be dense from 0, got {token.index} at {expected_index}"
                )
            if not token.has_offsets:
                continue
            if token.end_index > text_length:
                raise ValueError(
                    f"token {token.index} ends at {token.end_index} beyond text length {text_length}"
                )
            sliced = self.raw_text[token.start_index:token.end_index]
            if not loosely_equal(sliced, token.text):
                raise ValueError(
                    f"token {token.index} offsets slice {sliced!r}, expected {token.text!r}"
                )
        return self

    @property
    def token_count(self) -> int:
        return len(self.tokens)

    @property
    def mean_confidence(self) -> float:
        if not self.tokens:
            return 0.0
        return sum(token.confidence for token in self.tokens) / len(self.tokens)


class WordTiming(BaseModel):
    """Audio timeline interval [start_ms, end_ms) of one token"""
    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0, description="Token index")
    start_ms: int = Field(..., ge=0, description="Interval start")
    end_ms: int = Field(..., ge=0, description="Interval end (exclusive)")
    word: Optional[str] = Field(None, description="Word as spoken by the backend")

    @model_validator(mode="after")
    def _check_interval(self) -> "WordTiming":
        if self.end_ms < self.start_ms:
            raise ValueError(f"timing {self.index}: end_ms precedes start_ms")
        return self


class AccessibilityNode(BaseModel):
    """On-screen text node exposed by the host's accessibility layer"""
    model_config = ConfigDict(frozen=True)

    text: Optional[str] = Field(None, description="Visible text")
    content_description: Optional[str] = Field(None, description="Fallback description")
    bounds: BoundingBox = Field(default_factory=BoundingBox, description="Node bounds on screen")
    is_password: bool = Field(False, description="Password fields are never read")

    @property
    def readable_text(self) -> Optional[str]:
        for candidate in (self.text, self.content_description):
            if candidate and candidate.strip():
                return candidate.strip()
        return None


class DetectionContext(BaseModel):
    """What is available for one detection attempt"""
    model_config = ConfigDict(frozen=True)

    accessibility_available: bool = Field(False, description="Host exposes accessibility text")
    accessibility_nodes: Tuple[AccessibilityNode, ...] = Field(
        default=(), description="Snapshot of on-screen text nodes"
    )
    image: Optional[bytes] = Field(None, description="Encoded image for OCR")
    url: Optional[str] = Field(None, description="URL or URI for web extraction")
    frame: Optional[bytes] = Field(None, description="Latest screen capture frame")
    previous_texts: Tuple[str, ...] = Field(
        default=(), description="Raw texts emitted before, most recent last"
    )
