"""data models"""

from .domain import (
    AccessibilityNode,
    BoundingBox,
    DetectionContext,
    Quad,
    TextMetadata,
    Token,
    UniversalText,
    WordTiming,
)
from .results import DetectionEmpty, DetectionError, DetectionSuccess, TextDetectionResult

__all__ = [
    "AccessibilityNode",
    "BoundingBox",
    "DetectionContext",
    "DetectionEmpty",
    "DetectionError",
    "DetectionSuccess",
    "Quad",
    "TextDetectionResult",
    "TextMetadata",
    "Token",
    "UniversalText",
    "WordTiming",
]
