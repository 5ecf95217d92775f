"""
Enums for type safety
"""
from enum import Enum


class SourceType(str, Enum):
    """Origin of a piece of text"""
    ACCESSIBILITY = "accessibility"
    OCR = "ocr"
    WEB = "web"
    HYBRID = "hybrid"  # merge output of two or more sources
    CONTINUOUS_OCR = "continuous_ocr"


# Order in which sources are invoked and concatenated
CANONICAL_SOURCE_ORDER = (
    SourceType.ACCESSIBILITY,
    SourceType.OCR,
    SourceType.WEB,
    SourceType.CONTINUOUS_OCR,
)


class MergeStrategy(str, Enum):
    """How results of several sources are combined"""
    ACCESSIBILITY_FIRST = "accessibility_first"
    OCR_FIRST = "ocr_first"
    SMART = "smart"  # confidence weighted
    PARALLEL = "parallel"  # keep everything


class TokenizeMode(str, Enum):
    """Token granularity"""
    CHARACTER = "character"
    WORD = "word"
    SENTENCE = "sentence"
    PARAGRAPH = "paragraph"


class CaptureState(str, Enum):
    """Continuous capture loop states"""
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class RecognitionBackendKind(str, Enum):
    """Recognition backends available to the OCR detectors"""
    HTTP = "http"
    PADDLEOCR = "paddleocr"


class ImageFormat(str, Enum):
    """Image formats"""
    JPG = "jpg"
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
