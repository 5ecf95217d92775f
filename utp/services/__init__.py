from utp.services.capture_loop import CaptureSource, ContinuousCaptureLoop
from utp.services.detectors import (
    AccessibilityDetector,
    ContinuousOcrDetector,
    OcrDetector,
    SourceDetector,
    WebDetector,
)
from utp.services.highlight import HighlightEngine
from utp.services.normalizer import TextNormalizer
from utp.services.orchestrator import DetectionOrchestrator
from utp.services.pipeline import TextPipelineService

__all__ = [
    "AccessibilityDetector",
    "CaptureSource",
    "ContinuousCaptureLoop",
    "ContinuousOcrDetector",
    "DetectionOrchestrator",
    "HighlightEngine",
    "OcrDetector",
    "SourceDetector",
    "TextNormalizer",
    "TextPipelineService",
    "WebDetector",
]
