"""
FastAPI dependencies and service wiring
"""
from fastapi import Request

from utp.config import Settings
from utp.core.enums import RecognitionBackendKind
from utp.core.exceptions import ConfigurationError
from utp.core.logging import get_logger
from utp.infrastructure.recognition.base import RecognitionBackend
from utp.infrastructure.recognition.http_backend import HttpRecognitionBackend
from utp.infrastructure.speech.http_backend import HttpSpeechBackend
from utp.infrastructure.storage.content_store import ContentStore
from utp.models.config import TextDetectionConfig
from utp.services.detectors import (
    AccessibilityDetector,
    ContinuousOcrDetector,
    OcrDetector,
    WebDetector,
)
from utp.services.normalizer import TextNormalizer
from utp.services.orchestrator import DetectionOrchestrator
from utp.services.pipeline import TextPipelineService

logger = get_logger(__name__)


def build_recognition_backend(settings: Settings) -> RecognitionBackend:
    """
    Create the configured recognition backend

    Raises:
        ConfigurationError: Unknown backend or PaddleOCR failed to initialize
    """
    try:
        kind = RecognitionBackendKind(settings.RECOGNITION_BACKEND.lower())
    except ValueError:
        raise ConfigurationError(
            f"Unknown recognition backend: {settings.RECOGNITION_BACKEND}",
            details={"supported": [kind.value for kind in RecognitionBackendKind]}
        )

    if kind == RecognitionBackendKind.PADDLEOCR:
        # paddleocr is an optional extra, only imported when selected
        from utp.infrastructure.recognition.paddleocr_backend import PaddleRecognitionBackend

        backend = PaddleRecognitionBackend(
            use_angle_cls=settings.PADDLEOCR_USE_ANGLE_CLS,
            lang=settings.PADDLEOCR_LANG,
            use_gpu=settings.PADDLEOCR_USE_GPU,
            workers=settings.PADDLEOCR_WORKERS,
        )
        backend.initialize()
        return backend

    return HttpRecognitionBackend(settings.RECOGNITION_URL, timeout=settings.RECOGNITION_TIMEOUT)


def build_pipeline(settings: Settings) -> TextPipelineService:
    """Wire detectors, backends and the normalizer into a pipeline service"""
    recognition = build_recognition_backend(settings)
    formats = settings.allowed_image_formats_list

    orchestrator = DetectionOrchestrator([
        AccessibilityDetector(max_tokens=settings.MAX_ACCESSIBILITY_TOKENS),
        OcrDetector(recognition, settings.MAX_IMAGE_SIZE_MB, formats),
        WebDetector(
            timeout=settings.WEB_FETCH_TIMEOUT,
            allow_local_files=settings.ALLOW_LOCAL_FILES,
            local_root=settings.LOCAL_FILES_ROOT or None,
        ),
        ContinuousOcrDetector(recognition, settings.MAX_IMAGE_SIZE_MB, formats),
    ])

    return TextPipelineService(
        orchestrator=orchestrator,
        normalizer=TextNormalizer(),
        recognition_backend=recognition,
        speech_backend=HttpSpeechBackend(settings.SPEECH_URL, timeout=settings.SPEECH_TIMEOUT),
        default_config=TextDetectionConfig.from_settings(settings),
    )


def get_pipeline(request: Request) -> TextPipelineService:
    """Pipeline service created in the application lifespan"""
    return request.app.state.pipeline


def get_content_store(request: Request) -> ContentStore:
    """Content store created in the application lifespan"""
    return request.app.state.content_store
