"""
Text pipeline service - detection, merging and playback highlighting behind
one facade
"""
import time
from typing import Optional, Sequence

from utp.core.exceptions import ConfigurationError, NoTextDetectedError
from utp.core.logging import get_logger
from utp.infrastructure.recognition.base import RecognitionBackend
from utp.infrastructure.speech.base import SpeechBackend
from utp.models.config import TextDetectionConfig
from utp.models.domain import DetectionContext, UniversalText
from utp.models.results import DetectionError, DetectionSuccess, TextDetectionResult
from utp.services.capture_loop import CaptureSource, ContinuousCaptureLoop
from utp.services.highlight import HighlightEngine
from utp.services.normalizer import TextNormalizer
from utp.services.orchestrator import DetectionOrchestrator

logger = get_logger(__name__)


class TextPipelineService:
    """
    Main service of the text pipeline
    Coordinates the whole flow: detection -> merge -> highlight
    """

    def __init__(
        self,
        orchestrator: DetectionOrchestrator,
        normalizer: TextNormalizer,
        recognition_backend: Optional[RecognitionBackend] = None,
        speech_backend: Optional[SpeechBackend] = None,
        default_config: Optional[TextDetectionConfig] = None,
    ):
        """
        Initialize the pipeline service

        Args:
            orchestrator: Source fan-out
            normalizer: Merger of the detected texts
            recognition_backend: Backend shared by the OCR detectors
            speech_backend: Backend providing word timings
            default_config: Config used when a call passes none
        """
        self.orchestrator = orchestrator
        self.normalizer = normalizer
        self.recognition_backend = recognition_backend
        self.speech_backend = speech_backend
        self.default_config = default_config or TextDetectionConfig()

        logger.info(
            "Text pipeline service initialized",
            sources=[source.value for source in orchestrator.sources],
            merge_strategy=self.default_config.merge_strategy.value,
        )

    async def process(
        self,
        context: DetectionContext,
        config: Optional[TextDetectionConfig] = None,
    ) -> TextDetectionResult:
        """
        Detect text from every applicable source and merge it

        Args:
            context: Inputs of this attempt
            config: Detection settings, default config if None

        Returns:
            DetectionSuccess with the canonical text, or DetectionError when
            no source produced text
        """
        start_time = time.time()
        config = config or self.default_config

        logger.info("Starting text detection")

        try:
            texts = await self.orchestrator.detect_all(context, config)
        except NoTextDetectedError as e:
            return DetectionError(e.message, cause=e)

        merged = self.normalizer.normalize(texts, config)
        processing_time_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "Text detection completed",
            source_type=merged.source_type.value,
            sources_count=len(texts),
            tokens_count=merged.token_count,
            processing_time_ms=processing_time_ms,
        )
        return DetectionSuccess(merged)

    async def process_auto(
        self,
        context: DetectionContext,
        config: Optional[TextDetectionConfig] = None,
    ) -> TextDetectionResult:
        """Sequential priority mode: the first source with text wins"""
        config = config or self.default_config

        result = await self.orchestrator.detect_auto(context, config)
        if isinstance(result, DetectionSuccess):
            return DetectionSuccess(self.normalizer.normalize([result.universal_text], config))
        return result

    def merge(
        self,
        results: Sequence[UniversalText],
        config: Optional[TextDetectionConfig] = None,
    ) -> UniversalText:
        """Merge already detected texts (MergeInputError on empty input)"""
        return self.normalizer.normalize(results, config or self.default_config)

    async def highlight(self, text: UniversalText) -> HighlightEngine:
        """
        Highlight engine for the speech of a text

        Raises:
            ConfigurationError: If no speech backend is configured
            SpeechError: If the backend failed
        """
        if self.speech_backend is None:
            raise ConfigurationError("speech backend is not configured")
        return await HighlightEngine.for_speech(text, self.speech_backend)

    def capture_loop(
        self,
        capture_source: CaptureSource,
        config: Optional[TextDetectionConfig] = None,
    ) -> ContinuousCaptureLoop:
        """New continuous capture loop sharing this service's orchestrator"""
        return ContinuousCaptureLoop(
            self.orchestrator,
            self.normalizer,
            capture_source,
            config or self.default_config,
        )

    def is_ready(self) -> bool:
        """
        Check that the service can take requests

        Returns:
            True if the recognition backend is ready (or none is needed)
        """
        if self.recognition_backend is None:
            return True
        return self.recognition_backend.is_available()

    async def close(self) -> None:
        await self.orchestrator.close()
        if self.recognition_backend is not None:
            await self.recognition_backend.close()
        if self.speech_backend is not None:
            await self.speech_backend.close()
