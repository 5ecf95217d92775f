"""
Detection orchestrator - fans out to every applicable source and collects
the successes
"""
import asyncio
import time
from typing import Dict, Iterable, List, Optional

from utp.core.enums import CANONICAL_SOURCE_ORDER, SourceType
from utp.core.exceptions import NoTextDetectedError
from utp.core.logging import get_logger
from utp.models.config import TextDetectionConfig
from utp.models.domain import DetectionContext, UniversalText
from utp.models.results import (
    EMPTY,
    DetectionError,
    DetectionSuccess,
    TextDetectionResult,
)
from utp.services.detectors import SourceDetector

logger = get_logger(__name__)

# sequential mode tries the cheap on-device sources before the network
AUTO_PRIORITY = (
    SourceType.ACCESSIBILITY,
    SourceType.OCR,
    SourceType.CONTINUOUS_OCR,
    SourceType.WEB,
)


class DetectionOrchestrator:
    """
    Runs source detectors concurrently with per-source isolation

    A failing, empty or timed out source never cancels its siblings; it is
    logged and left out of the result.
    """

    def __init__(self, detectors: Iterable[SourceDetector]):
        self._detectors: Dict[SourceType, SourceDetector] = {}
        for detector in detectors:
            self._detectors[detector.source_type] = detector

        logger.info(
            "Detection orchestrator initialized",
            sources=[source.value for source in self._detectors],
        )

    @property
    def sources(self) -> List[SourceType]:
        return [source for source in CANONICAL_SOURCE_ORDER if source in self._detectors]

    def detector(self, source: SourceType) -> Optional[SourceDetector]:
        return self._detectors.get(source)

    def _applicable(
        self, context: DetectionContext, config: TextDetectionConfig
    ) -> List[SourceDetector]:
        return [
            self._detectors[source]
            for source in self.sources
            if self._detectors[source].is_applicable(context, config)
        ]

    async def _run_one(
        self,
        detector: SourceDetector,
        context: DetectionContext,
        config: TextDetectionConfig,
    ) -> TextDetectionResult:
        try:
            return await asyncio.wait_for(
                detector.detect(context, config),
                timeout=config.source_timeout_ms / 1000,
            )
        except asyncio.TimeoutError as e:
            return DetectionError("timeout", cause=e)

    async def detect_all(
        self, context: DetectionContext, config: TextDetectionConfig
    ) -> List[UniversalText]:
        """
        Run every applicable source concurrently

        Args:
            context: Inputs available for this attempt
            config: Detection settings

        Returns:
            Successful texts in canonical source order

        Raises:
            NoTextDetectedError: If no source produced text
        """
        start_time = time.time()
        detectors = self._applicable(context, config)

        results = await asyncio.gather(
            *(self._run_one(detector, context, config) for detector in detectors)
        )

        texts: List[UniversalText] = []
        failures: Dict[str, str] = {}

        for detector, result in zip(detectors, results):
            source = detector.source_type.value
            if isinstance(result, DetectionSuccess):
                texts.append(result.universal_text)
            elif isinstance(result, DetectionError):
                logger.warning("Source failure", source=source, reason=result.message)
                failures[source] = result.message
            else:
                failures[source] = "empty"

        duration_ms = int((time.time() - start_time) * 1000)

        if not texts:
            logger.warning(
                "No text detected",
                sources=[detector.source_type.value for detector in detectors],
                duration_ms=duration_ms,
            )
            raise NoTextDetectedError("no text detected from any source", details=failures)

        logger.info(
            "Detection completed",
            successes=len(texts),
            failures=len(failures),
            duration_ms=duration_ms,
        )
        return texts

    async def detect_auto(
        self, context: DetectionContext, config: TextDetectionConfig
    ) -> TextDetectionResult:
        """
        Sequential priority mode

        Tries applicable sources one after another and stops at the first
        success. Failures are logged and skipped.

        Returns:
            First DetectionSuccess, or DetectionEmpty if no source had text
        """
        for source in AUTO_PRIORITY:
            detector = self._detectors.get(source)
            if detector is None or not detector.is_applicable(context, config):
                continue

            result = await self._run_one(detector, context, config)
            if isinstance(result, DetectionSuccess):
                return result
            if isinstance(result, DetectionError):
                logger.warning("Source failure", source=source.value, reason=result.message)

        return EMPTY

    async def close(self) -> None:
        for detector in self._detectors.values():
            await detector.close()
