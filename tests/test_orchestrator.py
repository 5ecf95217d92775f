"""Unit tests for utp.services.orchestrator."""

import asyncio

import pytest

from utp.core.enums import SourceType
from utp.core.exceptions import NoTextDetectedError, RecognitionError
from utp.models.config import TextDetectionConfig
from utp.models.domain import DetectionContext
from utp.models.results import EMPTY, DetectionEmpty, DetectionSuccess
from utp.services.detectors import SourceDetector
from utp.services.orchestrator import DetectionOrchestrator

from conftest import make_text


class StubDetector(SourceDetector):
    """Detector with scripted behaviour."""

    def __init__(self, source_type, text=None, delay=0.0, error=None, applicable=True):
        self.source_type = source_type
        self.text = text
        self.delay = delay
        self.error = error
        self.applicable = applicable
        self.calls = 0

    def is_applicable(self, context, config):
        return self.applicable

    async def _extract(self, context, config):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.text is None:
            return EMPTY
        return DetectionSuccess(self.text)


@pytest.fixture
def config():
    return TextDetectionConfig(source_timeout_ms=100)


class TestDetectAll:
    """Tests for DetectionOrchestrator.detect_all."""

    @pytest.mark.asyncio
    async def test_survivor_of_timeout_and_error(self, config):
        """One source times out, one errors, the third is returned."""
        orchestrator = DetectionOrchestrator([
            StubDetector(SourceType.ACCESSIBILITY, text=make_text(["on", "screen"], SourceType.ACCESSIBILITY)),
            StubDetector(SourceType.OCR, text=make_text(["slow"]), delay=5.0),
            StubDetector(SourceType.WEB, error=RuntimeError("fetch failed")),
        ])

        texts = await orchestrator.detect_all(DetectionContext(), config)

        assert [t.raw_text for t in texts] == ["on screen"]

    @pytest.mark.asyncio
    async def test_all_failing_raises_no_text(self, config):
        orchestrator = DetectionOrchestrator([
            StubDetector(SourceType.ACCESSIBILITY),
            StubDetector(SourceType.OCR, text=make_text(["slow"]), delay=5.0),
            StubDetector(SourceType.WEB, error=RecognitionError("boom")),
        ])

        with pytest.raises(NoTextDetectedError) as exc_info:
            await orchestrator.detect_all(DetectionContext(), config)

        assert exc_info.value.message == "no text detected from any source"
        assert exc_info.value.details == {
            "accessibility": "empty",
            "ocr": "timeout",
            "web": "web detection failed: boom",
        }

    @pytest.mark.asyncio
    async def test_results_in_canonical_order(self, config):
        """Completion order does not change the result order."""
        orchestrator = DetectionOrchestrator([
            StubDetector(SourceType.WEB, text=make_text(["web"], SourceType.WEB)),
            StubDetector(SourceType.ACCESSIBILITY, text=make_text(["acc"], SourceType.ACCESSIBILITY), delay=0.02),
            StubDetector(SourceType.OCR, text=make_text(["ocr"])),
        ])

        texts = await orchestrator.detect_all(DetectionContext(), config)

        assert [t.raw_text for t in texts] == ["acc", "ocr", "web"]

    @pytest.mark.asyncio
    async def test_sources_run_concurrently(self):
        config = TextDetectionConfig(source_timeout_ms=1000)
        orchestrator = DetectionOrchestrator([
            StubDetector(SourceType.ACCESSIBILITY, text=make_text(["a"], SourceType.ACCESSIBILITY), delay=0.05),
            StubDetector(SourceType.OCR, text=make_text(["b"]), delay=0.05),
        ])

        # sequential execution would need 100ms
        texts = await asyncio.wait_for(orchestrator.detect_all(DetectionContext(), config), timeout=0.09)

        assert len(texts) == 2

    @pytest.mark.asyncio
    async def test_inapplicable_sources_are_skipped(self, config):
        skipped = StubDetector(SourceType.WEB, text=make_text(["web"], SourceType.WEB), applicable=False)
        orchestrator = DetectionOrchestrator([
            StubDetector(SourceType.OCR, text=make_text(["ocr"])),
            skipped,
        ])

        texts = await orchestrator.detect_all(DetectionContext(), config)

        assert [t.raw_text for t in texts] == ["ocr"]
        assert skipped.calls == 0

    @pytest.mark.asyncio
    async def test_no_applicable_source(self, config):
        orchestrator = DetectionOrchestrator([StubDetector(SourceType.OCR, applicable=False)])

        with pytest.raises(NoTextDetectedError):
            await orchestrator.detect_all(DetectionContext(), config)


class TestDetectAuto:
    """Tests for the sequential priority mode."""

    @pytest.mark.asyncio
    async def test_first_success_wins(self, config):
        web = StubDetector(SourceType.WEB, text=make_text(["web"], SourceType.WEB))
        orchestrator = DetectionOrchestrator([
            web,
            StubDetector(SourceType.ACCESSIBILITY),
            StubDetector(SourceType.OCR, text=make_text(["ocr"])),
        ])

        result = await orchestrator.detect_auto(DetectionContext(), config)

        assert isinstance(result, DetectionSuccess)
        assert result.universal_text.raw_text == "ocr"
        assert web.calls == 0

    @pytest.mark.asyncio
    async def test_failures_are_skipped(self, config):
        orchestrator = DetectionOrchestrator([
            StubDetector(SourceType.ACCESSIBILITY, error=RuntimeError("boom")),
            StubDetector(SourceType.WEB, text=make_text(["web"], SourceType.WEB)),
        ])

        result = await orchestrator.detect_auto(DetectionContext(), config)

        assert result.universal_text.raw_text == "web"

    @pytest.mark.asyncio
    async def test_nothing_found_is_empty(self, config):
        orchestrator = DetectionOrchestrator([StubDetector(SourceType.OCR)])

        result = await orchestrator.detect_auto(DetectionContext(), config)

        assert isinstance(result, DetectionEmpty)
