"""
Unit tests for utp.services.capture_loop.

The orchestrator is mocked; the normalizer is the real one.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from utp.core.enums import CaptureState, SourceType
from utp.core.exceptions import NoTextDetectedError
from utp.models.config import TextDetectionConfig
from utp.services.capture_loop import CaptureSource, ContinuousCaptureLoop
from utp.services.normalizer import TextNormalizer

from conftest import make_text


class FakeCaptureSource(CaptureSource):
    """Capture source returning a fixed frame."""

    def __init__(self, frame=b"frame"):
        self.frame = frame
        self.captures = 0
        self.released = False

    async def capture_once(self):
        self.captures += 1
        return self.frame

    def release(self):
        self.released = True


def scripted(*raw_texts):
    """detect_all returning the given texts in turn, repeating the last one."""
    remaining = list(raw_texts)

    async def detect_all(context, config):
        raw = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        return [make_text(raw.split(), SourceType.CONTINUOUS_OCR)]

    return detect_all


async def wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def config():
    return TextDetectionConfig(continuous_ocr_interval_ms=10)


def make_loop(detect_all, config, source=None):
    orchestrator = MagicMock()
    orchestrator.detect_all = AsyncMock(side_effect=detect_all)
    return ContinuousCaptureLoop(orchestrator, TextNormalizer(), source or FakeCaptureSource(), config)


class TestContinuousCaptureLoop:
    """Tests for ContinuousCaptureLoop."""

    @pytest.mark.asyncio
    async def test_emits_only_changed_text(self, config):
        """Identical successive texts are suppressed."""
        loop = make_loop(scripted("first text", "first text", "second text here"), config)
        emitted = []
        loop.subscribe(lambda text: emitted.append(text.raw_text))

        loop.start()
        await wait_until(lambda: loop.orchestrator.detect_all.await_count >= 5)
        await loop.stop()

        assert emitted == ["first text", "second text here"]
        assert loop.emitted_count == 2
        assert loop.last_emitted.raw_text == "second text here"

    @pytest.mark.asyncio
    async def test_small_change_is_suppressed(self, config):
        previous = "a" * 50 + " end"
        current = "a" * 50 + " enb"
        loop = make_loop(scripted(previous, current), config)
        emitted = []
        loop.subscribe(emitted.append)

        loop.start()
        await wait_until(lambda: loop.orchestrator.detect_all.await_count >= 3)
        await loop.stop()

        assert [t.raw_text for t in emitted] == [previous]

    @pytest.mark.asyncio
    async def test_cycles_run_only_continuous_recognition(self, config):
        loop = make_loop(scripted("text"), config)

        loop.start()
        await wait_until(lambda: loop.orchestrator.detect_all.await_count >= 1)
        await loop.stop()

        context, cycle_config = loop.orchestrator.detect_all.await_args.args
        assert context.frame == b"frame"
        assert cycle_config.enable_continuous_ocr
        assert not cycle_config.enable_ocr

    @pytest.mark.asyncio
    async def test_stop_releases_source(self, config):
        source = FakeCaptureSource()
        loop = make_loop(scripted("text"), config, source)

        assert loop.state == CaptureState.IDLE
        loop.start()
        assert loop.state == CaptureState.RUNNING
        await loop.stop()

        assert loop.state == CaptureState.STOPPED
        assert source.released

        # idempotent
        await loop.stop()
        assert loop.state == CaptureState.STOPPED

    @pytest.mark.asyncio
    async def test_stop_before_start(self, config):
        source = FakeCaptureSource()
        loop = make_loop(scripted("text"), config, source)

        await loop.stop()

        assert loop.state == CaptureState.STOPPED
        assert source.released

    @pytest.mark.asyncio
    async def test_restart_after_stop(self, config):
        loop = make_loop(scripted("text"), config)
        loop.start()
        await wait_until(lambda: loop.emitted_count == 1)
        await loop.stop()

        loop.start()
        assert loop.state == CaptureState.RUNNING
        await wait_until(lambda: loop.emitted_count == 1)
        await loop.stop()

    @pytest.mark.asyncio
    async def test_in_flight_result_is_discarded(self, config):
        started = asyncio.Event()

        async def slow_detect(context, config):
            started.set()
            await asyncio.sleep(0.05)
            return [make_text(["late"], SourceType.CONTINUOUS_OCR)]

        loop = make_loop(slow_detect, config)
        emitted = []
        loop.subscribe(emitted.append)

        loop.start()
        await started.wait()
        await loop.stop()

        assert emitted == []
        assert loop.emitted_count == 0

    @pytest.mark.asyncio
    async def test_no_text_cycles_are_retried(self, config):
        calls = []

        async def detect_all(context, config):
            calls.append(context)
            if len(calls) < 3:
                raise NoTextDetectedError("no text detected from any source")
            return [make_text(["finally"], SourceType.CONTINUOUS_OCR)]

        loop = make_loop(detect_all, config)
        loop.start()
        await wait_until(lambda: loop.emitted_count == 1)
        await loop.stop()

        assert loop.last_emitted.raw_text == "finally"

    @pytest.mark.asyncio
    async def test_failing_cycle_does_not_stop_loop(self, config):
        calls = []

        async def detect_all(context, config):
            calls.append(context)
            if len(calls) == 1:
                raise RuntimeError("backend exploded")
            return [make_text(["recovered"], SourceType.CONTINUOUS_OCR)]

        loop = make_loop(detect_all, config)
        loop.start()
        await wait_until(lambda: loop.emitted_count == 1)
        await loop.stop()

        assert loop.last_emitted.raw_text == "recovered"

    @pytest.mark.asyncio
    async def test_missing_frame_skips_cycle(self, config):
        source = FakeCaptureSource(frame=None)
        loop = make_loop(scripted("text"), config, source)

        loop.start()
        await wait_until(lambda: source.captures >= 3)
        await loop.stop()

        loop.orchestrator.detect_all.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_subscribers(self, config):
        """Async subscribers are awaited, failing ones do not block others."""
        loop = make_loop(scripted("text"), config)
        received = []

        async def async_subscriber(text):
            received.append(("async", text.raw_text))

        def broken_subscriber(text):
            raise ValueError("subscriber bug")

        removed = []
        loop.subscribe(broken_subscriber)
        loop.subscribe(async_subscriber)
        unsubscribe = loop.subscribe(removed.append)
        unsubscribe()

        loop.start()
        await wait_until(lambda: loop.emitted_count == 1)
        await loop.stop()

        assert received == [("async", "text")]
        assert removed == []

    @pytest.mark.asyncio
    async def test_history_is_passed_to_detection(self, config):
        loop = make_loop(scripted("one", "two", "two"), config)

        loop.start()
        await wait_until(lambda: loop.emitted_count == 2)
        await wait_until(lambda: loop.orchestrator.detect_all.await_count >= 3)
        await loop.stop()

        context = loop.orchestrator.detect_all.await_args.args[0]
        assert context.previous_texts == ("one", "two")

    @pytest.mark.asyncio
    async def test_restart_from_subscriber_keeps_one_driver(self, config):
        """A subscriber restarting the loop leaves a single capture task."""
        drivers = []

        async def detect_all(context, config):
            drivers.append(asyncio.current_task())
            return [make_text([f"text{len(drivers)}"], SourceType.CONTINUOUS_OCR)]

        loop = make_loop(detect_all, config)
        restarts = []

        async def restart_once(text):
            if not restarts:
                restarts.append(text.raw_text)
                await loop.stop()
                loop.start()

        loop.subscribe(restart_once)

        loop.start()
        await wait_until(lambda: len(drivers) >= 5)
        first, *later = drivers

        assert restarts == ["text1"]
        assert first.done()
        assert set(later) == {later[0]}
        assert later[0] is not first

        await loop.stop()
        assert all(task.done() for task in drivers)
        assert loop.state == CaptureState.STOPPED
