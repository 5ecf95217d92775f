"""
Continuous capture loop - periodic screen recognition with change detection
"""
import asyncio
import inspect
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Awaitable, Callable, Deque, List, Optional, Set, Union

from utp.core.enums import CaptureState
from utp.core.exceptions import NoTextDetectedError
from utp.core.logging import get_logger
from utp.models.config import TextDetectionConfig
from utp.models.domain import DetectionContext, UniversalText
from utp.services.normalizer import TextNormalizer
from utp.services.orchestrator import DetectionOrchestrator
from utp.utils.text_utils import is_materially_changed

logger = get_logger(__name__)

Subscriber = Callable[[UniversalText], Union[None, Awaitable[Any]]]

HISTORY_SIZE = 10


class CaptureSource(ABC):
    """Produces screen frames on demand"""

    @abstractmethod
    async def capture_once(self) -> Optional[bytes]:
        """Latest encoded frame, or None if no frame is available yet"""

    def release(self) -> None:
        """Release the underlying capture resource"""
        pass


class ContinuousCaptureLoop:
    """
    Drives the orchestrator on a fixed cadence and emits changed text

    States IDLE -> RUNNING -> STOPPED. Only one cycle is ever in flight; a
    cycle still running when stop() is called may finish but its result is
    dropped. Cycle failures are logged and retried on the next tick.
    """

    def __init__(
        self,
        orchestrator: DetectionOrchestrator,
        normalizer: TextNormalizer,
        capture_source: CaptureSource,
        config: Optional[TextDetectionConfig] = None,
    ):
        self.orchestrator = orchestrator
        self.normalizer = normalizer
        self.capture_source = capture_source
        self.config = config or TextDetectionConfig()

        self._state = CaptureState.IDLE
        self._task: Optional[asyncio.Task] = None
        self._drivers: Set[asyncio.Task] = set()
        self._wake: Optional[asyncio.Event] = None
        self._subscribers: List[Subscriber] = []
        self._history: Deque[str] = deque(maxlen=HISTORY_SIZE)
        self._last_emitted: Optional[UniversalText] = None
        self._emitted_count = 0

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def last_emitted(self) -> Optional[UniversalText]:
        return self._last_emitted

    @property
    def emitted_count(self) -> int:
        return self._emitted_count

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a sync or async callback for emitted texts

        Returns:
            Function removing the callback again
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def start(self) -> None:
        """Start capturing; must be called from a running event loop"""
        if self._state == CaptureState.RUNNING:
            return

        self._last_emitted = None
        self._emitted_count = 0
        self._history.clear()
        self._wake = asyncio.Event()
        self._state = CaptureState.RUNNING
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._drivers.add(self._task)
        self._task.add_done_callback(self._drivers.discard)

        logger.info(
            "Continuous capture started",
            interval_ms=self.config.continuous_ocr_interval_ms,
            similarity_threshold=self.config.similarity_threshold,
        )

    async def stop(self) -> None:
        """Stop capturing and release the capture source; safe in any state"""
        if self._state == CaptureState.STOPPED:
            return

        self._state = CaptureState.STOPPED
        if self._wake is not None:
            self._wake.set()

        self._task = None
        # a subscriber may call stop() from inside a driver task, which then
        # retires on its own once the callback returns
        current = asyncio.current_task()
        pending = [task for task in self._drivers if task is not current]
        if pending:
            await asyncio.gather(*pending)

        try:
            self.capture_source.release()
        except Exception as e:
            logger.warning("Capture source release failed", error=str(e))

        logger.info("Continuous capture stopped", emitted_count=self._emitted_count)

    def _is_driver(self) -> bool:
        """True while running and called from the task started by the last start()"""
        return self._state == CaptureState.RUNNING and self._task is asyncio.current_task()

    async def _run(self) -> None:
        interval = self.config.continuous_ocr_interval_ms / 1000

        while self._is_driver():
            try:
                await self._cycle()
            except Exception as e:
                logger.warning(
                    "Capture cycle failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

            if not self._is_driver():
                break

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    async def _cycle(self) -> None:
        frame = await self.capture_source.capture_once()
        if frame is None:
            return

        config = TextDetectionConfig.continuous(self.config)
        context = DetectionContext(frame=frame, previous_texts=tuple(self._history))

        try:
            texts = await self.orchestrator.detect_all(context, config)
        except NoTextDetectedError:
            logger.debug("No text on captured frame")
            return

        text = self.normalizer.normalize(texts, config)

        previous = self._last_emitted.raw_text if self._last_emitted else None
        changed = await asyncio.to_thread(
            is_materially_changed, previous, text.raw_text, self.config.similarity_threshold
        )

        if not self._is_driver():
            logger.debug("Discarding result of cycle finished after stop")
            return
        if not changed:
            return

        self._last_emitted = text
        self._emitted_count += 1
        self._history.append(text.raw_text)
        await self._emit(text)

    async def _emit(self, text: UniversalText) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(text)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning("Capture subscriber failed", error=str(e))
