"""
Highlight engine - maps a playback clock onto the active token
"""
from bisect import bisect_right
from itertools import accumulate
from typing import Iterable, List, Optional

from utp.core.exceptions import HighlightInactiveError
from utp.core.logging import get_logger
from utp.infrastructure.speech.base import SpeechBackend
from utp.models.domain import Token, UniversalText, WordTiming

logger = get_logger(__name__)


class HighlightEngine:
    """
    Word-level highlight cursor synchronized to speech playback

    Timings are stable-sorted by start. A position maps to the earliest
    interval that started at or before it and has not ended yet, found by
    binary search over the starts and over the running maximum of the ends.
    The engine holds no background task: the caller feeds the playback
    position through tick() or seek() and reads the cursor back.
    """

    def __init__(self, text: UniversalText, timings: Iterable[WordTiming]):
        self._text: Optional[UniversalText] = text
        self._timings: List[WordTiming] = sorted(timings, key=lambda timing: timing.start_ms)
        self._starts = [timing.start_ms for timing in self._timings]
        self._max_ends = list(accumulate((timing.end_ms for timing in self._timings), max))

        self._position_ms: Optional[int] = None
        self._current: Optional[int] = None
        self._paused = False
        self._active = True

    @classmethod
    async def for_speech(cls, text: UniversalText, speech: SpeechBackend) -> "HighlightEngine":
        """
        Build an engine from the speech backend's word timings

        Raises:
            SpeechError: If the backend failed
        """
        timings = await speech.word_timings(text.raw_text)
        logger.debug(
            "Highlight engine created",
            timings_count=len(timings),
            tokens_count=text.token_count,
        )
        return cls(text, timings)

    def _ensure_active(self) -> None:
        if not self._active:
            raise HighlightInactiveError("highlight engine is not active")

    def _lookup(self, position_ms: int) -> Optional[int]:
        candidates = bisect_right(self._starts, position_ms)
        if candidates == 0:
            return None
        # running max of ends is sorted, the first one past the position is the earliest match
        first = bisect_right(self._max_ends, position_ms, 0, candidates)
        if first == candidates:
            return None
        return self._timings[first].index

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def position_ms(self) -> Optional[int]:
        self._ensure_active()
        return self._position_ms

    @property
    def current_index(self) -> Optional[int]:
        self._ensure_active()
        return self._current

    @property
    def current_token(self) -> Optional[Token]:
        self._ensure_active()
        if self._current is None:
            return None
        return self.token_at_index(self._current)

    def token_at_index(self, index: int) -> Optional[Token]:
        self._ensure_active()
        tokens = self._text.tokens
        if 0 <= index < len(tokens):
            return tokens[index]
        return None

    def active_token_at(self, position_ms: int) -> Optional[int]:
        """
        Token index active at a playback position

        Returns:
            Token index, or None before the first interval, after the last
            one, or in a gap between intervals

        Raises:
            HighlightInactiveError: After cancel()
        """
        self._ensure_active()
        return self._lookup(position_ms)

    def tick(self, position_ms: int) -> Optional[int]:
        """Playback clock update; ignored while paused"""
        self._ensure_active()
        if not self._paused:
            self._position_ms = position_ms
            self._current = self._lookup(position_ms)
        return self._current

    def seek(self, position_ms: int) -> Optional[int]:
        """
        Jump to a position

        While paused only the stored position moves; the cursor follows on
        resume().
        """
        self._ensure_active()
        self._position_ms = position_ms
        if not self._paused:
            self._current = self._lookup(position_ms)
        return self._current

    def pause(self) -> None:
        self._ensure_active()
        self._paused = True

    def resume(self) -> Optional[int]:
        self._ensure_active()
        self._paused = False
        if self._position_ms is not None:
            self._current = self._lookup(self._position_ms)
        return self._current

    def cancel(self) -> None:
        """Release the timing table; every later query raises HighlightInactiveError"""
        if not self._active:
            return
        self._active = False
        self._timings = []
        self._starts = []
        self._max_ends = []
        self._text = None
        self._current = None
