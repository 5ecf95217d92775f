"""
Normalizer / merger - reconciles the texts of several sources into one
canonical UniversalText
"""
import math
import re
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from utp.core.enums import CANONICAL_SOURCE_ORDER, MergeStrategy, SourceType, TokenizeMode
from utp.core.exceptions import MergeInputError
from utp.core.logging import get_logger
from utp.models.config import NormalizationOptions, TextDetectionConfig
from utp.models.domain import BoundingBox, TextMetadata, Token, UniversalText
from utp.utils.text_utils import normalize_segment, normalize_text

logger = get_logger(__name__)

PARAGRAPH_BREAK = "\n\n"

# words dropped by the noise filter, matched against whole tokens
NOISE_WORDS = frozenset({
    "advertisement",
    "advertisements",
    "sponsored",
    "ad",
    "ads",
    "menu",
    "navigation",
    "cookie",
    "cookies",
    "subscribe",
    "newsletter",
})

_PREFERRED_SOURCE = {
    MergeStrategy.ACCESSIBILITY_FIRST: SourceType.ACCESSIBILITY,
    MergeStrategy.OCR_FIRST: SourceType.OCR,
}

_SENTENCE_SEPARATOR = re.compile(r"(?<=[.!?])\s+|\n{2,}")
_PARAGRAPH_SEPARATOR = re.compile(r"\n\s*\n")
_EDGE_PUNCTUATION = "\"'`.,;:!?()[]{}<>«»“”‘’"


def _canonical_rank(source: SourceType) -> int:
    try:
        return CANONICAL_SOURCE_ORDER.index(source)
    except ValueError:
        return len(CANONICAL_SOURCE_ORDER)


def smart_score(text: UniversalText) -> float:
    """mean(token confidence) * log(1 + token count), 0 for token-less texts"""
    if not text.tokens:
        return 0.0
    return text.mean_confidence * math.log1p(text.token_count)


def _union(boxes: Iterable[BoundingBox]) -> BoundingBox:
    boxes = [box for box in boxes if not box.is_empty()]
    if not boxes:
        return BoundingBox()
    return BoundingBox(
        left=min(box.left for box in boxes),
        top=min(box.top for box in boxes),
        right=max(box.right for box in boxes),
        bottom=max(box.bottom for box in boxes),
    )


def _stripped_span(text: str, start: int, end: int) -> Optional[Tuple[int, int]]:
    piece = text[start:end]
    stripped = piece.strip()
    if not stripped:
        return None
    start += len(piece) - len(piece.lstrip())
    return start, start + len(stripped)


def _split_spans(text: str, separator: re.Pattern) -> Iterator[Tuple[int, int]]:
    """(start, end) of every non-blank piece between separator matches"""
    cursor = 0
    for match in separator.finditer(text):
        span = _stripped_span(text, cursor, match.start())
        if span:
            yield span
        cursor = match.end()
    span = _stripped_span(text, cursor, len(text))
    if span:
        yield span


def _positions_for(tokens: Sequence[Token], keep: bool) -> Tuple[BoundingBox, ...]:
    return tuple(token.bounding_box for token in tokens) if keep else ()


class TextNormalizer:
    """
    Pure, synchronous merger

    One input is normalized and passed through with its own source tag;
    two or more are combined by the configured MergeStrategy and tagged
    HYBRID. Optional clean-up steps run afterwards.
    """

    def normalize(
        self, results: Sequence[UniversalText], config: TextDetectionConfig
    ) -> UniversalText:
        """
        Reconcile detection results into one canonical text

        Args:
            results: Successful texts, in canonical source order
            config: Detection settings (merge strategy and clean-up options)

        Returns:
            Canonical UniversalText

        Raises:
            MergeInputError: If results is empty
        """
        if not results:
            raise MergeInputError("normalize requires at least one text")

        if len(results) == 1:
            merged = self.normalize_single(results[0])
        else:
            merged = self.merge(results, config.merge_strategy)

        if not config.normalization.is_noop:
            merged = self.post_process(merged, config.normalization)

        logger.debug(
            "Texts normalized",
            inputs=len(results),
            strategy=config.merge_strategy.value,
            source_type=merged.source_type.value,
            tokens_count=merged.token_count,
        )
        return merged

    def merge(self, results: Sequence[UniversalText], strategy: MergeStrategy) -> UniversalText:
        """Combine two or more texts, dispatching on the strategy"""
        if not results:
            raise MergeInputError("merge requires at least one text")

        if strategy == MergeStrategy.PARALLEL:
            return self._merge_parallel(results)

        chosen = None
        preferred = _PREFERRED_SOURCE.get(strategy)
        if preferred is not None:
            chosen = next((text for text in results if text.source_type == preferred), None)
            if chosen is None:
                logger.debug("Preferred source missing, falling back to smart", strategy=strategy.value)

        if chosen is None:
            chosen = self._pick_smart(results)

        return self.normalize_single(chosen, SourceType.HYBRID)

    @staticmethod
    def _pick_smart(results: Sequence[UniversalText]) -> UniversalText:
        best = results[0]
        best_score = smart_score(best)
        for text in results[1:]:
            score = smart_score(text)
            # strictly greater keeps the earliest on ties
            if score > best_score:
                best, best_score = text, score
        return best

    def normalize_single(
        self, text: UniversalText, source_type: Optional[SourceType] = None
    ) -> UniversalText:
        """
        Normalized copy of one text

        Unicode NFC and whitespace collapse are applied to token spans and to
        the gaps between them separately, so every token keeps an offset into
        the new raw text. Tokens without offsets, or overlapping an earlier
        token, end up with -1.
        """
        raw = text.raw_text
        parts: List[str] = []
        cursor = 0
        length = 0
        last_end = 0
        new_tokens: List[Token] = []

        for token in text.tokens:
            usable = token.has_offsets and token.start_index >= last_end
            segment = normalize_text(raw[token.start_index:token.end_index]) if usable else ""
            if not segment:
                new_tokens.append(self._retext(token, -1, -1))
                continue

            gap = normalize_segment(raw[cursor:token.start_index])
            if not parts:
                gap = gap.lstrip()
            parts.append(gap)
            length += len(gap)

            parts.append(segment)
            new_tokens.append(self._retext(token, length, length + len(segment)))
            length += len(segment)
            cursor = last_end = token.end_index

        if parts:
            parts.append(normalize_segment(raw[cursor:]).rstrip())
            new_raw = "".join(parts)
        else:
            new_raw = normalize_text(raw)

        return UniversalText(
            raw_text=new_raw,
            tokens=tuple(new_tokens),
            positions=text.positions,
            source_type=source_type or text.source_type,
            timestamp=text.timestamp,
            metadata=text.metadata,
        )

    @staticmethod
    def _retext(token: Token, start: int, end: int) -> Token:
        return token.model_copy(
            update={
                "text": normalize_text(token.text) or token.text,
                "start_index": start,
                "end_index": end,
            }
        )

    def _merge_parallel(self, results: Sequence[UniversalText]) -> UniversalText:
        ordered = sorted(results, key=lambda text: _canonical_rank(text.source_type))
        keep_positions = any(text.positions for text in results)

        parts: List[str] = []
        tokens: List[Token] = []
        base = 0

        for source in ordered:
            normalized = self.normalize_single(source)
            if parts and normalized.raw_text:
                parts.append(PARAGRAPH_BREAK)
                base += len(PARAGRAPH_BREAK)
            for token in normalized.tokens:
                update = {"index": len(tokens)}
                if token.has_offsets:
                    update["start_index"] = token.start_index + base
                    update["end_index"] = token.end_index + base
                tokens.append(token.model_copy(update=update))
            if normalized.raw_text:
                parts.append(normalized.raw_text)
                base += len(normalized.raw_text)

        return UniversalText(
            raw_text="".join(parts),
            tokens=tuple(tokens),
            positions=_positions_for(tokens, keep_positions),
            source_type=SourceType.HYBRID,
            timestamp=max(text.timestamp for text in results),
            metadata=self._merge_metadata(ordered),
        )

    @staticmethod
    def _merge_metadata(texts: Sequence[UniversalText]) -> TextMetadata:
        def first(field: str):
            return next(
                (getattr(t.metadata, field) for t in texts if getattr(t.metadata, field) is not None),
                None,
            )

        total_tokens = sum(text.token_count for text in texts)
        if total_tokens:
            confidence = sum(t.metadata.confidence * t.token_count for t in texts) / total_tokens
        else:
            confidence = sum(t.metadata.confidence for t in texts) / len(texts)

        return TextMetadata(
            title=first("title"),
            url=first("url"),
            author=first("author"),
            language=texts[0].metadata.language,
            confidence=min(1.0, max(0.0, confidence)),
            page_number=first("page_number"),
            total_pages=first("total_pages"),
            extraction_duration_ms=max(t.metadata.extraction_duration_ms for t in texts),
        )

    # clean-up steps

    def post_process(self, text: UniversalText, options: NormalizationOptions) -> UniversalText:
        """Apply the enabled clean-up steps in a fixed order"""
        tokens: List[Token] = list(text.tokens)

        if options.min_confidence > 0.0:
            tokens = [token for token in tokens if token.confidence >= options.min_confidence]

        if options.remove_duplicates:
            seen = set()
            unique = []
            for token in tokens:
                key = (token.text, token.bounding_box.center)
                if key not in seen:
                    seen.add(key)
                    unique.append(token)
            tokens = unique

        if options.filter_noise:
            tokens = [token for token in tokens if not self.is_noise(token.text)]

        if options.order_by_reading:
            tokens.sort(key=lambda token: (token.bounding_box.top, token.bounding_box.left))

        if tokens != list(text.tokens):
            text = self._rebuild(text, tokens)

        if options.tokenize_by != TokenizeMode.WORD:
            text = self.tokenize(text, options.tokenize_by)

        return text

    @staticmethod
    def is_noise(word: str) -> bool:
        return word.strip(_EDGE_PUNCTUATION).casefold() in NOISE_WORDS

    @staticmethod
    def _rebuild(text: UniversalText, tokens: Sequence[Token]) -> UniversalText:
        """raw text rebuilt from tokens joined by single spaces"""
        parts: List[str] = []
        rebuilt: List[Token] = []
        cursor = 0
        for token in tokens:
            if parts:
                parts.append(" ")
                cursor += 1
            parts.append(token.text)
            rebuilt.append(
                token.model_copy(
                    update={
                        "index": len(rebuilt),
                        "start_index": cursor,
                        "end_index": cursor + len(token.text),
                    }
                )
            )
            cursor += len(token.text)

        return text.model_copy(
            update={
                "raw_text": "".join(parts),
                "tokens": tuple(rebuilt),
                "positions": _positions_for(rebuilt, bool(text.positions)),
            }
        )

    def tokenize(self, text: UniversalText, mode: TokenizeMode) -> UniversalText:
        """
        Re-tokenize a text at another granularity

        Character, sentence and paragraph tokens inherit the rectangle union
        and mean confidence of the word tokens they overlap.
        """
        if mode == TokenizeMode.WORD:
            return text

        raw = text.raw_text
        if mode == TokenizeMode.CHARACTER:
            spans: Iterable[Tuple[int, int]] = (
                (i, i + 1) for i, char in enumerate(raw) if not char.isspace()
            )
        elif mode == TokenizeMode.SENTENCE:
            spans = _split_spans(raw, _SENTENCE_SEPARATOR)
        else:
            spans = _split_spans(raw, _PARAGRAPH_SEPARATOR)

        owners: List[Optional[Token]] = [None] * len(raw)
        for word in text.tokens:
            if word.has_offsets:
                owners[word.start_index:word.end_index] = [word] * (word.end_index - word.start_index)

        tokens: List[Token] = []
        for start, end in spans:
            overlapping = list(
                {w.index: w for w in owners[start:end] if w is not None}.values()
            )
            confidence = (
                sum(w.confidence for w in overlapping) / len(overlapping) if overlapping else 1.0
            )
            tokens.append(
                Token(
                    text=raw[start:end],
                    bounding_box=_union(w.bounding_box for w in overlapping),
                    confidence=confidence,
                    index=len(tokens),
                    source_type=overlapping[0].source_type if overlapping else text.source_type,
                    start_index=start,
                    end_index=end,
                )
            )

        return text.model_copy(
            update={
                "tokens": tuple(tokens),
                "positions": _positions_for(tokens, bool(text.positions)),
            }
        )

