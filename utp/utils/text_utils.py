"""
Text helpers: normalization, similarity and markup stripping
"""
import math
import re
import unicodedata
from html.parser import HTMLParser
from typing import Iterator, List, Optional, Tuple

_WHITESPACE_RUN = re.compile(r"\s+")
_WORD = re.compile(r"\S+")
_PUNCTUATION_ONLY = re.compile(r"^[^\w\s]+$")


def _collapse_run(match: re.Match) -> str:
    newlines = match.group(0).count("\n")
    if newlines >= 2:
        return "\n\n"
    if newlines == 1:
        return "\n"
    return " "


def collapse_whitespace(text: str) -> str:
    """
    Collapse whitespace runs without stripping

    A run with two or more line breaks becomes a paragraph break, a run with
    one line break becomes a newline, anything else a single space.
    """
    return _WHITESPACE_RUN.sub(_collapse_run, text)


def normalize_segment(text: str) -> str:
    """Unicode NFC plus whitespace collapse"""
    return collapse_whitespace(unicodedata.normalize("NFC", text))


def normalize_text(text: str) -> str:
    """Fully normalized, stripped form of a text"""
    return normalize_segment(text).strip()


def loosely_equal(a: str, b: str) -> bool:
    """Equality ignoring case, Unicode composition and whitespace layout"""
    if a == b:
        return True

    def fold(value: str) -> str:
        return " ".join(unicodedata.normalize("NFC", value).split()).casefold()

    return fold(a) == fold(b)


def word_spans(text: str) -> Iterator[Tuple[str, int, int]]:
    """Yield (word, start, end) for every whitespace separated word"""
    for match in _WORD.finditer(text):
        yield match.group(0), match.start(), match.end()


def is_punctuation_only(word: str) -> bool:
    return bool(_PUNCTUATION_ONLY.match(word))


def _strip_common_affixes(a: str, b: str) -> Tuple[str, str]:
    prefix = 0
    limit = min(len(a), len(b))
    while prefix < limit and a[prefix] == b[prefix]:
        prefix += 1
    a, b = a[prefix:], b[prefix:]

    suffix = 0
    limit = min(len(a), len(b))
    while suffix < limit and a[-1 - suffix] == b[-1 - suffix]:
        suffix += 1
    if suffix:
        a, b = a[:-suffix], b[:-suffix]
    return a, b


def levenshtein_distance(a: str, b: str, max_distance: Optional[int] = None) -> int:
    """
    Edit distance between two strings

    Common prefix and suffix are skipped. With max_distance only the
    diagonal band of width 2 * max_distance + 1 is computed and the search
    stops as soon as the bound is exceeded.

    Args:
        a: First text
        b: Second text
        max_distance: Upper bound of interest, None for the exact distance

    Returns:
        The distance, or max_distance + 1 if it is larger than max_distance
    """
    if a == b:
        return 0
    a, b = _strip_common_affixes(a, b)
    if len(a) < len(b):
        a, b = b, a
    if max_distance is None:
        max_distance = len(a)
    over = max_distance + 1

    if len(a) - len(b) > max_distance:
        return over
    if not b:
        return len(a)

    width = len(b)
    previous = [min(j, over) for j in range(width + 1)]
    for i, char_a in enumerate(a, start=1):
        current = [over] * (width + 1)
        if i <= max_distance:
            current[0] = i
        low = max(1, i - max_distance)
        high = min(width, i + max_distance)
        for j in range(low, high + 1):
            cost = 0 if char_a == b[j - 1] else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
                over,
            )
        if min(current[low - 1:high + 1]) >= over:
            return over
        previous = current
    return previous[width]


def similarity_ratio(a: str, b: str) -> float:
    """
    Normalized edit-distance similarity in [0, 1]

    Args:
        a: First text
        b: Second text

    Returns:
        1.0 for identical texts, 0.0 for completely different ones
    """
    if a == b:
        return 1.0
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def is_materially_changed(previous: Optional[str], current: str, threshold: float) -> bool:
    """
    Decide whether current differs enough from previous to be emitted

    The edit distance is only computed up to the bound the threshold
    allows, so the cost grows with the size of the change rather than with
    the square of the text length.

    Args:
        previous: Last emitted text (None if nothing was emitted yet)
        current: Newly detected text
        threshold: Similarity below which the change counts as material

    Returns:
        True if the new text should be emitted
    """
    if previous is None:
        return True
    if previous == current:
        return False

    longest = max(len(previous), len(current))
    bound = math.floor((1.0 - threshold) * longest) + 1
    distance = levenshtein_distance(previous, current, max_distance=bound)
    return 1.0 - distance / longest < threshold


class MarkupStripper(HTMLParser):
    """Collects visible text of an HTML document"""

    SKIPPED_TAGS = {"script", "style", "noscript", "nav", "header", "footer", "template"}
    BLOCK_TAGS = {
        "p", "br", "div", "li", "ul", "ol", "tr", "table", "section", "article",
        "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre",
    }

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts: List[str] = []
        self.title_parts: List[str] = []
        self._skip_depth = 0
        self._in_title = False

    def handle_starttag(self, tag, attrs):
        if tag in self.SKIPPED_TAGS:
            self._skip_depth += 1
        elif tag == "title":
            self._in_title = True
        elif tag in self.BLOCK_TAGS:
            self.parts.append("\n")

    def handle_endtag(self, tag):
        if tag in self.SKIPPED_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag == "title":
            self._in_title = False
        elif tag in self.BLOCK_TAGS:
            self.parts.append("\n")

    def handle_data(self, data):
        if self._in_title:
            self.title_parts.append(data)
        elif not self._skip_depth:
            self.parts.append(data)

    @property
    def text(self) -> str:
        return "".join(self.parts)

    @property
    def title(self) -> Optional[str]:
        title = " ".join("".join(self.title_parts).split())
        return title or None


def strip_markup(document: str) -> Tuple[str, Optional[str]]:
    """
    Strip HTML markup from a document

    Args:
        document: HTML (or plain text) document

    Returns:
        Tuple (normalized visible text, page title or None)
    """
    stripper = MarkupStripper()
    stripper.feed(document)
    stripper.close()
    return normalize_text(stripper.text), stripper.title
