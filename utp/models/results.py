"""
Detection result variants

Every detector returns exactly one of DetectionSuccess, DetectionError or
DetectionEmpty; callers dispatch on the concrete type.
"""
from dataclasses import dataclass
from typing import Optional, Union

from utp.models.domain import UniversalText


@dataclass(frozen=True)
class DetectionSuccess:
    """Text was extracted"""
    universal_text: UniversalText


@dataclass(frozen=True)
class DetectionError:
    """Source failed; cause keeps the original exception when there is one"""
    message: str
    cause: Optional[BaseException] = None


@dataclass(frozen=True)
class DetectionEmpty:
    """Source worked but exposed no text"""


TextDetectionResult = Union[DetectionSuccess, DetectionError, DetectionEmpty]

EMPTY = DetectionEmpty()
