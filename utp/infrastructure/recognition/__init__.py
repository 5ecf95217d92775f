"""recognition backends"""

from .base import RecognitionBackend, RecognitionResult, RecognizedWord
from .http_backend import HttpRecognitionBackend

__all__ = [
    "HttpRecognitionBackend",
    "RecognitionBackend",
    "RecognitionResult",
    "RecognizedWord",
]
