"""
Exception hierarchy of the text pipeline
"""


class UTPException(Exception):
    """Base exception of the text pipeline"""
    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ImageValidationError(UTPException):
    """Image could not be decoded or is not acceptable"""
    pass


class RecognitionError(UTPException):
    """Recognition backend failed to process an image"""
    pass


class SpeechError(UTPException):
    """Speech backend failed to synthesize or time a text"""
    pass


class SourceFailureError(UTPException):
    """A single source detector failed or timed out"""
    pass


class NoTextDetectedError(UTPException):
    """None of the enabled sources produced any text"""
    pass


class MergeInputError(UTPException):
    """Merge was invoked without inputs"""
    pass


class HighlightInactiveError(UTPException):
    """Highlight engine was queried after cancel()"""
    pass


class ConfigurationError(UTPException):
    """Invalid configuration or backend initialization failure"""
    pass
