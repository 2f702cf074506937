"""Domain errors raised by the parser engine."""

from typing import Optional


class RetrievalError(RuntimeError):
    """Raised when every relay failed to return usable markup for a URL."""

    def __init__(self, url: str, message: str, attempts: int = 0):
        super().__init__(message)
        self.url = url
        self.attempts = attempts


class ExtractionFailure(RuntimeError):
    """Raised inside extractors when a payload cannot be decoded.

    Never leaves the extraction layer: callers degrade to default field values.
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class ValidationError(ValueError):
    """Raised when required search input is missing or invalid."""

    pass


class UsageDeniedError(RuntimeError):
    """Raised when the usage gate refuses an export."""

    pass
