"""Typed errors raised by the processing pipeline.

Every error carries the HTTP status the web layer should answer with and a
message that is safe to show to the caller. Diagnostic payloads (raw model
text, offending JSON) go in ``details`` and are only ever logged.
"""

from typing import Any, Dict, Optional


class ProcessingError(Exception):
    """Base exception for all pipeline errors."""

    status_code = 500
    public_message: Optional[str] = None

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        """Message surfaced in the JSON error body."""
        return self.public_message or self.message


class InputMissingError(ProcessingError):
    """Raised when the caller supplied no text or file to process."""
    status_code = 400


class InvalidOptionError(ProcessingError):
    """Raised when a request option (e.g. output format) has an unknown value."""
    status_code = 400


class InferenceError(ProcessingError):
    """Base class for failures talking to the inference backend."""
    status_code = 502


class ConnectionFailedError(InferenceError):
    """Raised when the backend cannot be reached (refused, DNS, reset)."""
    status_code = 503


class InferenceTimeoutError(InferenceError):
    """Raised when the backend does not answer within the configured bound."""
    status_code = 504


class BackendError(InferenceError):
    """Raised when the backend answers with an explicit error field."""
    pass


class MalformedReplyError(InferenceError):
    """Raised when the backend body is not valid JSON."""
    pass


class EmptyReplyError(InferenceError):
    """Raised when the backend reply carries no usable text."""
    pass


class ExtractionError(ProcessingError):
    """Base class for failures recovering structured data from a reply."""
    status_code = 502
    public_message = "The model reply did not contain a usable JSON array."


class NoJsonArrayFoundError(ExtractionError):
    """Raised when the reply has no '[' ... ']' span."""
    pass


class InvalidJsonError(ExtractionError):
    """Raised when the bracketed span does not parse as JSON."""
    pass
