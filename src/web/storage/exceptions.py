"""Storage-specific exceptions."""

from typing import Optional


class StorageException(Exception):
    """Base exception for storage operations."""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class FileValidationError(StorageException):
    """Raised when an upload has a missing name or unsupported extension."""
    status_code = 400


class FileTooLargeError(FileValidationError):
    """Raised when an upload exceeds the configured byte cap."""
    status_code = 413


class FileOperationError(StorageException):
    """Raised when a read or write on disk fails."""
    pass
