"""Storage module for file management.

Handles streamed uploads, result naming and writing, and best-effort cleanup
of transient inputs.
"""

from .service import StorageService, StoredUpload, build_output_filename, sanitize_filename_part
from .config import StorageConfig
from .exceptions import (
    StorageException,
    FileValidationError,
    FileTooLargeError,
    FileOperationError,
)

__all__ = [
    "StorageService",
    "StoredUpload",
    "build_output_filename",
    "sanitize_filename_part",
    "StorageConfig",
    "StorageException",
    "FileValidationError",
    "FileTooLargeError",
    "FileOperationError",
]
