"""Core storage service for file operations."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Optional
from uuid import uuid4

import aiofiles
import aiofiles.os

from .config import StorageConfig
from .exceptions import (
    FileOperationError,
    FileTooLargeError,
    FileValidationError,
)

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

# Separators and characters unsafe in a download name
_UNSAFE_CHARS = ' ()[]{},;:/\\|<>?*"\'\t\n\r'


def sanitize_filename_part(text: str) -> str:
    """Sanitize a single part of a filename (model id or original name)."""
    if not text:
        return ""

    text = "".join("_" if c in _UNSAFE_CHARS else c for c in text)

    # Final safety check - only allow alphanumeric, underscore, hyphen, dot
    text = "".join(c if c.isalnum() or c in "-_." else "_" for c in text)

    while "__" in text:
        text = text.replace("__", "_")

    return text.strip("_")


def build_output_filename(
    model: str,
    original_filename: str,
    now: Optional[datetime] = None
) -> str:
    """
    Derive the download name: ``<model>-<YYYYMMDD-HHMMSS>-<original>``.

    Colons are removed from the model id before sanitizing, so ``qwen2.5:3b``
    becomes ``qwen2.53b``.

    Args:
        model: Model identifier used for the request
        original_filename: Name of the uploaded file
        now: Timestamp to embed; defaults to the current local time
    """
    model_part = sanitize_filename_part(model.replace(":", "")) or "model"
    original = Path(original_filename or "").name
    original_part = sanitize_filename_part(original) or "result"
    timestamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return f"{model_part}-{timestamp}-{original_part}"


def _with_counter(filename: str, counter: int) -> str:
    if counter == 0:
        return filename
    path = Path(filename)
    return f"{path.stem}-{counter}{path.suffix}"


@dataclass
class StoredUpload:
    """A transient upload written to the uploads directory."""

    path: Path
    original_filename: str
    size: int

    @property
    def extension(self) -> str:
        return Path(self.original_filename).suffix.lower()


class StorageService:
    """Service for file storage operations."""

    def __init__(self, config: StorageConfig):
        self.config = config

    def validate_filename(self, filename: Optional[str]) -> str:
        """
        Check an upload name against the allowed extensions.

        Returns:
            The lower-cased extension

        Raises:
            FileValidationError: Missing name or unsupported extension
        """
        if not filename:
            raise FileValidationError("No file name provided")

        extension = Path(filename).suffix.lower()
        if extension not in self.config.allowed_extensions:
            raise FileValidationError(
                f"Unsupported file type '{extension or filename}'",
                {"filename": filename, "allowed": sorted(self.config.allowed_extensions)},
            )
        return extension

    def is_spreadsheet(self, filename: str) -> bool:
        return Path(filename).suffix.lower() in self.config.spreadsheet_extensions

    async def save_upload(
        self,
        file_content: AsyncIterator[bytes],
        filename: str,
    ) -> StoredUpload:
        """
        Stream save uploaded file to storage.

        Args:
            file_content: Async iterator of file chunks
            filename: Original filename

        Returns:
            StoredUpload describing the written file

        Raises:
            FileValidationError: Invalid file name
            FileTooLargeError: Upload exceeds the byte cap
            FileOperationError: Save failed
        """
        self.validate_filename(filename)

        # Generate unique path
        file_id = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid4().hex[:8]}"
        file_path = self.config.upload_dir / f"{file_id}_{sanitize_filename_part(Path(filename).name)}"
        self.config.upload_dir.mkdir(parents=True, exist_ok=True)

        total_size = 0
        try:
            async with aiofiles.open(file_path, "wb") as upload_file:
                async for chunk in file_content:
                    total_size += len(chunk)
                    if total_size > self.config.max_file_size:
                        raise FileTooLargeError(
                            "File exceeds maximum size",
                            {"size": total_size, "max_size": self.config.max_file_size},
                        )
                    await upload_file.write(chunk)
        except FileTooLargeError:
            await self.delete_file(file_path)
            raise
        except OSError as e:
            await self.delete_file(file_path)
            raise FileOperationError(f"Failed to save file: {e}", {"path": str(file_path)}) from e

        logger.info(f"File saved: {file_path} ({total_size} bytes)")
        return StoredUpload(path=file_path, original_filename=filename, size=total_size)

    async def read_bytes(self, file_path: Path) -> bytes:
        try:
            async with aiofiles.open(file_path, "rb") as f:
                return await f.read()
        except OSError as e:
            raise FileOperationError(f"Failed to read file: {e}", {"path": str(file_path)}) from e

    async def read_text(self, file_path: Path) -> str:
        """Read an upload as UTF-8 text (a leading BOM is dropped)."""
        data = await self.read_bytes(file_path)
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise FileValidationError(
                "Text file is not valid UTF-8", {"path": str(file_path)}
            ) from e

    async def store_output(
        self,
        content: bytes,
        model: str,
        original_filename: str,
        now: Optional[datetime] = None
    ) -> Path:
        """
        Write a result file under the download directory.

        The target is opened in exclusive-create mode; when the name is
        already taken a ``-1``, ``-2``... counter goes before the extension.

        Returns:
            Path of the written file

        Raises:
            FileOperationError: The write failed
        """
        base_name = build_output_filename(model, original_filename, now=now)
        self.config.download_dir.mkdir(parents=True, exist_ok=True)

        counter = 0
        while True:
            target = self.config.download_dir / _with_counter(base_name, counter)
            try:
                async with aiofiles.open(target, "xb") as f:
                    await f.write(content)
                break
            except FileExistsError:
                counter += 1
            except OSError as e:
                await self.delete_file(target)
                raise FileOperationError(
                    f"Failed to write output file: {e}", {"path": str(target)}
                ) from e

        logger.info(f"Output written: {target} ({len(content)} bytes)")
        return target

    async def delete_file(self, file_path: Path) -> bool:
        """
        Delete a transient file, best effort.

        Returns:
            True if deleted, False if missing or the removal failed
        """
        try:
            await aiofiles.os.remove(str(file_path))
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Failed to delete {file_path}: {e}")
            return False

        logger.debug(f"File deleted: {file_path}")
        return True
