"""Storage configuration and constants."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet

from backend.config.settings import Settings

# File validation
SPREADSHEET_EXTENSIONS: FrozenSet[str] = frozenset({".xlsx", ".xlsm"})
TEXT_EXTENSIONS: FrozenSet[str] = frozenset({".txt", ".md", ".json", ".csv", ".log"})


@dataclass(frozen=True)
class StorageConfig:
    """Storage configuration container."""

    upload_dir: Path
    download_dir: Path
    max_file_size: int = 10 * 1024 * 1024
    chunk_size: int = 8192
    spreadsheet_extensions: FrozenSet[str] = field(default=SPREADSHEET_EXTENSIONS)
    text_extensions: FrozenSet[str] = field(default=TEXT_EXTENSIONS)

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageConfig":
        return cls(
            upload_dir=settings.upload_dir,
            download_dir=settings.download_dir,
            max_file_size=settings.max_upload_size,
            chunk_size=settings.chunk_size,
        )

    @property
    def allowed_extensions(self) -> FrozenSet[str]:
        return self.spreadsheet_extensions | self.text_extensions

    def validate(self) -> None:
        """Validate configuration settings."""
        if self.max_file_size <= 0:
            raise ValueError("MAX_FILE_SIZE must be positive")
        if self.chunk_size <= 0:
            raise ValueError("CHUNK_SIZE must be positive")

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        for directory in [self.upload_dir, self.download_dir]:
            directory.mkdir(parents=True, exist_ok=True)

    def init(self) -> None:
        """Initialize storage configuration."""
        self.validate()
        self.ensure_directories()
