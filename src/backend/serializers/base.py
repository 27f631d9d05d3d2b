"""
Base classes and types for result serializers.

A serializer turns merged rows into the bytes of one downloadable file.

Design Pattern: Strategy Pattern
    - FormatSerializer is the abstract strategy interface
    - Concrete serializers implement format-specific encoding
    - SerializerFactory creates the appropriate strategy based on format
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence


class OutputFormat(str, Enum):
    """Supported download formats for processed rows."""

    XLSX = "xlsx"
    JSON = "json"

    @property
    def file_extension(self) -> str:
        """Get the file extension for this format."""
        return f".{self.value}"


@dataclass
class SerializerConfig:
    """Configuration for result serializers."""

    sheet_name: str = "Results"
    json_indent: Optional[int] = 2


@dataclass
class SerializedOutput:
    """Encoded file content plus the name it should be stored under."""

    filename: str
    content: bytes
    format: OutputFormat
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def size_bytes(self) -> int:
        return len(self.content)


def collect_columns(rows: Sequence[Dict[str, Any]]) -> List[str]:
    """Union of row keys in first-seen order."""
    columns: List[str] = []
    seen = set()
    for row in rows:
        for key in row:
            if key not in seen:
                seen.add(key)
                columns.append(key)
    return columns


class FormatSerializer(ABC):
    """
    Abstract base class for all result serializers.

    Subclasses implement format-specific encoding.
    """

    def __init__(self, config: SerializerConfig):
        """
        Initialize serializer with configuration.

        Args:
            config: Serializer configuration
        """
        self.config = config

    @property
    @abstractmethod
    def format_type(self) -> OutputFormat:
        """Get the output format type this serializer produces."""
        pass

    @abstractmethod
    def encode(self, rows: Sequence[Dict[str, Any]]) -> bytes:
        """
        Encode rows to file bytes.

        Args:
            rows: Merged rows, in output order

        Returns:
            File content
        """
        pass

    def serialize(self, rows: Sequence[Dict[str, Any]], source_filename: str) -> SerializedOutput:
        """
        Encode rows and derive the output filename from the uploaded one.

        Args:
            rows: Merged rows
            source_filename: Original upload name; its suffix is replaced

        Returns:
            SerializedOutput ready to be stored
        """
        return SerializedOutput(
            filename=self._generate_filename(source_filename),
            content=self.encode(rows),
            format=self.format_type,
            metadata={"row_count": len(rows), "columns": collect_columns(rows)},
        )

    def _generate_filename(self, source_filename: str) -> str:
        """Keep the uploaded name, switching the extension to this format's."""
        stem = Path(source_filename).stem or "result"
        return f"{stem}{self.format_type.file_extension}"
