"""
JSON serializer for processed rows.

Outputs the merged rows as a pretty-printed JSON array.
"""

import json
from typing import Any, Dict, Sequence

from .base import FormatSerializer, OutputFormat
from .factory import SerializerFactory


@SerializerFactory.register(OutputFormat.JSON)
class JSONSerializer(FormatSerializer):
    """Serializer that outputs rows as a JSON array."""

    @property
    def format_type(self) -> OutputFormat:
        return OutputFormat.JSON

    def encode(self, rows: Sequence[Dict[str, Any]]) -> bytes:
        content = json.dumps(list(rows), indent=self.config.json_indent, ensure_ascii=False, default=str)
        return content.encode("utf-8")
