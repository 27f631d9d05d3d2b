"""
Result serializers for processed rows.

Usage:
    from backend.serializers import SerializerFactory, OutputFormat

    serializer = SerializerFactory.create(OutputFormat.XLSX)
    output = serializer.serialize(rows, "report.xlsx")
"""

from .base import (
    OutputFormat,
    SerializerConfig,
    SerializedOutput,
    FormatSerializer,
    collect_columns,
)
from .factory import SerializerFactory

# Import serializers to trigger registration via decorators
from . import json_serializer  # noqa: F401
from . import xlsx_serializer  # noqa: F401
from .xlsx_serializer import SpreadsheetDecodeError, decode_workbook, encode_workbook

__all__ = [
    "OutputFormat",
    "SerializerConfig",
    "SerializedOutput",
    "FormatSerializer",
    "SerializerFactory",
    "SpreadsheetDecodeError",
    "collect_columns",
    "decode_workbook",
    "encode_workbook",
]
