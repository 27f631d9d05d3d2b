"""
XLSX codec for tabular rows.

Decoding reads the first worksheet only: the first row is the header and
every later non-blank row becomes one mapping. Blank cells decode to "".
Encoding writes a single sheet with the union of row keys as the header.
"""

import json
import logging
from io import BytesIO
from typing import Any, Dict, List, Sequence
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.exceptions import InvalidFileException

from .base import FormatSerializer, OutputFormat, collect_columns
from .factory import SerializerFactory

logger = logging.getLogger(__name__)

DEFAULT_SHEET_NAME = "Results"


class SpreadsheetDecodeError(ValueError):
    """Raised when uploaded bytes are not a readable workbook."""


def _header_names(header_cells: Sequence[Any]) -> List[str]:
    names: List[str] = []
    counts: Dict[str, int] = {}
    for index, cell in enumerate(header_cells):
        name = str(cell).strip() if cell is not None and str(cell).strip() else f"Column{index + 1}"
        if name in counts:
            counts[name] += 1
            name = f"{name}_{counts[name]}"
        else:
            counts[name] = 0
        names.append(name)
    return names


def _used_width(raw: Sequence[Any]) -> int:
    for index in range(len(raw) - 1, -1, -1):
        if raw[index] is not None:
            return index + 1
    return 0


def decode_workbook(data: bytes) -> List[Dict[str, Any]]:
    """
    Decode the first sheet of a workbook into rows.

    Args:
        data: XLSX file bytes

    Returns:
        Rows in sheet order; keys follow header order

    Raises:
        SpreadsheetDecodeError: Bytes are not a valid workbook
    """
    try:
        workbook = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as e:
        raise SpreadsheetDecodeError(f"Could not read spreadsheet: {e}") from e

    try:
        if not workbook.worksheets:
            return []
        sheet = workbook.worksheets[0]
        values = sheet.iter_rows(values_only=True)

        header = next(values, None)
        if header is None:
            return []
        header_cells = list(header)
        columns = _header_names(header_cells)

        rows: List[Dict[str, Any]] = []
        for raw in values:
            width = _used_width(raw)
            if width > len(columns):
                # Data right of the last header cell gets a ColumnN name
                header_cells += [None] * (width - len(header_cells))
                columns = _header_names(header_cells)
                logger.warning(f"Row wider than header; added columns up to {columns[-1]}")
            cells = list(raw) + [None] * (len(columns) - len(raw))
            if all(cell is None or (isinstance(cell, str) and not cell.strip()) for cell in cells):
                continue
            rows.append({
                column: ("" if cell is None else cell)
                for column, cell in zip(columns, cells)
            })
    finally:
        workbook.close()

    logger.debug(f"Decoded {len(rows)} rows x {len(columns)} columns from '{sheet.title}'")
    return rows


def _to_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


def encode_workbook(rows: Sequence[Dict[str, Any]], sheet_name: str = DEFAULT_SHEET_NAME) -> bytes:
    """
    Encode rows into a single-sheet workbook.

    Args:
        rows: Rows to write; missing keys become blank cells
        sheet_name: Worksheet title

    Returns:
        XLSX file bytes
    """
    columns = collect_columns(rows)

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_name
    sheet.append(columns)
    for row in rows:
        sheet.append([_to_cell(row.get(column, "")) for column in columns])

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@SerializerFactory.register(OutputFormat.XLSX)
class XLSXSerializer(FormatSerializer):
    """Serializer that writes rows as a single-sheet workbook."""

    @property
    def format_type(self) -> OutputFormat:
        return OutputFormat.XLSX

    def encode(self, rows: Sequence[Dict[str, Any]]) -> bytes:
        return encode_workbook(rows, sheet_name=self.config.sheet_name)
