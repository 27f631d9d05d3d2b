"""Pytest configuration shared by the backend and web suites."""

import sys
from io import BytesIO
from pathlib import Path

import pytest
from openpyxl import Workbook

# src first so "backend.*" and "web.*" import without installing the project.
# This needs to happen at import time, before test modules are collected.
src_dir = Path(__file__).parent.parent / "src"
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))


@pytest.fixture
def make_workbook():
    """Build single-sheet .xlsx bytes from a header row followed by data rows."""
    def _make(rows):
        workbook = Workbook()
        sheet = workbook.active
        for row in rows:
            sheet.append(row)
        buffer = BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()
    return _make
