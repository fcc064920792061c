"""
Sheet Reader - Load the first worksheet of an uploaded file as a raw grid.

The grid is a list of rows, each row a list of untyped cell values with
empty cells rendered as ''. No header inference happens here.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import Any, List, Optional

import openpyxl
import xlrd

logger = logging.getLogger(__name__)

Grid = List[List[Any]]


class WorkbookReadError(Exception):
    """Raised when an uploaded file cannot be opened as a workbook."""


def detect_engine(filename: Optional[str]) -> str:
    """Pick the reader engine from the file extension."""
    ext = Path(filename or '').suffix.lower()
    if ext == '.xls':
        return 'xlrd'
    return 'openpyxl'


def _read_openpyxl(content: bytes) -> Grid:
    wb = openpyxl.load_workbook(BytesIO(content), data_only=True, read_only=True)
    try:
        sheet = wb.worksheets[0]
        logger.info(f"Reading sheet: {sheet.title}")
        grid = []
        for row in sheet.iter_rows(values_only=True):
            grid.append(['' if value is None else value for value in row])
        return grid
    finally:
        wb.close()


def _read_xlrd(content: bytes) -> Grid:
    book = xlrd.open_workbook(file_contents=content)
    sheet = book.sheet_by_index(0)
    logger.info(f"Reading sheet: {sheet.name}")
    # xlrd keeps dates as float serials, which the date parser handles
    return [sheet.row_values(row_idx) for row_idx in range(sheet.nrows)]


def read_grid(content: bytes, filename: Optional[str] = None) -> Grid:
    """
    Read the first worksheet of a workbook into a 2-D grid.

    Args:
        content: Raw bytes of the uploaded file
        filename: Original filename, used to choose the engine

    Returns:
        List of rows (lists of cell values)

    Raises:
        WorkbookReadError: If the file is not a readable workbook
    """
    engine = detect_engine(filename)
    logger.info(f"Opening workbook {filename or '<upload>'} with {engine}")

    try:
        if engine == 'xlrd':
            grid = _read_xlrd(content)
        else:
            grid = _read_openpyxl(content)
    except Exception as e:
        logger.error(f"Could not read workbook {filename}: {e}")
        raise WorkbookReadError(f"Fichier illisible: {e}") from e

    logger.info(f"Read {len(grid)} rows")
    return grid
