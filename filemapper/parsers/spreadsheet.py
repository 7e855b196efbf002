"""Spreadsheet parser: first worksheet of an .xlsx workbook -> records.

WHY: Spreadsheet sources are tabular: row 1 names the columns and every
later row is one record. Header cells left blank still need an address,
so they are synthesized from the 1-based column index (``Column3``).

HOW: openpyxl loads the workbook with cached formula results
(``data_only=True``). The used range is measured once; every cell is
rendered as text with ``_cell_text()``.

RULES:
- Only the first worksheet is read
- Headers span column 1 to the last used column; blank header -> ``Column<N>``
- A repeated header keeps its first column
- Rows 2 to the last used row, one record per row (blank rows included)
- Empty cell -> absent value
- Booleans -> "TRUE"/"FALSE"; integral numbers without ".0";
  dates and times as ISO-8601 (date only at midnight)
"""

from __future__ import annotations

import datetime as dt
import logging
import zipfile
from pathlib import Path
from typing import Any, List, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from filemapper.core.errors import ParseError
from filemapper.core.models import FileType, FixedWidthColumn
from filemapper.core.records import Record
from filemapper.parsers.base import BaseParser, PathLike

logger = logging.getLogger(__name__)

HEADER_TEMPLATE = "Column{}"


class SpreadsheetParser(BaseParser):
    """Parser for .xlsx workbooks."""

    file_type = FileType.XLSX

    def parse_fields(
        self,
        path: PathLike,
        fixed_width_columns: Optional[Sequence[FixedWidthColumn]] = None,
    ) -> List[str]:
        return _distinct(_headers(self._load_rows(path)))

    def read_records(
        self,
        path: PathLike,
        fixed_width_columns: Optional[Sequence[FixedWidthColumn]] = None,
    ) -> List[Record]:
        rows = self._load_rows(path)
        headers = _headers(rows)

        records: List[Record] = []
        for row in rows[1:]:
            record: Record = {}
            for index, header in enumerate(headers):
                if header in record:
                    continue
                value = row[index] if index < len(row) else None
                record[header] = _cell_text(value)
            records.append(record)
        return records

    def _load_rows(self, path: PathLike) -> List[tuple]:
        try:
            workbook = load_workbook(Path(path), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as exc:
            raise ParseError("invalid workbook: {}".format(exc), Path(path)) from exc

        try:
            sheet = workbook.worksheets[0]
            rows = [tuple(row) for row in sheet.iter_rows(values_only=True)]
        finally:
            workbook.close()

        # read_only sheets may report trailing empty rows; trim to the last used one
        while rows and all(_is_empty(value) for value in rows[-1]):
            rows.pop()
        logger.debug("Read %d rows from %s", len(rows), path)
        return rows


def _headers(rows: List[tuple]) -> List[str]:
    first = rows[0] if rows else ()
    headers = []
    for index in range(_column_count(rows)):
        value = _cell_text(first[index]) if index < len(first) else None
        headers.append(value if value else HEADER_TEMPLATE.format(index + 1))
    return headers


def _distinct(names: List[str]) -> List[str]:
    return list(dict.fromkeys(names))


def _column_count(rows: List[tuple]) -> int:
    count = 0
    for row in rows:
        for index, value in enumerate(row, start=1):
            if not _is_empty(value) and index > count:
                count = index
    return count


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _cell_text(value: Any) -> Optional[str]:
    if _is_empty(value):
        return None
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, dt.datetime):
        if value.time() == dt.time(0, 0):
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, (dt.date, dt.time)):
        return value.isoformat()
    return str(value)
