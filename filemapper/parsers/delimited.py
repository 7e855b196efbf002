"""Delimited text (CSV) parser.

RULES:
- The first non-blank row is the header and defines the field paths
- Every later non-blank row is one record
- A row shorter than the header leaves the missing fields absent (None)
- Extra cells beyond the header are ignored
- A repeated header name keeps its first column
- Unbalanced quoting raises ParseError
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import List, Optional, Sequence

from filemapper import config
from filemapper.core.errors import ParseError
from filemapper.core.models import FileType, FixedWidthColumn
from filemapper.core.records import Record
from filemapper.parsers.base import BaseParser, PathLike


class DelimitedParser(BaseParser):
    """Parser for delimiter-separated text with a header row."""

    file_type = FileType.CSV

    def __init__(self, delimiter: Optional[str] = None) -> None:
        self.delimiter = delimiter or config.CSV_DELIMITER

    def parse_fields(
        self,
        path: PathLike,
        fixed_width_columns: Optional[Sequence[FixedWidthColumn]] = None,
    ) -> List[str]:
        rows = self._read_rows(path)
        if not rows:
            return []
        return list(dict.fromkeys(rows[0]))

    def read_records(
        self,
        path: PathLike,
        fixed_width_columns: Optional[Sequence[FixedWidthColumn]] = None,
    ) -> List[Record]:
        rows = self._read_rows(path)
        if not rows:
            return []

        headers = rows[0]
        records: List[Record] = []
        for row in rows[1:]:
            record: Record = {}
            for i, header in enumerate(headers):
                if header in record:
                    continue
                record[header] = row[i] if i < len(row) else None
            records.append(record)
        return records

    def _read_rows(self, path: PathLike) -> List[List[str]]:
        text = self._read_text(path)
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=self.delimiter, strict=True)
        try:
            return [row for row in reader if row]
        except csv.Error as exc:
            raise ParseError("line {}: {}".format(reader.line_num, exc), Path(path)) from exc
