"""Delimited text (CSV) writer: header row plus one row per record."""

from __future__ import annotations

import csv
import io
from typing import Optional, Sequence

from filemapper import config
from filemapper.core.models import FileType, MappingDefinition
from filemapper.core.records import Record
from filemapper.writers.base import BaseWriter, WriterOutput, resolve_columns


class DelimitedWriter(BaseWriter):
    """Write records as delimiter-separated text.

    Absent values are written as empty cells. Values containing the
    delimiter, quotes or line breaks are quoted.
    """

    file_type = FileType.CSV
    media_type = "text/csv"

    def __init__(self, delimiter: Optional[str] = None) -> None:
        self.delimiter = delimiter or config.CSV_DELIMITER

    def write(self, records: Sequence[Record], mapping: MappingDefinition) -> WriterOutput:
        columns = resolve_columns(records, mapping)
        buffer = io.StringIO()
        writer = csv.writer(buffer, delimiter=self.delimiter, lineterminator="\r\n")
        writer.writerow(columns)
        for record in records:
            writer.writerow([record.get(column) or "" for column in columns])
        return WriterOutput(content=buffer.getvalue(), media_type=self.media_type, extension=".csv")
