"""Spreadsheet (.xlsx) writer: one sheet named ``Data``.

Row 1 holds the column names, every later row one record. Absent values
leave the cell blank. Values are written as text so leading zeros and
long identifiers survive.
"""

from __future__ import annotations

import io
from typing import Sequence

from openpyxl import Workbook

from filemapper.core.models import FileType, MappingDefinition
from filemapper.core.records import Record
from filemapper.writers.base import BaseWriter, WriterOutput, resolve_columns

SHEET_TITLE = "Data"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class SpreadsheetWriter(BaseWriter):
    """Write records to an in-memory workbook."""

    file_type = FileType.XLSX
    media_type = XLSX_MEDIA_TYPE

    def write(self, records: Sequence[Record], mapping: MappingDefinition) -> WriterOutput:
        columns = resolve_columns(records, mapping)
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = SHEET_TITLE

        for col, name in enumerate(columns, start=1):
            sheet.cell(row=1, column=col, value=name)
        for row, record in enumerate(records, start=2):
            for col, name in enumerate(columns, start=1):
                value = record.get(name)
                if value:
                    cell = sheet.cell(row=row, column=col, value=value)
                    cell.data_type = "s"

        buffer = io.BytesIO()
        workbook.save(buffer)
        return WriterOutput(content=buffer.getvalue(), media_type=self.media_type, extension=".xlsx")
