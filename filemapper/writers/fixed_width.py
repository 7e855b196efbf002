"""Fixed-width text writer."""

from __future__ import annotations

from typing import Sequence

from filemapper.core.errors import ConfigurationError
from filemapper.core.models import FileType, MappingDefinition
from filemapper.core.records import Record
from filemapper.writers.base import BaseWriter, WriterOutput


class FixedWidthWriter(BaseWriter):
    """Lay each record out on one line using the target column definitions.

    The line length is the furthest column end. Each value is left-justified
    in its span: shorter values are padded with spaces and longer ones are
    cut to the column width. Absent values leave the span blank.
    """

    file_type = FileType.FIXEDWIDTH
    media_type = "text/plain"

    def write(self, records: Sequence[Record], mapping: MappingDefinition) -> WriterOutput:
        columns = mapping.target_fixed_width_columns
        if not columns:
            raise ConfigurationError("target fixed-width columns must be defined when writing fixed-width files")

        line_length = max(column.end_position for column in columns)
        lines = []
        for record in records:
            line = [" "] * line_length
            for column in columns:
                text = (record.get(column.name) or "")[:column.length]
                line[column.start_position:column.start_position + len(text)] = text
            lines.append("".join(line) + "\n")
        return WriterOutput(content="".join(lines), media_type=self.media_type, extension=".txt")
