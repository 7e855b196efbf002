"""Fixed-width text parser driven by externally supplied column definitions."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from filemapper.core.errors import ConfigurationError
from filemapper.core.models import FileType, FixedWidthColumn
from filemapper.core.records import Record
from filemapper.parsers.base import BaseParser, PathLike

# Only CR, LF and CRLF end a line; form feeds and other separators are data
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class FixedWidthParser(BaseParser):
    """Slice each non-blank line into columns ``[start, start + length)``.

    Values are right-trimmed. A column starting beyond the end of a short
    line yields an absent value; one that starts inside it but runs past
    the end takes whatever characters are there.
    """

    file_type = FileType.FIXEDWIDTH

    def parse_fields(
        self,
        path: PathLike,
        fixed_width_columns: Optional[Sequence[FixedWidthColumn]] = None,
    ) -> List[str]:
        columns = _require_columns(fixed_width_columns)
        return list(dict.fromkeys(column.name for column in columns))

    def read_records(
        self,
        path: PathLike,
        fixed_width_columns: Optional[Sequence[FixedWidthColumn]] = None,
    ) -> List[Record]:
        columns = _require_columns(fixed_width_columns)
        records: List[Record] = []
        for line in _LINE_BREAK.split(self._read_text(path)):
            if not line.strip():
                continue
            record: Record = {}
            for column in columns:
                if column.start_position < len(line):
                    record[column.name] = line[column.start_position:column.end_position].rstrip()
                else:
                    record[column.name] = None
            records.append(record)
        return records


def _require_columns(columns: Optional[Sequence[FixedWidthColumn]]) -> Sequence[FixedWidthColumn]:
    if not columns:
        raise ConfigurationError("fixed-width parsing requires source column definitions")
    return columns
