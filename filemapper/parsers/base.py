"""Abstract base parser.

WHY: Every source format must yield the same canonical records so the
engine and the writers can stay format-agnostic. This base class pins
down the two operations a parser offers: field discovery on a sample
file, and reading all records of a file.

HOW: BaseParser is an ABC with a ``file_type`` class attribute and an
abstract ``read_records()``. ``parse_fields()`` defaults to the distinct
paths of all records; tabular parsers override it to return their header.
``_read_text()`` decodes a file once, turning decode errors into ParseError.

RULES:
- read_records() returns records in document order
- parse_fields() returns ordered, distinct field paths
- Malformed content raises ParseError; a missing file raises FileNotFoundError
- fixed_width_columns is ignored by every parser except fixed-width

To add a new source format:
1. Create a new module in parsers/
2. Subclass BaseParser and implement read_records()
3. Register it in PARSERS in parsers/__init__.py
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence, Union

from filemapper import config
from filemapper.core.errors import ParseError
from filemapper.core.models import FileType, FixedWidthColumn
from filemapper.core.records import Record, distinct_paths

PathLike = Union[str, Path]


class BaseParser(ABC):
    """Abstract base for all source-format parsers."""

    file_type: FileType

    def parse_fields(
        self,
        path: PathLike,
        fixed_width_columns: Optional[Sequence[FixedWidthColumn]] = None,
    ) -> List[str]:
        """Discover the field paths present in a sample file.

        Args:
            path: Sample file to inspect.
            fixed_width_columns: Column definitions (fixed-width only).

        Returns:
            Ordered list of distinct field paths.
        """
        return distinct_paths(self.read_records(path, fixed_width_columns))

    @abstractmethod
    def read_records(
        self,
        path: PathLike,
        fixed_width_columns: Optional[Sequence[FixedWidthColumn]] = None,
    ) -> List[Record]:
        """Read every record of a source file.

        Args:
            path: Source file.
            fixed_width_columns: Column definitions (fixed-width only).

        Returns:
            List of canonical records in document order.
        """

    @staticmethod
    def _read_text(path: PathLike) -> str:
        encoding = config.FILE_ENCODING
        if encoding.lower().replace("-", "") == "utf8":
            encoding = "utf-8-sig"  # tolerate a BOM
        data = Path(path).read_bytes()
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as exc:
            raise ParseError("not valid {} text ({})".format(config.FILE_ENCODING, exc), Path(path)) from exc
