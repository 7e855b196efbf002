"""Target-format writers.

WRITERS maps each FileType to its writer class; get_writer() is the only
way the engine and the service obtain one.
"""

from __future__ import annotations

from typing import Dict, Type, Union

from filemapper.core.errors import ConfigurationError
from filemapper.core.models import FileType
from filemapper.writers.base import BaseWriter, WriterOutput, resolve_columns
from filemapper.writers.delimited import DelimitedWriter
from filemapper.writers.fixed_width import FixedWidthWriter
from filemapper.writers.json_writer import JsonWriter
from filemapper.writers.spreadsheet import SpreadsheetWriter
from filemapper.writers.xml_writer import XmlWriter, sanitize_element_name

WRITERS: Dict[FileType, Type[BaseWriter]] = {
    FileType.JSON: JsonWriter,
    FileType.CSV: DelimitedWriter,
    FileType.XML: XmlWriter,
    FileType.XLSX: SpreadsheetWriter,
    FileType.FIXEDWIDTH: FixedWidthWriter,
}


def get_writer(file_type: Union[FileType, str]) -> BaseWriter:
    """Return a writer instance for a file type.

    Raises:
        ConfigurationError: If the file type has no writer.
    """
    try:
        key = FileType.from_value(file_type) if isinstance(file_type, str) else file_type
        return WRITERS[key]()
    except (KeyError, ValueError) as exc:
        raise ConfigurationError("No writer for file type '{}'".format(file_type)) from exc


__all__ = [
    "WRITERS",
    "BaseWriter",
    "DelimitedWriter",
    "FixedWidthWriter",
    "JsonWriter",
    "SpreadsheetWriter",
    "WriterOutput",
    "XmlWriter",
    "get_writer",
    "resolve_columns",
    "sanitize_element_name",
]
