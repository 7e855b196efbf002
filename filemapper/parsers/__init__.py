"""Source-format parsers.

Each parser turns one file into canonical records. The registry below is
keyed by FileType; callers go through get_parser() rather than picking
classes themselves.
"""

from __future__ import annotations

from typing import Dict, Type, Union

from filemapper.core.errors import ConfigurationError
from filemapper.core.models import FileType
from filemapper.parsers.base import BaseParser
from filemapper.parsers.delimited import DelimitedParser
from filemapper.parsers.fixed_width import FixedWidthParser
from filemapper.parsers.json_parser import JsonParser
from filemapper.parsers.spreadsheet import SpreadsheetParser
from filemapper.parsers.xml_parser import XmlParser

PARSERS: Dict[FileType, Type[BaseParser]] = {
    FileType.JSON: JsonParser,
    FileType.CSV: DelimitedParser,
    FileType.XML: XmlParser,
    FileType.XLSX: SpreadsheetParser,
    FileType.FIXEDWIDTH: FixedWidthParser,
}


def get_parser(file_type: Union[FileType, str]) -> BaseParser:
    """Return a parser instance for a file type.

    Raises:
        ConfigurationError: If the file type has no parser.
    """
    try:
        key = FileType.from_value(file_type) if isinstance(file_type, str) else file_type
        return PARSERS[key]()
    except (KeyError, ValueError) as exc:
        raise ConfigurationError("No parser for file type '{}'".format(file_type)) from exc


__all__ = [
    "PARSERS",
    "BaseParser",
    "DelimitedParser",
    "FixedWidthParser",
    "JsonParser",
    "SpreadsheetParser",
    "XmlParser",
    "get_parser",
]
