"""XML writer: ``<Records><Record>...</Record></Records>``.

WHY: Mapped records are flat, and their keys are free-form target names
that are often not legal XML names (``Order Date``, ``2ndLine``). Each key
is sanitized into an element name instead of failing the conversion.

HOW: lxml builds the tree; every record becomes a ``Record`` element with
one child per field, in record order.

RULES:
- Characters other than letters, decimal digits, "_", "-" and "." become "_"
  (so "Size½" becomes "Size_")
- A name starting with a digit, "-" or "." gets a "_" prefix
- An empty name becomes "Field"
- Absent values -> empty element
- Output carries a UTF-8 XML declaration
"""

from __future__ import annotations

from typing import Sequence

from lxml import etree

from filemapper.core.models import FileType, MappingDefinition
from filemapper.core.records import Record
from filemapper.writers.base import BaseWriter, WriterOutput

ROOT_ELEMENT = "Records"
RECORD_ELEMENT = "Record"
FALLBACK_NAME = "Field"


def sanitize_element_name(name: str) -> str:
    """Turn an arbitrary field name into a valid XML element name."""
    result = "".join(c if c.isalpha() or c.isdecimal() or c in "_-." else "_" for c in name)
    if not result:
        return FALLBACK_NAME
    if result[0].isdigit() or result[0] in "-.":
        result = "_" + result
    return result


class XmlWriter(BaseWriter):
    """Write records as a flat XML document."""

    file_type = FileType.XML
    media_type = "application/xml"

    def write(self, records: Sequence[Record], mapping: MappingDefinition) -> WriterOutput:
        root = etree.Element(ROOT_ELEMENT)
        for record in records:
            record_element = etree.SubElement(root, RECORD_ELEMENT)
            for key, value in record.items():
                child = etree.SubElement(record_element, sanitize_element_name(key))
                child.text = value or ""
        content = etree.tostring(root, xml_declaration=True, encoding="utf-8", pretty_print=True)
        return WriterOutput(content=content, media_type=self.media_type, extension=".xml")
