"""XML parser: element trees -> flat path records.

WHY: XML feeds nest values in elements and attributes. The canonical
record addresses each of them with a slash path, starting at the record's
own element name (``Order/Customer/Name``, ``Order/@id``).

HOW: lxml parses the document with entity resolution and network access
disabled. If the root holds two or more children that all share one name,
each child is a record; otherwise the whole document is one record.
Recursive descent then collects attributes and leaf text.

RULES:
- Element and attribute names use their local name (namespaces dropped)
- Attributes -> ``<element path>/@<name>``
- A leaf element (no child elements) stores its text ("" when empty)
- Repeated sibling names get a zero-based index segment
  (``Order/Line/0/Sku``, ``Order/Line/1/Sku``); unique siblings do not
- Comments and processing instructions are ignored
- Malformed XML raises ParseError
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from lxml import etree

from filemapper.core.errors import ParseError
from filemapper.core.models import FileType, FixedWidthColumn
from filemapper.core.records import ATTRIBUTE_PREFIX, Record, join_path
from filemapper.parsers.base import BaseParser, PathLike


class XmlParser(BaseParser):
    """Parser for XML documents."""

    file_type = FileType.XML

    def read_records(
        self,
        path: PathLike,
        fixed_width_columns: Optional[Sequence[FixedWidthColumn]] = None,
    ) -> List[Record]:
        root = self._load(path)
        children = _child_elements(root)
        first_name = _local_name(children[0]) if children else None
        repeating = len(children) > 1 and all(_local_name(c) == first_name for c in children)

        records: List[Record] = []
        for element in (children if repeating else [root]):
            record: Record = {}
            _collect_values(element, "", record)
            records.append(record)
        return records

    def _load(self, path: PathLike) -> etree._Element:
        parser = etree.XMLParser(
            resolve_entities=False,
            no_network=True,
            remove_comments=True,
            remove_pis=True,
        )
        try:
            return etree.fromstring(Path(path).read_bytes(), parser)
        except etree.XMLSyntaxError as exc:
            raise ParseError("invalid XML: {}".format(exc), Path(path)) from exc


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def _child_elements(element: etree._Element) -> List[etree._Element]:
    # Entities and other non-element nodes have a non-string tag
    return [child for child in element if isinstance(child.tag, str)]


def _collect_values(
    element: etree._Element,
    prefix: str,
    record: Record,
    index: Optional[int] = None,
) -> None:
    path = join_path(prefix, _local_name(element))
    if index is not None:
        path = join_path(path, str(index))

    for name, value in element.attrib.items():
        attribute = ATTRIBUTE_PREFIX + etree.QName(name).localname
        record[join_path(path, attribute)] = value

    children = _child_elements(element)
    if not children:
        record[path] = "".join(element.itertext())
        return

    counts = Counter(_local_name(c) for c in children)
    seen: Dict[str, int] = {}
    for child in children:
        name = _local_name(child)
        if counts[name] > 1:
            position = seen.get(name, 0)
            seen[name] = position + 1
            _collect_values(child, path, record, position)
        else:
            _collect_values(child, path, record)
