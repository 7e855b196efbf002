"""JSON parser: nested documents -> flat path records.

WHY: JSON sources are trees; the canonical record is flat. Recursive
descent turns every scalar leaf into one ``path -> value`` entry so that
deep values stay addressable by a mapping's sourcePath.

HOW: Object members append their key as a path segment, array items their
zero-based index. Numbers keep their JSON lexeme (parse hooks return the
raw text) so ``1.50`` is not silently rewritten to ``1.5``.

RULES:
- Root array -> one record per element; anything else -> exactly one record
- Leaf values: strings verbatim, numbers as written, booleans "true"/"false"
- An explicit null -> absent value (None)
- Empty objects and arrays contribute no fields
- Invalid JSON raises ParseError
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional, Sequence

from filemapper.core.errors import ParseError
from filemapper.core.models import FileType, FixedWidthColumn
from filemapper.core.records import Record, join_path
from filemapper.parsers.base import BaseParser, PathLike


class JsonParser(BaseParser):
    """Parser for JSON documents."""

    file_type = FileType.JSON

    def read_records(
        self,
        path: PathLike,
        fixed_width_columns: Optional[Sequence[FixedWidthColumn]] = None,
    ) -> List[Record]:
        document = self._load(path)
        items = document if isinstance(document, list) else [document]

        records: List[Record] = []
        for item in items:
            record: Record = {}
            _collect_values(item, "", record)
            records.append(record)
        return records

    def _load(self, path: PathLike) -> Any:
        text = self._read_text(path)
        try:
            return json.loads(text, parse_int=str, parse_float=str, parse_constant=str)
        except json.JSONDecodeError as exc:
            raise ParseError("invalid JSON: {}".format(exc), Path(path)) from exc


def _collect_values(node: Any, prefix: str, record: Record) -> None:
    if isinstance(node, dict):
        for key, child in node.items():
            _collect_values(child, join_path(prefix, key), record)
    elif isinstance(node, list):
        for index, child in enumerate(node):
            _collect_values(child, join_path(prefix, str(index)), record)
    elif prefix:
        record[prefix] = _leaf_text(node)


def _leaf_text(node: Any) -> Optional[str]:
    if node is None:
        return None
    if isinstance(node, bool):
        return "true" if node else "false"
    return str(node)
