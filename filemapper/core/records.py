"""Canonical record model and field path addressing.

WHY: Every parser produces records and every writer consumes them. A
single flat shape (field path to optional string) is the only contract
between the two sides, so N parsers and M writers never need to know
about each other.

HOW: A Record is a plain insertion-ordered dict. Hierarchical sources are
flattened into slash-delimited paths while parsing (``order/lines/0/sku``);
array items contribute their zero-based index as a path segment and XML
attributes contribute an ``@name`` segment.

RULES:
- Keys are unique field paths; dict order is the source document order
- A value of None means "no value" and is distinct from ""
- Records are ephemeral: built per file, consumed within one conversion
"""

from __future__ import annotations

from typing import Dict, List, Optional

PATH_SEPARATOR = "/"
ATTRIBUTE_PREFIX = "@"

Record = Dict[str, Optional[str]]


def join_path(prefix: str, segment: str) -> str:
    """Append one segment to a field path (an empty prefix yields the segment)."""
    if not prefix:
        return segment
    return "{}{}{}".format(prefix, PATH_SEPARATOR, segment)


def split_path(path: str) -> List[str]:
    """Split a field path into its segments."""
    return path.split(PATH_SEPARATOR)


def distinct_paths(records: List[Record]) -> List[str]:
    """Collect every field path across records, first-seen order, no repeats."""
    seen: Dict[str, None] = {}
    for record in records:
        for path in record:
            seen.setdefault(path, None)
    return list(seen)
