"""JSON writer.

RULES:
- Exactly one record -> a single JSON object
- Any other count (including zero) -> an array of objects
- Keys keep record order; absent values -> null
- Output is indented with two spaces and keeps non-ASCII text as-is
"""

from __future__ import annotations

import json
from typing import Sequence

from filemapper.core.models import FileType, MappingDefinition
from filemapper.core.records import Record
from filemapper.writers.base import BaseWriter, WriterOutput


class JsonWriter(BaseWriter):
    """Write records as a JSON object or array."""

    file_type = FileType.JSON
    media_type = "application/json"

    def write(self, records: Sequence[Record], mapping: MappingDefinition) -> WriterOutput:
        payload = dict(records[0]) if len(records) == 1 else [dict(r) for r in records]
        content = json.dumps(payload, indent=2, ensure_ascii=False)
        return WriterOutput(content=content, media_type=self.media_type, extension=".json")
