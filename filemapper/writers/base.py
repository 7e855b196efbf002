"""Abstract base writer and output container.

WHY: Every target format consumes the same canonical records but produces
different file content. This base class keeps that interface uniform so
the engine, the batch driver and the HTTP service can handle any target
format generically.

HOW: BaseWriter is an ABC with a ``file_type`` class attribute and an
abstract ``write()``. WriterOutput bundles the rendered content (text or
bytes) with its MIME type and the conventional file extension. The
caller decides where the content lands on disk.

RULES:
- ``write()`` never touches the filesystem; it returns a WriterOutput
- Tabular writers take their columns from resolve_columns()
- Missing target configuration raises ConfigurationError

To add a new target format:
1. Create a new module in writers/
2. Subclass BaseWriter and implement write()
3. Register it in WRITERS in writers/__init__.py
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Union

from filemapper.core.models import FileType, MappingDefinition
from filemapper.core.records import Record


@dataclass
class WriterOutput:
    """One rendered target file.

    Attributes:
        content: File content, text for text formats and bytes for xlsx.
        media_type: MIME type, e.g. ``"text/csv"``.
        extension: Conventional extension including the dot, e.g. ``".csv"``.
    """

    content: Union[str, bytes]
    media_type: str
    extension: str

    def save(self, path: Union[str, Path]) -> Path:
        """Write the content to ``path``, creating parent folders."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(self.content, bytes):
            target.write_bytes(self.content)
        else:
            target.write_text(self.content, encoding="utf-8", newline="")
        return target


class BaseWriter(ABC):
    """Abstract base for all target-format writers."""

    file_type: FileType
    media_type: str

    @abstractmethod
    def write(self, records: Sequence[Record], mapping: MappingDefinition) -> WriterOutput:
        """Render records into the target format.

        Args:
            records: Mapped records, keyed by target field name.
            mapping: The mapping in effect; supplies column order and
                     fixed-width target columns.

        Returns:
            The rendered WriterOutput.
        """


def resolve_columns(records: Sequence[Record], mapping: MappingDefinition) -> List[str]:
    """Output column order: the mapping's target names, else the first record's keys."""
    if mapping.field_mappings:
        return mapping.target_names()
    if records:
        return list(records[0].keys())
    return []
