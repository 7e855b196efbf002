"""Mapping definition dataclasses.

WHY: A mapping definition is the declarative, reusable description of one
conversion: which format goes in, which comes out, and how each target
field is derived from the source record. Parsers, writers, the engine and
the authoring helpers all read the same objects.

HOW: Frozen dataclasses mirror the .map.json document (see
serialization.py). Closed enums name the supported file types and
transformation kinds; both accept their document spelling
case-insensitively via ``from_value``.

RULES:
- field_mappings order is the authoritative output column order
- All dataclasses are frozen; one instance governs one conversion call
- Type hints (source/target data types) are free-form strings used only
  for compatibility warnings, never for runtime coercion
- Fixed-width column positions are zero-based, lengths in characters
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


class _LooseEnum(str, enum.Enum):
    """String enum that resolves document spellings case-insensitively."""

    @classmethod
    def from_value(cls, value: str):
        if isinstance(value, cls):
            return value
        wanted = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == wanted or member.name.lower() == wanted.replace("_", ""):
                return member
        raise ValueError("Unknown {} '{}'. Expected one of: {}".format(
            cls.__name__, value, ", ".join(m.value for m in cls),
        ))


class FileType(_LooseEnum):
    """Supported source/target file formats."""

    JSON = "json"
    CSV = "csv"
    XML = "xml"
    XLSX = "xlsx"
    FIXEDWIDTH = "fixedwidth"

    @property
    def is_hierarchical(self) -> bool:
        return self in (FileType.JSON, FileType.XML)


class TransformationType(_LooseEnum):
    """Per-field value rewriting rules (see core/transforms.py)."""

    NONE = "none"
    TRIM = "trim"
    STATICVALUE = "staticValue"
    CONCATENATE = "concatenate"
    DATEFORMAT = "dateFormat"
    SUBSTRING = "substring"


@dataclass(frozen=True)
class TransformationRule:
    """A transformation applied to one mapped value.

    Parameter meaning by type:
      staticValue  parameter1 = the value to emit
      concatenate  parameter1 = field path in the current record, or a literal
      dateFormat   parameter1 = source pattern, parameter2 = target pattern
      substring    parameter1 = start index, parameter2 = optional length
    """

    type: TransformationType = TransformationType.NONE
    parameter1: Optional[str] = None
    parameter2: Optional[str] = None


@dataclass(frozen=True)
class FieldMapping:
    """One source-path -> target-name mapping."""

    source_path: str
    target_name: str
    source_data_type: Optional[str] = None
    target_data_type: Optional[str] = None
    transformation: Optional[TransformationRule] = None
    type_warning_acknowledged: bool = False

    @property
    def has_type_hints(self) -> bool:
        return bool(
            self.source_data_type and self.source_data_type.strip()
            and self.target_data_type and self.target_data_type.strip()
        )


@dataclass(frozen=True)
class FixedWidthColumn:
    """A column in a fixed-width text file: ``line[start:start + length]``."""

    name: str
    start_position: int
    length: int

    @property
    def end_position(self) -> int:
        return self.start_position + self.length


@dataclass(frozen=True)
class FlatteningConfiguration:
    """Whether hierarchical source paths are shown as short flattened names.

    common_prefix overrides the automatically computed shared ancestor.
    """

    enabled: bool = False
    common_prefix: Optional[str] = None


@dataclass(frozen=True)
class MappingDefinition:
    """The complete, declarative description of one conversion."""

    name: str
    source_type: FileType
    target_type: FileType
    field_mappings: Tuple[FieldMapping, ...] = ()
    flattening: FlatteningConfiguration = field(default_factory=FlatteningConfiguration)
    source_fixed_width_columns: Optional[Tuple[FixedWidthColumn, ...]] = None
    target_fixed_width_columns: Optional[Tuple[FixedWidthColumn, ...]] = None
    expected_file_name: Optional[str] = None
    file_name_is_prefix: bool = False

    def target_names(self) -> List[str]:
        """Target field names in declared order, without repeats."""
        names: List[str] = []
        for mapping in self.field_mappings:
            if mapping.target_name not in names:
                names.append(mapping.target_name)
        return names
