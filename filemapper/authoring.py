"""Mapping authoring helpers.

WHY: Before a mapping can run, someone has to decide which source paths
exist and what to call them in the target. These helpers are the
non-interactive building blocks for that workflow: discover fields in a
sample file, show deep paths under short names, refuse incompatible type
combinations, and scaffold an identity mapping to start editing from.

HOW: Field discovery delegates to the source parser; display names come
from core.flattening; type checks from core.validation.

RULES:
- Display names are flattened only for hierarchical sources (json, xml)
  with flattening enabled; otherwise a field's name is its path
- Error-level type results block the field mapping (TypeCompatibilityError)
- Warning-level results need ``acknowledge_warning=True``
- Blank type hints are never checked
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from filemapper.core.errors import TypeCompatibilityError, TypeWarningNotAcknowledged
from filemapper.core.flattening import flatten
from filemapper.core.models import (
    FieldMapping,
    FileType,
    FixedWidthColumn,
    FlatteningConfiguration,
    MappingDefinition,
    TransformationRule,
)
from filemapper.core.validation import Severity, check_mapping, validate
from filemapper.parsers import get_parser


@dataclass(frozen=True)
class DiscoveredField:
    """A field found in a sample file.

    Attributes:
        path: Full source path, used as a FieldMapping's source_path.
        name: Display name (flattened when enabled, else the path).
    """

    path: str
    name: str


def discover_fields(
    sample: Union[str, Path],
    file_type: Union[FileType, str],
    fixed_width_columns: Optional[Sequence[FixedWidthColumn]] = None,
    flattening: Optional[FlatteningConfiguration] = None,
) -> List[DiscoveredField]:
    """List the fields of a sample file with their display names."""
    file_type = FileType.from_value(file_type)
    paths = get_parser(file_type).parse_fields(sample, fixed_width_columns)

    if flattening is not None and flattening.enabled and file_type.is_hierarchical:
        names = flatten(paths, flattening.common_prefix)
        return [DiscoveredField(path=p, name=names[p]) for p in paths]
    return [DiscoveredField(path=p, name=p) for p in paths]


def create_field_mapping(
    source_path: str,
    target_name: str,
    source_data_type: Optional[str] = None,
    target_data_type: Optional[str] = None,
    transformation: Optional[TransformationRule] = None,
    acknowledge_warning: bool = False,
) -> FieldMapping:
    """Build a FieldMapping after checking its type hints.

    Raises:
        TypeCompatibilityError: The type combination is not supported.
        TypeWarningNotAcknowledged: The combination is risky and
            ``acknowledge_warning`` was not set.
    """
    result = validate(source_data_type, target_data_type)
    if result.severity is Severity.ERROR:
        raise TypeCompatibilityError(result)
    if result.severity is Severity.WARNING and not acknowledge_warning:
        raise TypeWarningNotAcknowledged(result)

    return FieldMapping(
        source_path=source_path,
        target_name=target_name,
        source_data_type=source_data_type,
        target_data_type=target_data_type,
        transformation=transformation,
        type_warning_acknowledged=result.severity is Severity.WARNING,
    )


def scaffold_mapping(
    sample: Union[str, Path],
    name: str,
    source_type: Union[FileType, str],
    target_type: Union[FileType, str],
    flatten_paths: bool = True,
    fixed_width_columns: Optional[Sequence[FixedWidthColumn]] = None,
) -> MappingDefinition:
    """Build an identity mapping: one field mapping per discovered field.

    Target names are the display names, so hierarchical sources get short
    column names when ``flatten_paths`` is set.
    """
    source_type = FileType.from_value(source_type)
    target_type = FileType.from_value(target_type)
    flattening = FlatteningConfiguration(enabled=flatten_paths and source_type.is_hierarchical)
    fields = discover_fields(sample, source_type, fixed_width_columns, flattening)

    columns = tuple(fixed_width_columns) if fixed_width_columns else None
    return MappingDefinition(
        name=name,
        source_type=source_type,
        target_type=target_type,
        field_mappings=tuple(FieldMapping(source_path=f.path, target_name=f.name) for f in fields),
        flattening=flattening,
        source_fixed_width_columns=columns if source_type is FileType.FIXEDWIDTH else None,
        target_fixed_width_columns=columns if target_type is FileType.FIXEDWIDTH else None,
    )


__all__ = [
    "DiscoveredField",
    "check_mapping",
    "create_field_mapping",
    "discover_fields",
    "scaffold_mapping",
]
