"""Conversion engine: parse -> map fields -> write.

WHY: This is the one place where a mapping definition is executed. It
picks the parser and writer for the mapping's file types, runs every
field mapping against every source record, and reports recoverable
per-field problems without failing the file.

HOW: ``map_records()`` is the pure part: source records in, target
records out, warnings through a callback. ``convert_file()`` wraps it
with the parser and writer and saves the writer's output to disk.

RULES:
- Target records hold the mapping's target names in declared order
- A mapping without field mappings passes source records through unchanged
- A transformation that raises -> warning + the raw source value is kept
- An acknowledged type warning is re-reported on every record
- Parse errors and configuration errors propagate (fatal to the file)
- A set cancel_event stops the run before parsing, between records and
  before writing; nothing is written once cancelled
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from filemapper.core.errors import ConversionCancelled
from filemapper.core.models import FieldMapping, MappingDefinition
from filemapper.core.records import Record
from filemapper.core.transforms import apply_transformation
from filemapper.parsers import get_parser
from filemapper.writers import get_writer

logger = logging.getLogger(__name__)

WarningCallback = Callable[[int, str, str], None]


def map_records(
    records: Sequence[Record],
    mapping: MappingDefinition,
    on_warning: Optional[WarningCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[Record]:
    """Apply a mapping's field list to every source record.

    Args:
        records: Canonical source records.
        mapping: The mapping to execute.
        on_warning: Called as ``on_warning(record_index, target_name, message)``
                    for every recoverable per-field problem.
        cancel_event: Checked before each record.

    Returns:
        Target records keyed by target name.

    Raises:
        ConversionCancelled: If cancel_event gets set.
    """
    if not mapping.field_mappings:
        _check_cancelled(cancel_event)
        return [dict(record) for record in records]

    converted: List[Record] = []
    for index, source in enumerate(records):
        _check_cancelled(cancel_event)
        target: Record = {}
        for field_mapping in mapping.field_mappings:
            target[field_mapping.target_name] = _map_field(index, source, field_mapping, on_warning)
        converted.append(target)
    return converted


def convert_file(
    source: Union[str, Path],
    target: Union[str, Path],
    mapping: MappingDefinition,
    on_warning: Optional[WarningCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> int:
    """Convert one source file into one target file.

    Args:
        source: File in the mapping's source format.
        target: Path the converted file is written to (overwritten).
        mapping: The mapping to execute.
        on_warning: Per-field warning callback, see map_records().
        cancel_event: Optional cancellation flag.

    Returns:
        Number of records written.

    Raises:
        ParseError: Source content is malformed.
        ConfigurationError: Required mapping configuration is missing.
        ConversionCancelled: cancel_event was set.
    """
    parser = get_parser(mapping.source_type)
    writer = get_writer(mapping.target_type)

    _check_cancelled(cancel_event)
    logger.info("Converting %s with mapping '%s'", source, mapping.name)
    records = parser.read_records(source, mapping.source_fixed_width_columns)
    logger.debug("Parsed %d records from %s", len(records), source)

    converted = map_records(records, mapping, on_warning, cancel_event)

    _check_cancelled(cancel_event)
    output = writer.write(converted, mapping)
    _check_cancelled(cancel_event)
    output.save(target)
    logger.info("Wrote %d records to %s", len(converted), target)
    return len(converted)


def _map_field(
    index: int,
    source: Record,
    field_mapping: FieldMapping,
    on_warning: Optional[WarningCallback],
) -> Optional[str]:
    raw = source.get(field_mapping.source_path)
    try:
        value = apply_transformation(raw, field_mapping.transformation, source)
    except Exception as exc:  # any rule failure is recovered per field
        _warn(on_warning, index, field_mapping.target_name,
              "Transformation failed: {}. Using raw value.".format(exc))
        value = raw

    if field_mapping.type_warning_acknowledged and field_mapping.has_type_hints:
        _warn(on_warning, index, field_mapping.target_name,
              "Best-effort conversion from '{}' to '{}'.".format(
                  field_mapping.source_data_type, field_mapping.target_data_type))
    return value


def _warn(on_warning: Optional[WarningCallback], index: int, target_name: str, message: str) -> None:
    logger.debug("Record %d, field '%s': %s", index, target_name, message)
    if on_warning is not None:
        on_warning(index, target_name, message)


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ConversionCancelled("conversion cancelled")
