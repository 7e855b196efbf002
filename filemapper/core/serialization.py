"""Load and save mapping definitions as ``.map.json`` documents.

WHY: A mapping is authored once and reused by every conversion run, the
batch driver and the HTTP service. The document format must stay
compatible with mappings written by earlier tools (camelCase keys,
enum values in any case) and reject malformed files with a clear error.

HOW: Documents are validated against mapping.schema.json with jsonschema
before being turned into the frozen dataclasses of core.models. Saving
does the reverse, omitting null-valued optional keys.

RULES:
- Any unreadable, non-JSON or schema-violating document -> ConfigurationError
- Enum values are accepted case-insensitively and written canonically
- ``save_mapping(..., check_types=True)`` refuses mappings whose type hints
  are incompatible (TypeCompatibilityError)
- load_mappings_dir() skips (and logs) invalid documents
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import jsonschema

from filemapper.core.errors import ConfigurationError, TypeCompatibilityError
from filemapper.core.models import (
    FieldMapping,
    FileType,
    FixedWidthColumn,
    FlatteningConfiguration,
    MappingDefinition,
    TransformationRule,
    TransformationType,
)
from filemapper.core.validation import check_mapping

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "mapping.schema.json"
MAPPING_FILE_SUFFIX = ".map.json"


@lru_cache(maxsize=1)
def load_schema() -> Dict[str, Any]:
    """The JSON Schema for mapping documents."""
    with open(SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


def validate_document(data: Any) -> None:
    """Raise ConfigurationError if ``data`` is not a valid mapping document."""
    validator = jsonschema.Draft7Validator(load_schema())
    error = jsonschema.exceptions.best_match(validator.iter_errors(data))
    if error is not None:
        location = "/".join(str(p) for p in error.absolute_path) or "<root>"
        raise ConfigurationError(
            "Invalid mapping document at '{}': {}".format(location, error.message)
        )


def mapping_from_dict(data: Dict[str, Any]) -> MappingDefinition:
    """Build a MappingDefinition from a parsed mapping document.

    Raises:
        ConfigurationError: If the document does not match the schema.
    """
    validate_document(data)
    try:
        flattening = data.get("flattening") or {}
        return MappingDefinition(
            name=data["name"],
            source_type=FileType.from_value(data["sourceType"]),
            target_type=FileType.from_value(data["targetType"]),
            field_mappings=tuple(_field_from_dict(fm) for fm in data.get("fieldMappings") or []),
            flattening=FlatteningConfiguration(
                enabled=bool(flattening.get("enabled", False)),
                common_prefix=flattening.get("commonPrefix"),
            ),
            source_fixed_width_columns=_columns_from_list(data.get("sourceFixedWidthColumns")),
            target_fixed_width_columns=_columns_from_list(data.get("targetFixedWidthColumns")),
            expected_file_name=data.get("expectedFileName") or None,
            file_name_is_prefix=bool(data.get("fileNameIsPrefix", False)),
        )
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def mapping_to_dict(mapping: MappingDefinition) -> Dict[str, Any]:
    """Serialize a MappingDefinition to a document dict (camelCase keys)."""
    data: Dict[str, Any] = {
        "name": mapping.name,
        "sourceType": mapping.source_type.value,
        "targetType": mapping.target_type.value,
        "fieldMappings": [_field_to_dict(fm) for fm in mapping.field_mappings],
        "flattening": _drop_none({
            "enabled": mapping.flattening.enabled,
            "commonPrefix": mapping.flattening.common_prefix,
        }),
    }
    if mapping.source_fixed_width_columns is not None:
        data["sourceFixedWidthColumns"] = _columns_to_list(mapping.source_fixed_width_columns)
    if mapping.target_fixed_width_columns is not None:
        data["targetFixedWidthColumns"] = _columns_to_list(mapping.target_fixed_width_columns)
    if mapping.expected_file_name:
        data["expectedFileName"] = mapping.expected_file_name
    data["fileNameIsPrefix"] = mapping.file_name_is_prefix
    return data


def load_mapping(path: Union[str, Path]) -> MappingDefinition:
    """Read and validate a ``.map.json`` file.

    Raises:
        ConfigurationError: If the file is missing, not JSON, or invalid.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise ConfigurationError("Could not read mapping file {}: {}".format(path, exc)) from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError("Mapping file {} is not valid JSON: {}".format(path, exc)) from exc
    try:
        return mapping_from_dict(data)
    except ConfigurationError as exc:
        raise ConfigurationError("{}: {}".format(path, exc)) from exc


def save_mapping(
    mapping: MappingDefinition,
    path: Union[str, Path],
    check_types: bool = False,
) -> Path:
    """Write a mapping document, optionally refusing incompatible type hints.

    Returns:
        The path written.

    Raises:
        TypeCompatibilityError: With check_types, when any field mapping
            pairs type hints that cannot be converted.
    """
    if check_types:
        for _, result in check_mapping(mapping):
            if result.blocks_mapping:
                raise TypeCompatibilityError(result)

    path = Path(path)
    path.write_text(json.dumps(mapping_to_dict(mapping), indent=2) + "\n", encoding="utf-8")
    return path


def load_mappings_dir(folder: Union[str, Path]) -> List[MappingDefinition]:
    """Load every ``*.map.json`` document in ``folder`` (non-recursive).

    Invalid documents are logged and skipped so one bad file does not take
    the whole mapping set down.
    """
    folder = Path(folder)
    if not folder.is_dir():
        raise ConfigurationError("Mappings folder not found: {}".format(folder))

    mappings: List[MappingDefinition] = []
    for path in sorted(folder.glob("*" + MAPPING_FILE_SUFFIX)):
        try:
            mappings.append(load_mapping(path))
        except ConfigurationError as exc:
            logger.error("Skipping mapping %s: %s", path.name, exc)
    logger.info("Loaded %d mapping(s) from %s", len(mappings), folder)
    return mappings


def load_columns(path: Union[str, Path]) -> Tuple[FixedWidthColumn, ...]:
    """Read a standalone JSON list of fixed-width column definitions.

    Raises:
        ConfigurationError: If the file is unreadable or not a valid column list.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8-sig"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError("Could not read column file {}: {}".format(path, exc)) from exc

    schema = {"$ref": "#/definitions/columns", "definitions": load_schema()["definitions"]}
    error = jsonschema.exceptions.best_match(jsonschema.Draft7Validator(schema).iter_errors(data))
    if error is not None or not data:
        message = error.message if error is not None else "no columns defined"
        raise ConfigurationError("Invalid column file {}: {}".format(path, message))
    return _columns_from_list(data)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _field_from_dict(data: Dict[str, Any]) -> FieldMapping:
    rule = data.get("transformation")
    return FieldMapping(
        source_path=data["sourcePath"],
        target_name=data["targetName"],
        source_data_type=data.get("sourceDataType"),
        target_data_type=data.get("targetDataType"),
        transformation=TransformationRule(
            type=TransformationType.from_value(rule["type"]),
            parameter1=rule.get("parameter1"),
            parameter2=rule.get("parameter2"),
        ) if rule else None,
        type_warning_acknowledged=bool(data.get("typeWarningAcknowledged", False)),
    )


def _field_to_dict(field_mapping: FieldMapping) -> Dict[str, Any]:
    rule = field_mapping.transformation
    data = _drop_none({
        "sourcePath": field_mapping.source_path,
        "targetName": field_mapping.target_name,
        "sourceDataType": field_mapping.source_data_type,
        "targetDataType": field_mapping.target_data_type,
        "transformation": _drop_none({
            "type": rule.type.value,
            "parameter1": rule.parameter1,
            "parameter2": rule.parameter2,
        }) if rule else None,
    })
    data["typeWarningAcknowledged"] = field_mapping.type_warning_acknowledged
    return data


def _columns_from_list(items: Optional[List[Dict[str, Any]]]) -> Optional[Tuple[FixedWidthColumn, ...]]:
    if items is None:
        return None
    return tuple(
        FixedWidthColumn(
            name=item["name"],
            start_position=int(item["startPosition"]),
            length=int(item["length"]),
        )
        for item in items
    )


def _columns_to_list(columns: Tuple[FixedWidthColumn, ...]) -> List[Dict[str, Any]]:
    return [
        {"name": c.name, "startPosition": c.start_position, "length": c.length}
        for c in columns
    ]


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}
