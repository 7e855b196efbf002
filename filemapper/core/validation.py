"""Type compatibility checks between source and target type hints.

WHY: Type hints on a field mapping are free-form strings ("int",
"datetime", "varchar"). Nothing coerces values at runtime, but a person
authoring a mapping should be told when a pairing is lossy, and blocked
when it is meaningless (a date into a boolean).

HOW: Each hint is classified into a bucket (string-like, numeric,
boolean, date/time, unknown). A first-match-wins decision table turns the
pair into a ValidationResult with a severity and a message.

RULES:
1. Either hint blank -> Info ("cannot check")
2. Hints equal, case-insensitive -> Info/ok
3. Either side string-like -> Warning (string conversion)
4. Both numeric -> Warning (precision loss)
5. Numeric <-> boolean -> Warning (0 / non-zero coercion)
6. Date/time <-> numeric or boolean -> Error (blocks the mapping)
7. Anything else -> Warning (unknown compatibility)
- Only used while authoring; the conversion engine never calls it
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

from filemapper.core.models import FieldMapping, MappingDefinition

NUMERIC_TYPES: FrozenSet[str] = frozenset({
    "int", "integer", "long", "short", "byte",
    "float", "double", "decimal", "number", "numeric",
})
STRING_TYPES: FrozenSet[str] = frozenset({"string", "text", "varchar", "nvarchar", "char"})
BOOLEAN_TYPES: FrozenSet[str] = frozenset({"bool", "boolean", "bit"})
DATE_TYPES: FrozenSet[str] = frozenset({"datetime", "date", "time", "timestamp"})


class Severity(str, enum.Enum):
    """How serious a type-hint combination is."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class TypeCategory(str, enum.Enum):
    STRING = "string"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one compatibility check."""

    severity: Severity
    message: str
    source_data_type: Optional[str] = None
    target_data_type: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return self.severity is Severity.INFO

    @property
    def blocks_mapping(self) -> bool:
        return self.severity is Severity.ERROR

    @classmethod
    def ok(cls, source: Optional[str] = None, target: Optional[str] = None) -> ValidationResult:
        return cls(Severity.INFO, "Types are compatible.", source, target)


def classify(type_hint: Optional[str]) -> TypeCategory:
    """Put a free-form type hint into its compatibility bucket."""
    hint = (type_hint or "").strip().lower()
    if hint in STRING_TYPES:
        return TypeCategory.STRING
    if hint in NUMERIC_TYPES:
        return TypeCategory.NUMERIC
    if hint in BOOLEAN_TYPES:
        return TypeCategory.BOOLEAN
    if hint in DATE_TYPES:
        return TypeCategory.DATETIME
    return TypeCategory.UNKNOWN


def validate(source_type: Optional[str], target_type: Optional[str]) -> ValidationResult:
    """Classify a source/target type-hint pair.

    Args:
        source_type: Source data-type hint, may be None or blank.
        target_type: Target data-type hint, may be None or blank.

    Returns:
        The ValidationResult of the first matching rule.
    """
    if not source_type or not source_type.strip() or not target_type or not target_type.strip():
        return ValidationResult(
            Severity.INFO, "No type information; compatibility not checked.",
            source_type, target_type,
        )

    if source_type.strip().lower() == target_type.strip().lower():
        return ValidationResult.ok(source_type, target_type)

    source = classify(source_type)
    target = classify(target_type)
    pair = {source, target}

    if TypeCategory.STRING in pair:
        return ValidationResult(
            Severity.WARNING,
            "Mapping from '{}' to '{}' requires string conversion. "
            "Data may be lost or incorrectly formatted.".format(source_type, target_type),
            source_type, target_type,
        )

    if source is TypeCategory.NUMERIC and target is TypeCategory.NUMERIC:
        return ValidationResult(
            Severity.WARNING,
            "Mapping from '{}' to '{}' may result in precision loss.".format(source_type, target_type),
            source_type, target_type,
        )

    if pair == {TypeCategory.NUMERIC, TypeCategory.BOOLEAN}:
        return ValidationResult(
            Severity.WARNING,
            "Mapping from '{}' to '{}' will treat 0 as false and non-zero as true "
            "(or vice versa).".format(source_type, target_type),
            source_type, target_type,
        )

    if TypeCategory.DATETIME in pair and (TypeCategory.NUMERIC in pair or TypeCategory.BOOLEAN in pair):
        return ValidationResult(
            Severity.ERROR,
            "Conversion from '{}' to '{}' is not supported.".format(source_type, target_type),
            source_type, target_type,
        )

    return ValidationResult(
        Severity.WARNING,
        "Unknown compatibility between '{}' and '{}'. Proceed with caution.".format(
            source_type, target_type,
        ),
        source_type, target_type,
    )


def validate_field(field_mapping: FieldMapping) -> ValidationResult:
    return validate(field_mapping.source_data_type, field_mapping.target_data_type)


def check_mapping(mapping: MappingDefinition) -> List[Tuple[FieldMapping, ValidationResult]]:
    """Validate every field mapping of a definition, in declared order."""
    return [(fm, validate_field(fm)) for fm in mapping.field_mappings]
