"""Exception taxonomy for mapping and conversion.

WHY: Callers need to tell a broken mapping document apart from a broken
source file, and both apart from authoring-time type problems. The batch
driver treats all of them as fatal to one file only.

RULES:
- ConfigurationError: missing/invalid mapping, missing fixed-width columns
- ParseError: source content is malformed for its declared format
- TypeCompatibilityError: raised while authoring, never during conversion
- Per-field problems are not exceptions; see TransformationWarning
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from filemapper.core.validation import ValidationResult


class FileMapperError(Exception):
    """Base class for all errors raised by filemapper."""


class ConfigurationError(FileMapperError):
    """The mapping definition (or a required part of it) is missing or invalid."""


class ParseError(FileMapperError):
    """The source file could not be parsed as its declared format."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        if path is not None:
            message = "{}: {}".format(path, message)
        super().__init__(message)
        self.path = path


class ConversionCancelled(FileMapperError):
    """A conversion was stopped because its cancel event was set."""


class TypeCompatibilityError(FileMapperError):
    """A field mapping combines type hints that cannot be converted."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__(result.message)
        self.result = result


class TypeWarningNotAcknowledged(FileMapperError):
    """A risky type combination was added without acknowledging the warning."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__(result.message)
        self.result = result


@dataclass(frozen=True)
class TransformationWarning:
    """A recovered, per-field conversion problem.

    Attributes:
        record_index: Zero-based index of the source record.
        target_name: Target field the warning applies to.
        message: Human-readable description.
    """

    record_index: int
    target_name: str
    message: str
