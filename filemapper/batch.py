"""Batch driver: route source files to mappings and convert them.

WHY: Production runs point the tool at a drop folder full of files from
different senders. Each file must find its own mapping by name, and one
broken file must never stop the rest of the run.

HOW: ``resolve_mapping()`` applies the routing rules to a file name.
``run_batch()`` lists the source files, routes each one, converts it with
core.engine and records a FileResult; the BatchSummary tallies them.

RULES:
- Routing: exact (case-insensitive) expectedFileName match wins; then the
  longest matching prefix among prefix mappings; then the single mapping
  with no expectedFileName; otherwise the file is skipped
- Exact names match the full file name, extension included
- Directory sources are not searched recursively; only files with a
  known extension are considered, in name order
- Output name: {stem}{target extension}, numeric suffix on conflict
  (orders-2.csv)
- Any error raised while converting a file fails only that file
- A set cancel_event stops the batch; remaining files are not attempted
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from filemapper import config
from filemapper.core.engine import convert_file
from filemapper.core.errors import ConversionCancelled, FileMapperError, TransformationWarning
from filemapper.core.models import MappingDefinition

logger = logging.getLogger(__name__)


class FileStatus(str, enum.Enum):
    CONVERTED = "converted"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass
class FileResult:
    """Outcome of one source file."""

    source: Path
    status: FileStatus
    target: Optional[Path] = None
    mapping_name: Optional[str] = None
    records: int = 0
    warnings: List[TransformationWarning] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class BatchSummary:
    """Totals of one batch run, plus the per-file results."""

    converted: int = 0
    failed: int = 0
    skipped: int = 0
    total_records: int = 0
    warnings: int = 0
    cancelled: bool = False
    results: List[FileResult] = field(default_factory=list)

    def add(self, result: FileResult) -> None:
        self.results.append(result)
        self.warnings += len(result.warnings)
        if result.status is FileStatus.CONVERTED:
            self.converted += 1
            self.total_records += result.records
        elif result.status is FileStatus.FAILED:
            self.failed += 1
        elif result.status is FileStatus.SKIPPED:
            self.skipped += 1
        else:
            self.cancelled = True


def resolve_mapping(
    file_name: str,
    mappings: Sequence[MappingDefinition],
) -> Optional[MappingDefinition]:
    """Pick the mapping that governs a source file, or None.

    Args:
        file_name: Source file name (a path is reduced to its name).
        mappings: Candidate mappings.
    """
    name = Path(file_name).name.lower()

    for mapping in mappings:
        expected = (mapping.expected_file_name or "").lower()
        if expected and not mapping.file_name_is_prefix and expected == name:
            return mapping

    best: Optional[MappingDefinition] = None
    for mapping in mappings:
        expected = (mapping.expected_file_name or "").lower()
        if expected and mapping.file_name_is_prefix and name.startswith(expected):
            if best is None or len(expected) > len(best.expected_file_name or ""):
                best = mapping
    if best is not None:
        return best

    defaults = [m for m in mappings if not (m.expected_file_name or "").strip()]
    if len(defaults) == 1:
        return defaults[0]
    return None


def discover_source_files(source: Union[str, Path]) -> List[Path]:
    """Source files to process: the file itself, or a folder's known files.

    Raises:
        FileNotFoundError: If ``source`` does not exist.
    """
    path = Path(source)
    if path.is_file():
        return [path]
    if not path.is_dir():
        raise FileNotFoundError("Source path not found: {}".format(path))
    return sorted(
        (p for p in path.iterdir() if p.is_file() and config.detect_file_type(p) is not None),
        key=lambda p: p.name.lower(),
    )


def _resolve_output_path(stem: str, extension: str, output_dir: Path) -> Path:
    """Return ``{stem}{extension}`` in output_dir, or the first free ``{stem}-N``."""
    base_path = output_dir / "{}{}".format(stem, extension)
    if not base_path.exists():
        return base_path

    counter = 2
    while True:
        candidate = output_dir / "{}-{}{}".format(stem, counter, extension)
        if not candidate.exists():
            return candidate
        counter += 1


def convert_one(
    source: Path,
    output_dir: Path,
    mapping: MappingDefinition,
    cancel_event: Optional[threading.Event] = None,
) -> FileResult:
    """Convert a single routed file and capture its outcome."""
    result = FileResult(source=source, status=FileStatus.CONVERTED, mapping_name=mapping.name)

    def on_warning(record_index: int, target_name: str, message: str) -> None:
        result.warnings.append(TransformationWarning(record_index, target_name, message))
        logger.warning("Row %d, field '%s': %s", record_index, target_name, message)

    target = _resolve_output_path(source.stem, config.FILE_TYPE_EXTENSIONS[mapping.target_type], output_dir)
    try:
        result.records = convert_file(source, target, mapping, on_warning, cancel_event)
        result.target = target
        logger.info("Success: %d record(s) written to %s", result.records, target)
    except ConversionCancelled:
        result.status = FileStatus.CANCELLED
        logger.warning("Conversion of %s cancelled", source)
    except (FileMapperError, OSError) as exc:
        result.status = FileStatus.FAILED
        result.error = str(exc)
        logger.error("Conversion failed for '%s': %s", source, exc)
    except Exception as exc:
        result.status = FileStatus.FAILED
        result.error = str(exc)
        logger.exception("Unexpected error converting '%s'", source)
    return result


def run_batch(
    source: Union[str, Path],
    output_dir: Union[str, Path],
    mappings: Sequence[MappingDefinition],
    cancel_event: Optional[threading.Event] = None,
) -> BatchSummary:
    """Convert every routable file under ``source`` into ``output_dir``.

    Args:
        source: A single file or a folder of source files.
        output_dir: Folder for converted files (created if missing).
        mappings: Mappings available for routing.
        cancel_event: Optional flag checked between and during files.

    Returns:
        BatchSummary with per-file results.

    Raises:
        FileNotFoundError: If ``source`` does not exist.
    """
    files = discover_source_files(source)
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    logger.info("Found %d source file(s) in %s", len(files), source)

    summary = BatchSummary()
    for path in files:
        if cancel_event is not None and cancel_event.is_set():
            summary.cancelled = True
            logger.warning("Batch cancelled; %d file(s) not processed", len(files) - len(summary.results))
            break

        mapping = resolve_mapping(path.name, mappings)
        if mapping is None:
            logger.warning("No mapping found for %s; skipped", path.name)
            summary.add(FileResult(source=path, status=FileStatus.SKIPPED))
            continue

        logger.info("Converting '%s' with mapping '%s'", path.name, mapping.name)
        result = convert_one(path, out, mapping, cancel_event)
        summary.add(result)
        if result.status is FileStatus.CANCELLED:
            break

    logger.info(
        "Run complete. Converted: %d. Failed: %d. Skipped: %d. Records: %d. Warnings: %d.",
        summary.converted, summary.failed, summary.skipped, summary.total_records, summary.warnings,
    )
    return summary
