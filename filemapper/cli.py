"""Command-line interface for filemapper.

WHY: Conversions run unattended (scheduled jobs, drop folders) and
mappings are authored by hand. The CLI covers both: ``convert`` runs the
batch driver, ``fields`` and ``check`` support writing mapping documents.

HOW: argparse with one subparser per command. Logging goes to stderr via
logging.basicConfig, plus a per-run log file for ``convert``. Human
readable listings go to stdout so they can be piped.

RULES:
- convert: exit 0 when every file converted or was skipped, 1 when any
  file failed, 2 on configuration errors (bad mapping, missing paths)
- --mapping uses one mapping document; otherwise all ``*.map.json`` in
  --mappings-dir (default: FILEMAPPER_MAPPINGS_DIR) are routed by file name
- fields: prints ``path -> name`` per discovered field; --scaffold also
  writes an identity mapping document
- check: prints one line per field mapping; exit 1 on any Error
- Status output goes to stderr (not stdout)
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from filemapper import config
from filemapper.authoring import check_mapping, discover_fields, scaffold_mapping
from filemapper.batch import run_batch
from filemapper.core.errors import ConfigurationError, FileMapperError
from filemapper.core.models import FileType, FlatteningConfiguration
from filemapper.core.serialization import MAPPING_FILE_SUFFIX, load_columns, load_mapping, load_mappings_dir, save_mapping
from filemapper.core.validation import Severity

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _configure_logging(verbose: bool, log_file: Optional[Path] = None) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL, logging.INFO)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def _default_log_file() -> Path:
    return Path(config.LOG_DIR) / "run-{}.log".format(datetime.now().strftime("%Y%m%d-%H%M%S"))


def _cmd_convert(args: argparse.Namespace) -> int:
    log_file = Path(args.log_file) if args.log_file else _default_log_file()
    _configure_logging(args.verbose, log_file)
    logger.info("filemapper convert starting: %s", args.source)

    try:
        if args.mapping:
            # An explicit mapping applies to every file regardless of its name
            mapping = load_mapping(args.mapping)
            mappings = [replace(mapping, expected_file_name=None, file_name_is_prefix=False)]
        else:
            mappings = load_mappings_dir(args.mappings_dir)
        if not mappings:
            raise ConfigurationError("No mappings available")
        summary = run_batch(args.source, args.output_dir, mappings)
    except (ConfigurationError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG

    _status("Converted {} file(s), {} failed, {} skipped; {} record(s), {} warning(s).".format(
        summary.converted, summary.failed, summary.skipped, summary.total_records, summary.warnings,
    ))
    return EXIT_FAILED if summary.failed else EXIT_OK


def _cmd_fields(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    try:
        file_type = FileType.from_value(args.type) if args.type else config.detect_file_type(args.sample)
        if file_type is None:
            raise ConfigurationError("Cannot detect file type of {}; use --type".format(args.sample))
        columns = load_columns(args.columns) if args.columns else None

        flattening = FlatteningConfiguration(enabled=args.flatten)
        for found in discover_fields(args.sample, file_type, columns, flattening):
            print("{} -> {}".format(found.path, found.name))

        if args.scaffold:
            if not args.target_type:
                raise ConfigurationError("--scaffold requires --target-type")
            mapping = scaffold_mapping(
                args.sample,
                name=_mapping_name(args.scaffold),
                source_type=file_type,
                target_type=args.target_type,
                flatten_paths=args.flatten,
                fixed_width_columns=columns,
            )
            save_mapping(mapping, args.scaffold)
            _status("Saved mapping: {}".format(args.scaffold))
    except ValueError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG
    except FileMapperError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG if isinstance(exc, ConfigurationError) else EXIT_FAILED
    return EXIT_OK


def _mapping_name(path: str) -> str:
    name = Path(path).name
    if name.lower().endswith(MAPPING_FILE_SUFFIX):
        return name[:-len(MAPPING_FILE_SUFFIX)]
    return Path(name).stem


def _cmd_check(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    try:
        mapping = load_mapping(args.mapping)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG

    blocked = False
    for field_mapping, result in check_mapping(mapping):
        print("{} [{}] {} -> {}: {}".format(
            result.severity.value.upper(),
            field_mapping.target_name,
            field_mapping.source_data_type or "-",
            field_mapping.target_data_type or "-",
            result.message,
        ))
        blocked = blocked or result.severity is Severity.ERROR
    return EXIT_FAILED if blocked else EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI."""
    types = ", ".join(t.value for t in FileType)
    parser = argparse.ArgumentParser(
        prog="filemapper",
        description="Convert records between JSON, CSV, XML, XLSX and fixed-width "
                    "files using declarative mapping documents.",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    convert = sub.add_parser("convert", parents=[common], help="Convert a file or a folder of files.")
    convert.add_argument("source", help="Source file or folder.")
    group = convert.add_mutually_exclusive_group()
    group.add_argument("--mapping", default=None, help="Mapping document applied to every file.")
    group.add_argument(
        "--mappings-dir",
        default=config.MAPPINGS_DIR,
        help="Folder of *.map.json documents routed by file name (default: %(default)s).",
    )
    convert.add_argument(
        "--output-dir",
        default=config.OUTPUT_DIR,
        help="Folder for converted files (default: %(default)s).",
    )
    convert.add_argument(
        "--log-file",
        default=None,
        help="Run log file (default: run-<timestamp>.log in {}).".format(config.LOG_DIR),
    )
    convert.set_defaults(handler=_cmd_convert)

    fields = sub.add_parser("fields", parents=[common], help="List the fields of a sample file.")
    fields.add_argument("sample", help="Sample source file.")
    fields.add_argument("--type", default=None, help="Source type ({}); default from extension.".format(types))
    fields.add_argument("--flatten", action="store_true", help="Show short names for JSON/XML paths.")
    fields.add_argument("--columns", default=None, help="JSON file of fixed-width column definitions.")
    fields.add_argument("--scaffold", default=None, help="Write an identity mapping document to this path.")
    fields.add_argument("--target-type", default=None, help="Target type for --scaffold ({}).".format(types))
    fields.set_defaults(handler=_cmd_fields)

    check = sub.add_parser("check", parents=[common], help="Check the type hints of a mapping document.")
    check.add_argument("mapping", help="Mapping document (.map.json).")
    check.set_defaults(handler=_cmd_check)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing; the exit code is returned
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
