"""Configuration constants, file-type tables, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Extension tables and folder defaults are plain
data structures, not buried in logic, so the CLI, the batch driver and
the HTTP service agree on them.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level dicts and strings, each overridable via an environment
variable.

RULES:
- EXTENSION_FILE_TYPES maps lowercase extensions (with dot) to FileType
- ".txt" files are fixed-width text
- FILE_TYPE_EXTENSIONS gives the extension written for each target type
- All folder defaults are relative to the working directory
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional, Union

from dotenv import load_dotenv

from filemapper.core.models import FileType

# Load .env from the project root (where the tool is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# File types
# ---------------------------------------------------------------------------

EXTENSION_FILE_TYPES: Dict[str, FileType] = {
    ".json": FileType.JSON,
    ".csv": FileType.CSV,
    ".xml": FileType.XML,
    ".xlsx": FileType.XLSX,
    ".txt": FileType.FIXEDWIDTH,
}

FILE_TYPE_EXTENSIONS: Dict[FileType, str] = {
    FileType.JSON: ".json",
    FileType.CSV: ".csv",
    FileType.XML: ".xml",
    FileType.XLSX: ".xlsx",
    FileType.FIXEDWIDTH: ".txt",
}


def detect_file_type(path: Union[str, Path]) -> Optional[FileType]:
    """Map a file's extension to its FileType, or None if unrecognized."""
    return EXTENSION_FILE_TYPES.get(Path(path).suffix.lower())


# ---------------------------------------------------------------------------
# Defaults (overridable via environment / .env)
# ---------------------------------------------------------------------------

MAPPINGS_DIR = os.getenv("FILEMAPPER_MAPPINGS_DIR", "mappings")
OUTPUT_DIR = os.getenv("FILEMAPPER_OUTPUT_DIR", "output")
LOG_DIR = os.getenv("FILEMAPPER_LOG_DIR", "logs")
LOG_LEVEL = os.getenv("FILEMAPPER_LOG_LEVEL", "INFO").upper()
CSV_DELIMITER = os.getenv("FILEMAPPER_CSV_DELIMITER", ",")
FILE_ENCODING = os.getenv("FILEMAPPER_FILE_ENCODING", "utf-8")

# HTTP service
API_HOST = os.getenv("FILEMAPPER_API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("FILEMAPPER_API_PORT", "8000"))
