"""FileMapper: declarative record conversion between file formats.

WHY: Teams exchange the same records as CSV exports, Excel sheets, XML
feeds, JSON payloads and legacy fixed-width files. Writing one converter
per format pair does not scale. This package bridges N source formats and
M target formats through a single canonical record model.

HOW: Three-stage pipeline: parse (one parser per source format), map
(field mappings + transformation rules from a reusable mapping document),
write (one writer per target format). Each stage is independently testable.

RULES:
- All parsers produce the same canonical Record shape
- All writers consume the same canonical Record shape
- Adding a format = one parser and/or writer module, no engine changes
- A mapping definition is read-only once loaded
"""

__version__ = "0.1.0"
