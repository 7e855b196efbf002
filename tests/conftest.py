"""Shared test fixtures for the filemapper test suite.

WHY: Parser, engine, batch, CLI and API tests all need the same small
sample files in every supported format. Centralizing them keeps the
expected values in one place.

HOW: Each fixture writes one sample file into pytest's tmp_path and
returns its Path. Spreadsheet samples are built with openpyxl.

RULES:
- Sample contents are tiny and hand-checkable
- Every fixture writes into its own tmp_path (no shared state)
- orders.json and orders.xml describe the same two orders
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from openpyxl import Workbook

from filemapper.core.models import FieldMapping, FileType, FixedWidthColumn, MappingDefinition

ORDERS = [
    {"id": "1001", "customer": {"name": "Ada Lovelace", "email": "ada@example.com"}, "total": "12.50"},
    {"id": "1002", "customer": {"name": "Alan Turing", "email": "alan@example.com"}, "total": "7.00"},
]

ORDERS_XML = """<?xml version="1.0" encoding="utf-8"?>
<Orders>
  <Order id="1001">
    <Customer>
      <Name>Ada Lovelace</Name>
      <Email>ada@example.com</Email>
    </Customer>
    <Total>12.50</Total>
  </Order>
  <Order id="1002">
    <Customer>
      <Name>Alan Turing</Name>
      <Email>alan@example.com</Email>
    </Customer>
    <Total>7.00</Total>
  </Order>
</Orders>
"""

PEOPLE_CSV = "id,name,city\n1,Ada,London\n2,Alan,Wilmslow\n"

# Columns: code [0, 4), name [4, 14), qty [14, 17)
FIXED_WIDTH_COLUMNS = (
    FixedWidthColumn(name="code", start_position=0, length=4),
    FixedWidthColumn(name="name", start_position=4, length=10),
    FixedWidthColumn(name="qty", start_position=14, length=3),
)
FIXED_WIDTH_TEXT = "A001Widget    5\nB002Gadget    12\n\nC003Gizmo\n"


@pytest.fixture
def orders_json(tmp_path) -> Path:
    path = tmp_path / "orders.json"
    path.write_text(json.dumps(ORDERS), encoding="utf-8")
    return path


@pytest.fixture
def orders_xml(tmp_path) -> Path:
    path = tmp_path / "orders.xml"
    path.write_text(ORDERS_XML, encoding="utf-8")
    return path


@pytest.fixture
def people_csv(tmp_path) -> Path:
    path = tmp_path / "people.csv"
    path.write_text(PEOPLE_CSV, encoding="utf-8")
    return path


@pytest.fixture
def stock_txt(tmp_path) -> Path:
    path = tmp_path / "stock.txt"
    path.write_text(FIXED_WIDTH_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def people_xlsx(tmp_path) -> Path:
    """Workbook with one blank header cell (column 3) and a blank data cell."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["id", "name", None, "active"])
    sheet.append([1, "Ada", "x", True])
    sheet.append([2.5, None, "y", False])
    path = tmp_path / "people.xlsx"
    workbook.save(path)
    return path


@pytest.fixture
def people_to_json() -> MappingDefinition:
    """CSV -> JSON mapping renaming two of the three people columns."""
    return MappingDefinition(
        name="people-to-json",
        source_type=FileType.CSV,
        target_type=FileType.JSON,
        field_mappings=(
            FieldMapping(source_path="id", target_name="PersonId"),
            FieldMapping(source_path="name", target_name="FullName"),
        ),
    )


@pytest.fixture
def stock_columns():
    """Column definitions matching stock.txt."""
    return FIXED_WIDTH_COLUMNS
