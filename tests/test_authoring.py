"""Tests for the mapping authoring helpers (authoring.py).

WHY: Authoring is where type problems are caught and where deep source
paths get their short names. A mapping that slips through here runs
unattended later.

HOW: Field discovery runs against the conftest sample files; the type
gate is exercised with hint pairs from each severity.

RULES:
- Flattened names only for hierarchical sources with flattening enabled
- Error-level hints block; warning-level hints need acknowledgement
- A scaffolded mapping converts its sample file end to end
"""

from __future__ import annotations

import csv

import pytest

from filemapper.authoring import (
    DiscoveredField,
    create_field_mapping,
    discover_fields,
    scaffold_mapping,
)
from filemapper.core.engine import convert_file
from filemapper.core.errors import TypeCompatibilityError, TypeWarningNotAcknowledged
from filemapper.core.models import FileType, FlatteningConfiguration, TransformationRule, TransformationType
from filemapper.core.validation import Severity


class TestDiscoverFields:
    def test_flat_source_names_are_paths(self, people_csv):
        fields = discover_fields(people_csv, "csv")
        assert fields == [DiscoveredField("id", "id"), DiscoveredField("name", "name"),
                          DiscoveredField("city", "city")]

    def test_xml_flattened(self, orders_xml):
        fields = discover_fields(orders_xml, FileType.XML, flattening=FlatteningConfiguration(enabled=True))
        assert [(f.path, f.name) for f in fields] == [
            ("Order/@id", "@id"),
            ("Order/Customer/Name", "Name"),
            ("Order/Customer/Email", "Email"),
            ("Order/Total", "Total"),
        ]

    def test_flattening_disabled(self, orders_xml):
        fields = discover_fields(orders_xml, FileType.XML, flattening=FlatteningConfiguration(enabled=False))
        assert all(f.path == f.name for f in fields)

    def test_flattening_ignored_for_flat_sources(self, people_csv):
        fields = discover_fields(people_csv, FileType.CSV, flattening=FlatteningConfiguration(enabled=True))
        assert [f.name for f in fields] == ["id", "name", "city"]

    def test_fixed_width_columns(self, stock_txt, stock_columns):
        fields = discover_fields(stock_txt, FileType.FIXEDWIDTH, fixed_width_columns=stock_columns)
        assert [f.path for f in fields] == ["code", "name", "qty"]


class TestCreateFieldMapping:
    def test_no_hints(self):
        rule = TransformationRule(TransformationType.TRIM)
        mapping = create_field_mapping("customer/name", "Name", transformation=rule)
        assert mapping.source_path == "customer/name"
        assert mapping.transformation == rule
        assert not mapping.type_warning_acknowledged

    def test_error_blocks(self):
        with pytest.raises(TypeCompatibilityError) as excinfo:
            create_field_mapping("created", "Flag", "datetime", "bool")
        assert excinfo.value.result.severity is Severity.ERROR

    def test_warning_needs_acknowledgement(self):
        with pytest.raises(TypeWarningNotAcknowledged):
            create_field_mapping("qty", "Qty", "int", "string")

    def test_acknowledged_warning(self):
        mapping = create_field_mapping("qty", "Qty", "int", "string", acknowledge_warning=True)
        assert mapping.type_warning_acknowledged

    def test_matching_hints_not_flagged(self):
        mapping = create_field_mapping("qty", "Qty", "int", "INT", acknowledge_warning=True)
        assert not mapping.type_warning_acknowledged


class TestScaffoldMapping:
    def test_json_scaffold_uses_short_names(self, orders_json):
        mapping = scaffold_mapping(orders_json, "orders", "json", "csv")
        assert mapping.flattening.enabled
        assert [(f.source_path, f.target_name) for f in mapping.field_mappings] == [
            ("id", "id"),
            ("customer/name", "name"),
            ("customer/email", "email"),
            ("total", "total"),
        ]

    def test_scaffold_converts_sample(self, orders_json, tmp_path):
        mapping = scaffold_mapping(orders_json, "orders", FileType.JSON, FileType.CSV)
        target = tmp_path / "orders.csv"
        convert_file(orders_json, target, mapping)

        with target.open(encoding="utf-8", newline="") as handle:
            rows = list(csv.reader(handle))
        assert rows[0] == ["id", "name", "email", "total"]
        assert rows[1] == ["1001", "Ada Lovelace", "ada@example.com", "12.50"]

    def test_fixed_width_columns_carried(self, stock_txt, stock_columns):
        mapping = scaffold_mapping(stock_txt, "stock", "fixedwidth", "fixedwidth",
                                   fixed_width_columns=stock_columns)
        assert mapping.source_fixed_width_columns == stock_columns
        assert mapping.target_fixed_width_columns == stock_columns
        assert not mapping.flattening.enabled
