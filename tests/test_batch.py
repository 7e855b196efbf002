"""Tests for the batch driver (batch.py).

WHY: A drop folder mixes files from several senders. Routing decides
which mapping each file gets, and a single bad file must not stop the
run or overwrite earlier output.

HOW: resolve_mapping() is tested with bare MappingDefinitions; run_batch()
with small CSV files in tmp_path.

RULES:
- Exact names beat prefixes; the longest prefix wins among prefixes
- A single mapping without a file name is the default; two defaults
  means no default
- Unrouted files are skipped, broken files fail, the rest convert
"""

from __future__ import annotations

import json
import logging
import threading

import pytest

from filemapper.batch import (
    BatchSummary,
    FileResult,
    FileStatus,
    discover_source_files,
    resolve_mapping,
    run_batch,
)
from filemapper.core.models import FieldMapping, FileType, MappingDefinition


def _mapping(name, expected=None, prefix=False, source=FileType.CSV, target=FileType.JSON):
    return MappingDefinition(
        name=name,
        source_type=source,
        target_type=target,
        field_mappings=(FieldMapping("id", "Id"),),
        expected_file_name=expected,
        file_name_is_prefix=prefix,
    )


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


class TestResolveMapping:
    def test_exact_name_beats_prefix(self):
        exact = _mapping("exact", "orders.csv")
        prefix = _mapping("prefix", "orders", prefix=True)
        assert resolve_mapping("orders.csv", [prefix, exact]) is exact

    def test_exact_name_matches_case_insensitively(self):
        exact = _mapping("exact", "ORDERS.CSV")
        assert resolve_mapping("orders.csv", [exact]) is exact

    def test_exact_name_needs_the_extension(self):
        exact = _mapping("exact", "orders")
        fallback = _mapping("fallback", None)
        assert resolve_mapping("orders.csv", [exact]) is None
        assert resolve_mapping("orders.csv", [exact, fallback]) is fallback

    def test_longest_prefix_wins(self):
        short = _mapping("short", "ord", prefix=True)
        long = _mapping("long", "orders_eu", prefix=True)
        assert resolve_mapping("orders_eu_2024.csv", [short, long]) is long
        assert resolve_mapping("ord_us.csv", [short, long]) is short

    def test_single_default(self):
        default = _mapping("default")
        other = _mapping("other", "invoices", prefix=True)
        assert resolve_mapping("people.csv", [other, default]) is default

    def test_two_defaults_are_ambiguous(self):
        assert resolve_mapping("people.csv", [_mapping("a"), _mapping("b")]) is None

    def test_no_match(self):
        assert resolve_mapping("people.csv", [_mapping("x", "orders.csv")]) is None

    def test_path_reduced_to_name(self):
        exact = _mapping("exact", "people.csv")
        assert resolve_mapping("/drop/in/people.csv", [exact]) is exact


# ---------------------------------------------------------------------------
# File discovery
# ---------------------------------------------------------------------------


class TestDiscoverSourceFiles:
    def test_single_file(self, people_csv):
        assert discover_source_files(people_csv) == [people_csv]

    def test_folder_known_extensions_sorted(self, tmp_path):
        for name in ("b.csv", "A.json", "notes.md", "c.xlsx"):
            (tmp_path / name).write_text("", encoding="utf-8")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "d.csv").write_text("", encoding="utf-8")

        names = [p.name for p in discover_source_files(tmp_path)]
        assert names == ["A.json", "b.csv", "c.xlsx"]

    def test_missing_source(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            discover_source_files(tmp_path / "missing")


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


class TestBatchSummary:
    def test_add_tallies(self, tmp_path):
        summary = BatchSummary()
        summary.add(FileResult(source=tmp_path / "a", status=FileStatus.CONVERTED, records=3))
        summary.add(FileResult(source=tmp_path / "b", status=FileStatus.FAILED, error="bad"))
        summary.add(FileResult(source=tmp_path / "c", status=FileStatus.SKIPPED))

        assert (summary.converted, summary.failed, summary.skipped) == (1, 1, 1)
        assert summary.total_records == 3
        assert not summary.cancelled


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


@pytest.fixture
def drop_folder(tmp_path):
    folder = tmp_path / "drop"
    folder.mkdir()
    (folder / "people_1.csv").write_text("id,name\n1,Ada\n2,Alan\n", encoding="utf-8")
    (folder / "people_2.csv").write_text('id,name\n3,"unclosed\n', encoding="utf-8")
    (folder / "stray.json").write_text("[]", encoding="utf-8")
    return folder


class TestRunBatch:
    def test_mixed_outcomes(self, drop_folder, tmp_path, caplog):
        out = tmp_path / "out"
        mapping = _mapping("people", "people_", prefix=True)

        with caplog.at_level(logging.INFO, logger="filemapper.batch"):
            summary = run_batch(drop_folder, out, [mapping])

        by_name = {r.source.name: r for r in summary.results}
        assert by_name["people_1.csv"].status is FileStatus.CONVERTED
        assert by_name["people_1.csv"].records == 2
        assert by_name["people_2.csv"].status is FileStatus.FAILED
        assert by_name["people_2.csv"].error
        assert by_name["stray.json"].status is FileStatus.SKIPPED

        assert (summary.converted, summary.failed, summary.skipped) == (1, 1, 1)
        assert json.loads((out / "people_1.json").read_text(encoding="utf-8")) == [{"Id": "1"}, {"Id": "2"}]
        assert "Run complete" in caplog.text

    def test_existing_output_gets_numeric_suffix(self, people_csv, tmp_path):
        out = tmp_path / "out"
        out.mkdir()
        (out / "people.json").write_text("keep", encoding="utf-8")

        summary = run_batch(people_csv, out, [_mapping("people")])

        assert summary.results[0].target == out / "people-2.json"
        assert (out / "people.json").read_text(encoding="utf-8") == "keep"

    def test_warnings_counted(self, people_csv, tmp_path):
        mapping = MappingDefinition(
            name="people",
            source_type=FileType.CSV,
            target_type=FileType.CSV,
            field_mappings=(FieldMapping("id", "Id", source_data_type="string", target_data_type="int",
                                         type_warning_acknowledged=True),),
        )
        summary = run_batch(people_csv, tmp_path / "out", [mapping])

        assert summary.warnings == 2
        assert [w.record_index for w in summary.results[0].warnings] == [0, 1]

    def test_cancelled_before_first_file(self, drop_folder, tmp_path):
        event = threading.Event()
        event.set()
        summary = run_batch(drop_folder, tmp_path / "out", [_mapping("people")], cancel_event=event)

        assert summary.cancelled
        assert summary.results == []
        assert list((tmp_path / "out").iterdir()) == []

    def test_missing_source(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            run_batch(tmp_path / "missing", tmp_path / "out", [])
