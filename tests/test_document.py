"""Tests for whole-document sanitization."""

import copy
import math
from datetime import datetime, timezone

import pytest

from drivejsondb import VERSION, ColumnType, Document, Table, coerce_rows, sanitize_columns, sanitize_document


def raw_document():
    return {
        "version": "0.3",
        "tables": {
            "people": {
                "columns": [
                    {"name": "id", "type": "number", "ai": True},
                    {"name": "name", "type": "string"},
                    {"name": "born", "type": "date"},
                ],
                "data": [
                    [1, "Ada", "1815-12-10"],
                    ["2", 7, "nonsense"],
                    [3, "too short"],
                    "not a row",
                    [4, "Alan", "1912-06-23", "extra"],
                ],
            },
            "broken": {"columns": [{"name": "only"}], "data": [[1]]},
            "empty": {"columns": []},
        },
    }


class TestSanitizeDocument:
    def test_version_is_stamped(self):
        document = sanitize_document(raw_document())
        assert document.version == VERSION

    def test_missing_tables_defaults_to_empty(self):
        assert sanitize_document({"version": VERSION}) == Document(version=VERSION, tables={})
        assert sanitize_document({"tables": None}).tables == {}

    def test_tables_with_empty_schema_are_removed(self):
        document = sanitize_document(raw_document())
        assert list(document.tables) == ["people"]

    def test_rows_are_coerced_and_malformed_rows_dropped(self):
        people = sanitize_document(raw_document()).tables["people"]
        assert len(people.data) == 2
        assert people.data[0] == (1, "Ada", datetime(1815, 12, 10, tzinfo=timezone.utc))
        assert people.data[1][:2] == (2, "7")

    def test_every_row_matches_column_count(self):
        document = sanitize_document(raw_document())
        for table in document.tables.values():
            assert all(len(row) == len(table.columns) for row in table.data)

    def test_idempotent(self):
        once = sanitize_document(raw_document())
        twice = sanitize_document(once)
        assert twice == once
        assert sanitize_document(once.to_dict()) == once

    def test_input_is_not_modified(self):
        raw = raw_document()
        before = copy.deepcopy(raw)
        sanitize_document(raw)
        assert raw == before

    def test_non_mapping_input(self):
        assert sanitize_document(None).tables == {}
        assert sanitize_document({"tables": ["a", "b"]}).tables == {}

    def test_table_schema_is_sanitized(self):
        people = sanitize_document(raw_document()).tables["people"]
        assert people.column_names == ["id", "name", "born"]
        assert people.column("id").autoincrement
        assert people.column("born").type is ColumnType.DATE
        assert people.column("missing") is None


class TestCoerceRows:
    def test_only_list_data_is_considered(self):
        columns = sanitize_columns([{"name": "a", "type": "number"}])
        assert coerce_rows(columns, "abc") == []
        assert coerce_rows(columns, {"0": [1]}) == []

    def test_cells_coerced_by_position(self):
        columns = sanitize_columns([
            {"name": "n", "type": "number"},
            {"name": "ok", "type": "boolean"},
            {"name": "tags", "type": "array"},
        ])
        rows = coerce_rows(columns, [["x", "TRUE", "ab"]])
        assert len(rows) == 1
        n, ok, tags = rows[0]
        assert math.isnan(n)
        assert ok is True
        assert tags == ["a", "b"]


class TestDocumentSnapshots:
    def test_with_table_shares_untouched_tables(self):
        document = sanitize_document({
            "tables": {
                "a": {"columns": [{"name": "x", "type": "string"}]},
                "b": {"columns": [{"name": "y", "type": "string"}]},
            }
        })
        changed = document.with_table("a", document.tables["a"].with_data([["1"]]))
        assert changed.tables["b"] is document.tables["b"]
        assert document.tables["a"].data == ()
        assert changed.tables["a"].data == (("1",),)

    def test_without_table(self):
        document = sanitize_document({"tables": {"a": {"columns": [{"name": "x", "type": "string"}]}}})
        assert document.without_table("a").tables == {}
        assert "a" in document.tables

    def test_tables_mapping_is_read_only(self):
        raw_tables = {"a": {"columns": [{"name": "x", "type": "string"}]}}
        document = sanitize_document({"tables": raw_tables})
        with pytest.raises(TypeError):
            document.tables["b"] = document.tables["a"]
        with pytest.raises(TypeError):
            del document.tables["a"]
        assert list(document.tables) == ["a"]

    def test_constructor_copies_the_tables_mapping(self):
        tables = {}
        document = Document(tables=tables)
        tables["late"] = Table(columns=())
        assert document.tables == {}
        assert document.to_dict() == {"version": VERSION, "tables": {}}
