"""Tests for row conversion and the JSON wire format."""

import math
from datetime import datetime, timezone

import orjson
import pytest

from drivejsondb import INVALID_DATE, DocumentDecodeError, sanitize_document
from drivejsondb.codec import dumps_document, loads_document, to_storage, to_view


class TestRowCodec:
    def test_to_view_zips_in_column_order(self):
        assert to_view((1, "a"), ["id", "name"]) == {"id": 1, "name": "a"}

    def test_to_storage_ignores_key_order(self):
        assert to_storage({"name": "a", "id": 1}, ["id", "name"]) == (1, "a")

    def test_to_storage_fills_missing_with_none(self):
        assert to_storage({"id": 1}, ["id", "name"]) == (1, None)

    def test_view_copies_array_cells(self):
        row = (["x"],)
        view = to_view(row, ["tags"])
        view["tags"].append("y")
        assert row[0] == ["x"]

    def test_duplicate_names_last_position_wins(self):
        view = to_view((1, 2), ["a", "a"])
        assert view == {"a": 2}
        assert to_storage(view, ["a", "a"]) == (2, 2)


class TestWireFormat:
    def test_top_level_fields(self):
        document = sanitize_document({
            "tables": {"t": {"columns": [{"name": "a", "type": "string"}], "data": [["x"]]}}
        })
        assert orjson.loads(dumps_document(document)) == {
            "version": "1.0",
            "tables": {"t": {"columns": [{"name": "a", "type": "string"}], "data": [["x"]]}},
        }

    def test_special_values(self):
        payload = dumps_document({
            "version": "1.0",
            "tables": {"t": {"columns": [], "data": [[math.nan, INVALID_DATE, datetime(2024, 1, 2, 3, 4, 5)]]}},
        })
        assert orjson.loads(payload)["tables"]["t"]["data"] == [[None, None, "2024-01-02T03:04:05"]]

    def test_utc_dates_end_in_z(self):
        moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        payload = dumps_document({"version": "1.0", "tables": {"t": {"columns": [], "data": [[moment]]}}})
        assert orjson.loads(payload)["tables"]["t"]["data"] == [["2024-01-02T03:04:05Z"]]

    def test_loads_round_trip(self):
        assert loads_document(b'{"version": "1.0", "tables": {}}') == {"version": "1.0", "tables": {}}

    @pytest.mark.parametrize("payload", [b"{", b"[1, 2]", b"", b"null"])
    def test_loads_rejects_non_documents(self, payload):
        with pytest.raises(DocumentDecodeError):
            loads_document(payload)
