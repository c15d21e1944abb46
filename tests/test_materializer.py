"""Tests for row materialization in pqtools/parquet/materializer.py."""

from __future__ import annotations

import pyarrow as pa
import pytest

from pqtools.parquet import ReconstructError, batch_to_records


class _BrokenColumn:
    """Column whose values cannot be decoded."""

    def to_pylist(self):
        raise pa.ArrowInvalid("invalid UTF-8 payload")


class _BrokenBatch:
    """Minimal stand-in for a RecordBatch with one undecodable column."""

    schema = pa.schema([("ok", pa.int64()), ("payload", pa.string())])
    num_rows = 3

    def column(self, i):
        if i == 0:
            return pa.array([1, 2, 3])
        return _BrokenColumn()


class TestBatchToRecords:
    """Tests for batch_to_records() function."""

    def test_flat_rows(self):
        batch = pa.RecordBatch.from_pylist([
            {"id": 1, "name": "a", "score": 0.5, "ok": True},
            {"id": 2, "name": "b", "score": 1.5, "ok": False},
        ])
        assert batch_to_records(batch) == [
            {"id": 1, "name": "a", "score": 0.5, "ok": True},
            {"id": 2, "name": "b", "score": 1.5, "ok": False},
        ]

    def test_field_order_and_case_preserved(self):
        """Keys come back exactly as declared, in declaration order."""
        batch = pa.RecordBatch.from_pylist([{"Zeta": 1, "alpha": 2, "MiXeD": 3}])
        record = batch_to_records(batch)[0]
        assert list(record) == ["Zeta", "alpha", "MiXeD"]

    def test_no_fields_added_or_dropped(self):
        """Null values keep their key."""
        batch = pa.RecordBatch.from_pylist([{"a": None, "b": 1}])
        assert batch_to_records(batch) == [{"a": None, "b": 1}]

    def test_nested_struct_and_list(self):
        records = [{"user": {"name": "ada", "langs": ["en", "fr"]}, "scores": [[1, 2], [3]]}]
        batch = pa.RecordBatch.from_pylist(records)
        assert batch_to_records(batch) == records

    def test_map_becomes_dict(self):
        """Map columns are returned as dicts rather than lists of pairs."""
        map_type = pa.map_(pa.string(), pa.int64())
        batch = pa.RecordBatch.from_arrays(
            [pa.array([[("a", 1), ("b", 2)], None, []], type=map_type)],
            names=["counts"],
        )
        assert batch_to_records(batch) == [
            {"counts": {"a": 1, "b": 2}},
            {"counts": None},
            {"counts": {}},
        ]

    def test_map_inside_struct_and_list(self):
        map_type = pa.map_(pa.string(), pa.string())
        struct_type = pa.struct([("labels", map_type), ("n", pa.int32())])
        array = pa.array(
            [[{"labels": [("env", "prod")], "n": 1}], [{"labels": None, "n": 2}]],
            type=pa.list_(struct_type),
        )
        batch = pa.RecordBatch.from_arrays([array], names=["items"])
        assert batch_to_records(batch) == [
            {"items": [{"labels": {"env": "prod"}, "n": 1}]},
            {"items": [{"labels": None, "n": 2}]},
        ]

    def test_map_with_nested_keys_stays_pairs(self):
        """Maps keyed by structs cannot become dicts."""
        key_type = pa.struct([("x", pa.int64())])
        map_type = pa.map_(key_type, pa.string())
        batch = pa.RecordBatch.from_arrays(
            [pa.array([[({"x": 1}, "one")]], type=map_type)],
            names=["m"],
        )
        assert batch_to_records(batch) == [{"m": [[{"x": 1}, "one"]]}]

    def test_dictionary_encoded_column(self):
        array = pa.array(["red", "blue", "red"]).dictionary_encode()
        batch = pa.RecordBatch.from_arrays([array], names=["color"])
        assert [r["color"] for r in batch_to_records(batch)] == ["red", "blue", "red"]

    def test_table_input(self):
        """Tables with several chunks are accepted as well as batches."""
        table = pa.concat_tables([
            pa.table({"id": [1, 2]}),
            pa.table({"id": [3]}),
        ])
        assert batch_to_records(table) == [{"id": 1}, {"id": 2}, {"id": 3}]

    def test_empty_batch(self):
        batch = pa.RecordBatch.from_pylist([], schema=pa.schema([("id", pa.int64())]))
        assert batch_to_records(batch) == []

    def test_decode_failure_raises(self):
        """A column that cannot be decoded raises ReconstructError naming it."""
        with pytest.raises(ReconstructError) as exc_info:
            batch_to_records(_BrokenBatch(), first_row=40)

        message = str(exc_info.value)
        assert "payload" in message
        assert "40-42" in message
        assert isinstance(exc_info.value.__cause__, pa.ArrowInvalid)

    def test_decode_failure_names_file(self, tmp_path):
        """The source file is part of the error so the CLI message can name it."""
        source = tmp_path / "events.parquet"
        with pytest.raises(ReconstructError) as exc_info:
            batch_to_records(_BrokenBatch(), first_row=0, path=source)

        assert str(source) in str(exc_info.value)
        assert exc_info.value.path == str(source)
