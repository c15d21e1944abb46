"""Pytest configuration and shared fixtures for pqtools tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

SAMPLE_ROWS = 100

# Small row groups so windows cross row group boundaries
SAMPLE_ROW_GROUP_SIZE = 16


def create_parquet_file(
    filepath: Path,
    records: list[dict[str, Any]],
    schema: pa.Schema | None = None,
    row_group_size: int | None = None,
    compression: str = "snappy",
) -> None:
    """Helper to create a Parquet file from records."""
    table = pa.Table.from_pylist(records, schema=schema)
    pq.write_table(table, filepath, row_group_size=row_group_size, compression=compression)


def make_record(i: int) -> dict[str, Any]:
    """Return the i-th sample record."""
    return {
        "id": i,
        "Name": f"row-{i}",
        "score": i * 1.5,
        "active": i % 2 == 0,
        "tags": [f"t{j}" for j in range(i % 3)],
        "meta": {"Source": "generator", "rank": SAMPLE_ROWS - i},
    }


@pytest.fixture
def sample_records() -> list[dict[str, Any]]:
    """Return the records stored in sample_parquet."""
    return [make_record(i) for i in range(SAMPLE_ROWS)]


@pytest.fixture
def sample_parquet(tmp_path, sample_records) -> Path:
    """Create a 100-row Parquet file split over several row groups."""
    filepath = tmp_path / "sample.parquet"
    create_parquet_file(filepath, sample_records, row_group_size=SAMPLE_ROW_GROUP_SIZE)
    return filepath


@pytest.fixture
def empty_parquet(tmp_path) -> Path:
    """Create a valid Parquet file with a schema and zero rows."""
    filepath = tmp_path / "empty.parquet"
    schema = pa.schema([("id", pa.int64()), ("name", pa.string())])
    pq.write_table(schema.empty_table(), filepath)
    return filepath


@pytest.fixture
def not_parquet_file(tmp_path) -> Path:
    """Create a file that is not Parquet at all."""
    filepath = tmp_path / "notes.parquet"
    filepath.write_text('{"id": 1, "name": "this is jsonl"}\n')
    return filepath


@pytest.fixture
def truncated_parquet(tmp_path, sample_parquet) -> Path:
    """Create a copy of sample_parquet with its footer cut off."""
    filepath = tmp_path / "truncated.parquet"
    data = sample_parquet.read_bytes()
    filepath.write_bytes(data[: len(data) // 2])
    return filepath


@pytest.fixture
def garbage_parquet(tmp_path) -> Path:
    """Create a file with valid magic markers around garbage bytes."""
    filepath = tmp_path / "garbage.parquet"
    filepath.write_bytes(b"PAR1" + b"\x07" * 64 + b"PAR1")
    return filepath


@pytest.fixture
def damaged_parquet(tmp_path) -> Path:
    """Create a 2000-row file in row groups of 500 whose last row group cannot be decoded.

    The footer is intact, so the file opens and reports its row count, but the
    data page of row group 3 (rows 1500-1999) is overwritten.
    """
    filepath = tmp_path / "damaged.parquet"
    table = pa.table({"id": list(range(2000))})
    pq.write_table(table, filepath, row_group_size=500, compression="none", use_dictionary=False)

    column = pq.read_metadata(filepath).row_group(3).column(0)
    with open(filepath, "r+b") as f:
        f.seek(column.data_page_offset)
        f.write(b"\xff" * column.total_compressed_size)
    return filepath
