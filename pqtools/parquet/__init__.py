"""
Parquet access layer for pqtools.

This module provides windowed, streaming access to Apache Parquet files on top
of pyarrow, plus schema introspection and a typed error taxonomy.

Usage:
    from pqtools.parquet import ParquetReader

    with ParquetReader("data.parquet") as reader:
        print(reader.count())
        for record in reader.head(10):
            print(record)
"""

from pqtools.parquet.errors import (
    CorruptFileError,
    EmptyFileError,
    InvalidFormatError,
    NoSchemaError,
    NotFoundError,
    ParquetToolError,
    ReconstructError,
    WriteError,
    codec_guard,
)
from pqtools.parquet.format_detector import (
    MIN_FILE_SIZE,
    PARQUET_MAGIC,
    validate_parquet_file,
)
from pqtools.parquet.materializer import Record, batch_to_records
from pqtools.parquet.reader import DEFAULT_BATCH_SIZE, ParquetReader
from pqtools.parquet.schema import FieldDescriptor, describe, describe_fields

__all__ = [
    # Reader
    "ParquetReader",
    "DEFAULT_BATCH_SIZE",
    # Materialization
    "Record",
    "batch_to_records",
    # Schema
    "FieldDescriptor",
    "describe",
    "describe_fields",
    # Format detection
    "PARQUET_MAGIC",
    "MIN_FILE_SIZE",
    "validate_parquet_file",
    # Errors
    "ParquetToolError",
    "NotFoundError",
    "InvalidFormatError",
    "CorruptFileError",
    "NoSchemaError",
    "ReconstructError",
    "EmptyFileError",
    "WriteError",
    "codec_guard",
]
