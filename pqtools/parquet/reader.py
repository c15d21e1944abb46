"""
Windowed row access for Parquet files.

This module provides the ParquetReader class, which maps an arbitrary
[start, start + count) row window onto a file's row groups and reads it in
bounded batches without loading the whole file.

Parquet can only be scanned forward from a row group boundary, so every read
goes through the same primitive: locate the row group holding the first row,
stream batches from there, and slice off the rows outside the window. Tail
reads use the row count from the footer to compute their starting row.
"""

from __future__ import annotations

import bisect
import logging
import os
from pathlib import Path
from typing import BinaryIO, Iterator

import pyarrow as pa
import pyarrow.parquet as pq

from pqtools.parquet.errors import EmptyFileError, NoSchemaError, codec_guard
from pqtools.parquet.format_detector import validate_parquet_file
from pqtools.parquet.materializer import Record, batch_to_records

logger = logging.getLogger(__name__)

# Upper bound on rows decoded at once
DEFAULT_BATCH_SIZE = 8192


class ParquetReader:
    """Reader for row windows of a Parquet file.

    The reader owns the underlying file object and the pyarrow reader built on
    it. Use it as a context manager (or call close()) so both are released on
    every exit path.

    Attributes:
        path: Path to the Parquet file.
        batch_size: Maximum number of rows decoded per batch.

    Examples:
        >>> with ParquetReader("data.parquet") as reader:
        ...     print(reader.count())
        ...     for record in reader.tail(5):
        ...         print(record)
    """

    def __init__(self, path: str | os.PathLike, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        """Open a Parquet file.

        Args:
            path: Path to the Parquet file.
            batch_size: Maximum number of rows decoded per batch.

        Raises:
            NotFoundError: If the file does not exist.
            InvalidFormatError: If the file is not a Parquet file.
            CorruptFileError: If the footer cannot be read.
            ValueError: If batch_size is not positive.
        """
        if batch_size <= 0:
            raise ValueError(f"batch size must be positive, got {batch_size}")

        self.path = Path(path)
        self.batch_size = batch_size
        self._source: BinaryIO | None = None
        self._file: pq.ParquetFile | None = None
        self._num_rows = 0
        self._row_group_starts: list[int] = []

        validate_parquet_file(self.path)
        self._source = open(self.path, "rb")
        try:
            with codec_guard(self.path, "read the footer of"):
                self._file = pq.ParquetFile(self._source)
                metadata = self._file.metadata
                self._num_rows = metadata.num_rows

                start = 0
                for i in range(metadata.num_row_groups):
                    self._row_group_starts.append(start)
                    start += metadata.row_group(i).num_rows
        except BaseException:
            self.close()
            raise

        logger.debug(
            "opened %s: %d rows in %d row groups",
            self.path,
            self._num_rows,
            len(self._row_group_starts),
        )

    def __enter__(self) -> "ParquetReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"{self._num_rows} rows"
        return f"ParquetReader({str(self.path)!r}, {state})"

    @property
    def closed(self) -> bool:
        """Return True once close() has been called."""
        return self._source is None

    def close(self) -> None:
        """Release the pyarrow reader and the file object.

        Safe to call more than once, including on a reader whose construction
        failed part way.
        """
        parquet_file, self._file = self._file, None
        source, self._source = self._source, None

        try:
            if parquet_file is not None:
                parquet_file.close()
        finally:
            if source is not None:
                source.close()

    def _require_open(self) -> pq.ParquetFile:
        if self._file is None:
            raise ValueError(f"I/O operation on closed reader for '{self.path}'")
        return self._file

    def count(self) -> int:
        """Return the total number of rows, as recorded in the footer."""
        self._require_open()
        return self._num_rows

    def schema(self) -> pq.ParquetSchema:
        """Return the Parquet schema of the file.

        Raises:
            NoSchemaError: If the footer declares no columns.
            CorruptFileError: If the schema cannot be decoded.
        """
        parquet_file = self._require_open()
        with codec_guard(self.path, "read the schema of"):
            schema = parquet_file.schema
        if schema is None or len(schema) == 0:
            raise NoSchemaError(
                f"'{self.path}' has no schema", path=self.path, operation="read schema"
            )
        return schema

    def arrow_schema(self) -> pa.Schema:
        """Return the file's schema as an Arrow schema, used when writing copies.

        Raises:
            NoSchemaError: If the footer declares no columns.
            CorruptFileError: If the schema cannot be decoded.
        """
        parquet_file = self._require_open()
        with codec_guard(self.path, "read the schema of"):
            schema = parquet_file.schema_arrow
        if schema is None or len(schema) == 0:
            raise NoSchemaError(
                f"'{self.path}' has no schema", path=self.path, operation="read schema"
            )
        return schema

    def compression(self) -> str | None:
        """Return the compression codec of the first column chunk.

        Returns:
            Codec name in lower case (e.g. 'snappy'), or None when the file is
            uncompressed or has no column chunks.
        """
        parquet_file = self._require_open()
        with codec_guard(self.path, "read the metadata of"):
            metadata = parquet_file.metadata
            if metadata.num_row_groups == 0 or metadata.num_columns == 0:
                return None
            codec = str(metadata.row_group(0).column(0).compression)

        codec = codec.lower()
        if codec == "uncompressed":
            return None
        return codec

    def _clamp_window(self, start: int, count: int | None) -> tuple[int, int]:
        if start < 0:
            raise ValueError(f"start row must be non-negative, got {start}")
        if count is None:
            count = self._num_rows
        if count < 0:
            raise ValueError(f"row count must be non-negative, got {count}")

        start = min(start, self._num_rows)
        return start, min(count, self._num_rows - start)

    def _locate_row(self, row: int) -> tuple[int, int]:
        """Find the row group holding an absolute row.

        Returns:
            (row group index, offset of the row inside that group)
        """
        group = bisect.bisect_right(self._row_group_starts, row) - 1
        return group, row - self._row_group_starts[group]

    def iter_batches(self, start: int = 0, count: int | None = None) -> Iterator[pa.RecordBatch]:
        """Stream the rows of a window as record batches.

        The window [start, start + count) is clamped to the file, so it never
        extends past the last row. At most one batch of batch_size rows is
        decoded at a time.

        Args:
            start: Absolute index of the first row.
            count: Number of rows to read (None = through the end of the file).

        Yields:
            RecordBatches whose concatenation is exactly the window, in file order.

        Raises:
            ValueError: If start or count is negative.
            CorruptFileError: If the row data cannot be decoded.
        """
        parquet_file = self._require_open()
        start, remaining = self._clamp_window(start, count)
        if remaining == 0:
            return

        group, skip = self._locate_row(start)
        logger.debug(
            "reading rows %d-%d of %s starting at row group %d (+%d)",
            start,
            start + remaining - 1,
            self.path,
            group,
            skip,
        )

        # Never decode more rows than the window needs
        batch_size = min(self.batch_size, skip + remaining)
        with codec_guard(self.path, f"seek to row {start} in"):
            batches = parquet_file.iter_batches(
                batch_size=batch_size,
                row_groups=list(range(group, len(self._row_group_starts))),
                use_threads=False,
            )

        while remaining > 0:
            with codec_guard(self.path, "read rows from"):
                batch = next(batches, None)
            if batch is None:
                # Footer promised more rows than the data holds
                break
            if batch.num_rows == 0:
                continue

            if skip:
                if skip >= batch.num_rows:
                    skip -= batch.num_rows
                    continue
                batch = batch.slice(skip)
                skip = 0

            if batch.num_rows > remaining:
                batch = batch.slice(0, remaining)
            remaining -= batch.num_rows
            yield batch

    def iter_records(self, start: int = 0, count: int | None = None) -> Iterator[Record]:
        """Stream the rows of a window as records.

        Args:
            start: Absolute index of the first row.
            count: Number of rows to read (None = through the end of the file).

        Yields:
            Each row as a dict keyed by field name, in file order.

        Raises:
            ValueError: If start or count is negative.
            CorruptFileError: If the row data cannot be decoded.
            ReconstructError: If a row cannot be converted into a record.
        """
        row = max(start, 0)
        for batch in self.iter_batches(start, count):
            yield from batch_to_records(batch, first_row=row, path=self.path)
            row += batch.num_rows

    def read_window(self, start: int, count: int) -> list[Record]:
        """Read a window of rows into memory."""
        return list(self.iter_records(start, count))

    def _require_rows(self) -> None:
        self._require_open()
        if self._num_rows == 0:
            raise EmptyFileError(
                f"'{self.path}' is empty", path=self.path, operation="read rows"
            )

    def head(self, n: int) -> list[Record]:
        """Return the first n rows of the file.

        Asking for more rows than the file holds returns every row.

        Args:
            n: Number of rows to return.

        Returns:
            Up to n records in file order.

        Raises:
            EmptyFileError: If the file has no rows.
            ValueError: If n is negative.
        """
        self._require_rows()
        if n < 0:
            raise ValueError(f"row count must be non-negative, got {n}")
        return self.read_window(0, min(n, self._num_rows))

    def tail(self, n: int) -> list[Record]:
        """Return the last n rows of the file, oldest first.

        Args:
            n: Number of rows to return.

        Returns:
            Up to n records in file order (not reversed).

        Raises:
            EmptyFileError: If the file has no rows.
            ValueError: If n is negative.
        """
        self._require_rows()
        if n < 0:
            raise ValueError(f"row count must be non-negative, got {n}")
        n = min(n, self._num_rows)
        return self.read_window(max(0, self._num_rows - n), n)

    def records(self) -> Iterator[Record]:
        """Stream every row of the file.

        Raises:
            EmptyFileError: If the file has no rows.
        """
        self._require_rows()
        return self.iter_records(0, self._num_rows)
