"""
Data Splitter - Split a Parquet file into N smaller Parquet files.

Rows are divided into contiguous windows of ceil(total / N) rows, the last one
possibly shorter. Each window is streamed from the source in bounded batches
and written to its own file with the source's unmodified schema, so the parts
concatenated in order recreate the original rows exactly.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq
from tqdm import tqdm

from pqtools.parquet import (
    DEFAULT_BATCH_SIZE,
    CorruptFileError,
    EmptyFileError,
    ParquetReader,
    WriteError,
)

logger = logging.getLogger(__name__)

# Passing this as compression reuses the source file's codec
SOURCE_COMPRESSION = "source"


@dataclass(frozen=True)
class RowWindow:
    """A half-open range [start, start + count) of row indices."""

    start: int
    count: int

    @property
    def stop(self) -> int:
        return self.start + self.count

    def clamp(self, total: int) -> "RowWindow":
        """Return the part of this window that lies inside [0, total)."""
        start = min(max(self.start, 0), total)
        return RowWindow(start, max(0, min(self.count, total - start)))


@dataclass(frozen=True)
class SplitPart:
    """One output file of a split."""

    path: Path
    start: int
    end: int
    count: int
    part_num: int


def get_rows_per_file(total: int, num_parts: int) -> int:
    """Rows in every part but the last: ceil(total / num_parts)."""
    return -(-total // num_parts)


def plan_partitions(total_rows: int, num_parts: int) -> list[RowWindow]:
    """Divide [0, total_rows) into at most num_parts contiguous windows.

    Every window holds ceil(total_rows / num_parts) rows except possibly the
    last. Windows that would start past the last row are dropped, so fewer
    than num_parts windows come back when the rows run out early.

    Args:
        total_rows: Number of rows to divide.
        num_parts: Requested number of windows.

    Returns:
        Non-overlapping windows, in order, whose sizes sum to total_rows.

    Raises:
        ValueError: If num_parts is not positive or total_rows is negative.

    Examples:
        >>> [w.count for w in plan_partitions(100, 3)]
        [34, 33, 33]
        >>> [w.count for w in plan_partitions(2, 5)]
        [1, 1]
    """
    if num_parts <= 0:
        raise ValueError(f"number of parts must be positive, got {num_parts}")
    if total_rows < 0:
        raise ValueError(f"total rows must be non-negative, got {total_rows}")

    rows_per_file = get_rows_per_file(total_rows, num_parts)
    windows = []
    for i in range(num_parts):
        start = i * rows_per_file
        if start >= total_rows:
            break
        windows.append(RowWindow(start, rows_per_file).clamp(total_rows))
    return windows


def output_path_for(
    input_path: str | os.PathLike,
    index: int,
    output_dir: str | os.PathLike | None = None,
) -> Path:
    """Name of the index-th (0-based) output file: {stem}_{index + 1}{suffix}.

    Examples:
        >>> output_path_for("data/events.parquet", 0)
        PosixPath('data/events_1.parquet')
    """
    input_path = Path(input_path)
    directory = Path(output_dir) if output_dir is not None else input_path.parent
    return directory / f"{input_path.stem}_{index + 1}{input_path.suffix}"


def _discard_partial(writer: pq.ParquetWriter | None, path: Path) -> None:
    """Close and delete an output file that was not completely written."""
    if writer is not None:
        try:
            writer.close()
        except (pa.ArrowException, OSError) as exc:
            logger.debug("ignoring error while closing partial file %s: %s", path, exc)
    if path.is_file():
        path.unlink()
        logger.warning("removed incomplete output file %s", path)


def _write_part(
    reader: ParquetReader,
    part: SplitPart,
    schema: pa.Schema,
    compression: str,
    pbar: tqdm,
) -> None:
    """Stream one partition of the source into a new file."""
    writer = None
    completed = False
    try:
        try:
            writer = pq.ParquetWriter(str(part.path), schema, compression=compression)
        except (pa.ArrowException, OSError) as exc:
            raise WriteError(
                f"failed to create output file '{part.path}': {exc}",
                path=part.path,
                operation="write",
            ) from exc

        written = 0
        for batch in reader.iter_batches(part.start, part.count):
            try:
                writer.write_batch(batch)
            except (pa.ArrowException, OSError, ValueError) as exc:
                raise WriteError(
                    f"failed to write rows {part.start + written}-"
                    f"{part.start + written + batch.num_rows - 1} to '{part.path}': {exc}",
                    path=part.path,
                    operation="write",
                ) from exc
            written += batch.num_rows
            pbar.update(batch.num_rows)

        if written != part.count:
            raise CorruptFileError(
                f"'{reader.path}' ended after {part.start + written} rows, "
                f"but its footer declares {reader.count()}",
                path=reader.path,
                operation="read rows",
            )

        try:
            writer.close()
        except (pa.ArrowException, OSError) as exc:
            raise WriteError(
                f"failed to finish output file '{part.path}': {exc}",
                path=part.path,
                operation="write",
            ) from exc
        completed = True
    finally:
        if not completed:
            _discard_partial(writer, part.path)


def split_file(
    input_path: str | os.PathLike,
    num_parts: int,
    *,
    output_dir: str | os.PathLike | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    compression: str | None = SOURCE_COMPRESSION,
    dry_run: bool = False,
    progress: bool = False,
) -> list[SplitPart]:
    """
    Split a Parquet file into up to num_parts files.

    Parts are written one after another, each closed before the next is
    started. If writing a part fails, that part's file is removed and the
    error propagates; parts completed before it stay on disk.

    Args:
        input_path: The Parquet file to split.
        num_parts: Requested number of parts (must be positive).
        output_dir: Directory for the parts (default: next to the input).
        batch_size: Maximum rows held in memory at once.
        compression: Codec for the parts; 'source' reuses the input's codec,
            None writes uncompressed files.
        dry_run: Only compute the plan, write nothing.
        progress: Show a progress bar on stderr.

    Returns:
        One SplitPart per file written (or planned, for a dry run). May be
        shorter than num_parts when the file has few rows.

    Raises:
        EmptyFileError: If the input has no rows. No file is created.
        WriteError: If an output file cannot be written.
        ParquetToolError: If the input cannot be opened or read.
    """
    input_path = Path(input_path)

    with ParquetReader(input_path, batch_size=batch_size) as reader:
        total = reader.count()
        if total == 0:
            raise EmptyFileError(
                f"'{input_path}' is empty, nothing to split",
                path=input_path,
                operation="split",
            )

        windows = plan_partitions(total, num_parts)
        parts = [
            SplitPart(
                path=output_path_for(input_path, i, output_dir),
                start=window.start,
                end=window.stop,
                count=window.count,
                part_num=i + 1,
            )
            for i, window in enumerate(windows)
        ]
        if dry_run:
            return parts

        schema = reader.arrow_schema()
        if compression == SOURCE_COMPRESSION:
            compression = reader.compression()
        codec = compression or "none"

        if output_dir is not None:
            Path(output_dir).mkdir(parents=True, exist_ok=True)

        logger.info(
            "splitting %s (%d rows) into %d parts of up to %d rows, compression=%s",
            input_path,
            total,
            len(parts),
            get_rows_per_file(total, num_parts),
            codec,
        )

        with tqdm(
            total=total,
            desc="Splitting",
            unit="rows",
            disable=not progress,
            file=sys.stderr,
        ) as pbar:
            for part in parts:
                _write_part(reader, part, schema, codec, pbar)
                logger.info("wrote %s (rows %d-%d)", part.path, part.start, part.end - 1)

    return parts


def verify_split(input_path: str | os.PathLike, parts: list[SplitPart]) -> bool:
    """Verify that the parts recombine into the original file.

    Checks that every part has the source schema, that the row counts add up,
    and that the parts' rows, concatenated in part order, equal the source's
    rows. Only one part is held in memory at a time.

    Args:
        input_path: The file that was split.
        parts: The parts returned by split_file().

    Returns:
        True if the parts match the source.
    """
    with ParquetReader(input_path) as source:
        original_count = source.count()
        schema = source.arrow_schema()
        total_in_parts = 0
        position = 0

        for part in sorted(parts, key=lambda p: p.part_num):
            with ParquetReader(part.path) as reader:
                if not reader.arrow_schema().equals(schema):
                    logger.error("schema of %s differs from %s", part.path, input_path)
                    return False

                part_count = reader.count()
                expected = pa.Table.from_batches(
                    list(source.iter_batches(position, part_count)), schema=schema
                )
                actual = pa.Table.from_batches(list(reader.iter_batches()), schema=schema)

            if not actual.equals(expected):
                logger.error("rows of %s do not match the source", part.path)
                return False

            total_in_parts += part_count
            position += part_count

    if total_in_parts != original_count:
        logger.error(
            "record count mismatch: original %d, parts total %d",
            original_count,
            total_in_parts,
        )
        return False

    return True
