"""
Parquet magic marker validation.

A Parquet file starts and ends with the 4-byte marker PAR1. The smallest
possible frame is the leading marker, the 4-byte footer length and the
trailing marker.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pqtools.parquet.errors import CorruptFileError, InvalidFormatError, NotFoundError

logger = logging.getLogger(__name__)

PARQUET_MAGIC = b"PAR1"

# PAR1 + footer length + PAR1
MIN_FILE_SIZE = 12


def validate_parquet_file(path: str | os.PathLike) -> int:
    """Check that a file carries the Parquet framing before trusting its footer.

    Args:
        path: Path to the file.

    Returns:
        The file size in bytes.

    Raises:
        NotFoundError: If the path does not exist or is not a regular file.
        InvalidFormatError: If the leading magic marker is wrong or the file is
            smaller than MIN_FILE_SIZE.
        CorruptFileError: If the leading marker is present but the trailing one
            is not, which is what a truncated file looks like.

    Examples:
        >>> validate_parquet_file("data.parquet")
        1432
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise NotFoundError(f"file not found: '{file_path}'", path=file_path, operation="open")

    with open(file_path, "rb") as f:
        header = f.read(len(PARQUET_MAGIC))
        if header != PARQUET_MAGIC:
            raise InvalidFormatError(
                f"invalid file format: '{file_path}' is not a valid Parquet file",
                path=file_path,
                operation="open",
            )

        size = f.seek(0, os.SEEK_END)
        if size < MIN_FILE_SIZE:
            raise InvalidFormatError(
                f"'{file_path}' is too small ({size} bytes) to be a valid Parquet file",
                path=file_path,
                operation="open",
            )

        f.seek(size - len(PARQUET_MAGIC))
        trailer = f.read(len(PARQUET_MAGIC))

    if trailer != PARQUET_MAGIC:
        raise CorruptFileError(
            f"'{file_path}' is missing the trailing Parquet marker; "
            "the file appears to be truncated or corrupt",
            path=file_path,
            operation="open",
        )

    logger.debug("validated Parquet framing of %s (%d bytes)", file_path, size)
    return size

