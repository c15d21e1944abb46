"""
Error types for Parquet file handling.

Every failure a command can report maps onto one of the exceptions below.
Faults raised by pyarrow while touching file bytes are converted into
CorruptFileError at a single boundary, codec_guard(), so callers only ever
have to handle ParquetToolError subclasses.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator


class ParquetToolError(Exception):
    """Base class for all errors raised by pqtools.

    Attributes:
        path: The file the failing operation was working on, if any.
        operation: Short description of the failing operation (e.g. 'open').
    """

    def __init__(
        self,
        message: str,
        path: str | os.PathLike | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.path = os.fspath(path) if path is not None else None
        self.operation = operation


class NotFoundError(ParquetToolError, FileNotFoundError):
    """The input path does not exist or is not a regular file."""


class InvalidFormatError(ParquetToolError, ValueError):
    """The file is not a Parquet file (bad magic marker or too small)."""


class CorruptFileError(ParquetToolError):
    """The file looks like Parquet but its contents cannot be decoded."""


class NoSchemaError(CorruptFileError):
    """The footer carries no usable schema."""


class ReconstructError(CorruptFileError):
    """A row could not be decoded into a record."""


class EmptyFileError(ParquetToolError):
    """The file has zero rows where rows are required."""


class WriteError(ParquetToolError):
    """An output file could not be written."""


@contextmanager
def codec_guard(path: str | os.PathLike, operation: str) -> Iterator[None]:
    """Convert any fault raised inside the block into CorruptFileError.

    pqtools errors raised inside the block propagate unchanged.

    Args:
        path: The file being read.
        operation: What was being attempted, used in the error message.

    Raises:
        CorruptFileError: If the block raised anything other than a
            ParquetToolError.
    """
    try:
        yield
    except ParquetToolError:
        raise
    except Exception as exc:
        raise CorruptFileError(
            f"failed to {operation} '{os.fspath(path)}': the file appears to be "
            f"corrupt or invalid ({exc})",
            path=path,
            operation=operation,
        ) from exc
