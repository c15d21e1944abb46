"""Tests for magic marker validation in pqtools/parquet/format_detector.py."""

from __future__ import annotations

import pytest

from pqtools.parquet import (
    MIN_FILE_SIZE,
    PARQUET_MAGIC,
    CorruptFileError,
    InvalidFormatError,
    NotFoundError,
    validate_parquet_file,
)


class TestValidateParquetFile:
    """Tests for validate_parquet_file() function."""

    def test_valid_file_returns_size(self, sample_parquet):
        """A real Parquet file passes and reports its size."""
        assert validate_parquet_file(sample_parquet) == sample_parquet.stat().st_size

    def test_accepts_str_path(self, sample_parquet):
        """String paths are accepted as well as Path objects."""
        assert validate_parquet_file(str(sample_parquet)) > MIN_FILE_SIZE

    def test_missing_file(self, tmp_path):
        """Missing files raise NotFoundError, which is also a FileNotFoundError."""
        with pytest.raises(NotFoundError) as exc_info:
            validate_parquet_file(tmp_path / "missing.parquet")
        assert isinstance(exc_info.value, FileNotFoundError)
        assert exc_info.value.path.endswith("missing.parquet")

    def test_directory_is_not_found(self, tmp_path):
        """A directory is not a readable Parquet file."""
        with pytest.raises(NotFoundError):
            validate_parquet_file(tmp_path)

    def test_wrong_magic(self, not_parquet_file):
        """Files without the PAR1 header are rejected as invalid format."""
        with pytest.raises(InvalidFormatError, match="not a valid Parquet file"):
            validate_parquet_file(not_parquet_file)

    def test_invalid_format_is_value_error(self, not_parquet_file):
        """InvalidFormatError can be caught as ValueError."""
        with pytest.raises(ValueError):
            validate_parquet_file(not_parquet_file)

    def test_empty_file(self, tmp_path):
        """A zero-byte file has no magic marker."""
        filepath = tmp_path / "zero.parquet"
        filepath.write_bytes(b"")
        with pytest.raises(InvalidFormatError):
            validate_parquet_file(filepath)

    @pytest.mark.parametrize("size", [4, 8, MIN_FILE_SIZE - 1])
    def test_too_small(self, tmp_path, size):
        """Files smaller than the minimum frame are rejected even with valid magic."""
        filepath = tmp_path / "tiny.parquet"
        filepath.write_bytes((PARQUET_MAGIC * 3)[:size])
        with pytest.raises(InvalidFormatError, match="too small"):
            validate_parquet_file(filepath)

    def test_truncated_file(self, truncated_parquet):
        """A file missing its trailing marker is reported as corrupt."""
        with pytest.raises(CorruptFileError, match="truncated"):
            validate_parquet_file(truncated_parquet)

    def test_minimum_frame_passes(self, tmp_path):
        """The framing check alone accepts a minimal frame; the footer is not parsed here."""
        filepath = tmp_path / "frame.parquet"
        filepath.write_bytes(PARQUET_MAGIC + b"\x00" * 4 + PARQUET_MAGIC)
        assert validate_parquet_file(filepath) == MIN_FILE_SIZE

