"""
JSON output for records.

Records are written one JSON document per row, either compact (one line per
row) or indented.
"""

from __future__ import annotations

import base64
import datetime
import decimal
import json
from typing import Any, Iterable, TextIO

from pqtools.parquet import Record


def _json_default(value: Any) -> Any:
    """Render values the json module cannot encode on its own."""
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return value.total_seconds()
    if isinstance(value, decimal.Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return base64.b64encode(raw).decode("ascii")
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def format_record(record: Record, pretty: bool = False) -> str:
    """Format a record as JSON.

    Args:
        record: The record to format.
        pretty: Indent with two spaces instead of writing a single line.

    Returns:
        The JSON text, without a trailing newline.
    """
    if pretty:
        return json.dumps(record, indent=2, ensure_ascii=False, default=_json_default)
    return json.dumps(record, ensure_ascii=False, default=_json_default)


def write_records(records: Iterable[Record], stream: TextIO, pretty: bool = False) -> bool:
    """Write records to a stream, one JSON document each.

    If the reading end of a pipe goes away (e.g. output piped into head),
    writing stops quietly.

    Args:
        records: Records to write, consumed lazily.
        stream: Destination text stream.
        pretty: Use indented output.

    Returns:
        True if every record was written, False if the pipe was closed first.
    """
    try:
        for record in records:
            stream.write(format_record(record, pretty))
            stream.write("\n")
        stream.flush()
    except BrokenPipeError:
        return False
    return True
