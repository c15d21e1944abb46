"""
Row materialization for Parquet record batches.

Converts the column-encoded batches produced by pyarrow into plain Python
records (dicts keyed by the declared field names). Nested structures are kept
nested: structs become dicts, lists become lists and maps become dicts.
"""

from __future__ import annotations

import os
from typing import Any

import pyarrow as pa

from pqtools.parquet.errors import ReconstructError

Record = dict[str, Any]


def _is_list_type(arrow_type: pa.DataType) -> bool:
    return (
        pa.types.is_list(arrow_type)
        or pa.types.is_large_list(arrow_type)
        or pa.types.is_fixed_size_list(arrow_type)
    )


def _contains_map(arrow_type: pa.DataType) -> bool:
    """Return True if a map type appears anywhere inside arrow_type."""
    if pa.types.is_map(arrow_type):
        return True
    if pa.types.is_dictionary(arrow_type):
        return _contains_map(arrow_type.value_type)
    if isinstance(arrow_type, pa.BaseExtensionType):
        return _contains_map(arrow_type.storage_type)
    if pa.types.is_struct(arrow_type):
        return any(
            _contains_map(arrow_type.field(i).type) for i in range(arrow_type.num_fields)
        )
    if _is_list_type(arrow_type):
        return _contains_map(arrow_type.value_type)
    return False


def _convert_nested_to_python(value: Any, arrow_type: pa.DataType) -> Any:
    """Recursively normalize a value produced by to_pylist() for its declared type.

    pyarrow returns map values as lists of (key, value) tuples. They are turned
    into dicts so every nested record has the same shape regardless of whether
    it was declared as a struct or a map. Maps keyed by nested values cannot be
    dicts and stay as lists of [key, value] pairs.

    Args:
        value: A value from Array.to_pylist().
        arrow_type: The Arrow type the value was decoded from.

    Returns:
        The value with maps converted.
    """
    if value is None:
        return None

    if pa.types.is_dictionary(arrow_type):
        return _convert_nested_to_python(value, arrow_type.value_type)

    if isinstance(arrow_type, pa.BaseExtensionType):
        return _convert_nested_to_python(value, arrow_type.storage_type)

    if pa.types.is_map(arrow_type):
        if pa.types.is_nested(arrow_type.key_type):
            return [
                [key, _convert_nested_to_python(item, arrow_type.item_type)]
                for key, item in value
            ]
        return {
            key: _convert_nested_to_python(item, arrow_type.item_type)
            for key, item in value
        }

    if pa.types.is_struct(arrow_type):
        result = {}
        for i in range(arrow_type.num_fields):
            field = arrow_type.field(i)
            result[field.name] = _convert_nested_to_python(value.get(field.name), field.type)
        return result

    if _is_list_type(arrow_type):
        return [_convert_nested_to_python(item, arrow_type.value_type) for item in value]

    return value


def _column_to_python(column: pa.Array, arrow_type: pa.DataType) -> list[Any]:
    values = column.to_pylist()
    if not _contains_map(arrow_type):
        return values
    return [_convert_nested_to_python(value, arrow_type) for value in values]


def batch_to_records(
    batch: pa.RecordBatch | pa.Table,
    first_row: int = 0,
    path: str | os.PathLike | None = None,
) -> list[Record]:
    """Convert a record batch into a list of records in row order.

    Field names are taken verbatim from the batch schema: no renaming or case
    folding, and no field is added or dropped.

    Args:
        batch: A pyarrow RecordBatch (or Table) read from a Parquet file.
        first_row: Absolute row index of the first row in the batch, used only
            for error messages.
        path: File the batch was read from, named in error messages.

    Returns:
        One dict per row.

    Raises:
        ReconstructError: If a column's values cannot be decoded.

    Examples:
        >>> batch = pa.RecordBatch.from_pylist([{"Id": 1, "tags": ["a"]}])
        >>> batch_to_records(batch)
        [{'Id': 1, 'tags': ['a']}]
    """
    names = batch.schema.names
    num_rows = batch.num_rows
    if not names:
        return [{} for _ in range(num_rows)]

    source = f" of '{os.fspath(path)}'" if path is not None else ""
    columns: list[list[Any]] = []
    for i, name in enumerate(names):
        field = batch.schema.field(i)
        try:
            columns.append(_column_to_python(batch.column(i), field.type))
        except Exception as exc:
            raise ReconstructError(
                f"failed to convert column '{name}' for rows "
                f"{first_row}-{first_row + num_rows - 1}{source}: {exc}",
                path=path,
                operation="reconstruct",
            ) from exc

    return [dict(zip(names, row)) for row in zip(*columns)]
