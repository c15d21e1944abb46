"""
Schema introspection for Parquet files.

Lists every node of a Parquet schema (groups and leaf columns) in declaration
order, each with its own declared repetition, and renders them for display.
"""

from __future__ import annotations

from dataclasses import dataclass

import pyarrow as pa
import pyarrow.parquet as pq

REQUIRED = "REQUIRED"
OPTIONAL = "OPTIONAL"
REPEATED = "REPEATED"

# Physical type shown for group nodes, which have no storage of their own
GROUP = "GROUP"


@dataclass(frozen=True)
class FieldDescriptor:
    """One node of a Parquet schema.

    Attributes:
        path: Dotted path of the node (e.g. 'address.city').
        physical_type: Physical storage type (e.g. 'INT64', 'BYTE_ARRAY'), or
            'GROUP' for a node that only holds other fields.
        logical_type: Logical type annotation (e.g. 'String'), or None.
        converted_type: Legacy converted type (e.g. 'UTF8'), or None.
        repetition: 'REQUIRED', 'OPTIONAL' or 'REPEATED', as declared on the
            node itself.
    """

    path: str
    physical_type: str
    logical_type: str | None
    converted_type: str | None
    repetition: str

    @property
    def is_group(self) -> bool:
        return self.physical_type == GROUP


def _annotation(value: object) -> str | None:
    """Return the string form of a type annotation, or None when unset."""
    if value is None:
        return None
    text = str(value)
    if not text or text.upper() == "NONE":
        return None
    return text


def _nullable(field: pa.Field) -> str:
    return OPTIONAL if field.nullable else REQUIRED


def _collect_nodes(arrow_type: pa.DataType, repetition: str, depth: int, nodes: list) -> None:
    """Append (depth, repetition, annotations) for a field and its children.

    Nested Arrow types are stored with the standard Parquet layouts: a list is
    a group holding a repeated 'list' group around its element, a map is a
    group holding a repeated 'key_value' group around a required key and its
    value. Leaves are appended with annotations None and take their types
    from the matching Parquet column.
    """
    if pa.types.is_dictionary(arrow_type):
        arrow_type = arrow_type.value_type
    if isinstance(arrow_type, pa.BaseExtensionType):
        arrow_type = arrow_type.storage_type

    if pa.types.is_struct(arrow_type):
        nodes.append((depth, repetition, (None, None)))
        for i in range(arrow_type.num_fields):
            field = arrow_type.field(i)
            _collect_nodes(field.type, _nullable(field), depth + 1, nodes)
    elif (
        pa.types.is_list(arrow_type)
        or pa.types.is_large_list(arrow_type)
        or pa.types.is_fixed_size_list(arrow_type)
    ):
        nodes.append((depth, repetition, ("List", "LIST")))
        nodes.append((depth + 1, REPEATED, (None, None)))
        element = arrow_type.value_field
        _collect_nodes(element.type, _nullable(element), depth + 2, nodes)
    elif pa.types.is_map(arrow_type):
        nodes.append((depth, repetition, ("Map", "MAP")))
        nodes.append((depth + 1, REPEATED, (None, None)))
        _collect_nodes(arrow_type.key_field.type, REQUIRED, depth + 2, nodes)
        item = arrow_type.item_field
        _collect_nodes(item.type, _nullable(item), depth + 2, nodes)
    else:
        nodes.append((depth, repetition, None))


def describe_fields(schema: pq.ParquetSchema) -> list[FieldDescriptor]:
    """List the nodes of a Parquet schema in declaration order.

    Groups come before their members. Each node reports the repetition
    declared on it, not the one inherited from its parents, so a required
    member of an optional struct is REQUIRED.

    Args:
        schema: The schema of an open ParquetFile.

    Returns:
        One FieldDescriptor per group and per leaf column.

    Raises:
        ValueError: If the Arrow view of the schema does not line up with its
            leaf columns.
    """
    nodes: list = []
    for field in schema.to_arrow_schema():
        _collect_nodes(field.type, _nullable(field), 0, nodes)

    num_leaves = sum(1 for node in nodes if node[2] is None)
    if num_leaves != len(schema):
        raise ValueError(
            f"schema has {len(schema)} leaf columns but its Arrow form has {num_leaves}"
        )

    # Group paths are prefixes of the first leaf below them, so walk backwards
    fields = []
    leaf_index = len(schema)
    leaf_path: list[str] = []
    for depth, repetition, annotations in reversed(nodes):
        if annotations is None:
            leaf_index -= 1
            column = schema.column(leaf_index)
            leaf_path = column.path.split(".")
            fields.append(
                FieldDescriptor(
                    path=column.path,
                    physical_type=str(column.physical_type),
                    logical_type=_annotation(column.logical_type),
                    converted_type=_annotation(column.converted_type),
                    repetition=repetition,
                )
            )
        else:
            logical_type, converted_type = annotations
            fields.append(
                FieldDescriptor(
                    path=".".join(leaf_path[: depth + 1]),
                    physical_type=GROUP,
                    logical_type=logical_type,
                    converted_type=converted_type,
                    repetition=repetition,
                )
            )
    fields.reverse()
    return fields


def format_field(field: FieldDescriptor) -> str:
    """Render a single field as 'path: TYPE (annotations) REPETITION'."""
    annotations = []
    if field.logical_type:
        annotations.append(f"logical={field.logical_type}")
    if field.converted_type:
        annotations.append(f"converted={field.converted_type}")

    text = f"{field.path}: {field.physical_type}"
    if annotations:
        text += f" ({', '.join(annotations)})"
    return f"{text} {field.repetition}"


def describe(fields: list[FieldDescriptor], num_rows: int) -> str:
    """Render a schema for display.

    Args:
        fields: Field descriptors from describe_fields().
        num_rows: Total row count of the file.

    Returns:
        Multi-line text: the row count followed by one line per field.

    Examples:
        >>> print(describe(fields, 3))
        File contains 3 rows of data
        Schema elements (fields):
          id: INT64 REQUIRED
          name: BYTE_ARRAY (logical=String, converted=UTF8) OPTIONAL
          tags: GROUP (logical=List, converted=LIST) OPTIONAL
          tags.list: GROUP REPEATED
          tags.list.element: BYTE_ARRAY (logical=String, converted=UTF8) OPTIONAL
    """
    lines = [
        f"File contains {num_rows} rows of data",
        "Schema elements (fields):",
    ]
    for field in fields:
        lines.append(f"  {format_field(field)}")
    return "\n".join(lines)
