"""Local Parquet reader.

This module streams rows from a Parquet file as self-describing source
records, mapping Arrow column types onto warehouse declared types.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

from core.constants import DEFAULT_QUERY_PAGE_SIZE, FIELD_MODE_NULLABLE, FIELD_MODE_REPEATED
from core.errors import QuarryDependencyError, QuarryIngestError
from core.types import DeclaredType, FieldSchema, SourceRecord


def read_parquet_records(
    source_path: Path,
    batch_size: int = DEFAULT_QUERY_PAGE_SIZE,
) -> Iterator[SourceRecord]:
    """Stream records from a Parquet file.

    Args:
        source_path: Local Parquet file.
        batch_size: Rows read per Arrow record batch.

    Yields:
        One source record per row.

    Raises:
        QuarryIngestError: If the file is missing or unreadable.
        QuarryDependencyError: If pyarrow is missing.
    """
    parquet = _import_parquet()
    if not source_path.is_file():
        raise QuarryIngestError(
            f"Failed to read source at {source_path}: file does not exist. "
            "Provide an existing Parquet file."
        )
    try:
        parquet_file = parquet.ParquetFile(source_path)
    except Exception as error:
        raise QuarryIngestError(
            f"Failed to open Parquet source {source_path}: {error}."
        ) from error
    schema = tuple(field_schema_from_arrow(field) for field in parquet_file.schema_arrow)
    for batch in parquet_file.iter_batches(batch_size=batch_size):
        columns = [column.to_pylist() for column in batch.columns]
        for values in zip(*columns):
            yield SourceRecord(schema=schema, values=tuple(values))


def field_schema_from_arrow(arrow_field: Any) -> FieldSchema:
    """Convert an Arrow field into a field schema.

    Args:
        arrow_field: ``pyarrow.Field`` instance.

    Returns:
        Field schema with the matching declared type.
    """
    import pyarrow.types as pa_types

    arrow_type = arrow_field.type
    mode = FIELD_MODE_NULLABLE
    if pa_types.is_list(arrow_type) or pa_types.is_large_list(arrow_type):
        arrow_type = arrow_type.value_type
        mode = FIELD_MODE_REPEATED
    nested_fields: tuple[FieldSchema, ...] = ()
    if pa_types.is_struct(arrow_type):
        nested_fields = tuple(
            field_schema_from_arrow(arrow_type.field(index))
            for index in range(arrow_type.num_fields)
        )
    return FieldSchema(
        name=arrow_field.name,
        field_type=arrow_type_tag(arrow_type),
        fields=nested_fields,
        mode=mode,
    )


def arrow_type_tag(arrow_type: Any) -> str:
    """Return the declared type tag for an Arrow data type.

    Args:
        arrow_type: ``pyarrow.DataType`` instance.

    Returns:
        Declared type name; unmapped types keep their Arrow name.
    """
    import pyarrow.types as pa_types

    if pa_types.is_string(arrow_type) or pa_types.is_large_string(arrow_type):
        return DeclaredType.STRING.value
    if (
        pa_types.is_binary(arrow_type)
        or pa_types.is_large_binary(arrow_type)
        or pa_types.is_fixed_size_binary(arrow_type)
    ):
        return DeclaredType.BYTES.value
    if pa_types.is_integer(arrow_type):
        return DeclaredType.INT64.value
    if pa_types.is_floating(arrow_type):
        return DeclaredType.FLOAT64.value
    if pa_types.is_boolean(arrow_type):
        return DeclaredType.BOOL.value
    if pa_types.is_date(arrow_type):
        return DeclaredType.DATE.value
    if pa_types.is_time(arrow_type):
        return DeclaredType.TIME.value
    if pa_types.is_timestamp(arrow_type):
        if arrow_type.tz is not None:
            return DeclaredType.TIMESTAMP.value
        return DeclaredType.DATETIME.value
    if pa_types.is_duration(arrow_type):
        return DeclaredType.INTERVAL.value
    if pa_types.is_decimal(arrow_type):
        return DeclaredType.NUMERIC.value
    if pa_types.is_struct(arrow_type):
        return DeclaredType.STRUCT.value
    return str(arrow_type).upper()


def _import_parquet() -> Any:
    try:
        import pyarrow.parquet as parquet
    except ImportError as error:
        raise QuarryDependencyError(
            "Parquet sources require pyarrow, but it is not installed. "
            "Install pyarrow to read --source-file inputs."
        ) from error
    return parquet
