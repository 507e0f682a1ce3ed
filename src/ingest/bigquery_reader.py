"""BigQuery query reader.

This module runs a standard-SQL query and yields each result row as a
self-describing source record. Rows are fetched page by page so large
result sets are never held in memory at once.
"""

from __future__ import annotations

from typing import Any, Iterator

from core.config import QuarryConfig
from core.constants import DEFAULT_QUERY_PAGE_SIZE, FIELD_MODE_NULLABLE
from core.errors import QuarryDependencyError, QuarryIngestError
from core.logging_config import get_logger
from core.types import FieldSchema, SourceRecord

_LOGGER = get_logger(__name__)


def read_bigquery_records(
    query: str,
    config: QuarryConfig,
    client: Any | None = None,
    page_size: int = DEFAULT_QUERY_PAGE_SIZE,
) -> Iterator[SourceRecord]:
    """Execute a query and stream its rows.

    Args:
        query: Standard-SQL query text.
        config: Runtime configuration for the client project.
        client: Optional ``bigquery.Client`` or a compatible object.
        page_size: Rows fetched per result page.

    Yields:
        One source record per result row.

    Raises:
        QuarryIngestError: If the query or row fetch fails.
        QuarryDependencyError: If google-cloud-bigquery is missing.
    """
    bigquery_client = client if client is not None else _create_bigquery_client(config)
    try:
        rows = bigquery_client.query(query).result(page_size=page_size)
    except Exception as error:
        raise QuarryIngestError(
            f"BigQuery query failed: {error}. Check the SQL text and dataset permissions."
        ) from error
    schema = tuple(field_schema_from_bigquery(schema_field) for schema_field in rows.schema)
    _LOGGER.info(
        "query_started",
        field_count=len(schema),
        total_rows=getattr(rows, "total_rows", None),
    )
    row_iterator = iter(rows)
    while True:
        try:
            row = next(row_iterator)
        except StopIteration:
            return
        except Exception as error:
            raise QuarryIngestError(
                f"Failed to fetch BigQuery result rows: {error}. Retry the export."
            ) from error
        yield SourceRecord(schema=schema, values=tuple(row.values()))


def field_schema_from_bigquery(schema_field: Any) -> FieldSchema:
    """Convert a ``bigquery.SchemaField`` into a field schema.

    Args:
        schema_field: BigQuery schema field.

    Returns:
        Field schema with nested fields for record types.
    """
    nested_fields = getattr(schema_field, "fields", ()) or ()
    return FieldSchema(
        name=schema_field.name,
        field_type=schema_field.field_type,
        fields=tuple(field_schema_from_bigquery(nested) for nested in nested_fields),
        mode=getattr(schema_field, "mode", None) or FIELD_MODE_NULLABLE,
    )


def _create_bigquery_client(config: QuarryConfig) -> Any:
    """Create a BigQuery client.

    Args:
        config: Runtime config containing the optional project id.

    Returns:
        BigQuery client.

    Raises:
        QuarryDependencyError: If google-cloud-bigquery is missing.
    """
    try:
        from google.cloud import bigquery
    except ImportError as error:
        raise QuarryDependencyError(
            "Query export requires google-cloud-bigquery, but it is not installed. "
            "Install google-cloud-bigquery or pass --source-file for a local Parquet source."
        ) from error
    return bigquery.Client(project=config.project_id)
