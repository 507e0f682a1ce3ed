"""Unit tests for BigQuery query reading."""

from __future__ import annotations

from google.cloud import bigquery
import pytest

from core.config import QuarryConfig
from core.errors import QuarryIngestError
from ingest.bigquery_reader import field_schema_from_bigquery, read_bigquery_records

_SCHEMA = [
    bigquery.SchemaField("id", "INTEGER"),
    bigquery.SchemaField("label", "STRING"),
    bigquery.SchemaField("tags", "STRING", mode="REPEATED"),
]
_FIELD_INDEX = {"id": 0, "label": 1, "tags": 2}


class _FakeRowIterator:
    def __init__(self, rows, fail_after: int | None = None) -> None:
        self.schema = _SCHEMA
        self.total_rows = len(rows)
        self._rows = rows
        self._fail_after = fail_after

    def __iter__(self):
        for index, row in enumerate(self._rows):
            if self._fail_after is not None and index >= self._fail_after:
                raise RuntimeError("page fetch failed")
            yield row


class _FakeQueryJob:
    def __init__(self, row_iterator: _FakeRowIterator) -> None:
        self._row_iterator = row_iterator
        self.page_size: int | None = None

    def result(self, page_size: int | None = None) -> _FakeRowIterator:
        self.page_size = page_size
        return self._row_iterator


class _FakeBigQueryClient:
    def __init__(self, row_iterator: _FakeRowIterator | None = None) -> None:
        self.queries: list[str] = []
        self._row_iterator = row_iterator

    def query(self, query: str) -> _FakeQueryJob:
        self.queries.append(query)
        if self._row_iterator is None:
            raise RuntimeError("Syntax error: Unexpected keyword")
        return _FakeQueryJob(self._row_iterator)


def _rows() -> list[bigquery.Row]:
    return [
        bigquery.Row((7, "hello", ["a"]), _FIELD_INDEX),
        bigquery.Row((8, None, []), _FIELD_INDEX),
    ]


def test_read_bigquery_records_yields_row_values() -> None:
    """Rows should carry the result schema and positional values."""
    client = _FakeBigQueryClient(_FakeRowIterator(_rows()))

    records = list(read_bigquery_records("SELECT 1", QuarryConfig(project_id="proj"), client))

    assert [record.values for record in records] == [(7, "hello", ["a"]), (8, None, [])]
    assert client.queries == ["SELECT 1"]


def test_read_bigquery_records_keeps_field_modes() -> None:
    """Schema fields should keep their declared type and mode."""
    client = _FakeBigQueryClient(_FakeRowIterator(_rows()))

    records = list(read_bigquery_records("SELECT 1", QuarryConfig(project_id="proj"), client))

    assert [field.is_repeated for field in records[0].schema] == [False, False, True]


def test_read_bigquery_records_wraps_query_failure() -> None:
    """Query failures should raise an ingest error."""
    client = _FakeBigQueryClient()

    with pytest.raises(QuarryIngestError):
        list(read_bigquery_records("SELEC 1", QuarryConfig(project_id="proj"), client))


def test_read_bigquery_records_wraps_row_fetch_failure() -> None:
    """Failures while paging rows should raise an ingest error."""
    client = _FakeBigQueryClient(_FakeRowIterator(_rows(), fail_after=1))
    records = read_bigquery_records("SELECT 1", QuarryConfig(project_id="proj"), client)

    first_record = next(records)
    with pytest.raises(QuarryIngestError):
        next(records)

    assert first_record.values[0] == 7


def test_field_schema_from_bigquery_converts_nested_record() -> None:
    """Record fields should keep nested field schemas."""
    schema_field = bigquery.SchemaField(
        "owner",
        "RECORD",
        fields=[bigquery.SchemaField("name", "STRING")],
    )

    field_schema = field_schema_from_bigquery(schema_field)

    assert (field_schema.field_type, field_schema.fields[0].name) == ("RECORD", "name")
