"""Integration tests for end-to-end exports into local documents."""

from __future__ import annotations

import re

from core.config import QuarryConfig
from core.types import ExportOptions, FieldSchema, SourceRecord, TaggedValue
from fixture_paths import DOCUMENT_PATH_PATTERN, write_sample_parquet
from ingest.export_sdk import QuarryClient
from ingest.pipeline import ExportPipelineRunner
from store.value_payload import read_intents_jsonl


def test_export_converts_every_column(tmp_path) -> None:
    """Exported documents should hold each column under its converted type."""
    source_path = write_sample_parquet(tmp_path / "rows.parquet")
    output_path = tmp_path / "out.jsonl"
    client = QuarryClient(QuarryConfig(project_id="proj"))

    summary = client.export(
        ExportOptions(
            collection="exports",
            run_id="run-42",
            source_path=str(source_path),
            output_path=str(output_path),
        )
    )

    first_intent = read_intents_jsonl(output_path)[0]
    assert (summary.written_count, summary.dropped_count) == (2, 0)
    assert re.fullmatch(DOCUMENT_PATH_PATTERN, first_intent.path)
    assert dict(first_intent.fields) == {
        "id": TaggedValue.of_integer(7),
        "label": TaggedValue.of_string("hello"),
        "blob": TaggedValue.of_bytes(b"\x01\x02"),
        "score": TaggedValue.of_double(1.5),
        "active": TaggedValue.of_string("true"),
        "day": TaggedValue.of_string("2024-01-02"),
        "tags": TaggedValue.of_string("[1,2]"),
    }


def test_export_drops_malformed_rows_and_keeps_the_rest(tmp_path) -> None:
    """Rows with malformed numeric text should not stop the export."""
    schema = (FieldSchema("amount", "FLOAT64"), FieldSchema("count", "INT64"))
    records = [
        SourceRecord(schema=schema, values=("1.5", "3")),
        SourceRecord(schema=schema, values=("1,5", "4")),
        SourceRecord(schema=schema, values=("2e3", "5")),
    ]
    output_path = tmp_path / "out.jsonl"
    options = ExportOptions(
        collection="exports",
        run_id="run-42",
        output_path=str(output_path),
    )
    runner = ExportPipelineRunner(
        options,
        QuarryConfig(project_id="proj", workers=2),
        records=records,
    )

    summary = runner.run()

    written = read_intents_jsonl(output_path)
    assert (summary.read_count, summary.written_count, summary.dropped_count) == (3, 2, 1)
    assert [intent.fields["count"] for intent in written] == [
        TaggedValue.of_integer(3),
        TaggedValue.of_integer(5),
    ]
