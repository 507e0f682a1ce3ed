"""Unit tests for export pipeline orchestration."""

from __future__ import annotations

from dataclasses import replace

import pytest
from structlog.testing import capture_logs

from core.config import QuarryConfig
from core.errors import QuarryConfigError, QuarryIngestError
from core.types import ExportOptions, FieldSchema, SourceRecord
from fixture_paths import write_sample_parquet
from ingest.pipeline import (
    ExportPipelineRunner,
    create_sink,
    export_records,
    validate_source_options,
)
from store.jsonl_sink import JsonlDocumentSink
from store.value_payload import read_intents_jsonl

_SCHEMA = (FieldSchema("id", "INTEGER"), FieldSchema("label", "STRING"))


class _MemorySink:
    def __init__(self) -> None:
        self.intents = []
        self.closed = False

    def write(self, intents) -> int:
        self.intents.extend(intents)
        return len(intents)

    def close(self) -> None:
        self.closed = True


def _records(*id_values: object) -> list[SourceRecord]:
    return [SourceRecord(schema=_SCHEMA, values=(value, f"row-{value}")) for value in id_values]


def _options(**overrides) -> ExportOptions:
    return replace(ExportOptions(collection="exports", run_id="run-42"), **overrides)


def test_run_writes_valid_records_and_counts(quarry_config) -> None:
    """Every valid record should be written once."""
    sink = _MemorySink()
    runner = ExportPipelineRunner(_options(), quarry_config, sink=sink, records=_records(1, 2, 3))

    summary = runner.run()

    assert (summary.read_count, summary.written_count, summary.dropped_count) == (3, 3, 0)
    assert sink.closed


def test_run_drops_malformed_record_and_continues(quarry_config) -> None:
    """A malformed record should be dropped while later records are written."""
    sink = _MemorySink()
    runner = ExportPipelineRunner(
        _options(),
        quarry_config,
        sink=sink,
        records=_records(1, "12abc", 3),
    )

    summary = runner.run()

    assert (summary.written_count, summary.dropped_count) == (2, 1)
    assert [intent.fields["id"].value for intent in sink.intents] == [1, 3]


def test_run_logs_dropped_record_diagnostic(quarry_config) -> None:
    """Dropped records should log the error and the record content."""
    runner = ExportPipelineRunner(
        _options(),
        quarry_config,
        sink=_MemorySink(),
        records=_records("12abc"),
    )

    with capture_logs() as captured:
        runner.run()

    dropped = [entry for entry in captured if entry["event"] == "record_dropped"]
    assert dropped[0]["error_type"] == "QuarryParseError"
    assert dropped[0]["document"] == {"id": "12abc", "label": "row-12abc"}


def test_run_with_workers_matches_sequential_output(quarry_config) -> None:
    """Parallel conversion should write the same records in read order."""
    config = replace(quarry_config, workers=4, write_batch_size=3)
    sink = _MemorySink()
    runner = ExportPipelineRunner(_options(), config, sink=sink, records=_records(*range(50)))

    summary = runner.run()

    assert summary.written_count == 50
    assert [intent.fields["id"].value for intent in sink.intents] == list(range(50))


def test_run_closes_sink_when_reader_fails(quarry_config) -> None:
    """Reader failures should abort the run after closing the sink."""

    def failing_records():
        yield _records(1)[0]
        raise QuarryIngestError("page fetch failed")

    sink = _MemorySink()
    runner = ExportPipelineRunner(_options(), quarry_config, sink=sink, records=failing_records())

    with pytest.raises(QuarryIngestError):
        runner.run()

    assert sink.closed


def test_run_uses_one_path_per_document(quarry_config) -> None:
    """Each written document should have its own path."""
    sink = _MemorySink()
    runner = ExportPipelineRunner(_options(), quarry_config, sink=sink, records=_records(1, 1, 1))

    runner.run()

    assert len({intent.path for intent in sink.intents}) == 3


def test_preview_limits_converted_records(quarry_config) -> None:
    """Preview should convert at most the requested number of records."""
    runner = ExportPipelineRunner(_options(), quarry_config, records=_records(1, "bad", 3))

    outcomes = runner.preview(2)

    assert [outcome.ok for outcome in outcomes] == [True, False]


def test_validate_source_options_requires_a_source() -> None:
    """Options without a query or source file should be rejected."""
    with pytest.raises(QuarryConfigError):
        validate_source_options(_options())


def test_validate_source_options_rejects_both_sources() -> None:
    """Options naming both a query and a source file should be rejected."""
    with pytest.raises(QuarryConfigError):
        validate_source_options(_options(query="SELECT 1", source_path="rows.parquet"))


def test_create_sink_selects_jsonl_for_output_path(tmp_path, quarry_config) -> None:
    """Output paths should select the local JSONL sink."""
    options = _options(source_path="rows.parquet", output_path=str(tmp_path / "out.jsonl"))
    runner = ExportPipelineRunner(options, quarry_config, records=[])

    sink = create_sink(options, quarry_config, runner.target)
    sink.close()

    assert isinstance(sink, JsonlDocumentSink)


def test_runner_rejects_empty_collection() -> None:
    """Empty collection roots should fail before reading any record."""
    with pytest.raises(QuarryConfigError):
        ExportPipelineRunner(
            _options(collection=""),
            QuarryConfig(project_id="proj"),
            records=[],
        )


def test_run_writes_diagnostics_to_stderr(quarry_config, capsys) -> None:
    """Dropped-record diagnostics should go to stderr, not stdout."""
    runner = ExportPipelineRunner(
        _options(),
        quarry_config,
        sink=_MemorySink(),
        records=_records("abc"),
    )

    runner.run()

    captured = capsys.readouterr()
    assert "record_dropped" in captured.err
    assert "record_dropped" not in captured.out


def test_export_records_runs_local_export(tmp_path, quarry_config) -> None:
    """Module-level export should read the source and write every row."""
    source_path = write_sample_parquet(tmp_path / "rows.parquet")
    output_path = tmp_path / "out.jsonl"
    options = _options(source_path=str(source_path), output_path=str(output_path))

    summary = export_records(options, quarry_config)

    assert (summary.read_count, summary.written_count) == (2, 2)
    assert len(read_intents_jsonl(output_path)) == 2
