"""Export orchestration.

This module coordinates record reading, conversion, document assembly,
and sink writes for one export run. Records that fail conversion are
logged and dropped; reader and sink failures abort the run.
"""

from __future__ import annotations

from concurrent.futures import Executor, ThreadPoolExecutor
from itertools import islice
from pathlib import Path
from typing import Any, Iterable, Iterator

from core.config import QuarryConfig, resolve_project_id
from core.errors import QuarryConfigError
from core.logging_config import get_logger
from core.types import (
    DocumentTarget,
    DocumentWriteIntent,
    ExportOptions,
    ExportSummary,
    RecordFailure,
    RecordOutcome,
    SourceRecord,
)
from ingest.bigquery_reader import read_bigquery_records
from ingest.parquet_reader import read_parquet_records
from store.firestore_sink import create_firestore_sink
from store.jsonl_sink import JsonlDocumentSink
from transforms.document_assembly import (
    DocumentAssembler,
    DocumentProcessor,
    IdFactory,
    new_document_id,
)

_LOGGER = get_logger(__name__)


class ExportPipelineRunner:
    """Runner for one export of warehouse rows into documents."""

    def __init__(
        self,
        options: ExportOptions,
        config: QuarryConfig,
        sink: Any | None = None,
        records: Iterable[SourceRecord] | None = None,
        id_factory: IdFactory = new_document_id,
    ) -> None:
        """Prepare the runner and resolve the document target.

        Args:
            options: Export options.
            config: Runtime configuration.
            sink: Optional sink overriding the one selected by options.
            records: Optional records overriding the configured source.
            id_factory: Document id generator.

        Raises:
            QuarryConfigError: If options or the target are invalid.
        """
        if records is None:
            validate_source_options(options)
        self._options = options
        self._config = config
        self._target = build_document_target(options, config)
        self._processor = DocumentProcessor(DocumentAssembler(self._target, id_factory))
        self._sink = sink
        self._records = records

    @property
    def target(self) -> DocumentTarget:
        return self._target

    def run(self) -> ExportSummary:
        """Execute the export and return its summary."""
        sink = self._sink
        if sink is None:
            sink = create_sink(self._options, self._config, self._target)
        _LOGGER.info(
            "export_started",
            run_id=self._target.run_id,
            collection=self._target.collection,
            database_id=self._target.database_id,
            source=self._options.source_path or "query",
            workers=self._config.workers,
        )
        read_count = 0
        written_count = 0
        failures: list[RecordFailure] = []
        chunk_size = self._config.write_batch_size * self._config.workers
        executor = _create_executor(self._config.workers)
        try:
            for chunk in _chunked(self._read_records(), chunk_size):
                read_count += len(chunk)
                intents: list[DocumentWriteIntent] = []
                for outcome in self._process_chunk(chunk, executor):
                    if outcome.intent is not None:
                        intents.append(outcome.intent)
                    elif outcome.failure is not None:
                        failures.append(outcome.failure)
                        log_dropped_record(self._target.run_id, outcome.failure)
                if intents:
                    written_count += sink.write(intents)
        finally:
            if executor is not None:
                executor.shutdown(wait=True)
            sink.close()
        summary = ExportSummary(
            run_id=self._target.run_id,
            read_count=read_count,
            written_count=written_count,
            dropped_count=len(failures),
            failures=tuple(failures),
        )
        _log_export_completion(summary)
        return summary

    def preview(self, limit: int) -> list[RecordOutcome]:
        """Convert the first records without writing them.

        Args:
            limit: Maximum number of records to convert.

        Returns:
            Outcomes in read order.
        """
        return [
            self._processor.process(record)
            for record in islice(self._read_records(), max(0, limit))
        ]

    def _read_records(self) -> Iterator[SourceRecord]:
        if self._records is not None:
            return iter(self._records)
        if self._options.source_path:
            return read_parquet_records(Path(self._options.source_path).expanduser())
        return read_bigquery_records(str(self._options.query), self._config)

    def _process_chunk(
        self,
        chunk: list[SourceRecord],
        executor: Executor | None,
    ) -> list[RecordOutcome]:
        if executor is None:
            return [self._processor.process(record) for record in chunk]
        return list(executor.map(self._processor.process, chunk))


def export_records(options: ExportOptions, config: QuarryConfig) -> ExportSummary:
    """Run one export and return its summary.

    Args:
        options: Export options.
        config: Runtime configuration.

    Returns:
        Counts of read, written, and dropped records.

    Raises:
        QuarryIngestError: If the source cannot be read.
        QuarrySinkError: If documents cannot be written.
    """
    runner = ExportPipelineRunner(options, config)
    return runner.run()


def build_document_target(options: ExportOptions, config: QuarryConfig) -> DocumentTarget:
    """Resolve the document target of a run.

    Args:
        options: Export options.
        config: Runtime configuration.

    Returns:
        Target carrying project, database, collection, and run id.
    """
    return DocumentTarget(
        project_id=resolve_project_id(config),
        database_id=options.database_id,
        collection=options.collection,
        run_id=options.run_id,
    )


def validate_source_options(options: ExportOptions) -> None:
    """Require exactly one of a query or a local source file.

    Args:
        options: Export options.

    Raises:
        QuarryConfigError: If neither or both sources are set.
    """
    has_query = bool(options.query and options.query.strip())
    has_source_path = bool(options.source_path)
    if has_query == has_source_path:
        raise QuarryConfigError(
            "Export needs exactly one source: a query or a local Parquet file. "
            "Pass either --query or --source-file."
        )


def create_sink(options: ExportOptions, config: QuarryConfig, target: DocumentTarget) -> Any:
    """Create the sink selected by export options.

    Args:
        options: Export options.
        config: Runtime configuration.
        target: Resolved document target.

    Returns:
        JSONL sink for dry runs, Firestore sink otherwise.
    """
    if options.output_path:
        return JsonlDocumentSink(Path(options.output_path).expanduser())
    return create_firestore_sink(config, target.project_id, target.database_id)


def log_dropped_record(run_id: str, failure: RecordFailure) -> None:
    """Write the diagnostic line for a dropped record."""
    _LOGGER.error(
        "record_dropped",
        run_id=run_id,
        error_type=failure.error_type,
        error=failure.message,
        document=dict(failure.content),
    )


def _create_executor(workers: int) -> Executor | None:
    if workers <= 1:
        return None
    return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="quarry-convert")


def _chunked(records: Iterator[SourceRecord], size: int) -> Iterator[list[SourceRecord]]:
    """Yield consecutive record lists of at most ``size`` items."""
    while True:
        chunk = list(islice(records, size))
        if not chunk:
            return
        yield chunk


def _log_export_completion(summary: ExportSummary) -> None:
    """Log run completion with outcome counts."""
    _LOGGER.info(
        "export_completed",
        run_id=summary.run_id,
        read_count=summary.read_count,
        written_count=summary.written_count,
        dropped_count=summary.dropped_count,
    )
