"""Python SDK for export operations.

This module exposes high-level APIs for running and previewing exports
of warehouse rows into document store collections.
"""

from __future__ import annotations

from dataclasses import replace

from core.config import QuarryConfig
from core.logging_config import configure_logging
from core.types import ExportOptions, ExportSummary, RecordOutcome
from ingest.pipeline import ExportPipelineRunner, export_records


class QuarryClient:
    """Primary SDK entry point for export workflows."""

    def __init__(self, config: QuarryConfig | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
        """
        self._config = config or QuarryConfig.from_env()
        configure_logging(self._config.log_level)

    @property
    def config(self) -> QuarryConfig:
        return self._config

    def export(self, options: ExportOptions) -> ExportSummary:
        """Export query or file rows into documents.

        Args:
            options: Export options.

        Returns:
            Counts of read, written, and dropped records.

        Raises:
            QuarryConfigError: If options are invalid.
            QuarryIngestError: If the source cannot be read.
            QuarrySinkError: If documents cannot be written.
        """
        return export_records(options, self._config)

    def preview(self, options: ExportOptions, limit: int) -> list[RecordOutcome]:
        """Convert the first rows of a source without writing them.

        Args:
            options: Export options; the output settings are ignored.
            limit: Maximum number of rows to convert.

        Returns:
            Per-record outcomes in read order.
        """
        return ExportPipelineRunner(options, self._config).preview(limit)

    def with_project(self, project_id: str) -> "QuarryClient":
        """Clone the client with a different store project.

        Args:
            project_id: Store project id.

        Returns:
            New SDK client instance.
        """
        return QuarryClient(replace(self._config, project_id=project_id))
