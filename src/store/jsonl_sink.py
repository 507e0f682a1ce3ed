"""Local JSONL sink for dry-run exports.

This module writes each write intent as one REST-form JSON document
per line so runs can be inspected without touching the document store.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence, TextIO

from core.errors import QuarrySinkError
from core.types import DocumentWriteIntent
from store.value_payload import intent_to_payload


class JsonlDocumentSink:
    """Write intents to a local JSONL file, one document per line."""

    def __init__(self, output_path: Path) -> None:
        """Open the output file, truncating any previous run.

        Args:
            output_path: Destination JSONL path.

        Raises:
            QuarrySinkError: If the file cannot be created.
        """
        self._output_path = output_path
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            self._handle: TextIO | None = output_path.open("w", encoding="utf-8")
        except OSError as error:
            raise QuarrySinkError(
                f"Failed to open {output_path} for writing: {error}."
            ) from error

    @property
    def output_path(self) -> Path:
        return self._output_path

    def write(self, intents: Sequence[DocumentWriteIntent]) -> int:
        """Write intents and return how many were written.

        Args:
            intents: Write intents to persist.

        Returns:
            Number of intents written.

        Raises:
            QuarrySinkError: If the file cannot be written.
        """
        lines = [json.dumps(intent_to_payload(intent), sort_keys=True) for intent in intents]
        if self._handle is None:
            raise QuarrySinkError(f"Sink for {self._output_path} is already closed.")
        try:
            for line in lines:
                self._handle.write(line + "\n")
        except OSError as error:
            raise QuarrySinkError(
                f"Failed to write documents to {self._output_path}: {error}. "
                "Check write permissions and available disk space."
            ) from error
        return len(lines)

    def close(self) -> None:
        """Flush and close the output file."""
        if self._handle is not None:
            self._handle.close()
            self._handle = None

