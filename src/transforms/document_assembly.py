"""Document path construction and write-intent assembly.

This module turns converted field mappings into full-document write
intents under ``<collection>/<run-id>/output/<unique-id>``. Per-record
failures come back as ``RecordOutcome`` values instead of exceptions.
"""

from __future__ import annotations

from typing import Callable
import uuid

from core.constants import DOCUMENT_PATH_TEMPLATE, OUTPUT_COLLECTION_SEGMENT, PATH_SEPARATOR
from core.errors import QuarryConfigError, QuarryConversionError, QuarryDocumentPathError
from core.types import (
    ConvertedDocument,
    DocumentTarget,
    DocumentWriteIntent,
    RecordFailure,
    RecordOutcome,
    SourceRecord,
)
from transforms.value_conversion import convert_record

IdFactory = Callable[[], str]


def new_document_id() -> str:
    """Return a random 128-bit document identifier."""
    return str(uuid.uuid4())


def build_output_collection_path(target: DocumentTarget) -> str:
    """Return the run-scoped output collection path."""
    return PATH_SEPARATOR.join(
        (target.collection, target.run_id, OUTPUT_COLLECTION_SEGMENT)
    )


def build_document_name(target: DocumentTarget, document_id: str) -> str:
    """Build the fully-qualified name of one output document.

    Args:
        target: Resolved export destination.
        document_id: Unique id of the document within the run.

    Returns:
        ``projects/<p>/databases/<d>/documents/<collection>/<run>/output/<id>``.
    """
    documents_root = DOCUMENT_PATH_TEMPLATE.format(
        project_id=target.project_id,
        database_id=target.database_id,
    )
    return PATH_SEPARATOR.join(
        (documents_root, build_output_collection_path(target), document_id)
    )


def validate_target(target: DocumentTarget) -> DocumentTarget:
    """Reject destinations with empty path components.

    Args:
        target: Destination to check.

    Returns:
        The same target.

    Raises:
        QuarryConfigError: If any component is empty.
    """
    components = {
        "project_id": target.project_id,
        "database_id": target.database_id,
        "collection": target.collection,
        "run_id": target.run_id,
    }
    empty = [name for name, value in components.items() if not value]
    if empty:
        raise QuarryConfigError(
            f"Document target is missing {', '.join(empty)}. "
            "Provide a project, database, collection, and run id."
        )
    return target


class DocumentAssembler:
    """Wrap converted documents into write intents for one target."""

    def __init__(self, target: DocumentTarget, id_factory: IdFactory = new_document_id) -> None:
        self._target = validate_target(target)
        self._id_factory = id_factory

    @property
    def target(self) -> DocumentTarget:
        return self._target

    def assemble(self, document: ConvertedDocument) -> DocumentWriteIntent:
        """Build a full-document replace intent under a fresh path.

        Args:
            document: Converted field mapping.

        Returns:
            Write intent for the new document.

        Raises:
            QuarryDocumentPathError: If a document path cannot be built.
        """
        return DocumentWriteIntent(path=self._next_document_name(), fields=dict(document))

    def _next_document_name(self) -> str:
        try:
            document_id = self._id_factory()
        except Exception as error:
            raise QuarryDocumentPathError(
                f"Failed to generate a document id under "
                f"{build_output_collection_path(self._target)}: {error}"
            ) from error
        if not isinstance(document_id, str) or not document_id or PATH_SEPARATOR in document_id:
            raise QuarryDocumentPathError(
                f"Generated document id {document_id!r} is not a single path segment."
            )
        return build_document_name(self._target, document_id)


class DocumentProcessor:
    """Convert and assemble records one at a time.

    Instances hold no per-record state and can be shared across worker
    threads.
    """

    def __init__(self, assembler: DocumentAssembler) -> None:
        self._assembler = assembler

    def process(self, record: SourceRecord) -> RecordOutcome:
        """Return the write intent for a record, or why it was dropped.

        Args:
            record: Source record to convert.

        Returns:
            Outcome holding either an intent or a failure diagnostic.
        """
        try:
            document = convert_record(record)
        except QuarryConversionError as error:
            return RecordOutcome(failure=_build_failure(record.content(), error))
        try:
            intent = self._assembler.assemble(document)
        except QuarryDocumentPathError as error:
            content = {name: tagged.value for name, tagged in document.items()}
            return RecordOutcome(failure=_build_failure(content, error))
        return RecordOutcome(intent=intent)


def _build_failure(content: dict[str, object], error: Exception) -> RecordFailure:
    return RecordFailure(content=content, error_type=type(error).__name__, message=str(error))
