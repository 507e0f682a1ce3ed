"""Shared typed models.

This module defines immutable data models used by ingest, transform,
and store layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Mapping

from core.constants import (
    DEFAULT_DATABASE_ID,
    FIELD_MODE_NULLABLE,
    FIELD_MODE_REPEATED,
    INT64_MAX,
    INT64_MIN,
)


class DeclaredType(Enum):
    """Closed set of warehouse field type tags.

    Tags outside this set parse to ``UNKNOWN``, which the value converter
    routes to its string fallback.
    """

    STRING = "STRING"
    BYTES = "BYTES"
    INTEGER = "INTEGER"
    INT64 = "INT64"
    FLOAT = "FLOAT"
    FLOAT64 = "FLOAT64"
    NUMERIC = "NUMERIC"
    BIGNUMERIC = "BIGNUMERIC"
    BOOLEAN = "BOOLEAN"
    BOOL = "BOOL"
    TIMESTAMP = "TIMESTAMP"
    DATE = "DATE"
    TIME = "TIME"
    DATETIME = "DATETIME"
    INTERVAL = "INTERVAL"
    GEOGRAPHY = "GEOGRAPHY"
    JSON = "JSON"
    RECORD = "RECORD"
    STRUCT = "STRUCT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, type_tag: str) -> "DeclaredType":
        """Resolve a raw type tag with a case-insensitive exact match.

        Args:
            type_tag: Type name reported by the record reader.

        Returns:
            Matching member, or ``UNKNOWN`` for unrecognized tags.
        """
        try:
            return cls(type_tag.upper())
        except ValueError:
            return cls.UNKNOWN


class ValueKind(Enum):
    """Variant tags of a document value."""

    STRING = "string"
    BYTES = "bytes"
    INTEGER = "integer"
    DOUBLE = "double"
    NULL = "null"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"


_KIND_PYTHON_TYPES: dict[ValueKind, tuple[type, ...]] = {
    ValueKind.STRING: (str,),
    ValueKind.BYTES: (bytes,),
    ValueKind.INTEGER: (int,),
    ValueKind.DOUBLE: (float,),
    ValueKind.NULL: (type(None),),
    ValueKind.BOOLEAN: (bool,),
    ValueKind.TIMESTAMP: (datetime,),
}


@dataclass(frozen=True)
class TaggedValue:
    """Document value with exactly one variant set.

    Attributes:
        kind: Variant tag.
        value: Python payload matching the variant.
    """

    kind: ValueKind
    value: object

    def __post_init__(self) -> None:
        expected_types = _KIND_PYTHON_TYPES[self.kind]
        is_bool = isinstance(self.value, bool)
        if not isinstance(self.value, expected_types) or (
            is_bool and self.kind is not ValueKind.BOOLEAN
        ):
            raise ValueError(
                f"TaggedValue of kind {self.kind.value} cannot hold "
                f"{type(self.value).__name__} payload"
            )
        if self.kind is ValueKind.INTEGER and not INT64_MIN <= int(self.value) <= INT64_MAX:
            raise ValueError(f"Integer payload {self.value} is outside the 64-bit signed range")

    @classmethod
    def of_string(cls, text: str) -> "TaggedValue":
        return cls(ValueKind.STRING, text)

    @classmethod
    def of_bytes(cls, payload: bytes) -> "TaggedValue":
        return cls(ValueKind.BYTES, payload)

    @classmethod
    def of_integer(cls, number: int) -> "TaggedValue":
        return cls(ValueKind.INTEGER, number)

    @classmethod
    def of_double(cls, number: float) -> "TaggedValue":
        return cls(ValueKind.DOUBLE, number)

    @classmethod
    def null(cls) -> "TaggedValue":
        return cls(ValueKind.NULL, None)

    @classmethod
    def of_boolean(cls, flag: bool) -> "TaggedValue":
        return cls(ValueKind.BOOLEAN, flag)

    @classmethod
    def of_timestamp(cls, moment: datetime) -> "TaggedValue":
        return cls(ValueKind.TIMESTAMP, moment)


ConvertedDocument = Mapping[str, TaggedValue]


@dataclass(frozen=True)
class FieldSchema:
    """Declared schema of one record field.

    Attributes:
        name: Field name, unique within a record.
        field_type: Raw type tag as reported by the reader.
        fields: Nested schema for record types; unused by conversion.
        mode: Field mode; ``REPEATED`` fields hold a list of values.
    """

    name: str
    field_type: str
    fields: tuple["FieldSchema", ...] = ()
    mode: str = FIELD_MODE_NULLABLE

    @property
    def declared_type(self) -> DeclaredType:
        """Return the parsed declared type."""
        return DeclaredType.parse(self.field_type)

    @property
    def is_repeated(self) -> bool:
        """Return whether the field holds a list of values."""
        return self.mode.upper() == FIELD_MODE_REPEATED


@dataclass(frozen=True)
class SourceRecord:
    """Self-describing warehouse row.

    Attributes:
        schema: Ordered field schemas.
        values: Raw field values by schema position.
    """

    schema: tuple[FieldSchema, ...]
    values: tuple[object, ...]

    def content(self) -> dict[str, object]:
        """Return raw values keyed by field name for diagnostics."""
        return {
            field_schema.name: value for field_schema, value in zip(self.schema, self.values)
        }


@dataclass(frozen=True)
class DocumentTarget:
    """Resolved destination of one export run.

    Attributes:
        project_id: Document store project.
        database_id: Document store database.
        collection: Collection root path under the database.
        run_id: Run identifier used as a path segment.
    """

    project_id: str
    database_id: str
    collection: str
    run_id: str


@dataclass(frozen=True)
class DocumentWriteIntent:
    """Full create-or-replace of one document.

    Attributes:
        path: Fully-qualified document name.
        fields: Every field the document will hold after the write.
    """

    path: str
    fields: ConvertedDocument


@dataclass(frozen=True)
class RecordFailure:
    """Diagnostic for a record that produced no document.

    Attributes:
        content: Record or document content at the time of failure.
        error_type: Exception class name.
        message: Error description.
    """

    content: Mapping[str, object]
    error_type: str
    message: str


@dataclass(frozen=True)
class RecordOutcome:
    """Per-record result of conversion and assembly.

    Attributes:
        intent: Write intent when processing succeeded.
        failure: Failure diagnostic when the record was dropped.
    """

    intent: DocumentWriteIntent | None = None
    failure: RecordFailure | None = None

    @property
    def ok(self) -> bool:
        """Return whether the record produced a write intent."""
        return self.intent is not None


@dataclass(frozen=True)
class ExportOptions:
    """Export command options.

    Attributes:
        collection: Collection root path for output documents.
        run_id: Run identifier scoping this batch of documents.
        database_id: Target document store database.
        query: SQL query executed against the warehouse.
        source_path: Local Parquet file read instead of a query.
        output_path: Local JSONL file written instead of the document store.
    """

    collection: str
    run_id: str
    database_id: str = DEFAULT_DATABASE_ID
    query: str | None = None
    source_path: str | None = None
    output_path: str | None = None


@dataclass(frozen=True)
class ExportSummary:
    """Outcome counts of one export run.

    Attributes:
        run_id: Run identifier.
        read_count: Records delivered by the reader.
        written_count: Documents applied by the sink.
        dropped_count: Records dropped with a diagnostic.
        failures: Diagnostics of dropped records.
    """

    run_id: str
    read_count: int
    written_count: int
    dropped_count: int
    failures: tuple[RecordFailure, ...] = field(default_factory=tuple)
