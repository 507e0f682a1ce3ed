"""Public SDK surface for Quarry.

This module provides a stable import path for SDK users.
It re-exports the primary client, typed models, and core conversions.
"""

from __future__ import annotations

from core.config import QuarryConfig
from core.types import (
    DeclaredType,
    DocumentTarget,
    DocumentWriteIntent,
    ExportOptions,
    ExportSummary,
    FieldSchema,
    RecordOutcome,
    SourceRecord,
    TaggedValue,
    ValueKind,
)
from ingest.export_sdk import QuarryClient
from transforms.document_assembly import DocumentAssembler, DocumentProcessor
from transforms.value_conversion import convert, convert_record

__all__ = [
    "DeclaredType",
    "DocumentAssembler",
    "DocumentProcessor",
    "DocumentTarget",
    "DocumentWriteIntent",
    "ExportOptions",
    "ExportSummary",
    "FieldSchema",
    "QuarryClient",
    "QuarryConfig",
    "RecordOutcome",
    "SourceRecord",
    "TaggedValue",
    "ValueKind",
    "convert",
    "convert_record",
]
