"""Core constants used across Quarry modules.

This module holds path templates, batching and retry limits, and the
environment variable names read by the runtime config.
"""

from __future__ import annotations

DEFAULT_DATABASE_ID = "(default)"
FIELD_MODE_NULLABLE = "NULLABLE"
FIELD_MODE_REPEATED = "REPEATED"
DOCUMENT_PATH_TEMPLATE = "projects/{project_id}/databases/{database_id}/documents"
DATABASE_PATH_TEMPLATE = "projects/{project_id}/databases/{database_id}"
OUTPUT_COLLECTION_SEGMENT = "output"
PATH_SEPARATOR = "/"
DEFAULT_WRITE_BATCH_SIZE = 20
MAX_WRITE_BATCH_SIZE = 500
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_MAX_WRITES_PER_SECOND = 500.0
DEFAULT_WORKERS = 1
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_PREVIEW_LIMIT = 10
DEFAULT_QUERY_PAGE_SIZE = 1000
INITIAL_RETRY_BACKOFF_SECONDS = 0.5
MAX_RETRY_BACKOFF_SECONDS = 30.0
RETRY_JITTER_SECONDS = 0.5
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

PROJECT_ID_ENV = "QUARRY_PROJECT_ID"
AMBIENT_PROJECT_ID_ENV = "GOOGLE_CLOUD_PROJECT"
WRITE_BATCH_SIZE_ENV = "QUARRY_WRITE_BATCH_SIZE"
MAX_ATTEMPTS_ENV = "QUARRY_MAX_ATTEMPTS"
MAX_WRITES_PER_SECOND_ENV = "QUARRY_MAX_WRITES_PER_SECOND"
WORKERS_ENV = "QUARRY_WORKERS"
LOG_LEVEL_ENV = "QUARRY_LOG_LEVEL"

# google.rpc.Code values the sink treats as transient.
RETRYABLE_STATUS_CODES = frozenset({4, 8, 10, 13, 14})
