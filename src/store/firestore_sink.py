"""Firestore write sink.

This module applies write intents through Firestore ``BatchWrite``
requests. It throttles the write rate, retries writes that fail with a
transient status, and fails the run once a write cannot be applied.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Sequence

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from core.config import QuarryConfig
from core.constants import (
    DATABASE_PATH_TEMPLATE,
    INITIAL_RETRY_BACKOFF_SECONDS,
    MAX_RETRY_BACKOFF_SECONDS,
    RETRYABLE_STATUS_CODES,
    RETRY_JITTER_SECONDS,
)
from core.errors import QuarryDependencyError, QuarrySinkError, QuarryTransientWriteError
from core.logging_config import get_logger
from core.types import DocumentWriteIntent, TaggedValue, ValueKind

_LOGGER = get_logger(__name__)


class FirestoreDocumentSink:
    """Batch, throttle, and retry document writes."""

    def __init__(
        self,
        client: Any,
        database_path: str,
        config: QuarryConfig,
        rpc_retry: Any = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create a sink around a Firestore GAPIC client.

        Args:
            client: ``FirestoreClient`` or a compatible object.
            database_path: ``projects/<p>/databases/<d>``.
            config: Runtime configuration with batching and retry limits.
            rpc_retry: Optional ``google.api_core`` retry for whole-request failures.
            sleep: Sleep function used for throttling and backoff.
            clock: Monotonic clock used for throttling.
        """
        self._client = client
        self._database_path = database_path
        self._batch_size = config.write_batch_size
        self._max_attempts = config.max_attempts
        self._seconds_per_write = 1.0 / config.max_writes_per_second
        self._rpc_retry = rpc_retry
        self._sleep = sleep
        self._clock = clock
        self._next_send_at = 0.0

    def write(self, intents: Sequence[DocumentWriteIntent]) -> int:
        """Apply intents and return how many were written.

        Args:
            intents: Write intents to apply.

        Returns:
            Number of documents written.

        Raises:
            QuarrySinkError: If any write fails permanently.
        """
        written = 0
        for start in range(0, len(intents), self._batch_size):
            batch = intents[start : start + self._batch_size]
            written += self._commit_with_retry(batch)
        return written

    def close(self) -> None:
        """Release the underlying transport."""
        transport = getattr(self._client, "transport", None)
        if transport is not None and hasattr(transport, "close"):
            transport.close()

    def _commit_with_retry(self, batch: Sequence[DocumentWriteIntent]) -> int:
        pending = list(batch)
        retrying = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential_jitter(
                initial=INITIAL_RETRY_BACKOFF_SECONDS,
                max=MAX_RETRY_BACKOFF_SECONDS,
                jitter=RETRY_JITTER_SECONDS,
            ),
            retry=retry_if_exception_type(QuarryTransientWriteError),
            before_sleep=_log_write_retry,
            sleep=self._sleep,
            reraise=True,
        )
        attempts = 0
        for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                self._commit_pending(pending)
        _LOGGER.debug("sink_batch_committed", write_count=len(batch), attempts=attempts)
        return len(batch)

    def _commit_pending(self, pending: list[DocumentWriteIntent]) -> None:
        """Send pending writes and keep only transient failures in ``pending``.

        Raises:
            QuarryTransientWriteError: If any write failed with a retryable status.
            QuarrySinkError: If any write failed permanently.
        """
        self._throttle(len(pending))
        transient: list[tuple[DocumentWriteIntent, int, str]] = []
        for intent, code, message in self._send(pending):
            if code == 0:
                continue
            if code not in RETRYABLE_STATUS_CODES:
                raise QuarrySinkError(
                    f"Failed to write document {intent.path}: status {code} {message}. "
                    "Check store permissions and quotas."
                )
            transient.append((intent, code, message))
        pending[:] = [intent for intent, _, _ in transient]
        if transient:
            intent, code, message = transient[0]
            raise QuarryTransientWriteError(
                f"{len(transient)} write(s) failed with a transient status, first "
                f"{intent.path}: status {code} {message}. Check store quotas and retry limits."
            )

    def _send(
        self,
        pending: Sequence[DocumentWriteIntent],
    ) -> list[tuple[DocumentWriteIntent, int, str]]:
        request = build_batch_write_request(self._database_path, pending)
        try:
            response = self._client.batch_write(request=request, retry=self._rpc_retry)
        except Exception as error:
            raise QuarrySinkError(
                f"BatchWrite to {self._database_path} failed: {error}. "
                "Check credentials, network access, and the database id."
            ) from error
        statuses = list(response.status)
        if len(statuses) != len(pending):
            raise QuarrySinkError(
                f"BatchWrite returned {len(statuses)} statuses for {len(pending)} writes."
            )
        return [
            (intent, int(status.code), str(status.message))
            for intent, status in zip(pending, statuses)
        ]

    def _throttle(self, write_count: int) -> None:
        now = self._clock()
        if now < self._next_send_at:
            self._sleep(self._next_send_at - now)
            now = self._next_send_at
        self._next_send_at = now + write_count * self._seconds_per_write


def create_firestore_sink(
    config: QuarryConfig,
    project_id: str,
    database_id: str,
) -> FirestoreDocumentSink:
    """Create a sink bound to one Firestore database.

    Args:
        config: Runtime configuration.
        project_id: Store project id.
        database_id: Store database id.

    Returns:
        Configured Firestore sink.

    Raises:
        QuarryDependencyError: If google-cloud-firestore is missing.
    """
    try:
        from google.api_core import retry as api_retry
        from google.cloud.firestore_v1.services.firestore import FirestoreClient
    except ImportError as error:
        raise QuarryDependencyError(
            "Firestore export requires google-cloud-firestore, but it is not installed. "
            "Install google-cloud-firestore or pass --output-file for a dry run."
        ) from error
    rpc_retry = api_retry.Retry(
        predicate=api_retry.if_transient_error,
        initial=INITIAL_RETRY_BACKOFF_SECONDS,
        maximum=MAX_RETRY_BACKOFF_SECONDS,
        multiplier=2.0,
    )
    database_path = DATABASE_PATH_TEMPLATE.format(project_id=project_id, database_id=database_id)
    return FirestoreDocumentSink(FirestoreClient(), database_path, config, rpc_retry=rpc_retry)


def build_batch_write_request(database_path: str, intents: Sequence[DocumentWriteIntent]) -> Any:
    """Build a ``BatchWriteRequest`` of full-document updates.

    Args:
        database_path: ``projects/<p>/databases/<d>``.
        intents: Write intents to include.

    Returns:
        Firestore ``BatchWriteRequest`` message.
    """
    from google.cloud.firestore_v1.types import BatchWriteRequest, Document, Write

    writes = [
        Write(
            update=Document(
                name=intent.path,
                fields={name: to_firestore_value(tagged) for name, tagged in intent.fields.items()},
            )
        )
        for intent in intents
    ]
    return BatchWriteRequest(database=database_path, writes=writes)


def to_firestore_value(tagged: TaggedValue) -> Any:
    """Encode a tagged value as a Firestore ``Value`` message.

    Args:
        tagged: Document value.

    Returns:
        Firestore ``Value`` with the matching oneof field set.
    """
    from google.cloud.firestore_v1.types import Value
    from google.protobuf import struct_pb2

    if tagged.kind is ValueKind.STRING:
        return Value(string_value=tagged.value)
    if tagged.kind is ValueKind.BYTES:
        return Value(bytes_value=tagged.value)
    if tagged.kind is ValueKind.INTEGER:
        return Value(integer_value=tagged.value)
    if tagged.kind is ValueKind.DOUBLE:
        return Value(double_value=tagged.value)
    if tagged.kind is ValueKind.BOOLEAN:
        return Value(boolean_value=tagged.value)
    if tagged.kind is ValueKind.TIMESTAMP:
        return Value(timestamp_value=tagged.value)
    return Value(null_value=struct_pb2.NULL_VALUE)


def _log_write_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    _LOGGER.warning(
        "sink_write_retry",
        attempt=retry_state.attempt_number,
        backoff_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        error=str(error),
    )
