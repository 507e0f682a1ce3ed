"""Unit tests for REST JSON value serialization."""

from __future__ import annotations

from datetime import datetime, timezone
import math

import pytest

from core.types import DocumentWriteIntent, TaggedValue
from store.value_payload import (
    intent_to_payload,
    read_intents_jsonl,
    tagged_value_from_payload,
    tagged_value_to_payload,
)


def test_integer_payload_is_decimal_string() -> None:
    """Integers should serialize as decimal strings."""
    assert tagged_value_to_payload(TaggedValue.of_integer(-7)) == {"integerValue": "-7"}


def test_bytes_payload_is_base64() -> None:
    """Bytes should serialize as base64 text."""
    assert tagged_value_to_payload(TaggedValue.of_bytes(b"\x01\x02")) == {"bytesValue": "AQI="}


def test_null_payload_uses_enum_name() -> None:
    """Null should serialize as the null enum name."""
    assert tagged_value_to_payload(TaggedValue.null()) == {"nullValue": "NULL_VALUE"}


def test_timestamp_payload_uses_utc_suffix() -> None:
    """Timestamps should serialize in UTC with a Z suffix."""
    moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    assert tagged_value_to_payload(TaggedValue.of_timestamp(moment)) == {
        "timestampValue": "2024-01-02T03:04:05Z"
    }


def test_non_finite_double_reads_back() -> None:
    """NaN should serialize as text and parse back as NaN."""
    payload = tagged_value_to_payload(TaggedValue.of_double(math.nan))

    assert payload == {"doubleValue": "NaN"}
    assert math.isnan(tagged_value_from_payload(payload).value)


def test_from_payload_rejects_unknown_key() -> None:
    """Unknown value keys should raise a value error."""
    with pytest.raises(ValueError):
        tagged_value_from_payload({"mapValue": {}})


def test_intent_payload_names_document() -> None:
    """Intent payloads should carry the name and every field."""
    intent = DocumentWriteIntent(
        path="projects/p/databases/d/documents/c/r/output/x",
        fields={"label": TaggedValue.of_string("hello")},
    )

    assert intent_to_payload(intent) == {
        "name": "projects/p/databases/d/documents/c/r/output/x",
        "fields": {"label": {"stringValue": "hello"}},
    }


def test_read_intents_jsonl_rejects_invalid_line(tmp_path) -> None:
    """Invalid JSON lines should raise a value error with the line number."""
    intents_path = tmp_path / "out.jsonl"
    intents_path.write_text('{"name": "a", "fields": {}}\nnot-json\n', encoding="utf-8")

    with pytest.raises(ValueError, match="line 2"):
        read_intents_jsonl(intents_path)
