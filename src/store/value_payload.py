"""Shared JSON serialization for tagged values and write intents.

This module encodes document values in the Firestore REST JSON form
(``{"integerValue": "7"}``). It is reused by the dry-run sink, the
preview command, and tests that read exported files back.
"""

from __future__ import annotations

import base64
from datetime import datetime, timezone
import json
import math
from pathlib import Path
from typing import Any, Mapping

from core.types import DocumentWriteIntent, TaggedValue, ValueKind

_PAYLOAD_KEYS: dict[ValueKind, str] = {
    ValueKind.STRING: "stringValue",
    ValueKind.BYTES: "bytesValue",
    ValueKind.INTEGER: "integerValue",
    ValueKind.DOUBLE: "doubleValue",
    ValueKind.NULL: "nullValue",
    ValueKind.BOOLEAN: "booleanValue",
    ValueKind.TIMESTAMP: "timestampValue",
}
_KINDS_BY_KEY = {key: kind for kind, key in _PAYLOAD_KEYS.items()}
_NULL_PAYLOAD = "NULL_VALUE"
_NON_FINITE_DOUBLES = {"NaN": math.nan, "Infinity": math.inf, "-Infinity": -math.inf}


def tagged_value_to_payload(tagged: TaggedValue) -> dict[str, object]:
    """Serialize a tagged value into its REST JSON form.

    Args:
        tagged: Document value.

    Returns:
        Single-key dictionary naming the variant.
    """
    key = _PAYLOAD_KEYS[tagged.kind]
    value = tagged.value
    if tagged.kind is ValueKind.BYTES:
        return {key: base64.b64encode(value).decode("ascii")}  # type: ignore[arg-type]
    if tagged.kind is ValueKind.INTEGER:
        return {key: str(value)}
    if tagged.kind is ValueKind.DOUBLE:
        return {key: _encode_double(float(value))}  # type: ignore[arg-type]
    if tagged.kind is ValueKind.NULL:
        return {key: _NULL_PAYLOAD}
    if tagged.kind is ValueKind.TIMESTAMP:
        return {key: _encode_timestamp(value)}  # type: ignore[arg-type]
    return {key: value}


def tagged_value_from_payload(payload: Mapping[str, Any]) -> TaggedValue:
    """Deserialize a REST JSON value.

    Args:
        payload: Single-key value dictionary.

    Returns:
        Parsed tagged value.

    Raises:
        ValueError: If the payload does not name exactly one known variant.
    """
    if len(payload) != 1:
        raise ValueError(f"Expected exactly one value key, got {sorted(payload)}")
    key, raw = next(iter(payload.items()))
    kind = _KINDS_BY_KEY.get(key)
    if kind is None:
        raise ValueError(f"Unknown value key '{key}'")
    if kind is ValueKind.STRING:
        return TaggedValue.of_string(str(raw))
    if kind is ValueKind.BYTES:
        return TaggedValue.of_bytes(base64.b64decode(str(raw)))
    if kind is ValueKind.INTEGER:
        return TaggedValue.of_integer(int(raw))
    if kind is ValueKind.DOUBLE:
        return TaggedValue.of_double(_decode_double(raw))
    if kind is ValueKind.NULL:
        return TaggedValue.null()
    if kind is ValueKind.BOOLEAN:
        return TaggedValue.of_boolean(bool(raw))
    return TaggedValue.of_timestamp(_decode_timestamp(str(raw)))


def intent_to_payload(intent: DocumentWriteIntent) -> dict[str, object]:
    """Serialize a write intent as a REST document.

    Args:
        intent: Write intent.

    Returns:
        ``{"name": path, "fields": {...}}`` payload.
    """
    return {
        "name": intent.path,
        "fields": {name: tagged_value_to_payload(tagged) for name, tagged in intent.fields.items()},
    }


def intent_from_payload(payload: Mapping[str, Any]) -> DocumentWriteIntent:
    """Deserialize a REST document into a write intent.

    Args:
        payload: Serialized document payload.

    Returns:
        Parsed write intent.
    """
    fields_payload = payload.get("fields", {})
    fields_dict = fields_payload if isinstance(fields_payload, dict) else {}
    return DocumentWriteIntent(
        path=str(payload.get("name", "")),
        fields={
            str(name): tagged_value_from_payload(value) for name, value in fields_dict.items()
        },
    )


def read_intents_jsonl(intents_path: Path) -> list[DocumentWriteIntent]:
    """Read write intents from a JSONL file.

    Args:
        intents_path: Input JSONL file path.

    Returns:
        Parsed intents in file order.

    Raises:
        ValueError: If JSONL rows are invalid.
    """
    intents: list[DocumentWriteIntent] = []
    for line_number, line in enumerate(intents_path.read_text(encoding="utf-8").splitlines(), 1):
        if not line.strip():
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as error:
            raise ValueError(f"Invalid JSON at line {line_number}: {error.msg}") from error
        if not isinstance(payload, dict):
            raise ValueError(f"Invalid payload at line {line_number}: expected JSON object")
        intents.append(intent_from_payload(payload))
    return intents


def _encode_double(number: float) -> object:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    return number


def _decode_double(raw: object) -> float:
    if isinstance(raw, str) and raw in _NON_FINITE_DOUBLES:
        return _NON_FINITE_DOUBLES[raw]
    return float(raw)  # type: ignore[arg-type]


def _encode_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _decode_timestamp(text: str) -> datetime:
    return datetime.fromisoformat(text.replace("Z", "+00:00"))
