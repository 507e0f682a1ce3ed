"""Warehouse value to document value conversion.

This module maps each declared field of a source record to a tagged
document value. Dispatch is a closed table over ``DeclaredType``; any
type without a dedicated rule keeps its textual form as a string.
"""

from __future__ import annotations

import base64
from datetime import date, datetime, time
import json
import math
import re
from typing import Callable, Mapping, Sequence

from core.constants import INT64_MAX, INT64_MIN
from core.errors import QuarryCastError, QuarryParseError
from core.types import DeclaredType, FieldSchema, SourceRecord, TaggedValue

ValueRule = Callable[[str, object], TaggedValue]

_INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")
_DECIMAL_TEXT = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")
# Special values are matched by exact spelling only.
_SPECIAL_DOUBLES = {
    "NaN": math.nan,
    "+NaN": math.nan,
    "-NaN": math.nan,
    "Infinity": math.inf,
    "+Infinity": math.inf,
    "-Infinity": -math.inf,
}


def convert_record(record: SourceRecord) -> dict[str, TaggedValue]:
    """Convert a self-describing record into document fields.

    Args:
        record: Source record with schema and positional values.

    Returns:
        Mapping of field name to tagged value.

    Raises:
        QuarryParseError: If numeric text is malformed.
        QuarryCastError: If a value lacks the representation its type requires.
    """
    return convert(record.schema, record.values)


def convert(schema: Sequence[FieldSchema], values: Sequence[object]) -> dict[str, TaggedValue]:
    """Convert positional values under a field schema.

    Every schema field yields one entry. Repeated names keep the last value.

    Args:
        schema: Ordered field schemas.
        values: Raw values by schema position.

    Returns:
        Mapping of field name to tagged value.

    Raises:
        QuarryParseError: If numeric text is malformed.
        QuarryCastError: If the record shape or a value representation is wrong.
    """
    if len(schema) != len(values):
        raise QuarryCastError(
            f"Record carries {len(values)} values for a schema of {len(schema)} fields."
        )
    return {
        field_schema.name: convert_value(field_schema, raw_value)
        for field_schema, raw_value in zip(schema, values)
    }


def convert_value(field_schema: FieldSchema, raw_value: object) -> TaggedValue:
    """Convert one raw value according to its declared type.

    Args:
        field_schema: Schema of the field being converted.
        raw_value: Untyped value read from the record.

    Returns:
        Tagged document value.
    """
    if raw_value is None:
        return TaggedValue.null()
    if field_schema.is_repeated:
        # Arrays keep their JSON text whatever the element type.
        return _convert_fallback(field_schema.name, raw_value)
    rule = _RULES[field_schema.declared_type]
    return rule(field_schema.name, raw_value)


def value_text(raw_value: object) -> str:
    """Render a raw value in the warehouse's textual form.

    Args:
        raw_value: Untyped value read from the record.

    Returns:
        Text representation used by string and numeric rules.
    """
    if isinstance(raw_value, str):
        return raw_value
    if isinstance(raw_value, bool):
        return "true" if raw_value else "false"
    if isinstance(raw_value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(raw_value)).decode("ascii")
    if isinstance(raw_value, (datetime, date, time)):
        return raw_value.isoformat()
    if isinstance(raw_value, (Mapping, list, tuple)):
        return json.dumps(raw_value, sort_keys=True, separators=(",", ":"), default=_json_default)
    return str(raw_value)


def _convert_string(field_name: str, raw_value: object) -> TaggedValue:
    return TaggedValue.of_string(value_text(raw_value))


def _convert_bytes(field_name: str, raw_value: object) -> TaggedValue:
    if not isinstance(raw_value, (bytes, bytearray, memoryview)):
        raise QuarryCastError(
            f"Field '{field_name}' is declared BYTES but holds "
            f"{type(raw_value).__name__}, not raw bytes."
        )
    return TaggedValue.of_bytes(bytes(raw_value))


def _convert_integer(field_name: str, raw_value: object) -> TaggedValue:
    text = value_text(raw_value)
    if not _INTEGER_TEXT.fullmatch(text):
        raise QuarryParseError(
            f"Field '{field_name}' is declared INTEGER but '{text}' is not a base-10 integer."
        )
    number = int(text)
    if not INT64_MIN <= number <= INT64_MAX:
        raise QuarryParseError(
            f"Field '{field_name}' value {text} is outside the 64-bit signed integer range."
        )
    return TaggedValue.of_integer(number)


def _convert_double(field_name: str, raw_value: object) -> TaggedValue:
    if isinstance(raw_value, float):
        return TaggedValue.of_double(raw_value)
    text = value_text(raw_value)
    special = _SPECIAL_DOUBLES.get(text.strip())
    if special is not None:
        return TaggedValue.of_double(special)
    if not _DECIMAL_TEXT.fullmatch(text.strip()):
        raise QuarryParseError(
            f"Field '{field_name}' is declared FLOAT but '{text}' is not a number."
        )
    return TaggedValue.of_double(float(text))


def _convert_fallback(field_name: str, raw_value: object) -> TaggedValue:
    return TaggedValue.of_string(value_text(raw_value))


def _json_default(value: object) -> object:
    """Serialize non-JSON leaves inside nested values."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


_RULES: dict[DeclaredType, ValueRule] = {
    DeclaredType.STRING: _convert_string,
    DeclaredType.BYTES: _convert_bytes,
    DeclaredType.INTEGER: _convert_integer,
    DeclaredType.INT64: _convert_integer,
    DeclaredType.FLOAT: _convert_double,
    DeclaredType.FLOAT64: _convert_double,
    DeclaredType.NUMERIC: _convert_fallback,
    DeclaredType.BIGNUMERIC: _convert_fallback,
    # Boolean values are not yet written with the boolean variant.
    DeclaredType.BOOLEAN: _convert_fallback,
    DeclaredType.BOOL: _convert_fallback,
    # Timestamps are not yet written with the timestamp variant.
    DeclaredType.TIMESTAMP: _convert_fallback,
    DeclaredType.DATE: _convert_fallback,
    DeclaredType.TIME: _convert_fallback,
    DeclaredType.DATETIME: _convert_fallback,
    DeclaredType.INTERVAL: _convert_fallback,
    DeclaredType.GEOGRAPHY: _convert_fallback,
    DeclaredType.JSON: _convert_fallback,
    # Nested records keep their JSON text; fields are not converted one by one.
    DeclaredType.RECORD: _convert_fallback,
    DeclaredType.STRUCT: _convert_fallback,
    DeclaredType.UNKNOWN: _convert_fallback,
}

_UNMAPPED_TYPES = set(DeclaredType) - set(_RULES)
if _UNMAPPED_TYPES:
    raise RuntimeError(
        "Every declared type needs a conversion rule; missing: "
        + ", ".join(sorted(member.value for member in _UNMAPPED_TYPES))
    )
