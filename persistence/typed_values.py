"""
Typed field values as exchanged with the Firestore REST API.

Every field of a stored document is wrapped in a single-key object whose key
names the value's type:

    { "fields": { "title": { "stringValue": "Write report" },
                  "estimatedHours": { "integerValue": "3" } } }

Each variant below owns exactly one of those tags. Nothing here coerces
between variants: an Integer is never read back as a Double, and a Python
bool is never an Integer.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Mapping, Union

from .errors import MalformedValue

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Firestore returns up to nanosecond precision; datetime keeps microseconds.
_TIMESTAMP_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


@dataclass(frozen=True)
class NullValue:
    tag: ClassVar[str] = "nullValue"
    value: None = None


@dataclass(frozen=True)
class StringValue:
    tag: ClassVar[str] = "stringValue"
    value: str


@dataclass(frozen=True)
class BooleanValue:
    tag: ClassVar[str] = "booleanValue"
    value: bool


@dataclass(frozen=True)
class IntegerValue:
    tag: ClassVar[str] = "integerValue"
    value: int


@dataclass(frozen=True)
class DoubleValue:
    tag: ClassVar[str] = "doubleValue"
    value: float


@dataclass(frozen=True)
class TimestampValue:
    tag: ClassVar[str] = "timestampValue"
    value: datetime


@dataclass(frozen=True)
class ArrayValue:
    tag: ClassVar[str] = "arrayValue"
    values: tuple["TypedValue", ...] = ()


@dataclass(frozen=True)
class MapValue:
    tag: ClassVar[str] = "mapValue"
    fields: dict[str, "TypedValue"] = field(default_factory=dict)


TypedValue = Union[
    NullValue,
    StringValue,
    BooleanValue,
    IntegerValue,
    DoubleValue,
    TimestampValue,
    ArrayValue,
    MapValue,
]

TYPED_VALUE_CLASSES: tuple[type, ...] = (
    NullValue,
    StringValue,
    BooleanValue,
    IntegerValue,
    DoubleValue,
    TimestampValue,
    ArrayValue,
    MapValue,
)

Document = dict[str, TypedValue]


def is_typed_value(value: Any) -> bool:
    return isinstance(value, TYPED_VALUE_CLASSES)


def string_array(items: list[str] | tuple[str, ...]) -> ArrayValue:
    return ArrayValue(tuple(StringValue(s) for s in items))


# -------------------------------------------------------------------
# Timestamps
# -------------------------------------------------------------------
def to_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    return to_utc(dt).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(raw: str) -> datetime:
    m = _TIMESTAMP_RE.match(raw.strip())
    if not m:
        raise ValueError(f"not an RFC 3339 timestamp: {raw!r}")
    day, clock, fraction, offset = m.groups()
    micros = int((fraction or "0")[:6].ljust(6, "0"))
    if offset in ("Z", "z"):
        offset = "+00:00"
    dt = datetime.fromisoformat(f"{day}T{clock}{offset}").replace(microsecond=micros)
    return dt.astimezone(timezone.utc)


# -------------------------------------------------------------------
# Wire format
# -------------------------------------------------------------------
def to_wire(value: TypedValue) -> dict[str, Any]:
    if isinstance(value, NullValue):
        return {"nullValue": None}
    if isinstance(value, StringValue):
        return {"stringValue": value.value}
    if isinstance(value, BooleanValue):
        return {"booleanValue": value.value}
    if isinstance(value, IntegerValue):
        return {"integerValue": str(int(value.value))}
    if isinstance(value, DoubleValue):
        return {"doubleValue": _double_to_wire(value.value)}
    if isinstance(value, TimestampValue):
        return {"timestampValue": format_timestamp(value.value)}
    if isinstance(value, ArrayValue):
        if not value.values:
            return {"arrayValue": {}}
        return {"arrayValue": {"values": [to_wire(v) for v in value.values]}}
    if isinstance(value, MapValue):
        return {"mapValue": {"fields": {k: to_wire(v) for k, v in value.fields.items()}}}
    raise TypeError(f"not a typed value: {value!r}")


def from_wire(raw: Any) -> TypedValue:
    """
    Parse one wire value. Raises ValueError for unknown tags or payloads that
    do not match their tag.
    """
    if not isinstance(raw, Mapping) or len(raw) != 1:
        raise ValueError(f"expected a single-tag object, got {raw!r}")
    (tag, payload), = raw.items()

    if tag == "nullValue":
        return NullValue()
    if tag == "stringValue":
        if not isinstance(payload, str):
            raise ValueError("stringValue must be a string")
        return StringValue(payload)
    if tag == "booleanValue":
        if not isinstance(payload, bool):
            raise ValueError("booleanValue must be a boolean")
        return BooleanValue(payload)
    if tag == "integerValue":
        return IntegerValue(_parse_integer(payload))
    if tag == "doubleValue":
        return DoubleValue(_parse_double(payload))
    if tag == "timestampValue":
        if not isinstance(payload, str):
            raise ValueError("timestampValue must be a string")
        return TimestampValue(parse_timestamp(payload))
    if tag == "arrayValue":
        if not isinstance(payload, Mapping):
            raise ValueError("arrayValue must be an object")
        values = payload.get("values") or []
        if not isinstance(values, list):
            raise ValueError("arrayValue.values must be a list")
        return ArrayValue(tuple(from_wire(v) for v in values))
    if tag == "mapValue":
        if not isinstance(payload, Mapping):
            raise ValueError("mapValue must be an object")
        fields = payload.get("fields") or {}
        if not isinstance(fields, Mapping):
            raise ValueError("mapValue.fields must be an object")
        return MapValue({str(k): from_wire(v) for k, v in fields.items()})
    raise ValueError(f"unsupported value tag {tag!r}")


def document_to_wire(doc: Mapping[str, TypedValue]) -> dict[str, Any]:
    return {"fields": {name: to_wire(v) for name, v in doc.items()}}


def document_from_wire(raw: Mapping[str, Any], *, kind: str = "") -> Document:
    """
    Parse a wire document (``{"name": ..., "fields": {...}}``).

    A document with no fields at all legitimately omits ``fields``. A
    ``fields`` member of the wrong shape makes the whole document malformed.
    """
    fields = raw.get("fields", {})
    if not isinstance(fields, Mapping):
        raise MalformedValue("fields", f"expected an object, got {type(fields).__name__}", kind=kind)
    doc: Document = {}
    for name, value in fields.items():
        try:
            doc[str(name)] = from_wire(value)
        except ValueError as e:
            raise MalformedValue(str(name), str(e), kind=kind) from e
    return doc


def _parse_integer(payload: Any) -> int:
    if isinstance(payload, bool):
        raise ValueError("integerValue must not be a boolean")
    if isinstance(payload, int):
        return payload
    if isinstance(payload, str) and re.fullmatch(r"[+-]?\d+", payload.strip()):
        return int(payload)
    raise ValueError(f"integerValue must be a decimal string, got {payload!r}")


def _parse_double(payload: Any) -> float:
    if isinstance(payload, bool):
        raise ValueError("doubleValue must not be a boolean")
    if isinstance(payload, (int, float)):
        return float(payload)
    if payload in ("NaN", "Infinity", "-Infinity"):
        return float(payload.replace("Infinity", "inf"))
    raise ValueError(f"doubleValue must be a number, got {payload!r}")


def _double_to_wire(value: float) -> Any:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return float(value)
