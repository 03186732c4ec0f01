from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from persistence.errors import MalformedValue
from persistence.typed_values import (
    ArrayValue,
    BooleanValue,
    DoubleValue,
    IntegerValue,
    MapValue,
    NullValue,
    StringValue,
    TimestampValue,
    document_from_wire,
    document_to_wire,
    format_timestamp,
    from_wire,
    parse_timestamp,
    to_wire,
)


def test_wire_tags_for_every_variant():
    ts = datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
    assert to_wire(NullValue()) == {"nullValue": None}
    assert to_wire(StringValue("")) == {"stringValue": ""}
    assert to_wire(BooleanValue(False)) == {"booleanValue": False}
    assert to_wire(IntegerValue(42)) == {"integerValue": "42"}
    assert to_wire(DoubleValue(1.5)) == {"doubleValue": 1.5}
    assert to_wire(TimestampValue(ts)) == {"timestampValue": "2025-03-04T05:06:07Z"}
    assert to_wire(ArrayValue((StringValue("a"),))) == {"arrayValue": {"values": [{"stringValue": "a"}]}}
    assert to_wire(ArrayValue()) == {"arrayValue": {}}
    assert to_wire(MapValue({"k": IntegerValue(1)})) == {"mapValue": {"fields": {"k": {"integerValue": "1"}}}}


def test_integer_reads_decimal_strings_and_plain_ints():
    assert from_wire({"integerValue": "-17"}) == IntegerValue(-17)
    assert from_wire({"integerValue": 9}) == IntegerValue(9)
    with pytest.raises(ValueError):
        from_wire({"integerValue": "1.5"})
    with pytest.raises(ValueError):
        from_wire({"integerValue": True})


def test_no_coercion_between_variants():
    with pytest.raises(ValueError):
        from_wire({"booleanValue": "true"})
    with pytest.raises(ValueError):
        from_wire({"stringValue": 3})
    assert from_wire({"doubleValue": 2}) == DoubleValue(2.0)


def test_empty_array_and_nested_map_parse():
    assert from_wire({"arrayValue": {}}) == ArrayValue(())
    parsed = from_wire({"mapValue": {"fields": {"tags": {"arrayValue": {"values": [{"stringValue": "x"}]}}}}})
    assert parsed == MapValue({"tags": ArrayValue((StringValue("x"),))})


def test_unknown_tag_is_rejected():
    with pytest.raises(ValueError):
        from_wire({"geoPointValue": {"latitude": 1, "longitude": 2}})
    with pytest.raises(ValueError):
        from_wire({"stringValue": "a", "booleanValue": True})


def test_timestamp_format_is_utc_whole_seconds():
    local = datetime(2025, 1, 1, 12, 0, 30, 999999, tzinfo=timezone(timedelta(hours=2)))
    assert format_timestamp(local) == "2025-01-01T10:00:30Z"
    # naive values are treated as UTC
    assert format_timestamp(datetime(2025, 1, 1, 12, 0, 0)) == "2025-01-01T12:00:00Z"


def test_timestamp_parse_accepts_nanoseconds_and_offsets():
    assert parse_timestamp("2024-05-06T07:08:09.123456789Z") == datetime(
        2024, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc
    )
    assert parse_timestamp("2024-05-06T09:08:09+02:00") == datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
    with pytest.raises(ValueError):
        parse_timestamp("2024-05-06 07:08")


def test_document_from_wire_reports_the_broken_field():
    with pytest.raises(MalformedValue) as exc:
        document_from_wire({"fields": {"title": {"stringValue": "ok"}, "due": {"timestampValue": "soon"}}}, kind="Task")
    assert exc.value.field == "due"
    assert exc.value.kind == "Task"


def test_document_without_fields_is_empty_but_bad_fields_is_malformed():
    assert document_from_wire({"name": "x/y"}) == {}
    with pytest.raises(MalformedValue) as exc:
        document_from_wire({"fields": ["not", "a", "map"]}, kind="Task")
    assert exc.value.field == "fields"
    assert exc.value.kind == "Task"


def test_document_to_wire_wraps_fields():
    assert document_to_wire({"done": BooleanValue(True)}) == {"fields": {"done": {"booleanValue": True}}}
