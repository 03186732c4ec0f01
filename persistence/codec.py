"""
Record <-> Document conversion.

Each record kind declares its wire schema once, as a tuple of FieldSpec.
A RecordCodec instance binds that schema to its pydantic model; there is one
instance per kind (SESSION_CODEC, TASK_CODEC, ...), so callers pick the codec
statically instead of the codec switching on the record's type.

Rules:
  - encode emits every required field and each optional field that is set;
    nothing outside the schema is ever emitted.
  - decode treats a missing optional field as None, raises FieldMissing for a
    missing required field and FieldTypeMismatch for a wrong variant. Fields
    the schema does not declare are ignored.
  - check_patch refuses a partial update that names an undeclared field or
    carries the wrong variant, so nothing written can fail to decode later.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Mapping, TypeVar

from .errors import FieldMissing, FieldTypeMismatch
from .records import MeetingRecord, ReminderRecord, SessionRecord, StoredRecord, TaskRecord
from .typed_values import (
    ArrayValue,
    BooleanValue,
    Document,
    IntegerValue,
    StringValue,
    TimestampValue,
    TypedValue,
    string_array,
)

R = TypeVar("R", bound=StoredRecord)


class FieldKind(str, Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    TIMESTAMP = "timestamp"
    STRING_ARRAY = "string-array"

    @property
    def wire_name(self) -> str:
        return _WIRE_NAMES[self]


_WIRE_NAMES = {
    FieldKind.STRING: StringValue.tag,
    FieldKind.BOOLEAN: BooleanValue.tag,
    FieldKind.INTEGER: IntegerValue.tag,
    FieldKind.TIMESTAMP: TimestampValue.tag,
    FieldKind.STRING_ARRAY: f"{ArrayValue.tag}<{StringValue.tag}>",
}


@dataclass(frozen=True)
class FieldSpec:
    name: str  # wire field name
    attr: str  # model attribute
    kind: FieldKind
    required: bool = True


def required(name: str, attr: str, kind: FieldKind) -> FieldSpec:
    return FieldSpec(name=name, attr=attr, kind=kind, required=True)


def optional(name: str, attr: str, kind: FieldKind) -> FieldSpec:
    return FieldSpec(name=name, attr=attr, kind=kind, required=False)


def _encode_value(kind: FieldKind, value: Any) -> TypedValue:
    if kind is FieldKind.STRING:
        return StringValue(value)
    if kind is FieldKind.BOOLEAN:
        return BooleanValue(bool(value))
    if kind is FieldKind.INTEGER:
        return IntegerValue(int(value))
    if kind is FieldKind.TIMESTAMP:
        return TimestampValue(value)
    return string_array(list(value))


def _variant_name(value: TypedValue) -> str:
    if isinstance(value, ArrayValue):
        inner = {v.tag for v in value.values}
        if len(inner) == 1:
            return f"{ArrayValue.tag}<{inner.pop()}>"
        if inner:
            return f"{ArrayValue.tag}<mixed>"
    return value.tag


def _decode_value(kind: FieldKind, value: TypedValue) -> Any:
    """Returns the native value, or raises LookupError on a variant mismatch."""
    if kind is FieldKind.STRING and isinstance(value, StringValue):
        return value.value
    if kind is FieldKind.BOOLEAN and isinstance(value, BooleanValue):
        return value.value
    if kind is FieldKind.INTEGER and isinstance(value, IntegerValue):
        return value.value
    if kind is FieldKind.TIMESTAMP and isinstance(value, TimestampValue):
        return value.value
    if kind is FieldKind.STRING_ARRAY and isinstance(value, ArrayValue):
        if all(isinstance(v, StringValue) for v in value.values):
            return [v.value for v in value.values]
    raise LookupError(kind)


class RecordCodec(Generic[R]):
    def __init__(
        self,
        *,
        kind: str,
        collection: str,
        model: type[R],
        fields: tuple[FieldSpec, ...],
        modified_field: str,
    ) -> None:
        names = [f.name for f in fields]
        if len(set(names)) != len(names):
            raise ValueError(f"{kind}: duplicate field names in schema")
        if modified_field not in names:
            raise ValueError(f"{kind}: modified field {modified_field!r} is not declared")
        self.kind = kind
        self.collection = collection
        self.model = model
        self.fields = fields
        self.modified_field = modified_field
        self._by_name = {f.name: f for f in fields}

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def encode(self, record: R) -> Document:
        doc: Document = {}
        for fs in self.fields:
            value = getattr(record, fs.attr)
            if value is None:
                if fs.required:
                    raise ValueError(f"{self.kind}: required field {fs.name!r} has no value")
                continue
            doc[fs.name] = _encode_value(fs.kind, value)
        return doc

    def decode(
        self,
        document: Mapping[str, TypedValue],
        *,
        identifier: str | None = None,
        update_time: str | None = None,
    ) -> R:
        values: dict[str, Any] = {}
        for fs in self.fields:
            typed = document.get(fs.name)
            if typed is None:
                if fs.required:
                    raise FieldMissing(self.kind, fs.name)
                values[fs.attr] = None
                continue
            try:
                values[fs.attr] = _decode_value(fs.kind, typed)
            except LookupError:
                raise FieldTypeMismatch(
                    self.kind, fs.name, fs.kind.wire_name, _variant_name(typed)
                ) from None
        values["id"] = identifier
        values["update_time"] = update_time
        return self.model.model_validate(values)

    def check_patch(self, patch: Mapping[str, TypedValue]) -> None:
        for name, typed in patch.items():
            fs = self._by_name.get(name)
            if fs is None:
                raise ValueError(f"{self.kind}: cannot update undeclared field {name!r}")
            try:
                _decode_value(fs.kind, typed)
            except LookupError:
                raise TypeError(
                    f"{self.kind}: field {name!r} expects {fs.kind.wire_name}, got {_variant_name(typed)}"
                ) from None


K = FieldKind

SESSION_CODEC: RecordCodec[SessionRecord] = RecordCodec(
    kind="Session",
    collection="users",
    model=SessionRecord,
    modified_field="lastLogin",
    fields=(
        required("userId", "user_id", K.STRING),
        required("email", "email", K.STRING),
        required("name", "name", K.STRING),
        required("accessToken", "access_token", K.STRING),
        optional("refreshToken", "refresh_token", K.STRING),
        required("createdAt", "created_at", K.TIMESTAMP),
        required("lastLogin", "last_login", K.TIMESTAMP),
    ),
)

TASK_CODEC: RecordCodec[TaskRecord] = RecordCodec(
    kind="Task",
    collection="tasks",
    model=TaskRecord,
    modified_field="updatedAt",
    fields=(
        required("userId", "user_id", K.STRING),
        required("title", "title", K.STRING),
        optional("description", "description", K.STRING),
        required("completed", "completed", K.BOOLEAN),
        required("status", "status", K.STRING),
        required("priority", "priority", K.STRING),
        optional("startDate", "start_date", K.TIMESTAMP),
        optional("dueDate", "due_date", K.TIMESTAMP),
        optional("estimatedHours", "estimated_hours", K.INTEGER),
        optional("actualHours", "actual_hours", K.INTEGER),
        optional("googleEventId", "google_event_id", K.STRING),
        optional("startedAt", "started_at", K.TIMESTAMP),
        optional("completedAt", "completed_at", K.TIMESTAMP),
        required("createdAt", "created_at", K.TIMESTAMP),
        required("updatedAt", "updated_at", K.TIMESTAMP),
    ),
)

MEETING_CODEC: RecordCodec[MeetingRecord] = RecordCodec(
    kind="Meeting",
    collection="meetings",
    model=MeetingRecord,
    modified_field="updatedAt",
    fields=(
        required("userId", "user_id", K.STRING),
        required("title", "title", K.STRING),
        optional("description", "description", K.STRING),
        required("startTime", "start_time", K.TIMESTAMP),
        required("endTime", "end_time", K.TIMESTAMP),
        optional("attendees", "attendees", K.STRING_ARRAY),
        optional("location", "location", K.STRING),
        required("meetingType", "meeting_type", K.STRING),
        required("status", "status", K.STRING),
        optional("googleEventId", "google_event_id", K.STRING),
        required("createdAt", "created_at", K.TIMESTAMP),
        optional("updatedAt", "updated_at", K.TIMESTAMP),
    ),
)

REMINDER_CODEC: RecordCodec[ReminderRecord] = RecordCodec(
    kind="Reminder",
    collection="reminders",
    model=ReminderRecord,
    modified_field="updatedAt",
    fields=(
        required("userId", "user_id", K.STRING),
        required("title", "title", K.STRING),
        optional("description", "description", K.STRING),
        required("reminderTime", "reminder_time", K.TIMESTAMP),
        required("reminderType", "reminder_type", K.STRING),
        required("isCompleted", "is_completed", K.BOOLEAN),
        required("priority", "priority", K.STRING),
        optional("googleEventId", "google_event_id", K.STRING),
        optional("completedAt", "completed_at", K.TIMESTAMP),
        required("createdAt", "created_at", K.TIMESTAMP),
        optional("updatedAt", "updated_at", K.TIMESTAMP),
    ),
)
