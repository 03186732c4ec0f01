from __future__ import annotations

from .codec import MEETING_CODEC, REMINDER_CODEC, SESSION_CODEC, TASK_CODEC, FieldKind, FieldSpec, RecordCodec
from .errors import (
    DecodeError,
    FieldMissing,
    FieldTypeMismatch,
    MalformedValue,
    NotFound,
    PersistenceError,
    StoreError,
    TransportError,
)
from .filters import filter_records, owned_by
from .firestore import FirestoreClient, FirestoreDocumentStore, Stores, open_stores
from .interfaces import RecordStore
from .patch import build_patch, typed_patch
from .records import MeetingRecord, ReminderRecord, SessionRecord, StoredRecord, TaskRecord
from .repositories import AsyncRecordRepository, AsyncRepositories, AsyncSessionRepository, AsyncStoreRepository

__all__ = [
    "FieldKind",
    "FieldSpec",
    "RecordCodec",
    "SESSION_CODEC",
    "TASK_CODEC",
    "MEETING_CODEC",
    "REMINDER_CODEC",
    "PersistenceError",
    "TransportError",
    "StoreError",
    "NotFound",
    "DecodeError",
    "FieldMissing",
    "FieldTypeMismatch",
    "MalformedValue",
    "filter_records",
    "owned_by",
    "FirestoreClient",
    "FirestoreDocumentStore",
    "Stores",
    "open_stores",
    "RecordStore",
    "build_patch",
    "typed_patch",
    "StoredRecord",
    "SessionRecord",
    "TaskRecord",
    "MeetingRecord",
    "ReminderRecord",
    "AsyncRecordRepository",
    "AsyncStoreRepository",
    "AsyncSessionRepository",
    "AsyncRepositories",
]
