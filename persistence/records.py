from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from .typed_values import to_utc


def _whole_second_utc(dt: datetime) -> datetime:
    # Stored timestamps carry whole seconds only.
    return to_utc(dt).replace(microsecond=0)


Timestamp = Annotated[datetime, AfterValidator(_whole_second_utc)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class StoredRecord(BaseModel):
    """
    Common base for everything kept in a collection.

    ``id`` is the document's storage key. It lives in the document's resource
    path, never among its fields, and is filled in by the store after reads.
    ``update_time`` is the store's own revision stamp for the document; pass
    it back to ``update`` to refuse overwriting a newer revision.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    update_time: str | None = Field(default=None, alias="updateTime")


class SessionRecord(StoredRecord):
    """A signed-in user, keyed by the identity provider's user id."""

    user_id: str = Field(alias="userId")
    email: str
    name: str
    access_token: str = Field(alias="accessToken")
    refresh_token: str | None = Field(default=None, alias="refreshToken")
    created_at: Timestamp = Field(default_factory=utcnow, alias="createdAt")
    last_login: Timestamp = Field(default_factory=utcnow, alias="lastLogin")


class TaskRecord(StoredRecord):
    user_id: str = Field(alias="userId")
    title: str
    description: str | None = None
    completed: bool = False
    status: str = "todo"  # todo, in-progress, completed
    priority: str = "medium"  # low, medium, high
    start_date: Timestamp | None = Field(default=None, alias="startDate")
    due_date: Timestamp | None = Field(default=None, alias="dueDate")
    estimated_hours: int | None = Field(default=None, alias="estimatedHours")
    actual_hours: int | None = Field(default=None, alias="actualHours")
    google_event_id: str | None = Field(default=None, alias="googleEventId")
    started_at: Timestamp | None = Field(default=None, alias="startedAt")
    completed_at: Timestamp | None = Field(default=None, alias="completedAt")
    created_at: Timestamp = Field(default_factory=utcnow, alias="createdAt")
    updated_at: Timestamp = Field(default_factory=utcnow, alias="updatedAt")


class MeetingRecord(StoredRecord):
    user_id: str = Field(alias="userId")
    title: str
    description: str | None = None
    start_time: Timestamp = Field(alias="startTime")
    end_time: Timestamp = Field(alias="endTime")
    attendees: list[str] | None = None
    location: str | None = None
    meeting_type: str = Field(alias="meetingType")  # call, in-person, video
    status: str = "scheduled"  # scheduled, ongoing, completed, cancelled
    google_event_id: str | None = Field(default=None, alias="googleEventId")
    created_at: Timestamp = Field(default_factory=utcnow, alias="createdAt")
    updated_at: Timestamp | None = Field(default=None, alias="updatedAt")


class ReminderRecord(StoredRecord):
    user_id: str = Field(alias="userId")
    title: str
    description: str | None = None
    reminder_time: Timestamp = Field(alias="reminderTime")
    reminder_type: str = Field(alias="reminderType")  # task, meeting, personal
    is_completed: bool = Field(default=False, alias="isCompleted")
    priority: str = "medium"
    google_event_id: str | None = Field(default=None, alias="googleEventId")
    completed_at: Timestamp | None = Field(default=None, alias="completedAt")
    created_at: Timestamp = Field(default_factory=utcnow, alias="createdAt")
    updated_at: Timestamp | None = Field(default=None, alias="updatedAt")
