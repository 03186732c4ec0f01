from __future__ import annotations

from datetime import datetime
from typing import Iterable, TypedDict

from persistence.records import MeetingRecord, ReminderRecord, TaskRecord
from persistence.typed_values import to_utc


class TaskOverview(TypedDict):
    total: int
    completed: int
    inProgress: int
    todo: int
    highPriority: int
    overdue: int


class MeetingOverview(TypedDict):
    total: int
    today: int
    upcoming: int
    completed: int


class ReminderOverview(TypedDict):
    total: int
    pending: int
    completed: int
    overdue: int


class Overview(TypedDict):
    tasks: TaskOverview
    meetings: MeetingOverview
    reminders: ReminderOverview


def _task_overview(tasks: list[TaskRecord], *, now: datetime) -> TaskOverview:
    today = now.date()
    summary: TaskOverview = {
        "total": len(tasks),
        "completed": 0,
        "inProgress": 0,
        "todo": 0,
        "highPriority": 0,
        "overdue": 0,
    }
    for t in tasks:
        if t.status == "completed":
            summary["completed"] += 1
        elif t.status == "in-progress":
            summary["inProgress"] += 1
        elif t.status == "todo":
            summary["todo"] += 1
        if t.priority == "high":
            summary["highPriority"] += 1
        # Overdue counts whole days: due any time today is not overdue yet.
        if t.due_date is not None and t.status != "completed" and t.due_date.date() < today:
            summary["overdue"] += 1
    return summary


def _meeting_overview(meetings: list[MeetingRecord], *, now: datetime) -> MeetingOverview:
    today = now.date()
    summary: MeetingOverview = {"total": len(meetings), "today": 0, "upcoming": 0, "completed": 0}
    for m in meetings:
        if m.start_time.date() == today:
            summary["today"] += 1
        if m.status == "scheduled":
            summary["upcoming"] += 1
        elif m.status == "completed":
            summary["completed"] += 1
    return summary


def _reminder_overview(reminders: list[ReminderRecord], *, now: datetime) -> ReminderOverview:
    summary: ReminderOverview = {"total": len(reminders), "pending": 0, "completed": 0, "overdue": 0}
    for r in reminders:
        if r.is_completed:
            summary["completed"] += 1
            continue
        summary["pending"] += 1
        if r.reminder_time < now:
            summary["overdue"] += 1
    return summary


def build_overview(
    tasks: Iterable[TaskRecord],
    meetings: Iterable[MeetingRecord],
    reminders: Iterable[ReminderRecord],
    *,
    now: datetime,
) -> Overview:
    """
    Per-user counters for the dashboard. ``now`` is compared in UTC, the
    same zone the stored timestamps are in.
    """
    now_utc = to_utc(now)
    return {
        "tasks": _task_overview(list(tasks), now=now_utc),
        "meetings": _meeting_overview(list(meetings), now=now_utc),
        "reminders": _reminder_overview(list(reminders), now=now_utc),
    }
