"""Project tasks onto calendar entries for a date window."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional
from uuid import UUID

from ..schemas import CalendarEvent, CalendarEventType
from .timeutil import as_utc


def project_calendar(
    tasks: Iterable[Any],
    window_start: datetime,
    window_end: datetime,
    *,
    include_undated: bool = False,
    assignee_names: Optional[Mapping[UUID, str]] = None,
) -> list[CalendarEvent]:
    """One all-day TASK entry per task dated inside [window_start, window_end].

    Undated tasks are anchored on created_at, and only when include_undated
    is set. Entries are ordered by start, then task id.
    """
    window_start = as_utc(window_start)
    window_end = as_utc(window_end)
    names = assignee_names or {}

    entries: list[CalendarEvent] = []
    for task in tasks:
        due_date = as_utc(task.due_date)
        if due_date is not None:
            start, end = due_date, due_date
        elif include_undated and task.created_at is not None:
            start, end = as_utc(task.created_at), None
        else:
            continue
        if not window_start <= start <= window_end:
            continue

        entries.append(
            CalendarEvent(
                id=task.id,
                title=task.title,
                start=start,
                end=end,
                all_day=True,
                type=CalendarEventType.TASK,
                status=task.status,
                priority=task.priority,
                description=task.description,
                assignee=names.get(task.assignee_id) if task.assignee_id else None,
            )
        )

    entries.sort(key=lambda entry: (entry.start, str(entry.id)))
    return entries
