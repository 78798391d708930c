"""Aggregate statistics over task, event and suggestion collections.

All functions are pure: same collection and as_of, same result.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Sequence

from ..schemas import EventResponse, EventStats, SuggestionStats, TaskStats
from .timeutil import as_utc, start_of_day

COMPLETED = "COMPLETED"
UNRESOLVED_EVENT_STATUSES = ("OPEN", "IN_PROGRESS")
RECENT_ACTIVITY_LIMIT = 10
SECONDS_PER_DAY = 24 * 60 * 60


def _value(raw: Any) -> Any:
    return getattr(raw, "value", raw)


def compute_task_stats(tasks: Sequence[Any], as_of: datetime) -> TaskStats:
    """Counts, completion rate and mean cycle time in days.

    Day boundaries are taken in as_of's own timezone.
    """
    if as_of.tzinfo is None:
        as_of = as_utc(as_of)
    today = start_of_day(as_of)
    tomorrow = today + timedelta(days=1)
    next_week = today + timedelta(days=7)

    total = len(tasks)
    by_status = Counter(_value(task.status) for task in tasks)
    by_priority = Counter(int(task.priority) for task in tasks)

    overdue = due_today = due_this_week = 0
    cycle_times: list[float] = []
    for task in tasks:
        due_date = as_utc(task.due_date)
        if due_date is not None:
            if due_date < as_of and _value(task.status) != COMPLETED:
                overdue += 1
            if today <= due_date < tomorrow:
                due_today += 1
            if today <= due_date < next_week:
                due_this_week += 1
        if _value(task.status) == COMPLETED and task.completed_at and task.created_at:
            delta = as_utc(task.completed_at) - as_utc(task.created_at)
            cycle_times.append(delta.total_seconds() / SECONDS_PER_DAY)

    completed = by_status.get(COMPLETED, 0)
    return TaskStats(
        total=total,
        by_status=dict(by_status),
        by_priority=dict(by_priority),
        overdue=overdue,
        due_today=due_today,
        due_this_week=due_this_week,
        completion_rate=(completed / total * 100) if total else 0.0,
        average_time_to_complete=(sum(cycle_times) / len(cycle_times)) if cycle_times else 0.0,
    )


def compute_event_stats(events: Sequence[Any]) -> EventStats:
    newest_first = sorted(
        events,
        key=lambda event: (as_utc(event.created_at) is not None, as_utc(event.created_at) or datetime.min),
        reverse=True,
    )
    by_status = Counter(_value(event.status) for event in events)
    return EventStats(
        total=len(events),
        by_type=dict(Counter(_value(event.type) for event in events)),
        by_status=dict(by_status),
        by_severity=dict(Counter(int(event.severity) for event in events)),
        open_count=sum(by_status.get(status, 0) for status in UNRESOLVED_EVENT_STATUSES),
        recent_activity=[
            EventResponse.model_validate(event, from_attributes=True)
            for event in newest_first[:RECENT_ACTIVITY_LIMIT]
        ],
    )


def compute_suggestion_stats(suggestions: Sequence[Any]) -> SuggestionStats:
    confidences = [float(s.confidence) for s in suggestions if s.confidence is not None]
    return SuggestionStats(
        total=len(suggestions),
        by_status=dict(Counter(_value(s.status) for s in suggestions)),
        by_type=dict(Counter(s.type for s in suggestions)),
        confidence_average=(sum(confidences) / len(confidences)) if confidences else 0.0,
    )
