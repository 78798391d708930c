"""Turn raw query parameters into typed task/event filters.

Optional narrowing filters are lenient: an unknown enum value, a malformed id
or an unparsable date is dropped and the request proceeds. Priority and the
start/end ordering are strict and raise ValidationFailed.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional, TypeVar
from uuid import UUID

from ..domain_errors import ValidationFailed
from ..schemas import EventFilter, EventStatus, EventType, TaskFilter, TaskStatus
from .store import Range
from .timeutil import as_utc

E = TypeVar("E")

PRIORITY_MIN = 1
PRIORITY_MAX = 5


def _lookup(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _parse_enum(enum_cls: type[E], value: Any) -> Optional[E]:
    if value is None:
        return None
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        return None


def _parse_uuid(value: Any) -> Optional[UUID]:
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except ValueError:
        return None


def parse_datetime(value: Any) -> Optional[datetime]:
    """ISO-8601 date or datetime; date-only and naive values are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def validate_priority(value: Any) -> int:
    """Priority must be an integer in [1, 5]; never clamped."""
    if isinstance(value, bool):
        priority = None
    elif isinstance(value, int):
        priority = value
    else:
        try:
            priority = int(str(value).strip())
        except ValueError:
            priority = None
    if priority is None or not PRIORITY_MIN <= priority <= PRIORITY_MAX:
        raise ValidationFailed(
            f"Priority must be an integer between {PRIORITY_MIN} and {PRIORITY_MAX}",
            code="INVALID_PRIORITY",
            details={"priority": value},
        )
    return priority


def _date_window(raw: Mapping[str, Any]) -> tuple[Optional[datetime], Optional[datetime]]:
    start = parse_datetime(_lookup(raw, "startDate", "start_date"))
    end = parse_datetime(_lookup(raw, "endDate", "end_date"))
    if start is not None and end is not None and start > end:
        raise ValidationFailed(
            "startDate must not be after endDate",
            code="INVALID_RANGE",
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
    return start, end


def normalize_task_filters(raw: Mapping[str, Any]) -> TaskFilter:
    priority_raw = _lookup(raw, "priority")
    start, end = _date_window(raw)
    return TaskFilter(
        status=_parse_enum(TaskStatus, _lookup(raw, "status")),
        priority=validate_priority(priority_raw) if priority_raw is not None else None,
        assignee_id=_parse_uuid(_lookup(raw, "assigneeId", "assignee_id")),
        artefact_id=_parse_uuid(_lookup(raw, "artefactId", "artefact_id")),
        start_date=start,
        end_date=end,
    )


def normalize_event_filters(raw: Mapping[str, Any]) -> EventFilter:
    start, end = _date_window(raw)
    return EventFilter(
        type=_parse_enum(EventType, _lookup(raw, "type")),
        status=_parse_enum(EventStatus, _lookup(raw, "status")),
        reported_by_id=_parse_uuid(_lookup(raw, "reportedById", "reported_by_id")),
        start_date=start,
        end_date=end,
    )


def task_store_filters(task_filter: TaskFilter) -> dict[str, Any]:
    """Store filter for a task query; the date window applies to due_date."""
    filters: dict[str, Any] = {}
    if task_filter.status is not None:
        filters["status"] = task_filter.status.value
    if task_filter.priority is not None:
        filters["priority"] = task_filter.priority
    if task_filter.assignee_id is not None:
        filters["assignee_id"] = task_filter.assignee_id
    if task_filter.artefact_id is not None:
        filters["artefact_id"] = task_filter.artefact_id
    if task_filter.start_date is not None or task_filter.end_date is not None:
        filters["due_date"] = Range(task_filter.start_date, task_filter.end_date)
    return filters


def event_store_filters(event_filter: EventFilter) -> dict[str, Any]:
    """Store filter for an event query; the date window applies to created_at."""
    filters: dict[str, Any] = {}
    if event_filter.type is not None:
        filters["type"] = event_filter.type.value
    if event_filter.status is not None:
        filters["status"] = event_filter.status.value
    if event_filter.reported_by_id is not None:
        filters["reported_by_id"] = event_filter.reported_by_id
    if event_filter.start_date is not None or event_filter.end_date is not None:
        filters["created_at"] = Range(event_filter.start_date, event_filter.end_date)
    return filters
