"""Recurring task expansion.

Occurrence k is computed from the anchor as anchor + k * step rather than by
stepping the previous occurrence, so a month-end anchor keeps its day where
the calendar allows it (Jan 31 -> Feb 28 -> Mar 31). Stepping the previous
occurrence instead would carry the clamped day forward (Feb 28 -> Mar 28).
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta

from ..domain_errors import ValidationFailed
from ..schemas import RecurrenceFrequency, RecurrenceRule, TaskCreate
from .filters import validate_priority
from .timeutil import as_utc

# Frequency -> (unit, multiplier)
_STEPS: dict[RecurrenceFrequency, tuple[str, int]] = {
    RecurrenceFrequency.DAILY: ("days", 1),
    RecurrenceFrequency.WEEKLY: ("days", 7),
    RecurrenceFrequency.MONTHLY: ("months", 1),
    RecurrenceFrequency.QUARTERLY: ("months", 3),
    RecurrenceFrequency.YEARLY: ("months", 12),
}


def add_months(value: datetime, months: int) -> datetime:
    """Calendar month addition with day-of-month clamping."""
    year, month_index = divmod(value.month - 1 + months, 12)
    year += value.year
    month = month_index + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _frequency(rule: RecurrenceRule) -> RecurrenceFrequency:
    try:
        return RecurrenceFrequency(rule.frequency)
    except ValueError:
        raise ValidationFailed(
            f"Unknown recurrence frequency: {rule.frequency}",
            code="INVALID_FREQUENCY",
        ) from None


def validate_rule(rule: RecurrenceRule) -> RecurrenceFrequency:
    frequency = _frequency(rule)
    if rule.interval is None or rule.interval < 1:
        raise ValidationFailed("Recurrence interval must be at least 1", code="INVALID_INTERVAL")
    if rule.count is not None and rule.count < 1:
        raise ValidationFailed("Recurrence count must be at least 1", code="INVALID_COUNT")
    if rule.count is None and rule.end_date is None:
        raise ValidationFailed(
            "Recurrence needs a count or an end date",
            code="UNBOUNDED_RECURRENCE",
        )
    return frequency


def occurrence_at(anchor: datetime, frequency: RecurrenceFrequency, interval: int, index: int) -> datetime:
    """The index-th (0-based) occurrence after anchor."""
    unit, multiplier = _STEPS[frequency]
    steps = index * interval * multiplier
    if unit == "days":
        return anchor + timedelta(days=steps)
    return add_months(anchor, steps)


def occurrence_dates(
    anchor: datetime,
    rule: RecurrenceRule,
    *,
    max_occurrences: int,
) -> list[datetime]:
    """Due dates of the series; both bounds apply when both are given."""
    frequency = validate_rule(rule)
    anchor = as_utc(anchor)
    end_date = as_utc(rule.end_date)

    dates: list[datetime] = []
    index = 0
    while rule.count is None or index < rule.count:
        current = occurrence_at(anchor, frequency, rule.interval, index)
        if end_date is not None and current > end_date:
            break
        if len(dates) >= max_occurrences:
            raise ValidationFailed(
                f"Recurrence would create more than {max_occurrences} tasks",
                code="RECURRENCE_TOO_LONG",
                details={"max_occurrences": max_occurrences},
            )
        dates.append(current)
        index += 1
    return dates


def expand_recurrence(
    template: TaskCreate,
    rule: RecurrenceRule,
    *,
    now: datetime,
    max_occurrences: int,
) -> list[TaskCreate]:
    """Concrete task payloads for a recurring template, in occurrence order.

    An anchor already past end_date yields an empty list.
    """
    priority = validate_priority(template.priority)
    anchor = template.due_date or now
    return [
        template.model_copy(
            update={
                "title": f"{template.title} ({position})",
                "due_date": due_date,
                "priority": priority,
            }
        )
        for position, due_date in enumerate(
            occurrence_dates(anchor, rule, max_occurrences=max_occurrences),
            start=1,
        )
    ]
