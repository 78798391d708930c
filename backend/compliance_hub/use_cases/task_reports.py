"""Read-model use-cases over tasks: statistics and calendar projection."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from ..context import ServiceContext
from ..domain_errors import ValidationFailed
from ..schemas import CalendarEvent, Principal, TaskStats
from ..security import require_permission, scope_org_id
from ..services.calendar_projection import project_calendar
from ..services.statistics import compute_task_stats
from ..services.store import TASK, USER, OneOf, Range
from ..services.timeutil import as_utc


def get_task_stats_use_case(
    *,
    ctx: ServiceContext,
    principal: Principal,
    assignee_id: Optional[UUID] = None,
) -> TaskStats:
    """Statistics over every task in scope, optionally one assignee's."""
    require_permission(principal, "canManageTasks")
    filters = {"assignee_id": assignee_id} if assignee_id is not None else {}
    tasks = ctx.store.list(TASK, org_id=scope_org_id(principal), filters=filters)
    return compute_task_stats(tasks, ctx.clock())


def get_calendar_events_use_case(
    *,
    ctx: ServiceContext,
    principal: Principal,
    start: datetime,
    end: datetime,
    assignee_id: Optional[UUID] = None,
    include_undated: bool = False,
) -> list[CalendarEvent]:
    require_permission(principal, "canManageTasks")
    start, end = as_utc(start), as_utc(end)
    if start > end:
        raise ValidationFailed("start must not be after end", code="INVALID_RANGE")
    max_days = ctx.settings.CALENDAR_MAX_WINDOW_DAYS
    if end - start > timedelta(days=max_days):
        raise ValidationFailed(
            f"Calendar window may span at most {max_days} days",
            code="WINDOW_TOO_LARGE",
            details={"max_days": max_days},
        )

    org_id = scope_org_id(principal)
    base = {"assignee_id": assignee_id} if assignee_id is not None else {}
    tasks = ctx.store.list(TASK, org_id=org_id, filters={**base, "due_date": Range(start, end)})
    if include_undated:
        tasks += ctx.store.list(
            TASK,
            org_id=org_id,
            filters={**base, "due_date": None, "created_at": Range(start, end)},
        )

    assignee_ids = {task.assignee_id for task in tasks if task.assignee_id}
    names: dict[UUID, str] = {}
    if assignee_ids:
        users = ctx.store.list(USER, org_id=org_id, filters={"id": OneOf(assignee_ids)})
        names = {user.id: user.name or user.email for user in users}

    return project_calendar(tasks, start, end, include_undated=include_undated, assignee_names=names)
