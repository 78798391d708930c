"""Task endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from ..auth import get_current_principal
from ..context import ServiceContext, get_service_context
from ..schemas import (
    CalendarEvent,
    Principal,
    RecurringTaskCreate,
    RecurringTaskResult,
    TaskCreate,
    TaskResponse,
    TaskStats,
    TaskUpdate,
)
from ..use_cases.recurring_tasks import create_recurring_task_use_case
from ..use_cases.task_reports import get_calendar_events_use_case, get_task_stats_use_case
from ..use_cases.tasks import (
    create_task_use_case,
    delete_task_use_case,
    get_task_use_case,
    list_tasks_use_case,
    update_task_use_case,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=list[TaskResponse])
def list_tasks(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    """List tasks. Accepts status, priority, assigneeId, artefactId, startDate, endDate."""
    return list_tasks_use_case(ctx=ctx, principal=principal, raw_filters=dict(request.query_params))


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    data: TaskCreate,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return create_task_use_case(ctx=ctx, payload=data, principal=principal)


@router.post("/recurring", response_model=RecurringTaskResult, status_code=status.HTTP_201_CREATED)
def create_recurring_task(
    data: RecurringTaskCreate,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    """Create a series of tasks; answers 207 when the batch stopped part way."""
    result = create_recurring_task_use_case(ctx=ctx, payload=data.task, rule=data.recurrence, principal=principal)
    if result.is_partial:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return result


@router.get("/stats", response_model=TaskStats)
def get_task_stats(
    assignee_id: Optional[UUID] = Query(None, alias="assigneeId"),
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return get_task_stats_use_case(ctx=ctx, principal=principal, assignee_id=assignee_id)


@router.get("/calendar", response_model=list[CalendarEvent])
def get_calendar_events(
    start: datetime,
    end: datetime,
    assignee_id: Optional[UUID] = Query(None, alias="assigneeId"),
    include_undated: bool = Query(False, alias="includeUndated"),
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    """Calendar entries for tasks due in [start, end]."""
    return get_calendar_events_use_case(
        ctx=ctx,
        principal=principal,
        start=start,
        end=end,
        assignee_id=assignee_id,
        include_undated=include_undated,
    )


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: UUID,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return get_task_use_case(ctx=ctx, task_id=task_id, principal=principal)


@router.patch("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: UUID,
    data: TaskUpdate,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return update_task_use_case(ctx=ctx, task_id=task_id, patch=data, principal=principal)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: UUID,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    delete_task_use_case(ctx=ctx, task_id=task_id, principal=principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
